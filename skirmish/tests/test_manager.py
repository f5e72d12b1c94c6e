"""
Tests for the match manager, turn timeouts and the match deadline.

Timers run on a ManualScheduler, so time only moves when a test
advances it.
"""

import asyncio
import gc

import pytest

from ..engine_core.action import Action
from ..engine_core.dice import FixedDice
from ..engine_core.errors import ErrorCode, SetupValidationError
from ..engine_core.state import Match, MatchStatus, EndReason, LogEvent, Origin
from ..engine_core.setup import MatchSetup, SideSetup
from ..session import MatchManager, ManualScheduler, AsyncioScheduler, Watchdog
from ..session.manager import TURN_TIMEOUT
from .conftest import ALPHA_LEADS, member


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def manager(scheduler, rules):
    return MatchManager(
        rules=rules,
        scheduler=scheduler,
        dice_factory=lambda seed, draws: FixedDice(ALPHA_LEADS),
    )


def timeout_passes(match):
    return [
        e for e in match.log
        if e.event == LogEvent.ACTION and e.reason == TURN_TIMEOUT
    ]


class TestRegistry:
    @pytest.mark.asyncio
    async def test_create_and_get(self, manager, team_setup):
        match = await manager.create_match(team_setup, seed=3)

        assert match.status == MatchStatus.WAITING
        assert manager.get_match("team") is match
        assert match.seed == 3
        assert manager.list_matches() == [match]
        assert manager.list_matches(MatchStatus.ACTIVE) == []

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, manager, team_setup):
        await manager.create_match(team_setup)
        with pytest.raises(ValueError, match="already exists"):
            await manager.create_match(team_setup)

    @pytest.mark.asyncio
    async def test_invalid_roster(self, manager):
        setup = MatchSetup(sides=[SideSetup("alpha", "Alpha", [member("a1")])])
        with pytest.raises(SetupValidationError):
            await manager.create_match(setup)

    @pytest.mark.asyncio
    async def test_unknown_match(self, manager):
        result = await manager.start_match("missing")
        assert result.error_code == ErrorCode.MATCH_NOT_FOUND
        assert manager.get_match("missing") is None

    @pytest.mark.asyncio
    async def test_remove_cancels_timers(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        assert scheduler.pending == 2

        assert await manager.remove_match("team")
        assert scheduler.pending == 0
        assert not await manager.remove_match("team")

    @pytest.mark.asyncio
    async def test_cleanup_finished(self, manager, scheduler, team_setup, duel_setup):
        await manager.create_match(team_setup)
        await manager.create_match(duel_setup)
        await manager.start_match("team")
        await manager.end_match("team")

        await scheduler.advance(10)
        assert await manager.cleanup_finished(max_age=60) == 0
        assert await manager.cleanup_finished(max_age=5) == 1
        assert [m.match_id for m in manager.list_matches()] == ["duel"]

    @pytest.mark.asyncio
    async def test_restore_rearms_timers(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        saved = manager.get_match("team").to_dict()

        other = MatchManager(
            scheduler=scheduler, dice_factory=lambda seed, draws: FixedDice([])
        )
        managed = other.restore_match(Match.from_dict(saved))

        assert managed.guard.armed
        assert managed.deadline.armed
        assert other.get_match("team").status == MatchStatus.ACTIVE
        with pytest.raises(ValueError):
            other.restore_match(Match.from_dict(saved))


class TestActions:
    @pytest.mark.asyncio
    async def test_submit_action(self, manager, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")

        result = await manager.submit_action("team", "a1", Action.defend())

        assert result.ok
        assert manager.get_match("team").acted["alpha"] == {"a1"}

    @pytest.mark.asyncio
    async def test_rejection_keeps_state(self, manager, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        before = manager.get_match("team")

        result = await manager.submit_action("team", "b1", Action.defend())

        assert result.error_code == ErrorCode.NOT_YOUR_TURN
        assert manager.get_match("team") is before

    @pytest.mark.asyncio
    async def test_submit_envelope(self, manager, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")

        ok = await manager.submit({
            "matchId": "team", "actingMemberId": "a1", "action": {"kind": "guard"},
        })
        unknown = await manager.submit({
            "matchId": "team", "actingMemberId": "a2", "action": {"kind": "fireball"},
        })
        missing = await manager.submit({
            "matchId": "nope", "actingMemberId": "a2", "action": {"kind": "pass"},
        })

        assert ok.ok
        assert unknown.error_code == ErrorCode.UNKNOWN_ACTION
        assert missing.error_code == ErrorCode.MATCH_NOT_FOUND

    @pytest.mark.asyncio
    async def test_envelope_action_must_be_a_mapping(self, manager, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        before = manager.get_match("team")

        for action in ("pass", ["attack"], 7):
            result = await manager.submit({
                "matchId": "team", "actingMemberId": "a1", "action": action,
            })
            assert result.error_code == ErrorCode.UNKNOWN_ACTION

        assert manager.get_match("team") is before
        assert not before.fault

    @pytest.mark.asyncio
    async def test_concurrent_submissions_serialize(self, manager, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")

        results = await asyncio.gather(
            manager.submit_action("team", "a1", Action.defend()),
            manager.submit_action("team", "a1", Action.dodge()),
        )

        assert [r.ok for r in results].count(True) == 1
        assert any(r.error_code == ErrorCode.NOT_YOUR_TURN for r in results)


class TestFaults:
    @pytest.mark.asyncio
    async def test_fault_halts_match_and_timers(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        manager.get_match("team").sides[1].members[0].hp = 500

        result = await manager.submit_action("team", "a1", Action.pass_turn())

        assert result.error_code == ErrorCode.MATCH_FAULTED
        assert manager.get_match("team").fault
        assert scheduler.pending == 0
        again = await manager.submit_action("team", "a2", Action.pass_turn())
        assert again.error_code == ErrorCode.MATCH_FAULTED


class TestTurnTimeout:
    @pytest.mark.asyncio
    async def test_auto_pass_after_budget(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")

        await scheduler.advance(299)
        assert timeout_passes(manager.get_match("team")) == []

        await scheduler.advance(1)

        match = manager.get_match("team")
        passes = timeout_passes(match)
        assert [e.actor_id for e in passes] == ["a1", "a2"]
        assert all(e.origin == Origin.SYSTEM for e in passes)
        assert match.active_side == "beta"
        assert match.active_index == 1

    @pytest.mark.asyncio
    async def test_only_pending_members_are_passed(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        await scheduler.advance(100)
        await manager.submit_action("team", "a1", Action.defend())

        await scheduler.advance(200)

        passes = timeout_passes(manager.get_match("team"))
        assert [e.actor_id for e in passes] == ["a2"]

    @pytest.mark.asyncio
    async def test_new_phase_gets_full_budget(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        await scheduler.advance(50)
        await manager.submit_action("team", "a1", Action.pass_turn())
        await manager.submit_action("team", "a2", Action.pass_turn())

        await scheduler.advance(299)
        assert timeout_passes(manager.get_match("team")) == []
        await scheduler.advance(1)
        passes = timeout_passes(manager.get_match("team"))
        assert [e.actor_id for e in passes] == ["b1", "b2"]
        assert manager.get_match("team").round == 2

    @pytest.mark.asyncio
    async def test_pause_keeps_remaining_budget(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")
        await scheduler.advance(100)
        await manager.pause_match("team")
        assert not manager.get_managed("team").guard.armed

        await scheduler.advance(1000)
        assert timeout_passes(manager.get_match("team")) == []

        await manager.resume_match("team")
        await scheduler.advance(199)
        assert timeout_passes(manager.get_match("team")) == []
        await scheduler.advance(1)
        assert len(timeout_passes(manager.get_match("team"))) == 2


class TestMatchDeadline:
    @pytest.mark.asyncio
    async def test_time_limit_expires_match(self, scheduler, rules, duel_setup):
        manager = MatchManager(
            rules=rules.with_overrides(turn_timeout=10_000.0, match_time_limit=60.0),
            scheduler=scheduler,
            dice_factory=lambda seed, draws: FixedDice(ALPHA_LEADS),
        )
        await manager.create_match(duel_setup)
        await manager.start_match("duel")

        await scheduler.advance(60)

        match = manager.get_match("duel")
        managed = manager.get_managed("duel")
        assert match.status == MatchStatus.ENDED
        assert match.end_reason == EndReason.TIME_LIMIT
        assert match.winner is not None
        assert not managed.guard.armed
        assert not managed.deadline.armed

    @pytest.mark.asyncio
    async def test_end_match_cancels_timers(self, manager, scheduler, team_setup):
        await manager.create_match(team_setup)
        await manager.start_match("team")

        result = await manager.end_match("team")

        assert result.ok
        assert result.new_state.end_reason == EndReason.EXTERNAL_TERMINATION
        assert scheduler.pending == 0


class TestWatchdog:
    @pytest.mark.asyncio
    async def test_rearm_replaces_timer(self, scheduler):
        fired = []

        async def on_fire(key):
            fired.append(key)

        dog = Watchdog(scheduler, on_fire)
        dog.arm("first", 10)
        dog.arm("second", 20)
        await scheduler.advance(30)

        assert fired == ["second"]
        assert not dog.armed

    @pytest.mark.asyncio
    async def test_disarm(self, scheduler):
        fired = []

        async def on_fire(key):
            fired.append(key)

        dog = Watchdog(scheduler, on_fire)
        dog.arm("k", 5)
        dog.disarm()
        await scheduler.advance(10)

        assert fired == []

    @pytest.mark.asyncio
    async def test_real_time_scheduler_holds_timer_tasks(self):
        scheduler = AsyncioScheduler()
        fired = []

        async def on_fire(key):
            fired.append(key)

        Watchdog(scheduler, on_fire).arm("live", 0.01)
        cancelled = Watchdog(scheduler, on_fire)
        cancelled.arm("dropped", 0.01)
        cancelled.disarm()
        assert scheduler.pending == 2

        gc.collect()
        await asyncio.sleep(0.05)

        assert fired == ["live"]
        assert scheduler.pending == 0
