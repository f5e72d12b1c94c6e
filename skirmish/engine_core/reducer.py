"""
Reducer - Applies actions to a match.

The ActionResolver is the single point of match mutation. Member actions
(apply) and lifecycle operations (start, pause, resume, terminate, expire)
all go through it.

Design principles:
- Copy-on-write: work happens on match.clone(); the caller swaps in
  result.new_state only when result.ok
- Validates before touching anything, one error code per failed check
- Handlers are looked up in an exhaustive table keyed by ActionKind
- Every random number comes from the injected Dice
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Iterable
import logging

from .action import Action, ActionKind, ActionResult
from .dice import Dice, SeededDice, percent_check
from .effects import effective_stats, tick, attach, find, remove
from .errors import ErrorCode, InvariantViolation
from .registry import Registry
from .state import (
    Match, MatchStatus, EndReason, Combatant, StatusEffect, EffectKind,
    Origin, LogEvent, LogEntry,
)
from .initiative import apply_initiative
from . import sequencer
from .win import decide, tie_break, conclude
from .setup import MatchSetup, create_match
from ..config import RulesConfig, ItemEffect, canonical_item

logger = logging.getLogger(__name__)


@dataclass
class _Turn:
    """Per-action context handed to a handler."""
    match: Match
    actor: Combatant
    action: Action
    now: float
    origin: Origin
    reason: str | None
    entries: list[LogEntry]

    def log(self, message: str, **fields) -> LogEntry:
        entry = self.match.add_log(
            LogEvent.ACTION,
            message,
            self.now,
            actor_id=self.actor.member_id,
            side=self.actor.side,
            action=self.action.kind.value,
            origin=self.origin,
            reason=self.reason,
            **fields,
        )
        self.entries.append(entry)
        return entry


Handler = Callable[[_Turn], "ActionResult | None"]


@dataclass
class ActionResolver:
    """
    Resolves actions for one match.

    Stateless apart from the dice stream, which must be the same stream
    for the whole life of a match for replays to line up.
    """
    dice: Dice

    # ------------------------------------------------------------------
    # Member actions
    # ------------------------------------------------------------------

    def apply(
        self,
        match: Match,
        member_id: str,
        action: Action,
        now: float = 0.0,
        origin: Origin = Origin.PLAYER,
        reason: str | None = None,
    ) -> ActionResult:
        """
        Validate and resolve one member action.

        Returns ActionResult with the new match, or the first failed check.
        """
        error = self._validate(match, member_id)
        if error:
            return error

        handler = self._get_handler(action.kind)
        if handler is None:
            return ActionResult.failure(
                ErrorCode.UNKNOWN_ACTION, f"No handler for action: {action.kind}"
            )

        work = match.clone()
        actor = Registry(work).get(member_id)
        turn = _Turn(work, actor, action, now, origin, reason, entries=[])

        for effect in tick(actor):
            turn.entries.append(work.add_log(
                LogEvent.EFFECT_EXPIRED,
                f"{actor.name}'s {effect.kind.value} wore off",
                now,
                actor_id=actor.member_id,
                side=actor.side,
                outcome=effect.to_dict(),
            ))

        failed = handler(turn)
        if failed is not None:
            return failed

        sequencer.mark_acted(work, actor)
        logger.debug(
            "match %s: %s %s (%s)", work.match_id, member_id, action.kind.value, origin.value
        )
        return self._finish(match, work, turn.entries, now)

    def _validate(self, match: Match, member_id: str) -> ActionResult | None:
        error = self._require_status(match, MatchStatus.ACTIVE)
        if error:
            return error

        member = Registry(match).find(member_id)
        if member is None:
            return ActionResult.failure(
                ErrorCode.MEMBER_NOT_FOUND, f"Member {member_id} not found"
            )
        if not member.alive:
            return ActionResult.failure(
                ErrorCode.MEMBER_NOT_ALIVE, f"{member.name} is down"
            )
        if sequencer.turn_error(match, member):
            return ActionResult.failure(
                ErrorCode.NOT_YOUR_TURN,
                f"Not {member.name}'s turn (active side: {match.active_side})",
            )
        return None

    def _get_handler(self, kind: ActionKind) -> Handler | None:
        handlers: dict[ActionKind, Handler] = {
            ActionKind.ATTACK: self._handle_attack,
            ActionKind.DEFEND: self._handle_defend,
            ActionKind.DODGE: self._handle_dodge,
            ActionKind.ITEM: self._handle_item,
            ActionKind.PASS: self._handle_pass,
        }
        return handlers.get(kind)

    def _handle_attack(self, turn: _Turn) -> ActionResult | None:
        """Hit check, optional evasion, damage, crit."""
        rules = turn.match.rules
        attacker = turn.actor
        target = Registry(turn.match).find(turn.action.target_id or "")
        if target is None or target.side == attacker.side or not target.alive:
            return ActionResult.failure(
                ErrorCode.INVALID_TARGET,
                f"{turn.action.target_id} is not an alive opponent",
            )

        att = effective_stats(attacker)
        dfn = effective_stats(target)
        rolls: dict[str, int] = {}

        hit_roll = self.dice.roll(rules.die_sides)
        rolls["hit"] = hit_roll
        hit = att.agility - dfn.agility + hit_roll >= rules.hit_threshold

        defending = find(target, EffectKind.DEFENDING)
        evaded = False
        critical = False
        damage = 0

        if hit:
            dodging = remove(target, EffectKind.DODGING)
            if dodging is not None:
                evade_roll = self.dice.roll(rules.die_sides)
                rolls["evade"] = evade_roll
                evaded = dfn.agility + dodging.magnitude + evade_roll >= rules.evasion_threshold

        if hit and not evaded:
            damage_roll = self.dice.roll(rules.die_sides)
            rolls["damage"] = damage_roll
            raw = att.attack * rules.damage_attack_factor + damage_roll // 2 - dfn.defense
            if defending is not None:
                raw = int(raw * (1 - defending.magnitude))
            damage = max(rules.min_damage, raw)

            crit_roll = self.dice.roll(rules.die_sides)
            rolls["crit"] = crit_roll
            critical = crit_roll >= rules.die_sides + 1 - att.luck
            if critical:
                damage = int(damage * rules.crit_multiplier)

            target.hp = max(0, target.hp - damage)

        if not hit:
            message = f"{attacker.name} attacks {target.name} and misses"
        elif evaded:
            message = f"{attacker.name} attacks {target.name}, who dodges"
        else:
            message = (
                f"{attacker.name} hits {target.name} for {damage}"
                f"{' (critical)' if critical else ''}"
                f"{'; ' + target.name + ' is down' if not target.alive else ''}"
            )
        turn.log(
            message,
            rolls=rolls,
            outcome={
                "target_id": target.member_id,
                "hit": hit,
                "evaded": evaded,
                "damage": damage,
                "critical": critical,
                "defending": defending is not None,
                "target_hp": target.hp,
                "defeated": not target.alive,
            },
        )
        return None

    def _handle_defend(self, turn: _Turn) -> ActionResult | None:
        attach(turn.actor, StatusEffect(
            kind=EffectKind.DEFENDING,
            magnitude=turn.match.rules.defend_magnitude,
            remaining=1,
            source="defend",
        ))
        turn.log(f"{turn.actor.name} takes a defensive stance")
        return None

    def _handle_dodge(self, turn: _Turn) -> ActionResult | None:
        attach(turn.actor, StatusEffect(
            kind=EffectKind.DODGING,
            magnitude=turn.match.rules.dodge_bonus,
            remaining=1,
            source="dodge",
        ))
        turn.log(f"{turn.actor.name} gets ready to dodge")
        return None

    def _handle_item(self, turn: _Turn) -> ActionResult | None:
        """Consume one item; heal always works, boosts pass a percentage check."""
        actor = turn.actor
        kind = turn.action.item_kind
        rule = turn.match.rules.item(kind) if kind else None
        if rule is None:
            return ActionResult.failure(ErrorCode.UNKNOWN_ACTION, f"Unknown item: {kind}")
        kind = canonical_item(kind)

        target = actor
        if turn.action.target_id and turn.action.target_id != actor.member_id:
            target = Registry(turn.match).find(turn.action.target_id)
            if (
                rule.effect != ItemEffect.HEAL
                or target is None
                or target.side != actor.side
                or not target.alive
            ):
                return ActionResult.failure(
                    ErrorCode.INVALID_TARGET,
                    f"{turn.action.target_id} cannot receive {kind}",
                )

        if actor.items.get(kind, 0) <= 0:
            return ActionResult.failure(ErrorCode.ITEM_UNAVAILABLE, f"No {kind} left")
        actor.items[kind] -= 1

        if rule.effect == ItemEffect.HEAL:
            before = target.hp
            target.hp = min(target.max_hp, target.hp + rule.amount)
            turn.log(
                f"{actor.name} uses {kind} on {target.name} (+{target.hp - before} hp)",
                outcome={
                    "item_kind": kind,
                    "target_id": target.member_id,
                    "success": True,
                    "healed": target.hp - before,
                    "target_hp": target.hp,
                    "remaining": actor.items[kind],
                },
            )
            return None

        success, roll = percent_check(self.dice, rule.success_percent)
        if success:
            attach(
                actor,
                StatusEffect(
                    kind=EffectKind.STAT_BUFF,
                    magnitude=rule.amount,
                    remaining=rule.duration,
                    source=kind,
                    stat=rule.stat,
                ),
                replace_source=True,
            )
            message = f"{actor.name} uses {kind}: {rule.stat} +{rule.amount} for {rule.duration} turns"
        else:
            message = f"{actor.name} uses {kind}, but it fails"
        turn.log(
            message,
            rolls={"item": roll},
            outcome={
                "item_kind": kind,
                "target_id": actor.member_id,
                "success": success,
                "remaining": actor.items[kind],
            },
        )
        return None

    def _handle_pass(self, turn: _Turn) -> ActionResult | None:
        if turn.reason:
            turn.log(f"{turn.actor.name} passes ({turn.reason})")
        else:
            turn.log(f"{turn.actor.name} passes")
        return None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, match: Match, now: float = 0.0) -> ActionResult:
        """waiting -> active; rolls initiative and opens round 1."""
        error = self._require_status(match, MatchStatus.WAITING)
        if error:
            return error

        work = match.clone()
        work.status = MatchStatus.ACTIVE
        work.started_at = now
        entries = [work.add_log(LogEvent.MATCH_STARTED, "Match started", now)]
        entries.extend(apply_initiative(work, self.dice, now))
        work.phase_started_at = now
        work.phase_elapsed = 0.0
        entries.append(work.add_log(
            LogEvent.ROUND_STARTED,
            f"Round 1 begins; {work.active_side} leads",
            now,
            side=work.active_side,
        ))
        logger.info("match %s started, %s leads", work.match_id, work.active_side)
        return self._finish(match, work, entries, now, check_end=False)

    def pause(self, match: Match, now: float = 0.0) -> ActionResult:
        """active -> paused; keeps how much of the phase budget was used."""
        error = self._require_status(match, MatchStatus.ACTIVE)
        if error:
            return error
        work = match.clone()
        work.status = MatchStatus.PAUSED
        work.phase_elapsed = max(0.0, now - (work.phase_started_at or now))
        work.phase_started_at = None
        entries = [work.add_log(LogEvent.MATCH_PAUSED, "Match paused", now)]
        logger.info("match %s paused", work.match_id)
        return self._finish(match, work, entries, now, check_end=False)

    def resume(self, match: Match, now: float = 0.0) -> ActionResult:
        """paused -> active; the phase clock continues where it stopped."""
        error = self._require_status(match, MatchStatus.PAUSED)
        if error:
            return error
        work = match.clone()
        work.status = MatchStatus.ACTIVE
        work.phase_started_at = now - work.phase_elapsed
        work.phase_elapsed = 0.0
        entries = [work.add_log(LogEvent.MATCH_RESUMED, "Match resumed", now)]
        logger.info("match %s resumed", work.match_id)
        return self._finish(match, work, entries, now, check_end=False)

    def terminate(self, match: Match, now: float = 0.0) -> ActionResult:
        """Force-end by tie-break (external_termination)."""
        return self._force_end(match, EndReason.EXTERNAL_TERMINATION, now)

    def expire(self, match: Match, now: float = 0.0) -> ActionResult:
        """Force-end by tie-break because the match ran out of time."""
        return self._force_end(match, EndReason.TIME_LIMIT, now)

    def _force_end(self, match: Match, reason: EndReason, now: float) -> ActionResult:
        error = self._require_status(
            match, MatchStatus.WAITING, MatchStatus.ACTIVE, MatchStatus.PAUSED
        )
        if error:
            return error
        work = match.clone()
        entry = conclude(work, tie_break(work), reason, now)
        logger.info("match %s ended: %s, winner %s", work.match_id, reason.value, work.winner)
        return self._finish(match, work, [entry], now, check_end=False)

    # ------------------------------------------------------------------
    # Shared
    # ------------------------------------------------------------------

    def _require_status(self, match: Match, *allowed: MatchStatus) -> ActionResult | None:
        if match.fault:
            return ActionResult.failure(
                ErrorCode.MATCH_FAULTED, f"Match {match.match_id} halted: {match.fault}"
            )
        if match.status not in allowed:
            return ActionResult.failure(
                ErrorCode.MATCH_INACTIVE,
                f"Match {match.match_id} is {match.status.value}",
            )
        return None

    def _finish(
        self,
        current: Match,
        work: Match,
        entries: list[LogEntry],
        now: float,
        check_end: bool = True,
    ) -> ActionResult:
        """Decide the match, advance the sequencer, check invariants."""
        if check_end:
            verdict = decide(work)
            if verdict is not None:
                entries.append(conclude(work, verdict, EndReason.ELIMINATION, now))
            else:
                step, advanced = sequencer.advance(work, now)
                entries.extend(advanced)
                if step == sequencer.Advance.ROUND_LIMIT:
                    entries.append(conclude(work, tie_break(work), EndReason.ROUND_LIMIT, now))
                elif now - work.created_at >= work.rules.match_time_limit:
                    entries.append(conclude(work, tie_break(work), EndReason.TIME_LIMIT, now))
            if work.is_over:
                logger.info(
                    "match %s ended: %s, winner %s",
                    work.match_id, work.end_reason.value, work.winner,
                )

        work.rng_draws = self.dice.draws
        try:
            check_invariants(work)
        except InvariantViolation as exc:
            logger.error("match %s halted: %s", current.match_id, exc)
            current.fault = str(exc)
            return ActionResult.failure(ErrorCode.MATCH_FAULTED, str(exc))

        return ActionResult.success_with_state(work, entries)


def check_invariants(match: Match) -> None:
    """Raise InvariantViolation if the match is internally inconsistent."""
    registry = Registry(match)
    for member in registry.members():
        if not 0 <= member.hp <= member.max_hp:
            raise InvariantViolation(
                f"{member.member_id} hp {member.hp} outside [0, {member.max_hp}]"
            )
        for kind, count in member.items.items():
            if count < 0:
                raise InvariantViolation(f"{member.member_id} has {count} {kind}")

    if (match.winner is not None) != (match.status == MatchStatus.ENDED):
        raise InvariantViolation(
            f"winner {match.winner!r} inconsistent with status {match.status.value}"
        )
    if match.active_index not in (0, 1):
        raise InvariantViolation(f"active_index {match.active_index}")
    if sorted(match.side_order) != sorted(match.declared_order):
        raise InvariantViolation(f"side_order {match.side_order} does not match sides")
    if not 1 <= match.round <= match.rules.max_rounds:
        raise InvariantViolation(f"round {match.round} outside [1, {match.rules.max_rounds}]")
    for side_id, acted in match.acted.items():
        member_ids = {m.member_id for m in registry.side(side_id).members}
        if not acted <= member_ids:
            raise InvariantViolation(f"acted set for {side_id} names outsiders")


def apply_action(
    match: Match,
    dice: Dice,
    member_id: str,
    action: Action,
    now: float = 0.0,
) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates an ActionResolver and applies the action.
    """
    return ActionResolver(dice=dice).apply(match, member_id, action, now)


def replay(
    setup: MatchSetup,
    seed: int,
    actions: Iterable[tuple[str, Action]],
    rules: RulesConfig | None = None,
    now: float = 0.0,
) -> Match:
    """
    Rebuild a match from its roster, seed and accepted actions.

    Rejected actions are skipped just as they were when first submitted,
    so feeding the full submission log reproduces the same state.
    """
    resolver = ActionResolver(dice=SeededDice(seed))
    match = create_match(setup, rules=rules, now=now, seed=seed)
    result = resolver.start(match, now)
    match = result.new_state
    for member_id, action in actions:
        result = resolver.apply(match, member_id, action, now)
        if result.ok:
            match = result.new_state
    return match
