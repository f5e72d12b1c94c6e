"""
Skirmish CLI - Command-line interface for the engine.

Usage:
    skirmish simulate [--seed N] [--size N] [--red POLICY] [--blue POLICY]
                      [--ruleset NAME] [--replay-check] [--log]
                                        Play a bot-vs-bot match
    skirmish rulesets                   List rule presets
    skirmish serve [--host H] [--port P]
                                        Run the HTTP API
"""

import argparse
import json
import logging
import random
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Skirmish - Turn-Based Combat Engine",
        prog="skirmish",
    )
    parser.add_argument("--log-level", default="WARNING", help="Process log level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play a bot-vs-bot match")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Dice seed")
    simulate_parser.add_argument("--size", type=int, default=2, help="Members per side")
    simulate_parser.add_argument("--red", default="aggressive", help="Policy for side red")
    simulate_parser.add_argument("--blue", default="random", help="Policy for side blue")
    simulate_parser.add_argument("--ruleset", default="standard", help="Rule preset")
    simulate_parser.add_argument(
        "--replay-check", action="store_true", help="Replay the actions and compare states"
    )
    simulate_parser.add_argument("--log", action="store_true", help="Print the full match log")
    simulate_parser.add_argument("--json", action="store_true", help="Print the final match as JSON")

    # Rulesets command
    subparsers.add_parser("rulesets", help="List rule presets")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "rulesets":
        return cmd_rulesets(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 1


def build_roster(size, rng, match_id=None):
    """Two sides of `size` members with random stats."""
    from .engine_core.setup import MatchSetup, SideSetup, MemberSetup

    sides = []
    for side_id in ("red", "blue"):
        members = [
            MemberSetup(
                member_id=f"{side_id}{i + 1}",
                name=f"{side_id.title()} {i + 1}",
                stats={
                    stat: rng.randint(1, 5)
                    for stat in ("attack", "defense", "agility", "luck")
                },
            )
            for i in range(size)
        ]
        sides.append(SideSetup(side_id=side_id, name=side_id.title(), members=members))
    return MatchSetup(sides=sides, match_id=match_id)


def cmd_simulate(args):
    """Play one match between two bot policies."""
    from .bots import POLICIES, play_match
    from .engine_core import ActionResolver, SeededDice, SetupValidationError, create_match, replay
    from .rulesets import get_ruleset

    seed = args.seed if args.seed is not None else random.randrange(2**31)
    try:
        rules = get_ruleset(args.ruleset)
        policies = {"red": POLICIES[args.red](), "blue": POLICIES[args.blue]()}
    except (ValueError, KeyError) as e:
        print(f"Error: {e}")
        return 1

    setup = build_roster(args.size, random.Random(seed), match_id=f"sim-{seed}")
    try:
        match = create_match(setup, rules=rules, seed=seed)
    except SetupValidationError as e:
        print(f"Error: {e}")
        return 1

    played = play_match(match, ActionResolver(dice=SeededDice(seed)), policies)
    final = played.match

    if args.json:
        print(json.dumps(final.to_dict(), indent=2))
        return 0

    if args.log:
        for entry in final.log:
            print(f"[r{entry.round} p{entry.phase}] {entry.message}")
        print()

    print(f"Seed: {seed}")
    print(f"Winner: {final.winner} ({final.end_reason.value}, decided by {final.decided_by})")
    print(f"Rounds: {final.round}, actions: {played.steps}")
    for side in final.sides:
        hp = ", ".join(f"{m.name} {m.hp}/{m.max_hp}" for m in side.members)
        print(f"  {side.name}: {hp}")

    if args.replay_check:
        replayed = replay(setup, seed, played.actions, rules=rules)
        same = replayed.to_dict() == final.to_dict()
        print(f"Replay identical: {same}")
        if not same:
            return 1
    return 0


def cmd_rulesets(args):
    """List rule presets."""
    from .rulesets import RULESETS

    for name, rules in RULESETS.items():
        print(
            f"{name}: turn {rules.turn_timeout:g}s, {rules.max_rounds} rounds, "
            f"limit {rules.match_time_limit:g}s, crit x{rules.crit_multiplier:g}, "
            f"attack x{rules.damage_attack_factor}"
        )
    return 0


def cmd_serve(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("skirmish.api.app:app", host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main())
