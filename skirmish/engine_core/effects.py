"""
Status Effect Ledger - Timed modifiers on combatants.

Effects never touch base stats; effective_stats() derives a modified copy
each time it is needed. An effect loses one tick at each of its owner's
own action boundaries and is pruned when it reaches zero.
"""

from __future__ import annotations

from .state import Combatant, Stats, StatusEffect, EffectKind
from ..config import STAT_NAMES


def effective_stats(combatant: Combatant) -> Stats:
    """Base stats with active buffs added and debuffs subtracted (floored at 0)."""
    values = combatant.stats.to_dict()
    for effect in combatant.effects:
        if effect.stat not in STAT_NAMES:
            continue
        if effect.kind == EffectKind.STAT_BUFF:
            values[effect.stat] += int(effect.magnitude)
        elif effect.kind == EffectKind.STAT_DEBUFF:
            values[effect.stat] = max(0, values[effect.stat] - int(effect.magnitude))
    return Stats(**values)


def tick(combatant: Combatant) -> list[StatusEffect]:
    """Advance every effect by one tick; returns the ones that expired."""
    kept: list[StatusEffect] = []
    expired: list[StatusEffect] = []
    for effect in combatant.effects:
        effect.remaining -= 1
        if effect.remaining > 0:
            kept.append(effect)
        else:
            expired.append(effect)
    combatant.effects = kept
    return expired


def find(combatant: Combatant, kind: EffectKind) -> StatusEffect | None:
    for effect in combatant.effects:
        if effect.kind == kind:
            return effect
    return None


def remove(combatant: Combatant, kind: EffectKind) -> StatusEffect | None:
    """Detach the first effect of a kind and return it."""
    effect = find(combatant, kind)
    if effect is not None:
        combatant.effects.remove(effect)
    return effect


def attach(
    combatant: Combatant,
    effect: StatusEffect,
    replace_source: bool = False,
) -> StatusEffect:
    """
    Attach an effect.

    Stances (defending, dodging) always replace a prior effect of the same
    kind. With replace_source, an effect from the same source on the same
    stat is replaced instead of stacked.
    """
    if effect.kind in (EffectKind.DEFENDING, EffectKind.DODGING):
        remove(combatant, effect.kind)
    elif replace_source:
        combatant.effects = [
            e for e in combatant.effects
            if not (e.source == effect.source and e.stat == effect.stat)
        ]
    combatant.effects.append(effect)
    return effect
