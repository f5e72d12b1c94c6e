"""
Rulesets - Named presets of RulesConfig.
"""

from .presets import RULESETS, STANDARD, QUICK, HARDCORE, get_ruleset

__all__ = [
    "RULESETS",
    "STANDARD",
    "QUICK",
    "HARDCORE",
    "get_ruleset",
]
