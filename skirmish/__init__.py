"""
Skirmish - Turn-Based Combat Engine

A deterministic engine for two-sided, turn-based combat matches.
The engine provides:
- Initiative, rounds and phases
- Action resolution (attack, defend, dodge, items, pass)
- Timed status effects
- Turn timeouts and a match time limit
- A winner for every match, never a draw
"""

__version__ = "0.1.0"
