"""
SuperInt - Simulation core for a turn-based AI research strategy game.

A deterministic, event-driven state machine that provides:
- An immutable state tree with pure slice reducers
- Change notification and save/load
- A prerequisite/exclusion research tree with per-turn progress
- A resource economy with affordability checks and derived effects
"""

__version__ = "0.1.0"
