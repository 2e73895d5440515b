"""Pedal Elo.

Crowd-sourced pairwise ranking of guitar effects pedals with an Elo
rating engine and a spread-aware matchmaker.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
