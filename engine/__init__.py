"""
VolleyTrack Match Engine

Core match rules for the volleyball tracker: rotation, libero automation,
rally legality, scoring and statistics.
Only MatchEngine depends on Qt; everything else is pure Python.
"""

from engine.rules import RulesEngine
from engine.rally import RallyState, next_state, is_action_allowed
from engine.rotation import rotate_forward, rotate_backward, rotate_for_side
from engine.libero import LiberoResult, apply_libero_automation
from engine.stats import PlayerStats, StatCategory, TeamTotals, compute_stats, team_totals
from engine.match_engine import MatchEngine, ScoreState

__all__ = [
    "RulesEngine",
    "RallyState",
    "next_state",
    "is_action_allowed",
    "rotate_forward",
    "rotate_backward",
    "rotate_for_side",
    "LiberoResult",
    "apply_libero_automation",
    "PlayerStats",
    "StatCategory",
    "TeamTotals",
    "compute_stats",
    "team_totals",
    "MatchEngine",
    "ScoreState",
]
