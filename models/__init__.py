"""
VolleyTrack Domain Models

Immutable value types for rosters, courts, rally actions and the match
aggregate.
"""

from models.player import Player, Position, RoleBucket, TeamId
from models.court import CourtSide, CourtState, RotationSlot
from models.libero import LiberoConfig, LiberoSwap
from models.action import ActionEvent, MatchSnapshot, Outcome, OutcomeKind, OutcomeTag, Skill
from models.match import Advisory, MatchState, SetRecord, SetRules, Severity, Transition

__all__ = [
    "Player",
    "Position",
    "RoleBucket",
    "TeamId",
    "CourtSide",
    "CourtState",
    "RotationSlot",
    "LiberoConfig",
    "LiberoSwap",
    "ActionEvent",
    "MatchSnapshot",
    "Outcome",
    "OutcomeKind",
    "OutcomeTag",
    "Skill",
    "Advisory",
    "MatchState",
    "SetRecord",
    "SetRules",
    "Severity",
    "Transition",
]
