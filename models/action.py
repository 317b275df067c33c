"""
Rally actions: skills, structured outcomes and the logged ActionEvent.

Raw skill/outcome labels coming from the presentation layer are parsed once
here; the engine only ever works with the structured values.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from models.court import CourtState, RotationSlot
from models.libero import LiberoSwap
from models.player import TeamId


class Skill(enum.Enum):
    """Touches that can be logged for a player."""
    SERVE = "SERVE"
    RECEIVE = "RECEIVE"
    SET = "SET"
    ATTACK = "ATTACK"
    BLOCK = "BLOCK"
    DIG = "DIG"


_SKILL_ALIASES = {
    "SERVE": Skill.SERVE,
    "SERVICE": Skill.SERVE,
    "RECEIVE": Skill.RECEIVE,
    "RECEPTION": Skill.RECEIVE,
    "PASS": Skill.RECEIVE,
    "SET": Skill.SET,
    "ATTACK": Skill.ATTACK,
    "SPIKE": Skill.ATTACK,
    "HIT": Skill.ATTACK,
    "BLOCK": Skill.BLOCK,
    "DIG": Skill.DIG,
}


def parse_skill(label) -> Skill:
    """Map a raw skill label onto a Skill. Raises ValueError if unknown."""
    if isinstance(label, Skill):
        return label
    key = _normalize_label(label)
    try:
        return _SKILL_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown skill: {label!r}") from None


class OutcomeKind(enum.Enum):
    """Whether an outcome wins the rally, loses it, or keeps it going."""
    WIN = "win"
    ERROR = "error"
    NEUTRAL = "neutral"


class OutcomeTag(enum.Enum):
    """Skill-specific qualifier of an outcome."""
    ACE = "ACE"
    ACE_FORCED = "ACE_FORCED"      # ace that forced a reception error
    KILL = "KILL"
    KILL_FORCED = "KILL_FORCED"    # kill off an opponent touch (tool/shank)
    BLOCK_POINT = "BLOCK_POINT"
    POINT = "POINT"
    EXCELLENT = "EXCELLENT"
    ATTEMPT = "ATTEMPT"
    POOR = "POOR"
    OVERPASS = "OVERPASS"
    ERROR = "ERROR"
    FAULT = "FAULT"
    OUT = "OUT"
    NET = "NET"
    BLOCKED = "BLOCKED"


# Forced outcomes are neutral on the event itself; the opponent's error,
# logged next, carries the point.
_TAG_KINDS = {
    OutcomeTag.ACE: OutcomeKind.WIN,
    OutcomeTag.ACE_FORCED: OutcomeKind.NEUTRAL,
    OutcomeTag.KILL: OutcomeKind.WIN,
    OutcomeTag.KILL_FORCED: OutcomeKind.NEUTRAL,
    OutcomeTag.BLOCK_POINT: OutcomeKind.WIN,
    OutcomeTag.POINT: OutcomeKind.WIN,
    OutcomeTag.EXCELLENT: OutcomeKind.NEUTRAL,
    OutcomeTag.ATTEMPT: OutcomeKind.NEUTRAL,
    OutcomeTag.POOR: OutcomeKind.NEUTRAL,
    OutcomeTag.OVERPASS: OutcomeKind.NEUTRAL,
    OutcomeTag.ERROR: OutcomeKind.ERROR,
    OutcomeTag.FAULT: OutcomeKind.ERROR,
    OutcomeTag.OUT: OutcomeKind.ERROR,
    OutcomeTag.NET: OutcomeKind.ERROR,
    OutcomeTag.BLOCKED: OutcomeKind.ERROR,
}

_OUTCOME_ALIASES = {
    "ACE": OutcomeTag.ACE,
    "ACE_FORCED": OutcomeTag.ACE_FORCED,
    "ACE_ERROR": OutcomeTag.ACE_FORCED,
    "KILL": OutcomeTag.KILL,
    "KILL_FORCED": OutcomeTag.KILL_FORCED,
    "KILL_ERROR": OutcomeTag.KILL_FORCED,
    "BLOCK_POINT": OutcomeTag.BLOCK_POINT,
    "STUFF": OutcomeTag.BLOCK_POINT,
    "KILL_BLOCK": OutcomeTag.BLOCK_POINT,
    "POINT": OutcomeTag.POINT,
    "WIN": OutcomeTag.POINT,
    "EXCELLENT": OutcomeTag.EXCELLENT,
    "PERFECT": OutcomeTag.EXCELLENT,
    "GOOD": OutcomeTag.EXCELLENT,
    "ATTEMPT": OutcomeTag.ATTEMPT,
    "SUCCESS": OutcomeTag.ATTEMPT,
    "IN_PLAY": OutcomeTag.ATTEMPT,
    "TOUCH": OutcomeTag.ATTEMPT,
    "SLASH": OutcomeTag.ATTEMPT,
    "POOR": OutcomeTag.POOR,
    "OVERPASS": OutcomeTag.OVERPASS,
    "ERROR": OutcomeTag.ERROR,
    "SERVE_ERROR": OutcomeTag.ERROR,
    "SERVICE_ERROR": OutcomeTag.ERROR,
    "RECEIVE_ERROR": OutcomeTag.ERROR,
    "ATTACK_ERROR": OutcomeTag.ERROR,
    "BLOCK_ERROR": OutcomeTag.ERROR,
    "DIG_ERROR": OutcomeTag.ERROR,
    "SET_ERROR": OutcomeTag.ERROR,
    "FAULT": OutcomeTag.FAULT,
    "OUT": OutcomeTag.OUT,
    "NET": OutcomeTag.NET,
    "BLOCKED": OutcomeTag.BLOCKED,
}


@dataclass(frozen=True)
class Outcome:
    """Structured outcome: a rally-level kind plus its qualifier."""
    tag: OutcomeTag

    @property
    def kind(self) -> OutcomeKind:
        return _TAG_KINDS[self.tag]

    @property
    def is_error(self) -> bool:
        return self.kind is OutcomeKind.ERROR

    @property
    def is_win(self) -> bool:
        return self.kind is OutcomeKind.WIN

    @property
    def ends_rally(self) -> bool:
        return self.kind is not OutcomeKind.NEUTRAL

    @property
    def label(self) -> str:
        return self.tag.value

    def __str__(self) -> str:
        return self.tag.value


def parse_outcome(label) -> Outcome:
    """Map a raw outcome label onto an Outcome. Raises ValueError if unknown."""
    if isinstance(label, Outcome):
        return label
    if isinstance(label, OutcomeTag):
        return Outcome(label)
    key = _normalize_label(label)
    try:
        return Outcome(_OUTCOME_ALIASES[key])
    except KeyError:
        raise ValueError(f"Unknown outcome: {label!r}") from None


def _normalize_label(label) -> str:
    return str(label or "").strip().upper().replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class MatchSnapshot:
    """The slice of match state an event needs to reverse itself."""
    score_a: int
    score_b: int
    serving_team: TeamId
    court_a: CourtState
    court_b: CourtState
    swap_a: LiberoSwap
    swap_b: LiberoSwap
    rally_number: int
    service_run: int


@dataclass(frozen=True)
class ActionEvent:
    """
    One logged rally action.

    Created only by the logging transition and never mutated. `snapshot`
    holds the match state immediately before the action was applied.
    """
    team: TeamId
    player_id: str
    slot: RotationSlot
    skill: Skill
    outcome: Outcome
    snapshot: MatchSnapshot
    point_winner: Optional[TeamId] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        """Flat summary used for signal payloads."""
        return {
            "id": self.id,
            "team": self.team.value,
            "player_id": self.player_id,
            "slot": int(self.slot),
            "skill": self.skill.value,
            "outcome": self.outcome.label,
            "point_winner": self.point_winner.value if self.point_winner else None,
            "timestamp": self.timestamp.isoformat(),
        }
