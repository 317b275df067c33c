"""
Match aggregate, set rules and archived set records.
"""

import enum
import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Mapping, Optional

from models.action import ActionEvent, MatchSnapshot
from models.court import CourtSide, CourtState
from models.libero import LiberoConfig, LiberoSwap
from models.player import Player, TeamId

if TYPE_CHECKING:
    from engine.stats import PlayerStats


# Match lengths the scoresheet supports
VALID_BEST_OF = frozenset({1, 3, 5, 7})


@dataclass(frozen=True)
class SetRules:
    """
    Match format.

    - best_of: total sets available (odd)
    - points_to_win: threshold for a regular set
    - deciding_set_points: threshold for the final possible set
    - win_by: minimum winning margin
    - reset_courts_between_sets: clear both courts when a set closes
    """
    best_of: int = 5
    points_to_win: int = 25
    deciding_set_points: int = 15
    win_by: int = 2
    reset_courts_between_sets: bool = False

    @property
    def sets_to_win(self) -> int:
        return math.ceil(self.best_of / 2)


class Severity(enum.Enum):
    """Advisory severity levels."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_SEVERITY_RANK = {Severity.INFO: 0, Severity.WARN: 1, Severity.ERROR: 2}


@dataclass(frozen=True)
class Advisory:
    """Human-readable notice returned alongside a transition."""
    severity: Severity
    message: str

    @classmethod
    def info(cls, message: str) -> "Advisory":
        return cls(Severity.INFO, message)

    @classmethod
    def warn(cls, message: str) -> "Advisory":
        return cls(Severity.WARN, message)

    @classmethod
    def error(cls, message: str) -> "Advisory":
        return cls(Severity.ERROR, message)

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self.severity]


@dataclass(frozen=True)
class SetRecord:
    """An archived, completed set. Events are most-recent-first."""
    set_number: int
    winner: TeamId
    score_a: int
    score_b: int
    events: tuple[ActionEvent, ...] = ()
    per_player: Mapping[str, "PlayerStats"] = field(default_factory=dict)


@dataclass(frozen=True)
class MatchState:
    """
    The whole match aggregate.

    Every engine transition takes a MatchState and returns a new one; nothing
    in here is mutated in place.
    """
    players: tuple[Player, ...] = ()
    court_a: CourtState = field(default_factory=CourtState.empty)
    court_b: CourtState = field(default_factory=CourtState.empty)
    left_team: TeamId = TeamId.A
    score_a: int = 0
    score_b: int = 0
    serving_team: TeamId = TeamId.A
    set_number: int = 1
    sets_won_a: int = 0
    sets_won_b: int = 0
    events: tuple[ActionEvent, ...] = ()
    saved_sets: tuple[SetRecord, ...] = ()
    libero_a: LiberoConfig = field(default_factory=LiberoConfig)
    libero_b: LiberoConfig = field(default_factory=LiberoConfig)
    swap_a: LiberoSwap = field(default_factory=LiberoSwap.inactive)
    swap_b: LiberoSwap = field(default_factory=LiberoSwap.inactive)
    rally_number: int = 0
    service_run: int = 0
    rules: SetRules = field(default_factory=SetRules)

    # ============ Per-team accessors ============

    def court(self, team: TeamId) -> CourtState:
        return self.court_a if team is TeamId.A else self.court_b

    def with_court(self, team: TeamId, court: CourtState) -> "MatchState":
        return replace(self, **{"court_a" if team is TeamId.A else "court_b": court})

    def score(self, team: TeamId) -> int:
        return self.score_a if team is TeamId.A else self.score_b

    def with_score(self, team: TeamId, value: int) -> "MatchState":
        return replace(self, **{"score_a" if team is TeamId.A else "score_b": value})

    def sets_won(self, team: TeamId) -> int:
        return self.sets_won_a if team is TeamId.A else self.sets_won_b

    def with_sets_won(self, team: TeamId, value: int) -> "MatchState":
        return replace(self, **{"sets_won_a" if team is TeamId.A else "sets_won_b": value})

    def libero_config(self, team: TeamId) -> LiberoConfig:
        return self.libero_a if team is TeamId.A else self.libero_b

    def with_libero_config(self, team: TeamId, config: LiberoConfig) -> "MatchState":
        return replace(self, **{"libero_a" if team is TeamId.A else "libero_b": config})

    def swap(self, team: TeamId) -> LiberoSwap:
        return self.swap_a if team is TeamId.A else self.swap_b

    def with_swap(self, team: TeamId, swap: LiberoSwap) -> "MatchState":
        return replace(self, **{"swap_a" if team is TeamId.A else "swap_b": swap})

    def side_of(self, team: TeamId) -> CourtSide:
        return CourtSide.LEFT if team is self.left_team else CourtSide.RIGHT

    # ============ Roster helpers ============

    def roster(self, team: TeamId) -> tuple[Player, ...]:
        return tuple(p for p in self.players if p.team is team)

    def player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    @property
    def last_event(self) -> Optional[ActionEvent]:
        return self.events[0] if self.events else None

    # ============ Undo snapshots ============

    def snapshot(self) -> MatchSnapshot:
        return MatchSnapshot(
            score_a=self.score_a,
            score_b=self.score_b,
            serving_team=self.serving_team,
            court_a=self.court_a,
            court_b=self.court_b,
            swap_a=self.swap_a,
            swap_b=self.swap_b,
            rally_number=self.rally_number,
            service_run=self.service_run,
        )

    def restored(self, snapshot: MatchSnapshot) -> "MatchState":
        return replace(
            self,
            score_a=snapshot.score_a,
            score_b=snapshot.score_b,
            serving_team=snapshot.serving_team,
            court_a=snapshot.court_a,
            court_b=snapshot.court_b,
            swap_a=snapshot.swap_a,
            swap_b=snapshot.swap_b,
            rally_number=snapshot.rally_number,
            service_run=snapshot.service_run,
        )


@dataclass(frozen=True)
class Transition:
    """
    Result of an engine operation: the next state plus any advisories.

    When an operation is rejected or ignored, `state` is the unchanged input.
    """
    state: MatchState
    advisories: tuple[Advisory, ...] = ()
    event: Optional[ActionEvent] = None

    @property
    def advisory(self) -> Optional[Advisory]:
        """The most severe advisory, if any."""
        if not self.advisories:
            return None
        return max(self.advisories, key=lambda a: a.rank)

    @property
    def rejected(self) -> bool:
        return any(a.severity is Severity.ERROR for a in self.advisories)
