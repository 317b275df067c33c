"""
Player model for volleyball rosters.
"""

import enum
import uuid
from dataclasses import dataclass, field


class TeamId(enum.Enum):
    """The two teams on the scoresheet."""
    A = "A"
    B = "B"

    @property
    def opponent(self) -> "TeamId":
        return TeamId.B if self is TeamId.A else TeamId.A


class Position(enum.Enum):
    """Playing positions recognised by the tracker."""
    OUTSIDE_HITTER = "OH"
    OPPOSITE = "OPP"
    MIDDLE_BLOCKER = "MB"
    SETTER = "S"
    LIBERO = "L"

    @classmethod
    def from_label(cls, label: str) -> "Position":
        """
        Normalise a free-form position label.

        Wing spikers and anything unrecognised are treated as outside hitters.
        """
        key = str(label or "").strip().upper().replace("-", "_").replace(" ", "_")
        return _POSITION_ALIASES.get(key, cls.OUTSIDE_HITTER)


_POSITION_ALIASES = {
    "OH": Position.OUTSIDE_HITTER,
    "WS": Position.OUTSIDE_HITTER,
    "W": Position.OUTSIDE_HITTER,
    "WINGER": Position.OUTSIDE_HITTER,
    "WINGERS": Position.OUTSIDE_HITTER,
    "OUTSIDE": Position.OUTSIDE_HITTER,
    "OUTSIDE_HITTER": Position.OUTSIDE_HITTER,
    "OPP": Position.OPPOSITE,
    "OP": Position.OPPOSITE,
    "OPPOSITE": Position.OPPOSITE,
    "RIGHT_SIDE": Position.OPPOSITE,
    "RS": Position.OPPOSITE,
    "MB": Position.MIDDLE_BLOCKER,
    "MIDDLE": Position.MIDDLE_BLOCKER,
    "MIDDLE_BLOCKER": Position.MIDDLE_BLOCKER,
    "S": Position.SETTER,
    "SETTER": Position.SETTER,
    "L": Position.LIBERO,
    "LIBERO": Position.LIBERO,
}


class RoleBucket(enum.Enum):
    """Rating buckets used for the player-of-the-game weighting."""
    WINGER = "winger"
    MIDDLE = "middle"
    LIBERO = "libero"
    SETTER = "setter"

    @classmethod
    def for_position(cls, position: Position) -> "RoleBucket":
        if position is Position.MIDDLE_BLOCKER:
            return cls.MIDDLE
        if position is Position.LIBERO:
            return cls.LIBERO
        if position is Position.SETTER:
            return cls.SETTER
        return cls.WINGER


@dataclass(frozen=True)
class Player:
    """
    A rostered player.

    The id is assigned once at creation and never changes; roster edits
    produce a new Player with the same id.
    """
    team: TeamId
    name: str
    jersey_number: int
    position: Position
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __repr__(self) -> str:
        return f"<Player(id={self.id!r}, team={self.team.value}, jersey={self.jersey_number})>"

    @property
    def is_libero(self) -> bool:
        return self.position is Position.LIBERO

    @property
    def role(self) -> RoleBucket:
        return RoleBucket.for_position(self.position)

    @classmethod
    def create(cls, team: TeamId, name: str, jersey_number: int = 0,
               position: str = "OH") -> "Player":
        """Factory method that normalises the position label."""
        return cls(
            team=team,
            name=name.strip(),
            jersey_number=jersey_number,
            position=Position.from_label(position),
        )
