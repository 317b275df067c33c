"""
Court model: the six rotation slots of one team's half.
"""

import enum
from dataclasses import dataclass
from typing import Iterator, Optional


class RotationSlot(enum.IntEnum):
    """Standard rotation numbering, 1 = server's position."""
    BACK_RIGHT = 1
    FRONT_RIGHT = 2
    FRONT_MIDDLE = 3
    FRONT_LEFT = 4
    BACK_LEFT = 5
    BACK_MIDDLE = 6

    @property
    def label(self) -> str:
        return SLOT_LABELS[self]

    @property
    def is_front_row(self) -> bool:
        return self in FRONT_ROW

    @property
    def is_back_row(self) -> bool:
        return self in BACK_ROW


SLOT_LABELS = {
    RotationSlot.BACK_RIGHT: "BR",
    RotationSlot.FRONT_RIGHT: "FR",
    RotationSlot.FRONT_MIDDLE: "FM",
    RotationSlot.FRONT_LEFT: "FL",
    RotationSlot.BACK_LEFT: "BL",
    RotationSlot.BACK_MIDDLE: "BM",
}

FRONT_ROW = frozenset({RotationSlot.FRONT_RIGHT, RotationSlot.FRONT_MIDDLE, RotationSlot.FRONT_LEFT})
BACK_ROW = frozenset({RotationSlot.BACK_RIGHT, RotationSlot.BACK_LEFT, RotationSlot.BACK_MIDDLE})

# Serving order around the court: 1 -> 6 -> 5 -> 4 -> 3 -> 2 -> 1
ROTATION_ORDER: tuple[RotationSlot, ...] = (
    RotationSlot.BACK_RIGHT,
    RotationSlot.BACK_MIDDLE,
    RotationSlot.BACK_LEFT,
    RotationSlot.FRONT_LEFT,
    RotationSlot.FRONT_MIDDLE,
    RotationSlot.FRONT_RIGHT,
)

SERVING_SLOT = RotationSlot.BACK_RIGHT


class CourtSide(enum.Enum):
    """Which half of the court a team is drawn on."""
    LEFT = "left"
    RIGHT = "right"

    @property
    def other(self) -> "CourtSide":
        return CourtSide.RIGHT if self is CourtSide.LEFT else CourtSide.LEFT


@dataclass(frozen=True)
class CourtState:
    """
    Immutable slot -> player id mapping for one team.

    Stored as a 6-tuple indexed by slot number - 1. A player id appears in at
    most one slot; every mutator returns a new CourtState.
    """
    occupants: tuple[Optional[str], ...] = (None,) * 6

    def __post_init__(self):
        if len(self.occupants) != 6:
            raise ValueError("A court has exactly 6 slots")

    @classmethod
    def empty(cls) -> "CourtState":
        return cls()

    @classmethod
    def from_mapping(cls, mapping: dict) -> "CourtState":
        """Build a court from a {slot: player_id} mapping."""
        occupants = [None] * 6
        for slot, player_id in mapping.items():
            occupants[RotationSlot(int(slot)) - 1] = player_id or None
        return cls(tuple(occupants))

    def get(self, slot: RotationSlot) -> Optional[str]:
        return self.occupants[RotationSlot(slot) - 1]

    def __getitem__(self, slot: RotationSlot) -> Optional[str]:
        return self.get(slot)

    def items(self) -> Iterator[tuple[RotationSlot, Optional[str]]]:
        for slot in RotationSlot:
            yield slot, self.get(slot)

    def as_mapping(self) -> dict[int, Optional[str]]:
        return {int(slot): player_id for slot, player_id in self.items()}

    def with_player(self, slot: RotationSlot, player_id: Optional[str]) -> "CourtState":
        occupants = list(self.occupants)
        occupants[RotationSlot(slot) - 1] = player_id
        return CourtState(tuple(occupants))

    def slot_of(self, player_id: str) -> Optional[RotationSlot]:
        """Return the slot a player currently occupies, if any."""
        for slot, occupant in self.items():
            if occupant is not None and occupant == player_id:
                return slot
        return None

    def contains(self, player_id: str) -> bool:
        return self.slot_of(player_id) is not None

    def player_ids(self) -> list[str]:
        """Ids currently on court, in slot order."""
        return [p for p in self.occupants if p is not None]

    @property
    def is_empty(self) -> bool:
        return not self.player_ids()
