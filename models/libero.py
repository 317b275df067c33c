"""
Libero configuration and the derived swap record.
"""

from dataclasses import dataclass
from typing import Optional

from models.court import RotationSlot


MAX_REPLACEMENTS = 2


@dataclass(frozen=True)
class LiberoConfig:
    """
    User-authored libero setup for one team.

    Attributes:
        enabled: Whether automatic libero substitution runs at all
        libero_id: The designated libero
        replacement_ids: Players (normally middle blockers) the libero
            replaces in the back row, in priority order
    """
    enabled: bool = False
    libero_id: Optional[str] = None
    replacement_ids: tuple[str, ...] = ()

    def __post_init__(self):
        if len(self.replacement_ids) > MAX_REPLACEMENTS:
            raise ValueError(f"At most {MAX_REPLACEMENTS} libero replacements are allowed")

    @property
    def is_complete(self) -> bool:
        return self.libero_id is not None and len(self.replacement_ids) > 0


@dataclass(frozen=True)
class LiberoSwap:
    """
    An automatic libero-for-replacement swap currently in effect.

    While active, the libero stands in `slot` (always a back-row slot) and
    `replaced_id` is on the bench waiting to return.
    """
    active: bool = False
    slot: Optional[RotationSlot] = None
    libero_id: Optional[str] = None
    replaced_id: Optional[str] = None

    @classmethod
    def inactive(cls) -> "LiberoSwap":
        return cls()

    @classmethod
    def start(cls, slot: RotationSlot, libero_id: str, replaced_id: str) -> "LiberoSwap":
        return cls(active=True, slot=slot, libero_id=libero_id, replaced_id=replaced_id)
