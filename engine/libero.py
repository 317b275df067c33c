"""
Libero Automation - swaps the libero in and out for its designated
replacements whenever court composition or serve possession changes.

The libero is a back-row specialist: it may never stand in slots 2, 3 or 4.
Every pass ends with that check, and a pass that would break it is rejected
as a whole.
"""

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from models.court import CourtState, RotationSlot
from models.libero import LiberoConfig, LiberoSwap
from models.match import Advisory
from models.player import Player, TeamId
from engine.rotation import rotated_slot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiberoResult:
    """Outcome of one automation pass for one team."""
    court: CourtState
    swap: LiberoSwap
    advisory: Optional[Advisory] = None


def libero_ids(roster: Iterable[Player], config: LiberoConfig) -> set[str]:
    """Everyone who counts as a libero: the configured one plus any L on the roster."""
    ids = {p.id for p in roster if p.is_libero}
    if config.libero_id is not None:
        ids.add(config.libero_id)
    return ids


def find_front_row_libero(court: CourtState, roster: Iterable[Player],
                          config: LiberoConfig) -> Optional[RotationSlot]:
    """Return the front-row slot a libero illegally occupies, if any."""
    liberos = libero_ids(roster, config)
    for slot, player_id in court.items():
        if slot.is_front_row and player_id in liberos:
            return slot
    return None


def apply_libero_automation(
    team: TeamId,
    court: CourtState,
    roster: Iterable[Player],
    config: LiberoConfig,
    swap: LiberoSwap,
    serving_team: TeamId,
    rotation: Optional[bool] = None,
) -> LiberoResult:
    """
    Run one libero automation pass.

    Args:
        team: Team being evaluated
        court: That team's court, already rotated if a rotation just happened
        roster: The team's players
        config: The team's libero configuration
        swap: The swap record as it stood before this pass
        serving_team: Team in possession of serve after the triggering change
        rotation: True/False if the court was just rotated forward/backward,
            None if no rotation took place

    Returns:
        LiberoResult with the new court, swap record and optional advisory
    """
    roster = tuple(roster)
    notes: list[str] = []

    # 1. Nothing to automate
    if not config.enabled or not config.is_complete:
        advisory = None
        if config.enabled:
            advisory = Advisory.info(
                f"Team {team.value}: choose a libero and at least one replacement "
                f"to enable automatic libero swaps"
            )
        return _checked(team, court, swap, court, LiberoSwap.inactive(), roster, config, advisory)

    next_court, next_swap = court, swap

    if next_swap.active:
        # 2. Follow the libero through the rotation
        if rotation is not None and next_swap.slot is not None:
            next_swap = replace(next_swap, slot=rotated_slot(next_swap.slot, rotation))

        occupant = next_court[next_swap.slot] if next_swap.slot is not None else None

        # 3. Libero reached the front row: replacement comes back unconditionally
        if occupant == next_swap.libero_id and next_swap.slot.is_front_row:
            next_court = next_court.with_player(next_swap.slot, next_swap.replaced_id)
            notes.append(
                f"Libero {_describe(roster, next_swap.libero_id)} leaves the front row; "
                f"{_describe(roster, next_swap.replaced_id)} returns to {next_swap.slot.label}"
            )
            next_swap = LiberoSwap.inactive()

        # 4. Court drifted away from the record
        elif occupant != next_swap.libero_id:
            next_court, next_swap = _reconcile(next_court, next_swap)

    # 5. A serving team keeps its replacement in to serve
    # 6. Otherwise swap the libero in for the first back-row replacement
    if not next_swap.active and serving_team is not team:
        if not next_court.contains(config.libero_id):
            for candidate in config.replacement_ids:
                slot = next_court.slot_of(candidate)
                if slot is not None and slot.is_back_row:
                    next_court = next_court.with_player(slot, config.libero_id)
                    next_swap = LiberoSwap.start(slot, config.libero_id, candidate)
                    notes.append(
                        f"Libero {_describe(roster, config.libero_id)} replaces "
                        f"{_describe(roster, candidate)} in {slot.label}"
                    )
                    break

    advisory = Advisory.info(f"Team {team.value}: " + "; ".join(notes)) if notes else None
    return _checked(team, court, swap, next_court, next_swap, roster, config, advisory)


def release_swap(court: CourtState, swap: LiberoSwap) -> CourtState:
    """Undo an active swap on the court, putting the replaced player back."""
    if not swap.active or swap.slot is None:
        return court
    if court[swap.slot] == swap.libero_id and not court.contains(swap.replaced_id):
        return court.with_player(swap.slot, swap.replaced_id)
    return court


def _reconcile(court: CourtState, swap: LiberoSwap) -> tuple[CourtState, LiberoSwap]:
    """Try to bring a drifted swap record back in line with the court."""
    if court.contains(swap.replaced_id):
        return court, LiberoSwap.inactive()

    where = court.slot_of(swap.libero_id)
    if where is not None and where.is_back_row:
        return court, replace(swap, slot=where)

    if where is None and swap.slot is not None and swap.slot.is_back_row and court[swap.slot] is None:
        return court.with_player(swap.slot, swap.libero_id), swap

    logger.debug("Dropping libero swap record that no longer matches the court")
    return court, LiberoSwap.inactive()


def _checked(team: TeamId, court_in: CourtState, swap_in: LiberoSwap,
             court_out: CourtState, swap_out: LiberoSwap, roster: tuple[Player, ...],
             config: LiberoConfig, advisory: Optional[Advisory]) -> LiberoResult:
    """Reject any pass whose court leaves a libero in the front row."""
    slot = find_front_row_libero(court_out, roster, config)
    if slot is None:
        return LiberoResult(court_out, swap_out, advisory)

    error = Advisory.error(
        f"Team {team.value}: a libero cannot play in the front row ({slot.label})"
    )
    if court_out != court_in:
        return LiberoResult(court_in, swap_in, error)
    return LiberoResult(court_out, swap_out, error)


def _describe(roster: tuple[Player, ...], player_id: Optional[str]) -> str:
    for p in roster:
        if p.id == player_id:
            return f"#{p.jersey_number}" if p.jersey_number else (p.name or p.id)
    return str(player_id)
