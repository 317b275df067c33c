"""
Rotation Engine - moves a team's six occupants around the serving order.

Forward rotation is the real volleyball rotation a team makes when it wins
serve: the player in slot 2 goes back to serve from slot 1, slot 1 moves to
slot 6, and so on around the cycle 1 -> 6 -> 5 -> 4 -> 3 -> 2 -> 1.
"""

from models.court import ROTATION_ORDER, CourtSide, CourtState, RotationSlot


def rotate_forward(court: CourtState) -> CourtState:
    """Move every occupant one position along the serving order."""
    current = [court[slot] for slot in ROTATION_ORDER]
    current.insert(0, current.pop())
    return CourtState.from_mapping(dict(zip(ROTATION_ORDER, current)))


def rotate_backward(court: CourtState) -> CourtState:
    """Exact inverse of rotate_forward."""
    current = [court[slot] for slot in ROTATION_ORDER]
    current.append(current.pop(0))
    return CourtState.from_mapping(dict(zip(ROTATION_ORDER, current)))


def rotate(court: CourtState, forward: bool = True) -> CourtState:
    return rotate_forward(court) if forward else rotate_backward(court)


def rotated_slot(slot: RotationSlot, forward: bool = True) -> RotationSlot:
    """
    Where the occupant of `slot` ends up after one rotation.

    Uses the same permutation as rotate_forward/rotate_backward, so a tracked
    slot always follows its player.
    """
    idx = ROTATION_ORDER.index(RotationSlot(slot))
    step = 1 if forward else -1
    return ROTATION_ORDER[(idx + step) % len(ROTATION_ORDER)]


def is_forward_for_side(side: CourtSide, clockwise: bool = True) -> bool:
    """
    Translate an on-screen rotation direction into the abstract cycle.

    The right half of the court is drawn mirrored, so a clockwise move there
    is a backward rotation of the serving order.
    """
    if side is CourtSide.LEFT:
        return clockwise
    return not clockwise


def rotate_for_side(court: CourtState, side: CourtSide, clockwise: bool = True) -> CourtState:
    """Rotate a court in the direction the user sees on its half."""
    return rotate(court, forward=is_forward_for_side(side, clockwise))
