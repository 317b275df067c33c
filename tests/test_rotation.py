"""
Unit tests for the rotation engine.
"""

import pytest

from engine.rotation import (
    is_forward_for_side,
    rotate_backward,
    rotate_for_side,
    rotate_forward,
    rotated_slot,
)
from models.court import CourtSide, CourtState, RotationSlot


def full_court() -> CourtState:
    return CourtState.from_mapping({slot: f"p{int(slot)}" for slot in RotationSlot})


class TestRotateForward:
    """Tests for the serving-order rotation."""

    def setup_method(self):
        """Start from a full court where slot n holds pn."""
        self.court = full_court()

    def test_slot_two_moves_to_serve(self):
        """The player in slot 2 should rotate into slot 1."""
        rotated = rotate_forward(self.court)
        assert rotated[RotationSlot.BACK_RIGHT] == "p2"

    def test_server_moves_to_back_middle(self):
        """The server should move from slot 1 to slot 6."""
        rotated = rotate_forward(self.court)
        assert rotated[RotationSlot.BACK_MIDDLE] == "p1"

    def test_full_cycle(self):
        """The remaining occupants should follow 6->5->4->3->2."""
        rotated = rotate_forward(self.court)
        assert rotated[RotationSlot.BACK_LEFT] == "p6"
        assert rotated[RotationSlot.FRONT_LEFT] == "p5"
        assert rotated[RotationSlot.FRONT_MIDDLE] == "p4"
        assert rotated[RotationSlot.FRONT_RIGHT] == "p3"

    def test_six_rotations_is_identity(self):
        """Six forward rotations should return the original court."""
        court = self.court
        for _ in range(6):
            court = rotate_forward(court)
        assert court == self.court

    def test_six_backward_rotations_is_identity(self):
        """Six backward rotations should return the original court."""
        court = self.court
        for _ in range(6):
            court = rotate_backward(court)
        assert court == self.court

    def test_empty_slots_are_preserved(self):
        """Empty slots should rotate like any other occupant."""
        court = CourtState.empty().with_player(RotationSlot.FRONT_RIGHT, "p2")
        rotated = rotate_forward(court)
        assert rotated[RotationSlot.BACK_RIGHT] == "p2"
        assert len(rotated.player_ids()) == 1


class TestRotateBackward:
    """Tests for the inverse rotation."""

    @pytest.mark.parametrize("missing", [None, RotationSlot.BACK_RIGHT, RotationSlot.FRONT_LEFT])
    def test_backward_undoes_forward(self, missing):
        """rotate_backward should exactly invert rotate_forward."""
        court = full_court()
        if missing is not None:
            court = court.with_player(missing, None)
        assert rotate_backward(rotate_forward(court)) == court
        assert rotate_forward(rotate_backward(court)) == court

    def test_server_goes_back_to_slot_two(self):
        """Rotating backward should send the server to slot 2."""
        rotated = rotate_backward(full_court())
        assert rotated[RotationSlot.FRONT_RIGHT] == "p1"


class TestRotatedSlot:
    """Tests for tracking a single slot through a rotation."""

    @pytest.mark.parametrize("forward", [True, False])
    def test_slot_follows_its_player(self, forward):
        """rotated_slot should point at the player's new slot."""
        court = full_court()
        rotated = rotate_forward(court) if forward else rotate_backward(court)
        for slot in RotationSlot:
            assert rotated[rotated_slot(slot, forward)] == court[slot]


class TestSideRotation:
    """Tests for on-screen rotation direction."""

    def test_left_side_clockwise_is_forward(self):
        """Clockwise on the left half should be a forward rotation."""
        assert is_forward_for_side(CourtSide.LEFT, clockwise=True)
        assert rotate_for_side(full_court(), CourtSide.LEFT, True) == rotate_forward(full_court())

    def test_right_side_clockwise_is_backward(self):
        """The right half is mirrored, so clockwise rotates backward."""
        assert not is_forward_for_side(CourtSide.RIGHT, clockwise=True)
        assert rotate_for_side(full_court(), CourtSide.RIGHT, True) == rotate_backward(full_court())

    def test_right_side_counter_clockwise_is_forward(self):
        """Counter-clockwise on the right half should be a forward rotation."""
        assert rotate_for_side(full_court(), CourtSide.RIGHT, False) == rotate_forward(full_court())
