"""
Unit tests for libero automation.
"""

import itertools

import pytest

from engine.libero import apply_libero_automation, find_front_row_libero, release_swap
from engine.rotation import rotate_backward, rotate_forward
from models.court import BACK_ROW, RotationSlot
from models.libero import LiberoConfig, LiberoSwap
from models.match import Severity
from models.player import TeamId
from tests.factories import libero_config, make_roster, starting_court

A = TeamId.A
B = TeamId.B


class TestLiberoSwapIn:
    """Tests for bringing the libero on."""

    def setup_method(self):
        """Team A receiving, libero configured for both middles."""
        self.roster = make_roster(A)
        self.court = starting_court(A)
        self.config = libero_config(A)

    def run(self, court=None, swap=None, serving=B, rotation=None, config=None):
        return apply_libero_automation(
            A,
            court or self.court,
            self.roster,
            config or self.config,
            swap or LiberoSwap.inactive(),
            serving,
            rotation,
        )

    def test_disabled_config_does_nothing(self):
        """A disabled config should leave the court untouched."""
        result = self.run(config=libero_config(A, enabled=False))
        assert result.court == self.court
        assert not result.swap.active
        assert result.advisory is None

    def test_incomplete_config_is_informational(self):
        """An enabled config without replacements should raise an INFO advisory."""
        result = self.run(config=LiberoConfig(enabled=True, libero_id="AL"))
        assert result.court == self.court
        assert result.advisory.severity is Severity.INFO

    def test_receiving_team_swaps_in_back_row_middle(self):
        """The libero should replace the middle standing in the back row."""
        result = self.run()
        assert result.court[RotationSlot.BACK_LEFT] == "AL"
        assert result.swap == LiberoSwap.start(RotationSlot.BACK_LEFT, "AL", "A5")
        assert result.advisory.severity is Severity.INFO

    def test_front_row_middle_is_not_replaced(self):
        """A replacement in the front row should stay on court."""
        result = self.run()
        assert result.court[RotationSlot.FRONT_RIGHT] == "A2"

    def test_serving_team_keeps_replacement(self):
        """No swap-in should happen while the team is serving."""
        result = self.run(serving=A)
        assert result.court == self.court
        assert not result.swap.active

    def test_replacement_priority_order(self):
        """The first configured replacement in the back row should be used."""
        court = self.court.with_player(RotationSlot.BACK_RIGHT, "A2").with_player(RotationSlot.FRONT_RIGHT, "A1")
        assert self.run(court=court, config=libero_config(A, replacements=(5, 2))).swap.replaced_id == "A5"
        assert self.run(court=court, config=libero_config(A, replacements=(2, 5))).swap.replaced_id == "A2"

    def test_no_candidate_means_no_action(self):
        """Without a replacement in the back row nothing should change."""
        result = self.run(config=libero_config(A, replacements=(3,)))
        assert result.court == self.court
        assert not result.swap.active


class TestLiberoRotation:
    """Tests for following an active swap through rotations."""

    def setup_method(self):
        """Libero on court in slot 5 for A5."""
        self.roster = make_roster(A)
        self.config = libero_config(A)
        self.court = starting_court(A).with_player(RotationSlot.BACK_LEFT, "AL")
        self.swap = LiberoSwap.start(RotationSlot.BACK_LEFT, "AL", "A5")

    def test_forced_out_when_rotating_to_front_row(self):
        """Rotating from slot 5 to slot 4 should bring the middle back."""
        rotated = rotate_forward(self.court)
        result = apply_libero_automation(A, rotated, self.roster, self.config, self.swap, A, True)
        assert result.court[RotationSlot.FRONT_LEFT] == "A5"
        assert not result.court.contains("AL")
        assert not result.swap.active

    def test_tracked_slot_follows_rotation(self):
        """A libero rotating within the back row should stay on."""
        court = starting_court(A).with_player(RotationSlot.BACK_MIDDLE, "AL")
        swap = LiberoSwap.start(RotationSlot.BACK_MIDDLE, "AL", "A6")
        config = LiberoConfig(enabled=True, libero_id="AL", replacement_ids=("A6",))
        rotated = rotate_forward(court)
        result = apply_libero_automation(A, rotated, self.roster, config, swap, B, True)
        assert result.swap.slot is RotationSlot.BACK_LEFT
        assert result.court[RotationSlot.BACK_LEFT] == "AL"

    def test_backward_rotation_into_front_row(self):
        """Rotating backward from slot 1 to slot 2 should force the libero out."""
        court = starting_court(A).with_player(RotationSlot.BACK_RIGHT, "AL")
        swap = LiberoSwap.start(RotationSlot.BACK_RIGHT, "AL", "A1")
        config = LiberoConfig(enabled=True, libero_id="AL", replacement_ids=("A1",))
        rotated = rotate_backward(court)
        result = apply_libero_automation(A, rotated, self.roster, config, swap, B, False)
        assert result.court[RotationSlot.FRONT_RIGHT] == "A1"
        assert not result.swap.active


class TestLiberoReconcile:
    """Tests for swap records that drifted away from the court."""

    def setup_method(self):
        """Swap record says the libero is in slot 5 for A5."""
        self.roster = make_roster(A)
        self.config = libero_config(A)
        self.swap = LiberoSwap.start(RotationSlot.BACK_LEFT, "AL", "A5")

    def test_libero_moved_within_back_row(self):
        """The record should follow the libero to its new back-row slot."""
        court = starting_court(A).with_player(RotationSlot.BACK_LEFT, "A6").with_player(RotationSlot.BACK_MIDDLE, "AL")
        result = apply_libero_automation(A, court, self.roster, self.config, self.swap, B)
        assert result.swap.slot is RotationSlot.BACK_MIDDLE

    def test_empty_slot_gets_libero_back(self):
        """An empty tracked slot should get the libero back."""
        court = starting_court(A).with_player(RotationSlot.BACK_LEFT, None)
        result = apply_libero_automation(A, court, self.roster, self.config, self.swap, B)
        assert result.court[RotationSlot.BACK_LEFT] == "AL"
        assert result.swap.active

    def test_replaced_player_back_on_court_drops_record(self):
        """If the replaced player is back on court the swap is over."""
        court = starting_court(A)
        result = apply_libero_automation(A, court, self.roster, self.config, self.swap, A)
        assert not result.swap.active
        assert result.court == court


class TestFrontRowGuard:
    """Tests for the no-libero-in-front-row invariant."""

    def test_front_row_libero_is_an_error(self):
        """A court with a libero in the front row should raise an ERROR advisory."""
        roster = make_roster(A)
        court = starting_court(A).with_player(RotationSlot.FRONT_MIDDLE, "AL")
        result = apply_libero_automation(A, court, roster, libero_config(A), LiberoSwap.inactive(), A)
        assert result.advisory.severity is Severity.ERROR

    @pytest.mark.parametrize(
        "slot,serving,rotation",
        list(itertools.product(sorted(BACK_ROW), [A, B], [None, True, False])),
    )
    def test_automation_never_leaves_libero_in_front_row(self, slot, serving, rotation):
        """No automation pass should ever end with a libero in slots 2-4."""
        roster = make_roster(A)
        config = libero_config(A, replacements=(1, 5))
        replaced = starting_court(A)[slot]
        court = starting_court(A).with_player(slot, "AL")
        swap = LiberoSwap.start(slot, "AL", replaced)
        if rotation is not None:
            court = rotate_forward(court) if rotation else rotate_backward(court)

        result = apply_libero_automation(A, court, roster, config, swap, serving, rotation)

        assert find_front_row_libero(result.court, roster, config) is None


class TestReleaseSwap:
    """Tests for manually ending a swap."""

    def test_release_puts_replaced_player_back(self):
        """release_swap should restore the replaced player."""
        court = starting_court(A).with_player(RotationSlot.BACK_LEFT, "AL")
        swap = LiberoSwap.start(RotationSlot.BACK_LEFT, "AL", "A5")
        assert release_swap(court, swap) == starting_court(A)

    def test_release_inactive_swap_is_noop(self):
        """An inactive swap should leave the court alone."""
        court = starting_court(A)
        assert release_swap(court, LiberoSwap.inactive()) == court
