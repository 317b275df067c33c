"""
Unit tests for the scoring engine.

Tests cover point attribution on logged actions, sideout rotation, undo,
and set/match progression.
"""

from engine import scoring
from engine.lineup import set_libero_config
from models.action import Outcome, OutcomeTag, Skill
from models.court import CourtState, RotationSlot
from models.match import SetRules, Severity
from models.player import TeamId
from tests.factories import build_match, starting_court

A = TeamId.A
B = TeamId.B


def log(state, team, slot, skill, tag):
    return scoring.log_action(state, team, RotationSlot(slot), skill, Outcome(tag))


class TestLogAction:
    """Tests for logging actions that decide points."""

    def setup_method(self):
        """Team A serving from a full lineup."""
        self.state = build_match(serving_team=A)

    def test_ace_scores_for_server(self):
        """An ace should score for the serving team without rotating."""
        t = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ACE)

        assert t.state.score_a == 1
        assert t.state.serving_team is A
        assert t.state.service_run == 1
        assert t.state.court_a == self.state.court_a
        assert t.event.point_winner is A
        assert t.state.events[0] is t.event

    def test_service_run_grows(self):
        """Consecutive points on serve extend the service run."""
        state = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ACE).state
        state = log(state, A, 1, Skill.SERVE, OutcomeTag.ACE).state
        assert state.service_run == 2
        assert state.rally_number == 2

    def test_serve_error_is_sideout(self):
        """A service error should score for B and rotate B forward."""
        t = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ERROR)

        assert t.state.score_b == 1
        assert t.state.serving_team is B
        assert t.state.service_run == 1
        assert t.state.court_b[RotationSlot.BACK_RIGHT] == "B2"
        assert t.state.court_a == self.state.court_a

    def test_reception_error_point_to_server(self):
        """A reception error should score for the serving team."""
        state = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ATTEMPT).state
        t = log(state, B, 1, Skill.RECEIVE, OutcomeTag.ERROR)

        assert t.state.score_a == 1
        assert t.state.serving_team is A
        assert t.state.court_b == self.state.court_b

    def test_kill_on_sideout(self):
        """A kill by the receiving team should win serve and rotate it."""
        state = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ATTEMPT).state
        state = log(state, B, 1, Skill.RECEIVE, OutcomeTag.POOR).state
        state = log(state, B, 6, Skill.SET, OutcomeTag.ATTEMPT).state
        t = log(state, B, 4, Skill.ATTACK, OutcomeTag.KILL)

        assert t.state.score_b == 1
        assert t.state.serving_team is B
        assert t.state.court_b[RotationSlot.BACK_RIGHT] == "B2"
        assert len(t.state.events) == 4

    def test_neutral_action_does_not_score(self):
        """A serve in play should only append to the log."""
        t = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ATTEMPT)
        assert (t.state.score_a, t.state.score_b) == (0, 0)
        assert t.event.point_winner is None

    def test_empty_slot_is_noop(self):
        """Logging for an empty slot should warn and change nothing."""
        state = self.state.with_court(A, self.state.court_a.with_player(RotationSlot.BACK_RIGHT, None))
        t = log(state, A, 1, Skill.SERVE, OutcomeTag.ACE)

        assert t.state is state
        assert t.advisory.severity is Severity.WARN

    def test_event_snapshot_is_pre_action_state(self):
        """The event should carry the state it was logged against."""
        t = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ERROR)
        assert t.event.snapshot == self.state.snapshot()


class TestUndo:
    """Tests for undo."""

    def setup_method(self):
        """Team A serving from a full lineup."""
        self.state = build_match(serving_team=A)

    def test_undo_sideout_restores_everything(self):
        """Undoing a sideout should restore score, serve and rotation."""
        after = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ERROR).state
        t = scoring.undo_last_event(after)
        assert t.state == self.state

    def test_undo_empty_log_warns(self):
        """Undo with no events should warn."""
        t = scoring.undo_last_event(self.state)
        assert t.state is self.state
        assert t.advisory.severity is Severity.WARN

    def test_undo_from_event_drops_later_events(self):
        """Undoing from an older event should drop it and everything after."""
        first = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ACE)
        second = log(first.state, A, 1, Skill.SERVE, OutcomeTag.ACE)
        third = log(second.state, A, 1, Skill.SERVE, OutcomeTag.ERROR)

        t = scoring.undo_from_event(third.state, second.event.id)

        assert t.state.score_a == 1
        assert t.state.score_b == 0
        assert [e.id for e in t.state.events] == [first.event.id]
        assert t.event.id == second.event.id

    def test_undo_unknown_event_warns(self):
        """An id not in the live log should warn."""
        t = scoring.undo_from_event(self.state, "missing")
        assert t.advisory.severity is Severity.WARN

    def test_undo_set_point_reopens_set(self):
        """Undoing the ace that won the set restores the 24-0 rally."""
        before = scoring.set_score(self.state, A, 24).state
        ace = log(before, A, 1, Skill.SERVE, OutcomeTag.ACE)
        assert ace.state.sets_won_a == 1

        t = scoring.undo_last_event(ace.state)

        assert t.state == before
        assert t.event.id == ace.event.id
        assert (t.state.score_a, t.state.sets_won_a, t.state.set_number) == (24, 0, 1)
        assert t.state.saved_sets == ()

    def test_undo_from_event_in_closed_set(self):
        """An older event of the set that just closed can be undone by id."""
        first = log(self.state, A, 1, Skill.SERVE, OutcomeTag.ACE)
        state = scoring.set_score(first.state, A, 24).state
        closed = log(state, A, 1, Skill.SERVE, OutcomeTag.ACE).state

        t = scoring.undo_from_event(closed, first.event.id)

        assert t.state.score_a == 0
        assert t.state.events == ()
        assert t.state.saved_sets == ()

    def test_undo_after_forced_set_end_warns(self):
        """A set closed without any logged events has nothing to undo."""
        closed = scoring.end_set(self.state, B).state
        t = scoring.undo_last_event(closed)
        assert t.state is closed
        assert t.advisory.severity is Severity.WARN

    def test_undo_does_not_reach_older_sets(self):
        """Once the new set has events, undo stays inside it."""
        state = scoring.set_score(self.state, A, 24).state
        closed = log(state, A, 1, Skill.SERVE, OutcomeTag.ACE)
        opened = log(closed.state, A, 1, Skill.SERVE, OutcomeTag.ACE).state

        t = scoring.undo_from_event(opened, closed.event.id)

        assert t.state is opened
        assert t.advisory.severity is Severity.WARN


class TestSetProgression:
    """Tests for set and match completion."""

    def setup_method(self):
        """Team A serving from a full lineup."""
        self.state = build_match(serving_team=A)

    def test_set_point_closes_set(self):
        """24-20 plus a point should archive the set."""
        state = scoring.set_score(self.state, A, 24).state
        state = scoring.set_score(state, B, 20).state

        t = scoring.increment_score(state, A)

        assert t.state.set_number == 2
        assert t.state.sets_won_a == 1
        assert (t.state.score_a, t.state.score_b) == (0, 0)
        assert t.state.serving_team is A
        record = t.state.saved_sets[0]
        assert (record.winner, record.score_a, record.score_b) == (A, 25, 20)
        assert any(a.severity is Severity.INFO for a in t.advisories)

    def test_deuce_continues(self):
        """25-24 should keep the set going."""
        state = scoring.set_score(self.state, A, 24).state
        state = scoring.set_score(state, B, 24).state

        t = scoring.increment_score(state, A)

        assert t.state.set_number == 1
        assert t.state.score_a == 25

    def test_set_winner_serves_next_set(self):
        """The set winner should serve first in the next set."""
        state = scoring.set_score(self.state, B, 24).state
        t = scoring.increment_score(state, B)
        assert t.state.serving_team is B
        assert t.state.sets_won_b == 1

    def test_decrement_floors_at_zero(self):
        """Decrementing a zero score should do nothing."""
        t = scoring.decrement_score(self.state, A)
        assert t.state.score_a == 0

    def test_decrement_does_not_rotate(self):
        """Decrement only changes the score."""
        state = scoring.set_score(self.state, B, 3).state
        t = scoring.decrement_score(state, B)
        assert t.state.score_b == 2
        assert t.state.court_b == state.court_b

    def test_end_set_without_winner_warns(self):
        """end_set on an open set should warn and leave state alone."""
        t = scoring.end_set(self.state)
        assert t.state is self.state
        assert t.advisory.severity is Severity.WARN

    def test_end_set_with_forced_winner(self):
        """A forced winner closes the set regardless of score."""
        t = scoring.end_set(self.state, B)
        assert t.state.sets_won_b == 1
        assert t.state.saved_sets[0].winner is B

    def test_deciding_set_uses_lower_threshold(self):
        """In the deciding set of a best of three, 15 points wins."""
        state = build_match(rules=SetRules(best_of=3))
        state = scoring.set_sets_won(state, A, 1).state
        state = scoring.set_sets_won(state, B, 1).state
        state = scoring.set_score(state, A, 14).state
        state = scoring.set_score(state, B, 10).state

        t = scoring.increment_score(state, A)

        assert scoring.match_winner(t.state) is A
        assert t.state.sets_won_a == 2

    def test_decided_match_ignores_points(self):
        """No scoring after the match is decided."""
        state = build_match(rules=SetRules(best_of=1))
        state = scoring.end_set(state, A).state

        assert scoring.increment_score(state, B).advisory.severity is Severity.WARN
        assert log(state, A, 1, Skill.SERVE, OutcomeTag.ACE).state is state

    def test_completed_set_keeps_player_stats(self):
        """The archived set should carry per-player stats."""
        state = scoring.set_score(self.state, A, 24).state
        t = log(state, A, 1, Skill.SERVE, OutcomeTag.ACE)
        record = t.state.saved_sets[0]
        assert record.per_player["A1"].point_credits == 1
        assert t.state.events == ()

    def test_reset_courts_between_sets(self):
        """With the option on, both courts are cleared when a set closes."""
        rules = SetRules(reset_courts_between_sets=True)
        state = scoring.set_score(build_match(rules=rules), A, 24).state
        t = scoring.increment_score(state, A)
        assert t.state.court_a == CourtState.empty()
        assert t.state.court_b == CourtState.empty()

    def test_courts_kept_by_default(self):
        """Without the option, lineups carry into the next set."""
        state = scoring.set_score(self.state, A, 24).state
        t = scoring.increment_score(state, A)
        assert t.state.court_a == starting_court(A)


class TestSetupOperations:
    """Tests for reset and rule updates."""

    def test_reset_match_keeps_roster(self):
        """Reset should clear progress but keep players and rules."""
        rules = SetRules(best_of=3)
        state = log(build_match(rules=rules), A, 1, Skill.SERVE, OutcomeTag.ACE).state

        t = scoring.reset_match(state)

        assert t.state.players == state.players
        assert t.state.rules == rules
        assert t.state.events == ()
        assert t.state.score_a == 0
        assert t.state.court_a == CourtState.empty()

    def test_invalid_rules_rejected(self):
        """An unsupported best_of should warn and keep the old rules."""
        state = build_match()
        t = scoring.update_set_rules(state, SetRules(best_of=2))
        assert t.state is state
        assert t.advisory.severity is Severity.WARN


class TestSideoutLibero:
    """Tests for libero automation triggered by sideouts."""

    def setup_method(self):
        """Team B serving, team A's libero in for A5."""
        state = build_match(serving_team=B)
        t = set_libero_config(state, A, enabled=True, libero_id="AL", replacement_ids=["A2", "A5"])
        self.state = t.state

    def test_libero_swapped_in_while_receiving(self):
        """The receiving team's back-row middle makes way for the libero."""
        assert self.state.court_a[RotationSlot.BACK_LEFT] == "AL"
        assert self.state.swap_a.replaced_id == "A5"

    def test_libero_forced_out_on_rotation(self):
        """Winning serve rotates the libero into slot 4 so the middle returns."""
        t = scoring.increment_score(self.state, A)

        assert t.state.court_a[RotationSlot.FRONT_LEFT] == "A5"
        assert not t.state.court_a.contains("AL")
        assert not t.state.swap_a.active

    def test_undo_restores_libero_swap(self):
        """Undo across a sideout should put the libero back."""
        state = log(self.state, B, 1, Skill.SERVE, OutcomeTag.ERROR).state
        t = scoring.undo_last_event(state)
        assert t.state.court_a == self.state.court_a
        assert t.state.swap_a == self.state.swap_a

    def test_libero_on_for_receiving_team_at_set_start(self):
        """The team receiving first in the new set starts with its libero in."""
        state = scoring.set_score(self.state, B, 24).state
        t = scoring.increment_score(state, B)

        assert t.state.set_number == 2
        assert t.state.serving_team is B
        assert t.state.court_a[RotationSlot.BACK_LEFT] == "AL"
        assert t.state.swap_a.replaced_id == "A5"

    def test_serving_team_starts_without_libero(self):
        """The set winner serves, so its replacement stays on court."""
        state = scoring.set_score(self.state, A, 24).state
        t = scoring.increment_score(state, A)

        assert t.state.serving_team is A
        assert not t.state.court_a.contains("AL")
        assert not t.state.swap_a.active

    def test_undo_set_point_restores_libero_swap(self):
        """Reopening a set puts the libero back where it stood."""
        state = scoring.set_score(self.state, B, 24).state
        closed = log(state, B, 1, Skill.SERVE, OutcomeTag.ACE).state

        t = scoring.undo_last_event(closed)

        assert t.state == state
