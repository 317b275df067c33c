"""
Rules Engine - volleyball scoring rules and action legality.

Handles set/match win conditions, point attribution, and the per-player
legality filters layered on top of the rally state machine.
"""

from typing import Optional

from models.action import Outcome, Skill
from models.court import SERVING_SLOT, RotationSlot
from models.match import VALID_BEST_OF, Advisory, MatchState, SetRules
from models.player import TeamId
from engine.libero import libero_ids
from engine.rally import SERVE_ONLY, is_action_allowed, next_state


class RulesEngine:
    """
    Stateless volleyball rules.

    Everything here is a pure function of its arguments; the scoring engine
    and the MatchEngine facade call into it.
    """

    # Skills that can win a point outright
    POINT_SKILLS = frozenset({Skill.SERVE, Skill.ATTACK, Skill.BLOCK})

    # A libero is a back-row defender: no serve, attack or block
    LIBERO_SKILLS = frozenset({Skill.RECEIVE, Skill.DIG, Skill.SET})

    VALID_BEST_OF = VALID_BEST_OF

    # ============ Set / match progression ============

    @staticmethod
    def is_deciding_set(rules: SetRules, sets_won_a: int, sets_won_b: int) -> bool:
        """The deciding set is reached when both teams are one set from winning."""
        one_short = rules.sets_to_win - 1
        return sets_won_a == one_short and sets_won_b == one_short

    @staticmethod
    def points_needed(rules: SetRules, sets_won_a: int, sets_won_b: int) -> int:
        """Points required to take the current set."""
        if RulesEngine.is_deciding_set(rules, sets_won_a, sets_won_b):
            return rules.deciding_set_points
        return rules.points_to_win

    @staticmethod
    def has_set_winner(score_a: int, score_b: int, points_needed: int,
                       win_by: int) -> Optional[TeamId]:
        """
        Determine whether the set is over.

        Returns:
            The leading team once it has reached `points_needed` with at least
            a `win_by` margin, otherwise None. There is no score cap.
        """
        leader_score = max(score_a, score_b)
        if leader_score < points_needed or abs(score_a - score_b) < win_by:
            return None
        return TeamId.A if score_a > score_b else TeamId.B

    @staticmethod
    def set_winner(state: MatchState) -> Optional[TeamId]:
        """Set winner for the live score of a match."""
        needed = RulesEngine.points_needed(state.rules, state.sets_won_a, state.sets_won_b)
        return RulesEngine.has_set_winner(state.score_a, state.score_b, needed, state.rules.win_by)

    @staticmethod
    def match_winner(rules: SetRules, sets_won_a: int, sets_won_b: int) -> Optional[TeamId]:
        """Return the team that has won enough sets to take the match."""
        if sets_won_a >= rules.sets_to_win:
            return TeamId.A
        if sets_won_b >= rules.sets_to_win:
            return TeamId.B
        return None

    # ============ Point attribution ============

    @staticmethod
    def resolve_point_winner(team: TeamId, skill: Skill, outcome: Outcome) -> Optional[TeamId]:
        """
        Decide who, if anyone, wins the point on this action.

        Errors always hand the point to the opponent. Wins only score for
        serves, attacks and blocks; digs, sets and receptions never score.
        """
        if outcome.is_error:
            return team.opponent
        if outcome.is_win and skill in RulesEngine.POINT_SKILLS:
            return team
        return None

    # ============ Validation Methods ============

    @staticmethod
    def validate_rules(rules: SetRules) -> tuple[bool, str]:
        """Validate a match format."""
        if rules.best_of not in RulesEngine.VALID_BEST_OF:
            return False, f"best_of must be one of {sorted(RulesEngine.VALID_BEST_OF)}"
        if rules.points_to_win < 1 or rules.deciding_set_points < 1:
            return False, "Set thresholds must be positive"
        if rules.win_by < 1:
            return False, "Winning margin must be at least 1"
        return True, ""

    @staticmethod
    def check_action(state: MatchState, team: TeamId, slot: RotationSlot,
                     skill: Skill) -> Optional[Advisory]:
        """
        Run the legality filters for a proposed action.

        Returns:
            None when the action may be logged, otherwise an Advisory
            explaining why not. Back-row blocks and libero misuse are
            ERROR-level; sequencing problems are WARN-level.
        """
        slot = RotationSlot(slot)
        player_id = state.court(team)[slot]
        if player_id is None:
            return Advisory.warn(f"Team {team.value}: no player in {slot.label}")

        rally = next_state(state.last_event, state.serving_team)
        if not is_action_allowed(skill, team, rally):
            expected = ", ".join(sorted(s.value for s in rally.allowed_skills))
            return Advisory.warn(
                f"{skill.value} by Team {team.value} is not expected now; "
                f"waiting for {expected} by Team {rally.acting_team.value}"
            )

        is_libero = player_id in libero_ids(state.roster(team), state.libero_config(team))

        if skill is Skill.BLOCK and not slot.is_front_row:
            return Advisory.error(f"Only front-row players may block ({slot.label} is back row)")

        if is_libero and skill not in RulesEngine.LIBERO_SKILLS:
            return Advisory.error(f"A libero cannot {skill.value.lower()}")

        if skill is Skill.SERVE and slot is not SERVING_SLOT:
            return Advisory.warn(f"Only the player in {SERVING_SLOT.label} may serve")

        last = state.last_event
        rally_open = last is not None and rally.allowed_skills != SERVE_ONLY
        if not rally_open:
            return None

        if skill is Skill.RECEIVE and last.skill is Skill.SERVE and last.player_id == player_id:
            return Advisory.warn("The server cannot receive their own serve")

        if is_libero and last.skill is Skill.RECEIVE and last.player_id == player_id:
            return Advisory.warn("The libero cannot take the next contact after their own reception")

        if (last.player_id == player_id
                and last.skill is not Skill.BLOCK and skill is not Skill.BLOCK):
            return Advisory.warn("The same player cannot touch the ball twice in a row")

        return None
