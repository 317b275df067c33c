"""
Match Engine - signal-emitting facade over the pure match transitions.

The MatchEngine runs independently of any GUI. It owns the current
MatchState, routes every operation through the transition functions in
engine.lineup and engine.scoring, and emits Qt Signals so presentation layers
can react without polling.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError
from PySide6.QtCore import QObject, Signal

from models.action import Outcome, Skill, parse_skill
from models.court import RotationSlot
from models.match import Advisory, MatchState, Severity, SetRules, Transition
from models.player import Position, TeamId
from models.schemas import (
    ActionCreate,
    CourtTarget,
    LiberoConfigUpdate,
    PlayerCreate,
    PlayerUpdate,
    SetRulesUpdate,
    SideRef,
    SlotPair,
    TeamRef,
    TeamValue,
    dump_match,
    restore_match,
)
from engine import lineup, scoring
from engine.rally import RallyState
from engine.rules import RulesEngine
from engine.stats import (
    LeaderboardEntry,
    PlayerStats,
    TeamTotals,
    all_events,
    leaderboards,
    match_stats,
    player_of_the_game,
    team_totals,
)

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.INFO: logging.INFO,
    Severity.WARN: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


@dataclass
class ScoreState:
    """
    Scoreboard snapshot.
    Emitted after every transition that touches the score or serve.
    """
    score_a: int = 0
    score_b: int = 0
    sets_won_a: int = 0
    sets_won_b: int = 0
    set_number: int = 1
    serving_team: TeamId = TeamId.A
    rally_number: int = 0
    service_run: int = 0
    points_needed: int = 25
    is_deciding_set: bool = False
    match_winner: Optional[TeamId] = None


class MatchEngine(QObject):
    """
    Live volleyball match tracker.

    Every public mutator returns the Transition it applied. Rejected and
    ignored operations leave the state untouched and only raise an advisory.
    """

    # Signals
    state_changed = Signal(object)          # MatchState
    action_logged = Signal(dict)            # event summary
    action_undone = Signal(dict)            # summary of the oldest dropped event
    score_updated = Signal(object)          # ScoreState
    set_completed = Signal(dict)            # archived set summary
    match_completed = Signal(dict)          # final results
    advisory_raised = Signal(str, str)      # severity, message

    def __init__(self, rules: Optional[SetRules] = None, state: Optional[MatchState] = None):
        """
        Initialize the match engine.

        Args:
            rules: Match format for a fresh match
            state: Resume from an existing aggregate instead
        """
        super().__init__()
        self._state = state or MatchState(rules=rules or SetRules())

    @property
    def state(self) -> MatchState:
        """Current match aggregate."""
        return self._state

    # ============ Roster ============

    def add_player(self, team, name: str, jersey_number: int = 0,
                   position: Any = Position.OUTSIDE_HITTER) -> Transition:
        try:
            data = PlayerCreate(team=team, name=name, jersey_number=jersey_number, position=position)
        except ValidationError as exc:
            return self._reject(f"Invalid player: {_first_error(exc)}")
        return self._apply(lineup.add_player(self._state, data.to_player()))

    def update_player(self, player_id: str, **changes) -> Transition:
        try:
            data = PlayerUpdate(**changes)
        except ValidationError as exc:
            return self._reject(f"Invalid player update: {_first_error(exc)}")
        return self._apply(lineup.update_player(self._state, player_id, **data.changes()))

    def remove_player(self, player_id: str) -> Transition:
        return self._apply(lineup.remove_player(self._state, player_id))

    def set_players(self, players) -> Transition:
        return self._apply(lineup.set_players(self._state, players))

    # ============ Court ============

    def assign_player(self, team, slot: int, player_id: str) -> Transition:
        try:
            target = CourtTarget(team=team, slot=slot)
        except ValidationError as exc:
            return self._reject(f"Invalid court slot: {_first_error(exc)}")
        return self._apply(lineup.assign_player(self._state, target.team, target.rotation_slot, player_id))

    def substitute_player(self, team, slot: int, player_id: str) -> Transition:
        try:
            target = CourtTarget(team=team, slot=slot)
        except ValidationError as exc:
            return self._reject(f"Invalid court slot: {_first_error(exc)}")
        return self._apply(lineup.substitute_player(self._state, target.team, target.rotation_slot, player_id))

    def clear_slot(self, team, slot: int) -> Transition:
        try:
            target = CourtTarget(team=team, slot=slot)
        except ValidationError as exc:
            return self._reject(f"Invalid court slot: {_first_error(exc)}")
        return self._apply(lineup.clear_slot(self._state, target.team, target.rotation_slot))

    def swap_slots(self, team, first: int, second: int) -> Transition:
        try:
            pair = SlotPair(team=team, first=first, second=second)
        except ValidationError as exc:
            return self._reject(f"Invalid court slot: {_first_error(exc)}")
        return self._apply(lineup.swap_slots(
            self._state, pair.team, RotationSlot(pair.first), RotationSlot(pair.second)
        ))

    def rotate_team(self, team, forward: bool = True) -> Transition:
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        return self._apply(lineup.rotate_team(self._state, ref.team, forward))

    def rotate_side(self, side, clockwise: bool = True) -> Transition:
        try:
            data = SideRef(side=side)
        except ValidationError as exc:
            return self._reject(f"Invalid court side: {_first_error(exc)}")
        return self._apply(lineup.rotate_side(self._state, data.side, clockwise))

    def reset_court(self, team) -> Transition:
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        return self._apply(lineup.reset_court(self._state, ref.team))

    def swap_sides(self) -> Transition:
        return self._apply(lineup.swap_sides(self._state))

    # ============ Libero ============

    def set_libero_config(self, team, **fields) -> Transition:
        """
        Patch a team's libero setup.

        Accepts any of `enabled`, `libero_id` and `replacement_ids`.
        """
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        try:
            data = LiberoConfigUpdate(**fields)
        except ValidationError as exc:
            return self._reject(f"Invalid libero setup: {_first_error(exc)}")
        return self._apply(lineup.set_libero_config(self._state, ref.team, **data.as_kwargs()))

    # ============ Rally ============

    def log_action(self, team, slot: int, skill: Any, outcome: Any,
                   enforce: bool = True) -> Transition:
        """
        Log one touch.

        Args:
            team: "A"/"B" or TeamId
            slot: Rotation slot 1-6 of the acting player
            skill: Skill or raw label ("SERVE", "SPIKE", ...)
            outcome: Outcome or raw label ("ACE", "PERFECT", ...)
            enforce: Run the rally legality filters first; pass False for
                manual corrections

        Returns:
            The applied Transition (carrying the new event), or a rejection
        """
        try:
            data = ActionCreate(team=team, slot=slot, skill=skill, outcome=_outcome_label(outcome))
        except ValidationError as exc:
            return self._reject(f"Invalid action: {_first_error(exc)}")

        slot_ = RotationSlot(data.slot)
        if enforce:
            problem = RulesEngine.check_action(self._state, data.team, slot_, data.skill)
            if problem is not None:
                return self._apply(Transition(self._state, (problem,)))

        transition = self._apply(scoring.log_action(
            self._state, data.team, slot_, data.skill, Outcome(data.outcome)
        ))
        if transition.event is not None:
            self.action_logged.emit(transition.event.to_dict())
        return transition

    def undo_last_event(self) -> Transition:
        return self._undone(self._apply(scoring.undo_last_event(self._state)))

    def undo_from_event(self, event_id: str) -> Transition:
        return self._undone(self._apply(scoring.undo_from_event(self._state, event_id)))

    def _undone(self, transition: Transition) -> Transition:
        if transition.event is not None:
            self.action_undone.emit(transition.event.to_dict())
        return transition

    # ============ Score / sets ============

    def increment_score(self, team) -> Transition:
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        return self._apply(scoring.increment_score(self._state, ref.team))

    def decrement_score(self, team) -> Transition:
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        return self._apply(scoring.decrement_score(self._state, ref.team))

    def set_score(self, team, value: int) -> Transition:
        try:
            data = TeamValue(team=team, value=value)
        except ValidationError as exc:
            return self._reject(f"Invalid score: {_first_error(exc)}")
        return self._apply(scoring.set_score(self._state, data.team, data.value))

    def set_sets_won(self, team, value: int) -> Transition:
        try:
            data = TeamValue(team=team, value=value)
        except ValidationError as exc:
            return self._reject(f"Invalid sets won: {_first_error(exc)}")
        return self._apply(scoring.set_sets_won(self._state, data.team, data.value))

    def set_serving_team(self, team) -> Transition:
        ref = self._team_ref(team)
        if ref is None:
            return self._reject(f"Unknown team {team!r}")
        return self._apply(scoring.set_serving_team(self._state, ref.team))

    def end_set(self, winner=None) -> Transition:
        if not winner:
            return self._apply(scoring.end_set(self._state))
        ref = self._team_ref(winner)
        if ref is None:
            return self._reject(f"Unknown team {winner!r}")
        return self._apply(scoring.end_set(self._state, ref.team))

    def update_set_rules(self, **fields) -> Transition:
        try:
            data = SetRulesUpdate(**fields)
        except ValidationError as exc:
            return self._reject(f"Invalid set rules: {_first_error(exc)}")
        return self._apply(scoring.update_set_rules(self._state, data.apply(self._state.rules)))

    def reset_match(self) -> Transition:
        return self._apply(scoring.reset_match(self._state))

    # ============ Stored state ============

    def restore(self, data: Any) -> Transition:
        """Replace the current match with a stored snapshot."""
        state, advisories = restore_match(data)
        return self._apply(Transition(state, tuple(advisories)))

    def dump(self) -> dict:
        return dump_match(self._state)

    # ============ Queries ============

    def rally_state(self) -> RallyState:
        return scoring.rally_state(self._state)

    def is_action_allowed(self, team, slot: int, skill: Any) -> bool:
        """Whether log_action(team, slot, skill, ...) would pass the legality filters."""
        try:
            target = CourtTarget(team=team, slot=slot)
            skill_ = skill if isinstance(skill, Skill) else parse_skill(skill)
        except ValueError:
            return False
        return RulesEngine.check_action(self._state, target.team, target.rotation_slot, skill_) is None

    def on_court_ids(self, team) -> list[str]:
        """Ids on `team`'s court; empty for an unknown team."""
        ref = self._team_ref(team)
        if ref is None:
            return []
        return lineup.on_court_ids(self._state, ref.team)

    def match_stats(self) -> dict[str, PlayerStats]:
        return match_stats(self._state)

    def team_totals(self) -> dict[TeamId, TeamTotals]:
        return team_totals(all_events(self._state))

    def leaderboards(self) -> dict[Optional[Position], list[LeaderboardEntry]]:
        return leaderboards(self._state.players, self.match_stats())

    def player_of_the_game(self) -> Optional[LeaderboardEntry]:
        return player_of_the_game(self._state.players, self.match_stats())

    def match_winner(self) -> Optional[TeamId]:
        return scoring.match_winner(self._state)

    def get_score_state(self) -> ScoreState:
        """Get the current scoreboard snapshot."""
        state = self._state
        rules = state.rules
        return ScoreState(
            score_a=state.score_a,
            score_b=state.score_b,
            sets_won_a=state.sets_won_a,
            sets_won_b=state.sets_won_b,
            set_number=state.set_number,
            serving_team=state.serving_team,
            rally_number=state.rally_number,
            service_run=state.service_run,
            points_needed=RulesEngine.points_needed(rules, state.sets_won_a, state.sets_won_b),
            is_deciding_set=RulesEngine.is_deciding_set(rules, state.sets_won_a, state.sets_won_b),
            match_winner=self.match_winner(),
        )

    # ============ Internals ============

    def _reject(self, message: str) -> Transition:
        return self._apply(Transition(self._state, (Advisory.warn(message),)))

    @staticmethod
    def _team_ref(team) -> Optional[TeamRef]:
        try:
            return TeamRef(team=team)
        except ValidationError:
            return None

    def _apply(self, transition: Transition) -> Transition:
        """Commit a transition and emit whatever changed."""
        previous = self._state
        self._state = transition.state

        for advisory in transition.advisories:
            logger.log(_LOG_LEVELS[advisory.severity], advisory.message)
            self.advisory_raised.emit(advisory.severity.value, advisory.message)

        if self._state is previous:
            return transition

        self.state_changed.emit(self._state)
        if _scoreboard(previous) != _scoreboard(self._state):
            self.score_updated.emit(self.get_score_state())

        for record in self._state.saved_sets[len(previous.saved_sets):]:
            self.set_completed.emit({
                "set_number": record.set_number,
                "winner": record.winner.value,
                "score_a": record.score_a,
                "score_b": record.score_b,
            })

        was_decided = scoring.match_winner(previous) is not None
        winner = self.match_winner()
        if winner is not None and not was_decided:
            self._complete_match(winner)

        return transition

    def _complete_match(self, winner: TeamId) -> None:
        """Emit the final results."""
        player = self.player_of_the_game()
        logger.info("Match completed: Team %s wins %d-%d", winner.value,
                    self._state.sets_won_a, self._state.sets_won_b)
        self.match_completed.emit({
            "winner": winner.value,
            "sets_won_a": self._state.sets_won_a,
            "sets_won_b": self._state.sets_won_b,
            "sets": [
                {"set_number": r.set_number, "winner": r.winner.value,
                 "score_a": r.score_a, "score_b": r.score_b}
                for r in self._state.saved_sets
            ],
            "player_of_the_game": player.player_id if player else None,
        })


def _scoreboard(state: MatchState) -> tuple:
    return (
        state.score_a, state.score_b, state.sets_won_a, state.sets_won_b,
        state.set_number, state.serving_team, state.rally_number, state.service_run,
        state.rules,
    )


def _outcome_label(outcome: Any) -> Any:
    return outcome.tag if isinstance(outcome, Outcome) else outcome


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = ".".join(str(part) for part in err["loc"])
    return f"{field}: {err['msg']}" if field else err["msg"]
