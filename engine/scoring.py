"""
Scoring Engine - rally logging, point attribution and set progression.

Every function takes the current MatchState and returns a Transition; none of
them raise. Scoring for an event is always applied before the rally state is
recomputed, so rally_state() sees the already-updated serving team.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from models.action import ActionEvent, Outcome, Skill
from models.court import CourtState, RotationSlot
from models.libero import LiberoSwap
from models.match import Advisory, MatchState, SetRecord, SetRules, Transition
from models.player import TeamId
from engine.libero import release_swap
from engine.lineup import commit_court
from engine.rally import RallyState, next_state
from engine.rotation import rotate_forward
from engine.rules import RulesEngine
from engine.stats import compute_stats

logger = logging.getLogger(__name__)


def rally_state(state: MatchState) -> RallyState:
    """Allowed skills and acting team for the current context."""
    return next_state(state.last_event, state.serving_team)


def match_winner(state: MatchState) -> Optional[TeamId]:
    return RulesEngine.match_winner(state.rules, state.sets_won_a, state.sets_won_b)


# ============ Rally logging ============

def log_action(state: MatchState, team: TeamId, slot: RotationSlot, skill: Skill,
               outcome: Outcome, timestamp: Optional[datetime] = None) -> Transition:
    """
    Log one action for the player standing in `slot`.

    The event is prepended to the live log with a snapshot of the state
    before it. If the outcome decides the point, the score change (with any
    sideout rotation and set completion) is applied in the same transition.
    An empty slot or a finished match makes this a no-op.
    """
    if match_winner(state) is not None:
        return Transition(state, (Advisory.warn("The match is already decided"),))

    slot = RotationSlot(slot)
    player_id = state.court(team)[slot]
    if player_id is None:
        return Transition(state, (Advisory.warn(f"Team {team.value}: no player in {slot.label}"),))

    point_winner = RulesEngine.resolve_point_winner(team, skill, outcome)
    extra = {"timestamp": timestamp} if timestamp is not None else {}
    event = ActionEvent(
        team=team,
        player_id=player_id,
        slot=slot,
        skill=skill,
        outcome=outcome,
        snapshot=state.snapshot(),
        point_winner=point_winner,
        **extra,
    )
    logged = replace(state, events=(event,) + state.events)
    logger.debug("Logged %s %s for team %s slot %d", skill.value, outcome.label, team.value, int(slot))

    if point_winner is None:
        return Transition(logged, (), event)

    scored = increment_score(logged, point_winner)
    return Transition(scored.state, scored.advisories, event)


def undo_last_event(state: MatchState) -> Transition:
    """Drop the most recent event and restore the state it was logged against."""
    events = state.events
    if not events and state.saved_sets:
        events = state.saved_sets[-1].events
    if not events:
        return Transition(state, (Advisory.warn("Nothing to undo"),))
    return undo_from_event(state, events[0].id)


def undo_from_event(state: MatchState, event_id: str) -> Transition:
    """
    Drop an event and everything logged after it.

    The restored state is the snapshot carried by the oldest dropped event.
    While the live log is still empty, events of the last archived set can be
    undone too: that set is reopened first, so the point that closed it can
    be taken back.
    """
    if not state.events and state.saved_sets:
        if any(e.id == event_id for e in state.saved_sets[-1].events):
            state = _reopen_last_set(state)

    for idx, event in enumerate(state.events):
        if event.id == event_id:
            restored = state.restored(event.snapshot)
            return Transition(replace(restored, events=state.events[idx + 1:]), (), event)
    return Transition(state, (Advisory.warn(f"Event {event_id} is not in the live log"),))


def _reopen_last_set(state: MatchState) -> MatchState:
    """Move the last archived set back into play with its events as the live log."""
    record = state.saved_sets[-1]
    logger.info("Reopened set %d", record.set_number)
    reopened = replace(
        state,
        saved_sets=state.saved_sets[:-1],
        set_number=record.set_number,
        score_a=record.score_a,
        score_b=record.score_b,
        events=record.events,
    )
    return reopened.with_sets_won(record.winner, max(0, state.sets_won(record.winner) - 1))


# ============ Score changes ============

def increment_score(state: MatchState, team: TeamId) -> Transition:
    """
    Award a point to `team`.

    If `team` was not serving, this is a sideout: serve transfers, the team
    rotates forward with libero automation re-run, and the team that lost
    serve gets a best-effort libero pass. A completed set is closed at once.
    """
    if match_winner(state) is not None:
        return Transition(state, (Advisory.warn("The match is already decided"),))

    was_serving = state.serving_team
    next_state_ = state.with_score(team, state.score(team) + 1)
    next_state_ = replace(
        next_state_,
        rally_number=state.rally_number + 1,
        service_run=state.service_run + 1 if team is was_serving else 1,
    )

    advisories: tuple[Advisory, ...] = ()
    if team is not was_serving:
        next_state_ = replace(next_state_, serving_team=team)
        next_state_, advisories = _sideout(next_state_, team)

    return _close_set_if_won(next_state_, advisories)


def decrement_score(state: MatchState, team: TeamId) -> Transition:
    """Take a point away from `team` (never below zero). No rotation."""
    current = state.score(team)
    if current == 0:
        return Transition(state)
    return _close_set_if_won(state.with_score(team, current - 1), ())


def _sideout(state: MatchState, gaining: TeamId) -> tuple[MatchState, tuple[Advisory, ...]]:
    advisories: tuple[Advisory, ...] = ()

    rotated = commit_court(state, gaining, rotate_forward(state.court(gaining)), rotation=True)
    if rotated.rejected:
        logger.warning("Sideout rotation for team %s rejected", gaining.value)
    state = rotated.state
    advisories += rotated.advisories

    # Best effort: the middle who just served can now make way for the libero
    losing = gaining.opponent
    refreshed = commit_court(state, losing, state.court(losing))
    if refreshed.rejected:
        logger.debug("Skipped libero pass for team %s after losing serve", losing.value)
    else:
        state = refreshed.state
        advisories += refreshed.advisories

    return state, advisories


def _close_set_if_won(state: MatchState, advisories: tuple[Advisory, ...]) -> Transition:
    winner = RulesEngine.set_winner(state)
    if winner is None:
        return Transition(state, advisories)
    closed = end_set(state, winner)
    return Transition(closed.state, advisories + closed.advisories)


# ============ Set lifecycle ============

def end_set(state: MatchState, winner: Optional[TeamId] = None) -> Transition:
    """
    Close the current set.

    Args:
        state: Current match state
        winner: Force a winner; by default the set must have been won on the
            scoreboard

    Returns:
        Transition to the first rally of the next set, or the unchanged state
        with a warning if there is no winner.
    """
    if match_winner(state) is not None:
        return Transition(state, (Advisory.warn("The match is already decided"),))

    winner = winner or RulesEngine.set_winner(state)
    if winner is None:
        return Transition(state, (Advisory.warn("No team has won the set yet"),))

    record = SetRecord(
        set_number=state.set_number,
        winner=winner,
        score_a=state.score_a,
        score_b=state.score_b,
        events=state.events,
        per_player=compute_stats(state.players, state.events),
    )

    court_a = release_swap(state.court_a, state.swap_a)
    court_b = release_swap(state.court_b, state.swap_b)
    if state.rules.reset_courts_between_sets:
        court_a = court_b = CourtState.empty()

    next_state_ = replace(
        state,
        saved_sets=state.saved_sets + (record,),
        set_number=state.set_number + 1,
        score_a=0,
        score_b=0,
        serving_team=winner,
        events=(),
        rally_number=0,
        service_run=0,
        court_a=court_a,
        court_b=court_b,
        swap_a=LiberoSwap.inactive(),
        swap_b=LiberoSwap.inactive(),
    )
    next_state_ = next_state_.with_sets_won(winner, state.sets_won(winner) + 1)

    advisories = (Advisory.info(
        f"Set {record.set_number} to Team {winner.value} ({record.score_a}-{record.score_b})"
    ),)
    champion = match_winner(next_state_)
    if champion is not None:
        advisories += (Advisory.info(
            f"Match to Team {champion.value} ({next_state_.sets_won_a}-{next_state_.sets_won_b})"
        ),)
    logger.info(advisories[-1].message)

    if champion is None:
        # The team receiving first in the new set brings its libero on
        receiving = winner.opponent
        refreshed = commit_court(next_state_, receiving, next_state_.court(receiving))
        if refreshed.rejected:
            logger.debug("Skipped libero pass for team %s at set start", receiving.value)
        else:
            next_state_ = refreshed.state
            advisories += refreshed.advisories

    return Transition(next_state_, advisories)


# ============ Manual overrides ============
# Escape hatches: no rotation, no libero automation, no set check.

def set_score(state: MatchState, team: TeamId, value: int) -> Transition:
    return Transition(state.with_score(team, max(0, int(value))))


def set_sets_won(state: MatchState, team: TeamId, value: int) -> Transition:
    return Transition(state.with_sets_won(team, max(0, int(value))))


def set_serving_team(state: MatchState, team: TeamId) -> Transition:
    return Transition(replace(state, serving_team=team))


def update_set_rules(state: MatchState, rules: SetRules) -> Transition:
    valid, message = RulesEngine.validate_rules(rules)
    if not valid:
        return Transition(state, (Advisory.warn(message),))
    return Transition(replace(state, rules=rules))


def reset_match(state: MatchState) -> Transition:
    """
    Start the match over.

    The roster, libero configurations, side assignment and set rules are
    setup, not match progress, so they survive the reset.
    """
    fresh = MatchState(
        players=state.players,
        left_team=state.left_team,
        libero_a=state.libero_a,
        libero_b=state.libero_b,
        rules=state.rules,
    )
    return Transition(fresh, (Advisory.info("Match reset"),))
