"""
Rally State Machine - which skills may be logged next, and by whom.

The machine is queried after the scoring engine has applied the last event,
so `serving_team` is already the team that will serve the next rally.
"""

from dataclasses import dataclass
from typing import Optional

from models.action import ActionEvent, OutcomeTag, Skill
from models.player import TeamId


@dataclass(frozen=True)
class RallyState:
    """Legal next skills, the team that must act, and a prompt for the UI."""
    allowed_skills: frozenset[Skill]
    acting_team: TeamId
    message: str = ""


@dataclass(frozen=True)
class _Flow:
    allowed: frozenset[Skill]
    same_team: bool


# Ball stays in play
STANDARD_FLOW = {
    Skill.SERVE: _Flow(frozenset({Skill.RECEIVE}), same_team=False),
    Skill.RECEIVE: _Flow(frozenset({Skill.SET}), same_team=True),
    Skill.SET: _Flow(frozenset({Skill.ATTACK}), same_team=True),
    Skill.ATTACK: _Flow(frozenset({Skill.DIG, Skill.BLOCK}), same_team=False),
    Skill.BLOCK: _Flow(frozenset({Skill.DIG}), same_team=True),
    Skill.DIG: _Flow(frozenset({Skill.SET}), same_team=True),
}

SERVE_ONLY = frozenset({Skill.SERVE})


def next_state(last_event: Optional[ActionEvent], serving_team: TeamId) -> RallyState:
    """
    Compute the legal continuation after `last_event`.

    Args:
        last_event: Most recent event of the live log, or None at rally start
        serving_team: Serving team after the scoring engine processed last_event

    Returns:
        RallyState with the allowed skills and acting team
    """
    if last_event is None:
        return RallyState(SERVE_ONLY, serving_team, "Waiting for Serve...")

    skill = last_event.skill
    outcome = last_event.outcome
    team = last_event.team
    opponent = team.opponent

    if skill is Skill.SERVE:
        if outcome.tag is OutcomeTag.ACE:
            return RallyState(SERVE_ONLY, team, "Clean Ace! Serve again.")
        if outcome.tag is OutcomeTag.ACE_FORCED:
            return RallyState(
                frozenset({Skill.RECEIVE}), opponent,
                "Select the receiver to log the error.",
            )
        if outcome.is_error:
            return RallyState(SERVE_ONLY, opponent, "Service Error. Sideout.")

    if skill is Skill.RECEIVE:
        if outcome.is_error:
            return RallyState(SERVE_ONLY, opponent, "Receive Error. Point Server.")
        if outcome.tag in (OutcomeTag.ATTEMPT, OutcomeTag.OVERPASS):
            return RallyState(
                frozenset({Skill.DIG, Skill.SET, Skill.ATTACK, Skill.BLOCK}), opponent,
                "Overpass! Opponent possession.",
            )
        if outcome.tag is OutcomeTag.EXCELLENT:
            return RallyState(
                frozenset({Skill.SET, Skill.ATTACK}), team,
                "Perfect Pass. Transition.",
            )

    if skill is Skill.ATTACK:
        if outcome.tag is OutcomeTag.KILL_FORCED:
            return RallyState(
                frozenset({Skill.DIG, Skill.BLOCK}), opponent,
                "Select the opponent who committed the error.",
            )
        if outcome.is_win:
            return RallyState(SERVE_ONLY, team, "Kill! Serve again.")

    if outcome.ends_rally:
        return RallyState(SERVE_ONLY, serving_team, "Point Awarded. Next Serve.")

    flow = STANDARD_FLOW[skill]
    acting = team if flow.same_team else opponent
    return RallyState(flow.allowed, acting)


def is_action_allowed(skill: Skill, team: TeamId, state: RallyState) -> bool:
    """Check a proposed skill/team pair against the rally state."""
    return team is state.acting_team and skill in state.allowed_skills
