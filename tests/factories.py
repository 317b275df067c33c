"""
Shared builders for a standard two-team lineup.

Each team has players <team>1..<team>6 standing in slots 1..6 (middles in
slots 2 and 5, setter in 6) plus a libero <team>L on the bench.
"""

from typing import Optional

from models.court import CourtState
from models.libero import LiberoConfig
from models.match import MatchState, SetRules
from models.player import Player, Position, TeamId


ROSTER_POSITIONS = (
    (1, Position.OUTSIDE_HITTER),
    (2, Position.MIDDLE_BLOCKER),
    (3, Position.OPPOSITE),
    (4, Position.OUTSIDE_HITTER),
    (5, Position.MIDDLE_BLOCKER),
    (6, Position.SETTER),
)


def make_roster(team: TeamId) -> tuple[Player, ...]:
    players = [
        Player(team, f"{team.value} Player {n}", n, position, id=f"{team.value}{n}")
        for n, position in ROSTER_POSITIONS
    ]
    players.append(Player(team, f"{team.value} Libero", 7, Position.LIBERO, id=f"{team.value}L"))
    return tuple(players)


def starting_court(team: TeamId) -> CourtState:
    return CourtState.from_mapping({n: f"{team.value}{n}" for n, _ in ROSTER_POSITIONS})


def libero_config(team: TeamId, replacements=(2, 5), enabled: bool = True) -> LiberoConfig:
    return LiberoConfig(
        enabled=enabled,
        libero_id=f"{team.value}L",
        replacement_ids=tuple(f"{team.value}{n}" for n in replacements),
    )


def build_match(serving_team: TeamId = TeamId.A, rules: Optional[SetRules] = None) -> MatchState:
    return MatchState(
        players=make_roster(TeamId.A) + make_roster(TeamId.B),
        court_a=starting_court(TeamId.A),
        court_b=starting_court(TeamId.B),
        serving_team=serving_team,
        rules=rules or SetRules(),
    )
