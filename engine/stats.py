"""
Statistics Aggregator - counting stats and player-of-the-game ratings.

All functions here are pure and pull-based: they derive views from an event
log and never touch match state. Aggregates only depend on which events are
passed in, not on how they were split between archived sets and the live log.
"""

import enum
from dataclasses import dataclass, field
from typing import Iterable, Optional

from models.action import ActionEvent, OutcomeTag, Skill
from models.match import MatchState
from models.player import Player, Position, RoleBucket, TeamId


class StatCategory(enum.Enum):
    """The nine counting categories."""
    SERVE = "serve"
    RECEPTION = "reception"
    RECEPTION_FAULT = "reception_fault"
    DIG = "dig"
    DIG_FAULT = "dig_fault"
    ATTACK = "attack"
    BLOCK = "block"
    SET = "set"
    SET_FAULT = "set_fault"


_KILL_TAGS = frozenset({OutcomeTag.KILL, OutcomeTag.KILL_FORCED, OutcomeTag.POINT})
_BLOCK_TAGS = frozenset({OutcomeTag.BLOCK_POINT, OutcomeTag.POINT})

# Player-of-the-game weights per role bucket.
RATING_WEIGHTS: dict[RoleBucket, dict[StatCategory, float]] = {
    RoleBucket.WINGER: {
        StatCategory.SERVE: 1.0,
        StatCategory.RECEPTION: 1.0,
        StatCategory.RECEPTION_FAULT: -1.0,
        StatCategory.DIG: 1.0,
        StatCategory.DIG_FAULT: -1.0,
        StatCategory.ATTACK: 1.0,
        StatCategory.BLOCK: 1.0,
        StatCategory.SET: 0.5,
        StatCategory.SET_FAULT: -0.5,
    },
    RoleBucket.MIDDLE: {
        StatCategory.SERVE: 1.0,
        StatCategory.RECEPTION: 1.0,
        StatCategory.RECEPTION_FAULT: -1.0,
        StatCategory.DIG: 1.0,
        StatCategory.DIG_FAULT: -1.0,
        StatCategory.ATTACK: 2.0,
        StatCategory.BLOCK: 2.0,
        StatCategory.SET: 0.5,
        StatCategory.SET_FAULT: -0.5,
    },
    RoleBucket.LIBERO: {
        StatCategory.SERVE: 0.0,
        StatCategory.RECEPTION: 2.0,
        StatCategory.RECEPTION_FAULT: -1.5,
        StatCategory.DIG: 1.5,
        StatCategory.DIG_FAULT: -1.0,
        StatCategory.ATTACK: 0.0,
        StatCategory.BLOCK: 0.0,
        StatCategory.SET: 0.5,
        StatCategory.SET_FAULT: -0.5,
    },
    RoleBucket.SETTER: {
        StatCategory.SERVE: 1.0,
        StatCategory.RECEPTION: 1.0,
        StatCategory.RECEPTION_FAULT: -1.0,
        StatCategory.DIG: 1.0,
        StatCategory.DIG_FAULT: -1.0,
        StatCategory.ATTACK: 1.0,
        StatCategory.BLOCK: 1.0,
        StatCategory.SET: 1.0,
        StatCategory.SET_FAULT: -1.0,
    },
}


def classify(skill: Skill, tag: OutcomeTag, is_error: bool) -> Optional[StatCategory]:
    """
    Map a skill/outcome pair onto a counting category.

    Attacks and blocks only count when they score; receptions only count as
    positive when excellent. Returns None for touches that are not counted.
    """
    if skill is Skill.SERVE:
        return None if is_error else StatCategory.SERVE
    if skill is Skill.RECEIVE:
        if is_error:
            return StatCategory.RECEPTION_FAULT
        return StatCategory.RECEPTION if tag is OutcomeTag.EXCELLENT else None
    if skill is Skill.DIG:
        return StatCategory.DIG_FAULT if is_error else StatCategory.DIG
    if skill is Skill.SET:
        return StatCategory.SET_FAULT if is_error else StatCategory.SET
    if skill is Skill.ATTACK:
        return StatCategory.ATTACK if tag in _KILL_TAGS else None
    if skill is Skill.BLOCK:
        return StatCategory.BLOCK if tag in _BLOCK_TAGS else None
    return None


def classify_event(event: ActionEvent) -> Optional[StatCategory]:
    return classify(event.skill, event.outcome.tag, event.outcome.is_error)


@dataclass
class PlayerStats:
    """Per-player tallies over a set of events."""
    player_id: str
    counts: dict[StatCategory, int] = field(
        default_factory=lambda: {category: 0 for category in StatCategory}
    )
    rating: float = 0.0
    point_credits: int = 0
    error_credits: int = 0

    def count(self, category: StatCategory) -> int:
        return self.counts.get(category, 0)

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "counts": {c.value: n for c, n in self.counts.items()},
            "rating": self.rating,
            "point_credits": self.point_credits,
            "error_credits": self.error_credits,
        }


def rate(counts: dict[StatCategory, int], role: RoleBucket) -> float:
    """Weighted player-of-the-game score."""
    weights = RATING_WEIGHTS[role]
    return sum(weights[category] * n for category, n in counts.items())


def compute_stats(players: Iterable[Player], events: Iterable[ActionEvent]) -> dict[str, PlayerStats]:
    """
    Aggregate per-player stats.

    Args:
        players: Roster used to look up each player's role bucket
        events: Any collection of events, in any order

    Returns:
        Mapping of player id -> PlayerStats for every player with an event.
        Players no longer on the roster are rated as wingers.
    """
    roles = {p.id: p.role for p in players}
    stats: dict[str, PlayerStats] = {}

    for event in events:
        entry = stats.setdefault(event.player_id, PlayerStats(event.player_id))

        category = classify_event(event)
        if category is not None:
            entry.counts[category] += 1

        if event.point_winner is not None:
            if event.point_winner is event.team:
                entry.point_credits += 1
            else:
                entry.error_credits += 1

    for player_id, entry in stats.items():
        entry.rating = rate(entry.counts, roles.get(player_id, RoleBucket.WINGER))

    return stats


def all_events(state: MatchState) -> tuple[ActionEvent, ...]:
    """Live events followed by every archived set's events."""
    archived = tuple(e for record in state.saved_sets for e in record.events)
    return tuple(state.events) + archived


def match_stats(state: MatchState) -> dict[str, PlayerStats]:
    """Per-player stats over the whole match so far."""
    return compute_stats(state.players, all_events(state))


@dataclass
class TeamTotals:
    """Point rollups for one team."""
    points: int = 0
    kills: int = 0
    aces: int = 0
    block_points: int = 0
    errors: int = 0


def team_totals(events: Iterable[ActionEvent]) -> dict[TeamId, TeamTotals]:
    """
    Roll points up by team from the recorded point winners.

    A point credited to the acting team counts as a kill, ace or block point
    depending on the skill; a point handed to the opponent counts as an error.
    """
    totals = {TeamId.A: TeamTotals(), TeamId.B: TeamTotals()}
    for event in events:
        if event.point_winner is None:
            continue
        entry = totals[event.team]
        if event.point_winner is event.team:
            entry.points += 1
            if event.skill is Skill.ATTACK:
                entry.kills += 1
            elif event.skill is Skill.SERVE:
                entry.aces += 1
            elif event.skill is Skill.BLOCK:
                entry.block_points += 1
        else:
            entry.errors += 1
    return totals


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked row of the match summary."""
    player_id: str
    name: str
    jersey_number: Optional[int]
    team: Optional[TeamId]
    position: Optional[Position]
    rating: float
    point_credits: int
    error_credits: int


def ranked(players: Iterable[Player], stats: dict[str, PlayerStats]) -> list[LeaderboardEntry]:
    """All players with stats, best rating first, point credits as tie-breaker."""
    by_id = {p.id: p for p in players}
    entries = []
    for player_id, s in stats.items():
        p = by_id.get(player_id)
        entries.append(LeaderboardEntry(
            player_id=player_id,
            name=p.name if p else "Unknown",
            jersey_number=p.jersey_number if p else None,
            team=p.team if p else None,
            position=p.position if p else None,
            rating=s.rating,
            point_credits=s.point_credits,
            error_credits=s.error_credits,
        ))
    entries.sort(key=lambda e: (-e.rating, -e.point_credits))
    return entries


def leaderboards(players: Iterable[Player],
                 stats: dict[str, PlayerStats]) -> dict[Optional[Position], list[LeaderboardEntry]]:
    """Rankings split by position; players no longer on the roster fall under None."""
    boards: dict[Optional[Position], list[LeaderboardEntry]] = {pos: [] for pos in Position}
    for entry in ranked(players, stats):
        boards.setdefault(entry.position, []).append(entry)
    return boards


def player_of_the_game(players: Iterable[Player],
                       stats: dict[str, PlayerStats]) -> Optional[LeaderboardEntry]:
    entries = ranked(players, stats)
    return entries[0] if entries else None
