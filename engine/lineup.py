"""
Lineup transitions - roster edits and court mutations.

Every court change goes through commit_court(), which re-runs libero
automation for the team and rejects the change outright if a libero would end
up in the front row.
"""

import logging
from dataclasses import replace
from typing import Iterable, Optional

from models.court import CourtSide, CourtState, RotationSlot
from models.libero import MAX_REPLACEMENTS, LiberoConfig, LiberoSwap
from models.match import Advisory, MatchState, Severity, Transition
from models.player import Player, Position, TeamId
from engine.libero import apply_libero_automation, release_swap
from engine.rotation import is_forward_for_side, rotate

logger = logging.getLogger(__name__)


def commit_court(state: MatchState, team: TeamId, court: CourtState,
                 rotation: Optional[bool] = None) -> Transition:
    """
    Apply a proposed court for `team` after a libero automation pass.

    Returns the unchanged state with an ERROR advisory when the result would
    be illegal.
    """
    result = apply_libero_automation(
        team,
        court,
        state.roster(team),
        state.libero_config(team),
        state.swap(team),
        state.serving_team,
        rotation,
    )
    if result.advisory is not None and result.advisory.severity is Severity.ERROR:
        logger.info("Rejected court change for team %s: %s", team.value, result.advisory.message)
        return Transition(state, (result.advisory,))

    next_state = state.with_court(team, result.court).with_swap(team, result.swap)
    return Transition(next_state, (result.advisory,) if result.advisory else ())


def on_court_ids(state: MatchState, team: TeamId) -> list[str]:
    """Ids of the players currently on `team`'s court."""
    return state.court(team).player_ids()


# ============ Roster ============

def add_player(state: MatchState, player: Player) -> Transition:
    if state.player(player.id) is not None:
        return Transition(state, (Advisory.warn(f"Player {player.id} is already on the roster"),))

    advisories = ()
    if _jersey_taken(state.players, player):
        advisories = (Advisory.warn(
            f"Team {player.team.value} already has a #{player.jersey_number}"
        ),)
    return Transition(replace(state, players=state.players + (player,)), advisories)


def update_player(state: MatchState, player_id: str, **changes) -> Transition:
    """
    Edit a rostered player's name, jersey number or position.

    The id and team are fixed for the life of the player.
    """
    current = state.player(player_id)
    if current is None:
        return Transition(state, (Advisory.warn(f"Unknown player {player_id}"),))

    allowed = {"name", "jersey_number", "position"}
    unknown = set(changes) - allowed
    if unknown:
        return Transition(state, (Advisory.warn(
            f"Cannot change {', '.join(sorted(unknown))} of an existing player"
        ),))

    if "position" in changes and not isinstance(changes["position"], Position):
        changes["position"] = Position.from_label(changes["position"])

    updated = replace(current, **changes)
    players = tuple(updated if p.id == player_id else p for p in state.players)
    next_state = replace(state, players=players)

    # A position change can turn an on-court player into a front-row libero
    transition = commit_court(next_state, updated.team, next_state.court(updated.team))
    if transition.rejected:
        return Transition(state, transition.advisories)

    advisories = transition.advisories
    if _jersey_taken(players, updated):
        advisories += (Advisory.warn(
            f"Team {updated.team.value} already has a #{updated.jersey_number}"
        ),)
    return Transition(transition.state, advisories)


def remove_player(state: MatchState, player_id: str) -> Transition:
    if state.player(player_id) is None:
        return Transition(state, (Advisory.warn(f"Unknown player {player_id}"),))
    players = tuple(p for p in state.players if p.id != player_id)
    return Transition(_prune_missing(replace(state, players=players)))


def set_players(state: MatchState, players: Iterable[Player]) -> Transition:
    """Replace the whole roster, dropping duplicate ids."""
    unique: dict[str, Player] = {}
    for p in players:
        unique.setdefault(p.id, p)
    return Transition(_prune_missing(replace(state, players=tuple(unique.values()))))


def _jersey_taken(players: Iterable[Player], player: Player) -> bool:
    if not player.jersey_number:
        return False
    return any(
        p.team is player.team and p.jersey_number == player.jersey_number and p.id != player.id
        for p in players
    )


def _prune_missing(state: MatchState) -> MatchState:
    """Clear every court slot, libero setting and swap that names an unknown player."""
    for team in TeamId:
        known = {p.id for p in state.roster(team)}

        court = state.court(team)
        for slot, player_id in court.items():
            if player_id is not None and player_id not in known:
                court = court.with_player(slot, None)

        config = state.libero_config(team)
        config = replace(
            config,
            libero_id=config.libero_id if config.libero_id in known else None,
            replacement_ids=tuple(r for r in config.replacement_ids if r in known),
        )

        swap = state.swap(team)
        if swap.active and (swap.libero_id not in known or swap.replaced_id not in known):
            swap = LiberoSwap.inactive()

        state = state.with_court(team, court).with_libero_config(team, config).with_swap(team, swap)
    return state


# ============ Court ============

def assign_player(state: MatchState, team: TeamId, slot: RotationSlot, player_id: str) -> Transition:
    """Put a rostered player into a slot, replacing whoever stood there."""
    slot = RotationSlot(slot)
    player = state.player(player_id)
    if player is None or player.team is not team:
        return Transition(state, (Advisory.warn(f"Player {player_id} is not on team {team.value}"),))

    court = state.court(team)
    if court.contains(player_id):
        return Transition(state, (Advisory.warn(f"{player.name or player_id} is already on court"),))

    return commit_court(state, team, court.with_player(slot, player_id))


def substitute_player(state: MatchState, team: TeamId, slot: RotationSlot, player_id: str) -> Transition:
    return assign_player(state, team, slot, player_id)


def clear_slot(state: MatchState, team: TeamId, slot: RotationSlot) -> Transition:
    court = state.court(team).with_player(RotationSlot(slot), None)
    return commit_court(state, team, court)


def swap_slots(state: MatchState, team: TeamId, first: RotationSlot, second: RotationSlot) -> Transition:
    """Exchange the occupants of two slots of the same court."""
    first, second = RotationSlot(first), RotationSlot(second)
    court = state.court(team)
    swapped = court.with_player(first, court[second]).with_player(second, court[first])
    return commit_court(state, team, swapped)


def rotate_team(state: MatchState, team: TeamId, forward: bool = True) -> Transition:
    """Rotate a team one position around the serving order."""
    return commit_court(state, team, rotate(state.court(team), forward), rotation=forward)


def rotate_side(state: MatchState, side: CourtSide, clockwise: bool = True) -> Transition:
    """Rotate whichever team is drawn on `side`, in the on-screen direction."""
    team = state.left_team if side is CourtSide.LEFT else state.left_team.opponent
    return rotate_team(state, team, forward=is_forward_for_side(side, clockwise))


def reset_court(state: MatchState, team: TeamId) -> Transition:
    next_state = state.with_court(team, CourtState.empty()).with_swap(team, LiberoSwap.inactive())
    return Transition(next_state)


def swap_sides(state: MatchState) -> Transition:
    return Transition(replace(state, left_team=state.left_team.opponent))


# ============ Libero configuration ============

_UNSET = object()


def set_libero_config(state: MatchState, team: TeamId, enabled: Optional[bool] = None,
                      libero_id=_UNSET, replacement_ids: Optional[Iterable[str]] = None) -> Transition:
    """
    Patch a team's libero configuration and re-run automation.

    Unknown ids are dropped, the libero cannot be its own replacement, and
    only the first two replacements are kept.
    """
    original = state
    roster_ids = {p.id for p in state.roster(team)}
    current = state.libero_config(team)
    advisories: tuple[Advisory, ...] = ()

    enabled_ = current.enabled if enabled is None else bool(enabled)

    libero_ = current.libero_id
    if libero_id is not _UNSET:
        if libero_id is not None and libero_id not in roster_ids:
            return Transition(state, (Advisory.warn(f"Player {libero_id} is not on team {team.value}"),))
        libero_ = libero_id

    # LiberoConfig refuses more than two replacements, so trim the plain ids first
    requested = current.replacement_ids if replacement_ids is None else tuple(dict.fromkeys(replacement_ids))
    cleaned = tuple(r for r in requested if r in roster_ids and r != libero_)
    if len(cleaned) > MAX_REPLACEMENTS:
        advisories += (Advisory.warn(f"Only the first {MAX_REPLACEMENTS} libero replacements are kept"),)
        cleaned = cleaned[:MAX_REPLACEMENTS]
    config = LiberoConfig(enabled=enabled_, libero_id=libero_, replacement_ids=cleaned)

    court = state.court(team)
    swap = state.swap(team)
    if swap.active and (not config.enabled or swap.libero_id != config.libero_id
                        or swap.replaced_id not in config.replacement_ids):
        court = release_swap(court, swap)
        state = state.with_swap(team, LiberoSwap.inactive())

    transition = commit_court(state.with_libero_config(team, config), team, court)
    if transition.rejected:
        return Transition(original, transition.advisories)
    return Transition(transition.state, advisories + transition.advisories)
