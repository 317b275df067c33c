"""
Pydantic schemas for data validation.

Raw input from the presentation layer and stored match snapshots are
validated here before the engine ever sees them.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, Field, ValidationError, field_validator

from models.action import ActionEvent, MatchSnapshot, Outcome, OutcomeTag, Skill, parse_outcome, parse_skill
from models.court import CourtSide, CourtState, RotationSlot
from models.libero import MAX_REPLACEMENTS, LiberoConfig, LiberoSwap
from models.match import VALID_BEST_OF, Advisory, MatchState, SetRecord, SetRules
from models.player import Player, Position, TeamId

logger = logging.getLogger(__name__)


# ============ Player Schemas ============

class PlayerCreate(BaseModel):
    """Schema for adding a player to the roster."""
    team: TeamId
    name: str = Field(..., min_length=1, max_length=200)
    jersey_number: int = Field(0, ge=0, le=99)
    position: Position = Position.OUTSIDE_HITTER

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

    @field_validator("position", mode="before")
    @classmethod
    def normalize_position(cls, v):
        if isinstance(v, Position):
            return v
        return Position.from_label(v)

    def to_player(self) -> Player:
        return Player(
            team=self.team,
            name=self.name,
            jersey_number=self.jersey_number,
            position=self.position,
        )


class PlayerUpdate(BaseModel):
    """Schema for editing an existing player; only the given fields change."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    jersey_number: Optional[int] = Field(None, ge=0, le=99)
    position: Optional[Position] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip() if v is not None else v

    @field_validator("position", mode="before")
    @classmethod
    def normalize_position(cls, v):
        if v is None or isinstance(v, Position):
            return v
        return Position.from_label(v)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class StoredPlayer(PlayerCreate):
    """A roster entry as it was stored, id included."""
    id: str = Field(..., min_length=1)

    def to_player(self) -> Player:
        return replace(super().to_player(), id=self.id)


# ============ Libero Schemas ============

class LiberoConfigUpdate(BaseModel):
    """
    Schema for the libero setup form.

    Only fields that were actually supplied are applied, so an explicit
    `libero_id=None` clears the libero while an omitted one leaves it alone.
    """
    enabled: Optional[bool] = None
    libero_id: Optional[str] = None
    replacement_ids: Optional[list[str]] = None

    @field_validator("libero_id")
    @classmethod
    def blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    def as_kwargs(self) -> dict:
        return {name: getattr(self, name) for name in self.model_fields_set}


class StoredLibero(BaseModel):
    enabled: bool = False
    libero_id: Optional[str] = None
    replacement_ids: list[str] = Field(default_factory=list)


class StoredSwap(BaseModel):
    active: bool = False
    slot: Optional[int] = Field(None, ge=1, le=6)
    libero_id: Optional[str] = None
    replaced_id: Optional[str] = None

    def to_swap(self) -> LiberoSwap:
        if not (self.active and self.slot and self.libero_id and self.replaced_id):
            return LiberoSwap.inactive()
        return LiberoSwap.start(RotationSlot(self.slot), self.libero_id, self.replaced_id)

    @classmethod
    def from_swap(cls, swap: LiberoSwap) -> "StoredSwap":
        return cls(
            active=swap.active,
            slot=int(swap.slot) if swap.slot is not None else None,
            libero_id=swap.libero_id,
            replaced_id=swap.replaced_id,
        )


# ============ Set Rules Schemas ============

class SetRulesUpdate(BaseModel):
    """Schema for changing the match format; unset fields keep their value."""
    best_of: Optional[int] = Field(None, ge=1, le=7)
    points_to_win: Optional[int] = Field(None, ge=1, le=99)
    deciding_set_points: Optional[int] = Field(None, ge=1, le=99)
    win_by: Optional[int] = Field(None, ge=1, le=10)
    reset_courts_between_sets: Optional[bool] = None

    @field_validator("best_of")
    @classmethod
    def valid_best_of(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in VALID_BEST_OF:
            raise ValueError(f"best_of must be one of {sorted(VALID_BEST_OF)}")
        return v

    def apply(self, rules: SetRules) -> SetRules:
        return replace(rules, **self.model_dump(exclude_none=True))

    @classmethod
    def from_rules(cls, rules: SetRules) -> "SetRulesUpdate":
        return cls(
            best_of=rules.best_of,
            points_to_win=rules.points_to_win,
            deciding_set_points=rules.deciding_set_points,
            win_by=rules.win_by,
            reset_courts_between_sets=rules.reset_courts_between_sets,
        )


# ============ Action Schemas ============

class ActionCreate(BaseModel):
    """Schema for a raw "log this touch" request."""
    team: TeamId
    slot: int = Field(..., ge=1, le=6)
    skill: Skill
    outcome: OutcomeTag

    @field_validator("skill", mode="before")
    @classmethod
    def coerce_skill(cls, v):
        return parse_skill(v)

    @field_validator("outcome", mode="before")
    @classmethod
    def coerce_outcome(cls, v):
        return parse_outcome(v).tag


# ============ Court Reference Schemas ============

class TeamRef(BaseModel):
    """Schema for a raw team label."""
    team: TeamId


class TeamValue(TeamRef):
    """A team label paired with a number, e.g. a manual score."""
    value: int


class CourtTarget(TeamRef):
    """Schema for a raw team + rotation slot reference."""
    slot: int = Field(..., ge=1, le=6)

    @property
    def rotation_slot(self) -> RotationSlot:
        return RotationSlot(self.slot)


class SlotPair(TeamRef):
    """Two slots of the same court."""
    first: int = Field(..., ge=1, le=6)
    second: int = Field(..., ge=1, le=6)


class SideRef(BaseModel):
    """Schema for a raw court side label ("left"/"right")."""
    side: CourtSide


# ============ Stored Match Schemas ============

def _validate_court(v: Any) -> dict[int, Optional[str]]:
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise ValueError("Court must be a mapping of slot -> player id")
    court = {}
    for slot, player_id in v.items():
        number = int(slot)
        if number not in range(1, 7):
            raise ValueError(f"Invalid slot {slot!r}")
        court[number] = str(player_id) if player_id else None
    return court


CourtMapping = Annotated[dict[int, Optional[str]], BeforeValidator(_validate_court)]


class StoredSnapshot(BaseModel):
    score_a: int = Field(0, ge=0)
    score_b: int = Field(0, ge=0)
    serving_team: TeamId = TeamId.A
    court_a: CourtMapping = Field(default_factory=dict)
    court_b: CourtMapping = Field(default_factory=dict)
    swap_a: StoredSwap = Field(default_factory=StoredSwap)
    swap_b: StoredSwap = Field(default_factory=StoredSwap)
    rally_number: int = Field(0, ge=0)
    service_run: int = Field(0, ge=0)

    def to_snapshot(self) -> MatchSnapshot:
        return MatchSnapshot(
            score_a=self.score_a,
            score_b=self.score_b,
            serving_team=self.serving_team,
            court_a=CourtState.from_mapping(self.court_a),
            court_b=CourtState.from_mapping(self.court_b),
            swap_a=self.swap_a.to_swap(),
            swap_b=self.swap_b.to_swap(),
            rally_number=self.rally_number,
            service_run=self.service_run,
        )

    @classmethod
    def from_snapshot(cls, snapshot: MatchSnapshot) -> "StoredSnapshot":
        return cls(
            score_a=snapshot.score_a,
            score_b=snapshot.score_b,
            serving_team=snapshot.serving_team,
            court_a=snapshot.court_a.as_mapping(),
            court_b=snapshot.court_b.as_mapping(),
            swap_a=StoredSwap.from_swap(snapshot.swap_a),
            swap_b=StoredSwap.from_swap(snapshot.swap_b),
            rally_number=snapshot.rally_number,
            service_run=snapshot.service_run,
        )


class StoredEvent(ActionCreate):
    """A logged action as it was stored."""
    id: str = Field(..., min_length=1)
    player_id: str = Field(..., min_length=1)
    timestamp: datetime
    point_winner: Optional[TeamId] = None
    snapshot: Optional[StoredSnapshot] = None

    def to_event(self, snapshot: MatchSnapshot) -> ActionEvent:
        """Build the event around an already cross-validated snapshot."""
        return ActionEvent(
            team=self.team,
            player_id=self.player_id,
            slot=RotationSlot(self.slot),
            skill=self.skill,
            outcome=Outcome(self.outcome),
            snapshot=snapshot,
            point_winner=self.point_winner,
            id=self.id,
            timestamp=self.timestamp,
        )

    @classmethod
    def from_event(cls, event: ActionEvent) -> "StoredEvent":
        return cls(
            id=event.id,
            team=event.team,
            player_id=event.player_id,
            slot=int(event.slot),
            skill=event.skill,
            outcome=event.outcome.tag,
            timestamp=event.timestamp,
            point_winner=event.point_winner,
            snapshot=StoredSnapshot.from_snapshot(event.snapshot),
        )


class StoredSet(BaseModel):
    set_number: int = Field(..., ge=1)
    winner: TeamId
    score_a: int = Field(..., ge=0)
    score_b: int = Field(..., ge=0)
    events: list[Any] = Field(default_factory=list)


class StoredMatch(BaseModel):
    """
    Top-level stored match layout.

    Collections are kept raw here and parsed record by record, so one bad
    player or event never discards the rest of the match.
    """
    players: list[Any] = Field(default_factory=list)
    court_a: CourtMapping = Field(default_factory=dict)
    court_b: CourtMapping = Field(default_factory=dict)
    left_team: TeamId = TeamId.A
    score_a: int = Field(0, ge=0)
    score_b: int = Field(0, ge=0)
    serving_team: TeamId = TeamId.A
    set_number: int = Field(1, ge=1)
    sets_won_a: int = Field(0, ge=0)
    sets_won_b: int = Field(0, ge=0)
    events: list[Any] = Field(default_factory=list)
    saved_sets: list[Any] = Field(default_factory=list)
    libero_a: StoredLibero = Field(default_factory=StoredLibero)
    libero_b: StoredLibero = Field(default_factory=StoredLibero)
    swap_a: StoredSwap = Field(default_factory=StoredSwap)
    swap_b: StoredSwap = Field(default_factory=StoredSwap)
    rally_number: int = Field(0, ge=0)
    service_run: int = Field(0, ge=0)
    rules: SetRulesUpdate = Field(default_factory=SetRulesUpdate)


# ============ Restore / dump ============

def restore_match(data: Any) -> tuple[MatchState, list[Advisory]]:
    """
    Rebuild a MatchState from a stored snapshot.

    Missing fields take their defaults and malformed records are dropped one
    at a time. The result is then cross-validated against the roster: unknown
    players are cleared from courts and libero settings, a libero standing in
    the front row is removed, and swap records that no longer describe the
    court are discarded. The undo snapshot of every stored event goes through
    the same checks.

    Returns:
        Tuple of (state, advisories). Never raises.
    """
    advisories: list[Advisory] = []
    if not isinstance(data, dict):
        advisories.append(Advisory.warn("Stored match is not a mapping; starting fresh"))
        return MatchState(), advisories

    stored = _parse_top_level(data, advisories)

    players = _parse_players(stored.players, advisories)
    known = {p.id: p for p in players}
    rules = stored.rules.apply(SetRules())

    state = MatchState(
        players=players,
        left_team=stored.left_team,
        score_a=stored.score_a,
        score_b=stored.score_b,
        serving_team=stored.serving_team,
        set_number=stored.set_number,
        sets_won_a=stored.sets_won_a,
        sets_won_b=stored.sets_won_b,
        rally_number=stored.rally_number,
        service_run=stored.service_run,
        rules=rules,
    )

    configs: dict[TeamId, LiberoConfig] = {}
    for team, raw_court, raw_libero, raw_swap in (
        (TeamId.A, stored.court_a, stored.libero_a, stored.swap_a),
        (TeamId.B, stored.court_b, stored.libero_b, stored.swap_b),
    ):
        config = configs[team] = _restore_libero(team, raw_libero, known, advisories)
        court = _restore_court(team, raw_court, known, config, advisories)
        swap = _restore_swap(team, raw_swap.to_swap(), court, config, known, advisories)
        state = state.with_libero_config(team, config).with_court(team, court).with_swap(team, swap)

    # Undo snapshots get the same roster and libero checks as the live courts
    fallback = state.snapshot()
    events = tuple(_parse_events(stored.events, fallback, known, configs, advisories))
    saved_sets = tuple(_parse_sets(stored.saved_sets, known, fallback, configs, advisories))
    state = replace(state, events=events, saved_sets=saved_sets)

    for advisory in advisories:
        logger.warning("Restore: %s", advisory.message)
    return state, advisories


def dump_match(state: MatchState) -> dict:
    """Serialise a MatchState into the stored layout (JSON-compatible)."""
    def libero(config: LiberoConfig) -> dict:
        return StoredLibero(
            enabled=config.enabled,
            libero_id=config.libero_id,
            replacement_ids=list(config.replacement_ids),
        ).model_dump(mode="json")

    def events(items) -> list:
        return [StoredEvent.from_event(e).model_dump(mode="json") for e in items]

    return {
        "players": [
            StoredPlayer(
                id=p.id, team=p.team, name=p.name,
                jersey_number=p.jersey_number, position=p.position,
            ).model_dump(mode="json")
            for p in state.players
        ],
        "court_a": state.court_a.as_mapping(),
        "court_b": state.court_b.as_mapping(),
        "left_team": state.left_team.value,
        "score_a": state.score_a,
        "score_b": state.score_b,
        "serving_team": state.serving_team.value,
        "set_number": state.set_number,
        "sets_won_a": state.sets_won_a,
        "sets_won_b": state.sets_won_b,
        "events": events(state.events),
        "saved_sets": [
            {
                "set_number": record.set_number,
                "winner": record.winner.value,
                "score_a": record.score_a,
                "score_b": record.score_b,
                "events": events(record.events),
            }
            for record in state.saved_sets
        ],
        "libero_a": libero(state.libero_a),
        "libero_b": libero(state.libero_b),
        "swap_a": StoredSwap.from_swap(state.swap_a).model_dump(mode="json"),
        "swap_b": StoredSwap.from_swap(state.swap_b).model_dump(mode="json"),
        "rally_number": state.rally_number,
        "service_run": state.service_run,
        "rules": SetRulesUpdate.from_rules(state.rules).model_dump(mode="json"),
    }


def _parse_top_level(data: dict, advisories: list[Advisory]) -> StoredMatch:
    payload = dict(data)
    for _ in range(len(StoredMatch.model_fields) + 1):
        try:
            return StoredMatch.model_validate(payload)
        except ValidationError as exc:
            bad = {err["loc"][0] for err in exc.errors() if err["loc"]}
            if not bad:
                break
            for key in sorted(bad, key=str):
                payload.pop(key, None)
                advisories.append(Advisory.warn(f"Ignored malformed field {key!r}"))
    return StoredMatch()


def _parse_players(raw: list, advisories: list[Advisory]) -> tuple[Player, ...]:
    players: dict[str, Player] = {}
    for idx, record in enumerate(raw):
        try:
            player = StoredPlayer.model_validate(record).to_player()
        except ValidationError:
            advisories.append(Advisory.warn(f"Dropped malformed player record #{idx + 1}"))
            continue
        if player.id in players:
            advisories.append(Advisory.warn(f"Dropped duplicate player {player.id}"))
            continue
        players[player.id] = player
    return tuple(players.values())


def _restore_libero(team: TeamId, raw: StoredLibero, known: dict[str, Player],
                    advisories: list[Advisory]) -> LiberoConfig:
    libero_id = raw.libero_id
    if libero_id is not None and (libero_id not in known or known[libero_id].team is not team):
        advisories.append(Advisory.warn(f"Team {team.value}: cleared unknown libero {libero_id}"))
        libero_id = None

    replacements = []
    for player_id in dict.fromkeys(raw.replacement_ids):
        if player_id in known and known[player_id].team is team and player_id != libero_id:
            replacements.append(player_id)
        else:
            advisories.append(Advisory.warn(
                f"Team {team.value}: dropped unknown libero replacement {player_id}"
            ))
    if len(replacements) > MAX_REPLACEMENTS:
        advisories.append(Advisory.warn(
            f"Team {team.value}: only the first {MAX_REPLACEMENTS} libero replacements are kept"
        ))
        replacements = replacements[:MAX_REPLACEMENTS]

    return LiberoConfig(enabled=raw.enabled, libero_id=libero_id, replacement_ids=tuple(replacements))


def _restore_court(team: TeamId, raw: dict[int, Optional[str]], known: dict[str, Player],
                   config: LiberoConfig, advisories: list[Advisory]) -> CourtState:
    court = CourtState.empty()
    for number in sorted(raw):
        player_id = raw[number]
        if player_id is None:
            continue
        slot = RotationSlot(number)
        player = known.get(player_id)
        if player is None or player.team is not team:
            advisories.append(Advisory.warn(f"Team {team.value}: cleared unknown player from {slot.label}"))
            continue
        if court.contains(player_id):
            advisories.append(Advisory.warn(f"Team {team.value}: {player_id} listed twice on court"))
            continue
        is_libero = player.is_libero or player_id == config.libero_id
        if is_libero and slot.is_front_row:
            advisories.append(Advisory.warn(f"Team {team.value}: removed libero from {slot.label}"))
            continue
        court = court.with_player(slot, player_id)
    return court


def _restore_swap(team: TeamId, swap: LiberoSwap, court: CourtState, config: LiberoConfig,
                  known: dict[str, Player], advisories: list[Advisory]) -> LiberoSwap:
    if not swap.active:
        return swap
    consistent = (
        config.enabled
        and swap.libero_id == config.libero_id
        and swap.slot.is_back_row
        and court[swap.slot] == swap.libero_id
        and swap.replaced_id in known
        and not court.contains(swap.replaced_id)
    )
    if not consistent:
        advisories.append(Advisory.info(f"Team {team.value}: discarded stale libero swap"))
        return LiberoSwap.inactive()
    return swap


def _restore_snapshot(raw: StoredSnapshot, known: dict[str, Player],
                      configs: dict[TeamId, LiberoConfig], advisories: list[Advisory]) -> MatchSnapshot:
    snapshot = raw.to_snapshot()
    court_a = _restore_court(TeamId.A, raw.court_a, known, configs[TeamId.A], advisories)
    court_b = _restore_court(TeamId.B, raw.court_b, known, configs[TeamId.B], advisories)
    return replace(
        snapshot,
        court_a=court_a,
        court_b=court_b,
        swap_a=_restore_swap(TeamId.A, snapshot.swap_a, court_a, configs[TeamId.A], known, advisories),
        swap_b=_restore_swap(TeamId.B, snapshot.swap_b, court_b, configs[TeamId.B], known, advisories),
    )


def _parse_events(raw: list, fallback: MatchSnapshot, known: dict[str, Player],
                  configs: dict[TeamId, LiberoConfig], advisories: list[Advisory]) -> list[ActionEvent]:
    events = []
    seen: set[str] = set()
    for idx, record in enumerate(raw):
        try:
            stored = StoredEvent.model_validate(record)
        except ValidationError:
            advisories.append(Advisory.warn(f"Dropped malformed event record #{idx + 1}"))
            continue
        if stored.id in seen:
            continue
        seen.add(stored.id)

        snapshot = fallback
        if stored.snapshot is not None:
            corrections: list[Advisory] = []
            snapshot = _restore_snapshot(stored.snapshot, known, configs, corrections)
            if corrections:
                advisories.append(Advisory.warn(
                    f"Event {stored.id}: corrected its undo snapshot ({corrections[0].message})"
                ))
        events.append(stored.to_event(snapshot))
    return events


def _parse_sets(raw: list, known: dict[str, Player], fallback: MatchSnapshot,
                configs: dict[TeamId, LiberoConfig], advisories: list[Advisory]) -> list[SetRecord]:
    from engine.stats import compute_stats
    players = tuple(known.values())
    records = []
    for idx, record in enumerate(raw):
        try:
            stored = StoredSet.model_validate(record)
        except ValidationError:
            advisories.append(Advisory.warn(f"Dropped malformed set record #{idx + 1}"))
            continue
        events = tuple(_parse_events(stored.events, fallback, known, configs, advisories))
        records.append(SetRecord(
            set_number=stored.set_number,
            winner=stored.winner,
            score_a=stored.score_a,
            score_b=stored.score_b,
            events=events,
            per_player=compute_stats(players, events),
        ))
    return records
