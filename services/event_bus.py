"""
Event Bus - Central signal hub for inter-module communication.

All modules connect to this single object rather than directly to each other,
so a scoreboard, a stats panel and an autosave hook can all follow the
match engine without knowing about each other.
"""

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Central signal hub for VolleyTrack.

    The EventBus acts as a mediator between all application components:
    - MatchEngine emits rally and scoring events
    - Presentation layers listen and update displays
    - Persistence hooks listen to state changes

    Usage:
        # In VolleyTrackApp
        engine.action_logged.connect(self.event_bus.action_logged.emit)

        # In a scoreboard widget
        self.event_bus.score_updated.connect(self._on_score_updated)
    """

    # ============ Match Lifecycle ============
    match_created = Signal(object)      # MatchEngine
    match_reset = Signal()
    match_completed = Signal(dict)      # Final results dict

    # ============ Set Lifecycle ============
    set_completed = Signal(dict)        # {set_number, winner, score_a, score_b}

    # ============ Rally Events ============
    action_logged = Signal(dict)        # Event details: {id, team, player_id, slot, skill, outcome, ...}
    action_undone = Signal(dict)        # Event that was undone
    score_updated = Signal(object)      # ScoreState dataclass
    state_changed = Signal(object)      # MatchState aggregate

    # ============ Advisories ============
    advisory_raised = Signal(str, str)  # (severity, message)

    # ============ System Events ============
    system_message = Signal(str, str)   # (level, message) - e.g., ("info", "Match restored")

    def __init__(self):
        super().__init__()

    def emit_message(self, level: str, message: str) -> None:
        """Emit a system message (info, warning, error)."""
        self.system_message.emit(level, message)
