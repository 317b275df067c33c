"""
VolleyTrack Application Controller

Top-level controller that wires together all application components.
"""

import logging
from typing import Any, Optional

from PySide6.QtCore import QObject

from services.event_bus import EventBus
from engine.match_engine import MatchEngine
from models.match import SetRules
from config import load_set_rules

logger = logging.getLogger(__name__)


class VolleyTrackApp(QObject):
    """
    Top-level application controller.
    Wires together all application components.
    """

    def __init__(self, rules: Optional[SetRules] = None):
        super().__init__()

        # Core services
        self.event_bus = EventBus()
        self.default_rules = rules or load_set_rules()

        # Active match engine (created per-match)
        self.match_engine: Optional[MatchEngine] = None

    def create_match(self, rules: Optional[SetRules] = None) -> MatchEngine:
        """
        Create a new match.

        Args:
            rules: Match format; defaults to the configured set rules

        Returns:
            The created MatchEngine instance
        """
        self.match_engine = MatchEngine(rules or self.default_rules)
        self._connect()
        logger.info("Created match (best of %d)", self.match_engine.state.rules.best_of)
        self.event_bus.match_created.emit(self.match_engine)
        return self.match_engine

    def restore_match(self, data: Any) -> MatchEngine:
        """Create a match from a stored snapshot."""
        engine = self.create_match()
        transition = engine.restore(data)
        corrections = len(transition.advisories)
        if corrections:
            self.event_bus.emit_message("warning", f"Match restored with {corrections} correction(s)")
        else:
            self.event_bus.emit_message("info", "Match restored")
        return engine

    def reset_match(self) -> None:
        """Start the current match over, keeping rosters and libero setup."""
        if self.match_engine is None:
            return
        self.match_engine.reset_match()
        self.event_bus.match_reset.emit()

    def _connect(self) -> None:
        engine = self.match_engine
        engine.state_changed.connect(self.event_bus.state_changed.emit)
        engine.score_updated.connect(self.event_bus.score_updated.emit)
        engine.action_logged.connect(self.event_bus.action_logged.emit)
        engine.action_undone.connect(self.event_bus.action_undone.emit)
        engine.set_completed.connect(self.event_bus.set_completed.emit)
        engine.match_completed.connect(self.event_bus.match_completed.emit)
        engine.advisory_raised.connect(self.event_bus.advisory_raised.emit)
