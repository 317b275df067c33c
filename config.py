"""
VolleyTrack Configuration

Centralized settings, paths, and constants for the application.
"""

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

import appdirs
from pydantic import ValidationError

from models.match import SetRules
from models.schemas import SetRulesUpdate


# Application info
APP_NAME = "VolleyTrack"
APP_AUTHOR = "VolleyTrack"
APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    """Application paths."""
    # Data directory (stores saved matches)
    data_dir: Path = Path(appdirs.user_data_dir(APP_NAME, APP_AUTHOR))

    # Config directory (stores user preferences)
    config_dir: Path = Path(appdirs.user_config_dir(APP_NAME, APP_AUTHOR))

    # Log directory
    log_dir: Path = Path(appdirs.user_log_dir(APP_NAME, APP_AUTHOR))

    @property
    def settings(self) -> Path:
        return self.config_dir / "settings.json"

    @property
    def log_file(self) -> Path:
        return self.log_dir / "volleytrack.log"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        for dir_path in [self.data_dir, self.config_dir, self.log_dir]:
            dir_path.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class MatchSettings:
    """Default match format and roster limits."""
    # Sets in a match (best of N)
    best_of: int = 5

    # Points to take a regular set / the deciding set
    points_to_win: int = 25
    deciding_set_points: int = 15

    # Minimum winning margin
    win_by: int = 2

    # Clear both courts when a set closes
    reset_courts_between_sets: bool = False

    def set_rules(self) -> SetRules:
        return SetRules(
            best_of=self.best_of,
            points_to_win=self.points_to_win,
            deciding_set_points=self.deciding_set_points,
            win_by=self.win_by,
            reset_courts_between_sets=self.reset_courts_between_sets,
        )


@dataclass(frozen=True)
class LogSettings:
    """Log file settings."""
    level: int = logging.INFO
    max_bytes: int = 1_000_000
    backup_count: int = 3
    format: str = "%(asctime)s %(name)s:%(levelname)s: %(message)s"


# Singleton instances
PATHS = Paths()
MATCH_SETTINGS = MatchSettings()
LOG_SETTINGS = LogSettings()


def load_set_rules(settings_path: Optional[Path] = None) -> SetRules:
    """
    Load the default match format.

    The "set_rules" section of settings.json overrides MATCH_SETTINGS field by
    field. A missing, unreadable or invalid file falls back to the defaults.
    """
    path = settings_path or PATHS.settings
    defaults = MATCH_SETTINGS.set_rules()
    if not path.exists():
        return defaults

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return defaults

    section = data.get("set_rules", {}) if isinstance(data, dict) else {}
    try:
        update = SetRulesUpdate.model_validate(section)
    except ValidationError as exc:
        logger.warning("Ignoring invalid set rules in %s: %s", path, exc)
        return defaults
    return update.apply(defaults)


def init_logging(level: Optional[int] = None, log_file: Optional[Path] = None) -> logging.Handler:
    """Attach a rotating file handler to the root logger."""
    path = log_file or PATHS.log_file
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        path,
        maxBytes=LOG_SETTINGS.max_bytes,
        backupCount=LOG_SETTINGS.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_SETTINGS.format))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level if level is not None else LOG_SETTINGS.level)
    return handler


def init_config() -> None:
    """Initialize configuration and create required directories."""
    PATHS.ensure_directories()
    init_logging()
