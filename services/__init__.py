"""
VolleyTrack Services

Application services for event routing.
"""

from services.event_bus import EventBus

__all__ = ["EventBus"]
