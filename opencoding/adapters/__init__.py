"""Adapters package - Bridge between the engine and its consumers."""
from __future__ import annotations

__all__ = [
    "EventBus",
]

from opencoding.adapters.event_bus import EventBus
