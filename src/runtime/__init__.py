"""
Runtime wiring: the watch session that owns all collaborators and timers.
"""

from .session import WatchSession, create_session_from_config

__all__ = ["WatchSession", "create_session_from_config"]
