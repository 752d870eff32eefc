"""Core app configuration and database."""

from secureship.core.config import get_settings, settings
from secureship.core.database import get_session_factory

__all__ = ["get_settings", "settings", "get_session_factory"]
