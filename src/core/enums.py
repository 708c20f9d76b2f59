"""Core enums used across the application."""

from enum import Enum as PyEnum


class ActionType(str, PyEnum):
    """Rate-limited action families. Each family has its own counter per client."""

    AUTH = "auth"
    MODERATION = "moderation"


class AuditLevel(str, PyEnum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
