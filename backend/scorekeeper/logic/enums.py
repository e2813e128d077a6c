"""Enumerations shared across the scorekeeper domain."""

from enum import StrEnum


class GameStatus(StrEnum):
    """Lifecycle status of a scored game."""

    SETUP = "SETUP"
    PLAYING = "PLAYING"
    FINISHED = "FINISHED"


class GameType(StrEnum):
    """How a completed game was played."""

    AI = "ai"
    LOCAL = "local"
    ONLINE = "online"


class SessionKind(StrEnum):
    """Discriminant selecting which active game representation is in use."""

    MANUAL = "manual"  # scores entered by hand at the table
    VIRTUAL = "virtual"  # played against AI players
    ONLINE = "online"  # driven by the external online-session component


class ErrorCode(StrEnum):
    """Error codes reported to callers for rejected commands."""

    VALIDATION_ERROR = "validation_error"
    EMPTY_LEDGER = "empty_ledger"
    INVALID_FORMAT = "invalid_format"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"
