"""Typed domain exceptions for rejected scorekeeper commands.

All domain-level rejections use subclasses of ScorekeeperError rather
than raw ValueError. Domain functions raise them and the service boundary
(ScorekeeperService) catches them and converts them into ErrorEvent
responses. A rejected command never changes any state.
"""


class ScorekeeperError(Exception):
    """Base exception for rejected scorekeeper commands."""


class InvalidRoundError(ScorekeeperError):
    """Round input is malformed (missing score, unknown finisher, empty roster, etc.)."""


class InvalidRosterError(ScorekeeperError):
    """Roster or threshold is invalid, or the roster cannot be edited in the current status."""


class EmptyLedgerError(ScorekeeperError):
    """Undo was requested but no round has been committed."""


class InvalidFormatError(ScorekeeperError):
    """A history import payload does not have the expected shape."""


class HistoryEntryNotFoundError(ScorekeeperError):
    """No history entry exists with the requested id.

    Attributes:
        entry_id: The id that was looked up.

    """

    def __init__(self, entry_id: str) -> None:
        self.entry_id = entry_id
        super().__init__(f"history entry {entry_id!r} not found")


class UnsupportedSettingsError(ScorekeeperError):
    """Game settings contain values the engine cannot honor."""


class SnapshotSaveError(ScorekeeperError):
    """The snapshot could not be written to storage; the command is rolled back."""
