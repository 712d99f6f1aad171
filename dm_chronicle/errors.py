"""Exceptions raised by the core. The web layer maps them to HTTP statuses."""


class ChronicleError(Exception):
    """Base class for game errors."""


class AccessDenied(ChronicleError):
    """The caller does not own the game session."""


class GameNotFound(ChronicleError):
    """The game session does not exist."""


class ScenarioNotFound(ChronicleError):
    """The scenario is not in the catalog."""


class PersistenceError(ChronicleError):
    """The game store could not save the state."""


class StaleGameError(PersistenceError):
    """The stored game changed since it was loaded (version mismatch)."""


class CharacterError(ChronicleError, ValueError):
    """Invalid character-creation input."""


class CorruptGameError(ChronicleError):
    """A stored game file could not be read or validated."""
