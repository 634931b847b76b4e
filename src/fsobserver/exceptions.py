"""Custom exceptions for the fsobserver package."""


class ObserverError(Exception):
    """Base exception for all observer errors."""
    pass


class RawSourceError(ObserverError):
    """The raw notification source failed."""
    pass


class SourceStartError(RawSourceError):
    """The raw notification source could not be subscribed."""
    pass


class EnumerationError(RawSourceError):
    """Full-tree enumeration of the watched root failed."""
    pass


class RootNotFoundError(ObserverError):
    """Watched root folder does not exist."""
    pass


class ObserverAlreadyRunningError(ObserverError):
    """Observer is already running."""
    pass
