"""Exceptions raised by the task store and the services built on it."""


class CompassError(Exception):
    """Base class for every error the package raises on purpose."""


class NotFoundError(CompassError, LookupError):
    """A task, project or planning session with the given ID does not exist."""


class AlreadyExistsError(CompassError):
    """An entity with the same ID has already been stored."""