"""
Exception types raised by DatabaseClient implementations.

RecordStore never wraps or translates these; they reach the caller as raised.
"""


class StoreError(Exception):
    """Base class for record store failures."""


class NotFoundError(StoreError):
    """A thread, collection or record does not exist."""


class StoreUnavailableError(StoreError):
    """Transport or authentication failure talking to the database."""


class ConflictError(StoreError):
    """An instance with the submitted identifier already exists."""


class InvalidThreadIDError(ValueError):
    """A string could not be decoded as a ThreadID."""
