"""Errors shared by the storage services."""


class StoreUnavailableError(Exception):
    """Raised when the database cannot be reached or a statement fails."""
