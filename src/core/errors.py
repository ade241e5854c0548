"""
HomeKeeper — Exceptions.

A small hierarchy; callers that only care about "something in HomeKeeper
failed" catch HomeKeeperError.
"""


class HomeKeeperError(Exception):
    """Base exception for HomeKeeper."""

    pass


class MissingUserContextError(HomeKeeperError):
    """An operation that needs a user identity was called without one."""

    pass


class TaskNotFoundError(HomeKeeperError):
    """The task id does not belong to the house it was looked up in."""

    pass
