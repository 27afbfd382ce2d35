"""
Tournament engine errors.

Every condition that would corrupt tournament state if ignored is raised
as a subclass of TournamentError.
"""


class TournamentError(Exception):
    """Base class for tournament engine errors."""


class InvalidConfiguration(TournamentError):
    """Tournament settings cannot produce a valid schedule (team count, bracket size)."""


class SchedulingFailed(TournamentError):
    """The match maker exhausted its retry budget."""


class InvalidMatchResult(TournamentError):
    """A match result does not fit the current scheduled match."""


class MissingDependency(TournamentError):
    """A catalog returned nothing where a value was required."""
