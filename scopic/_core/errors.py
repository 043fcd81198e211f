"""Exception types raised by the scopic API."""


class UsageError(ValueError):
    """Malformed input: bad orientation, seed/restart mismatch, invalid counts.

    Raised before any computation starts.
    """


class SolverFailure(RuntimeError):
    """The topic model could not be fitted by any of the requested restarts."""
