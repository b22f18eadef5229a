class DistanceUnavailable(RuntimeError):
    """A distance tier could not produce a value; the oracle moves to the next tier."""


class NoLatticePath(DistanceUnavailable):
    pass


class RoutingError(DistanceUnavailable):
    pass
