class AnalyticsError(Exception):
    """Base class for errors raised while building analytics payloads."""


class StoreUnavailableError(AnalyticsError):
    """The persistent store could not be reached or rejected a query."""


class MalformedRecordError(AnalyticsError, ValueError):
    """A store row is missing a field the aggregation cannot do without."""
