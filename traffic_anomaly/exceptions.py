"""Exception types for traffic-anomaly."""


class TrafficAnomalyError(Exception):
    """Base class for all errors raised by this package."""


class TransportFailure(TrafficAnomalyError):
    """A request never produced an HTTP response (network error, timeout)."""


class MalformedResponse(TrafficAnomalyError):
    """A response body was not the JSON document the caller expected."""


class InsufficientInput(TrafficAnomalyError, ValueError):
    """A call violated its input contract (empty candidates, negative counts)."""
