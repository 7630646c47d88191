class PropwatchError(Exception):
    """Base class for failures raised by the odds pipeline."""


class FetchFailed(PropwatchError):
    """The upstream odds feed was unreachable or answered with a non-success status."""


class MalformedPayload(PropwatchError, ValueError):
    """The upstream payload is missing required fields or has the wrong shape."""


class StoreError(PropwatchError):
    """The snapshot store rejected a batch insert."""


class QueryFailed(PropwatchError):
    """The snapshot store failed to answer a read."""
