"""Exceptions raised by the ingestion and query pipeline."""


class TideMonitorError(Exception):
    """Base exception for pipeline errors."""

    pass


class UpstreamUnavailableError(TideMonitorError):
    """A remote system could not be reached or answered with a non-2xx status."""

    pass


class StoreUnavailableError(UpstreamUnavailableError):
    """The time-series store could not serve a request."""

    pass


class MalformedPayloadError(TideMonitorError):
    """A remote system returned JSON in an unexpected shape."""

    pass
