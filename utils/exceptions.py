"""
Error taxonomy for upstream and relay failures.
"""


class RelayError(Exception):
    """Base class for errors raised by the relay core."""


class UpstreamError(RelayError):
    """The inference server could not produce a usable response."""

    reason: str = "upstream_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UpstreamUnreachable(UpstreamError):
    """Connection refused, DNS failure or dropped transport."""
    reason = "unreachable"


class UpstreamTimeout(UpstreamError):
    """Connect, read or probe timeout expired."""
    reason = "timeout"


class UpstreamHttpError(UpstreamError):
    """Upstream answered with a non-2xx status."""
    reason = "http_error"

    def __init__(self, status: int, body: str = ""):
        super().__init__(f"Upstream returned HTTP {status}")
        self.status = status
        self.body = body

    @property
    def is_transient(self) -> bool:
        return self.status >= 500


class UpstreamMalformedResponse(UpstreamError):
    """Upstream body could not be parsed into a completion."""
    reason = "malformed_response"
