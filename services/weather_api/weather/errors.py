"""
Upstream failure kinds.

Callers that only care whether the upstream worked catch UpstreamError;
the subclasses keep the cause around for logging.
"""

from __future__ import annotations


class UpstreamError(Exception):
    """The weather provider could not supply a usable payload."""


class UpstreamTransportError(UpstreamError):
    """Network-level failure: DNS, connect, timeout, reset."""


class UpstreamStatusError(UpstreamError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, detail: str = "") -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"upstream returned {status_code}")


class PayloadDecodeError(UpstreamError):
    """The provider answered 2xx but the body is not valid JSON."""
