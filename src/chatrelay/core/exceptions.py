"""Error taxonomy shared by the store, agent client, pipeline and relay."""

from __future__ import annotations


class ChatRelayError(Exception):
    """Base class; ``code`` is the machine-readable error code on the wire."""

    code = "INTERNAL"


class NotFound(ChatRelayError):
    """Raised when a referenced conversation or message does not exist."""

    code = "NOT_FOUND"

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id!r} not found")
        self.kind = kind
        self.record_id = record_id


class ValidationFailed(ChatRelayError):
    """Raised on a malformed inbound payload or an invalid credential.

    The message is human-readable and safe to show to the caller.
    """

    code = "VALIDATION_FAILED"


class UpstreamUnavailable(ChatRelayError):
    """Raised when the agent backend is unreachable or answers badly."""

    code = "UPSTREAM_UNAVAILABLE"


class InternalError(ChatRelayError):
    """Raised when the pipeline could not produce any agent message."""

    code = "INTERNAL"
