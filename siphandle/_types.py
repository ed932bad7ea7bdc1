"""
Type definitions and exceptions for the SIP plugin handle.

This module centralizes the enums, configuration and exception hierarchy used
throughout the package, including event kinds, notification kinds and
transaction states.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional


# =============================================================================
# Handle Configuration
# =============================================================================


@dataclass
class HandleConfig:
    """Configuration for SIP plugin handles."""

    # Timeouts (in seconds)
    request_timeout: float = 10.0  # Bound on every correlated request


# =============================================================================
# Exceptions
# =============================================================================


class SipHandleError(Exception):
    """Base exception for SIP handle errors."""

    pass


class _CodedError(SipHandleError):
    """Error carrying a numeric code and a reason string."""

    def __init__(self, code: Optional[int], reason: Optional[str]) -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"{code} {reason}")


class PluginError(_CodedError):
    """Raised when the plugin rejects a request (not related to SIP)."""

    pass


class ProtocolError(_CodedError):
    """Raised for SIP-level failures (registration failed, unanswered call)."""

    pass


class GatewayError(_CodedError):
    """Raised when the gateway answers a request with a generic error."""

    pass


class UnexpectedResponseError(SipHandleError):
    """Raised when a request resolves with an event it does not expect."""

    pass


class PreconditionError(SipHandleError, ValueError):
    """Raised before sending when request arguments are invalid."""

    pass


class RequestTimeoutError(SipHandleError, TimeoutError):
    """Raised when no correlated resolution arrives in time."""

    pass


class HandleClosedError(SipHandleError):
    """Raised for pending requests discarded by handle teardown."""

    pass


# =============================================================================
# Event and Notification Kinds
# =============================================================================


class EventKind(str, Enum):
    """
    Outcome events produced while interpreting plugin notifications.

    Only REGISTERING, CALLING, RINGING, PROCEEDING, INCOMING and HANGUP are
    published to subscribers; the others resolve pending requests.
    """

    REGISTERING = "sip_registering"
    REGISTERED = "sip_registered"
    CALLING = "sip_calling"
    RINGING = "sip_ringing"
    PROCEEDING = "sip_proceeding"
    INCOMING = "sip_incoming"
    HANGUP = "sip_hangup"
    HANGINGUP = "sip_hangingup"
    DECLINING = "declining"
    ACCEPTED = "sip_accepted"
    ERROR = "sip_error"
    ERROR_EVENT = "sip_error_event"


class HandleEvent(str, Enum):
    """Lifecycle signals emitted by the generic handle layer."""

    HANGUP = "handle_hangup"
    DETACHED = "handle_detached"


class NotificationKind(str, Enum):
    """Values of ``result.event`` sent by the SIP plugin."""

    REGISTERING = "registering"
    REGISTRATION_FAILED = "registration_failed"
    REGISTERED = "registered"
    CALLING = "calling"
    RINGING = "ringing"
    PROCEEDING = "proceeding"
    INCOMINGCALL = "incomingcall"
    HANGUP = "hangup"
    HANGINGUP = "hangingup"
    DECLINING = "declining"
    ACCEPTED = "accepted"

    @classmethod
    def parse(cls, value: Any) -> Optional[NotificationKind]:
        """Return the matching kind, or None for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return None


class TransactionState(Enum):
    """
    States of a pending correlated request.

    PENDING → SUCCEEDED | FAILED | TIMED_OUT
    """

    PENDING = auto()
    SUCCEEDED = auto()
    FAILED = auto()
    TIMED_OUT = auto()


# =============================================================================
# Type Aliases
# =============================================================================

Message = dict[str, Any]
Jsep = typing.Mapping[str, Any]

EventKindLike = typing.Union[EventKind, HandleEvent, str]
EventCallback = typing.Callable[[Any], Any]


__all__ = [
    # Config
    "HandleConfig",
    # Exceptions
    "SipHandleError",
    "PluginError",
    "ProtocolError",
    "GatewayError",
    "UnexpectedResponseError",
    "PreconditionError",
    "RequestTimeoutError",
    "HandleClosedError",
    # Enums
    "EventKind",
    "HandleEvent",
    "NotificationKind",
    "TransactionState",
    # Type aliases
    "Message",
    "Jsep",
    "EventKindLike",
    "EventCallback",
]
