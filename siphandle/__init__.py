"""siphandle - SIP plugin handle for media-gateway signaling sessions."""

from __future__ import annotations

# Handles and sessions
from ._handle import PLUGIN_EVENTS, Handle, SipHandle
from ._session import AsyncBaseSession

# Event channel
from ._events import EventEmitter, Events, event_handler

# Interpretation core
from ._dispatcher import Dispatch, Resolution, dispatch
from ._models import Notification, OutcomeEvent
from ._state import CallState, HandleState

# Pending requests
from ._fsm import Transaction, TransactionManager

# Request builders
from ._requests import (
    build_accept,
    build_call,
    build_decline,
    build_hangup,
    build_register,
)

# Types
from ._types import (
    EventKind,
    GatewayError,
    HandleClosedError,
    HandleConfig,
    HandleEvent,
    NotificationKind,
    PluginError,
    PreconditionError,
    ProtocolError,
    RequestTimeoutError,
    SipHandleError,
    TransactionState,
    UnexpectedResponseError,
)

# Utilities
from ._utils import PLUGIN_ID, console, logger

__version__ = "0.1.0"

__all__ = [
    # Handles - Main API
    "SipHandle",
    "Handle",
    "AsyncBaseSession",
    "PLUGIN_ID",
    "PLUGIN_EVENTS",
    # Events
    "EventEmitter",
    "Events",
    "event_handler",
    "EventKind",
    "HandleEvent",
    # Interpretation
    "dispatch",
    "Dispatch",
    "Resolution",
    "Notification",
    "NotificationKind",
    "OutcomeEvent",
    "CallState",
    "HandleState",
    # Transactions
    "Transaction",
    "TransactionManager",
    "TransactionState",
    # Builders
    "build_register",
    "build_call",
    "build_accept",
    "build_hangup",
    "build_decline",
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
    # Utilities
    "console",
    "logger",
    # Metadata
    "__version__",
]
