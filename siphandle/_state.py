"""
Call and registration state tracked per SIP handle.

A HandleState holds the correlation id of the in-flight REGISTER (servers
may omit it on asynchronous registration outcomes) and one CallState per call
id seen in plugin notifications. It is owned by exactly one handle and only
mutated while a single notification is being dispatched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ._utils import logger


@dataclass
class CallState:
    """
    State tracking for a single SIP call.

    At most one of accepted/declined becomes true before the entry is
    removed; incoming is only set for calls started by the remote party.
    """

    incoming: Optional[str] = None
    accepted: bool = False
    declined: bool = False

    @property
    def acknowledged(self) -> bool:
        """True once the call was accepted, declined or offered to us."""
        return self.accepted or self.declined or bool(self.incoming)


@dataclass
class HandleState:
    """Registration and call bookkeeping for one handle."""

    pending_register: Optional[str] = None
    calls: dict[str, CallState] = field(default_factory=dict)

    def call(self, call_id: str) -> CallState:
        """Get the state for a call id, creating it on first sight."""
        state = self.calls.get(call_id)
        if state is None:
            state = self.calls[call_id] = CallState()
        return state

    def remove_call(self, call_id: str) -> Optional[CallState]:
        """Forget a call; returns its last state if it was tracked."""
        state = self.calls.pop(call_id, None)
        if state is not None:
            logger.debug(f"Cleaned up call state for Call-ID: {call_id}")
        return state

    def reset(self) -> None:
        """Discard all bookkeeping, whatever the state of in-flight calls."""
        self.pending_register = None
        self.calls.clear()
