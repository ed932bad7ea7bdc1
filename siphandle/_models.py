"""
Message models for the SIP plugin.

Notification is the decoded view of an inbound gateway message carrying SIP
plugin data; OutcomeEvent is what interpreting one produces.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ._types import EventKind, Message, NotificationKind


@dataclass
class Notification:
    """
    An inbound SIP plugin message.

    Wire shape::

        {
            "janus": "event",
            "sender": <handle id>,
            "transaction": <correlation id>,      # optional
            "plugindata": {
                "plugin": "janus.plugin.sip",
                "data": {
                    "sip": "event",
                    "call_id": "...",             # optional
                    "result": {"event": "registered", ...},
                    "error_code": 4xx, "error": "...",  # plugin errors only
                },
            },
            "jsep": {...},                        # optional, opaque
        }
    """

    sip: str
    message: Message = field(repr=False)
    kind: Optional[NotificationKind] = None
    event: Optional[str] = None
    transaction: Optional[str] = None
    call_id: Optional[str] = None
    result: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    error_code: Optional[int] = None
    jsep: Optional[dict[str, Any]] = None

    @classmethod
    def from_message(cls, message: Message) -> Optional[Notification]:
        """
        Decode a gateway message.

        Returns:
            Notification, or None if the message carries no SIP plugin data
        """
        plugindata = message.get("plugindata")
        if not isinstance(plugindata, dict):
            return None
        data = plugindata.get("data")
        if not isinstance(data, dict) or not data.get("sip"):
            return None

        result = data.get("result")
        if not isinstance(result, dict):
            result = {}
        event = result.get("event")

        return cls(
            sip=data["sip"],
            message=message,
            kind=NotificationKind.parse(event),
            event=event,
            transaction=message.get("transaction"),
            call_id=data.get("call_id") or None,
            result=result,
            error=data.get("error") or None,
            error_code=data.get("error_code"),
            jsep=message.get("jsep") or None,
        )

    @property
    def is_error(self) -> bool:
        """True for plugin-level errors."""
        return self.error is not None

    @property
    def is_recognizable(self) -> bool:
        """True if the message is an error, a SIP event or carries a result event."""
        return self.is_error or self.sip == "event" or bool(self.event)


@dataclass
class OutcomeEvent:
    """
    Result of interpreting one notification.

    ``data`` is a dict payload for regular events and an exception for
    ``ERROR`` / ``ERROR_EVENT``. ``message`` is the raw notification.
    """

    kind: EventKind
    data: Union[dict[str, Any], Exception]
    message: Message = field(default_factory=dict, repr=False)

    @property
    def is_error(self) -> bool:
        return isinstance(self.data, Exception)
