"""
Notification dispatcher for the SIP plugin.

``dispatch`` interprets one inbound notification against the handle's
HandleState in a single step, with no suspension point. It returns a Dispatch
describing the outcome event, which pending transaction to resolve (and how)
and whether the event is published to subscribers. Applying the transaction
close and the publication is left to the caller.

Policy per notification kind:

    kind                 event         resolve       publish  state
    -------------------  ------------  ------------  -------  ------------------
    (plugin error)       ERROR         fail          no       -
    registering          REGISTERING   -             yes      -
    registration_failed  ERROR_EVENT   fail (*)      no       pending_register=∅
    registered           REGISTERED    succeed (*)   no       pending_register=∅
    calling              CALLING       -             yes      -
    ringing              RINGING       -             yes      -
    proceeding           PROCEEDING    -             yes      -
    incomingcall         INCOMING      -             yes      incoming=username
    hangup (unacked)     ERROR_EVENT   fail          no       call removed
    hangup               HANGUP        -             yes      call removed
    hangingup            HANGINGUP     succeed       no       -
    declining            DECLINING     succeed       no       declined=True
    accepted             ACCEPTED      succeed       no       accepted=True

    (*) correlated by the notification id, else the pending REGISTER id.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from ._models import Notification, OutcomeEvent
from ._state import HandleState
from ._types import EventKind, NotificationKind, PluginError, ProtocolError


class Resolution(Enum):
    """How a dispatch closes the targeted transaction."""

    NONE = auto()
    SUCCESS = auto()
    ERROR = auto()


@dataclass
class Dispatch:
    """Decision taken for one notification."""

    event: OutcomeEvent
    resolution: Resolution = Resolution.NONE
    transaction: Optional[str] = None
    publish: bool = False


# Kinds that only report progress: published, no transaction closed
_PROGRESS_EVENTS = {
    NotificationKind.REGISTERING: EventKind.REGISTERING,
    NotificationKind.CALLING: EventKind.CALLING,
    NotificationKind.RINGING: EventKind.RINGING,
    NotificationKind.PROCEEDING: EventKind.PROCEEDING,
}


def _protocol_error(result: dict[str, Any]) -> ProtocolError:
    return ProtocolError(result.get("code"), result.get("reason"))


def dispatch(notification: Notification, state: HandleState) -> Optional[Dispatch]:
    """
    Interpret a SIP plugin notification.

    Args:
        notification: Decoded inbound message
        state: Bookkeeping of the handle that received it

    Returns:
        Dispatch, or None if the notification is not handled here
    """
    if not notification.is_recognizable:
        return None
    if not notification.is_error and notification.kind is None:
        return None

    message = notification.message
    result = notification.result
    call_id = notification.call_id

    data: dict[str, Any] = {}
    if notification.jsep:
        data["jsep"] = notification.jsep
    if call_id:
        data["call_id"] = call_id
        state.call(call_id)

    # Plugin messaging error (not related to SIP requests)
    if notification.is_error:
        error = PluginError(notification.error_code, notification.error)
        return Dispatch(
            event=OutcomeEvent(EventKind.ERROR, error, message),
            resolution=Resolution.ERROR,
            transaction=notification.transaction,
        )

    kind = notification.kind

    if kind in _PROGRESS_EVENTS:
        return Dispatch(
            event=OutcomeEvent(_PROGRESS_EVENTS[kind], data, message),
            publish=True,
        )

    if kind == NotificationKind.REGISTRATION_FAILED:
        transaction = notification.transaction or state.pending_register
        state.pending_register = None
        return Dispatch(
            event=OutcomeEvent(EventKind.ERROR_EVENT, _protocol_error(result), message),
            resolution=Resolution.ERROR,
            transaction=transaction,
        )

    if kind == NotificationKind.REGISTERED:
        transaction = notification.transaction or state.pending_register
        state.pending_register = None
        data["username"] = result.get("username")
        data["register_sent"] = result.get("register_sent")
        return Dispatch(
            event=OutcomeEvent(EventKind.REGISTERED, data, message),
            resolution=Resolution.SUCCESS,
            transaction=transaction,
        )

    if kind == NotificationKind.INCOMINGCALL:
        username = result.get("username")
        if call_id:
            state.call(call_id).incoming = username
        data["username"] = username
        data["callee"] = result.get("callee")
        if result.get("displayname"):
            data["display_name"] = result["displayname"]
        return Dispatch(
            event=OutcomeEvent(EventKind.INCOMING, data, message),
            publish=True,
        )

    if kind == NotificationKind.HANGUP:
        call = state.remove_call(call_id) if call_id else None
        if call is None or not call.acknowledged:
            # Pending call without a reply
            return Dispatch(
                event=OutcomeEvent(EventKind.ERROR_EVENT, _protocol_error(result), message),
                resolution=Resolution.ERROR,
                transaction=notification.transaction,
            )
        data["code"] = result.get("code")
        data["reason"] = result.get("reason")
        return Dispatch(
            event=OutcomeEvent(EventKind.HANGUP, data, message),
            publish=True,
        )

    if kind == NotificationKind.HANGINGUP:
        return Dispatch(
            event=OutcomeEvent(EventKind.HANGINGUP, data, message),
            resolution=Resolution.SUCCESS,
            transaction=notification.transaction,
        )

    if kind == NotificationKind.DECLINING:
        if call_id:
            state.call(call_id).declined = True
        return Dispatch(
            event=OutcomeEvent(EventKind.DECLINING, data, message),
            resolution=Resolution.SUCCESS,
            transaction=notification.transaction,
        )

    # NotificationKind.ACCEPTED
    call = state.call(call_id) if call_id else None
    data["username"] = result.get("username") or (call.incoming if call else None)
    if call is not None:
        call.accepted = True
    return Dispatch(
        event=OutcomeEvent(EventKind.ACCEPTED, data, message),
        resolution=Resolution.SUCCESS,
        transaction=notification.transaction,
    )
