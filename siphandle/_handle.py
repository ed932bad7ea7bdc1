"""
Plugin handles.

``Handle`` is the generic glue between a session and one plugin attachment:
it decorates requests with correlation ids, tracks them until a correlated
reply arrives, publishes events and turns lifecycle messages into
``HandleEvent`` signals.

``SipHandle`` specializes it for the SIP plugin: it interprets plugin
notifications with ``dispatch`` and exposes register/call/accept/hangup/decline.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Optional

from ._dispatcher import Dispatch, Resolution, dispatch
from ._events import EventEmitter, Events
from ._fsm import TransactionManager
from ._models import Notification, OutcomeEvent
from ._requests import (
    EXPECTED_EVENTS,
    build_accept,
    build_call,
    build_decline,
    build_hangup,
    build_register,
)
from ._state import HandleState
from ._types import (
    EventKind,
    GatewayError,
    HandleClosedError,
    HandleConfig,
    HandleEvent,
    Jsep,
    Message,
    UnexpectedResponseError,
)
from ._utils import PLUGIN_ID, TRANSACTION, logger

if TYPE_CHECKING:
    from ._session import AsyncBaseSession


class Handle(EventEmitter):
    """
    Generic plugin handle.

    Subclasses override ``handle_message`` to interpret plugin-specific
    messages; anything they leave unhandled falls back to generic handling.
    """

    def __init__(
        self,
        session: AsyncBaseSession,
        handle_id: int,
        config: Optional[HandleConfig] = None,
    ) -> None:
        """
        Initialize handle.

        Args:
            session: Parent session used to send requests
            handle_id: Identifier assigned by the gateway
            config: Handle configuration. If None, uses defaults.
        """
        super().__init__()
        self.session = session
        self.id = handle_id
        self.config = config or HandleConfig()
        self._transactions = TransactionManager()
        self._events: Optional[Events] = None
        self._detached = False

    @property
    def events(self) -> Optional[Events]:
        """Declarative subscriber bound to this handle."""
        return self._events

    @events.setter
    def events(self, events_instance: Optional[Events]) -> None:
        if self._events is not None:
            self._events.unbind()
        self._events = events_instance
        if events_instance is not None:
            events_instance.bind(self)

    @property
    def is_detached(self) -> bool:
        return self._detached

    # Transport boundary

    def decorate_request(self, request: Message) -> Message:
        """Attach a fresh correlation id and the handle id to a request."""
        request[TRANSACTION] = uuid.uuid4().hex
        request["handle_id"] = self.id
        return request

    async def send_request(self, request: Message, timeout: Optional[float] = None) -> Any:
        """
        Send a request and wait for its correlated resolution.

        Args:
            request: Request envelope (decorated here if needed)
            timeout: Seconds to wait (default: config.request_timeout)

        Returns:
            Payload the transaction was resolved with

        Raises:
            HandleClosedError: If the handle is detached
            RequestTimeoutError: If no resolution arrives in time
        """
        if self._detached:
            raise HandleClosedError(f"handle {self.id} is detached")
        if TRANSACTION not in request:
            self.decorate_request(request)
        if timeout is None:
            timeout = self.config.request_timeout

        transaction = self._transactions.create(request[TRANSACTION], request)
        try:
            await self.session.send(request)
        except BaseException:
            self._transactions.discard(transaction.id)
            raise
        return await self._transactions.wait(transaction, timeout)

    def close_transaction_with_success(self, transaction_id: Optional[str], payload: Any) -> bool:
        return self._transactions.close_with_success(transaction_id, payload)

    def close_transaction_with_error(
        self, transaction_id: Optional[str], error: Exception
    ) -> bool:
        return self._transactions.close_with_error(transaction_id, error)

    @property
    def pending_transactions(self) -> int:
        """Number of requests still awaiting a resolution."""
        return len(self._transactions)

    # Inbound messages

    def handle_message(self, message: Message) -> Any:
        """
        Interpret a plugin-specific message.

        Returns:
            A falsy value for unhandled messages, a truthy value otherwise
        """
        return None

    def receive(self, message: Message) -> Any:
        """
        Entry point for every message the session routes to this handle.

        Returns:
            A falsy value for unhandled messages, a truthy value otherwise
        """
        janus = message.get("janus")

        if janus == "hangup":
            logger.info(f"Handle {self.id} hung up ({message.get('reason', 'no reason')})")
            self.emit(HandleEvent.HANGUP, message)
            return True
        if janus == "detached":
            self.signal_detached()
            return True

        handled = self.handle_message(message)
        if handled:
            return handled

        transaction_id = message.get(TRANSACTION)
        if janus == "error":
            error = message.get("error") or {}
            self.close_transaction_with_error(
                transaction_id, GatewayError(error.get("code"), error.get("reason"))
            )
            return True
        if janus == "success":
            self.close_transaction_with_success(transaction_id, message)
            return True

        # Acks of async requests and unrecognized events
        logger.debug(f"Handle {self.id} ignored {janus} message")
        return None

    def signal_detached(self) -> None:
        """Mark the handle detached, fail pending requests and notify subscribers."""
        if self._detached:
            return
        self._detached = True
        failed = self._transactions.fail_all(HandleClosedError(f"handle {self.id} detached"))
        if failed:
            logger.warning(f"Handle {self.id} detached with {failed} pending requests")
        self.emit(HandleEvent.DETACHED, {"handle_id": self.id})

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.id}, {self._transactions!r})>"


# Events published to subscribers of a SIP handle
PLUGIN_EVENTS = (
    EventKind.REGISTERING,
    EventKind.CALLING,
    EventKind.RINGING,
    EventKind.PROCEEDING,
    EventKind.INCOMING,
    EventKind.HANGUP,
)


class SipHandle(Handle):
    """
    Handle attached to the SIP plugin.

    Example:
        >>> sip = session.attach(SipHandle, handle_id)
        >>> sip.on(EventKind.INCOMING, lambda data: print(data["username"]))
        >>> await sip.register("sip:alice@example.com", secret="secret")
        >>> await sip.call("sip:bob@example.com", jsep=offer)
    """

    PLUGIN_ID = PLUGIN_ID
    EVENTS = PLUGIN_EVENTS

    def __init__(
        self,
        session: AsyncBaseSession,
        handle_id: int,
        config: Optional[HandleConfig] = None,
    ) -> None:
        super().__init__(session, handle_id, config)
        self.state = HandleState()

        self.on(HandleEvent.HANGUP, self._reset)
        self.on(HandleEvent.DETACHED, self._reset)

    def _reset(self, _data=None) -> None:
        self.state.reset()
        logger.debug(f"SIP handle {self.id} state reset")

    def handle_message(self, message: Message) -> Optional[OutcomeEvent]:
        """
        Interpret a SIP plugin notification.

        Returns:
            The outcome event, or None if the message is not a SIP notification
        """
        notification = Notification.from_message(message)
        if notification is None:
            return None

        result = dispatch(notification, self.state)
        if result is None:
            logger.debug(f"Unrecognized SIP notification: {notification.event}")
            return None

        self._apply(result)
        return result.event

    def _apply(self, result: Dispatch) -> None:
        event = result.event

        if result.resolution is Resolution.SUCCESS:
            self.close_transaction_with_success(result.transaction, event)
        elif result.resolution is Resolution.ERROR:
            logger.warning(f"SIP {event.kind.value}: {event.data}")
            self.close_transaction_with_error(result.transaction, event.data)

        if result.publish:
            self.emit(event.kind, event.data)

    async def _send(self, request: Message) -> dict[str, Any]:
        name = request["body"]["request"]
        response = await self.send_request(request, self.config.request_timeout)
        if (
            isinstance(response, OutcomeEvent)
            and response.kind == EXPECTED_EVENTS[name]
            and isinstance(response.data, dict)
        ):
            return response.data
        raise UnexpectedResponseError(f"unexpected response to {name} request")

    async def register(self, username: str, **options: Any) -> dict[str, Any]:
        """
        Register to the SIP plugin (sending a SIP REGISTER is optional).

        Args:
            username: SIP URI to register
            **options: type ("guest"/"helper"), send_register, force_udp,
                force_tcp, sips, rfc2543_cancel, secret, ha1_secret,
                display_name, proxy, outbound_proxy, register_ttl

        Returns:
            {"username": ..., "register_sent": ...}
        """
        request = self.decorate_request(build_register(username, **options))
        # The registration outcome may arrive without the transaction id
        self.state.pending_register = request[TRANSACTION]

        data = await self._send(request)
        logger.info(f"Registered as {username}")
        return {**data, "username": username}

    async def call(self, uri: str, *, jsep: Optional[Jsep] = None, **options: Any) -> dict[str, Any]:
        """
        Start a SIP call.

        Args:
            uri: SIP URI to call
            jsep: JSEP offer
            **options: call_id, authuser, secret, ha1_secret

        Returns:
            Accepted event data (call_id, username, jsep answer)
        """
        request = self.decorate_request(build_call(uri, jsep, **options))
        data = await self._send(request)
        logger.info(f"Call to {uri} accepted")
        return data

    async def accept(self, *, jsep: Optional[Jsep] = None) -> dict[str, Any]:
        """Accept an incoming SIP call with a JSEP answer."""
        request = self.decorate_request(build_accept(jsep))
        return await self._send(request)

    async def hangup(self) -> dict[str, Any]:
        """Hang up the current SIP call."""
        request = self.decorate_request(build_hangup())
        return await self._send(request)

    async def decline(self, *, code: Optional[int] = None) -> dict[str, Any]:
        """Decline an incoming SIP call, optionally with a SIP response code."""
        request = self.decorate_request(build_decline(code))
        return await self._send(request)
