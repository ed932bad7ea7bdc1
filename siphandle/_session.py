"""
Session abstraction multiplexing plugin handles.

A session owns the wire: concrete subclasses implement ``send`` over their
connection (WebSocket, HTTP long-poll, ...) and feed every decoded inbound
message to ``deliver``, one at a time and in arrival order. The session
routes each message to the handle named by its ``sender`` field.
"""

from __future__ import annotations

import abc
from typing import Any, Optional, TypeVar

from ._handle import Handle
from ._types import HandleConfig, Message
from ._utils import logger

H = TypeVar("H", bound=Handle)


class AsyncBaseSession(abc.ABC):
    """
    Abstract base class for gateway sessions.

    Subclasses must implement ``send``.
    """

    def __init__(self, config: Optional[HandleConfig] = None) -> None:
        """
        Initialize session.

        Args:
            config: Configuration handed to every attached handle
        """
        self.config = config or HandleConfig()
        self._handles: dict[int, Handle] = {}
        self._closed = False

    @abc.abstractmethod
    async def send(self, message: Message) -> None:
        """
        Send a decorated request to the gateway.

        Raises:
            Exception: Any transport failure; the request is then abandoned
        """
        ...

    def attach(self, handle_cls: type[H], handle_id: int) -> H:
        """
        Create and register a handle for a plugin attachment.

        Args:
            handle_cls: Handle class, e.g. SipHandle
            handle_id: Identifier assigned by the gateway on attach
        """
        if self._closed:
            raise RuntimeError("session is closed")
        if handle_id in self._handles:
            raise ValueError(f"handle {handle_id} already attached")
        handle = handle_cls(self, handle_id, self.config)
        self._handles[handle_id] = handle
        logger.debug(f"Attached {handle!r}")
        return handle

    def get_handle(self, handle_id: int) -> Optional[Handle]:
        return self._handles.get(handle_id)

    @property
    def handles(self) -> list[Handle]:
        return list(self._handles.values())

    def deliver(self, message: Message) -> Any:
        """
        Route an inbound message to its handle.

        Returns:
            Whatever the handle returned, or None if no handle owns the message
        """
        sender = message.get("sender")
        handle = self._handles.get(sender) if sender is not None else None
        if handle is None:
            logger.debug(f"No handle for {message.get('janus')} message (sender={sender})")
            return None

        result = handle.receive(message)
        if handle.is_detached:
            self._handles.pop(sender, None)
        return result

    def detach(self, handle_id: int) -> None:
        """Locally detach a handle, resetting its state."""
        handle = self._handles.pop(handle_id, None)
        if handle is not None:
            handle.signal_detached()

    async def close(self) -> None:
        """Detach every handle and refuse new attachments."""
        if self._closed:
            return
        for handle_id in list(self._handles):
            self.detach(handle_id)
        self._closed = True

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({len(self._handles)} handles)>"
