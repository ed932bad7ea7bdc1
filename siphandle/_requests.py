"""
Request builders for the SIP plugin.

Each builder returns a gateway ``message`` envelope whose body holds the
request tag plus the optional fields that were actually supplied with the
expected type. Absent fields are omitted, never sent as null.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ._types import EventKind, Jsep, Message, PreconditionError
from ._utils import (
    CALL_OPTIONS,
    MESSAGE,
    REGISTER_OPTIONS,
    REQUEST_ACCEPT,
    REQUEST_CALL,
    REQUEST_DECLINE,
    REQUEST_HANGUP,
    REQUEST_REGISTER,
)

# Terminal event expected for each request
EXPECTED_EVENTS = {
    REQUEST_REGISTER: EventKind.REGISTERED,
    REQUEST_CALL: EventKind.ACCEPTED,
    REQUEST_ACCEPT: EventKind.ACCEPTED,
    REQUEST_HANGUP: EventKind.HANGINGUP,
    REQUEST_DECLINE: EventKind.DECLINING,
}


def _matches(value: Any, expected) -> bool:
    # bool is an int subclass; never let a flag pass as a number or vice versa
    if isinstance(value, bool):
        return expected is bool or (isinstance(expected, tuple) and bool in expected)
    return isinstance(value, expected)


def _copy_options(
    body: dict[str, Any], options: Mapping[str, Any], allowed: Mapping[str, Any]
) -> None:
    for name, expected in allowed.items():
        value = options.get(name)
        if value is not None and _matches(value, expected):
            body[name] = value


def _check_jsep(jsep: Optional[Jsep], sdp_type: str) -> None:
    if jsep is not None and (not isinstance(jsep, Mapping) or jsep.get("type") != sdp_type):
        raise PreconditionError(f"jsep must be an {sdp_type}")


def _envelope(body: dict[str, Any], jsep: Optional[Jsep] = None) -> Message:
    request: Message = {"janus": MESSAGE, "body": body}
    if jsep is not None:
        request["jsep"] = dict(jsep)
    return request


def build_register(username: str, **options: Any) -> Message:
    """
    Build a ``register`` request.

    Args:
        username: SIP URI to register (required)
        **options: type, send_register, force_udp, force_tcp, sips,
            rfc2543_cancel, secret, ha1_secret, display_name, proxy,
            outbound_proxy, register_ttl

    Raises:
        PreconditionError: If username is missing or an option is unknown
    """
    if not isinstance(username, str) or not username:
        raise PreconditionError("register requires a SIP username")
    unknown = set(options) - set(REGISTER_OPTIONS)
    if unknown:
        raise PreconditionError(f"unknown register options: {', '.join(sorted(unknown))}")

    body: dict[str, Any] = {"request": REQUEST_REGISTER, "username": username}
    _copy_options(body, options, REGISTER_OPTIONS)
    return _envelope(body)


def build_call(uri: str, jsep: Optional[Jsep] = None, **options: Any) -> Message:
    """
    Build a ``call`` request.

    Args:
        uri: SIP URI to call
        jsep: JSEP offer, passed through untouched
        **options: call_id, authuser, secret, ha1_secret

    Raises:
        PreconditionError: If jsep is not an offer or uri is missing
    """
    _check_jsep(jsep, "offer")
    if not isinstance(uri, str) or not uri:
        raise PreconditionError("call requires a SIP uri")
    unknown = set(options) - set(CALL_OPTIONS)
    if unknown:
        raise PreconditionError(f"unknown call options: {', '.join(sorted(unknown))}")

    body: dict[str, Any] = {"request": REQUEST_CALL, "uri": uri}
    _copy_options(body, options, CALL_OPTIONS)
    return _envelope(body, jsep)


def build_accept(jsep: Optional[Jsep] = None) -> Message:
    """Build an ``accept`` request; jsep, when given, must be an answer."""
    _check_jsep(jsep, "answer")
    return _envelope({"request": REQUEST_ACCEPT}, jsep)


def build_hangup() -> Message:
    return _envelope({"request": REQUEST_HANGUP})


def build_decline(code: Optional[int] = None) -> Message:
    body: dict[str, Any] = {"request": REQUEST_DECLINE}
    if isinstance(code, int) and not isinstance(code, bool):
        body["code"] = code
    return _envelope(body)
