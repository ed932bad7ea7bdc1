import pytest

from siphandle import (
    EventKind,
    HandleState,
    Notification,
    PluginError,
    ProtocolError,
    Resolution,
    dispatch,
)

from conftest import sip_error, sip_event


def _dispatch(message, state):
    notification = Notification.from_message(message)
    assert notification is not None
    return dispatch(notification, state)


@pytest.mark.parametrize(
    "message",
    [
        {"janus": "ack", "transaction": "abc"},
        {"janus": "event", "plugindata": {"plugin": "janus.plugin.echotest", "data": {"echotest": "event"}}},
        {"janus": "event", "plugindata": {"plugin": "janus.plugin.sip", "data": {"sip": ""}}},
        {"janus": "event", "plugindata": None},
    ],
)
def test_messages_without_sip_data_are_not_decoded(message):
    assert Notification.from_message(message) is None


def test_unrecognized_notification_is_not_handled_and_leaves_state_alone():
    state = HandleState(pending_register="reg-1")
    message = sip_event(call_id="c1")
    message["plugindata"]["data"]["sip"] = "info"

    assert _dispatch(message, state) is None
    assert state.calls == {}
    assert state.pending_register == "reg-1"


def test_unknown_result_event_is_not_handled():
    state = HandleState()
    assert _dispatch(sip_event("transferring", call_id="c1"), state) is None
    assert state.calls == {}


def test_registering_is_published_without_resolution():
    result = _dispatch(sip_event("registering"), HandleState())

    assert result.event.kind is EventKind.REGISTERING
    assert result.publish is True
    assert result.resolution is Resolution.NONE


def test_plugin_error_fails_own_transaction_and_is_not_published():
    state = HandleState(pending_register="reg-1")
    result = _dispatch(sip_error(440, "Missing element (username)", transaction="tx-9"), state)

    assert result.event.kind is EventKind.ERROR
    assert isinstance(result.event.data, PluginError)
    assert str(result.event.data) == "440 Missing element (username)"
    assert result.resolution is Resolution.ERROR
    assert result.transaction == "tx-9"
    assert result.publish is False
    assert state.pending_register == "reg-1"


def test_registered_falls_back_to_pending_register():
    state = HandleState(pending_register="reg-1")
    result = _dispatch(sip_event("registered", username="alice", register_sent=True), state)

    assert result.event.kind is EventKind.REGISTERED
    assert result.event.data == {"username": "alice", "register_sent": True}
    assert result.resolution is Resolution.SUCCESS
    assert result.transaction == "reg-1"
    assert result.publish is False
    assert state.pending_register is None


def test_registered_prefers_own_transaction():
    state = HandleState(pending_register="reg-1")
    result = _dispatch(sip_event("registered", transaction="tx-2", username="alice"), state)

    assert result.transaction == "tx-2"
    assert state.pending_register is None


def test_registration_failed_builds_protocol_error_and_keeps_calls():
    state = HandleState(pending_register="reg-1")
    state.call("c1").accepted = True
    result = _dispatch(
        sip_event("registration_failed", code=403, reason="Forbidden"), state
    )

    assert result.event.kind is EventKind.ERROR_EVENT
    assert isinstance(result.event.data, ProtocolError)
    assert result.event.data.code == 403
    assert result.event.data.reason == "Forbidden"
    assert result.resolution is Resolution.ERROR
    assert result.transaction == "reg-1"
    assert result.publish is False
    assert state.pending_register is None
    assert "c1" in state.calls


@pytest.mark.parametrize(
    "event,kind",
    [
        ("calling", EventKind.CALLING),
        ("ringing", EventKind.RINGING),
        ("proceeding", EventKind.PROCEEDING),
    ],
)
def test_progress_events_are_published(event, kind):
    state = HandleState()
    result = _dispatch(sip_event(event, call_id="c1", jsep={"type": "answer", "sdp": "v=0"}), state)

    assert result.event.kind is kind
    assert result.event.data == {"call_id": "c1", "jsep": {"type": "answer", "sdp": "v=0"}}
    assert result.publish is True
    assert result.resolution is Resolution.NONE
    assert "c1" in state.calls


def test_incomingcall_records_remote_username():
    state = HandleState()
    result = _dispatch(
        sip_event(
            "incomingcall",
            call_id="c1",
            username="sip:bob@example.com",
            callee="sip:alice@example.com",
            displayname="Bob",
        ),
        state,
    )

    assert result.event.kind is EventKind.INCOMING
    assert result.event.data["username"] == "sip:bob@example.com"
    assert result.event.data["callee"] == "sip:alice@example.com"
    assert result.event.data["display_name"] == "Bob"
    assert result.publish is True
    assert state.calls["c1"].incoming == "sip:bob@example.com"


def test_incomingcall_without_displayname_omits_it():
    result = _dispatch(sip_event("incomingcall", call_id="c1", username="bob"), HandleState())
    assert "display_name" not in result.event.data


def test_incoming_accepted_hangup_sequence():
    state = HandleState()
    _dispatch(sip_event("incomingcall", call_id="X", username="sip:bob@example.com"), state)

    accepted = _dispatch(sip_event("accepted", call_id="X", transaction="tx-a"), state)
    assert accepted.event.kind is EventKind.ACCEPTED
    assert accepted.event.data["username"] == "sip:bob@example.com"
    assert accepted.resolution is Resolution.SUCCESS
    assert accepted.publish is False
    assert state.calls["X"].accepted is True

    hangup = _dispatch(sip_event("hangup", call_id="X", code=200, reason="BYE"), state)
    assert hangup.event.kind is EventKind.HANGUP
    assert hangup.event.data["reason"] == "BYE"
    assert hangup.publish is True
    assert hangup.resolution is Resolution.NONE
    assert "X" not in state.calls


def test_hangup_of_unacknowledged_call_fails_pending_request():
    state = HandleState()
    result = _dispatch(
        sip_event("hangup", call_id="Y", transaction="tx-call", code=486, reason="Busy Here"),
        state,
    )

    assert result.event.kind is EventKind.ERROR_EVENT
    assert str(result.event.data) == "486 Busy Here"
    assert result.resolution is Resolution.ERROR
    assert result.transaction == "tx-call"
    assert result.publish is False
    assert "Y" not in state.calls


def test_hangup_after_decline_is_async_hangup():
    state = HandleState()
    _dispatch(sip_event("declining", call_id="Z", transaction="tx-d"), state)
    assert state.calls["Z"].declined is True

    result = _dispatch(sip_event("hangup", call_id="Z"), state)
    assert result.event.kind is EventKind.HANGUP
    assert state.calls == {}


def test_hangingup_resolves_with_success():
    result = _dispatch(sip_event("hangingup", call_id="c1", transaction="tx-h"), HandleState())

    assert result.event.kind is EventKind.HANGINGUP
    assert result.resolution is Resolution.SUCCESS
    assert result.transaction == "tx-h"
    assert result.publish is False
    assert result.event.message["transaction"] == "tx-h"


def test_accepted_prefers_notified_username():
    state = HandleState()
    state.call("c1").incoming = "sip:bob@example.com"
    result = _dispatch(sip_event("accepted", call_id="c1", username="sip:carol@example.com"), state)

    assert result.event.data["username"] == "sip:carol@example.com"
