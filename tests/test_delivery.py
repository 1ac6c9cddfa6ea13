from roomchat.codec import encode
from roomchat.constants import KIND_CHAT, KIND_COMMAND
from roomchat.envelope import Envelope, make_envelope


def test_chat_send_registers_pending(connected, transport) -> None:
    connected.submit("hello")
    (env,) = transport.envelopes
    assert list(connected.delivery.pending) == [env.id]
    assert connected.delivery.pending[env.id].envelope == env


def test_commands_and_empty_chat_are_not_tracked(connected) -> None:
    connected.submit("/rooms")
    connected.send(make_envelope(KIND_CHAT, username="me", room="lobby", text=""))
    assert connected.delivery.pending == {}


def test_unacknowledged_message_times_out_once(connected, scheduler, renderer) -> None:
    connected.submit("a fairly long message that will be truncated")
    scheduler.advance(59.9)
    assert len(connected.delivery.pending) == 1

    scheduler.advance(0.2)
    assert connected.delivery.pending == {}
    timeouts = [n for n in renderer.notices if "may not have been delivered" in n]
    assert timeouts == ["message may not have been delivered: a fairly long messag..."]

    scheduler.advance(120)
    assert len([n for n in renderer.notices if "may not have been delivered" in n]) == 1
    assert connected.stats.get("delivery_timeouts") == 1


def test_echo_acknowledges_and_cancels_timer(connected, transport, scheduler, renderer) -> None:
    connected.submit("hello")
    (env,) = transport.envelopes
    transport.receive(encode(env))

    assert connected.delivery.pending == {}
    assert all(t.cancelled for t in scheduler.timers)
    scheduler.advance(61)
    assert not any("may not have been delivered" in n for n in renderer.notices)
    assert connected.stats.get("acks") == 1


def test_acknowledge_unknown_id_is_ignored(connected) -> None:
    assert connected.delivery.acknowledge("nope") is False
    assert connected.delivery.acknowledge("") is False


def test_non_message_kinds_do_not_acknowledge(connected, transport) -> None:
    connected.submit("hello")
    (env,) = transport.envelopes
    transport.receive(encode(Envelope(kind=KIND_COMMAND, text="/x", id=env.id)))
    assert env.id in connected.delivery.pending


def test_timeout_is_configurable(transport, scheduler, renderer) -> None:
    from roomchat.config import ClientRuntimeConfig
    from roomchat.controller import SessionController

    cfg = ClientRuntimeConfig(origin="http://chat.test", username="me", delivery_timeout_s=5)
    c = SessionController(cfg, renderer=renderer, transport=transport, scheduler=scheduler)
    c.connect()
    transport.accept()
    c.submit("hi")
    scheduler.advance(5)
    assert c.delivery.pending == {}


def test_close_clears_pending(connected, scheduler) -> None:
    connected.submit("hello")
    connected.close()
    assert connected.delivery.pending == {}
    assert scheduler.active == []
