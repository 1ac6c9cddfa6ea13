from roomchat.codec import encode
from roomchat.config import ClientRuntimeConfig
from roomchat.constants import KIND_COMMAND, KIND_PING, KIND_PONG, PING_COMMAND
from roomchat.controller import SessionController
from roomchat.envelope import Envelope


def test_ping_sends_ping_command(connected, transport) -> None:
    assert connected.ping() is True
    (env,) = transport.envelopes
    assert env.kind == KIND_COMMAND
    assert env.text == PING_COMMAND
    assert connected.latency.stats.outstanding


def test_ping_while_outstanding_is_noop(connected, transport, scheduler) -> None:
    connected.ping()
    started = connected.latency.stats.ping_start_time
    scheduler.advance(0.5)

    assert connected.ping() is False
    assert len(transport.sent) == 1
    assert connected.latency.stats.ping_start_time == started


def test_server_ping_completes_probe_and_is_answered(connected, transport, scheduler, renderer) -> None:
    connected.ping()
    scheduler.advance(0.040)
    transport.receive(encode(Envelope(kind=KIND_PING, username="server", text="123456")))

    pong = transport.envelopes[-1]
    assert pong.kind == KIND_PONG
    assert pong.text == "123456"

    stats = connected.latency.stats
    assert stats.sample_count == 1
    assert not stats.outstanding
    assert round(stats.cumulative_latency_ms) == 40
    assert [(round(c), round(a)) for c, a in renderer.latencies] == [(40, 40)]


def test_pong_completes_probe_and_averages(connected, transport, scheduler, renderer) -> None:
    connected.ping()
    scheduler.advance(0.010)
    transport.receive(encode(Envelope(kind=KIND_PONG)))
    connected.ping()
    scheduler.advance(0.030)
    transport.receive(encode(Envelope(kind=KIND_PONG)))

    stats = connected.latency.stats
    assert stats.sample_count == 2
    assert round(stats.average_ms) == 20
    assert [round(c) for c, _ in renderer.latencies] == [10, 30]


def test_unsolicited_pong_is_ignored(connected, transport, renderer) -> None:
    transport.receive(encode(Envelope(kind=KIND_PONG)))
    assert connected.latency.stats.sample_count == 0
    assert renderer.latencies == []


def test_unsolicited_server_ping_only_gets_a_pong(connected, transport) -> None:
    transport.receive(encode(Envelope(kind=KIND_PING, text="hb")))
    assert [e.kind for e in transport.envelopes] == [KIND_PONG]
    assert connected.latency.stats.sample_count == 0


def test_ping_while_disconnected_does_not_leave_probe_outstanding(controller, renderer) -> None:
    assert controller.ping() is False
    assert not controller.latency.stats.outstanding
    assert any("Not connected" in n for n in renderer.notices)


def test_ping_mode_sends_ping_envelope(transport, scheduler) -> None:
    cfg = ClientRuntimeConfig(origin="http://chat.test", username="me", ping_mode="ping")
    c = SessionController(cfg, transport=transport, scheduler=scheduler)
    c.connect()
    transport.accept()
    transport.sent.clear()

    c.ping()
    (env,) = transport.envelopes
    assert env.kind == KIND_PING
    assert env.text.isdigit()


def test_probe_lost_with_connection_does_not_block_later_pings(connected, transport, scheduler) -> None:
    connected.ping()
    transport.drop()
    assert not connected.latency.stats.outstanding

    scheduler.advance(5.0)
    transport.accept()
    transport.sent.clear()

    assert connected.ping() is True
    (env,) = transport.envelopes
    assert env.text == PING_COMMAND


def test_late_pong_after_reconnect_is_not_counted(connected, transport, scheduler, renderer) -> None:
    connected.ping()
    transport.drop()
    scheduler.advance(5.0)
    transport.accept()
    transport.receive(encode(Envelope(kind=KIND_PONG)))

    assert connected.latency.stats.sample_count == 0
    assert renderer.latencies == []
