from roomchat.codec import encode
from roomchat.constants import KIND_CHAT, KIND_PRIVATE, KIND_SYSTEM
from roomchat.envelope import Envelope
from roomchat.state import UserEntry


def _frame(**kwargs) -> str:
    return encode(Envelope(**kwargs))


def test_chat_from_other_user_is_displayed(connected, transport, renderer) -> None:
    transport.receive(_frame(kind=KIND_CHAT, username="alice", room="lobby", text="hi", id="m1"))
    (entry,) = renderer.messages
    assert entry.username == "alice"
    assert entry.text == "hi"
    assert entry.is_self is False
    assert connected.state.message_history[-1] == entry


def test_chat_with_empty_text_is_not_displayed(connected, transport, renderer) -> None:
    transport.receive(_frame(kind=KIND_CHAT, username="alice", text=""))
    transport.receive(_frame(kind=KIND_CHAT, username="alice", text="   "))
    assert renderer.messages == []


def test_own_chat_without_pending_entry_is_displayed_as_self(connected, transport, renderer) -> None:
    transport.receive(_frame(kind=KIND_CHAT, username="me", text="from another tab", id="zz"))
    (entry,) = renderer.messages
    assert entry.is_self is True


def test_own_echo_is_not_displayed_twice(connected, transport, renderer) -> None:
    connected.submit("hello")
    (env,) = transport.envelopes
    transport.receive(encode(env))
    assert [m.text for m in renderer.messages] == ["hello"]


def test_system_message_is_a_notice(connected, transport, renderer) -> None:
    transport.receive(_frame(kind=KIND_SYSTEM, username="server", text="alice joined"))
    assert renderer.notices[-1] == "alice joined"
    assert connected.state.message_history[-1].kind == KIND_SYSTEM


def test_system_message_reveals_client_address(connected, transport) -> None:
    text = "连接成功！服务器信息: 本地地址 0.0.0.0:8080，您的IP地址: 10.0.0.7:51234"
    transport.receive(_frame(kind=KIND_SYSTEM, text=text))
    assert connected.state.client_address == "10.0.0.7:51234"


def test_system_message_reveals_client_address_english(connected, transport) -> None:
    transport.receive(_frame(kind=KIND_SYSTEM, text="Connected. Your IP address: 192.168.1.4, enjoy"))
    assert connected.state.client_address == "192.168.1.4"


def test_client_address_extraction_can_be_disabled(transport, scheduler) -> None:
    from roomchat.config import ClientRuntimeConfig
    from roomchat.controller import SessionController

    cfg = ClientRuntimeConfig(origin="http://chat.test", username="me", client_address_pattern=None)
    c = SessionController(cfg, transport=transport, scheduler=scheduler)
    c.connect()
    transport.accept()
    transport.receive(_frame(kind=KIND_SYSTEM, text="您的IP地址: 10.0.0.7"))
    assert c.state.client_address == ""


def test_userlist_replaces_directory(connected, transport, renderer) -> None:
    transport.receive(_frame(kind="userlist", text="carol:9.9.9.9"))
    transport.receive(_frame(kind="userlist", text="alice:1.2.3.4,bob:5.6.7.8"))
    assert connected.state.users == [
        UserEntry("alice", "1.2.3.4"),
        UserEntry("bob", "5.6.7.8"),
    ]
    assert renderer.directories[-1] == connected.state.users


def test_userlist_skips_empty_items_and_keeps_ports(connected, transport) -> None:
    transport.receive(_frame(kind="userlist", text="alice:1.2.3.4:5000,,bob:"))
    assert connected.state.users == [
        UserEntry("alice", "1.2.3.4:5000"),
        UserEntry("bob", ""),
    ]


def test_private_from_other_enters_private_mode(connected, transport, renderer) -> None:
    transport.receive(
        _frame(kind=KIND_PRIVATE, username="bob", room="x", text="psst", target="me", id="p1")
    )
    assert connected.state.private_target == "bob"
    (entry,) = renderer.messages
    assert entry.heading == "bob → you"


def test_private_does_not_switch_existing_target(connected, transport) -> None:
    connected.start_private_chat("carol")
    transport.receive(_frame(kind=KIND_PRIVATE, username="bob", text="psst", target="me"))
    assert connected.state.private_target == "carol"


def test_private_with_empty_text_still_enters_mode(connected, transport, renderer) -> None:
    transport.receive(_frame(kind=KIND_PRIVATE, username="bob", text="", target="me"))
    assert connected.state.private_target == "bob"
    assert renderer.messages == []


def test_command_and_join_are_not_displayed(connected, transport, renderer) -> None:
    transport.receive(_frame(kind="command", username="bob", text="/rooms"))
    transport.receive(_frame(kind="join", username="bob", room="dev"))
    assert renderer.messages == []
    assert renderer.notices == ["Connected to the server"]


def test_unknown_kind_is_ignored(connected, transport, renderer) -> None:
    transport.receive(_frame(kind="typing", username="bob"))
    assert renderer.messages == []
    assert connected.state.network_log[-1].message == "unknown message kind: typing"


def test_malformed_frame_is_dropped(connected, transport, renderer) -> None:
    transport.receive("{not json")
    transport.receive(_frame(kind=KIND_CHAT, username="alice", text="still alive"))
    assert connected.stats.get("decode_errors") == 1
    assert connected.stats.get("received") == 2
    assert [m.text for m in renderer.messages] == ["still alive"]
    assert any(e.level == "error" for e in connected.state.network_log)
