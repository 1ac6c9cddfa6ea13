# roomchat wire constants (JSON keys and envelope kinds)

# Envelope keys as they appear on the wire
K_KIND = "msg_type"
K_USERNAME = "username"
K_ROOM = "room"
K_TEXT = "text"
K_TS = "timestamp"
K_ID = "id"
K_TARGET = "target"

# Envelope kinds
KIND_CHAT = "chat"
KIND_SYSTEM = "system"
KIND_PRIVATE = "private"
KIND_USERLIST = "userlist"
KIND_PING = "ping"
KIND_PONG = "pong"
KIND_COMMAND = "command"
KIND_JOIN = "join"

# Kinds that carry a user message and take part in delivery acknowledgment.
ACKED_KINDS = frozenset({KIND_CHAT, KIND_PRIVATE})

# Kinds allowed to carry an empty text body.
CONTROL_KINDS = frozenset({KIND_JOIN, KIND_PING, KIND_PONG})

DEFAULT_ROOM = "lobby"

# Room label carried by private envelopes. The server routes them on target.
PRIVATE_ROOM = "私聊"

WS_PATH = "/ws"

MESSAGE_HISTORY_LIMIT = 200
NETWORK_LOG_LIMIT = 100

DELIVERY_TIMEOUT_S = 60.0
RECONNECT_DELAY_S = 5.0

PREVIEW_CHARS = 20
LOG_PREVIEW_CHARS = 30

PING_COMMAND = "/ping"

HELP_TEXT = """Available commands:
  /help - show this help
  /rooms - list all rooms
  /join <room> - join a room
  /users - list users in the current room
  /msg <user> <text> - send a private message
  /ping - test the connection
  /stats - show server statistics"""

# Network log levels
LOG_INFO = "info"
LOG_SENT = "sent"
LOG_RECEIVED = "received"
LOG_ERROR = "error"

# Best-effort match for the client address announced in the server greeting.
CLIENT_ADDRESS_PATTERN = r"(?:您的IP地址|[Yy]our IP address)\s*[:：]\s*([^,，\s]+)"
