"""Client-side session controller for a realtime room chat over WebSocket."""

__version__ = "0.1.0"
