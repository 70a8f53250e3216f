"""Network configuration constants for the classroom coordinator."""

DEFAULT_HOST: str = "0.0.0.0"
DEFAULT_PORT: int = 3001
WEBSOCKET_PATH: str = "/ws"
DEFAULT_MAX_MESSAGE_SIZE_MB: int = 50
