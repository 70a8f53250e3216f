"""Room and transfer constants shared by the core services."""

# Digits and uppercase letters without 0/O and 1/I.
ROOM_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
ROOM_CODE_LENGTH: int = 6
ROOM_CODE_MAX_ATTEMPTS: int = 1000

DEFAULT_TRANSFER_TIMEOUT_SECONDS: float = 10.0
DEFAULT_TRANSFER_SWEEP_INTERVAL_SECONDS: float = 1.0
