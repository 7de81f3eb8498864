import secrets
import time


def new_id(prefix: str = "") -> str:
    """Opaque id: prefix + 16 hex chars (8 random bytes)."""
    return prefix + secrets.token_hex(8)


def now_ms() -> int:
    """Current Unix timestamp in milliseconds (used in createdAt/triggeredAt)."""
    return int(time.time() * 1000)
