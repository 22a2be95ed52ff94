from __future__ import annotations

import secrets
import string
import time

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def _base36(value: int) -> str:
    digits = string.digits + string.ascii_lowercase
    if value == 0:
        return "0"
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def generate_appointment_id(prefix: str = "A") -> str:
    """Millisecond timestamp plus random suffix, e.g. A_m3x9k2p1_4fz81q."""
    millis = int(time.time() * 1000)
    return f"{prefix}_{_base36(millis)}_{secrets.token_hex(3)}"


def generate_cancel_code(length: int = 6) -> str:
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))
