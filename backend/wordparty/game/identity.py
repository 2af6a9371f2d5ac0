from __future__ import annotations

import random
import re
import string
from typing import Container

from ..errors import ValidationError


ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def sanitize_name(raw: object, max_length: int = 20) -> str:
    """Trim and truncate a player name; raise if nothing usable is left."""
    if not isinstance(raw, str):
        raise ValidationError("invalid_name", "Please enter a name")

    # Avoid obvious HTML/script injection and control characters.
    n = "".join(ch for ch in raw if ord(ch) >= 32 and ch not in "<>")
    n = re.sub(r"\s+", " ", n).strip()[:max_length].strip()
    if not n:
        raise ValidationError("invalid_name", "Please enter a name")
    return n


def sanitize_room_code(raw: object) -> str:
    if not isinstance(raw, str):
        raise ValidationError("invalid_room_code", "Please enter a room code")

    code = re.sub(r"[^A-Z0-9]", "", raw.strip().upper())[:ROOM_CODE_LENGTH]
    if len(code) != ROOM_CODE_LENGTH:
        raise ValidationError("invalid_room_code", "Room codes are 6 letters or digits")
    return code


def generate_room_code(taken: Container[str], rng: random.Random | None = None) -> str:
    r = rng or random
    code = "".join(r.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
    while code in taken:
        code = "".join(r.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
    return code
