from __future__ import annotations

import secrets
import uuid


def new_uuid() -> str:
    return str(uuid.uuid4())


def new_token(nbytes: int = 32) -> str:
    return secrets.token_hex(nbytes)
