from __future__ import annotations

import secrets

from fastapi import Header

from qtrack.core.config import settings
from qtrack.core.errors import Unauthenticated


def require_cron_key(x_api_key: str | None = Header(default=None, alias="X-Api-Key")) -> None:
    if not x_api_key or not secrets.compare_digest(x_api_key.encode(), settings.CRON_API_KEY.encode()):
        raise Unauthenticated("Invalid API key")
