from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, TypeVar
from urllib.parse import urlsplit

from minio import Minio

from qtrack.core.config import settings

T = TypeVar("T")


def _client() -> Minio:
    # An explicit region keeps presigning local (no bucket-location lookup).
    return Minio(
        endpoint=settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_SECURE,
        region=settings.MINIO_REGION,
    )


def _with_retry(fn: Callable[[], T], *, attempts: int = 3, sleep_s: float = 0.3) -> T:
    last_exc: Exception | None = None
    for i in range(attempts):
        try:
            return fn()
        except Exception as e:
            last_exc = e
            if i == attempts - 1:
                raise
            time.sleep(sleep_s * (2**i))
    raise last_exc or RuntimeError("minio error")


def public_url_for(object_key: str) -> str:
    base = settings.MINIO_PUBLIC_URL
    if not base:
        scheme = "https" if settings.MINIO_SECURE else "http"
        base = f"{scheme}://{settings.MINIO_ENDPOINT}"
    return f"{base.rstrip('/')}/{settings.MINIO_BUCKET}/{object_key}"


def object_key_from_url(storage_url: str) -> str | None:
    """Recover the object key from a URL built by ``public_url_for``.

    Returns None for URLs outside our bucket.
    """

    path = urlsplit(storage_url).path.lstrip("/")
    prefix = f"{settings.MINIO_BUCKET}/"
    if not path.startswith(prefix):
        return None
    key = path[len(prefix) :]
    return key or None


def presigned_upload_url(*, object_key: str, expires_s: int) -> str:
    c = _client()
    return c.presigned_put_object(settings.MINIO_BUCKET, object_key, expires=timedelta(seconds=expires_s))


def delete_object(storage_url: str) -> bool:
    """Remove the blob behind ``storage_url``. Returns False when it is not ours to delete."""

    key = object_key_from_url(storage_url)
    if key is None:
        return False
    c = _client()
    _with_retry(lambda: c.remove_object(settings.MINIO_BUCKET, key), attempts=2)
    return True


def minio_ready() -> bool:
    try:
        c = _client()
        _with_retry(lambda: c.bucket_exists(settings.MINIO_BUCKET), attempts=1)
        return True
    except Exception:
        return False


def ensure_minio_bucket() -> None:
    def _op() -> None:
        c = _client()
        if not c.bucket_exists(settings.MINIO_BUCKET):
            c.make_bucket(settings.MINIO_BUCKET)

    _with_retry(_op, attempts=3)
