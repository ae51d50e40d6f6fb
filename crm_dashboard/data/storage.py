"""
Attachment upload to Supabase Storage.

The bucket must allow public reads; the returned URL is stored on the row that
references the attachment.
"""

from __future__ import annotations

import logging
import random
import string
import time
from typing import Optional

import httpx
from supabase import Client, StorageException

from crm_dashboard.errors import UploadError

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _extension(file_name: str) -> str:
    if "." not in file_name:
        return "bin"
    ext = file_name.rsplit(".", 1)[1]
    return ext or "bin"


def object_path(file_name: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=7))
    return f"{stamp}-{suffix}.{_extension(file_name)}"


def _error_message(exc: Exception) -> Optional[str]:
    payload = exc.args[0] if exc.args else None
    if isinstance(payload, dict):
        return payload.get("message") or payload.get("error")
    if payload:
        return str(payload)
    return None


def upload_attachment(
    client: Client,
    file_name: str,
    data: bytes,
    bucket: str,
    content_type: Optional[str] = None,
) -> str:
    path = object_path(file_name)
    options = {"upsert": "false"}
    if content_type:
        options["content-type"] = content_type
    store = client.storage.from_(bucket)
    try:
        store.upload(path, data, file_options=options)
    except StorageException as exc:
        message = _error_message(exc)
        logger.error("Upload of %s to %s failed: %s", file_name, bucket, message)
        raise UploadError(message) from exc
    except httpx.HTTPError as exc:
        logger.error("Upload of %s to %s failed: %s", file_name, bucket, exc)
        raise UploadError() from exc
    url = store.get_public_url(path)
    logger.info("Uploaded %s as %s/%s", file_name, bucket, path)
    return url
