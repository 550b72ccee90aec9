"""
Borrower document storage. Objects live under ``{user_id}/`` in the documents
bucket, named ``{iso_timestamp}__{sanitized-name}.{ext}`` so the listing can
recover both the upload time and the display name.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from config import settings
from integrations.supabase import StorageClient
from logging_config import get_logger
from services.errors import ValidationFailed

logger = get_logger("documents")

NAME_SEPARATOR = "__"


@dataclass(frozen=True)
class DocumentRow:
    name: str
    path: str
    created_at: datetime


def sanitize_document_name(name: str) -> str:
    """``" Gov't ID (front) "`` -> ``Govt-ID-front``."""
    cleaned = re.sub(r"[^a-zA-Z0-9\-_ ]", "", name.strip())
    return re.sub(r"\s+", "-", cleaned)


def build_object_path(user_id: str, name: str, filename: str, now: Optional[datetime] = None) -> str:
    sanitized = sanitize_document_name(name)
    if not sanitized:
        raise ValidationFailed("Document name is required")
    timestamp = (now or datetime.now(timezone.utc)).isoformat()
    ext = filename.rsplit(".", 1)[-1] if "." in filename else ""
    ext = re.sub(r"[^A-Za-z0-9]", "", ext)
    object_name = f"{timestamp}{NAME_SEPARATOR}{sanitized}"
    if ext:
        object_name = f"{object_name}.{ext}"
    return f"{user_id}/{object_name}"


def display_name(object_name: str) -> str:
    parts = object_name.split(NAME_SEPARATOR, 1)
    return parts[1] if len(parts) == 2 and parts[1] else object_name


class DocumentService:
    def __init__(self, storage: StorageClient, bucket: str = settings.documents_bucket):
        self.storage = storage
        self.bucket = bucket

    async def list_documents(self, user_id: str) -> list[DocumentRow]:
        objects = await self.storage.list_objects(self.bucket, user_id)
        now = datetime.now(timezone.utc)
        rows = [
            DocumentRow(
                name=display_name(obj.name),
                path=f"{user_id}/{obj.name}",
                created_at=obj.created_at or now,
            )
            for obj in objects
            if obj.name
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return rows

    async def upload(
        self,
        user_id: str,
        name: str,
        filename: str,
        content: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        if not content:
            raise ValidationFailed("File is empty.")
        path = build_object_path(user_id, name, filename)
        await self.storage.upload(
            self.bucket,
            path,
            content,
            content_type=content_type or "application/octet-stream",
            upsert=False,
        )
        logger.info("Uploaded %s", path, extra={"action": "documents.upload", "user_id": user_id})
        return path

    async def signed_url(self, user_id: str, path: str) -> str:
        # Only objects under the caller's own folder
        if not path.startswith(f"{user_id}/") or ".." in path.split("/"):
            raise ValidationFailed("Unknown document")
        return await self.storage.create_signed_url(self.bucket, path, settings.signed_url_ttl_seconds)
