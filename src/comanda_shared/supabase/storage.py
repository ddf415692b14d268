"""
Supabase Storage helper for product image uploads.
"""

from __future__ import annotations

import logging
import mimetypes
import uuid
from typing import Any
from urllib.parse import quote

from supabase import Client

from comanda_shared.validation import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


class SupabaseStorage:
    """Lightweight wrapper around one Supabase Storage bucket."""

    def __init__(self, client: Client, supabase_url: str, bucket: str):
        self._client = client
        self._supabase_url = supabase_url.rstrip("/")
        self.bucket = bucket

    def upload_bytes(
        self,
        path: str,
        content: bytes,
        content_type: str | None = None,
    ) -> dict[str, Any]:
        options: dict[str, Any] = {"upsert": "true"}
        if content_type:
            options["content-type"] = content_type

        response = self._client.storage.from_(self.bucket).upload(path, content, options)
        return response.model_dump() if hasattr(response, "model_dump") else {"data": response}

    def delete_file(self, path: str) -> bool:
        response = self._client.storage.from_(self.bucket).remove([path])
        if hasattr(response, "data"):
            return bool(response.data)
        return True

    def get_public_url(self, path: str) -> str:
        safe_path = quote(path, safe="/")
        return f"{self._supabase_url}/storage/v1/object/public/{self.bucket}/{safe_path}"

    def upload_product_image(
        self,
        restaurant_id: str,
        filename: str,
        content: bytes,
        content_type: str | None = None,
    ) -> str:
        """Store an uploaded product image and return its public URL."""
        content_type = content_type or mimetypes.guess_type(filename)[0]
        if content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError("Formato de imagem não suportado")
        if not content:
            raise ValidationError("Imagem vazia")
        if len(content) > MAX_IMAGE_BYTES:
            raise ValidationError("Imagem excede o tamanho máximo de 5MB")

        extension = mimetypes.guess_extension(content_type) or ""
        path = f"{restaurant_id}/{uuid.uuid4().hex}{extension}"
        self.upload_bytes(path, content, content_type)
        logger.info(
            "Product image uploaded",
            extra={"bucket": self.bucket, "path": path, "size": len(content)},
        )
        return self.get_public_url(path)
