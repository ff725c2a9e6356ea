"""Uploads of images and bank slips to Supabase Storage."""

import logging
from datetime import datetime, timezone
from uuid import uuid4

from supabase import Client

from woodart.api.middleware.error_handler import ValidationError
from woodart.core.config import Settings, get_settings
from woodart.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

# Allowed MIME types for design and reference images
IMAGE_MIME_TYPES = {"image/png", "image/jpeg", "image/jpg", "image/webp"}

# Bank slips may also be scanned PDFs
BANK_SLIP_MIME_TYPES = IMAGE_MIME_TYPES | {"application/pdf"}


class StorageService:
    """Stores uploaded files under dated, collision-free paths."""

    def __init__(self, supabase_client: Client | None = None, settings: Settings | None = None):
        """Initialize storage service.

        Args:
            supabase_client: Optional Supabase client for testing.
            settings: Optional settings for testing.
        """
        self._supabase_client = supabase_client
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def upload(
        self,
        folder: str,
        file_content: bytes,
        file_name: str,
        mime_type: str | None,
        allowed_types: set[str] = IMAGE_MIME_TYPES,
    ) -> str:
        """Upload a file and return its public URL.

        Args:
            folder: Top-level folder in the bucket, e.g. ``bank-slips``.
            file_content: File content bytes.
            file_name: Original file name.
            mime_type: File MIME type.
            allowed_types: MIME types accepted for this upload.

        Returns:
            Public URL of the stored file.

        Raises:
            ValidationError: If the file is empty, too large or of the wrong type.
        """
        if not file_content:
            raise ValidationError(f"{file_name or 'Uploaded file'} is empty")
        if len(file_content) > self.settings.max_request_body_size:
            raise ValidationError(f"{file_name} is larger than {self.settings.max_request_body_size} bytes")
        if mime_type not in allowed_types:
            raise ValidationError(
                f"Unsupported file type {mime_type}. Allowed: {', '.join(sorted(allowed_types))}"
            )

        extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
        storage_path = f"{folder}/{datetime.now(timezone.utc):%Y/%m}/{uuid4().hex}.{extension}"

        bucket = self.supabase.storage.from_(self.settings.storage_bucket)
        bucket.upload(
            path=storage_path,
            file=file_content,
            file_options={"content-type": mime_type},
        )
        logger.info("Stored %s (%d bytes) at %s", file_name, len(file_content), storage_path)
        return bucket.get_public_url(storage_path)
