"""
Storage Service - uploads receipts and reports to Cloudinary.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import cloudinary
import cloudinary.uploader

from society.config import settings
from society.errors import SideEffectError

logger = logging.getLogger(__name__)


@dataclass
class StoredObject:
    url: str
    object_id: str


class CloudinaryStorage:
    """Byte-buffer uploads into a Cloudinary folder."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
    ):
        self.timeout = timeout
        self.configured = bool(cloud_name and api_key and api_secret)
        if self.configured:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True,
            )

    @classmethod
    def from_settings(cls) -> "CloudinaryStorage":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            timeout=settings.side_effect_timeout_seconds,
        )

    async def upload(
        self,
        data: bytes,
        folder: str,
        filename: Optional[str] = None,
    ) -> StoredObject:
        """Upload ``data`` and return its public URL and Cloudinary public id."""
        if not self.configured:
            raise SideEffectError("Cloudinary settings missing")

        options = {
            "folder": folder,
            "resource_type": "raw",
            "timeout": self.timeout,
        }
        if filename:
            options["public_id"] = filename
            options["overwrite"] = True

        try:
            response = await asyncio.to_thread(cloudinary.uploader.upload, data, **options)
        except Exception as e:
            logger.error(f"Cloudinary upload to {folder} failed: {e}")
            raise SideEffectError("File upload failed")

        logger.info(f"Uploaded {response['public_id']} to Cloudinary")
        return StoredObject(url=response["secure_url"], object_id=response["public_id"])
