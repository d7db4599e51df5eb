"""
Image service for storing and removing listing photos on local disk.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional

from fastapi import UploadFile

from estate_api.models.image import PropertyImage
from estate_api.utils.file_utils import FileStorage, FileValidator, ValidatedImage

logger = logging.getLogger(__name__)


class ImageService:
    """Validates uploads and manages the files behind PropertyImage rows."""

    def __init__(self, storage: Optional[FileStorage] = None):
        self.storage = storage or FileStorage()

    async def validate_uploads(self, files: Optional[List[UploadFile]]) -> List[ValidatedImage]:
        """
        Validate all uploaded images of a request.

        Raises:
            FileUploadError: If any file is rejected
        """
        files = [file for file in (files or []) if file is not None and file.filename]
        return await FileValidator.validate_upload_files(files)

    async def store_images(
        self,
        property_id: uuid.UUID,
        images: List[ValidatedImage]
    ) -> List[Dict[str, Any]]:
        """
        Write validated images to disk.

        Returns:
            Column values for a PropertyImage per stored file, in upload order
        """
        stored: List[Dict[str, Any]] = []
        try:
            for image in images:
                file_path = self.storage.generate_file_path(property_id, image.extension)
                file_size = await self.storage.save_bytes(image.content, file_path)
                relative_path = self.storage.get_relative_path(file_path)
                stored.append({
                    "url": self.storage.get_public_url(relative_path),
                    "public_id": relative_path,
                    "filename": image.filename,
                    "file_size": file_size,
                    "mime_type": image.mime_type,
                    "width": image.width,
                    "height": image.height,
                })
        except Exception:
            self.discard_stored(property_id, stored)
            raise

        if stored:
            logger.info(f"Stored {len(stored)} images for property {property_id}")
        return stored

    def discard_stored(self, property_id: uuid.UUID, stored: List[Dict[str, Any]]) -> None:
        """Delete files written for a request whose database write failed."""
        for image_data in stored:
            self.storage.delete_file(self.storage.resolve(image_data["public_id"]))
        self.storage.cleanup_empty_directories(property_id)

    def delete_image_files(self, property_id: uuid.UUID, images: List[PropertyImage]) -> int:
        """
        Delete the files behind removed image rows.

        Returns:
            Number of files deleted
        """
        deleted = 0
        for image in images:
            if self.storage.delete_file(self.storage.resolve(image.public_id)):
                deleted += 1
        self.storage.cleanup_empty_directories(property_id)
        if deleted:
            logger.info(f"Deleted {deleted} image files for property {property_id}")
        return deleted
