"""
File upload utilities for handling image validation and storage.
Provides common file operations and validation functions.
"""

import io
import uuid
import logging
from pathlib import Path
from typing import List, Optional
from PIL import Image, UnidentifiedImageError
import aiofiles
from fastapi import UploadFile

from estate_api.config import get_settings
from estate_api.utils.exceptions import (
    FileUploadError,
    FileSizeExceededError,
    TooManyFilesError,
    UnsupportedFileTypeError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


class ValidatedImage:
    """An upload whose bytes have been read and checked."""

    def __init__(self, filename: str, content: bytes, mime_type: str, extension: str, width: int, height: int):
        self.filename = filename
        self.content = content
        self.mime_type = mime_type
        self.extension = extension
        self.width = width
        self.height = height

    @property
    def file_size(self) -> int:
        return len(self.content)


class FileValidator:
    """Utility class for image upload validation."""

    SUPPORTED_FORMATS = {
        'image/jpeg': ['.jpg', '.jpeg'],
        'image/png': ['.png'],
        'image/webp': ['.webp']
    }

    # Pillow format names for each MIME type
    PIL_FORMATS = {
        'image/jpeg': 'JPEG',
        'image/png': 'PNG',
        'image/webp': 'WEBP'
    }

    @classmethod
    def allowed_types(cls) -> List[str]:
        return [mime for mime in settings.allowed_file_types if mime in cls.SUPPORTED_FORMATS]

    @classmethod
    def validate_file_count(cls, count: int) -> None:
        if count > settings.max_images_per_request:
            raise TooManyFilesError(count, settings.max_images_per_request)

    @classmethod
    def validate_mime_type(cls, mime_type: Optional[str]) -> str:
        """
        Validate MIME type.

        Raises:
            UnsupportedFileTypeError: If MIME type is not allowed
        """
        allowed = cls.allowed_types()
        if not mime_type or mime_type not in allowed:
            raise UnsupportedFileTypeError(mime_type or "unknown", allowed)
        return mime_type

    @classmethod
    def validate_file_extension(cls, filename: str, mime_type: str) -> str:
        """
        Validate that the extension exists and matches the MIME type.

        Returns:
            Lowercase file extension
        """
        extension = Path(filename).suffix.lower()
        if not extension:
            raise FileUploadError(f"'{filename}' has no file extension")

        if extension not in cls.SUPPORTED_FORMATS[mime_type]:
            raise FileUploadError(f"File extension '{extension}' doesn't match MIME type '{mime_type}'")

        return extension

    @classmethod
    def validate_file_size(cls, file_size: int) -> int:
        if file_size <= 0:
            raise FileUploadError("File is empty")

        if file_size > settings.max_file_size:
            raise FileSizeExceededError(file_size, settings.max_file_size)

        return file_size

    @classmethod
    async def validate_upload_file(cls, file: UploadFile) -> ValidatedImage:
        """
        Comprehensive validation of uploaded file.

        Args:
            file: FastAPI UploadFile object

        Returns:
            ValidatedImage holding the file content and dimensions

        Raises:
            FileUploadError: If any validation fails
        """
        if not file.filename:
            raise FileUploadError("Filename is required")

        mime_type = cls.validate_mime_type(file.content_type)
        extension = cls.validate_file_extension(file.filename, mime_type)

        # Reject from the multipart part size before buffering the content
        if file.size is not None:
            cls.validate_file_size(file.size)

        await file.seek(0)
        content = await file.read()
        cls.validate_file_size(len(content))

        try:
            with Image.open(io.BytesIO(content)) as img:
                width, height = img.size
                if img.format != cls.PIL_FORMATS[mime_type]:
                    raise FileUploadError(
                        f"Image format '{img.format}' doesn't match MIME type '{mime_type}'"
                    )
        except (UnidentifiedImageError, OSError) as e:
            raise FileUploadError(f"Invalid image file '{file.filename}': {e}")

        if width < 1 or height < 1:
            raise FileUploadError(f"Image '{file.filename}' has no pixels")

        return ValidatedImage(file.filename, content, mime_type, extension, width, height)

    @classmethod
    async def validate_upload_files(cls, files: List[UploadFile]) -> List[ValidatedImage]:
        """Validate every upload of a request before anything is written."""
        cls.validate_file_count(len(files))
        return [await cls.validate_upload_file(file) for file in files]


class FileStorage:
    """Utility class for file storage operations."""

    def __init__(self, base_dir: Optional[Path] = None, url_prefix: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.url_prefix = (url_prefix or settings.uploads_url_prefix).rstrip("/")

    def get_property_directory(self, property_id: uuid.UUID) -> Path:
        return self.base_dir / "properties" / str(property_id)

    def generate_file_path(self, property_id: uuid.UUID, extension: str) -> Path:
        """Generate a unique path for storing an image."""
        return self.get_property_directory(property_id) / f"{uuid.uuid4()}{extension}"

    def get_relative_path(self, full_path: Path) -> str:
        """Relative path from the base directory, with forward slashes."""
        return full_path.relative_to(self.base_dir).as_posix()

    def get_public_url(self, relative_path: str) -> str:
        return f"{self.url_prefix}/{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        return self.base_dir / relative_path

    async def save_bytes(self, content: bytes, file_path: Path) -> int:
        """
        Write file content to disk.

        Returns:
            Number of bytes written

        Raises:
            FileUploadError: If file save fails
        """
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, 'wb') as f:
                await f.write(content)
            return len(content)
        except OSError as e:
            self.delete_file(file_path)
            raise FileUploadError(f"Failed to save file: {str(e)}")

    def delete_file(self, file_path: Path) -> bool:
        """
        Delete a file from disk.

        Returns:
            True if file was deleted, False otherwise
        """
        try:
            if file_path.exists():
                file_path.unlink()
                return True
            return False
        except OSError as e:
            logger.warning(f"Could not delete file {file_path}: {e}")
            return False

    def cleanup_empty_directories(self, property_id: uuid.UUID) -> bool:
        """Remove the property's image directory once it is empty."""
        property_dir = self.get_property_directory(property_id)
        try:
            if property_dir.exists() and not any(property_dir.iterdir()):
                property_dir.rmdir()
                return True
            return False
        except OSError as e:
            logger.warning(f"Could not remove directory {property_dir}: {e}")
            return False
