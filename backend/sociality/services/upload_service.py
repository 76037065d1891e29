"""
Sociality Backend — Image Upload Service
=========================================

What:  Validates, resizes and stores uploaded images (post photos, avatars).
Who:   Called by the posts and me routes through an UploadBatch, which
       removes the files again if the request fails.

Pipeline (cheapest check first):
    1. Extension check:     .jpg .jpeg .png .avif
    2. Content-type check:  the multipart part's declared type
    3. Size check:          MAX_UPLOAD_SIZE (10MB by default)
    4. Decode + resize:     Pillow must be able to open the bytes; EXIF
                            orientation is applied, then the image is
                            shrunk to fit IMAGE_MAX_DIMENSION (aspect kept)
                            and re-encoded. Runs in a worker thread.
    5. Store:               UPLOAD_DIR/<uuid><ext>, written with aiofiles

Public URLs:
    PUBLIC_API_URL + "/uploads/<file>", or the bare "/uploads/<file>" path
    when PUBLIC_API_URL is unset. main.py serves UPLOAD_DIR at /uploads.
"""

import asyncio
import io
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles
from PIL import Image, ImageOps, UnidentifiedImageError

from sociality.config import settings
from sociality.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".avif"}

ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/pjpeg",
    "image/png",
    "image/avif",
}

# Pillow format name → extension of the stored file
_OUTPUT_EXTENSIONS = {
    "JPEG": ".jpg",
    "PNG": ".png",
    "AVIF": ".avif",
}

UNSUPPORTED_IMAGE_MESSAGE = "Unsupported image type"


@dataclass(frozen=True)
class StoredImage:
    path: Path
    filename: str
    url: str
    size: int


class UploadService:
    """Owns everything under UPLOAD_DIR."""

    def __init__(
        self,
        upload_dir: Optional[str] = None,
        max_size: Optional[int] = None,
        max_dimension: Optional[int] = None,
        quality: Optional[int] = None,
    ):
        self.upload_dir = Path(upload_dir or settings.upload_dir).resolve()
        self.max_size = max_size or settings.max_upload_size
        self.max_dimension = max_dimension or settings.image_max_dimension
        self.quality = quality or settings.image_quality

    def ensure_upload_dir(self) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        return self.upload_dir

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: Optional[str]) -> str:
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=UNSUPPORTED_IMAGE_MESSAGE,
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_content_type(self, content_type: Optional[str]) -> None:
        # Some clients omit the part's type; the decode step still applies
        if not content_type:
            return
        if content_type.split(";")[0].strip().lower() not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                message=UNSUPPORTED_IMAGE_MESSAGE,
                field="image",
                context={"content_type": content_type},
            )

    def validate_size(self, size: int) -> None:
        if size == 0:
            raise ValidationError(message="Uploaded image is empty", field="image")
        if size > self.max_size:
            max_mb = self.max_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image exceeds the {max_mb:.0f}MB upload limit",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    # ── Processing ────────────────────────────────────────────────────────

    def resize_image(self, content: bytes) -> Tuple[bytes, str]:
        """
        Decode, orient, downscale and re-encode an image.

        Blocking (Pillow); callers run it with asyncio.to_thread.

        Returns:
            (encoded bytes, stored extension)

        Raises:
            ValidationError when the bytes are not an image Pillow can decode
            or are in a format outside the accepted set.
        """
        try:
            with Image.open(io.BytesIO(content)) as source:
                # Multi-picture JPEGs from phone cameras decode as MPO
                fmt = "JPEG" if source.format == "MPO" else source.format
                if fmt not in _OUTPUT_EXTENSIONS:
                    raise ValidationError(
                        message=UNSUPPORTED_IMAGE_MESSAGE,
                        field="image",
                        context={"format": fmt},
                    )
                image = ImageOps.exif_transpose(source)
                image.thumbnail(
                    (self.max_dimension, self.max_dimension),
                    Image.Resampling.LANCZOS,
                )

                buffer = io.BytesIO()
                if fmt == "JPEG":
                    if image.mode not in ("RGB", "L"):
                        image = image.convert("RGB")
                    image.save(buffer, format="JPEG", quality=self.quality, optimize=True)
                elif fmt == "PNG":
                    image.save(buffer, format="PNG", optimize=True)
                else:
                    image.save(buffer, format=fmt, quality=self.quality)
        except (UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise ValidationError(
                message=UNSUPPORTED_IMAGE_MESSAGE,
                field="image",
                context={"reason": type(e).__name__},
            ) from e
        except OSError as e:
            # Truncated or corrupt data surfaces as OSError from load()
            raise ValidationError(
                message=UNSUPPORTED_IMAGE_MESSAGE,
                field="image",
                context={"reason": "corrupt_image"},
            ) from e

        return buffer.getvalue(), _OUTPUT_EXTENSIONS[fmt]

    # ── Storage ───────────────────────────────────────────────────────────

    def public_url_for(self, filename: str) -> str:
        path = f"/uploads/{filename}"
        base = settings.public_base_url
        return f"{base}{path}" if base else path

    async def store_bytes(self, content: bytes, extension: str) -> StoredImage:
        filename = f"{uuid.uuid4()}{extension}"
        path = self.ensure_upload_dir() / filename
        try:
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store upload at %s: %s", path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            ) from e

        logger.info("Stored upload %s (%d bytes)", filename, len(content))
        return StoredImage(path=path, filename=filename, url=self.public_url_for(filename), size=len(content))

    async def save_image(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> StoredImage:
        """Full validate → resize → store pipeline for one uploaded image."""
        self.validate_extension(filename)
        self.validate_content_type(content_type)
        self.validate_size(len(content))

        processed, extension = await asyncio.to_thread(self.resize_image, content)
        return await self.store_bytes(processed, extension)

    async def cleanup(self, stored: Optional[StoredImage]) -> None:
        """
        Remove a stored file after the request that created it failed.

        Best-effort: a leftover file is harmless, so failures are logged only.
        """
        if stored is None:
            return
        try:
            stored.path.unlink(missing_ok=True)
            logger.info("Cleaned up upload %s", stored.filename)
        except OSError as e:
            logger.warning("Failed to clean up upload %s: %s", stored.filename, e)


class UploadBatch:
    """
    Files stored while handling one request.

    The upload_batch dependency discards them when the request fails at any
    point, including a COMMIT that fails after the route returned.
    """

    def __init__(self, service: UploadService) -> None:
        self.service = service
        self.stored: List[StoredImage] = []

    async def save_image(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        content: bytes,
    ) -> StoredImage:
        stored = await self.service.save_image(filename, content_type, content)
        self.stored.append(stored)
        return stored

    async def discard(self) -> None:
        for stored in self.stored:
            await self.service.cleanup(stored)
        self.stored.clear()


# ── Singleton Instance ────────────────────────────────────────────────────
upload_service = UploadService()
