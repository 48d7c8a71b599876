"""
MotoresRD - Image Security Validation.

Multi-layer validation for uploaded gallery and listing images.
Protects against:
- Path traversal through brand/make/color path segments
- Fake images (arbitrary files renamed to .jpg)
- Image bombs (decompression attacks)
"""

import logging
import re
from io import BytesIO
from pathlib import Path, PurePosixPath

from PIL import Image

logger = logging.getLogger(__name__)

# Magic number signatures for allowed image types
MAGIC_SIGNATURES: dict[str, list[bytes]] = {
    "image/jpeg": [b"\xff\xd8\xff"],
    "image/png": [b"\x89PNG\r\n\x1a\n"],
    "image/gif": [b"GIF87a", b"GIF89a"],
    "image/webp": [b"RIFF"],  # followed by WEBP at offset 8
}

ALLOWED_MIME_TYPES = frozenset(MAGIC_SIGNATURES)

# Extensions accepted when reading existing gallery folders
GALLERY_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "webp", "gif"})

PIL_FORMAT_TO_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}

MIME_TO_EXTENSION = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}

# Security limits
MAX_IMAGE_PIXELS = 89_478_485  # PIL default, prevents decompression bombs
MIN_IMAGE_SIZE = 100  # bytes
MAX_IMAGE_DIMENSION = 8192

_SAFE_SEGMENT = re.compile(r"^[\w\-\.]+$")


class ImageSecurityError(Exception):
    """Exception raised for image security validation failures."""

    pass


def validate_filename(filename: str) -> str:
    """
    Validate a single file name (no directories) with an image extension.

    Args:
        filename: User-provided filename

    Returns:
        The filename, unchanged

    Raises:
        ImageSecurityError: If it contains separators, traversal or a bad extension
    """
    if not filename:
        raise ImageSecurityError("Filename cannot be empty")

    if ".." in filename or "/" in filename or "\\" in filename:
        logger.warning(f"Path traversal attempt detected: {filename}")
        raise ImageSecurityError(f"Invalid filename: {filename}")

    if not _SAFE_SEGMENT.match(filename):
        raise ImageSecurityError(
            f"Invalid filename: {filename}. "
            "Only alphanumeric, dash, underscore, and dot allowed."
        )

    if filename.startswith("."):
        raise ImageSecurityError("Hidden files not allowed")

    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in GALLERY_EXTENSIONS:
        raise ImageSecurityError(f"Invalid file extension: {ext}")

    return filename


def validate_path_segment(segment: str) -> str:
    """
    Validate one directory name (brand, make or color slug).

    Raises:
        ImageSecurityError: On traversal, hidden names or unsafe characters
    """
    if (
        not segment
        or segment in (".", "..")
        or segment.startswith(".")
        or not _SAFE_SEGMENT.match(segment)
    ):
        logger.warning(f"Path traversal attempt detected: {segment}")
        raise ImageSecurityError(f"Invalid path segment: {segment}")
    return segment


def validate_relative_image_path(relative_path: str) -> PurePosixPath:
    """
    Validate a gallery path such as "yamaha/mt-07/azul/yamaha-mt-07-azul-1700000000.jpg".

    Every directory segment must be a safe slug-like token and the last
    segment a valid image filename.

    Raises:
        ImageSecurityError: On absolute paths, traversal or unsafe segments
    """
    if not relative_path:
        raise ImageSecurityError("Path cannot be empty")

    if relative_path.startswith(("/", "\\")) or "\\" in relative_path:
        raise ImageSecurityError(f"Invalid path: {relative_path}")

    path = PurePosixPath(relative_path)
    parts = path.parts
    for segment in parts[:-1]:
        validate_path_segment(segment)

    validate_filename(parts[-1])
    return path


def resolve_within(root: Path, relative_path: str | PurePosixPath) -> Path:
    """
    Resolve relative_path under root and make sure it stays inside root.

    Raises:
        ImageSecurityError: If the resolved path escapes root
    """
    base = root.resolve()
    candidate = (base / str(relative_path)).resolve()
    if not candidate.is_relative_to(base):
        logger.error(f"Path traversal attempt detected: {relative_path} -> {candidate}")
        raise ImageSecurityError("Access denied")
    return candidate


def detect_mime_from_magic(content: bytes) -> str | None:
    """
    Detect MIME type from file magic numbers.

    Args:
        content: Raw file bytes (at least first 12 bytes needed)

    Returns:
        Detected MIME type or None if not recognized
    """
    if len(content) < 8:
        return None

    for mime_type, signatures in MAGIC_SIGNATURES.items():
        for sig in signatures:
            if not content.startswith(sig):
                continue
            if mime_type == "image/webp":
                if content[8:12] == b"WEBP":
                    return mime_type
                continue
            return mime_type

    return None


def validate_magic_number(content: bytes, declared_mime: str | None = None) -> str:
    """
    Validate file content using magic numbers (file signature).

    Args:
        content: Raw file bytes
        declared_mime: MIME type declared by the client (optional)

    Returns:
        Actual MIME type detected

    Raises:
        ImageSecurityError: If file type is unknown or not allowed
    """
    if len(content) < MIN_IMAGE_SIZE:
        raise ImageSecurityError(f"File too small: {len(content)} bytes")

    detected_mime = detect_mime_from_magic(content)

    if detected_mime is None:
        try:
            with Image.open(BytesIO(content)) as img:
                detected_mime = PIL_FORMAT_TO_MIME.get((img.format or "").upper())
        except Exception as e:
            logger.debug(f"PIL could not identify upload: {e}")

    if detected_mime is None:
        raise ImageSecurityError(
            "Could not detect file type. File may not be a valid image."
        )

    if detected_mime not in ALLOWED_MIME_TYPES:
        raise ImageSecurityError(
            f"File type not allowed: {detected_mime}. "
            f"Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}"
        )

    if declared_mime and declared_mime.replace("jpg", "jpeg") != detected_mime:
        logger.warning(
            f"MIME type mismatch: declared={declared_mime}, "
            f"detected={detected_mime}. Using detected type."
        )

    return detected_mime


def validate_image_content(content: bytes) -> tuple[int, int]:
    """
    Validate image content using PIL (checks if valid image + dimensions).

    Returns:
        Tuple of (width, height)

    Raises:
        ImageSecurityError: If image is invalid or dimensions exceed limits
    """
    try:
        Image.MAX_IMAGE_PIXELS = MAX_IMAGE_PIXELS

        with Image.open(BytesIO(content)) as img:
            img.verify()

        # verify() leaves the image unusable, reopen for the size
        with Image.open(BytesIO(content)) as img:
            width, height = img.size

        if width <= 0 or height <= 0:
            raise ImageSecurityError(f"Invalid image dimensions: {width}x{height}")

        if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
            raise ImageSecurityError(
                f"Image dimensions too large: {width}x{height}. "
                f"Max: {MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
            )

        return width, height

    except ImageSecurityError:
        raise
    except Image.DecompressionBombError as e:
        logger.warning(f"Decompression bomb detected: {e}")
        raise ImageSecurityError("Image appears to be a decompression bomb")
    except Exception as e:
        logger.warning(f"Image validation failed: {e}")
        raise ImageSecurityError(f"Invalid image file: {str(e)}")


def sanitize_filename(original: str) -> str:
    """
    Sanitize a client filename for logging and metadata.

    Args:
        original: Original filename from user

    Returns:
        Basename with unsafe characters replaced by underscores
    """
    if not original:
        return "image"

    safe = Path(original.replace("\\", "/")).name
    safe = re.sub(r"[^\w\-\.]", "_", safe).lstrip(".")

    if not safe:
        return "image"

    if len(safe) > 255:
        if "." in safe:
            name_part, ext = safe.rsplit(".", 1)
            safe = name_part[: 255 - len(ext) - 1] + "." + ext
        else:
            safe = safe[:255]

    return safe


def validate_image_full(content: bytes, declared_mime: str | None = None) -> dict:
    """
    Run every validation layer on an uploaded image.

    Returns:
        {"valid": True, "detected_mime": str, "width": int, "height": int, "file_size": int}

    Raises:
        ImageSecurityError: If any validation fails
    """
    detected_mime = validate_magic_number(content, declared_mime)
    width, height = validate_image_content(content)

    logger.info(
        f"Image security validation passed: "
        f"{width}x{height}, {len(content)} bytes, {detected_mime}"
    )

    return {
        "valid": True,
        "detected_mime": detected_mime,
        "width": width,
        "height": height,
        "file_size": len(content),
    }


def get_extension_for_mime(mime_type: str) -> str:
    """File extension without dot for a MIME type (defaults to "jpg")."""
    return MIME_TO_EXTENSION.get(mime_type, "jpg")
