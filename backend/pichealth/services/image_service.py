"""
PicHealth API — Image Decoding Service
=======================================

What:  Turns the `image` field of an OCR request into validated bytes.
How:   Strips an optional data-URI prefix (`data:image/jpeg;base64,`), checks
       the declared type, decodes strict base64, checks the decoded size and
       then reads the real type from the bytes with libmagic. The sniffed
       type, not the declared one, is what reaches the model and the bucket.
Who:   Called by the OCR routes before any model call, so a bad upload costs
       no Gemini quota.

Validation order (cheapest first):
    1. Presence          → MISSING_IMAGE
    2. Declared type     → UNSUPPORTED_IMAGE_TYPE
    3. Encoded length    → IMAGE_TOO_LARGE (before decoding anything)
    4. base64 decode     → INVALID_IMAGE
    5. Decoded size      → IMAGE_TOO_LARGE
    6. Content sniffing  → INVALID_IMAGE (not an image) or
                           UNSUPPORTED_IMAGE_TYPE (an image of another type)
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import magic

from pichealth.config import settings
from pichealth.exceptions import ValidationError
from pichealth.services.llm_base import ImageInput

logger = logging.getLogger(__name__)

# What: subtypes accepted in a data-URI prefix
ALLOWED_IMAGE_TYPES = frozenset({"png", "jpeg", "jpg", "webp", "heic", "heif"})

# What: sniffed MIME type → file extension
SNIFFED_EXTENSIONS: Dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/heic": "heic",
    "image/heif": "heif",
}

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,", re.IGNORECASE)


@dataclass(frozen=True)
class DecodedImage:
    data: bytes
    mime_type: str
    extension: str

    def as_model_input(self) -> ImageInput:
        return ImageInput(data=self.data, mime_type=self.mime_type)


def split_data_uri(image: str):
    """
    Return (subtype, base64 payload). Subtype is None when there is no
    data-URI prefix; it is the full MIME type when the prefix is not image/*.
    """
    match = _DATA_URI_RE.match(image)
    if not match:
        return None, image
    mime = match.group("mime").lower()
    subtype = mime.split("/", 1)[1] if mime.startswith("image/") else mime
    return subtype, image[match.end():]


def decode_image(
    image: Optional[str],
    max_size: Optional[int] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> DecodedImage:
    """
    Decode and validate a base64 image.

    Args:
        image:    Base64 text, optionally with a data-URI prefix.
        max_size: Byte limit for the decoded image (defaults to MAX_IMAGE_SIZE).
        payload:  Extra fields attached to any ValidationError raised, so the
                  400 body keeps the endpoint's empty result shape.

    Raises:
        ValidationError with code MISSING_IMAGE, UNSUPPORTED_IMAGE_TYPE,
        INVALID_IMAGE or IMAGE_TOO_LARGE.
    """
    limit = max_size or settings.max_image_size

    if not image or not image.strip():
        raise ValidationError(
            message="Please provide an image in base64 format",
            code="MISSING_IMAGE",
            field="image",
            payload=payload,
        )

    subtype, encoded = split_data_uri(image.strip())
    if subtype is not None and subtype not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            message=(
                f"Image type '{subtype}' is not supported. "
                f"Allowed types: {', '.join(sorted(ALLOWED_IMAGE_TYPES))}"
            ),
            code="UNSUPPORTED_IMAGE_TYPE",
            field="image",
            payload=payload,
            context={"declared_type": subtype},
        )

    # Whitespace and line breaks are common in pasted base64
    encoded = "".join(encoded.split())

    # base64 inflates by 4/3; reject before decoding
    if len(encoded) * 3 // 4 > limit + 3:
        raise _too_large(limit, len(encoded) * 3 // 4, payload)

    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(
            message="Image data is not valid base64",
            code="INVALID_IMAGE",
            field="image",
            payload=payload,
        )

    if not data:
        raise ValidationError(
            message="Please provide an image in base64 format",
            code="MISSING_IMAGE",
            field="image",
            payload=payload,
        )
    if len(data) > limit:
        raise _too_large(limit, len(data), payload)

    mime_type = sniff_mime_type(data, payload)
    extension = SNIFFED_EXTENSIONS[mime_type]
    logger.debug("Decoded %s image (%d bytes)", mime_type, len(data))
    return DecodedImage(data=data, mime_type=mime_type, extension=extension)


def _too_large(limit: int, size: int, payload: Optional[Dict[str, Any]]) -> ValidationError:
    max_mb = limit / (1024 * 1024)
    return ValidationError(
        message=f"Image exceeds maximum size of {max_mb:.0f}MB. Please upload a smaller image.",
        code="IMAGE_TOO_LARGE",
        field="image",
        payload=payload,
        context={"max_size": limit, "size": size},
    )


def sniff_mime_type(data: bytes, payload: Optional[Dict[str, Any]] = None) -> str:
    """
    Read the MIME type from the file header (e.g. JPEG starts with FF D8 FF).

    Raises:
        ValidationError INVALID_IMAGE when the bytes are not an image, or
        UNSUPPORTED_IMAGE_TYPE when they are an image of a type we don't send.
    """
    mime_type = magic.from_buffer(data, mime=True)

    if not mime_type.startswith("image/"):
        raise ValidationError(
            message="Image data is not a recognizable image",
            code="INVALID_IMAGE",
            field="image",
            payload=payload,
            context={"detected_type": mime_type},
        )
    if mime_type not in SNIFFED_EXTENSIONS:
        raise ValidationError(
            message=(
                f"Image type '{mime_type}' is not supported. "
                f"Allowed types: {', '.join(sorted(SNIFFED_EXTENSIONS))}"
            ),
            code="UNSUPPORTED_IMAGE_TYPE",
            field="image",
            payload=payload,
            context={"detected_type": mime_type},
        )
    return mime_type
