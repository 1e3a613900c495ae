"""
Resource extraction for OCR results.

Pulls per-page images out of an OCR result into a document-wide registry
keyed by image id. Tables stay attached to their page for the combiner.
"""

import binascii
import logging
from typing import Dict, Optional

from .io import base64_to_bytes
from .models import OcrResult, ImageResource

logger = logging.getLogger(__name__)


ImageRegistry = Dict[str, ImageResource]

IMAGE_MEDIA_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}


def media_type_for_format(image_format: str) -> str:
    """Map an image format to its MIME type; unknown formats default to JPEG."""
    return IMAGE_MEDIA_TYPES.get((image_format or "").lower(), "image/jpeg")


def extract_images(ocr_result: Optional[OcrResult]) -> ImageRegistry:
    """
    Build the image registry from every page of an OCR result.

    Images without an id or payload are skipped, as are payloads that fail
    to decode. A later page silently overwrites an earlier image with the
    same id.

    Args:
        ocr_result: Parsed OCR result (or None)

    Returns:
        Mapping of image id to decoded ImageResource
    """
    images: ImageRegistry = {}
    if ocr_result is None:
        return images

    for page in ocr_result.pages:
        for image in page.images or []:
            if not image.id or not image.data:
                logger.warning(f"Skipping incomplete image on page {page.index}")
                continue
            try:
                data = base64_to_bytes(image.data)
            except (binascii.Error, ValueError) as e:
                logger.warning(f"Skipping image {image.id} on page {page.index}: {e}")
                continue
            images[image.id] = ImageResource(data=data, format=image.format)

    logger.debug(f"Extracted {len(images)} image(s)")
    return images
