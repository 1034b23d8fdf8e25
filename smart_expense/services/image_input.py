"""
Builds the data URL sent to the vision service from whatever the client sent.

Accepted inputs:
- a base64 string (from a JSON body or a form field), optionally already a
  `data:` URL
- raw bytes from a multipart upload, wrapped using the upload's media type
"""

import base64
from typing import Optional
from .errors import ImageRequiredError, ImageTooLargeError

DEFAULT_MEDIA_TYPE = "image/jpeg"


def data_url_from_base64(payload: str, default_media_type: str = DEFAULT_MEDIA_TYPE) -> str:
    payload = payload.strip()
    if payload.startswith("data:"):
        return payload
    return f"data:{default_media_type};base64,{payload}"


def data_url_from_bytes(
    content: bytes,
    media_type: Optional[str] = None,
    default_media_type: str = DEFAULT_MEDIA_TYPE,
) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{media_type or default_media_type};base64,{encoded}"


def resolve_image_data_url(
    image_base64: Optional[str] = None,
    file_bytes: Optional[bytes] = None,
    file_media_type: Optional[str] = None,
    max_upload_bytes: Optional[int] = None,
    default_media_type: str = DEFAULT_MEDIA_TYPE,
) -> str:
    """
    Pick the image source and return it as a data URL.

    A base64 payload wins over an uploaded file.

    Raises:
        ImageTooLargeError: upload exceeds `max_upload_bytes`
        ImageRequiredError: neither source carries any content
    """
    if image_base64 and image_base64.strip():
        # base64 inflates by 4/3
        _check_size(len(image_base64.strip()) * 3 // 4, max_upload_bytes)
        return data_url_from_base64(image_base64, default_media_type)

    if file_bytes:
        _check_size(len(file_bytes), max_upload_bytes)
        return data_url_from_bytes(file_bytes, file_media_type, default_media_type)

    raise ImageRequiredError()


def _check_size(size: int, max_upload_bytes: Optional[int]) -> None:
    if max_upload_bytes is not None and size > max_upload_bytes:
        raise ImageTooLargeError(
            details=f"Image is {size} bytes, limit is {max_upload_bytes} bytes"
        )
