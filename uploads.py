"""
Upload collaborator

Turns an uploaded file into an embeddable `data:` URL. A value is returned
only for a complete read; anything short, empty or oversized is rejected so
a truncated image never reaches the settings or an episode.
"""

import base64
import logging
import mimetypes
from typing import Optional

import config
from errors import UploadError

logger = logging.getLogger(__name__)


class DataUrlUploader:
    def __init__(self, max_bytes: int = config.MAX_UPLOAD_BYTES):
        self.max_bytes = max_bytes

    def store(self, filename: str, data: bytes, content_type: Optional[str] = None,
              expected_size: Optional[int] = None) -> str:
        if not data:
            raise UploadError(f"{filename or 'Upload'} is empty")
        if expected_size is not None and len(data) != expected_size:
            raise UploadError(f"{filename} was only partially read ({len(data)} of {expected_size} bytes)")
        if len(data) > self.max_bytes:
            raise UploadError(f"{filename} is larger than {self.max_bytes} bytes")
        mime = content_type or mimetypes.guess_type(filename or "")[0] or "application/octet-stream"
        encoded = base64.b64encode(data).decode("ascii")
        logger.debug(f"Encoded upload {filename} ({len(data)} bytes, {mime})")
        return f"data:{mime};base64,{encoded}"
