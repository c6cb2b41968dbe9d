"""
Read local files into message attachments.
"""

import base64
import mimetypes
from pathlib import Path
from typing import Optional

from ..models.core import Attachment, AttachmentError
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = 'application/octet-stream'


def attachment_from_bytes(name: str, payload: bytes, mime_type: Optional[str] = None) -> Attachment:
    if mime_type is None:
        mime_type = mimetypes.guess_type(name)[0] or DEFAULT_MIME_TYPE
    return Attachment(name=name, mime_type=mime_type, data=base64.b64encode(payload).decode('ascii'))


def attachment_from_path(path: str) -> Attachment:
    """Read a file and encode it as a base64 attachment.

    Args:
        path: Local file path

    Returns:
        Attachment named after the file, MIME type guessed from its extension

    Raises:
        AttachmentError: If the file cannot be read
    """
    file_path = Path(path)
    try:
        payload = file_path.read_bytes()
    except OSError as e:
        logger.error(f'Could not read attachment {file_path}: {e}')
        raise AttachmentError(f'Could not read attachment {file_path.name}: {e}')

    logger.debug(f'Read attachment {file_path.name} ({len(payload)} bytes)')
    return attachment_from_bytes(file_path.name, payload)
