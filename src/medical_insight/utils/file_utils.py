# ============================================================================
# src/medical_insight/utils/file_utils.py
# ============================================================================
"""
File utilities: turning local files into RawDocuments, MIME detection,
data URLs.
"""

import base64
import mimetypes
from pathlib import Path
from typing import Optional

from ..core.models import RawDocument


# Extensions the stdlib mimetypes table does not always know about
_EXTRA_MIME_TYPES = {
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.doc': 'application/msword',
    '.heic': 'image/heic',
    '.webp': 'image/webp',
}

_MAGIC_NUMBERS = (
    (b'%PDF', 'application/pdf'),
    (b'\x89PNG', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF8', 'image/gif'),
    (b'II*\x00', 'image/tiff'),
    (b'MM\x00*', 'image/tiff'),
)

DEFAULT_MIME_TYPE = 'application/octet-stream'


def guess_mime_type(filename: str, content: Optional[bytes] = None) -> str:
    """
    Guess MIME type from the filename, then from magic bytes.

    Args:
        filename: Original filename
        content: Optional file content for magic-byte sniffing

    Returns:
        MIME type string (application/octet-stream when unknown)
    """
    suffix = Path(filename).suffix.lower()
    if suffix in _EXTRA_MIME_TYPES:
        return _EXTRA_MIME_TYPES[suffix]

    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type:
        return mime_type

    if content:
        for magic, magic_type in _MAGIC_NUMBERS:
            if content.startswith(magic):
                return magic_type

    return DEFAULT_MIME_TYPE


def load_document(file_path: Path, mime_type: Optional[str] = None) -> RawDocument:
    """
    Read a local file into a RawDocument.

    Args:
        file_path: Path to file
        mime_type: Declared MIME type; guessed when omitted
    """
    file_path = Path(file_path)
    content = file_path.read_bytes()
    return RawDocument(
        content=content,
        mime_type=mime_type or guess_mime_type(file_path.name, content),
        filename=file_path.name
    )


def to_data_url(document: RawDocument) -> str:
    """Encode a document as a base64 data URL."""
    encoded = base64.b64encode(document.content).decode('ascii')
    return f"data:{document.mime_type};base64,{encoded}"
