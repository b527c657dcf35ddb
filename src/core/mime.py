# src/core/mime.py — v1
"""MIME type detection from image magic bytes and extension mapping."""

from __future__ import annotations

DEFAULT_MIME_TYPE = "image/jpeg"

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
    (b"II*\x00", "image/tiff"),
    (b"MM\x00*", "image/tiff"),
]

_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/tiff": "tiff",
}


def detect_mime_type(data: bytes, default: str = DEFAULT_MIME_TYPE) -> str:
    """Detect an image MIME type from the leading bytes of ``data``.

    Unknown payloads fall back to ``default``.
    """
    # RIFF container: only WEBP is an image we accept
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    return default


def extension_for(mime_type: str) -> str:
    """Return the file extension (without dot) for a MIME type."""
    return _EXTENSIONS.get(mime_type.lower(), "jpg")
