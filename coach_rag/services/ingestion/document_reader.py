"""Turn files and raw text into :class:`SourceDocument` objects.

The reader is the boundary between the filesystem and the ingestion
pipeline.  It computes the sha256 content hash used for duplicate
detection and records where the document came from.  Transcript files that
were fetched from YouTube carry the video id, taken from their source URL,
so a re-upload of the same video is recognised even when the transcript
text differs slightly.
"""

from __future__ import annotations

import hashlib
import re
from datetime import datetime, timezone
from pathlib import Path

import structlog

from coach_rag.models.rag import SourceDocument

logger = structlog.get_logger(logger_name=__name__)

_YOUTUBE_PATTERNS = (
    re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&\n?#]+)"),
    re.compile(r"youtube\.com/watch\?.*v=([^&\n?#]+)"),
    re.compile(r"youtube\.com/(?:v|shorts)/([^&\n?#/]+)"),
)


def extract_youtube_video_id(url: str) -> str | None:
    """Return the video id of a YouTube URL, or ``None`` for other URLs.

    >>> extract_youtube_video_id("https://youtu.be/dQw4w9WgXcQ?t=10")
    'dQw4w9WgXcQ'
    """
    if not url:
        return None
    for pattern in _YOUTUBE_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


def content_hash(content: str) -> str:
    """Return the sha256 hex digest of *content* encoded as UTF-8."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def read_document(path: str | Path, source_url: str | None = None) -> SourceDocument:
    """Read a text file from disk.

    Parameters
    ----------
    path:
        File to read.  Decoded as UTF-8; undecodable bytes are replaced.
    source_url:
        Where the content originally came from.  A YouTube URL adds a
        ``video_id`` to the metadata.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    """
    file_path = Path(path)
    raw = file_path.read_bytes()
    content = raw.decode("utf-8", errors="replace")

    metadata: dict[str, object] = {
        "original_path": str(file_path.resolve()),
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
    }
    video_id = extract_youtube_video_id(source_url or "")
    if video_id:
        metadata["video_id"] = video_id

    document = SourceDocument(
        file_name=file_path.name,
        file_type=file_path.suffix.lstrip(".").lower() or "txt",
        file_size=len(raw),
        content=content,
        content_hash=hashlib.sha256(raw).hexdigest(),
        metadata=metadata,
    )
    logger.debug(
        "document_read",
        file_name=document.file_name,
        file_size=document.file_size,
        video_id=video_id,
    )
    return document


def document_from_text(
    title: str,
    content: str,
    source_url: str | None = None,
) -> SourceDocument:
    """Build a :class:`SourceDocument` from text that never touched disk."""
    metadata: dict[str, object] = {
        "uploaded_at": datetime.now(timezone.utc).isoformat(),
    }
    video_id = extract_youtube_video_id(source_url or "")
    if video_id:
        metadata["video_id"] = video_id
    return SourceDocument(
        file_name=title,
        file_type="youtube" if video_id else "text",
        file_size=len(content.encode("utf-8")),
        content=content,
        content_hash=content_hash(content),
        metadata=metadata,
    )
