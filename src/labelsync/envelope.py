"""Message envelope: the engine-owned region of a pull request body.

The region is delimited by two HTML comment markers. Everything before the
first ``START`` and after the matching ``END`` belongs to the user and is
preserved byte for byte by :func:`splice`.

``wrap`` also embeds a short stamp of the content it wraps. When the stamp
still matches the content, the region is exactly what this engine last
wrote (see :func:`is_unmodified`).
"""

from __future__ import annotations

import hashlib
import re

from .errors import MalformedEnvelopeError

MESSAGE_START = "<!--- labelsync:START --->"
MESSAGE_END = "<!--- labelsync:END --->"
FOOTER = "<sub>_Generated by labelsync_</sub>"

_STAMP_RE = re.compile(r"^<!-- labelsync:stamp=([0-9a-f]+) -->\n")


def content_stamp(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


def _header(content: str) -> str:
    return f"<!-- labelsync:stamp={content_stamp(content)} -->\n---\n\n"


def wrap(content: str) -> str:
    return f"{MESSAGE_START}\n{_header(content)}{content}\n\n{FOOTER}\n{MESSAGE_END}"


def _bounds(document: str) -> tuple[int, int]:
    start = document.find(MESSAGE_START)
    end = document.find(MESSAGE_END)
    if start == -1 or end == -1:
        missing = "START" if start == -1 else "END"
        raise MalformedEnvelopeError(f"message envelope is missing its {missing} marker")
    if end < start:
        raise MalformedEnvelopeError("message envelope END marker precedes START marker")
    return start, end


def has_envelope(document: str | None) -> bool:
    """True when both markers are present, False when neither is.

    A document holding only one marker raises ``MalformedEnvelopeError``.
    """
    if not document:
        return False
    has_start = MESSAGE_START in document
    has_end = MESSAGE_END in document
    if not has_start and not has_end:
        return False
    _bounds(document)
    return True


def extract(document: str) -> str:
    start, end = _bounds(document)
    return document[start + len(MESSAGE_START) : end]


def splice(document: str, content: str) -> str:
    start, end = _bounds(document)
    return document[:start] + wrap(content) + document[end + len(MESSAGE_END) :]


def _lines(message: str) -> str:
    # the web editor submits CRLF line endings
    body = message.replace("\r\n", "\n")
    return body[1:] if body.startswith("\n") else body


def unwrap(message: str) -> str:
    """Strip the boilerplate that ``wrap`` adds around ``content``.

    ``message`` is what :func:`extract` returned. Text that does not carry the
    boilerplate is returned unchanged.
    """
    body = _lines(message)
    m = _STAMP_RE.match(body)
    if not m:
        return message
    body = body[m.end() :]
    if body.startswith("---\n\n"):
        body = body[len("---\n\n") :]
    tail = f"\n\n{FOOTER}\n"
    if body.endswith(tail):
        body = body[: -len(tail)]
    return body


def is_unmodified(document: str) -> bool:
    """True when the embedded stamp still matches the embedded content."""
    message = extract(document)
    m = _STAMP_RE.match(_lines(message))
    if not m:
        return False
    return m.group(1) == content_stamp(unwrap(message))


__all__ = [
    "FOOTER",
    "MESSAGE_END",
    "MESSAGE_START",
    "content_stamp",
    "extract",
    "has_envelope",
    "is_unmodified",
    "splice",
    "unwrap",
    "wrap",
]
