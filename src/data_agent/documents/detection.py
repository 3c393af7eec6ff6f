"""Generated-document detection and extraction.

A generated document is a full HTML page in the model's answer, either raw or
inside a fenced code block. The same rules serve the server (what to persist)
and the client reducer (what to render as a document).
"""

import re
from typing import NamedTuple

_MARKERS = ("<!doctype html", "<html")

_HTML_FENCE = re.compile(r"```html\s*([\s\S]*?)\n```")
_HTML_FENCE_TO_END = re.compile(r"```html\s*([\s\S]*)```\Z")
_PLAIN_FENCE = re.compile(r"```\s*([\s\S]*?)\n```")
_PLAIN_FENCE_TO_END = re.compile(r"```\s*([\s\S]*)```\Z")

_HTML_FENCE_PARTS = re.compile(r"\A([\s\S]*?)```html\s*([\s\S]*?)\n```([\s\S]*)\Z")
_HTML_FENCE_PARTS_TO_END = re.compile(r"\A([\s\S]*?)```html\s*([\s\S]*)```\Z")
_PLAIN_FENCE_PARTS = re.compile(r"\A([\s\S]*?)```\s*([\s\S]*?)\n```([\s\S]*)\Z")
_PLAIN_FENCE_PARTS_TO_END = re.compile(r"\A([\s\S]*?)```\s*([\s\S]*)```\Z")
_RAW_DOCTYPE_PARTS = re.compile(r"\A([\s\S]*?)(<!DOCTYPE html[\s\S]*</html>)([\s\S]*)\Z", re.IGNORECASE)
_RAW_HTML_PARTS = re.compile(r"\A([\s\S]*?)(<html[\s\S]*</html>)([\s\S]*)\Z", re.IGNORECASE)


class DocumentParts(NamedTuple):
    """A document split out of surrounding prose (all parts trimmed)."""

    before: str
    document: str
    after: str


class DocumentStart(NamedTuple):
    """Where a streaming document begins in the accumulated text."""

    offset: int
    before: str


def starts_with_marker(text: str) -> bool:
    """Whether ``text`` (already trimmed) opens with a document-root marker."""
    return text.lower().startswith(_MARKERS)


def _fenced_body(text: str, patterns: tuple[re.Pattern[str], re.Pattern[str]]) -> str | None:
    match = patterns[0].search(text) or patterns[1].search(text)
    return match.group(1).strip() if match else None


def contains_document(text: str) -> bool:
    """Check whether ``text`` holds a complete generated document.

    Args:
        text: Accumulated answer text.

    Returns:
        True if the text starts with a document-root marker, holds an html or
        plain fenced block whose body starts with one, or contains a marker
        together with ``</html>``.
    """
    trimmed = text.strip()
    if starts_with_marker(trimmed):
        return True

    for patterns in ((_HTML_FENCE, _HTML_FENCE_TO_END), (_PLAIN_FENCE, _PLAIN_FENCE_TO_END)):
        body = _fenced_body(trimmed, patterns)
        if body is not None and starts_with_marker(body):
            return True

    lowered = trimmed.lower()
    return "</html>" in lowered and any(marker in lowered for marker in _MARKERS)


def extract_document_parts(text: str) -> DocumentParts | None:
    """Split ``text`` into prose before the document, the document and prose after.

    Args:
        text: Accumulated answer text.

    Returns:
        DocumentParts, or None if no document is found.
    """
    trimmed = text.strip()

    for patterns in (
        (_HTML_FENCE_PARTS, _HTML_FENCE_PARTS_TO_END),
        (_PLAIN_FENCE_PARTS, _PLAIN_FENCE_PARTS_TO_END),
    ):
        match = patterns[0].match(trimmed) or patterns[1].match(trimmed)
        if match:
            body = match.group(2).strip()
            if starts_with_marker(body):
                after = match.group(3) if match.lastindex and match.lastindex >= 3 else ""
                return DocumentParts(match.group(1).strip(), body, (after or "").strip())

    if starts_with_marker(trimmed):
        return DocumentParts("", trimmed, "")

    for pattern in (_RAW_DOCTYPE_PARTS, _RAW_HTML_PARTS):
        match = pattern.match(trimmed)
        if match:
            return DocumentParts(
                match.group(1).strip(), match.group(2).strip(), match.group(3).strip()
            )

    return None


def extract_document(text: str) -> str | None:
    """Return just the document from ``text``, or None."""
    parts = extract_document_parts(text)
    return parts.document if parts else None


def detect_document_start(text: str) -> DocumentStart | None:
    """Find where a document begins in partially streamed text.

    With an html fence, detection waits until a newline follows the fence and
    the text after it contains a document-root marker; the offset is the
    fence itself. Otherwise the offset is the first raw marker.

    Args:
        text: Text accumulated so far.

    Returns:
        DocumentStart, or None while no document has started.
    """
    fence = text.find("```html")
    if fence != -1:
        newline = text.find("\n", fence)
        if newline != -1:
            after = text[newline + 1 :].lower()
            if "<!doctype" in after or "<html" in after:
                return DocumentStart(fence, text[:fence].strip())
        return None

    lowered = text.lower()
    for marker in _MARKERS:
        index = lowered.find(marker)
        if index != -1:
            return DocumentStart(index, text[:index].strip())
    return None
