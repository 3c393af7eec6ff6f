"""Split chain-of-thought text into prose and query segments."""

import re

from data_agent.client.blocks import ContentSegment

_QUERY_START = r"(?:SELECT|INSERT|UPDATE|DELETE|WITH|CREATE|--)"

# Fenced ```sql blocks, or bare fences whose body starts like a query.
_SQL_FENCE_SPLIT = re.compile(rf"(```sql[\s\S]*?```|```{_QUERY_START}[^`]*```)", re.IGNORECASE)
_SQL_TAGGED = re.compile(r"\A```sql\s*([\s\S]*?)```\Z", re.IGNORECASE)
_SQL_BARE = re.compile(rf"\A```({_QUERY_START}[^`]*)```\Z", re.IGNORECASE)
_EXTRA_NEWLINES = re.compile(r"\n{3,}")

# Trailing "Suggested follow-ups:" section of a final answer.
_SUGGESTION_HEADING = re.compile(r"(follow[- ]?up|suggested)", re.IGNORECASE)
_LIST_ITEM = re.compile(r"^\s*(?:[-*]|\d+[.)])\s+(.*\S)\s*$")


def parse_content_segments(text: str) -> list[ContentSegment]:
    """Split text into ordered prose and query segments.

    Args:
        text: Narration possibly containing fenced queries.

    Returns:
        Segments in order. Empty parts are dropped and runs of three or more
        newlines in prose collapse to two.
    """
    segments: list[ContentSegment] = []
    for part in _SQL_FENCE_SPLIT.split(text):
        trimmed = part.strip()
        if not trimmed:
            continue

        match = _SQL_TAGGED.match(trimmed) or _SQL_BARE.match(trimmed)
        if match:
            sql = match.group(1).strip()
            if sql:
                segments.append(ContentSegment(type="sql", content=sql))
            continue

        prose = _EXTRA_NEWLINES.sub("\n\n", trimmed).strip()
        if prose:
            segments.append(ContentSegment(type="text", content=prose))
    return segments


def split_suggestions(text: str) -> tuple[str, list[str]]:
    """Separate a trailing follow-up suggestions section from an answer.

    The section is a heading line mentioning follow-ups or suggestions,
    followed only by list items until the end of the text.

    Args:
        text: Final answer text.

    Returns:
        Tuple of (answer without the section, suggestion items). Without such
        a section the text is returned unchanged with no items.
    """
    lines = text.rstrip().split("\n")
    items: list[str] = []
    index = len(lines) - 1
    while index >= 0:
        line = lines[index]
        if not line.strip():
            index -= 1
            continue
        match = _LIST_ITEM.match(line)
        if not match:
            break
        items.append(match.group(1).strip())
        index -= 1

    heading = lines[index] if index >= 0 else ""
    if not items or len(heading) > 80 or not _SUGGESTION_HEADING.search(heading):
        return text, []

    body = "\n".join(lines[:index]).rstrip()
    items.reverse()
    return body, items
