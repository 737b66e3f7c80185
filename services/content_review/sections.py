"""Section engine.

Splits draft content into ordered, addressable sections and rebuilds content
from the sections that are still included. Detection tries, in order:
server transcript segments, Markdown headings, timestamp-prefixed lines and
blank-line separated paragraphs. The first strategy yielding a usable
partition wins.

Section ids are UUID5 digests of strategy, position and text, so detecting
the same content twice yields the same ids.
"""

import re
import uuid
from typing import Any

from shared.models.draft import DraftSection, SectionStrategy

HEADING_PATTERN = re.compile(r"^(#{1,6})\s+(.+)$")
TIMESTAMP_PATTERN = re.compile(r"^\s*(?:\d{1,2}:)?\d{1,2}:\d{2}(?:\.\d+)?")
PARAGRAPH_BREAK = re.compile(r"\n{2,}")

TIMESTAMP_LABEL_LENGTH = 32
SECTION_SEPARATOR = "\n\n"

_SEGMENT_TEXT_KEYS = ("text", "content", "segment", "utterance")


def _section_id(strategy: SectionStrategy, index: int, text: str) -> str:
    return str(uuid.uuid5(uuid.NAMESPACE_OID, f"{strategy.value}:{index}:{text}"))


def _line_offsets(content: str) -> list[tuple[int, str]]:
    """(offset, line) pairs for every line of content."""
    pairs = []
    offset = 0
    for line in content.split("\n"):
        pairs.append((offset, line))
        offset += len(line) + 1
    return pairs


def format_timestamp(seconds: Any) -> str | None:
    """Format seconds as m:ss or h:mm:ss. Returns None for missing or non-numeric input."""
    if seconds is None or isinstance(seconds, bool):
        return None
    try:
        total = max(0, int(float(seconds)))
    except (TypeError, ValueError):
        return None
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def _split_at_markers(
    content: str,
    strategy: SectionStrategy,
    markers: list[dict],
    kind: str,
) -> list[DraftSection]:
    """Cut content at marker offsets. Text before the first marker becomes its own section."""
    sections: list[DraftSection] = []
    spans = []
    if markers[0]["offset"] > 0:
        spans.append({"offset": 0, "label": "Introduction", "level": None, "kind": "paragraph"})
    spans.extend({**marker, "kind": kind} for marker in markers)

    for idx, span in enumerate(spans):
        start = span["offset"]
        end = spans[idx + 1]["offset"] if idx + 1 < len(spans) else len(content)
        text = content[start:end].strip()
        if not text:
            continue
        sections.append(
            DraftSection(
                id=_section_id(strategy, idx, text),
                label=span["label"] or f"Section {idx + 1}",
                content=text,
                kind=span["kind"],
                start_offset=start,
                end_offset=end,
                level=span.get("level"),
            )
        )
    return sections


def _sections_from_headings(content: str) -> list[DraftSection]:
    markers = []
    for offset, line in _line_offsets(content):
        match = HEADING_PATTERN.match(line.strip())
        if match:
            markers.append({"offset": offset, "label": match.group(2).strip(), "level": len(match.group(1))})
    if len(markers) < 2:
        return []
    return _split_at_markers(content, SectionStrategy.HEADINGS, markers, kind="heading")


def _sections_from_timestamps(content: str) -> list[DraftSection]:
    markers = [
        {"offset": offset, "label": line.strip()[:TIMESTAMP_LABEL_LENGTH]}
        for offset, line in _line_offsets(content)
        if TIMESTAMP_PATTERN.match(line)
    ]
    if len(markers) < 2:
        return []
    return _split_at_markers(content, SectionStrategy.TIMESTAMPS, markers, kind="speaker_turn")


def _sections_from_paragraphs(content: str) -> list[DraftSection]:
    sections: list[DraftSection] = []
    last = 0
    bounds = [(m.start(), m.end()) for m in PARAGRAPH_BREAK.finditer(content)]
    bounds.append((len(content), len(content)))
    for end, next_start in bounds:
        text = content[last:end].strip()
        if text:
            sections.append(
                DraftSection(
                    id=_section_id(SectionStrategy.PARAGRAPHS, len(sections), text),
                    label=f"Paragraph {len(sections) + 1}",
                    content=text,
                    start_offset=last,
                    end_offset=end,
                )
            )
        last = next_start
    return sections if len(sections) > 1 else []


def _sections_from_segments(content: str, segments: list[dict]) -> list[DraftSection]:
    sections: list[DraftSection] = []
    cursor = 0
    for index, segment in enumerate(segments):
        if not isinstance(segment, dict):
            continue
        raw = next((segment[key] for key in _SEGMENT_TEXT_KEYS if segment.get(key)), "")
        text = str(raw).strip()
        if not text:
            continue

        found = content.find(text, cursor)
        if found >= 0:
            start, end = found, found + len(text)
        else:
            start, end = cursor, min(len(content), cursor + len(text))
        cursor = max(end, cursor)

        speaker = segment.get("speaker")
        label = (
            (f"Speaker {speaker}" if speaker else None)
            or format_timestamp(segment.get("start"))
            or f"Segment {index + 1}"
        )
        sections.append(
            DraftSection(
                id=_section_id(SectionStrategy.SERVER, index, text),
                label=label,
                content=text,
                kind="speaker_turn",
                start_offset=start,
                end_offset=end,
                source="server",
                meta={"start": segment.get("start"), "end": segment.get("end"), "speaker": speaker},
            )
        )
    return sections if len(sections) > 1 else []


def detect_sections(
    content: str,
    segments: list[dict] | None = None,
) -> tuple[list[DraftSection], SectionStrategy | None]:
    """Partition content into sections.

    Args:
        content (str): The draft content.
        segments (list[dict] | None): Optional transcript segments from the server
            (keys: text/content/segment/utterance, start, end, speaker).

    Returns:
        tuple[list[DraftSection], SectionStrategy | None]: The sections and the
            strategy that produced them, or ([], None) when no structure was found.
    """
    if not content or not content.strip():
        return [], None

    if segments and len(segments) > 1:
        sections = _sections_from_segments(content, segments)
        if sections:
            return sections, SectionStrategy.SERVER

    for strategy, detector in (
        (SectionStrategy.HEADINGS, _sections_from_headings),
        (SectionStrategy.TIMESTAMPS, _sections_from_timestamps),
        (SectionStrategy.PARAGRAPHS, _sections_from_paragraphs),
    ):
        sections = detector(content)
        if sections:
            return sections, strategy

    return [], None


def build_content_from_sections(sections: list[DraftSection], excluded_ids: list[str] | set[str] | None = None) -> str:
    """Join the included sections, in order, separated by a blank line."""
    excluded = set(excluded_ids or ())
    return SECTION_SEPARATOR.join(s.content for s in sections if s.id not in excluded).strip()
