"""
Shorthand Parser

Turns one capture line (or several) into a Task.

Syntax:
- `n: text...`  everything after the first `n:` token becomes the notes
- `:45`         duration in minutes (first token wins)
- `.label`      label, title-cased, may repeat
- `@list`       destination list, at most one
- anything else is the title

Each pass scans the original text, skipping spans already claimed by an
earlier pass, and reports the spans it consumed. The title is whatever no
pass claimed.
"""

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional, Tuple

from godspeed_errors import EmptyTitleError, MultipleListsError

Span = Tuple[int, int]

NOTES_PATTERN = re.compile(r'(?<!\S)n:')
DURATION_PATTERN = re.compile(r'(?<!\S):(\d+)(?!\S)')
LABEL_PATTERN = re.compile(r'(?<!\S)\.([^\s.@:]+)(?!\S)')
LIST_PATTERN = re.compile(r'(?<!\S)@([^\s.@:]+)(?!\S)')


@dataclass(frozen=True)
class Task:
    """A parsed capture, ready to be sent to Godspeed"""
    title: str
    labels: FrozenSet[str] = field(default_factory=frozenset)
    list_name: Optional[str] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'title': self.title,
            'labels': sorted(self.labels),
            'list_name': self.list_name,
            'duration_minutes': self.duration_minutes,
            'notes': self.notes,
        }


def parse(raw_text: str) -> Task:
    """
    Parse shorthand input into a Task

    Args:
        raw_text: Free text, may span several lines

    Returns:
        Parsed Task

    Raises:
        MultipleListsError: two or more @list tokens outside the notes
        EmptyTitleError: no title text remains after extraction
    """
    consumed: List[Span] = []

    notes, spans = _extract_notes(raw_text)
    consumed.extend(spans)

    duration, spans = _extract_duration(raw_text, consumed)
    consumed.extend(spans)

    labels, spans = _extract_labels(raw_text, consumed)
    consumed.extend(spans)

    list_name, spans = _extract_list(raw_text, consumed)
    consumed.extend(spans)

    title = _remaining_text(raw_text, consumed)
    if not title:
        raise EmptyTitleError()

    return Task(
        title=title,
        labels=labels,
        list_name=list_name,
        duration_minutes=duration,
        notes=notes,
    )


def title_case(word: str) -> str:
    """First character upper, rest lower"""
    return word[:1].upper() + word[1:].lower()


# ==================== Extraction passes ====================

def _extract_notes(text: str) -> Tuple[Optional[str], List[Span]]:
    match = NOTES_PATTERN.search(text)
    if not match:
        return None, []

    # The notes tail runs to the end of input, including any shorthand inside it
    notes = text[match.end():].strip()
    return notes, [(match.start(), len(text))]


def _extract_duration(text: str, consumed: List[Span]) -> Tuple[Optional[int], List[Span]]:
    for match in _unclaimed(DURATION_PATTERN, text, consumed):
        minutes = int(match.group(1))
        if minutes <= 0:
            # Only the first candidate counts; a zero stays in the title
            return None, []
        return minutes, [match.span()]

    return None, []


def _extract_labels(text: str, consumed: List[Span]) -> Tuple[FrozenSet[str], List[Span]]:
    labels = set()
    spans = []

    for match in _unclaimed(LABEL_PATTERN, text, consumed):
        labels.add(title_case(match.group(1)))
        spans.append(match.span())

    return frozenset(labels), spans


def _extract_list(text: str, consumed: List[Span]) -> Tuple[Optional[str], List[Span]]:
    matches = list(_unclaimed(LIST_PATTERN, text, consumed))

    if not matches:
        return None, []
    if len(matches) > 1:
        raise MultipleListsError(m.group(1) for m in matches)

    return matches[0].group(1), [matches[0].span()]


def _unclaimed(pattern: re.Pattern, text: str, consumed: List[Span]) -> Iterator[re.Match]:
    """Yield pattern matches that do not overlap any consumed span"""
    for match in pattern.finditer(text):
        start, end = match.span()
        if any(start < c_end and c_start < end for c_start, c_end in consumed):
            continue
        yield match


def _remaining_text(text: str, consumed: List[Span]) -> str:
    """Join the unclaimed pieces of text and normalise whitespace"""
    pieces = []
    position = 0

    for start, end in sorted(consumed):
        if start > position:
            pieces.append(text[position:start])
        position = max(position, end)
    pieces.append(text[position:])

    # Claimed tokens leave a gap, so pieces are joined with a space
    return ' '.join(' '.join(pieces).split())
