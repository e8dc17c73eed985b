import logging
import re
from typing import Iterable, List

from edi_models import Document, SEGMENT_TERMINATOR

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r'\r?\n')


def tokenize(edi_string: str) -> Document:
    """
    Splits raw EDI text into trimmed, terminator-stripped segments.

    A document without any newline is treated as single-line and split on '~'.
    Otherwise every line is a segment and a trailing '~' is stripped from each.
    """
    is_single_line = '\n' not in edi_string
    if is_single_line:
        raw_segments = edi_string.split(SEGMENT_TERMINATOR)
    else:
        raw_segments = [_strip_terminator(line.strip()) for line in _LINE_BREAK.split(edi_string)]

    segments = [seg.strip() for seg in raw_segments]
    segments = [seg for seg in segments if seg]
    logger.debug(f"Tokenized {len(segments)} segments (single line: {is_single_line}).")
    return Document(segments=segments, is_single_line=is_single_line)


def _strip_terminator(line: str) -> str:
    return line[:-1] if line.endswith(SEGMENT_TERMINATOR) else line


def ensure_terminator(line: str) -> str:
    """Returns the segment with exactly one trailing '~'."""
    return _strip_terminator(line.strip()) + SEGMENT_TERMINATOR


def join_segments(lines: Iterable[str], is_single_line: bool) -> str:
    terminated: List[str] = [ensure_terminator(line) for line in lines]
    return "".join(terminated) if is_single_line else "\n".join(terminated)
