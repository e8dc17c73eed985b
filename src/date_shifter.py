import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from edi_models import DateEntry, ELEMENT_SEPARATOR
from segment_tokenizer import join_segments, tokenize

logger = logging.getLogger(__name__)

DATE_WIDTHS = (6, 8)


def _parse_edi_date(value: str) -> Optional[datetime]:
    if len(value) not in DATE_WIDTHS or not value.isdigit():
        return None
    # YYMMDD always means 20YY, not the strptime pivot year.
    full_value = value if len(value) == 8 else "20" + value
    try:
        return datetime.strptime(full_value, "%Y%m%d")
    except ValueError:
        return None


def shift_date(value: str, days: int) -> str:
    """
    Adds `days` to a CCYYMMDD or YYMMDD date, keeping the original width.
    Anything that is not a valid date of one of those widths comes back unchanged.
    """
    parsed = _parse_edi_date(value)
    if parsed is None:
        return value
    try:
        shifted = parsed + timedelta(days=days)
    except OverflowError:
        logger.warning(f"Date {value} shifted by {days} day(s) is out of range, left unchanged.")
        return value
    if len(value) == 8:
        return f"{shifted.year:04d}{shifted.month:02d}{shifted.day:02d}"
    return f"{shifted.year % 100:02d}{shifted.month:02d}{shifted.day:02d}"


def shift_document_dates(edi_string: str, days: int) -> str:
    """Shifts the date element of every DTM/G62 segment in a raw document."""
    document = tokenize(edi_string)
    updated_lines: List[str] = []
    for segment in document.parsed_segments():
        parts = list(segment.elements)
        if parts[0] in ("DTM", "G62") and len(parts) >= 3:
            parts[2] = shift_date(parts[2], days)
        updated_lines.append(ELEMENT_SEPARATOR.join(parts))
    return join_segments(updated_lines, document.is_single_line)


def shift_batch_dates(contents: Dict[str, str], days: int) -> Dict[str, str]:
    """
    Applies the same day offset to every stored document.

    Works from the text as currently stored, so calling this twice with +1
    moves the dates by two days.
    """
    logger.info(f"Shifting DTM/G62 dates by {days} day(s) across {len(contents)} document(s).")
    return {file_name: shift_document_dates(content, days) for file_name, content in contents.items()}


def offset_date_entries(entries: List[DateEntry], total_offset: int) -> List[DateEntry]:
    """
    Recomputes every entry's date as original_date + total_offset.

    Unlike shift_batch_dates this is idempotent for a given offset.
    """
    updated: List[DateEntry] = []
    for entry in entries:
        base = entry.original_date or entry.date
        if not base or len(base) not in DATE_WIDTHS:
            updated.append(entry)
            continue
        updated.append(entry.model_copy(update={"date": shift_date(base, total_offset)}))
    return updated
