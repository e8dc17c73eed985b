import logging
from datetime import datetime
from pathlib import PurePath
from typing import Callable, List, Optional

from control_numbers import generate_control_number
from edi_models import (
    DEFAULT_QUALIFIER, ELEMENT_SEPARATOR, ISA_ID_WIDTH,
    DateEntry, GeneratedFile, HeaderOverrides, RegenerationRequest,
)
from segment_tokenizer import join_segments

logger = logging.getLogger(__name__)

# Segments that are always processed, even while an excluded PO1 group is being skipped.
TRAILER_SEGMENT_IDS = ("CTT", "SE", "GE", "IEA")
DEPENDENT_SEGMENT_IDS = ("PO4", "AMT")


def _set_element(parts: List[str], position: int, value: str) -> None:
    if len(parts) <= position:
        parts.extend([""] * (position + 1 - len(parts)))
    parts[position] = value


def _get_element(parts: List[str], position: int) -> str:
    return parts[position].strip() if position < len(parts) else ""


def _pad_id(value: str) -> str:
    return value.ljust(ISA_ID_WIDTH)[:ISA_ID_WIDTH]


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%d_%H%M")


def _extension(file_name: str) -> str:
    return PurePath(file_name).suffix or ".txt"


def single_output_name(source_name: str, now: datetime) -> str:
    return f"edi_update_{_timestamp(now)}{_extension(source_name)}"


def bulk_output_name(source_name: str, now: datetime) -> str:
    stem = PurePath(source_name).stem
    return f"{stem}_updated_{_timestamp(now)}{_extension(source_name)}"


def _find_dtm_entry(date_entries: List[DateEntry], qualifier: str) -> Optional[DateEntry]:
    return next(
        (e for e in date_entries if e.original_qualifier_id == qualifier and e.segment_type == "DTM"),
        None,
    )


def _find_g62_entry(date_entries: List[DateEntry], qualifier: str, original_date: str) -> Optional[DateEntry]:
    return next(
        (e for e in date_entries
         if e.original_qualifier_id == qualifier and e.segment_type == "G62" and e.original_date == original_date),
        None,
    )


def _apply_date_entry(parts: List[str], entry: Optional[DateEntry]) -> None:
    if entry is None:
        return
    original_qualifier = parts[1] if len(parts) > 1 else ""
    _set_element(parts, 1, entry.qualifier_id or original_qualifier)
    _set_element(parts, 2, entry.date)


class EdiGenerator:
    """
    Regenerates purchase order documents with new control numbers, header values,
    PO1 selections and dates, recomputing the SE and CTT counts.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = datetime.now,
        control_number_factory: Callable[[int], str] = generate_control_number,
    ):
        self.clock = clock
        self.control_number_factory = control_number_factory

    # --- envelope rewriting shared by both modes ---

    def _rewrite_isa(self, parts: List[str], overrides: HeaderOverrides, control_number: str) -> None:
        _set_element(parts, 5, overrides.sender_id_qualifier or _get_element(parts, 5) or DEFAULT_QUALIFIER)
        _set_element(parts, 6, _pad_id(overrides.sender_id or _get_element(parts, 6)))
        _set_element(parts, 7, overrides.receiver_id_qualifier or _get_element(parts, 7) or DEFAULT_QUALIFIER)
        _set_element(parts, 8, _pad_id(overrides.receiver_id or _get_element(parts, 8)))
        _set_element(parts, 13, control_number)

    def _rewrite_gs(self, parts: List[str], overrides: HeaderOverrides, control_number: str) -> None:
        _set_element(parts, 2, overrides.gs_sender_id or _get_element(parts, 2))
        _set_element(parts, 3, overrides.gs_receiver_id or _get_element(parts, 3))
        _set_element(parts, 6, control_number)

    def generate(self, request: RegenerationRequest) -> GeneratedFile:
        """
        Single-document regeneration.

        When no PO1 group is included every group is written back as it was read.
        Once at least one group is included, only included groups are written, using
        their edited line text; an excluded group suppresses everything up to the next
        PO1 except the CTT/SE/GE/IEA trailers.
        """
        groups = request.po1_groups
        overrides = request.overrides
        any_selected = any(group.include for group in groups)
        emitted_group_count = sum(1 for g in groups if g.include) if any_selected else len(groups)
        control_number = self.control_number_factory(request.batch_index)

        updated_lines: List[str] = []
        po1_index = 0
        skip_until_next_po1 = False
        segment_count = 0
        in_transaction_set = False

        for segment in request.document.parsed_segments():
            segment_id = segment.segment_id
            parts = list(segment.elements)

            if segment_id == "ST":
                in_transaction_set = True
                segment_count = 1
                _set_element(parts, 2, control_number)
                updated_lines.append(ELEMENT_SEPARATOR.join(parts))
                continue

            if segment_id == "PO1":
                if po1_index < len(groups):
                    group = groups[po1_index]
                    if not any_selected or group.include:
                        updated_lines.append(group.line if any_selected else segment.raw_segment)
                        updated_lines.extend(group.dependent_segments)
                        segment_count += 1 + len(group.dependent_segments)
                        skip_until_next_po1 = False
                    else:
                        logger.debug(f"Skipping excluded PO1 group {po1_index}: {group.line}")
                        skip_until_next_po1 = True
                po1_index += 1
                continue

            if skip_until_next_po1 and segment_id not in TRAILER_SEGMENT_IDS:
                continue
            if segment_id in DEPENDENT_SEGMENT_IDS:
                # Only ever written as part of their PO1 group.
                continue

            if segment_id == "ISA":
                self._rewrite_isa(parts, overrides, control_number)
            elif segment_id == "GS":
                self._rewrite_gs(parts, overrides, control_number)
            elif segment_id == "BEG":
                _set_element(parts, 3, overrides.purchase_order_number or _get_element(parts, 3))
                _set_element(parts, 5, overrides.purchase_date or _get_element(parts, 5))
            elif segment_id == "DTM":
                _apply_date_entry(parts, _find_dtm_entry(request.date_entries, segment.get_element(1)))
            elif segment_id == "G62":
                entry = _find_g62_entry(request.date_entries, segment.get_element(1), segment.get_element(2))
                _apply_date_entry(parts, entry)
            elif segment_id == "CTT":
                _set_element(parts, 1, str(emitted_group_count))
            elif segment_id == "SE":
                segment_count += 1
                _set_element(parts, 1, str(segment_count))
                _set_element(parts, 2, control_number)

            updated_lines.append(ELEMENT_SEPARATOR.join(parts))
            if in_transaction_set and segment_id != "SE":
                segment_count += 1

        content = join_segments(updated_lines, request.document.is_single_line)
        name = single_output_name(request.file_name, self.clock())
        logger.info(
            f"Generated {name}: {len(updated_lines)} segments, {emitted_group_count} PO1 group(s), "
            f"control number {control_number}."
        )
        return GeneratedFile(name=name, content=content, control_number=control_number)

    def generate_bulk_document(self, request: RegenerationRequest) -> GeneratedFile:
        """
        Bulk-mode regeneration of one document of the batch.

        No PO1 filtering: every line item passes through and CTT carries the document's
        total PO1 count. The shared PO number gets a T{n} suffix per document. Only DTM
        segments are matched against the date entries; G62 passes through.
        """
        overrides = request.overrides
        index = request.batch_index
        control_number = self.control_number_factory(index)
        segments = request.document.parsed_segments()
        po1_total = sum(1 for s in segments if s.segment_id == "PO1")

        updated_lines: List[str] = []
        segment_count = 0
        in_transaction_set = False

        for segment in segments:
            segment_id = segment.segment_id
            parts = list(segment.elements)

            if segment_id == "ST":
                in_transaction_set = True
                segment_count = 1
                _set_element(parts, 2, control_number)
                updated_lines.append(ELEMENT_SEPARATOR.join(parts))
                continue

            if segment_id == "ISA":
                self._rewrite_isa(parts, overrides, control_number)
            elif segment_id == "GS":
                self._rewrite_gs(parts, overrides, control_number)
            elif segment_id == "BEG":
                if overrides.purchase_order_number:
                    _set_element(parts, 3, f"{overrides.purchase_order_number}T{index + 1}")
                else:
                    _set_element(parts, 3, _get_element(parts, 3))
                _set_element(parts, 5, overrides.purchase_date or _get_element(parts, 5))
            elif segment_id == "DTM":
                _apply_date_entry(parts, _find_dtm_entry(request.date_entries, segment.get_element(1)))
            elif segment_id == "CTT":
                _set_element(parts, 1, str(po1_total))
            elif segment_id == "SE":
                segment_count += 1
                _set_element(parts, 1, str(segment_count))
                _set_element(parts, 2, control_number)

            updated_lines.append(ELEMENT_SEPARATOR.join(parts))
            if in_transaction_set and segment_id != "SE":
                segment_count += 1

        content = join_segments(updated_lines, request.document.is_single_line)
        name = bulk_output_name(request.file_name, self.clock())
        logger.debug(f"Bulk document {index} ({request.file_name}) -> {name}, control number {control_number}.")
        return GeneratedFile(name=name, content=content, control_number=control_number)

    def generate_bulk(self, requests: List[RegenerationRequest]) -> List[GeneratedFile]:
        generated: List[GeneratedFile] = []
        for request in requests:
            if not request.document.segments:
                logger.warning(f"No content found for file: {request.file_name}")
                continue
            generated.append(self.generate_bulk_document(request))
        logger.info(f"Generated {len(generated)} of {len(requests)} bulk document(s).")
        return generated
