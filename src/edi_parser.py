import logging
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from edi_models import (
    DEFAULT_QUALIFIER, DEFAULT_USAGE_INDICATOR, DEFAULT_VERSION,
    DateEntry, Document, EnvelopeHeader, GroupState, HeaderOverrides, PO1Group, ParsedDocument, Segment,
)
from segment_tokenizer import tokenize

logger = logging.getLogger(__name__)

ProcessingMode = Literal["single", "bulk"]

DATE_SEGMENT_IDS = ("DTM", "G62")


def default_date_entries(today: date) -> List[DateEntry]:
    """The registry used when a document carries no editable dates: one blank-qualifier DTM dated today."""
    stamp = today.strftime("%Y%m%d")
    return [DateEntry(segment_type="DTM", qualifier_id="", date=stamp, original_qualifier_id="", original_date=stamp)]


def reduce_po1_group(
    segment: Segment,
    open_group: Optional[PO1Group],
    state: GroupState,
    groups: List[PO1Group],
) -> Tuple[Optional[PO1Group], GroupState, bool]:
    """
    Advances the PO1 group state machine by one segment.

    Returns the (possibly new) open group, the next state, and whether the segment
    was consumed as part of a group. Closed groups are appended to `groups`.
    A group only closes when the next PO1 arrives; the caller closes the last one at EOF.
    Dependents must be strictly adjacent: any other segment ends the PO4/AMT expectation
    but leaves the group open. Adjacency is the rule that decides here, so a PO4 after
    an N1 or PID is not attached even though the group is still open.
    """
    segment_id = segment.segment_id

    if segment_id == "PO1":
        if open_group is not None:
            groups.append(open_group)
        return PO1Group(line=segment.raw_segment), GroupState.EXPECT_PO4, True

    if open_group is not None:
        if segment_id == "PO4" and state == GroupState.EXPECT_PO4:
            attached = open_group.model_copy(update={"dependent_segments": [*open_group.dependent_segments, segment.raw_segment]})
            return attached, GroupState.EXPECT_AMT, True
        if segment_id == "AMT" and state == GroupState.EXPECT_AMT:
            attached = open_group.model_copy(update={"dependent_segments": [*open_group.dependent_segments, segment.raw_segment]})
            return attached, GroupState.IDLE, True

    return open_group, GroupState.IDLE, False


class EdiParser:
    """
    Single-pass extractor for purchase order documents.

    Reads the envelope header (last ISA/GS/BEG wins), builds the deduplicated date
    registry from DTM/G62 segments outside PO1 groups, groups PO1 lines with their
    PO4/AMT dependents, and collects the transaction set codes.
    """

    def __init__(
        self,
        edi_string: Optional[str] = None,
        document: Optional[Document] = None,
        mode: ProcessingMode = "single",
        caller_overrides: Optional[HeaderOverrides] = None,
    ):
        if document is None:
            document = tokenize(edi_string or "")
        self.document = document
        self.mode = mode
        self.caller_overrides = caller_overrides or HeaderOverrides()
        logger.debug(f"Parser initialized with {len(self.document.segments)} segments ({mode} mode).")

    def parse(self) -> ParsedDocument:
        header = EnvelopeHeader()
        date_entries: List[DateEntry] = []
        seen_dates: Dict[str, bool] = {}
        groups: List[PO1Group] = []
        transaction_set_numbers: List[str] = []
        open_group: Optional[PO1Group] = None
        state = GroupState.IDLE

        for segment in self.document.parsed_segments():
            segment_id = segment.segment_id

            if segment_id == "ST" and len(segment.elements) > 1:
                if segment.elements[1] not in transaction_set_numbers:
                    transaction_set_numbers.append(segment.elements[1])

            open_group, state, consumed = reduce_po1_group(segment, open_group, state, groups)
            if consumed:
                continue

            if segment_id == "ISA":
                header = self._read_isa(header, segment)
            elif segment_id == "GS":
                header = header.model_copy(update={
                    "gs_sender_id": segment.get_element(2).strip(),
                    "gs_receiver_id": segment.get_element(3).strip(),
                })
            elif segment_id == "BEG":
                header = self._read_beg(header, segment)
            elif segment_id in DATE_SEGMENT_IDS and len(segment.elements) >= 3 and open_group is None:
                entry = self._read_date(segment)
                if not seen_dates.get(entry.dedup_key):
                    date_entries.append(entry)
                    seen_dates[entry.dedup_key] = True

        if open_group is not None:
            groups.append(open_group)

        logger.info(
            f"Parsed document: {len(groups)} PO1 groups, {len(date_entries)} date entries, "
            f"transaction sets {transaction_set_numbers or 'none'}."
        )
        return ParsedDocument(
            document=self.document,
            header=header,
            date_entries=date_entries,
            po1_groups=groups,
            transaction_set_numbers=transaction_set_numbers,
        )

    def _read_isa(self, header: EnvelopeHeader, segment: Segment) -> EnvelopeHeader:
        return header.model_copy(update={
            "sender_id_qualifier": segment.get_element(5).strip() or DEFAULT_QUALIFIER,
            "sender_id": segment.get_element(6).strip(),
            "receiver_id_qualifier": segment.get_element(7).strip() or DEFAULT_QUALIFIER,
            "receiver_id": segment.get_element(8).strip(),
            "usage_indicator": segment.get_element(11).strip() or DEFAULT_USAGE_INDICATOR,
            "version": segment.get_element(12).strip() or DEFAULT_VERSION,
        })

    def _read_beg(self, header: EnvelopeHeader, segment: Segment) -> EnvelopeHeader:
        po_number = segment.get_element(3).strip()
        po_date = segment.get_element(5).strip()
        if self.mode == "single":
            # A value the caller already holds beats the one in the file.
            po_number = self.caller_overrides.purchase_order_number or po_number
            po_date = self.caller_overrides.purchase_date or po_date
        return header.model_copy(update={"purchase_order_number": po_number, "purchase_date": po_date})

    @staticmethod
    def _read_date(segment: Segment) -> DateEntry:
        qualifier = segment.get_element(1).strip()
        value = segment.get_element(2).strip()
        return DateEntry(
            segment_type=segment.segment_id,
            qualifier_id=qualifier,
            date=value,
            original_qualifier_id=qualifier,
            original_date=value,
        )
