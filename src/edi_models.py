from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# In-memory model of a purchase order interchange (850/875).
# Everything that flows into the regeneration engine is frozen; edits produce copies.

DEFAULT_QUALIFIER = "ZZ"
DEFAULT_USAGE_INDICATOR = "U"
DEFAULT_VERSION = "00501"
ISA_ID_WIDTH = 15

ELEMENT_SEPARATOR = "*"
SEGMENT_TERMINATOR = "~"

DateSegmentType = Literal["DTM", "G62"]


class Segment(BaseModel):
    """A single tokenized segment. Element 0 is the tag."""
    model_config = ConfigDict(frozen=True)

    raw_segment: str
    elements: List[str]

    @classmethod
    def from_raw(cls, raw_segment: str) -> "Segment":
        return cls(raw_segment=raw_segment, elements=raw_segment.split(ELEMENT_SEPARATOR))

    @property
    def segment_id(self) -> str:
        return self.elements[0]

    def get_element(self, position: int) -> str:
        """Retrieves an element by its position (tag is 0). Missing positions read as ''."""
        if 0 <= position < len(self.elements):
            return self.elements[position]
        return ""


class Document(BaseModel):
    """Ordered segments of one document plus its original line convention."""
    model_config = ConfigDict(frozen=True)

    segments: List[str] = Field(default_factory=list)
    is_single_line: bool = False

    def parsed_segments(self) -> List[Segment]:
        return [Segment.from_raw(line) for line in self.segments]


class EnvelopeHeader(BaseModel):
    """Header values read from ISA, GS and BEG."""
    sender_id_qualifier: str = DEFAULT_QUALIFIER
    sender_id: str = ""
    receiver_id_qualifier: str = DEFAULT_QUALIFIER
    receiver_id: str = ""
    gs_sender_id: str = ""
    gs_receiver_id: str = ""
    purchase_order_number: str = ""
    purchase_date: str = ""
    usage_indicator: str = DEFAULT_USAGE_INDICATOR
    version: str = DEFAULT_VERSION


class HeaderOverrides(BaseModel):
    """
    Caller-supplied header values. An empty string means "not overridden":
    the regeneration engine falls back to the parsed value, then to the fixed default.
    """
    model_config = ConfigDict(frozen=True)

    sender_id_qualifier: str = ""
    sender_id: str = ""
    receiver_id_qualifier: str = ""
    receiver_id: str = ""
    gs_sender_id: str = ""
    gs_receiver_id: str = ""
    purchase_order_number: str = ""
    purchase_date: str = ""

    @classmethod
    def from_header(cls, header: EnvelopeHeader) -> "HeaderOverrides":
        return cls(**header.model_dump(include=set(cls.model_fields)))


class DateEntry(BaseModel):
    """
    One date-qualified segment eligible for editing.
    (segment_type, original_qualifier_id, original_date) locate the source segment;
    qualifier_id and date hold the current, possibly edited values.
    """
    model_config = ConfigDict(frozen=True)

    segment_type: DateSegmentType
    qualifier_id: str
    date: str
    original_qualifier_id: str
    original_date: str

    @property
    def dedup_key(self) -> str:
        return f"{self.segment_type}_{self.original_qualifier_id}_{self.original_date}"


class PO1Group(BaseModel):
    """A PO1 line item with its adjacent PO4 and AMT dependents."""
    model_config = ConfigDict(frozen=True)

    line: str
    include: bool = False
    dependent_segments: List[str] = Field(default_factory=list)


class GroupState(str, Enum):
    """Where the PO1 group extractor is within the current line item."""
    IDLE = "idle"
    EXPECT_PO4 = "expect_po4"
    EXPECT_AMT = "expect_amt"


class ParsedDocument(BaseModel):
    """Result of the single parsing pass over a document."""
    document: Document
    header: EnvelopeHeader = Field(default_factory=EnvelopeHeader)
    date_entries: List[DateEntry] = Field(default_factory=list)
    po1_groups: List[PO1Group] = Field(default_factory=list)
    transaction_set_numbers: List[str] = Field(default_factory=list)


class RegenerationRequest(BaseModel):
    """Everything one regeneration pass needs. Nothing in here is mutated by the engine."""
    model_config = ConfigDict(frozen=True)

    document: Document
    file_name: str = ""
    overrides: HeaderOverrides = Field(default_factory=HeaderOverrides)
    po1_groups: List[PO1Group] = Field(default_factory=list)
    date_entries: List[DateEntry] = Field(default_factory=list)
    batch_index: int = 0


class GeneratedFile(BaseModel):
    name: str
    content: str
    control_number: str


class DocumentFailure(BaseModel):
    """A document that could not be read."""
    file_name: str
    message: str


class BatchLoadResult(BaseModel):
    """Merged outcome of loading a batch of documents."""
    contents: Dict[str, str] = Field(default_factory=dict)
    failures: List[DocumentFailure] = Field(default_factory=list)
    transaction_set_numbers: List[str] = Field(default_factory=list)
    completed: int = 0
    expected: int = 0

    @property
    def is_complete(self) -> bool:
        return self.completed == self.expected

    def get_failure(self, file_name: str) -> Optional[DocumentFailure]:
        return next((f for f in self.failures if f.file_name == file_name), None)
