import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Set, Union

from date_shifter import offset_date_entries, shift_batch_dates
from edi_errors import DocumentReadError, NoDocumentsError, UnsavedEditsError
from edi_generator import EdiGenerator
from edi_models import (
    BatchLoadResult, DateEntry, DocumentFailure, GeneratedFile, HeaderOverrides, PO1Group, RegenerationRequest,
)
from edi_parser import EdiParser, ProcessingMode, default_date_entries
from segment_tokenizer import tokenize

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_document(path: PathLike) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(Path(path).name, str(e)) from e


class EdiBatchService:
    """Loads a batch of documents concurrently and opens edit sessions over them."""

    def __init__(
        self,
        max_workers: int = 5,
        reader: Callable[[PathLike], str] = read_document,
        generator: Optional[EdiGenerator] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.max_workers = max_workers
        self.reader = reader
        self.clock = clock
        self.generator = generator or EdiGenerator(clock=clock)

    def load_documents(self, paths: Sequence[PathLike]) -> BatchLoadResult:
        """
        Reads every document on a worker pool and merges results as they complete.

        A failed read is recorded and still counts towards completion, so one bad file
        never holds up the rest. Merging is by file name and set union, which makes the
        result independent of completion order.
        """
        result = BatchLoadResult(expected=len(paths))
        if not paths:
            return result

        transaction_sets: Set[str] = set()
        logger.info(f"Loading {len(paths)} document(s) with {self.max_workers} worker(s)")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_name = {executor.submit(self.reader, path): Path(path).name for path in paths}

            for future in as_completed(future_to_name):
                file_name = future_to_name[future]
                result.completed += 1
                try:
                    content = future.result()
                except Exception as e:
                    logger.error(f"{e} ({result.completed}/{result.expected})", exc_info=True)
                    result.failures.append(DocumentFailure(file_name=file_name, message=str(e)))
                    continue

                result.contents[file_name] = content
                parsed = EdiParser(content, mode="bulk").parse()
                transaction_sets.update(parsed.transaction_set_numbers)
                logger.info(f"Loaded {file_name} ({result.completed}/{result.expected})")

        result.transaction_set_numbers = sorted(transaction_sets)
        result.failures.sort(key=lambda f: f.file_name)
        logger.info(
            f"Batch load complete: {len(result.contents)} loaded, {len(result.failures)} failed, "
            f"transaction sets {result.transaction_set_numbers or 'none'}"
        )
        return result

    def open_session(
        self,
        load_result: BatchLoadResult,
        file_names: Sequence[str],
        previous_overrides: Optional[HeaderOverrides] = None,
    ) -> "EditSession":
        return EditSession(
            file_names=list(file_names),
            contents=dict(load_result.contents),
            generator=self.generator,
            today=self.clock().date(),
            previous_overrides=previous_overrides,
        )


class EditSession:
    """
    Caller-side editing state for one uploaded batch.

    One file means single mode: the header, PO1 groups and date entries are read from
    the document and can be edited. Several files mean bulk mode: header values and
    dates are shared across the batch and PO1 selection is unavailable.
    Every generate() call hands an immutable RegenerationRequest to the generator.
    """

    def __init__(
        self,
        file_names: List[str],
        contents: Dict[str, str],
        generator: EdiGenerator,
        today: date,
        previous_overrides: Optional[HeaderOverrides] = None,
    ):
        self.file_names = file_names
        self.contents = contents
        self.generator = generator
        self.mode: ProcessingMode = "bulk" if len(file_names) > 1 else "single"
        self.counter = 0
        self.pending_save = False
        self._staged_lines: Dict[int, str] = {}

        self.overrides = HeaderOverrides()
        self.po1_groups: List[PO1Group] = []
        self.date_entries: List[DateEntry] = default_date_entries(today)

        if self.mode == "single" and file_names and contents.get(file_names[0]):
            parsed = EdiParser(contents[file_names[0]], mode="single", caller_overrides=previous_overrides).parse()
            self.overrides = HeaderOverrides.from_header(parsed.header)
            self.po1_groups = parsed.po1_groups
            if parsed.date_entries:
                self.date_entries = parsed.date_entries

    # --- header and dates ---

    def update_header(self, **fields: str) -> None:
        self.overrides = self.overrides.model_copy(update=fields)

    def update_date_entry(self, index: int, qualifier_id: Optional[str] = None, date_value: Optional[str] = None) -> None:
        update = {}
        if qualifier_id is not None:
            update["qualifier_id"] = qualifier_id
        if date_value is not None:
            update["date"] = date_value
        self.date_entries[index] = self.date_entries[index].model_copy(update=update)

    def increment_dates(self) -> None:
        self._move_counter(1)

    def decrement_dates(self) -> None:
        self._move_counter(-1)

    def _move_counter(self, step: int) -> None:
        if self.mode == "bulk":
            return
        self.counter += step
        self.date_entries = offset_date_entries(self.date_entries, self.counter)

    def shift_stored_dates(self, days: int) -> None:
        """Shifts the DTM/G62 dates in the stored text of every document. Repeated calls add up."""
        self.contents = shift_batch_dates(self.contents, days)

    # --- PO1 selection and editing ---

    def set_include(self, index: int, include: bool) -> None:
        if self.mode == "bulk":
            return
        self.po1_groups[index] = self.po1_groups[index].model_copy(update={"include": include})
        self.pending_save = include or any(group.include for group in self.po1_groups)

    def edit_line(self, index: int, line: str) -> None:
        """Stages new text for a PO1 line. Takes effect on save_po1_edits()."""
        self._staged_lines[index] = line
        if self.po1_groups[index].include:
            self.pending_save = True

    def save_po1_edits(self) -> None:
        for index, group in enumerate(self.po1_groups):
            if group.include and index in self._staged_lines:
                self.po1_groups[index] = group.model_copy(update={"line": self._staged_lines.pop(index)})
        self.pending_save = False

    # --- generation ---

    def generate(self) -> List[GeneratedFile]:
        if not self.file_names:
            raise NoDocumentsError()
        if self.pending_save and any(group.include for group in self.po1_groups):
            raise UnsavedEditsError()

        if self.mode == "bulk":
            requests = [
                RegenerationRequest(
                    document=tokenize(self.contents.get(name, "")),
                    file_name=name,
                    overrides=self.overrides,
                    date_entries=list(self.date_entries),
                    batch_index=index,
                )
                for index, name in enumerate(self.file_names)
            ]
            return self.generator.generate_bulk(requests)

        file_name = self.file_names[0]
        content = self.contents.get(file_name, "")
        if not content:
            logger.warning(f"No content found for file: {file_name}")
            return []
        request = RegenerationRequest(
            document=tokenize(content),
            file_name=file_name,
            overrides=self.overrides,
            po1_groups=list(self.po1_groups),
            date_entries=list(self.date_entries),
        )
        return [self.generator.generate(request)]
