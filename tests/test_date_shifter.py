import pytest
from date_shifter import offset_date_entries, shift_batch_dates, shift_date, shift_document_dates
from edi_models import DateEntry

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("value, days, expected", [
    ("20240131", 1, "20240201"),
    ("240229", 1, "240301"),
    ("20240301", -1, "20240229"),
    ("231231", 1, "240101"),
    ("20241231", 366, "20260101"),
    ("991231", 1, "000101"),
])
def test_shift_date(value, days, expected):
    assert shift_date(value, days) == expected


@pytest.mark.parametrize("value", ["ABCDEFGH", "20240230", "2024013", "", "1200", "20241301", "24-1-01"])
def test_unparseable_dates_are_unchanged(value):
    assert shift_date(value, 5) == value


@pytest.mark.parametrize("value, days", [
    ("99991231", 1),
    ("00010101", -1),
    ("20240101", 10_000_000),
])
def test_out_of_range_shift_leaves_date_unchanged(value, days):
    assert shift_date(value, days) == value


def test_out_of_range_date_in_document_is_not_fatal():
    assert shift_document_dates("DTM*002*99991231~DTM*010*20240101~", 1) == "DTM*002*99991231~DTM*010*20240102~"


@pytest.mark.parametrize("value, expected", [
    ("01000101", "01000102"),
    ("09991231", "10000101"),
])
def test_early_years_keep_eight_digits(value, expected):
    assert shift_date(value, 1) == expected


def test_shift_document_dates_touches_only_date_segments(g62_edi_string):
    shifted = shift_document_dates(g62_edi_string, 1)
    lines = shifted.split("\n")

    assert "G62*10*240301~" in lines
    assert "G62*10*20240302~" in lines
    assert "DTM*002*20240111~" in lines
    assert "BEG*00*SA*PO875**20240105~" in lines
    assert lines[0].startswith("ISA*") and lines[0].endswith("*240101*1200*U*00401*000000001*0*P*>~")


def test_shift_document_dates_keeps_single_line_layout():
    shifted = shift_document_dates("ST*850*1~DTM*002*20240101~DTM*002~SE*4*1~", 2)
    assert shifted == "ST*850*1~DTM*002*20240103~DTM*002~SE*4*1~"


def test_batch_shift_accumulates_across_calls():
    contents = {"a.edi": "DTM*002*20240101~", "b.edi": "G62*10*240101~"}

    once = shift_batch_dates(contents, 1)
    twice = shift_batch_dates(once, 1)

    assert once == {"a.edi": "DTM*002*20240102~", "b.edi": "G62*10*240102~"}
    assert twice == {"a.edi": "DTM*002*20240103~", "b.edi": "G62*10*240103~"}
    assert contents["a.edi"] == "DTM*002*20240101~"


def test_offset_date_entries_is_idempotent_for_an_offset():
    entries = [
        DateEntry(segment_type="DTM", qualifier_id="002", date="20240101", original_qualifier_id="002", original_date="20240101"),
        DateEntry(segment_type="G62", qualifier_id="10", date="240228", original_qualifier_id="10", original_date="240228"),
        DateEntry(segment_type="DTM", qualifier_id="", date="", original_qualifier_id="", original_date=""),
    ]

    first = offset_date_entries(entries, 2)
    again = offset_date_entries(first, 2)

    assert [e.date for e in first] == ["20240103", "240301", ""]
    assert [e.date for e in again] == ["20240103", "240301", ""]
    assert [e.original_date for e in again] == ["20240101", "240228", ""]
