import pytest

from studentservice.spreadsheet import (
    SpreadsheetError,
    is_spreadsheet_file,
    read_rows,
    write_report,
)

HEADERS = ["Student Id", "Drive Id", "Status", "Remarks"]


def test_round_trip(tmp_path):
    path = tmp_path / "Report.xlsx"
    write_report(str(path), "Report", HEADERS, [[7, 3, "Accepted"], [8, 4, "Rejected", "bad & wrong"]])
    rows = read_rows(str(path))
    assert rows == [HEADERS, ["7", "3", "Accepted"], ["8", "4", "Rejected", "bad & wrong"]]


def test_none_cells_leave_gaps(tmp_path):
    path = tmp_path / "r.xlsx"
    write_report(str(path), "Report", ["a", "b", "c"], [[None, "x"], []])
    assert read_rows(str(path)) == [["a", "b", "c"], ["", "x"]]


def test_signature_detection(tmp_path):
    xlsx = tmp_path / "ok.xlsx"
    write_report(str(xlsx), "Report", HEADERS, [])
    text = tmp_path / "plain.csv"
    text.write_text("name,class\n")
    empty = tmp_path / "empty"
    empty.write_bytes(b"")
    assert is_spreadsheet_file(str(xlsx)) is True
    assert is_spreadsheet_file(str(text)) is False
    assert is_spreadsheet_file(str(empty)) is False
    assert is_spreadsheet_file(str(tmp_path / "missing")) is False


def test_legacy_xls_detected_but_unreadable(tmp_path):
    xls = tmp_path / "old.xls"
    xls.write_bytes(b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 32)
    assert is_spreadsheet_file(str(xls)) is True
    with pytest.raises(SpreadsheetError):
        read_rows(str(xls))


def test_read_garbage(tmp_path):
    bad = tmp_path / "bad.xlsx"
    bad.write_text("nonsense")
    with pytest.raises(SpreadsheetError):
        read_rows(str(bad))