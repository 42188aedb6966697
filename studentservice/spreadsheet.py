"""Reading and writing of the .xlsx workbooks used for bulk uploads and reports."""

from __future__ import annotations

import posixpath
import re
import zipfile
from typing import Any, Iterable, Sequence
from xml.etree import ElementTree as ET
from xml.sax.saxutils import escape, quoteattr

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_MAIN = "http://schemas.openxmlformats.org/spreadsheetml/2006/main"
_DOC_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
_PKG_REL = "http://schemas.openxmlformats.org/package/2006/relationships"
_REF = re.compile(r"([A-Za-z]+)(\d+)")


class SpreadsheetError(Exception):
    """Raised when a workbook cannot be read."""


def is_spreadsheet_file(path: str) -> bool:
    """True if the file starts with an .xlsx (zip) or .xls (OLE) signature."""
    try:
        with open(path, "rb") as handle:
            header = handle.read(8)
    except OSError:
        return False
    if not header:
        return False
    return header.startswith(_ZIP_MAGIC) or header == _OLE_MAGIC


def _column_number(letters: str) -> int:
    number = 0
    for char in letters.upper():
        number = number * 26 + (ord(char) - ord("A") + 1)
    return number


def _column_name(number: int) -> str:
    name = ""
    while number:
        number, rest = divmod(number - 1, 26)
        name = chr(ord("A") + rest) + name
    return name


def _texts(element: ET.Element) -> str:
    return "".join(node.text or "" for node in element.iter(f"{{{_MAIN}}}t"))


def _cell_value(cell: ET.Element, shared: Sequence[str]) -> str:
    kind = cell.get("t", "n")
    if kind == "inlineStr":
        inline = cell.find(f"{{{_MAIN}}}is")
        return "" if inline is None else _texts(inline)
    node = cell.find(f"{{{_MAIN}}}v")
    text = "" if node is None or node.text is None else node.text
    if kind == "s" and text:
        return shared[int(text)]
    if kind == "b":
        return "TRUE" if text == "1" else "FALSE"
    return text


def _first_sheet_path(archive: zipfile.ZipFile) -> str:
    workbook = ET.fromstring(archive.read("xl/workbook.xml"))
    sheet = workbook.find(f"{{{_MAIN}}}sheets/{{{_MAIN}}}sheet")
    if sheet is None:
        raise SpreadsheetError("workbook has no sheets")
    rel_id = sheet.get(f"{{{_DOC_REL}}}id")
    rels = ET.fromstring(archive.read("xl/_rels/workbook.xml.rels"))
    for rel in rels.iter(f"{{{_PKG_REL}}}Relationship"):
        if rel.get("Id") == rel_id:
            target = rel.get("Target", "")
            if target.startswith("/"):
                return target[1:]
            return posixpath.normpath(posixpath.join("xl", target))
    raise SpreadsheetError("first sheet of workbook not found")


def read_rows(path: str) -> list[list[str]]:
    """Return the cell texts of the first sheet, row by row, trailing blanks trimmed."""
    try:
        archive = zipfile.ZipFile(path)
    except (zipfile.BadZipFile, OSError) as exc:
        if is_spreadsheet_file(path):
            raise SpreadsheetError("legacy .xls workbooks are not supported") from exc
        raise SpreadsheetError(f"not a valid .xlsx workbook: {exc}") from exc
    with archive:
        try:
            shared: list[str] = []
            if "xl/sharedStrings.xml" in archive.namelist():
                strings = ET.fromstring(archive.read("xl/sharedStrings.xml"))
                shared = [_texts(item) for item in strings.iter(f"{{{_MAIN}}}si")]
            sheet = ET.fromstring(archive.read(_first_sheet_path(archive)))
            grid: dict[int, dict[int, str]] = {}
            row_number = 0
            for row in sheet.iter(f"{{{_MAIN}}}row"):
                row_number = int(row.get("r") or row_number + 1)
                column = 0
                for cell in row.findall(f"{{{_MAIN}}}c"):
                    match = _REF.fullmatch(cell.get("r", ""))
                    column = _column_number(match.group(1)) if match else column + 1
                    value = _cell_value(cell, shared)
                    if value:
                        grid.setdefault(row_number, {})[column] = value
        except (KeyError, ValueError, IndexError, ET.ParseError) as exc:
            raise SpreadsheetError(f"unable to read workbook: {exc}") from exc
    last_row = max(grid, default=0)
    rows = []
    for number in range(1, last_row + 1):
        cells = grid.get(number, {})
        width = max(cells, default=0)
        rows.append([cells.get(column, "") for column in range(1, width + 1)])
    return rows


def _cell_xml(ref: str, value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return f'<c r="{ref}" t="b"><v>{int(value)}</v></c>'
    if isinstance(value, (int, float)):
        return f'<c r="{ref}"><v>{value}</v></c>'
    return (
        f'<c r="{ref}" t="inlineStr"><is><t xml:space="preserve">'
        f"{escape(str(value))}</t></is></c>"
    )


def write_report(
    path: str, sheet_name: str, headers: Sequence[str], rows: Iterable[Sequence[Any]]
) -> None:
    """Write a one-sheet workbook with a header row followed by ``rows``."""
    lines = []
    for number, values in enumerate([list(headers), *rows], start=1):
        cells = "".join(
            _cell_xml(f"{_column_name(column)}{number}", value)
            for column, value in enumerate(values, start=1)
        )
        lines.append(f'<row r="{number}">{cells}</row>')
    sheet = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<worksheet xmlns="{_MAIN}"><sheetData>{"".join(lines)}</sheetData></worksheet>'
    )
    workbook = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<workbook xmlns="{_MAIN}" xmlns:r="{_DOC_REL}"><sheets>'
        f'<sheet name={quoteattr(sheet_name)} sheetId="1" r:id="rId1"/></sheets></workbook>'
    )
    workbook_rels = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<Relationships xmlns="{_PKG_REL}">'
        f'<Relationship Id="rId1" Type="{_DOC_REL}/worksheet" Target="worksheets/sheet1.xml"/>'
        "</Relationships>"
    )
    package_rels = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<Relationships xmlns="{_PKG_REL}">'
        f'<Relationship Id="rId1" Type="{_DOC_REL}/officeDocument" Target="xl/workbook.xml"/>'
        "</Relationships>"
    )
    content_types = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<Types xmlns="http://schemas.openxmlformats.org/package/2006/content-types">'
        '<Default Extension="rels" ContentType="application/vnd.openxmlformats-package.relationships+xml"/>'
        '<Default Extension="xml" ContentType="application/xml"/>'
        '<Override PartName="/xl/workbook.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"/>'
        '<Override PartName="/xl/worksheets/sheet1.xml" ContentType="application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"/>'
        "</Types>"
    )
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("[Content_Types].xml", content_types)
        archive.writestr("_rels/.rels", package_rels)
        archive.writestr("xl/workbook.xml", workbook)
        archive.writestr("xl/_rels/workbook.xml.rels", workbook_rels)
        archive.writestr("xl/worksheets/sheet1.xml", sheet)