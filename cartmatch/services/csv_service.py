"""CSV Service - Reading upload sheets and exporting batch results.

This module handles:
- Reading profile and catalog sheets into raw row dicts
- Lenient header matching (case, spacing and punctuation insensitive)
- Exporting a RecommendationResult sequence as a CSV sheet

Interface Contract:
- read_rows(source) -> list[dict[str, str]]
- export_results(results) -> str
- Unreadable sources raise CsvServiceError (the only fatal input error)
"""

from __future__ import annotations

import csv
import io
import re
from pathlib import Path
from typing import Any, Iterable, Sequence

from cartmatch.models import RecommendationResult


class CsvServiceError(Exception):
    """Raised when a source sheet cannot be read."""
    pass


class SheetRow(dict):
    """A data row that remembers its 1-based position in the sheet.

    Blank lines count towards the position; the header does not.
    """

    def __init__(self, data: dict[str, str], row_number: int):
        super().__init__(data)
        self.row_number = row_number


def row_number_of(row: Any, default: int) -> int:
    """Sheet position of a row read by read_rows, else ``default``."""
    return getattr(row, "row_number", default)


RESULT_COLUMNS = [
    "email",
    "first_name",
    "style_archetype",
    "status",
    "keywords",
    "top_pick_brand",
    "top_pick_name",
    "top_pick_url",
    "top_pick_image",
    "alternative_pick_brand",
    "alternative_pick_name",
    "alternative_pick_url",
    "alternative_pick_image",
    "reason",
]


def normalize_header(name: str) -> str:
    """'First Name', 'first_name' and 'firstName' all become 'firstname'."""
    return re.sub(r"[^a-z0-9]", "", str(name or "").lower())


def lookup(row: dict[str, Any], aliases: Sequence[str]) -> str:
    """Return the first non-empty value among the given header aliases."""
    normalized = {normalize_header(k): v for k, v in row.items() if k is not None}
    for alias in aliases:
        value = normalized.get(normalize_header(alias))
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        text = str(value).strip()
        if text:
            return text
    return ""


def read_rows(source: Any) -> list[SheetRow]:
    """Read a CSV sheet into a list of row dicts.

    Args:
        source: A path, raw bytes, or an open (text or binary) file object

    Returns:
        list[dict]: One dict per data row, keyed by the sheet's headers

    Raises:
        CsvServiceError: If the source cannot be opened, decoded or parsed
    """
    try:
        if isinstance(source, (str, Path)):
            with open(source, newline="", encoding="utf-8-sig") as f:
                return _parse(f)
        if isinstance(source, bytes):
            return _parse(io.StringIO(source.decode("utf-8-sig"), newline=""))
        content = source.read()
        if isinstance(content, bytes):
            content = content.decode("utf-8-sig")
        return _parse(io.StringIO(content.lstrip("\ufeff"), newline=""))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise CsvServiceError(f"Failed to read CSV: {e}") from e


def _parse(handle) -> list[SheetRow]:
    reader = csv.DictReader(handle)
    rows = []
    for row in reader:
        # Blank lines come back as rows of empty strings
        if not any((v or "").strip() for v in row.values() if isinstance(v, str)):
            continue
        values = {k: (v if isinstance(v, str) else "") for k, v in row.items() if k is not None}
        # line_num counts the header line
        rows.append(SheetRow(values, reader.line_num - 1))
    return rows


def result_to_row(result: RecommendationResult) -> dict[str, str]:
    """Flatten one result into an export row."""
    profile = result.profile
    row = {
        "email": profile.email,
        "first_name": profile.first_name,
        "style_archetype": profile.style_archetype.value if profile.style_archetype else "",
        "status": result.status.value,
        "keywords": ", ".join(result.keywords),
        "reason": result.reason,
    }
    for slot, item in (("top_pick", result.top_pick), ("alternative_pick", result.alternative_pick)):
        row[f"{slot}_brand"] = item.brand if item else ""
        row[f"{slot}_name"] = item.name if item else ""
        row[f"{slot}_url"] = item.item_url if item else ""
        row[f"{slot}_image"] = item.image_url if item else ""
    return row


def export_results(results: Iterable[RecommendationResult]) -> str:
    """Render results as CSV text, one line per profile in processing order."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=RESULT_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for result in results:
        writer.writerow(result_to_row(result))
    return buffer.getvalue()


def write_results(results: Iterable[RecommendationResult], path: Path) -> Path:
    """Write the export sheet to disk."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(export_results(results))
    return path
