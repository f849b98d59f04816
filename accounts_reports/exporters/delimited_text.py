from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

import pandas as pd


def observed_columns(records: Sequence[Mapping[str, Any]]) -> list[str]:
    columns: list[str] = []
    for record in records:
        for key in record.keys():
            if key not in columns:
                columns.append(key)
    return columns


def _escape_field(value: Any, delimiter: str) -> str:
    if value is None:
        return ""
    text = str(value)
    if delimiter in text or '"' in text or "\n" in text:
        return '"' + text.replace('"', '""') + '"'
    return text


def to_delimited_text(
    records: Sequence[Mapping[str, Any]],
    columns: Sequence[str] | None = None,
    *,
    delimiter: str = ",",
) -> str:
    """Serialise ``records`` to delimited text with a header row.

    Returns ``""`` when there is nothing to export. Nulls become empty fields.
    Only values containing the delimiter, a quote or a newline are quoted,
    with embedded quotes doubled.
    """

    if not records:
        return ""

    header = list(columns) if columns else observed_columns(records)
    frame = pd.DataFrame(
        [[record.get(column) for column in header] for record in records],
        columns=header,
        dtype=object,
    )
    cells = frame.map(lambda value: _escape_field(value, delimiter))
    lines = [delimiter.join(_escape_field(column, delimiter) for column in header)]
    lines.extend(delimiter.join(row) for row in cells.itertuples(index=False, name=None))
    return "\n".join(lines)


def export_filename(dataset: str, on: date | None = None) -> str:
    on = on or datetime.now(timezone.utc).date()
    return f"{dataset}_{on.isoformat()}.csv"
