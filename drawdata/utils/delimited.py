"""
Delimited-text tokenizer.

Standard quoted-CSV grammar in a single left-to-right scan:
- a quoted field may contain the delimiter, quotes (doubled) and line breaks
- an unquoted delimiter ends a field
- LF, CR+LF or a lone CR ends a row; rows whose fields are all empty are dropped
- unquoted fields are stripped of surrounding whitespace; quoted content is kept verbatim

Rows come out as lists of strings. `zip_row` turns a header row and a data
row into the header-keyed dict that extraction modules work with before
converting to typed records.
"""

from typing import Dict, Iterable, List, Sequence

QUOTE = '"'


def tokenize(text: str, delimiter: str = ",") -> List[List[str]]:
    """
    Split delimited text into rows of fields.

    Args:
        text: Raw file contents
        delimiter: Single-character field separator

    Returns:
        List of rows, each a list of field strings
    """
    rows: List[List[str]] = []
    row: List[str] = []
    field: List[str] = []
    in_quotes = False
    was_quoted = False

    def end_field():
        nonlocal field, was_quoted
        value = "".join(field)
        row.append(value if was_quoted else value.strip())
        field = []
        was_quoted = False

    def end_row():
        nonlocal row
        if any(value != "" for value in row):
            rows.append(row)
        row = []

    i = 0
    length = len(text)
    while i < length:
        char = text[i]

        if in_quotes:
            if char == QUOTE:
                if i + 1 < length and text[i + 1] == QUOTE:
                    field.append(QUOTE)
                    i += 2
                    continue
                in_quotes = False
            else:
                field.append(char)
            i += 1
            continue

        if char == QUOTE and not was_quoted and not "".join(field).strip():
            # Opening quote; whitespace before it is not part of the value
            field = []
            in_quotes = True
            was_quoted = True
        elif char == delimiter:
            end_field()
        elif char == "\n" or char == "\r":
            end_field()
            end_row()
            if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
        elif was_quoted and char.isspace():
            # Whitespace after a closing quote
            pass
        else:
            field.append(char)
        i += 1

    if field or row or was_quoted:
        end_field()
        end_row()

    return rows


def zip_row(headers: Sequence[str], row: Sequence[str]) -> Dict[str, str]:
    """
    Zip a header row with a data row into a lower-cased key -> value dict.

    Missing trailing fields default to "". Extra fields beyond the header
    are ignored. A repeated header keeps the last column's value.
    """
    record: Dict[str, str] = {}
    for index, header in enumerate(headers):
        record[header.strip().lower()] = row[index] if index < len(row) else ""
    return record


def tokenize_records(text: str, delimiter: str = ",") -> List[Dict[str, str]]:
    """Tokenize text whose first row is a header into header-keyed dicts."""
    rows = tokenize(text, delimiter)
    if not rows:
        return []
    headers, data = rows[0], rows[1:]
    return [zip_row(headers, row) for row in data]


def render_field(value: str, delimiter: str = ",") -> str:
    """Quote a field when tokenizing it back would otherwise change it."""
    needs_quotes = (
        delimiter in value
        or QUOTE in value
        or "\n" in value
        or "\r" in value
        or value != value.strip()
    )
    if not needs_quotes:
        return value
    return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE


def render_row(fields: Iterable[str], delimiter: str = ",") -> str:
    return delimiter.join(render_field(value, delimiter) for value in fields)


def render(rows: Iterable[Iterable[str]], delimiter: str = ",") -> str:
    """Render rows as delimited text, one CR+LF-terminated line per row."""
    return "".join(render_row(row, delimiter) + "\r\n" for row in rows)
