from __future__ import annotations

from enum import Enum

from .types import ParsedTable


class _State(Enum):
    unquoted = "unquoted"
    quoted = "quoted"
    done = "done"


def parse_rows(text: str) -> list[list[str]]:
    """
    Split comma-delimited `text` into rows of string cells, in one linear pass.

    Quoting rules:
    - `"` outside a quoted field opens one, and is not emitted.
    - `""` inside a quoted field emits one literal `"`.
    - any other `"` inside a quoted field closes it.
    - `,` and `\\n` only delimit outside quotes, `\\r` outside quotes is dropped.
    - everything else is kept verbatim, inside or outside quotes.

    A trailing row without a final newline is still flushed.
    """
    rows: list[list[str]] = []
    row: list[str] = []
    cell: list[str] = []
    state = _State.unquoted

    i = 0
    n = len(text)
    while state is not _State.done:
        if i >= n:
            state = _State.done
            continue

        ch = text[i]
        i += 1

        if state is _State.quoted:
            if ch == '"':
                if i < n and text[i] == '"':
                    cell.append('"')
                    i += 1
                else:
                    state = _State.unquoted
            else:
                cell.append(ch)
            continue

        if ch == '"':
            state = _State.quoted
        elif ch == ",":
            row.append("".join(cell))
            cell = []
        elif ch == "\n":
            row.append("".join(cell))
            cell = []
            rows.append(row)
            row = []
        elif ch == "\r":
            continue
        else:
            cell.append(ch)

    # pending content without a final newline
    if cell or row:
        row.append("".join(cell))
        rows.append(row)

    return rows


def parse_delimited(text: str) -> ParsedTable:
    """
    Parse delimited `text` into a `ParsedTable`.

    The first row is the header. Records whose every cell is empty are dropped
    (blank and trailing lines).
    """
    rows = parse_rows(text)
    if not rows:
        return ParsedTable(header=(), records=[])

    header, *records = rows
    return ParsedTable(
        header=tuple(header),
        records=[r for r in records if any(v != "" for v in r)],
    )
