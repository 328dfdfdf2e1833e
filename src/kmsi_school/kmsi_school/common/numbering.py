from __future__ import annotations

from typing import Iterable


def next_sequence_number(prefix: str, existing: Iterable[str], *, parts: int, width: int) -> str:
    """Return ``{prefix}-{n}`` where n is one past the highest sequence already used.

    ``existing`` numbers that do not start with the prefix, do not split into
    exactly ``parts`` hyphen-separated pieces, or whose last piece is not an
    integer are ignored.
    """
    highest = 0
    head = f"{prefix}-"
    for number in existing:
        if not number or not number.startswith(head):
            continue
        pieces = number.split("-")
        if len(pieces) != parts:
            continue
        try:
            seq = int(pieces[-1])
        except ValueError:
            continue
        highest = max(highest, seq)
    return f"{prefix}-{highest + 1:0{width}d}"
