"""Column width negotiation and horizontal scrolling for the socket table."""

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Column:
    """A table column with a minimum width and a relative growth weight."""

    title: str
    key: str
    min_width: int
    weight: int = 0  # 0 means the column never grows


COLUMNS: tuple[Column, ...] = (
    Column("PID", "pid", 7),
    Column("Protocol", "protocol", 8),
    Column("Port", "port", 6),
    Column("Status", "status", 12),
    Column("Local Address", "local", 15, weight=2),
    Column("Remote Address", "remote", 15, weight=2),
    Column("Process", "process", 15, weight=3),
)


def negotiate_widths(
    columns: Sequence[Column],
    total_width: int,
    surplus_ratio: float = 0.9,
) -> list[int]:
    """
    Distribute the available width over the columns.

    Every column gets its minimum. Only surplus_ratio of the remaining
    width is handed out, proportionally to the weights; the integer
    division remainder goes one cell at a time to the weighted columns,
    left to right.
    """
    widths = [col.min_width for col in columns]
    surplus = total_width - sum(widths)
    total_weight = sum(col.weight for col in columns)
    if surplus <= 0 or total_weight <= 0:
        return widths

    budget = int(surplus * surplus_ratio)
    for i, col in enumerate(columns):
        widths[i] += budget * col.weight // total_weight

    remainder = budget - (sum(widths) - sum(col.min_width for col in columns))
    weighted = [i for i, col in enumerate(columns) if col.weight > 0]
    while remainder > 0:
        for i in weighted:
            if remainder == 0:
                break
            widths[i] += 1
            remainder -= 1

    return widths


def scroll_text(text: str, offset: int, width: int) -> str:
    """
    Return a width-character window of text starting at offset.

    The offset is clamped so the window never runs past the end of the
    string; strings shorter than the window are right-padded.
    """
    if width <= 0:
        return ""
    if len(text) <= width:
        return text.ljust(width)
    offset = max(0, min(offset, len(text) - width))
    return text[offset : offset + width]


def max_scroll(texts: Sequence[str], width: int) -> int:
    """The largest useful scroll offset for texts shown in a width-wide window."""
    if width <= 0:
        return 0
    return max((len(text) - width for text in texts if len(text) > width), default=0)
