"""Non-interactive table output for --print mode."""

from collections.abc import Sequence

from portman.models import Process

HEADERS = ("PID", "Process", "Port", "Protocol", "Status", "Local Address", "Remote Address")

# Longest common status values (LISTEN, ACTIVE, CLOSED) are six characters
STATUS_WIDTH = 6
COLUMN_GAP = "   "


def _row(proc: Process) -> list[str]:
    return [
        str(proc.pid),
        proc.name,
        str(proc.port),
        str(proc.protocol),
        proc.status,
        proc.local_addr,
        proc.remote_addr,
    ]


def _escape(cell: str) -> str:
    return cell.replace("|", "\\|")


def render_markdown(processes: Sequence[Process]) -> str:
    """Render processes as a GitHub-flavoured markdown table."""
    lines = [
        "| " + " | ".join(HEADERS) + " |",
        "|" + "|".join("-" * (len(h) + 2) for h in HEADERS) + "|",
    ]
    for proc in processes:
        lines.append("| " + " | ".join(_escape(c) for c in _row(proc)) + " |")
    return "\n".join(lines) + "\n"


def render_plain(processes: Sequence[Process]) -> str:
    """Render processes as a borderless, space aligned table."""
    if not processes:
        return "No processes found.\n"

    headers = [h.upper() for h in HEADERS]
    rows = [headers] + [_row(proc) for proc in processes]

    widths = [max(len(row[i]) for row in rows) for i in range(len(headers))]
    status_col = headers.index("STATUS")
    widths[status_col] = min(widths[status_col], STATUS_WIDTH)

    lines = []
    for i, row in enumerate(rows):
        lines.append(
            COLUMN_GAP.join(f"{cell:<{widths[j]}}" for j, cell in enumerate(row)).rstrip()
        )
        if i == 0:
            lines.append(COLUMN_GAP.join("-" * w for w in widths))
    return "\n".join(lines) + "\n"
