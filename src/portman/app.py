"""portman - Main Textual application."""

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Static

from portman.config import AppConfig
from portman.filters import ReadOptions
from portman.layout import COLUMNS, max_scroll, negotiate_widths, scroll_text
from portman.models import Process
from portman.monitor import PortMonitor
from portman.session import Mode, Session, StatusKind

SHORTCUTS = "[/] Search  [k] Kill  [t/u/l/e] Filter  [c] Clear  [←/→] Scroll  [q] Quit"

# Columns whose text is windowed by the horizontal scroll offset
SCROLLABLE = frozenset(i for i, col in enumerate(COLUMNS) if col.weight > 0)


def row_identity(proc: Process) -> tuple:
    """Key that follows one socket across refreshes."""
    return (proc.pid, proc.protocol, proc.local_addr, proc.remote_addr)


class SearchBar(Static):
    """Search prompt with a visible cursor."""

    DEFAULT_CSS = """
    SearchBar {
        height: 3;
        border: round $accent;
        padding: 0 2;
    }
    """

    def show_query(self, value: str, cursor: int | None) -> None:
        text = Text("Search: ", style="bold")
        if cursor is None:
            text.append(value)
        else:
            text.append(value[:cursor])
            text.append(value[cursor : cursor + 1] or " ", style="reverse")
            text.append(value[cursor + 1 :])
        self.update(text)


class ConfirmBox(Static):
    """Confirmation prompt for the kill action."""

    DEFAULT_CSS = """
    ConfirmBox {
        dock: bottom;
        width: 100%;
        height: auto;
        border: heavy $error;
        padding: 1 2;
        background: $surface;
    }
    """

    def show_target(self, target: Process) -> None:
        text = Text("Are you sure you want to kill?\n", style="bold")
        text.append(f"PID: {target.pid}\n")
        if target.name:
            text.append(f"Process: {target.name}\n")
        text.append("[y] Yes  [n] No", style="dim")
        self.update(text)


class StatusLine(Static):
    """Transient status messages, otherwise shortcuts and active filters."""

    DEFAULT_CSS = """
    StatusLine {
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    message: str = ""

    def show(self, text: Text) -> None:
        """Display text and remember its plain form."""
        self.message = text.plain
        self.update(text)


class PortmanApp(App):
    """Main portman application."""

    TITLE = "portman"
    SUB_TITLE = "Port Usage Analyzer"

    CSS = """
    Screen {
        layout: vertical;
    }

    #port-table {
        height: 1fr;
        border: solid $primary;
    }
    """

    # Routed to the session ahead of the table's own bindings
    BINDINGS = [
        Binding("enter", "route('enter')", "Select", show=False, priority=True),
        Binding("escape", "route('escape')", "Back", show=False, priority=True),
        Binding("left", "route('left')", "Scroll left", show=False, priority=True),
        Binding("right", "route('right')", "Scroll right", show=False, priority=True),
    ]

    def __init__(
        self,
        monitor: PortMonitor | None = None,
        config: AppConfig | None = None,
        options: ReadOptions | None = None,
    ) -> None:
        """Initialize the PortmanApp."""
        super().__init__()
        self._config = config or AppConfig()
        self._options = options or ReadOptions()
        self._monitor = monitor or PortMonitor(
            poll_interval=self._config.poll_interval,
            kill_timeout=self._config.kill_timeout,
            reap_wait=self._config.reap_wait,
        )
        self._session = Session(self._monitor, status_duration=self._config.status_duration)
        self._visible: list[Process] = []
        self._widths: list[int] = []
        self._rendered_rows: list[tuple[str, ...]] = []

    @property
    def session(self) -> Session:
        """The interactive session driving this app."""
        return self._session

    @property
    def visible(self) -> list[Process]:
        """Rows currently shown in the table."""
        return list(self._visible)

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SearchBar(id="search-bar")
        yield DataTable(id="port-table")
        yield StatusLine(id="status-line")
        yield ConfirmBox(id="confirm-box")
        yield Footer()

    def on_mount(self) -> None:
        """Start the port monitor when the app is mounted."""
        table = self.query_one("#port-table", DataTable)
        table.cursor_type = "row"
        table.focus()
        self._monitor.start()
        self._refresh_view()
        # Redraw periodically so new snapshots and expiring messages show up
        self.set_interval(self._config.tick_interval, self._refresh_view)

    def on_unmount(self) -> None:
        """Stop the port monitor when the app is unmounted."""
        self._monitor.stop()

    def selected_process(self) -> Process | None:
        """The process under the table cursor, if any."""
        table = self.query_one("#port-table", DataTable)
        row = table.cursor_row
        if 0 <= row < len(self._visible):
            return self._visible[row]
        return None

    def on_key(self, event: events.Key) -> None:
        """Forward key presses to the session."""
        if self._session.mode is Mode.NORMAL and event.key == "q":
            event.stop()
            self.action_quit()
            return
        character = event.character if event.is_printable else None
        if self._session.handle_key(event.key, character, self.selected_process()):
            event.stop()
            event.prevent_default()
            self._refresh_view()

    def action_route(self, key: str) -> None:
        """Send a priority-bound key to the session."""
        self._session.handle_key(key, None, self.selected_process())
        self._refresh_view()

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()

    def _refresh_view(self) -> None:
        """Re-read the snapshot, re-apply filters and redraw every widget."""
        processes = self._monitor.processes(self._options)
        self._render_table(self._session.visible(processes))
        self._render_search()
        self._render_status()
        self._render_confirm()

    def _column_widths(self, table: DataTable) -> list[int]:
        padding = 2 * table.cell_padding * len(COLUMNS)
        # Two cells for the table border
        available = max(0, self.size.width - padding - 2)
        return negotiate_widths(COLUMNS, available, self._config.surplus_ratio)

    def _render_table(self, visible: list[Process]) -> None:
        table = self.query_one("#port-table", DataTable)
        widths = self._column_widths(table)

        limit = 0
        for i in SCROLLABLE:
            limit = max(limit, max_scroll([p.cells()[i] for p in visible], widths[i]))
        self._session.set_scroll_limit(limit)
        offset = self._session.scroll_offset

        rows = [
            tuple(
                scroll_text(cell, offset, widths[i]) if i in SCROLLABLE else cell
                for i, cell in enumerate(proc.cells())
            )
            for proc in visible
        ]
        selected = self.selected_process()
        cursor_row = table.cursor_row
        self._visible = visible
        if widths == self._widths and rows == self._rendered_rows:
            return

        if widths != self._widths:
            table.clear(columns=True)
            for col, width in zip(COLUMNS, widths):
                table.add_column(Text(col.title), width=width, key=col.key)
            self._widths = widths
        else:
            table.clear()

        for i, cells in enumerate(rows):
            table.add_row(*(Text(cell) for cell in cells), key=str(i))
        self._rendered_rows = rows

        if rows:
            # Keep the cursor on the same socket if it is still listed
            if selected is not None:
                identities = [row_identity(p) for p in visible]
                if row_identity(selected) in identities:
                    cursor_row = identities.index(row_identity(selected))
            table.move_cursor(row=min(cursor_row, len(rows) - 1))

    def _render_search(self) -> None:
        bar = self.query_one("#search-bar", SearchBar)
        searching = self._session.mode is Mode.SEARCHING
        bar.display = searching or bool(self._session.query)
        cursor = self._session.search.cursor if searching else None
        bar.show_query(self._session.query, cursor)

    def _render_status(self) -> None:
        line = self.query_one("#status-line", StatusLine)
        message = self._session.status()
        if message is not None:
            style = "bold red" if message.kind is StatusKind.ERROR else "green"
            line.show(Text(message.text, style=style))
            return

        text = Text(SHORTCUTS, style="dim")
        labels = self._session.filters.labels()
        if labels:
            text.append(f"  |  Filter: {', '.join(labels)}")
        if self._session.query:
            text.append(f"  |  Search: {self._session.query}")
        error = self._monitor.last_error
        if error is not None:
            text.append(f"  |  stale: {error}", style="yellow")
        line.show(text)

    def _render_confirm(self) -> None:
        box = self.query_one("#confirm-box", ConfirmBox)
        target = self._session.confirm_target
        box.display = self._session.mode is Mode.CONFIRMING_KILL and target is not None
        if target is not None:
            box.show_target(target)
