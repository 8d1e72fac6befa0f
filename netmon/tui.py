import logging
import os

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import ContentSwitcher, DataTable, Footer, Header, Input, Log, Sparkline, Static

from rich.text import Text

from .datatype import ActiveTab, SortField
from .provider.abstract_provider import AbstractProvider
from .state import MonitorState
from .utils import format_bytes, format_rate, rate_bar, rate_color

FORMATTER = logging.Formatter("[%(asctime)s %(levelname)-5s] %(message)s", datefmt="%H:%M:%S")

LOGGER = logging.getLogger(__name__)

PROCESS_COLUMNS = [
    ("Process", SortField.NAME),
    ("PID", SortField.PID),
    ("Conn", SortField.CONNECTIONS),
    ("Down", SortField.BYTES_IN),
    ("Up", SortField.BYTES_OUT),
    ("Rate In", SortField.RATE_IN),
    ("Rate Out", SortField.RATE_OUT),
]
CONNECTION_COLUMNS = ["Process", "Protocol", "Local", "Remote", "State", "Down", "Up"]
TOP_PROCESSES = 10

HELP_TEXT = """\
[bold cyan] Network Monitor - Help [/]

[b]Tab / Shift-Tab[/]  Switch between tabs
[b]j / k / ↑ / ↓[/]    Navigate rows
[b]Enter[/]            Drill into process connections
[b]s[/]                Cycle sort field
[b]/[/]                Filter processes/connections
[b]Esc[/]              Clear filter / close help
[b]p[/]                Pause/resume data collection
[b]?[/]                Toggle this help
[b]q[/]                Quit
"""


def configure_logging(log_dir: str = "logs", level: int = logging.INFO) -> None:
    """Send all records to ``<log_dir>/netmon.log``; the terminal belongs to the UI."""
    log_dir = os.path.expanduser(log_dir)
    os.makedirs(log_dir, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    file_handler = logging.FileHandler(os.path.join(log_dir, "netmon.log"))
    file_handler.setFormatter(FORMATTER)
    root_logger.addHandler(file_handler)


class TuiLogHandler(logging.Handler):
    class NewLog(Message):
        """
        This is a message that is sent to the TUI logger.
        """

        def __init__(self, msg: str):
            super().__init__()
            self.msg = msg

    def __init__(self, tui_logger: Log):
        super().__init__()
        self.tui_logger = tui_logger

    def emit(self, record):
        msg = self.format(record)
        try:
            self.tui_logger.post_message(self.NewLog(msg))
        except Exception:
            self.handleError(record)


class StateTable(DataTable, can_focus=False):
    """A table that only displays the selection held by MonitorState."""


class FilterScreen(ModalScreen[str | None]):
    """Prompt for the filter text. Dismisses with None when cancelled."""

    BINDINGS = [Binding("escape", "cancel", "Cancel")]

    def __init__(self, initial: str = ""):
        super().__init__()
        self.initial = initial

    def compose(self) -> ComposeResult:
        with Vertical(id="filter-dialog"):
            yield Static("Filter:")
            yield Input(value=self.initial, placeholder="name, pid, path, address or protocol")

    @on(Input.Submitted)
    def submit(self, event: Input.Submitted) -> None:
        self.dismiss(event.value)

    def action_cancel(self) -> None:
        self.dismiss(None)


class HelpScreen(ModalScreen[None]):
    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("question_mark", "close", "Close"),
        Binding("q", "close", "Close"),
    ]

    def compose(self) -> ComposeResult:
        yield Static(HELP_TEXT, id="help-dialog")

    def action_close(self) -> None:
        self.dismiss(None)


class NetworkMonitor(App):
    TITLE = "Network Monitor"

    CSS = """
    #stats {
        height: 1;
        background: $boost;
    }
    #bandwidth {
        height: 4;
        border: round $primary-darken-2;
    }
    #log-widget {
        height: 15%;
    }
    FilterScreen, HelpScreen {
        align: center middle;
    }
    #filter-dialog {
        width: 60%;
        height: auto;
        border: round $accent;
        padding: 0 1;
    }
    #help-dialog {
        width: 60%;
        height: auto;
        border: round cyan;
        padding: 1 2;
    }
    """

    BINDINGS = [
        Binding("tab", "next_tab", "Next Tab", priority=True),
        Binding("shift+tab", "prev_tab", "Prev Tab", priority=True, show=False),
        Binding("j,down", "nav_down", "Down", show=False),
        Binding("k,up", "nav_up", "Up", show=False),
        Binding("enter", "drill_down", "Drill"),
        Binding("s", "cycle_sort", "Sort"),
        Binding("slash", "filter", "Filter"),
        Binding("escape", "cancel_filter", "Clear Filter", show=False),
        Binding("p", "toggle_pause", "Pause"),
        Binding("question_mark", "help", "Help"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, provider: AbstractProvider, state: MonitorState):
        super().__init__()
        self.provider = provider
        self.state = state
        self.updating = False
        self.logger = Log(id="log-widget", max_lines=50)
        self.log_handler: TuiLogHandler | None = None

    @on(TuiLogHandler.NewLog)
    def handle_new_log(self, message: TuiLogHandler.NewLog) -> None:
        """
        These messages are bubbled up from the TUILogHandler.
        """
        self.logger.write_line(message.msg)

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(id="stats")
        with ContentSwitcher(initial=ActiveTab.PROCESSES.value):
            yield StateTable(id=ActiveTab.PROCESSES.value, cursor_type="row", zebra_stripes=True)
            yield StateTable(id=ActiveTab.CONNECTIONS.value, cursor_type="row", zebra_stripes=True)
            yield Static(id=ActiveTab.OVERVIEW.value)
        yield Sparkline([0.0], summary_function=max, id="bandwidth")
        yield self.logger
        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.provider.name

        self.log_handler = TuiLogHandler(self.logger)
        self.log_handler.setLevel(logging.DEBUG)
        self.log_handler.setFormatter(FORMATTER)
        logging.getLogger().addHandler(self.log_handler)
        self.post_message(TuiLogHandler.NewLog("[Log Area]"))

        self.render_view()
        self.refresh_data()
        self.set_interval(self.state.interval_secs, self.refresh_data)

    @work(group="update")
    async def refresh_data(self) -> None:
        # one nettop run at a time; a slow run simply absorbs the next tick
        if self.updating:
            return
        self.updating = True
        try:
            if await self.state.update_data(self.provider):
                self.render_view()
        finally:
            self.updating = False

    async def on_unmount(self) -> None:
        """Clean up resources when the app is closed."""
        if self.log_handler is not None:
            logging.getLogger().removeHandler(self.log_handler)
            self.log_handler = None
        self.state.resolver.close()
        await self.provider.cleanup()

    # -- rendering --------------------------------------------------------

    def render_view(self) -> None:
        state = self.state
        self.render_stats()
        self.query_one(ContentSwitcher).current = state.active_tab.value
        if state.active_tab == ActiveTab.PROCESSES:
            self.render_processes()
        elif state.active_tab == ActiveTab.CONNECTIONS:
            self.render_connections()
        else:
            self.render_overview()
        self.query_one(Sparkline).data = list(state.bandwidth_history) or [0.0]

    def render_stats(self) -> None:
        state = self.state
        snapshot = state.snapshot
        parts = [
            (f" {state.active_tab.title} ", "bold reverse"),
            (f"  ▼ {format_rate(snapshot.total_rate_in)}", "blue"),
            (f"  ▲ {format_rate(snapshot.total_rate_out)}", "magenta"),
            f"  │ {snapshot.total_connections} conn",
            f"  │ sort: {state.sort_field.label}",
        ]
        if state.filter_text:
            parts.append((f"  │ filter: {state.filter_text}", "yellow"))
        if state.paused:
            parts.append(("  [PAUSED]", "bold red"))
        self.query_one("#stats", Static).update(Text.assemble(*parts))

    def render_processes(self) -> None:
        state = self.state
        table = self.query_one(f"#{ActiveTab.PROCESSES.value}", DataTable)
        table.clear(columns=True)
        table.add_columns(
            *(f"{label} ▼" if field == state.sort_field else label for label, field in PROCESS_COLUMNS)
        )

        max_rate = max((max(p.rate_in, p.rate_out) for p in state.snapshot.processes), default=0.0)
        for p in state.filtered_processes():
            bar = rate_bar(p.rate_in + p.rate_out, max_rate * 2)
            table.add_row(
                p.name,
                str(p.pid),
                str(p.connection_count),
                format_bytes(p.bytes_in),
                format_bytes(p.bytes_out),
                Text(format_rate(p.rate_in), style=rate_color(p.rate_in)),
                Text(f"{format_rate(p.rate_out)} {bar}", style=rate_color(max(p.rate_in, p.rate_out))),
            )
        if table.row_count:
            table.move_cursor(row=state.process_index)

    def render_connections(self) -> None:
        state = self.state
        table = self.query_one(f"#{ActiveTab.CONNECTIONS.value}", DataTable)
        table.clear(columns=True)
        table.add_columns(*CONNECTION_COLUMNS)

        for p, conn in state.filtered_connections():
            table.add_row(
                p.name,
                str(conn.protocol),
                conn.local_display(),
                conn.remote_display(),
                conn.state,
                format_bytes(conn.bytes_in),
                format_bytes(conn.bytes_out),
            )
        if table.row_count:
            table.move_cursor(row=state.connection_index)

    def render_overview(self) -> None:
        snapshot = self.state.snapshot
        lines = [
            Text.assemble(
                ("Total Down: ", "bold cyan"),
                (format_bytes(snapshot.total_bytes_in), "blue"),
                "  ",
                ("Total Up: ", "bold cyan"),
                (format_bytes(snapshot.total_bytes_out), "magenta"),
            ),
            Text.assemble(
                ("Rate In: ", "bold cyan"),
                (format_rate(snapshot.total_rate_in), rate_color(snapshot.total_rate_in)),
                "  ",
                ("Rate Out: ", "bold cyan"),
                (format_rate(snapshot.total_rate_out), rate_color(snapshot.total_rate_out)),
                "  ",
                ("Connections: ", "bold cyan"),
                str(snapshot.total_connections),
            ),
            Text.assemble(("Processes: ", "bold cyan"), str(len(snapshot.processes))),
            Text(""),
            Text("Top Processes", style="bold cyan"),
        ]
        for p in snapshot.processes[:TOP_PROCESSES]:
            lines.append(
                Text.assemble(
                    (f"{p.name:<20} ", "white"),
                    (f"▼{format_rate(p.rate_in)} ", rate_color(p.rate_in)),
                    (f"▲{format_rate(p.rate_out)}", rate_color(p.rate_out)),
                )
            )
        self.query_one(f"#{ActiveTab.OVERVIEW.value}", Static).update(Text("\n").join(lines))

    # -- actions ----------------------------------------------------------

    def action_next_tab(self) -> None:
        self.state.next_tab()
        self.render_view()

    def action_prev_tab(self) -> None:
        self.state.prev_tab()
        self.render_view()

    def action_nav_down(self) -> None:
        self.state.nav_down()
        self.render_view()

    def action_nav_up(self) -> None:
        self.state.nav_up()
        self.render_view()

    def action_drill_down(self) -> None:
        self.state.drill_down()
        self.render_view()

    def action_cycle_sort(self) -> None:
        # the new order is applied by the next update
        self.state.cycle_sort()
        self.render_view()

    def action_filter(self) -> None:
        self.state.enter_filter()
        self.push_screen(FilterScreen(self.state.filter_input), self.on_filter_closed)

    def on_filter_closed(self, value: str | None) -> None:
        if value is None:
            self.state.cancel_filter()
        else:
            self.state.filter_input = value
            self.state.apply_filter()
        self.render_view()

    def action_cancel_filter(self) -> None:
        self.state.cancel_filter()
        self.render_view()

    def action_toggle_pause(self) -> None:
        self.state.toggle_pause()
        self.render_view()
        self.refresh_data()

    def action_help(self) -> None:
        self.state.toggle_help()
        self.push_screen(HelpScreen(), self.on_help_closed)

    def on_help_closed(self, _: None) -> None:
        self.state.show_help = False
