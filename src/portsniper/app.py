"""portsniper - Main Textual application."""

import argparse
import json
import sys
from dataclasses import replace
from queue import Empty, Queue

from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container, Grid
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Input, Label, Static

from portsniper.config import Settings, configure_logging
from portsniper.errors import ListingError
from portsniper.models import GlobalStats, KillResult, PortInfo
from portsniper.monitor import MonitorSnapshot, SystemMonitor
from portsniper.ports import filter_ports
from portsniper.service import PortSniper

# Seconds of CPU sampling for a single --stats reading
ONE_SHOT_SAMPLE = 0.5


def format_gb(size: int) -> str:
    """Format bytes as gigabytes with one decimal."""
    return f"{size / 1024**3:.1f}"


def load_color(percent: float) -> str:
    """Colour used for a CPU load percentage."""
    if percent < 50:
        return "green"
    if percent < 80:
        return "yellow"
    return "red"


class TelemetryBar(Static):
    """Header widget showing CPU load and memory usage."""

    DEFAULT_CSS = """
    TelemetryBar {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__("Loading telemetry...", *args, **kwargs)
        self._stats: GlobalStats | None = None

    @property
    def stats(self) -> GlobalStats | None:
        return self._stats

    def update_stats(self, stats: GlobalStats) -> None:
        """Update the display from a stats reading."""
        self._stats = stats
        self.update(self.render_stats(stats))

    @staticmethod
    def render_stats(stats: GlobalStats) -> str:
        color = load_color(stats.cpu_usage)
        bar_len = min(int(stats.memory_percent / 5), 20)
        bar = "[cyan]█[/cyan]" * bar_len + "[dim]░[/dim]" * (20 - bar_len)
        # Escaped bracket opens the bar container
        return (
            f"CPU Load [{color}]{stats.cpu_usage:5.1f}%[/{color}]    "
            f"RAM \\[{bar}] {format_gb(stats.memory_used)} / {format_gb(stats.memory_total)} GB"
        )


class PortTable(Container):
    """Container for the listening port table."""

    DEFAULT_CSS = """
    PortTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._ports: list[PortInfo] = []
        self._current_ports: set[int] = set()
        self._search = ""

    @property
    def search_text(self) -> str:
        return self._search

    def compose(self) -> ComposeResult:
        """Compose the port table."""
        yield DataTable(id="port-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#port-table", DataTable)
        table.cursor_type = "row"

        table.add_column("Port", key="port", width=7)
        table.add_column("Protocol", key="protocol", width=9)
        table.add_column("Process", key="name")
        table.add_column("PID", key="pid", width=9)

    def set_query(self, query: str) -> None:
        """Filter the rows by port, process name or pid."""
        self._search = query
        self._render_rows()

    def update_ports(self, ports: list[PortInfo]) -> None:
        """
        Update the table with a new port listing.

        Existing rows are updated with update_cell instead of re-rendering
        the whole table, so the cursor stays on the same port.
        """
        self._ports = list(ports)
        self._render_rows()

    def get_port(self, port: int) -> PortInfo | None:
        for info in self._ports:
            if info.port == port:
                return info
        return None

    def selected_port(self) -> PortInfo | None:
        """Return the PortInfo under the cursor, if any."""
        table = self.query_one("#port-table", DataTable)
        if table.row_count == 0:
            return None
        row_key, _ = table.coordinate_to_cell_key(table.cursor_coordinate)
        if row_key.value is None:
            return None
        return self.get_port(int(row_key.value))

    def _render_rows(self) -> None:
        table = self.query_one("#port-table", DataTable)
        visible = filter_ports(self._ports, self._search)
        new_ports = {info.port for info in visible}

        for port in self._current_ports - new_ports:
            table.remove_row(str(port))

        for info in visible:
            row_key = str(info.port)
            if info.port in self._current_ports:
                table.update_cell(row_key, "protocol", info.protocol)
                table.update_cell(row_key, "name", info.name)
                table.update_cell(row_key, "pid", info.pid)
            else:
                table.add_row(info.port, info.protocol, info.name, info.pid, key=row_key)

        self._current_ports = new_ports
        if visible:
            table.sort("port")


class ConfirmKillScreen(ModalScreen[bool]):
    """Asks before terminating the process behind a port."""

    DEFAULT_CSS = """
    ConfirmKillScreen {
        align: center middle;
    }

    #dialog {
        grid-size: 2;
        grid-gutter: 1 2;
        padding: 1 2;
        width: 60;
        height: auto;
        border: thick $error;
        background: $surface;
    }

    #question {
        column-span: 2;
        width: 1fr;
        content-align: center middle;
    }
    """

    BINDINGS = [
        ("y", "confirm", "Kill"),
        ("n,escape", "cancel", "Cancel"),
    ]

    def __init__(self, target: PortInfo) -> None:
        super().__init__()
        self.target = target

    def compose(self) -> ComposeResult:
        yield Grid(
            Label(
                f"Kill process {self.target.name} (PID: {self.target.pid}) on port {self.target.port}?",
                id="question",
            ),
            Button("Kill", variant="error", id="kill"),
            Button("Cancel", variant="primary", id="cancel"),
            id="dialog",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "kill")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)


class PortSniperApp(App):
    """Main portsniper application."""

    TITLE = "portsniper"
    SUB_TITLE = "Monitor and terminate active ports"

    CSS = """
    Screen {
        layout: vertical;
    }

    #telemetry {
        dock: top;
    }

    #search {
        margin: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("k", "kill", "Kill"),
        ("slash", "search", "Search"),
    ]

    def __init__(self, settings: Settings | None = None, service: PortSniper | None = None) -> None:
        """Initialize the PortSniperApp."""
        super().__init__()
        self._settings = settings or Settings()
        self._service = service or PortSniper(self._settings)
        self._update_queue: Queue[MonitorSnapshot] = Queue()
        self._monitor = SystemMonitor(
            self._service,
            self._update_queue,
            poll_rate=self._settings.poll_rate,
            port_interval=self._settings.port_interval,
        )
        self._last_error: str | None = None

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield TelemetryBar(id="telemetry")
        yield Input(placeholder="Search by Port, PID, or Name...", id="search")
        yield PortTable()
        yield Footer()

    def on_mount(self) -> None:
        """Start the monitor when the app is mounted."""
        self._monitor.start()
        self.set_interval(0.5, self._check_for_updates)
        self.query_one("#port-table", DataTable).focus()

    def _check_for_updates(self) -> None:
        """Drain the queue, applying snapshots in arrival order."""
        while True:
            try:
                snapshot = self._update_queue.get_nowait()
            except Empty:
                break
            self.apply_snapshot(snapshot)

    def apply_snapshot(self, snapshot: MonitorSnapshot) -> None:
        """Update the UI with a monitor snapshot."""
        self.query_one("#telemetry", TelemetryBar).update_stats(snapshot.stats)
        # Stats-only snapshots carry a port list that may already be stale
        if snapshot.ports_refreshed or snapshot.error:
            self.query_one(PortTable).update_ports(snapshot.ports)

        # Only report a listing failure once until it recovers
        if snapshot.error and snapshot.error != self._last_error:
            self.notify(snapshot.error, title="Port listing failed", severity="error")
        if snapshot.error or snapshot.ports_refreshed:
            self._last_error = snapshot.error

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search":
            self.query_one(PortTable).set_query(event.value)

    def action_refresh(self) -> None:
        """Request an immediate port listing."""
        self._monitor.request_ports()

    def action_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_kill(self) -> None:
        """Ask to terminate the process on the selected port."""
        target = self.query_one(PortTable).selected_port()
        if target is None:
            self.notify("No port selected", severity="warning")
            return

        def on_confirm(confirmed: bool | None) -> None:
            if confirmed:
                self.kill_target(target)

        self.push_screen(ConfirmKillScreen(target), on_confirm)

    @work(thread=True, group="kill")
    def kill_target(self, target: PortInfo) -> KillResult:
        """Terminate the owner of target off the event loop."""
        result = self._service.kill_process(target.pid)
        self.call_from_thread(self.report_kill, target, result)
        return result

    def report_kill(self, target: PortInfo, result: KillResult) -> None:
        """Notify the outcome of a kill and refresh the ports on success."""
        if result.ok:
            self.notify(f"Killed {target.name} (PID: {target.pid})")
            self._monitor.request_ports()
        else:
            self.notify(result.message or "Failed to kill process", title="Kill failed", severity="error")

    def action_quit(self) -> None:
        """Handle quit action with graceful cleanup."""
        self._monitor.stop()
        self.exit()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portsniper",
        description="Show which processes listen on which TCP ports and terminate them.",
    )
    action = parser.add_mutually_exclusive_group()
    action.add_argument("--list", action="store_true", help="print listening ports as JSON and exit")
    action.add_argument("--stats", action="store_true", help="print CPU and memory usage as JSON and exit")
    action.add_argument("--kill", type=int, metavar="PID", help="forcefully terminate PID and exit")
    parser.add_argument("--poll-rate", type=float, help="seconds between stats reads")
    parser.add_argument("--port-interval", type=float, help="seconds between port listings")
    parser.add_argument("--command-timeout", type=float, help="seconds allowed for lsof and kill")
    parser.add_argument("--log-level", help="logging level, e.g. DEBUG")
    parser.add_argument("--log-file", help="also write logs to this file")
    return parser


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    """Apply command line overrides on top of base settings."""
    overrides = {
        "poll_rate": args.poll_rate,
        "port_interval": args.port_interval,
        "command_timeout": args.command_timeout,
        "log_level": args.log_level.upper() if args.log_level else None,
        "log_file": args.log_file,
    }
    return replace(base, **{key: value for key, value in overrides.items() if value is not None})


def main(argv: list[str] | None = None) -> int:
    """Entry point for portsniper."""
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args, Settings.from_env())
    configure_logging(settings)

    if args.list or args.stats or args.kill is not None:
        service = PortSniper(settings)
        if args.kill is not None:
            result = service.kill_process(args.kill)
            if not result.ok:
                print(result.message, file=sys.stderr)
                return 1
            return 0
        if args.stats:
            print(json.dumps(service.get_global_stats(ONE_SHOT_SAMPLE).to_dict()))
            return 0
        try:
            ports = service.get_active_ports()
        except ListingError as exc:
            print(exc, file=sys.stderr)
            return 1
        print(json.dumps([info.to_dict() for info in ports], indent=2))
        return 0

    app = PortSniperApp(settings)
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
