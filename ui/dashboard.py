"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import redact_url, write_cli_log, write_request_log

console = Console()


class ProxiedRequest:
    """Info about a single proxied request."""

    def __init__(self, url: str, subject: str | None, timestamp: datetime):
        self.url = url[:80] + "..." if len(url) > 80 else url
        self.subject = subject or "-"
        self.timestamp = timestamp


class Dashboard:
    """Dashboard showing proxied requests, denials and errors.

    With ``live=False`` every event is printed as a single line instead,
    which suits containers and other non-interactive terminals.
    """

    def __init__(self, config: Config, *, live: bool = True):
        self.config = config
        self._use_live = live
        self._lock = Lock()
        self._recent: list[ProxiedRequest] = []
        self._max_recent = 8
        self._counts = {"proxied": 0, "denied": 0, "errors": 0}
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        if self._use_live:
            self._live = Live(
                self._build_layout(),
                console=console,
                refresh_per_second=4,
                screen=False,
            )
            self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_rewrite(self, path: str) -> None:
        """Log an apiKey query value moved into the Authorization header."""
        write_cli_log("DEBUG", "Rewrote apiKey query parameter to Authorization header", path=path)

    def log_denied(self, path: str, status: int, reason: str) -> None:
        """Log a request rejected by the authorization gate."""
        with self._lock:
            self._counts["denied"] += 1
            self._refresh()
        write_cli_log("DENIED", reason, path=path, status=status)
        write_request_log("denied", path=path, status=status, reason=reason)
        self._print(f"[yellow]denied[/yellow] {status} {path}: {reason}")

    def log_proxy(self, url: str, subject: str | None = None) -> None:
        """Log a request about to be forwarded."""
        safe_url = redact_url(url)
        with self._lock:
            self._counts["proxied"] += 1
            self._recent.insert(0, ProxiedRequest(safe_url, subject, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()
        write_cli_log("PROXY", safe_url, subject=subject)
        write_request_log("proxy", url=safe_url, subject=subject)
        self._print(f"[green]proxy[/green] {safe_url} [dim]({subject or '-'})[/dim]")

    def log_error(self, route: str, status: int, message: str) -> None:
        """Log an error."""
        with self._lock:
            self._counts["errors"] += 1
            truncated = message[:60] + "..." if len(message) > 60 else message
            self._errors.insert(0, f"{route} {status}: {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
        write_cli_log("ERROR", message[:200], route=route, status=status)
        write_request_log("error", route=route, status=status, message=message)
        self._print(f"[red]error[/red] {route} {status}: {message}")

    def _print(self, line: str) -> None:
        if not self._use_live:
            console.print(line)

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("Reddit Forward Proxy", style="bold cyan")
        stats.append("  |  ")
        stats.append(f"Proxied: {self._counts['proxied']}", style="green")
        stats.append("  |  ")
        stats.append(f"Denied: {self._counts['denied']}", style="yellow")
        stats.append("  |  ")
        stats.append(f"Errors: {self._counts['errors']}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build the recent requests table."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Subject", width=24)
            table.add_column("URL", ratio=1)

            for req in self._recent:
                table.add_row(
                    req.timestamp.strftime("%H:%M:%S"),
                    req.subject[:24],
                    req.url,
                )
            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[green]Proxied[/green]", border_style="green")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"GET http://localhost:{self.config.proxy.port}/api/proxy?url=<target>",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
