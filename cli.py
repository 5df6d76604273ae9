"""CLI entry point for reddit-forward-proxy."""

import argparse
import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from auth import check_auth
from core.config import CONFIG_FILE, Config, apply_overrides, load_config, unbounded_timeouts
from core.exceptions import ConfigurationError, StartupError
from services.verifier import IntrospectionVerifier
from ui.dashboard import Dashboard
from ui.log_utils import CLI_LOG_FILE, clear_logs, write_cli_log

console = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reddit-forward-proxy",
        description="Role-gated HTTP forwarding proxy.",
    )
    parser.add_argument(
        "--domain",
        help="your ZITADEL instance domain (in the form: <instance>.zitadel.cloud or <yourdomain>)",
    )
    parser.add_argument("--key", help="path to your key.json")
    parser.add_argument("--port", type=int, help="port to run the server on (default is 8089)")
    parser.add_argument("--plain", action="store_true", help="print events instead of the live dashboard")
    parser.add_argument("--check", action="store_true", help="check key file and identity provider")
    parser.add_argument("--config", action="store_true", help="show config and log locations")
    return parser


def resolve_config(args: argparse.Namespace) -> Config:
    """Config file values with command line flags layered on top."""
    try:
        return apply_overrides(
            load_config(),
            domain=args.domain,
            key_path=args.key,
            port=args.port,
        )
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.config:
        console.print(f"[bold]Config:[/bold] {CONFIG_FILE}")
        console.print(f"[bold]Log:[/bold] {CLI_LOG_FILE}")
        return

    try:
        config = resolve_config(args)
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    if args.check:
        sys.exit(0 if check_auth(config) else 1)

    try:
        verifier = IntrospectionVerifier.from_settings(
            config.auth.domain,
            config.auth.key_path,
            timeout=config.auth.timeout,
        )
    except StartupError as e:
        console.print(f"[red][ERROR][/red] identity provider could not initialize: {e}")
        sys.exit(1)

    for name in unbounded_timeouts(config):
        console.print(
            f"[yellow]Warning:[/yellow] {name} is not set; "
            "an unresponsive peer can hold a request open indefinitely"
        )

    clear_logs()
    dashboard = Dashboard(config, live=not args.plain)

    import uvicorn

    app = create_app(config, verifier, dashboard)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    console.print(
        f"server listening, press ctrl+c to stop [dim]http://localhost:{config.proxy.port}[/dim]"
    )
    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


if __name__ == "__main__":
    main()
