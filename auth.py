"""Identity provider setup check - uses the service-account key file."""

from rich.console import Console

from core.config import Config
from core.exceptions import StartupError
from services.verifier import discover, load_service_key

console = Console()


def check_auth(config: Config) -> bool:
    """Check that the key file loads and the provider answers discovery."""
    ok = True

    if not config.auth.key_path:
        console.print("[yellow]Key file not configured[/yellow] (use --key)")
        ok = False
    else:
        try:
            key = load_service_key(config.auth.key_path)
            console.print(f"[green]Key file OK[/green] (client {key.client_id}, key {key.key_id})")
        except StartupError as e:
            console.print(f"[red]Key file invalid:[/red] {e}")
            ok = False

    try:
        metadata = discover(config.auth.domain, timeout=config.auth.timeout)
        console.print(f"[green]Identity provider OK[/green] (issuer {metadata.issuer})")
        console.print(f"[dim]Introspection endpoint:[/dim] {metadata.introspection_endpoint}")
    except StartupError as e:
        console.print(f"[red]Identity provider unavailable:[/red] {e}")
        ok = False

    console.print(f"[dim]Required role:[/dim] {config.auth.required_role}")
    return ok
