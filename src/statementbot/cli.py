"""statementbot: maintain the encrypted credential vault used to log into bank sites.

Commands
--------
  init      Create a new credential vault
  add       Store credentials for a domain
  get       Show the credentials stored for a domain
  info      Show vault location and metadata
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

from . import __version__
from .ask import RichUserAsker, UserAsker, load_password_from_file
from .config import get_vault_path
from .errors import BadVaultError, DecryptionError, NoInputError
from .log import setup_logging
from .models import AskOptions
from .store import CredentialStore

# ---------------------------------------------------------------------------
# App & consoles
# ---------------------------------------------------------------------------

_THEME = Theme(
    {
        "success": "bold green",
        "warning": "bold yellow",
        "danger": "bold red",
        "muted": "dim",
        "label": "cyan",
    }
)

console = Console(theme=_THEME)
err = Console(stderr=True, theme=_THEME)

app = typer.Typer(
    name="statementbot",
    help="[bold cyan]statementbot[/bold cyan]: encrypted credential vault for statement downloads.",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
)

VaultOption = Annotated[
    Optional[Path],
    typer.Option("--vault", "-v", help="Vault file path.", show_default=False),
]
PasswordFileOption = Annotated[
    Optional[Path],
    typer.Option(
        "--password-file",
        "-p",
        help="Use the SHA-512 digest of this file as the vault password.",
        show_default=False,
    ),
]

_SECRET_WORDS = ("password", "secret", "token", "pin")

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _asker() -> UserAsker:
    return RichUserAsker(console)


def _ask(prompt: str, *, title: str, sensitive: bool = False) -> str:
    try:
        return _asker().ask(AskOptions(prompt=prompt, title=title, sensitive=sensitive))
    except NoInputError as exc:
        err.print(f"[danger]{exc}[/danger]")
        raise typer.Exit(1) from exc


def _master_password(store: CredentialStore, password_file: Optional[Path]) -> str:
    if password_file is not None:
        return load_password_from_file(password_file)
    if store.exists():
        prompt = f'Enter the password for the vault "{store.path}":'
    else:
        prompt = f'What password would you like to use for the vault "{store.path}":'
    return _ask(prompt, title="Vault Password", sensitive=True)


def _require_vault(vault: Optional[Path]) -> CredentialStore:
    store = CredentialStore(vault or get_vault_path())
    if not store.exists():
        err.print(
            "[danger]No vault found.[/danger] Run [bold]statementbot init[/bold] first.",
        )
        raise typer.Exit(1)
    return store


def _open(store: CredentialStore, password: str) -> None:
    try:
        store.open(password)
    except BadVaultError as exc:
        err.print(f"[danger]{exc}[/danger]")
        raise typer.Exit(1) from exc


def _masked(key: str, value: Any, show: bool) -> str:
    if not show and any(word in key.lower() for word in _SECRET_WORDS):
        return "••••••••••••"
    return str(value)


def _render_entries(domain: str, entries: list[Any], *, show: bool) -> None:
    table = Table(
        title=f"{domain} ({len(entries)} entr{'ies' if len(entries) != 1 else 'y'})",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold",
    )
    table.add_column("#", style="muted", justify="right", no_wrap=True)
    table.add_column("Field", style="label")
    table.add_column("Value", style="white")

    for i, entry in enumerate(entries, 1):
        if isinstance(entry, dict):
            for key, value in entry.items():
                table.add_row(str(i), str(key), _masked(str(key), value, show))
        else:
            table.add_row(str(i), "", _masked("", entry, show))
    console.print(table)


@app.callback()
def _main() -> None:
    setup_logging()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def init(vault: VaultOption = None, password_file: PasswordFileOption = None) -> None:
    """Create a new, empty credential vault."""
    store = CredentialStore(vault or get_vault_path())
    if store.exists():
        err.print(f"[danger]A vault already exists at[/danger] [bold]{store.path}[/bold]")
        raise typer.Exit(1)

    console.print(
        Panel(
            "[bold]Welcome to statementbot[/bold]\n"
            "[muted]Choose a strong vault password. It cannot be recovered if lost.[/muted]",
            title="[bold cyan]Vault Initialisation[/bold cyan]",
            border_style="cyan",
            expand=False,
        )
    )

    password = _master_password(store, password_file)
    if password_file is None:
        confirm = _ask("Confirm password:", title="Vault Password", sensitive=True)
        if password != confirm:
            err.print("[danger]Passwords do not match.[/danger]")
            raise typer.Exit(1)

    with store:
        _open(store, password)
    console.print(f"\n[success]Vault created →[/success] [bold]{store.path}[/bold]")


@app.command()
def add(
    domain: Annotated[str, typer.Argument(help="Domain the credentials are for, e.g. bank.example.com.")],
    username: Annotated[Optional[str], typer.Option("--username", "-u", help="Login name.")] = None,
    vault: VaultOption = None,
    password_file: PasswordFileOption = None,
) -> None:
    """Store a username and password for DOMAIN (earlier entries are kept)."""
    store = _require_vault(vault)
    master = _master_password(store, password_file)

    with store:
        _open(store, master)
        try:
            verified = store.verify_password()
        except DecryptionError as exc:
            err.print("[danger]Wrong vault password; nothing was saved.[/danger]")
            raise typer.Exit(1) from exc
        if not verified and password_file is None:
            # Empty vault: the first entry fixes which key is in use
            confirm = _ask("Confirm the vault password:", title="Vault Password", sensitive=True)
            if confirm != master:
                err.print("[danger]Passwords do not match.[/danger]")
                raise typer.Exit(1)

        if username is None:
            username = _ask(f"Username for {domain}:", title=f"{domain} username")
        password = _ask(f"Password for {domain}:", title=f"{domain} password", sensitive=True)
        store.insert_credentials_for_domain(domain, {"username": username, "password": password})

    console.print(f"\n[success]Credentials for '[bold]{domain}[/bold]' saved.[/success]")


@app.command()
def get(
    domain: Annotated[str, typer.Argument(help="Domain to look up.")],
    show: Annotated[bool, typer.Option("--show", "-s", help="Display secrets in plain text.")] = False,
    vault: VaultOption = None,
    password_file: PasswordFileOption = None,
) -> None:
    """Show every entry stored for DOMAIN, oldest first."""
    store = _require_vault(vault)
    master = _master_password(store, password_file)

    with store:
        _open(store, master)
        try:
            entries = store.get_credentials_for_domain(domain)
        except DecryptionError as exc:
            err.print(f"[danger]{exc}[/danger]")
            raise typer.Exit(1) from exc

    if not entries:
        console.print(f"[muted]No credentials stored for '[bold]{domain}[/bold]'.[/muted]")
        return
    _render_entries(domain, entries, show=show)


@app.command()
def info(vault: VaultOption = None) -> None:
    """Show vault metadata and location."""
    path = vault or get_vault_path()

    table = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Version", __version__)
    table.add_row("Vault path", str(path))
    table.add_row("Vault exists", "[green]yes[/green]" if path.exists() else "[red]no[/red]")
    if path.exists():
        table.add_row("Vault size", f"{path.stat().st_size / 1024:.1f} KB")

    console.print(Panel(table, title="[bold cyan]statementbot info[/bold cyan]", border_style="cyan", expand=False))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app()


if __name__ == "__main__":
    main()
