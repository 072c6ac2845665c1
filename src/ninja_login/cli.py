"""ninja-login: Typer CLI for operating the login middleware."""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError

from ninja_login.config import LoginConfig
from ninja_login.keys import encode_key, new_key

app = typer.Typer(name="ninja-login", help="Key management and config checks for ninja-login.")


@app.command()
def keygen(
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of keys to generate."),
) -> None:
    """Print fresh random keys as base64url text, one per line.

    A deployment needs two: one for ``state_key`` and one for ``cookie_key``.

    Examples:

        ninja-login keygen --count 2
    """
    for _ in range(count):
        typer.echo(encode_key(new_key()))


@app.command("check-config")
def check_config(
    path: Path = typer.Argument(Path(".ninjastack/login.json"), help="Path to the login config file."),
) -> None:
    """Validate a login config file and check that both keys resolve.

    Key material is never printed.
    """
    if not path.is_file():
        typer.echo(f"Config file not found: {path}", err=True)
        raise typer.Exit(code=1)

    try:
        config = LoginConfig.from_file(path)
    except (ValidationError, ValueError) as exc:
        typer.echo(f"Invalid config: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    failed = False
    for field, resolve in (("state_key", config.state_key_bytes), ("cookie_key", config.cookie_key_bytes)):
        try:
            resolve()
        except ValueError as exc:
            typer.echo(f"{field}: invalid ({exc})", err=True)
            failed = True
        else:
            typer.echo(f"{field}: ok")
    if failed:
        raise typer.Exit(code=1)

    typer.echo(f"Config OK: service={config.service} domain={config.domain}")
