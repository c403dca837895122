"""CLI for PassShare."""
from datetime import datetime, timezone
import json
import sys

import click

from passshare.client import ShareClient, parse_share_url
from passshare.domain import passwords
from passshare.errors import PassShareError
from passshare.settings import get_settings
from passshare.utils.time import format_time_remaining


@click.group()
def cli():
    """PassShare: one-time encrypted password sharing."""
    pass


@cli.command("generate")
@click.option("--length", default=16, show_default=True, type=click.IntRange(
    passwords.MIN_PASSWORD_LENGTH, passwords.MAX_PASSWORD_LENGTH))
@click.option("--uppercase/--no-uppercase", default=True, help="Include A-Z")
@click.option("--lowercase/--no-lowercase", default=True, help="Include a-z")
@click.option("--numbers/--no-numbers", default=True, help="Include 0-9")
@click.option("--symbols/--no-symbols", default=True, help="Include punctuation")
@click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text")
def generate(length: int, uppercase: bool, lowercase: bool, numbers: bool, symbols: bool, fmt: str):
    """Generate a random password."""
    policy = passwords.PasswordPolicy(
        length=length,
        include_uppercase=uppercase,
        include_lowercase=lowercase,
        include_numbers=numbers,
        include_symbols=symbols,
    )
    try:
        password = passwords.synthesize(policy)
    except PassShareError as e:
        raise click.UsageError(e.message)

    result = passwords.strength(password)
    if fmt == "json":
        click.echo(json.dumps({"password": password, "strength": result.model_dump()}, indent=2))
        return

    click.echo(password)
    click.echo(f"Strength: {result.label} ({result.score}/4)", err=True)


@cli.command("strength")
@click.argument("password")
def strength(password: str):
    """Score a password."""
    result = passwords.strength(password)
    click.echo(f"{result.label} ({result.score}/4)")
    for line in result.feedback:
        click.echo(f"  - {line}")


@cli.command("share")
@click.option("--server", default=None, help="Relay base URL (defaults to PUBLIC_BASE_URL)")
@click.option("--generate", "generate_password", is_flag=True, help="Share a freshly generated password")
def share(server: str, generate_password: bool):
    """Encrypt a secret locally and print a one-time link."""
    if generate_password:
        secret = passwords.synthesize(passwords.DEFAULT_PASSWORD_POLICY)
        click.echo(f"Generated: {secret}", err=True)
    elif not sys.stdin.isatty():
        secret = sys.stdin.read().rstrip("\n")
    else:
        secret = click.prompt("Secret", hide_input=True)

    base_url = server or get_settings().PUBLIC_BASE_URL
    ttl = get_settings().SECRET_TTL_SECONDS
    try:
        with ShareClient(base_url) as client:
            url = client.share(secret)
    except (PassShareError, ValueError) as e:
        raise click.ClickException(getattr(e, "message", str(e)))

    click.echo(url)
    click.echo(f"Link works once and expires in {format_time_remaining(ttl)}.", err=True)


@cli.command("retrieve")
@click.argument("url")
def retrieve(url: str):
    """Fetch and decrypt a one-time link. The link stops working afterwards."""
    try:
        base_url, _, _ = parse_share_url(url)
        with ShareClient(base_url) as client:
            secret = client.retrieve(url)
    except PassShareError as e:
        raise click.ClickException(e.message)

    age = int((datetime.now(timezone.utc) - secret.created_at).total_seconds())
    click.echo(secret.plaintext)
    click.echo(f"Shared {age}s ago; this link has now been destroyed.", err=True)


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.option("--workers", default=1, show_default=True, type=int)
def serve(host: str, port: int, workers: int):
    """Run the relay API."""
    import uvicorn

    settings = get_settings()
    if workers > 1 and not settings.REDIS_URL:
        raise click.UsageError("Multiple workers need a shared store: set REDIS_URL")

    uvicorn.run("passshare.main:app", host=host, port=port, workers=workers, proxy_headers=True)


if __name__ == "__main__":
    cli()
