"""Factstream command line interface."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import typer

app = typer.Typer(help="Factstream broadcast hub CLI", no_args_is_help=True)

DEFAULT_URL = "http://127.0.0.1:8000"


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, help="Bind host (defaults to config)"),
    port: int | None = typer.Option(None, help="Bind port (defaults to config)"),
    config: Path = typer.Option(Path("configs/default.yaml"), help="App config yaml"),
) -> None:
    """Start the hub server."""
    from factstream.server.app import serve as run_server

    run_server(host=host, port=port, config_path=config)


@app.command("publish")
def publish(
    payload: str = typer.Argument(..., help="Fact to publish (JSON unless --text)"),
    url: str = typer.Option(DEFAULT_URL, help="Hub server base URL"),
    text: bool = typer.Option(False, "--text", help="Send the payload as a plain string"),
) -> None:
    """Publish one fact to a running hub."""
    from factstream.events.emitter import FactClient

    if text:
        value = payload
    else:
        try:
            value = json.loads(payload)
        except ValueError as exc:
            typer.echo(f"Payload is not valid JSON (use --text for plain strings): {exc}", err=True)
            raise typer.Exit(code=2) from exc

    try:
        with FactClient(url) as client:
            envelope = client.submit(value)
    except httpx.HTTPError as exc:
        typer.echo(f"Publish failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Published sequence {envelope['sequence']}")


@app.command("status")
def status(url: str = typer.Option(DEFAULT_URL, help="Hub server base URL")) -> None:
    """Print hub status as JSON."""
    from factstream.events.emitter import FactClient

    try:
        with FactClient(url) as client:
            payload = client.status()
    except httpx.HTTPError as exc:
        typer.echo(f"Status request failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(payload, indent=2))


@app.command("listen")
def listen(
    url: str = typer.Option(DEFAULT_URL, help="Hub server base URL"),
    limit: int | None = typer.Option(None, help="Stop after this many messages"),
    last_event_id: int | None = typer.Option(None, help="Only replay facts after this sequence"),
) -> None:
    """Follow the event stream and print each message's data."""
    from factstream.events.emitter import FactClient

    received = 0
    try:
        with FactClient(url) as client:
            for message in client.listen(last_event_id=last_event_id):
                typer.echo(json.dumps(message.get("data"), ensure_ascii=False))
                received += 1
                if limit is not None and received >= limit:
                    break
    except httpx.HTTPError as exc:
        typer.echo(f"Stream failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


if __name__ == "__main__":
    app()
