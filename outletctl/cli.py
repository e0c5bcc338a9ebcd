"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
import os
import sys

import typer

from outletctl.core.adapter import DEFAULT_GRACE_PERIOD_S
from outletctl.core.errors import OutletctlError
from outletctl.core.identifier import generate
from outletctl.core.service import OutletService

app = typer.Typer(help="Simulated smart outlet exposed as a HomeKit accessory")


def _build_service() -> OutletService:
    service = OutletService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.command("list")
def list_accessories() -> None:
    """List accessory definitions and their stable identifiers."""
    try:
        service = _build_service()
        accessories = service.list_accessories()
        if not accessories:
            typer.echo("No accessories defined")
            raise typer.Exit(code=1)

        for accessory in accessories:
            typer.echo(f"{accessory.id}: {accessory.name} ({accessory.category})")
            typer.echo(f"  identifier: {service.identifier_for(accessory)}")
            typer.echo(f"  username: {accessory.credentials.username} port: {accessory.transport.port}")
    except OutletctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("uuid")
def show_uuid(namespace: str, name: str) -> None:
    """Print the identifier derived from NAMESPACE and NAME."""
    try:
        typer.echo(str(generate(namespace, name)))
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("serve")
def serve(
    accessory: str | None = typer.Option(None, "--accessory", help="Accessory ID"),
    grace_period: float = typer.Option(
        DEFAULT_GRACE_PERIOD_S, "--grace-period", help="Seconds to wait for unpublish on shutdown"
    ),
    no_stdin: bool = typer.Option(False, "--no-stdin", help="Do not read diagnostic JSON from stdin"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Publish the outlet and serve it until SIGINT or SIGTERM."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(name)s] %(message)s",
        stream=sys.stderr,
    )
    try:
        service = _build_service()
        exit_code = asyncio.run(
            service.serve(
                accessory,
                grace_period_s=grace_period,
                diagnostics=None if no_stdin else sys.stdin,
                force_exit=os._exit,
            )
        )
    except OutletctlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None
    raise typer.Exit(code=exit_code)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
