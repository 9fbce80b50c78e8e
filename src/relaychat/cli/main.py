"""relaychat CLI — run the server, create tables, register and log in.

Usage:
    relaychat serve --port 9999              # Run the API + WebSocket server
    relaychat init-db                        # Create tables from the ORM models
    relaychat register alice a@x.io -p pw    # Create an account via the API
    relaychat login a@x.io -p pw             # Print a bearer token
"""

from __future__ import annotations

import asyncio
import json
import os
import sys

import click
import httpx

from relaychat.config import settings

DEFAULT_API_URL = "http://localhost:9999"


def _api_url() -> str:
    return os.environ.get("RELAYCHAT_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the relaychat backend."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


async def _post(path: str, body: dict) -> httpx.Response:
    async with _client() as client:
        return await client.post(path, json=body)


def _fail(resp: httpx.Response) -> None:
    try:
        detail = resp.json().get("detail", resp.text)
    except ValueError:
        detail = resp.text
    click.secho(f"Error ({resp.status_code}): {detail}", fg="red", err=True)
    sys.exit(1)


@click.group()
def cli():
    """relaychat — real-time chat backend."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str | None, port: int | None, reload: bool):
    """Run the server with uvicorn."""
    import uvicorn

    uvicorn.run(
        "relaychat.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@cli.command("init-db")
def init_db():
    """Create all tables (use Alembic migrations in production)."""
    from relaychat.db.engine import engine
    from relaychat.db.models import Base

    async def _create():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    asyncio.run(_create())
    click.secho("Tables created.", fg="green")


@cli.command()
@click.argument("username")
@click.argument("email")
@click.option("--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True)
def register(username: str, email: str, password: str):
    """Create an account."""
    resp = asyncio.run(
        _post(
            "/api/v1/auth/register",
            {"username": username, "email": email, "password": password},
        )
    )
    if resp.status_code != 201:
        _fail(resp)
    click.echo(_pretty_json(resp.json()))


@cli.command()
@click.argument("email")
@click.option("--password", "-p", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print the bearer token."""
    resp = asyncio.run(
        _post("/api/v1/auth/login", {"email": email, "password": password})
    )
    if resp.status_code != 200:
        _fail(resp)
    click.echo(resp.json()["token"])


def main():
    cli()


if __name__ == "__main__":
    main()
