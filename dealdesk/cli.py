"""DealDesk CLI - serve the webhook API and run operator tasks."""

import asyncio
import json

import typer
from rich.console import Console
from rich.table import Table

from .config import settings

app = typer.Typer(
    name="dealdesk",
    help="DealDesk - CRM webhook ingestion and reconciliation",
    no_args_is_help=True,
)
console = Console()


@app.command("serve")
def serve(
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to run on"),
    host: str = typer.Option(settings.host, "--host", help="Host to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Launch the webhook API."""
    import uvicorn

    console.print(f"[bold cyan]Starting DealDesk at http://{host}:{port}[/bold cyan]")
    uvicorn.run("dealdesk.app:app", host=host, port=port, reload=reload)


@app.command("migrate")
def migrate(revision: str = typer.Argument("head", help="Target revision")):
    """Apply Alembic migrations to the configured database."""
    from alembic import command
    from alembic.config import Config

    cfg = Config(str(settings.alembic_ini_path))
    command.upgrade(cfg, revision)
    console.print(f"[green]Database upgraded to {revision}[/green]")


@app.command("create-user")
def create_user(
    email: str = typer.Argument(..., help="Login email"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
    first_name: str = typer.Option(None, "--first-name"),
    last_name: str = typer.Option(None, "--last-name"),
    role: str = typer.Option("user", "--role"),
):
    """Register a user. The earliest user owns anonymous webhook deliveries."""
    from .database import async_session_factory
    from .services import user_svc

    async def _run():
        async with async_session_factory() as db:
            if await user_svc.get_user_by_email(db, email):
                return None
            return await user_svc.create_user(
                db, email, password, first_name=first_name, last_name=last_name, role=role
            )

    user = asyncio.run(_run())
    if user is None:
        console.print(f"[red]User {email} already exists[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Created user {user.email}[/green] ({user.id})")


@app.command("failed-webhooks")
def failed_webhooks(
    source: str = typer.Option(None, "--source", "-s", help="iclosed or kixie"),
    limit: int = typer.Option(20, "--limit", "-n"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """List webhook deliveries that failed during processing."""
    from .database import async_session_factory
    from .services import idempotency_svc

    async def _run():
        async with async_session_factory() as db:
            return await idempotency_svc.list_failed(db, source=source, limit=limit)

    logs = asyncio.run(_run())
    rows = [
        {
            "id": str(log.id),
            "source": log.source,
            "event": log.event_type,
            "delivery": log.delivery_id,
            "status": log.status_code,
            "error": log.error,
            "received": log.created_at.isoformat() if log.created_at else None,
        }
        for log in logs
    ]
    if json_output:
        console.print_json(json.dumps(rows, default=str))
        return
    if not rows:
        console.print("[dim]No failed deliveries[/dim]")
        return

    table = Table(title="Failed Webhook Deliveries")
    table.add_column("Received", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Event", style="white")
    table.add_column("Delivery", style="yellow")
    table.add_column("Error", style="red")
    for row in rows:
        table.add_row(row["received"] or "", row["source"], row["event"] or "", row["delivery"], row["error"] or "")
    console.print(table)


@app.command("kixie-connect")
def kixie_connect(
    email: str = typer.Argument(..., help="Email of the user who owns the Kixie account"),
    business_id: str = typer.Option(..., "--business-id", prompt=True),
    api_key: str = typer.Option(..., "--api-key", prompt=True, hide_input=True),
):
    """Store encrypted Kixie credentials for a user."""
    from .database import async_session_factory
    from .services import kixie_svc, user_svc

    async def _run():
        async with async_session_factory() as db:
            user = await user_svc.get_user_by_email(db, email)
            if user is None:
                return None
            return await kixie_svc.save_credentials(db, user.id, business_id, api_key)

    integration = asyncio.run(_run())
    if integration is None:
        console.print(f"[red]No user with email {email}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Kixie connected for {email}[/green]")


if __name__ == "__main__":
    app()
