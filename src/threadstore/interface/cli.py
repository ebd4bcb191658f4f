"""
threadstore CLI - Command-line interface.

Commands:
- threadstore init --seed        → Create the thread and collection
- threadstore list               → List astronauts
- threadstore show ID            → Show one astronaut
- threadstore add NAME MISSIONS  → Create an astronaut
- threadstore delete ID          → Delete an astronaut
- threadstore watch              → Stream create/delete events
- threadstore seed-schemas       → Write the schema manifest
"""

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from threadstore.core.config import settings, setup_logging
from threadstore.core.exceptions import StoreError
from threadstore.core.types import Astronaut, ListenEvent
from threadstore.schema import seed_model
from threadstore.storage import RecordStore, open_client

app = typer.Typer(
    name="threadstore",
    help="threadstore - astronaut records in a thread database",
    no_args_is_help=True,
)
console = Console()

T = TypeVar("T")

SEED_ASTRONAUTS = [
    Astronaut(name="Buzz", missions=5),
    Astronaut(name="Lightyear", missions=5),
]


def run_async(coro):
    """Run an async function synchronously."""
    return asyncio.run(coro)


def with_store(action: Callable[[RecordStore[Astronaut]], Awaitable[T]]) -> T:
    """Open a client, run ``action`` against the astronaut store, close the client."""
    if settings.backend == "memory":
        # Each command runs in its own process, so nothing would survive it
        console.print(
            "[red]Error: the memory backend does not persist between commands; "
            "set THREADSTORE_BACKEND=hub[/red]"
        )
        raise typer.Exit(code=1)

    async def _run() -> T:
        client = await open_client(settings)
        try:
            store = RecordStore(
                client,
                thread_name=settings.thread_name,
                collection_name=settings.collection_name,
                model=Astronaut,
            )
            return await action(store)
        finally:
            await client.close()

    try:
        return run_async(_run())
    except (StoreError, ValueError) as e:
        # ValueError covers settings ValidationError and malformed thread ids
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(code=1) from e


@app.command()
def init(
    seed: bool = typer.Option(False, "--seed", help="Insert Buzz and Lightyear"),
):
    """Create the thread and the astronauts collection."""
    setup_logging()

    thread_id, ids = with_store(
        lambda store: store.provision(SEED_ASTRONAUTS[0], SEED_ASTRONAUTS if seed else ())
    )

    console.print(Panel(
        f"[green]✓ Created {settings.thread_name}/{settings.collection_name}[/green]\n\n"
        f"Thread ID: {thread_id}",
        title="Initialized",
    ))
    for instance_id in ids:
        console.print(f"  • seeded {instance_id}")


@app.command("list")
def list_astronauts():
    """List all astronauts."""
    setup_logging()

    astronauts = with_store(lambda store: store.find_all())

    if astronauts:
        table = Table(title="Astronauts")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Missions", style="green")

        for astronaut in astronauts:
            table.add_row(astronaut.id, astronaut.name, str(astronaut.missions))

        console.print(table)
    else:
        console.print("[dim]No astronauts found[/dim]")


@app.command()
def show(
    instance_id: str = typer.Argument(..., help="Astronaut ID"),
):
    """Show a single astronaut."""
    setup_logging()

    astronaut = with_store(lambda store: store.find_by_id(instance_id))
    console.print(Panel(
        f"Name: {astronaut.name}\nMissions: {astronaut.missions}",
        title=astronaut.id,
    ))


@app.command()
def add(
    name: str = typer.Argument(..., help="Astronaut name"),
    missions: int = typer.Argument(0, help="Number of missions"),
):
    """Create a new astronaut."""
    setup_logging()

    instance_id = with_store(
        lambda store: store.create(Astronaut(name=name, missions=missions))
    )
    console.print(f"[green]✓ Created {name}[/green] ({instance_id})")


@app.command()
def delete(
    instance_id: str = typer.Argument(..., help="Astronaut ID"),
):
    """Delete an astronaut."""
    setup_logging()

    deleted = with_store(lambda store: store.delete_by_id(instance_id))
    console.print(f"[green]✓ Deleted[/green] {deleted}")


@app.command()
def watch(
    limit: Optional[int] = typer.Option(None, help="Stop after this many events"),
):
    """Print create and delete events until interrupted."""
    setup_logging()

    async def _watch(store: RecordStore[Astronaut]) -> None:
        seen = 0
        done = asyncio.Event()

        def on_event(event: ListenEvent) -> None:
            nonlocal seen
            name: Any = (event.instance or {}).get("name", "-")
            console.print(f"[cyan]{event.action.value}[/cyan] {event.instance_id} {name}")
            seen += 1
            if limit is not None and seen >= limit:
                done.set()

        subscription = await store.subscribe(on_event)
        async with subscription:
            waiter = asyncio.create_task(done.wait())
            stopped = asyncio.create_task(subscription.wait())
            finished, pending = await asyncio.wait(
                {waiter, stopped},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in pending:
                task.cancel()
            if stopped in finished:
                # Re-raises the error that ended delivery, if any
                stopped.result()

    console.print(f"[dim]Watching {settings.thread_name}... (Ctrl+C to stop)[/dim]")
    try:
        with_store(_watch)
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


@app.command("seed-schemas")
def seed_schemas(
    output: Optional[Path] = typer.Option(None, help="Manifest path"),
):
    """Register the astronaut schemas and write the manifest."""
    setup_logging()

    path = seed_model().write(output or settings.schema_manifest_path)
    console.print(f"[green]✓ Encoded model written to {path}[/green]")


if __name__ == "__main__":
    app()
