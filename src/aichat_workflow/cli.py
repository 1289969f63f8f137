"""CLI entry point for aichat-workflow."""

import asyncio
from pathlib import Path

import click
import uvicorn

from .backends import SQLiteHistoryStore
from .export import blocks_to_json, blocks_to_markdown
from .merger import merge_plan_units
from .session import WorkflowSession


@click.group()
@click.option("--db", type=click.Path(path_type=Path), default=None,
              help="Chat history database (defaults to $AICHAT_WORKFLOW_DB).")
@click.pass_context
def main(ctx, db):
    """Reconcile AI pair-programming chat blocks into workflow timelines."""
    ctx.obj = {"db": db}


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
def serve(port: int, host: str):
    """Start the web API."""
    click.echo(f"Starting aichat-workflow on http://{host}:{port}")
    uvicorn.run("aichat_workflow.server:app", host=host, port=port, reload=False)


@main.command()
@click.argument("project_id")
@click.option("--pages", default=1, help="Number of history pages to load.")
@click.pass_context
def show(ctx, project_id: str, pages: int):
    """Print a project's workflow units, oldest first."""
    blocks = asyncio.run(_load(ctx.obj["db"], project_id, pages))
    if not blocks:
        click.echo("No history.")
        return

    for unit in merge_plan_units(blocks):
        flags = []
        if unit.waiting_for_input:
            flags.append("waiting for input")
        if unit.needs_approval:
            flags.append("needs approval")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(f"{unit.role.value:<22} {_first_line(unit.head.user_prompt) or unit.head.kind}{suffix}")
        for block in unit.blocks[1:]:
            click.echo(f"{'':<22}   + {_first_line(block.user_prompt) or '(continuation)'}")


@main.command()
@click.argument("project_id")
@click.option("--format", "fmt", type=click.Choice(["md", "json"]), default="md")
@click.option("--pages", default=25, help="Number of history pages to load.")
@click.pass_context
def export(ctx, project_id: str, fmt: str, pages: int):
    """Write a project's history to stdout as Markdown or JSON."""
    blocks = asyncio.run(_load(ctx.obj["db"], project_id, pages))
    if fmt == "json":
        click.echo(blocks_to_json(project_id, blocks))
    else:
        click.echo(blocks_to_markdown(project_id, blocks))


async def _load(db, project_id: str, pages: int):
    store = SQLiteHistoryStore(db)
    if not store.is_available():
        raise click.ClickException(f"History database not found: {store.db_path}")
    session = WorkflowSession(store)
    await session.open(project_id)
    for _ in range(pages - 1):
        if not session.has_more:
            break
        await session.load_more()
    blocks = list(session.blocks)
    session.close()
    return blocks


def _first_line(text):
    return (text or "").strip().split("\n", 1)[0]
