from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..core.environment import ConfigBuilder
from ..core.errors import KeypaError
from ..core.lifecycle import Keypa
from ..log import configure_logging

app = typer.Typer(help="Keypa CLI")

COLUMNS = ["environment", "name", "source", "is_secret", "duplicates", "value"]


def _builder(config: Optional[Path]) -> ConfigBuilder:
    try:
        return ConfigBuilder.from_file(config)
    except (FileNotFoundError, ValueError, KeypaError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


def _load(env: str, config: Optional[Path]) -> Keypa:
    builder = _builder(config)
    try:
        return asyncio.run(builder.initialize(env))
    except KeypaError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


def _table(rows: List[Dict[str, Any]]) -> str:
    cells = [[str(row[c]) for c in COLUMNS] for row in rows]
    widths = [
        max([len(c)] + [len(line[i]) for line in cells]) for i, c in enumerate(COLUMNS)
    ]
    lines = [" | ".join(c.ljust(w) for c, w in zip(COLUMNS, widths))]
    lines.append("-+-".join("-" * w for w in widths))
    for line in cells:
        lines.append(" | ".join(v.ljust(w) for v, w in zip(line, widths)))
    return "\n".join(lines)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    json_logs: bool = typer.Option(False, "--json-logs"),
):
    configure_logging(
        level=logging.DEBUG if verbose else logging.WARNING, json_format=json_logs
    )


@app.command()
def environments(config: Optional[Path] = typer.Option(None, "--config")):
    typer.echo(json.dumps(_builder(config).environments, indent=2))


@app.command()
def show(
    env: str = typer.Option("development", "--env", envvar="KEYPA_ENV"),
    config: Optional[Path] = typer.Option(None, "--config"),
    format: str = typer.Option("table", "--format", help="table or json"),
):
    rows = sorted(_load(env, config).to_list(), key=lambda r: r["name"])
    if format == "json":
        typer.echo(json.dumps(rows, indent=2))
        return
    if format != "table":
        raise typer.BadParameter("format must be 'table' or 'json'", param_hint="--format")
    typer.echo(_table(rows))


@app.command()
def get(
    name: str,
    env: str = typer.Option("development", "--env", envvar="KEYPA_ENV"),
    config: Optional[Path] = typer.Option(None, "--config"),
):
    value = _load(env, config).try_get(name)
    if value is None:
        typer.echo(f"Error: no value for '{name}' in environment '{env}'", err=True)
        raise typer.Exit(code=1)
    typer.echo(
        json.dumps(
            {
                **value.to_dict(),
                "duplicate_sources": [d.source for d in value.duplicates],
            },
            indent=2,
        )
    )


if __name__ == "__main__":
    app()
