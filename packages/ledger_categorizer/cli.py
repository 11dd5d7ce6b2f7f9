"""Typer console interface for ``ledger_categorizer``.

Environment variables (notably ``OPENAI_API_KEY``) are loaded from a local
``.env`` via ``python-dotenv`` before any command runs. Without a key the
``categorize`` command still works (rules only) and ``extract`` returns no
rows. Output is JSON on stdout; logs go to stderr.
"""

from __future__ import annotations

import csv
import json
import sys
from collections.abc import Mapping
from io import StringIO
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo

from .logging_setup import configure_logging


def _load_rows(path: Path) -> list[Mapping[str, Any]]:
    """Read rows from a JSON array or a CSV with ``description,debit,credit`` headers."""

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".csv":
        reader = csv.DictReader(StringIO(text))
        headers = set(reader.fieldnames or [])
        if "description" not in headers:
            raise csv.Error(f"CSV must have a 'description' column: {path}")
        return [dict(row) for row in reader]
    data = json.loads(text)
    if not isinstance(data, list):
        raise ValueError("JSON input must be an array of transaction objects")
    return data


# Module-level argument object to satisfy ruff B008 (no calls in defaults).
INPUT_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Input file",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Categorize bank transactions (rules + OpenAI) and extract rows from statement text.",
)


@app.callback()
def _root(
    log_level: Annotated[
        str | None, typer.Option("--log-level", help="Log level name, e.g. DEBUG or WARNING.")
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


@app.command("categorize")
def categorize_cmd(input_path: Annotated[Path, INPUT_PATH_ARGUMENT]) -> None:
    """Categorize rows from a JSON array or CSV file and print enriched JSON."""

    from .api import categorize_transactions_sync

    try:
        rows = _load_rows(input_path)
    except FileNotFoundError:
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        raise typer.Exit(1) from None
    except (csv.Error, ValueError) as e:
        print(f"Error: Failed to read '{input_path}': {e}", file=sys.stderr)
        raise typer.Exit(1) from None

    try:
        results = categorize_transactions_sync(rows)
    except TypeError as e:
        print(f"Error: {e}", file=sys.stderr)
        raise typer.Exit(1) from None
    typer.echo(json.dumps([r.as_dict() for r in results], ensure_ascii=False, indent=2))


@app.command("extract")
def extract_cmd(input_path: Annotated[Path, INPUT_PATH_ARGUMENT]) -> None:
    """Extract transaction rows from a statement text file and print JSON."""

    from .api import extract_transactions_sync

    try:
        raw_text = input_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        raise typer.Exit(1) from None

    records = extract_transactions_sync(raw_text)
    typer.echo(json.dumps([r.as_transaction() for r in records], ensure_ascii=False, indent=2))


@app.command("check-key")
def check_key_cmd() -> None:
    """Exit 0 when the configured OpenAI key authenticates, 1 otherwise."""

    import asyncio

    from .api import validate_api_key

    ok = asyncio.run(validate_api_key())
    typer.echo("ok" if ok else "unavailable")
    if not ok:
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
