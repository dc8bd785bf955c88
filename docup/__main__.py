"""
Doc Up — configuration check.

    python -m docup [--config plugin.json]

Shows the effective settings (secrets masked) and whether the
service would activate with them.
Run the server: python -m scripts.run_server --config plugin.json
"""

import argparse
import os

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from docup.config import Configuration, ConfigurationError, RepositoryTarget


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Check Doc Up configuration")
    parser.add_argument(
        "--config", "-c",
        default=os.environ.get("DOCUP_CONFIG"),
        help="Path to JSON settings file (or set DOCUP_CONFIG)",
    )
    args = parser.parse_args(argv)

    console = Console()
    console.print(
        Panel.fit(
            "[bold]Doc Up[/bold] — Mattermost posts to GitHub documentation issues",
            border_style="bright_cyan",
        )
    )

    try:
        config = Configuration.load(args.config)
    except ConfigurationError as exc:
        console.print(f"[red]{exc}[/red]")
        return 1

    table = Table(title="Effective configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in config.to_dict().items():
        table.add_row(key, value or "[dim]unset[/dim]")
    console.print(table)

    routing = Table(title="Request routing")
    routing.add_column("Type", style="cyan")
    routing.add_column("Repository")
    for category, raw in config.repositories.items():
        if not raw:
            routing.add_row(category.value, "[dim]400 Bad Request[/dim]")
            continue
        try:
            routing.add_row(category.value, str(RepositoryTarget.parse(raw)))
        except ConfigurationError as exc:
            routing.add_row(category.value, f"[red]{exc}[/red]")
    console.print(routing)
    console.print(f"Labels: {', '.join(config.label_list) or '[dim]none[/dim]'}")

    try:
        config.is_valid()
    except ConfigurationError as exc:
        console.print(f"\n[bold red]Invalid:[/bold red] {exc}")
        return 1
    console.print("\n[bold green]Valid.[/bold green]")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
