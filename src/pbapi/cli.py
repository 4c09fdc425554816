from __future__ import annotations

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pbapi.config.settings import get_settings
from pbapi.errors import PbApiError
from pbapi.orchestrator.api_service import build_service
from pbapi.utils.logger import configure_logging


app = typer.Typer(no_args_is_help=True, add_completion=False)

routes_app = typer.Typer(no_args_is_help=True)
app.add_typer(routes_app, name="routes")

plugins_app = typer.Typer(no_args_is_help=True)
app.add_typer(plugins_app, name="plugins")

console = Console()


def _service():
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        return build_service(settings)
    except PbApiError as exc:
        console.print(f"[bold red]Route compilation failed:[/bold red] {exc}")
        raise typer.Exit(code=1)


@routes_app.command("list")
def routes_list(
    plugin: Optional[str] = typer.Option(None, help="Only routes of this plugin id"),
    method: Optional[str] = typer.Option(None, help="Filter by HTTP method (GET/POST/DELETE)"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    service = _service()

    entries = list(service.table.entries())
    if plugin:
        entries = [e for e in entries if e.plugin_id == plugin]
    if method:
        entries = [e for e in entries if e.http_method == method.lower()]

    fmt = format.lower().strip()
    if fmt not in ("table", "json"):
        raise typer.BadParameter("format must be one of: table, json")

    if fmt == "json":
        console.print(json.dumps([e.to_dict() for e in entries], indent=2))
        return

    console.print(f"[bold]Routes:[/bold] {len(entries)}")
    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("TEMPLATE")
    table.add_column("OPERATION")
    table.add_column("PARAMS")
    table.add_column("QUERY")
    table.add_column("PERMISSIONS")

    for e in entries:
        params = ", ".join(f"{g}->{s}" for g, s in e.parameter_map.items())
        table.add_row(
            e.http_method.upper(),
            e.concrete_template,
            e.operation_name,
            params,
            ", ".join(e.query_parameters),
            e.permission_string,
        )

    console.print(table)


@plugins_app.command("list")
def plugins_list() -> None:
    service = _service()
    enabled = {d.id for d in service.enabled_definitions()}

    table = Table(show_header=True, header_style="bold")
    table.add_column("ID", no_wrap=True)
    table.add_column("LABEL")
    table.add_column("VERSION", no_wrap=True)
    table.add_column("PREFIX")
    table.add_column("ENABLED", no_wrap=True)

    for pid, d in service.manager.get_definitions().items():
        table.add_row(pid, d.label, str(d.version), service.prefix_for(d), "yes" if pid in enabled else "no")

    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Bind address"),
    port: int = typer.Option(8000, help="Bind port"),
) -> None:
    import uvicorn

    from pbapi.server.app import create_app

    service = _service()
    console.print(f"[bold green]pbapi[/bold green] serving {len(service.table)} routes on {host}:{port}")
    uvicorn.run(create_app(service), host=host, port=port, log_level="warning")


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
