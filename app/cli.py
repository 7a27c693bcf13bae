"""Operator CLI for local authorities.

    authorities harvest-rdf lcsh data/vocab/lcsh.nt
    authorities harvest-tsv mesh data/vocab/mesh.tsv --prefix https://id.nlm.nih.gov/mesh/
    authorities register keyword mesh --model generic_works
    authorities lookup keyword neo --model generic_works
    authorities list
    authorities delete mesh --yes
    authorities bootstrap
"""

import json
from pathlib import Path
from typing import List, Optional

import typer

from authorities.exceptions import HarvestError, PartialHarvestError, StoreUnavailableError
from authorities.harvest.rdf import DEFAULT_FORMAT, DEFAULT_PREDICATE
from authorities.service import LocalAuthorityService
from authorities.settings import load_settings
from authorities.utils.logger import LoggerManager
from authorities.utils.task_paths import TaskPaths

app = typer.Typer(help="Harvest, bind and look up local authorities.")

paths = TaskPaths()

cli_logger = LoggerManager.get_logger(
    name="cli",
    task_paths=paths,
    run_id=None,            # leave None for long-lived processes
    use_json=True,          # JSON for file logs, color for console
)

CONFIG_HELP = "YAML config file (defaults to $AUTHORITIES_CONFIG or config/authorities.yaml)."


def _service(config: Optional[Path]) -> LocalAuthorityService:
    return LocalAuthorityService.from_settings(load_settings(config))


def _report_harvest_failure(name: str, error: Exception) -> None:
    typer.echo(f"Harvest of '{name}' failed: {error}", err=True)
    if isinstance(error, PartialHarvestError) and not error.cleaned_up:
        typer.echo(f"Run `authorities delete {name} --yes` before retrying.", err=True)


@app.command("harvest-rdf")
def harvest_rdf(
    name: str = typer.Argument(..., help="Name of the authority to create."),
    sources: List[str] = typer.Argument(..., help="RDF files or URLs, read in order."),
    format: str = typer.Option(DEFAULT_FORMAT, "--format", "-f", help="RDF serialization."),
    predicate: str = typer.Option(str(DEFAULT_PREDICATE), "--predicate", "-p", help="Predicate whose statements become entries."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Harvest an RDF vocabulary into a new authority."""
    service = _service(config)
    try:
        authority = service.harvest_rdf(name, sources, format=format, predicate=predicate)
    except (HarvestError, ValueError) as e:
        _report_harvest_failure(name, e)
        raise typer.Exit(code=1)
    finally:
        service.close()
    _echo_harvest_result(name, authority is not None)


@app.command("harvest-tsv")
def harvest_tsv(
    name: str = typer.Argument(..., help="Name of the authority to create."),
    sources: List[str] = typer.Argument(..., help="TSV files or URLs, read in order."),
    prefix: str = typer.Option("", "--prefix", help="Prepended to the identifier column."),
    lenient: bool = typer.Option(False, "--lenient", help="Skip lines with fewer than 3 fields instead of failing."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Harvest a tab-separated vocabulary into a new authority."""
    service = _service(config)
    try:
        authority = service.harvest_tsv(name, sources, prefix=prefix, strict=not lenient)
    except (HarvestError, ValueError) as e:
        _report_harvest_failure(name, e)
        raise typer.Exit(code=1)
    finally:
        service.close()
    _echo_harvest_result(name, authority is not None)


def _echo_harvest_result(name: str, created: bool) -> None:
    if created:
        cli_logger.info(f"Harvested authority {name}", extra={"extra_data": {"authority": name}})
        typer.echo(f"Harvested '{name}'.")
    else:
        typer.echo(f"Authority '{name}' already exists; nothing harvested.")


@app.command()
def register(
    term: str = typer.Argument(..., help="Field name, e.g. 'creator'."),
    authority: str = typer.Argument(..., help="Name of a harvested authority."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name; omit to bind for any model."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Bind an authority to a (model, term) field."""
    service = _service(config)
    try:
        service.register_vocabulary(model, term, authority)
        names = service.bindings_for(term, model)
    finally:
        service.close()
    scope = model or "*"
    typer.echo(f"{scope}.{term}: {', '.join(names) if names else '(no authorities)'}")


@app.command()
def lookup(
    term: str = typer.Argument(..., help="Field name, e.g. 'subject'."),
    query: str = typer.Argument(..., help="Label prefix."),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name."),
    as_json: bool = typer.Option(False, "--json", help="Print matches as JSON."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Look up entries whose label starts with QUERY."""
    service = _service(config)
    try:
        matches = service.entries_by_term(term, query, model=model)
    except StoreUnavailableError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)
    finally:
        service.close()

    if as_json:
        typer.echo(json.dumps([m.model_dump() for m in matches], ensure_ascii=False))
        return
    for match in matches:
        typer.echo(f"{match.label}\t{match.uri}")


@app.command("list")
def list_authorities(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """List harvested authorities with their entry counts."""
    service = _service(config)
    try:
        summaries = service.list_authorities()
    finally:
        service.close()
    if not summaries:
        typer.echo("No authorities harvested yet.")
        return
    for summary in summaries:
        typer.echo(f"{summary.name}\t{summary.entry_count}\t{summary.created_at.isoformat()}")


@app.command()
def delete(
    name: str = typer.Argument(..., help="Authority to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Delete an authority with its entries and bindings."""
    if not yes:
        typer.confirm(f"Delete authority '{name}' and all its entries?", abort=True)
    service = _service(config)
    try:
        deleted = service.delete_authority(name)
    finally:
        service.close()
    if not deleted:
        typer.echo(f"No authority named '{name}'.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted '{name}'.")


@app.command()
def bootstrap(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=CONFIG_HELP),
):
    """Harvest and bind every vocabulary declared in the config file."""
    service = _service(config)
    try:
        report = service.bootstrap()
    finally:
        service.close()
    typer.echo(
        f"Harvested: {len(report.harvested)}, skipped: {len(report.skipped)}, "
        f"failed: {len(report.failed)}, bindings: {report.bindings}"
    )
    for name, error in report.failed.items():
        typer.echo(f"  {name}: {error}", err=True)
    if report.failed:
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
