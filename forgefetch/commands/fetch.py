import json
from pathlib import Path

import structlog
import typer

from forgefetch.core.config import FetchFlags
from forgefetch.core.config import get_config
from forgefetch.core.decorators import handle_errors
from forgefetch.models.request import FetchRequest
from forgefetch.services.fetch_service import FetchService

logger = structlog.get_logger('fetch_command')
app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    repo: str = typer.Option(None, help='Repository as org/name'),
    ref: str = typer.Option(None, help='Immutable ref (tag or commit)'),
    sha512: str = typer.Option(
        None, help='Expected SHA-512 of the archive at --ref',
    ),
    head_ref: str = typer.Option(None, help='Branch to fetch for head builds'),
    out_var: str = typer.Option(
        'SOURCE_PATH', help='Name under which the source path is reported',
    ),
    head: bool = typer.Option(
        False, '--head/--no-head', envvar='FORGEFETCH_USE_HEAD',
        help='Build from HEAD_REF instead of REF',
    ),
    no_downloads: bool = typer.Option(
        False, '--no-downloads', envvar='FORGEFETCH_NO_DOWNLOADS',
        help='Use only what is already in the download cache',
    ),
    token: str = typer.Option(
        None, envvar='GITHUB_TOKEN', help='GitHub Token',
    ),
    downloads: Path = typer.Option(None, help='Download cache directory'),
    buildtrees: Path = typer.Option(None, help='Build tree directory'),
    as_json: bool = typer.Option(False, '--json', help='Print result as JSON'),
):
    """
    Download and extract a project from the forge.
    Prints OUT_VAR=<path>, plus HEAD_VERSION=<sha> for head builds.
    """
    config = get_config()
    if token:
        config.forge.token = token
    if downloads:
        config.paths.downloads_dir = downloads
    if buildtrees:
        config.paths.buildtrees_dir = buildtrees

    flags = FetchFlags(wants_head_build=head, offline_only=no_downloads)

    request = FetchRequest(
        out_var=out_var,
        repo=repo,
        ref=ref,
        sha512=sha512,
        head_ref=head_ref,
    )
    result = FetchService(config).fetch(request, flags)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return

    typer.echo(f"{result.out_var}={result.path}")
    if result.head_version:
        typer.echo(f"HEAD_VERSION={result.head_version}")
