from pathlib import Path

import typer

from forgefetch.core.decorators import handle_errors
from forgefetch.services.integrity_service import IntegrityService

app = typer.Typer()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    file: Path = typer.Argument(
        ..., exists=True, dir_okay=False, readable=True,
        help='Archive to hash',
    ),
):
    """
    Print the SHA-512 of a local archive, in the form --sha512 expects.
    """
    typer.echo(IntegrityService().compute(file))
