import dotenv
import typer

from forgefetch.__version__ import __version__
from forgefetch.commands import checksum
from forgefetch.commands import fetch
from forgefetch.core.logging import setup_logging

app = typer.Typer(
    help='forgefetch: download and extract source trees from a git forge.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.add_typer(fetch.app, name='fetch')
app.add_typer(checksum.app, name='hash')


def version_callback(value: bool):
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
    version: bool = typer.Option(
        False, '--version', callback=version_callback, is_eager=True,
        help='Show version and exit',
    ),
):
    """
    forgefetch CLI - pinned and head fetches of forge archives.
    """
    dotenv.load_dotenv()
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level)


if __name__ == '__main__':
    app()
