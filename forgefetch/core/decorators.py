import functools
from collections.abc import Callable
from typing import Any

import structlog
import typer
from rich.markup import escape

from forgefetch.core.errors import ConfigurationError
from forgefetch.core.errors import ForgeFetchError
from forgefetch.core.logging import console
logger = structlog.get_logger()


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator to turn fetch failures into a readable message and exit code."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except ConfigurationError as e:
            console.print(
                f"[bold red]Configuration Error:[/] {escape(str(e))}", highlight=False,
            )
            logger.debug('Configuration error', exc_info=True)
            raise typer.Exit(1)
        except ForgeFetchError as e:
            console.print(
                f"[bold red]{type(e).__name__}:[/] {escape(str(e))}", highlight=False,
            )
            logger.debug('Fetch failed', exc_info=True)
            raise typer.Exit(1)
        except KeyboardInterrupt:
            console.print('\n[yellow]Operation cancelled by user.[/]')
            raise typer.Exit(130)
        except Exception as e:
            console.print(f"[bold red]Unexpected Error:[/] {escape(str(e))}", highlight=False)
            logger.exception('Unexpected error')
            raise typer.Exit(1)
    return wrapper
