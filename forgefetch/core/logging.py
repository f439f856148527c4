import logging
import os
import sys
from typing import Any

import structlog
from rich.console import Console

# Logs go to stderr; stdout is reserved for the fetch result.
console = Console(stderr=True)


class RichConsoleRenderer:
    """
    Renders structlog events as one rich-styled line of key=value pairs.
    An optional '_style' key in the event dict overrides the line style.
    """

    def __init__(self, console: Console | None = None):
        self._console = console or Console(stderr=True)
        self._level_styles = {
            'debug': 'dim',
            'info': 'green',
            'warning': 'yellow',
            'error': 'bold red',
            'critical': 'bold magenta',
        }

    def __call__(self, logger, name, event_dict):
        custom_style = event_dict.pop('_style', None)

        event = event_dict.pop('event', '')
        log_level = event_dict.pop('level', 'info')
        logger_name = event_dict.pop('logger', None)
        timestamp = event_dict.pop('timestamp', '')
        exception = event_dict.pop('exception', None)

        parts = []
        if timestamp:
            parts.append(f"[dim]{timestamp}[/dim]")
        if logger_name:
            parts.append(f"[bold]{logger_name}[/bold]")

        level_style = self._level_styles.get(log_level, 'white')
        parts.append(f"[{level_style}]{log_level:<8}[/{level_style}]")
        parts.append(event)

        for key, value in event_dict.items():
            parts.append(f"[cyan]{key}[/cyan]=[green]{value!r}[/green]")

        final_msg = ' '.join(parts)
        if exception:
            final_msg += f"\n[red]{exception}[/red]"

        self._console.print(final_msg, style=custom_style, highlight=False)

        # The line is already printed; stop the logger factory from printing another.
        raise structlog.DropEvent


def drop_style_processor(logger, method_name, event_dict):
    """Keep the internal '_style' hint out of JSON logs."""
    event_dict.pop('_style', None)
    return event_dict


def setup_logging(level: str = 'INFO') -> None:
    """
    Configure structured logging for the CLI.
    Library code only calls structlog.get_logger() and never configures logging.
    """
    logging.basicConfig(format='%(message)s', stream=sys.stderr, level=level)

    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt='iso'),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if os.getenv('ENV') == 'production':
        processors = shared_processors + [
            drop_style_processor,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            RichConsoleRenderer(console),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
