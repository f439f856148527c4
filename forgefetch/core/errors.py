"""Error taxonomy for forge fetches."""
from collections.abc import Mapping
from collections.abc import Sequence
from pathlib import Path


class ForgeFetchError(Exception):
    """Base error. Every subclass aborts the current fetch."""

    def __init__(self, message: str, context: Mapping[str, object] | None = None):
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [self.message]
        for key, value in self.context.items():
            if value is not None and value != '':
                parts.append(f"  {key}: {value}")
        return '\n'.join(parts)


class ConfigurationError(ForgeFetchError, ValueError):
    """Invalid or incomplete fetch request."""


class DownloadError(ForgeFetchError):
    """Network transport failure for an archive or ref metadata."""

    def __init__(self, message: str, url: str, status: str | int | None = None):
        super().__init__(message, {'url': url, 'status': status})
        self.url = url
        self.status = status


class IntegrityError(ForgeFetchError):
    """Archive content does not match the expected SHA-512."""

    def __init__(self, path: Path, expected: str, actual: str):
        super().__init__(
            f"File does not have expected hash. Actual hash: {actual}",
            {'path': str(path), 'expected': expected, 'actual': actual},
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class OfflineCacheMissError(ForgeFetchError):
    """Downloads are disabled and the cache cannot satisfy the request."""

    def __init__(self, path: Path):
        super().__init__(
            f"Downloads are disabled, but '{path}' does not exist.",
            {'path': str(path)},
        )
        self.path = path


class ResolutionError(ForgeFetchError):
    """Extracted directory or head revision could not be determined."""

    def __init__(self, message: str, candidates: Sequence[Path] = ()):
        super().__init__(
            message,
            {'tried': ', '.join(str(c) for c in candidates)},
        )
        self.candidates = list(candidates)


class ExtractionError(ForgeFetchError):
    """Archive could not be unpacked."""

    def __init__(self, message: str, archive: Path):
        super().__init__(message, {'archive': str(archive)})
        self.archive = archive
