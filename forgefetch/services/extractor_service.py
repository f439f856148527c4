import tarfile
from pathlib import Path
from typing import Protocol

import structlog

from forgefetch.core.errors import ExtractionError

logger = structlog.get_logger('extractor_service')


class ArchiveExtractor(Protocol):
    """Unpacks an archive into a working directory."""

    def extract(self, archive: Path, working_directory: Path) -> None:
        ...


class TarArchiveExtractor:
    """Extracts .tar, .tar.gz, .tar.bz2 and .tar.xz archives with the `data` filter."""

    def extract(self, archive: Path, working_directory: Path) -> None:
        working_directory.mkdir(parents=True, exist_ok=True)
        logger.info(
            'Extracting source', archive=str(archive),
            working_directory=str(working_directory),
        )
        try:
            with tarfile.open(archive, 'r:*') as tar:
                tar.extractall(working_directory, filter='data')
        except (tarfile.TarError, OSError) as e:
            raise ExtractionError(
                f"Failed to extract archive: {e}", archive=archive,
            ) from e
