import hashlib
from pathlib import Path

import structlog

from forgefetch.core.errors import IntegrityError

logger = structlog.get_logger('integrity_service')

CHUNK_SIZE = 1024 * 1024


class IntegrityService:
    """Verifies downloaded archives against their expected SHA-512."""

    def compute(self, path: Path) -> str:
        digest = hashlib.sha512()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
                digest.update(chunk)
        return digest.hexdigest()

    def verify(self, path: Path, expected: str) -> str:
        """
        Compare the file's SHA-512 with `expected`, ignoring case.

        On mismatch the raised IntegrityError always reports the actual hash,
        so a placeholder such as `0` can be used to learn the real value.

        Returns:
            The actual hash (lowercase hex).
        """
        actual = self.compute(path)
        if actual != expected.strip().lower():
            logger.error(
                'Hash mismatch', path=str(path),
                expected=expected, actual=actual,
            )
            raise IntegrityError(path, expected, actual)
        logger.debug('Hash verified', path=str(path))
        return actual
