from pathlib import Path

import structlog

from forgefetch.core.config import sanitize_ref
from forgefetch.core.errors import ResolutionError

logger = structlog.get_logger('locator_service')


class SourcePathLocator:
    """Finds the top-level directory an archive of `{repo_name}@{ref}` unpacked to."""

    def locate(self, base: Path, repo_name: str, ref: str) -> Path:
        """
        Try `{base}/{repo_name}-{ref}`, then the same with one leading `v`
        stripped from the ref. GitHub names tag archives `widget-2.0.0` for
        tag `v2.0.0`.
        """
        ref = sanitize_ref(ref)
        primary = base / f"{repo_name}-{ref}"
        if primary.is_dir():
            return primary

        fallback = base / f"{repo_name}-{ref.removeprefix('v')}"
        if fallback == primary:
            raise ResolutionError(
                f"Could not determine source path: '{primary}' does not exist",
                candidates=[primary],
            )

        if fallback.is_dir():
            logger.debug(
                'Using v-stripped source directory',
                tried=str(primary), path=str(fallback),
            )
            return fallback

        raise ResolutionError(
            f"Could not determine source path: '{primary}' does not exist",
            candidates=[primary, fallback],
        )
