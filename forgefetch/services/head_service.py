from pathlib import Path

import requests
import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError

from forgefetch.core.client import stream_to_file
from forgefetch.core.config import ForgeConfig
from forgefetch.core.errors import ResolutionError
from forgefetch.models.head_version import GitRef
from forgefetch.models.head_version import HeadVersion

logger = structlog.get_logger('head_service')

_ref_response = TypeAdapter(GitRef | list[GitRef])


class HeadVersionService:
    """Resolves a floating branch to the commit sha it currently points at."""

    def __init__(self, session: requests.Session, forge: ForgeConfig):
        self.session = session
        self.forge = forge

    def download(self, org: str, repo: str, head_ref: str, sidecar: Path) -> None:
        """Store the raw ref-metadata response in `sidecar`."""
        url = self.forge.head_ref_url(org, repo, head_ref)
        logger.info('Downloading version info', url=url)
        stream_to_file(self.session, url, sidecar, timeout=self.forge.timeout)

    def parse(self, sidecar: Path, head_ref: str) -> HeadVersion:
        """
        Read the commit sha from a stored ref-metadata response.

        GitHub answers with a list when `head_ref` is only a prefix of existing
        branch names; the entry for exactly `refs/heads/{head_ref}` is used.
        A single ref naming a different branch is rejected.
        """
        try:
            parsed = _ref_response.validate_json(sidecar.read_bytes())
        except (ValidationError, OSError) as e:
            raise ResolutionError(
                f"Could not read revision for '{head_ref}' from {sidecar}: {e}",
                candidates=[sidecar],
            ) from e

        full_ref = f'refs/heads/{head_ref}'
        if isinstance(parsed, list):
            matches = [r for r in parsed if r.ref == full_ref]
            if not matches:
                raise ResolutionError(
                    f"No ref named '{full_ref}' in {sidecar}",
                    candidates=[sidecar],
                )
            parsed = matches[0]
        elif parsed.ref is not None and parsed.ref != full_ref:
            raise ResolutionError(
                f"Expected '{full_ref}' in {sidecar}, found '{parsed.ref}'",
                candidates=[sidecar],
            )

        version = HeadVersion(head_ref=head_ref, sha=parsed.sha)
        logger.info('Resolved head version', head_ref=head_ref, sha=version.sha)
        return version
