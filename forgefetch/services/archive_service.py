import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

import requests
import structlog

from forgefetch.core.client import stream_to_file
from forgefetch.core.config import ForgeConfig
from forgefetch.core.config import PathConfig
from forgefetch.core.errors import IntegrityError
from forgefetch.core.errors import OfflineCacheMissError
from forgefetch.models.head_version import HeadVersion
from forgefetch.services.head_service import HeadVersionService
from forgefetch.services.integrity_service import IntegrityService

logger = structlog.get_logger('archive_service')


@dataclass
class HeadArchive:
    archive: Path
    version: HeadVersion


class ArchiveService:
    """Maintains the download cache of forge source archives."""

    def __init__(
        self,
        session: requests.Session,
        paths: PathConfig,
        forge: ForgeConfig,
        integrity: IntegrityService | None = None,
        head_versions: HeadVersionService | None = None,
    ):
        self.session = session
        self.paths = paths
        self.forge = forge
        self.integrity = integrity or IntegrityService()
        self.head_versions = head_versions or HeadVersionService(session, forge)

    def fetch_pinned(
        self,
        org: str,
        repo: str,
        ref: str,
        sha512: str,
        offline_only: bool = False,
    ) -> Path:
        """
        Return the verified cache entry for an immutable ref, downloading it
        if it is not cached yet.
        """
        archive = self.paths.get_archive_path(org, repo, ref)

        if archive.exists():
            logger.info('Using cached archive', path=str(archive))
            self.integrity.verify(archive, sha512)
            return archive

        if offline_only:
            raise OfflineCacheMissError(archive)

        url = self.forge.archive_url(org, repo, ref)
        # Unique part name so concurrent fetches of one ref never share a file.
        part = archive.with_name(f"{archive.name}.{uuid.uuid4().hex[:8]}.part")
        logger.info('Downloading', url=url, path=str(archive))
        stream_to_file(self.session, url, part, timeout=self.forge.timeout)

        try:
            self.integrity.verify(part, sha512)
        except IntegrityError:
            part.unlink(missing_ok=True)
            raise

        os.replace(part, archive)
        logger.info('Downloaded', url=url, path=str(archive))
        return archive

    def purge_head(self, archive: Path) -> None:
        """Remove a head archive and its version sidecar."""
        sidecar = self.paths.get_version_path(archive)
        if archive.exists():
            logger.info(
                'Purging cached archive to fetch latest '
                '(use --no-downloads to suppress)',
                path=str(archive),
            )
            archive.unlink()
        sidecar.unlink(missing_ok=True)

    def clean_head_dir(self) -> None:
        head_dir = self.paths.head_dir
        if head_dir.exists():
            logger.debug('Removing head working directory', path=str(head_dir))
            shutil.rmtree(head_dir)

    def fetch_head(
        self,
        org: str,
        repo: str,
        head_ref: str,
        offline_only: bool = False,
    ) -> HeadArchive:
        """
        Fetch the current archive of a floating ref plus the commit it
        resolves to.

        Online, the cached archive and sidecar are always purged and fetched
        again. Offline, both must already exist and are used as they are.
        """
        archive = self.paths.get_archive_path(org, repo, head_ref)
        sidecar = self.paths.get_version_path(archive)
        self.clean_head_dir()

        if offline_only:
            for required in (archive, sidecar):
                if not required.exists():
                    raise OfflineCacheMissError(required)
            logger.info('Using cached archive', path=str(archive))
        else:
            self.purge_head(archive)
            self.head_versions.download(org, repo, head_ref, sidecar)

            url = self.forge.archive_url(org, repo, head_ref)
            logger.info('Downloading', url=url, path=str(archive))
            stream_to_file(self.session, url, archive, timeout=self.forge.timeout)
            logger.info('Downloaded', url=url, path=str(archive))

        version = self.head_versions.parse(sidecar, head_ref)
        return HeadArchive(archive=archive, version=version)
