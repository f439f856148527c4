import requests
import structlog

from forgefetch.core.client import get_http_client
from forgefetch.core.config import FetchFlags
from forgefetch.core.config import ForgeFetchConfig
from forgefetch.core.config import get_config
from forgefetch.core.errors import ConfigurationError
from forgefetch.models.request import FetchRequest
from forgefetch.models.result import ExtractedSource
from forgefetch.models.result import FetchMode
from forgefetch.services.archive_service import ArchiveService
from forgefetch.services.extractor_service import ArchiveExtractor
from forgefetch.services.extractor_service import TarArchiveExtractor
from forgefetch.services.locator_service import SourcePathLocator

logger = structlog.get_logger('fetch_service')


def validate_request(request: FetchRequest) -> None:
    """Reject incomplete requests before any I/O. Checks run in a fixed order."""
    if not request.out_var:
        raise ConfigurationError('OUT_SOURCE_PATH must be specified.')

    if bool(request.ref) != bool(request.sha512):
        raise ConfigurationError('SHA512 must be specified if REF is specified.')

    if not request.repo:
        raise ConfigurationError('The GitHub repository must be specified.')

    org, sep, name = request.repo.partition('/')
    if not sep or not org or not name.rsplit('/', 1)[-1]:
        raise ConfigurationError(
            f"The repository must be given as 'org/name', got '{request.repo}'.",
        )

    if not request.ref and not request.head_ref:
        raise ConfigurationError(
            'At least one of REF and HEAD_REF must be specified.',
        )


def resolve_mode(request: FetchRequest, flags: FetchFlags) -> FetchMode:
    """
    Pick the fetch mode for a validated request.

    A head build of a request without `head_ref` silently becomes a pinned
    build.
    """
    wants_head = flags.wants_head_build
    if wants_head and not request.head_ref:
        logger.info(
            'Package does not specify HEAD_REF. Falling back to non-HEAD version.',
            repo=request.repo,
        )
        wants_head = False

    if wants_head:
        return FetchMode.HEAD

    if not request.ref:
        raise ConfigurationError(
            'Package does not specify REF. It must be built using head fetch.',
        )
    return FetchMode.PINNED


class FetchService:
    """Fetches and locates one forge source tree per call."""

    def __init__(
        self,
        config: ForgeFetchConfig | None = None,
        session: requests.Session | None = None,
        extractor: ArchiveExtractor | None = None,
        locator: SourcePathLocator | None = None,
        archives: ArchiveService | None = None,
    ):
        self.config = config or get_config()
        self.session = session or get_http_client(
            token=self.config.forge.token,
            retries=self.config.forge.retries,
        )
        self.extractor = extractor or TarArchiveExtractor()
        self.locator = locator or SourcePathLocator()
        self.archives = archives or ArchiveService(
            self.session, self.config.paths, self.config.forge,
        )

    def fetch(self, request: FetchRequest, flags: FetchFlags) -> ExtractedSource:
        validate_request(request)
        mode = resolve_mode(request, flags)

        org = request.organization
        name = request.repo_name
        paths = self.config.paths
        logger.info('Fetching source', repo=request.repo, mode=str(mode))

        if mode is FetchMode.PINNED:
            archive = self.archives.fetch_pinned(
                org, name, request.ref, request.sha512,
                offline_only=flags.offline_only,
            )
            self.extractor.extract(archive, paths.src_dir)
            path = self.locator.locate(paths.src_dir, name, request.ref)
            return ExtractedSource(path=path, out_var=request.out_var, mode=mode)

        head = self.archives.fetch_head(
            org, name, request.head_ref, offline_only=flags.offline_only,
        )
        self.extractor.extract(head.archive, paths.head_dir)
        path = self.locator.locate(paths.head_dir, name, request.head_ref)
        return ExtractedSource(
            path=path,
            out_var=request.out_var,
            mode=mode,
            head_version=head.version.sha,
        )
