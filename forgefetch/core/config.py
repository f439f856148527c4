"""Configuration management for forgefetch."""
import os
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from urllib.parse import quote


def _env_flag(name: str) -> bool:
    return os.getenv(name, '').strip().lower() in {'1', 'true', 'yes', 'on'}


def sanitize_ref(ref: str) -> str:
    """Refs such as `feature/x` unpack to directories named with `feature-x`."""
    return ref.replace('/', '-')


def cache_ref(ref: str) -> str:
    """Cache file name component for a ref; `feature/x` becomes `feature%2Fx`."""
    return quote(ref, safe='')


@dataclass
class PathConfig:
    """Download cache and build tree locations."""
    downloads_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv('FORGEFETCH_DOWNLOADS', 'downloads'),
        ),
    )
    buildtrees_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv('FORGEFETCH_BUILDTREES', 'buildtrees'),
        ),
    )

    @property
    def src_dir(self) -> Path:
        """Extraction base for pinned archives."""
        return self.buildtrees_dir / 'src'

    @property
    def head_dir(self) -> Path:
        """Extraction working directory for head archives."""
        return self.src_dir / 'head'

    def get_archive_path(self, org: str, repo: str, ref: str) -> Path:
        """Cache entry for GET {forge}/{org}/{repo}/archive/{ref}.tar.gz"""
        return self.downloads_dir / f'{org}-{repo}-{cache_ref(ref)}.tar.gz'

    def get_version_path(self, archive_path: Path) -> Path:
        """Ref metadata sidecar stored next to a head archive."""
        return archive_path.with_name(archive_path.name + '.version')


@dataclass
class ForgeConfig:
    token: str | None = field(
        default_factory=lambda: os.getenv('GITHUB_TOKEN'),
    )
    base_url: str = field(
        default_factory=lambda: os.getenv(
            'FORGEFETCH_FORGE_URL', 'https://github.com',
        ),
    )
    api_base_url: str = field(
        default_factory=lambda: os.getenv(
            'FORGEFETCH_API_URL', 'https://api.github.com',
        ),
    )
    timeout: int = 60
    retries: int = 3

    def __repr__(self) -> str:
        return (
            f"ForgeConfig(token='*****', base_url={self.base_url!r}, "
            f"api_base_url={self.api_base_url!r}, timeout={self.timeout!r}, "
            f"retries={self.retries!r})"
        )

    def archive_url(self, org: str, repo: str, ref: str) -> str:
        return f"{self.base_url.rstrip('/')}/{org}/{repo}/archive/{ref}.tar.gz"

    def head_ref_url(self, org: str, repo: str, head_ref: str) -> str:
        return f"{self.api_base_url.rstrip('/')}/repos/{org}/{repo}/git/refs/heads/{head_ref}"


@dataclass
class FetchFlags:
    """Process-wide toggles, passed explicitly into every fetch."""
    wants_head_build: bool = field(
        default_factory=lambda: _env_flag('FORGEFETCH_USE_HEAD'),
    )
    offline_only: bool = field(
        default_factory=lambda: _env_flag('FORGEFETCH_NO_DOWNLOADS'),
    )


@dataclass
class ForgeFetchConfig:
    paths: PathConfig = field(default_factory=PathConfig)
    forge: ForgeConfig = field(default_factory=ForgeConfig)

    @classmethod
    def load(cls) -> 'ForgeFetchConfig':
        return cls()


_config: ForgeFetchConfig | None = None


def get_config() -> ForgeFetchConfig:
    global _config
    if _config is None:
        _config = ForgeFetchConfig.load()
    return _config
