import hashlib
import io
import tarfile
from unittest.mock import MagicMock

import pytest
import requests

from forgefetch.core.config import ForgeConfig
from forgefetch.core.config import ForgeFetchConfig
from forgefetch.core.config import PathConfig


def make_response(status: int = 200, content: bytes = b'') -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.content = content
    response.iter_content.return_value = [content]
    return response


class FakeForge:
    """Stands in for the HTTP session; unknown URLs answer 404."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.session = MagicMock(spec=requests.Session)
        self.session.get.side_effect = self._get

    def serve(self, url: str, content: bytes = b'', status: int = 200):
        self.routes[url] = make_response(status, content)

    def fail(self, url: str, error: Exception):
        self.routes[url] = error

    def _get(self, url, **kwargs):
        route = self.routes.get(url)
        if route is None:
            return make_response(404)
        if isinstance(route, Exception):
            raise route
        return route

    @property
    def requested(self) -> list[str]:
        return [c.args[0] for c in self.session.get.call_args_list]


@pytest.fixture
def forge():
    return FakeForge()


@pytest.fixture
def config(tmp_path):
    return ForgeFetchConfig(
        paths=PathConfig(
            downloads_dir=tmp_path / 'downloads',
            buildtrees_dir=tmp_path / 'buildtrees',
        ),
        forge=ForgeConfig(
            token=None,
            base_url='https://github.com',
            api_base_url='https://api.github.com',
        ),
    )


@pytest.fixture
def make_tarball():
    def _make(top: str, files: dict[str, bytes]) -> bytes:
        buf = io.BytesIO()
        with tarfile.open(fileobj=buf, mode='w:gz') as tar:
            for name, data in files.items():
                info = tarfile.TarInfo(f'{top}/{name}')
                info.size = len(data)
                tar.addfile(info, io.BytesIO(data))
        return buf.getvalue()
    return _make


@pytest.fixture
def sha512():
    return lambda data: hashlib.sha512(data).hexdigest()
