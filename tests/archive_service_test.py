import json

import pytest
import requests
from structlog.testing import capture_logs

from forgefetch.core.errors import DownloadError
from forgefetch.core.errors import IntegrityError
from forgefetch.core.errors import OfflineCacheMissError
from forgefetch.services.archive_service import ArchiveService

ARCHIVE_URL = 'https://github.com/octo/widget/archive/v2.0.0.tar.gz'
HEAD_ARCHIVE_URL = 'https://github.com/octo/widget/archive/main.tar.gz'
HEAD_REF_URL = 'https://api.github.com/repos/octo/widget/git/refs/heads/main'
SHA = 'abc123' + '0' * 34


def ref_body(sha: str = SHA, branch: str = 'main') -> bytes:
    return json.dumps({'ref': f'refs/heads/{branch}', 'object': {'sha': sha}}).encode()


@pytest.fixture
def service(forge, config):
    return ArchiveService(forge.session, config.paths, config.forge)


class TestPinned:

    def test_download_and_cache(self, service, forge, config, sha512):
        forge.serve(ARCHIVE_URL, b'tarball')

        archive = service.fetch_pinned('octo', 'widget', 'v2.0.0', sha512(b'tarball'))

        assert archive == config.paths.downloads_dir / 'octo-widget-v2.0.0.tar.gz'
        assert archive.read_bytes() == b'tarball'
        assert forge.requested == [ARCHIVE_URL]
        assert sorted(p.name for p in archive.parent.iterdir()) == [archive.name]

    def test_cached_entry_is_reused_without_network(self, service, forge, config, sha512):
        archive = config.paths.get_archive_path('octo', 'widget', 'v2.0.0')
        archive.parent.mkdir(parents=True)
        archive.write_bytes(b'cached tarball')

        result = service.fetch_pinned(
            'octo', 'widget', 'v2.0.0', sha512(b'cached tarball'),
        )

        assert result == archive
        assert forge.requested == []

    def test_cached_entry_is_verified(self, service, forge, config, sha512):
        archive = config.paths.get_archive_path('octo', 'widget', 'v2.0.0')
        archive.parent.mkdir(parents=True)
        archive.write_bytes(b'truncated')

        with pytest.raises(IntegrityError) as excinfo:
            service.fetch_pinned('octo', 'widget', 'v2.0.0', sha512(b'tarball'))

        assert excinfo.value.actual == sha512(b'truncated')
        assert forge.requested == []

    def test_sentinel_hash_reports_actual_and_leaves_no_entry(self, service, forge, config, sha512):
        forge.serve(ARCHIVE_URL, b'tarball')

        with pytest.raises(IntegrityError) as excinfo:
            service.fetch_pinned('octo', 'widget', 'v2.0.0', '0')

        assert sha512(b'tarball') in str(excinfo.value)
        assert list(config.paths.downloads_dir.iterdir()) == []

    def test_http_error(self, service, forge, config, sha512):
        forge.serve(ARCHIVE_URL, b'Not Found', status=404)

        with pytest.raises(DownloadError) as excinfo:
            service.fetch_pinned('octo', 'widget', 'v2.0.0', sha512(b'tarball'))

        assert excinfo.value.url == ARCHIVE_URL
        assert excinfo.value.status == 404
        assert ARCHIVE_URL in str(excinfo.value)
        assert list(config.paths.downloads_dir.iterdir()) == []

    def test_transport_error_removes_partial_file(self, service, forge, config, sha512):
        forge.fail(ARCHIVE_URL, requests.ConnectionError('connection reset'))

        with pytest.raises(DownloadError):
            service.fetch_pinned('octo', 'widget', 'v2.0.0', sha512(b'tarball'))

        assert list(config.paths.downloads_dir.iterdir()) == []

    def test_offline_without_cache(self, service, forge, config, sha512):
        with pytest.raises(OfflineCacheMissError) as excinfo:
            service.fetch_pinned(
                'octo', 'widget', 'v2.0.0', sha512(b'tarball'), offline_only=True,
            )

        assert excinfo.value.path == config.paths.get_archive_path('octo', 'widget', 'v2.0.0')
        assert forge.requested == []


class TestHead:

    def seed_cache(self, config, archive_bytes=b'old tarball', sha='f' * 40):
        archive = config.paths.get_archive_path('octo', 'widget', 'main')
        archive.parent.mkdir(parents=True, exist_ok=True)
        archive.write_bytes(archive_bytes)
        config.paths.get_version_path(archive).write_bytes(ref_body(sha))
        return archive

    def test_online_fetch_order(self, service, forge, config):
        forge.serve(HEAD_REF_URL, ref_body())
        forge.serve(HEAD_ARCHIVE_URL, b'head tarball')

        head = service.fetch_head('octo', 'widget', 'main')

        assert forge.requested == [HEAD_REF_URL, HEAD_ARCHIVE_URL]
        assert head.archive == config.paths.downloads_dir / 'octo-widget-main.tar.gz'
        assert head.archive.read_bytes() == b'head tarball'
        assert head.version.sha == SHA

    def test_online_purges_stale_cache(self, service, forge, config):
        archive = self.seed_cache(config)
        stale = config.paths.head_dir / 'widget-main' / 'stale.txt'
        stale.parent.mkdir(parents=True)
        stale.write_text('stale')
        forge.serve(HEAD_REF_URL, ref_body())
        forge.serve(HEAD_ARCHIVE_URL, b'new tarball')

        with capture_logs() as captured:
            head = service.fetch_head('octo', 'widget', 'main')

        assert archive.read_bytes() == b'new tarball'
        assert head.version.sha == SHA
        assert not config.paths.head_dir.exists()
        assert any('Purging cached archive' in e['event'] for e in captured)

    def test_metadata_failure(self, service, forge, config):
        self.seed_cache(config)
        forge.serve(HEAD_REF_URL, b'', status=500)
        forge.serve(HEAD_ARCHIVE_URL, b'new tarball')

        with pytest.raises(DownloadError) as excinfo:
            service.fetch_head('octo', 'widget', 'main')

        archive = config.paths.get_archive_path('octo', 'widget', 'main')
        assert excinfo.value.url == HEAD_REF_URL
        assert not archive.exists()
        assert not config.paths.get_version_path(archive).exists()
        assert forge.requested == [HEAD_REF_URL]

    def test_archive_failure_removes_partial_archive(self, service, forge, config):
        forge.serve(HEAD_REF_URL, ref_body())
        forge.fail(HEAD_ARCHIVE_URL, requests.ReadTimeout('timed out'))

        with pytest.raises(DownloadError) as excinfo:
            service.fetch_head('octo', 'widget', 'main')

        assert excinfo.value.url == HEAD_ARCHIVE_URL
        assert not config.paths.get_archive_path('octo', 'widget', 'main').exists()

    def test_offline_uses_cache_verbatim(self, service, forge, config):
        archive = self.seed_cache(config, b'cached tarball', 'e' * 40)
        forge.serve(HEAD_REF_URL, ref_body())
        forge.serve(HEAD_ARCHIVE_URL, b'upstream moved on')

        head = service.fetch_head('octo', 'widget', 'main', offline_only=True)

        assert forge.requested == []
        assert head.archive == archive
        assert archive.read_bytes() == b'cached tarball'
        assert head.version.sha == 'e' * 40

    def test_offline_without_cache(self, service, forge, config):
        with pytest.raises(OfflineCacheMissError) as excinfo:
            service.fetch_head('octo', 'widget', 'main', offline_only=True)

        assert excinfo.value.path == config.paths.get_archive_path('octo', 'widget', 'main')
        assert forge.requested == []

    def test_offline_without_sidecar(self, service, config):
        archive = self.seed_cache(config)
        sidecar = config.paths.get_version_path(archive)
        sidecar.unlink()

        with pytest.raises(OfflineCacheMissError) as excinfo:
            service.fetch_head('octo', 'widget', 'main', offline_only=True)

        assert excinfo.value.path == sidecar

    def test_head_entries_embed_branch(self, config):
        main = config.paths.get_archive_path('octo', 'widget', 'main')
        dev = config.paths.get_archive_path('octo', 'widget', 'feature/dev')
        assert main.name == 'octo-widget-main.tar.gz'
        assert dev.name == 'octo-widget-feature%2Fdev.tar.gz'
        assert config.paths.get_version_path(dev).name == 'octo-widget-feature%2Fdev.tar.gz.version'

    def test_slash_and_dash_branches_do_not_share_cache(self, service, forge, config):
        dash_url = 'https://api.github.com/repos/octo/widget/git/refs/heads/feature-x'
        forge.serve(dash_url, ref_body('d' * 40, branch='feature-x'))
        forge.serve('https://github.com/octo/widget/archive/feature-x.tar.gz', b'dash tarball')
        service.fetch_head('octo', 'widget', 'feature-x')

        with pytest.raises(OfflineCacheMissError) as excinfo:
            service.fetch_head('octo', 'widget', 'feature/x', offline_only=True)

        assert excinfo.value.path == config.paths.get_archive_path('octo', 'widget', 'feature/x')
        assert config.paths.get_archive_path('octo', 'widget', 'feature-x').read_bytes() == b'dash tarball'

    def test_online_fetch_leaves_other_branch_cache(self, service, forge, config):
        other = config.paths.get_archive_path('octo', 'widget', 'feature/x')
        other.parent.mkdir(parents=True, exist_ok=True)
        other.write_bytes(b'slash tarball')
        forge.serve(
            'https://api.github.com/repos/octo/widget/git/refs/heads/feature-x',
            ref_body(branch='feature-x'),
        )
        forge.serve('https://github.com/octo/widget/archive/feature-x.tar.gz', b'dash tarball')

        service.fetch_head('octo', 'widget', 'feature-x')

        assert other.read_bytes() == b'slash tarball'
