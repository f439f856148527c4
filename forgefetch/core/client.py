from pathlib import Path

import requests
import structlog
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from forgefetch.core.errors import DownloadError

logger = structlog.get_logger('client')

CHUNK_SIZE = 64 * 1024


def get_http_client(
    token: str | None = None,
    retries: int = 3,
    pool_size: int = 4,
) -> requests.Session:
    """
    Returns a requests session with retry logic.

    Responses are never cached at the HTTP layer: pinned archives live in the
    download cache and head fetches must always see upstream.
    """
    session = requests.Session()
    session.headers.update({'User-Agent': 'forgefetch'})
    if token:
        session.headers.update({'Authorization': f"Bearer {token}"})

    def logging_hook(response, *args, **kwargs):
        # Streaming bodies must not be read here, so the size comes from headers.
        log_kwargs = {
            'method': response.request.method,
            'url': response.url,
            'status': response.status_code,
            'content_length': response.headers.get('Content-Length'),
            'elapsed': f"{response.elapsed.total_seconds():.3f}s",
        }

        remaining = response.headers.get('X-RateLimit-Remaining')
        limit = response.headers.get('X-RateLimit-Limit')
        if remaining and limit:
            log_kwargs['ratelimit'] = f"{remaining}/{limit}"

        logger.debug('HTTP Request', **log_kwargs)
    session.hooks['response'].append(logging_hook)

    retry_strategy = Retry(
        total=retries,
        backoff_factor=1,
        status_forcelist=[500, 502, 503, 504],
        raise_on_status=False,
    )

    adapter = HTTPAdapter(
        pool_connections=pool_size,
        pool_maxsize=pool_size,
        max_retries=retry_strategy,
    )

    session.mount('https://', adapter)
    session.mount('http://', adapter)

    logger.debug('Initialized HTTP Client', retries=retries)

    return session


def stream_to_file(
    session: requests.Session,
    url: str,
    dest: Path,
    timeout: int = 60,
) -> int:
    """
    Download `url` into `dest`, replacing any existing file.

    Any non-200 status or transport failure raises DownloadError and removes
    whatever was written to `dest`.

    Returns:
        Number of bytes written.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    written = 0
    try:
        response = session.get(url, stream=True, timeout=timeout)
        try:
            if response.status_code != 200:
                raise DownloadError(
                    f"Downloading {url}... Failed. Status: {response.status_code}",
                    url=url, status=response.status_code,
                )
            with open(dest, 'wb') as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)
        finally:
            response.close()
    except requests.RequestException as e:
        dest.unlink(missing_ok=True)
        raise DownloadError(
            f"Downloading {url}... Failed. Status: {e}",
            url=url, status=type(e).__name__,
        ) from e
    except (DownloadError, OSError):
        dest.unlink(missing_ok=True)
        raise

    logger.debug('Downloaded', url=url, path=str(dest), size=written)
    return written
