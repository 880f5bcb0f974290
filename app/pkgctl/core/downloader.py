"""Streaming HTTP downloader.

Fetches an artifact, transparently inflates gzip/deflate responses and
computes the content digest in the same pass. The digest and the written
bytes always describe the decoded payload, never the wire bytes.
"""

from __future__ import annotations

import base64
import contextlib
import hashlib
import io
import logging
import re
import zlib
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import BinaryIO, Protocol
from urllib.parse import unquote_to_bytes, urlparse

import requests
import urllib3.exceptions
from requests.auth import AuthBase, HTTPBasicAuth, HTTPProxyAuth

from pkgctl import __version__
from pkgctl.core.errors import DownloadError, IntegrityError, NetworkError
from pkgctl.core.job import Job, JobTree

logger = logging.getLogger(__name__)

CHUNK_SIZE = 512 * 1024

# Credential prompts per request before giving up
MAX_AUTH_ATTEMPTS = 3

# Progress reported while the content length is unknown
UNKNOWN_LENGTH_PROGRESS = 0.5

_REALM_PATTERN = re.compile(r'realm="([^"]*)"', re.IGNORECASE)


class CredentialPrompt(Protocol):
    """Collaborator asking the user for credentials on HTTP 401/407."""

    def prompt_credentials(self, realm: str, proxy: bool) -> tuple[str, str] | None:
        """Return (username, password) or None if the user gave up."""
        ...


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Outcome of a download.

    Attributes:
        bytes_written: Number of decoded bytes written to the destination.
        digest: Lower-case hex digest of the decoded bytes, or None if no
            hash was requested or the download was cancelled.
        content_length: Length reported by the server or -1.
        mime_type: Content-Type reported by the server.
        content_disposition: Content-Disposition reported by the server.
    """

    bytes_written: int
    digest: str | None
    content_length: int = -1
    mime_type: str | None = None
    content_disposition: str | None = None


def verify_digest(expected: str, actual: str | None) -> None:
    """Compare two hex digests case-insensitively.

    Raises:
        IntegrityError: If the digests differ or the actual one is missing.
    """
    if actual is None or expected.strip().lower() != actual.strip().lower():
        msg = f"Hash sum (SHA) {actual} found, but {expected} was expected"
        raise IntegrityError(msg)


class Downloader:
    """HTTP downloader reporting progress through a :class:`Job`.

    Example:
        >>> downloader = Downloader()
        >>> job = JobTree().create_job("Download")
        >>> result = downloader.fetch(url, Path("file.zip"), "sha256", job=job)
        >>> result.digest
        '9f86d081884c7d659a2feaa0c55ad015a3bf4f1b2b0b822cd15d6c15b0f00a08'
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        credentials: CredentialPrompt | None = None,
        timeout: float = 60.0,
        user_agent: str | None = None,
        chunk_size: int = CHUNK_SIZE,
    ) -> None:
        self._session = session or requests.Session()
        self._credentials = credentials
        self._timeout = timeout
        self._user_agent = user_agent or f"pkgctl/{__version__}"
        self._chunk_size = chunk_size

    def fetch(
        self,
        url: str,
        destination: Path | BinaryIO,
        hash_algorithm: str | None = "sha1",
        use_cache: bool = True,
        job: Job | None = None,
    ) -> DownloadResult:
        """Download a URL into a file.

        The job is always completed. Partial content written before an
        error is left in place.

        Args:
            url: http(s) or data: URL.
            destination: Target path or binary file object.
            hash_algorithm: hashlib algorithm name or None to skip hashing.
            use_cache: If False, ask caches to revalidate.
            job: Job for progress reporting and cancellation.

        Returns:
            DownloadResult; ``digest`` is None if the job was cancelled.

        Raises:
            NetworkError: On connection errors or unexpected status codes.
            DownloadError: On read, decode or write errors.
        """
        if job is None:
            job = JobTree().create_job(f"Downloading {url}")
        try:
            if url.startswith("data:"):
                return self._fetch_data_url(job, url, destination, hash_algorithm)
            scheme = urlparse(url).scheme
            if scheme not in ("http", "https"):
                raise NetworkError(f"Unsupported URL scheme: {url}")
            return self._fetch_http(job, url, "GET", destination, hash_algorithm, use_cache)
        except DownloadError as e:
            job.set_error_message(str(e))
            raise
        finally:
            job.complete()

    def fetch_bytes(self, url: str, job: Job | None = None, use_cache: bool = True) -> bytes:
        """Download a URL into memory.

        Raises:
            DownloadError: If the download fails or is cancelled.
        """
        buffer = io.BytesIO()
        if job is None:
            job = JobTree().create_job(f"Downloading {url}")
        self.fetch(url, buffer, hash_algorithm=None, use_cache=use_cache, job=job)
        if job.is_cancelled():
            raise DownloadError(f"Download of {url} was cancelled")
        return buffer.getvalue()

    def download_to_temp(
        self,
        url: str,
        job: Job | None = None,
        hash_algorithm: str | None = "sha1",
        use_cache: bool = True,
    ) -> tuple[Path, DownloadResult] | None:
        """Download a URL into a new temporary file.

        The file is deleted on errors and on cancellation.

        Returns:
            (path, result) or None if the download was cancelled.

        Raises:
            DownloadError: If the download fails.
        """
        with NamedTemporaryFile(prefix="pkgctl-", suffix=".download", delete=False) as f:
            path = Path(f.name)
            try:
                result = self.fetch(url, f, hash_algorithm, use_cache, job)
            except DownloadError:
                f.close()
                path.unlink(missing_ok=True)
                raise
        if job is not None and job.is_cancelled():
            path.unlink(missing_ok=True)
            return None
        return path, result

    def get_content_length(self, url: str, job: Job | None = None) -> int:
        """Query the size of a resource with a HEAD request.

        Returns:
            Content length reported by the server or -1.

        Raises:
            NetworkError: On connection errors or unexpected status codes.
        """
        if job is None:
            job = JobTree().create_job(f"Querying {url}")
        try:
            return self._fetch_http(job, url, "HEAD", None, None, False).content_length
        except DownloadError as e:
            job.set_error_message(str(e))
            raise
        finally:
            job.complete()

    # -------------------------------------------------------------------------
    # HTTP
    # -------------------------------------------------------------------------

    def _fetch_http(
        self,
        job: Job,
        url: str,
        method: str,
        destination: Path | BinaryIO | None,
        hash_algorithm: str | None,
        use_cache: bool,
    ) -> DownloadResult:
        initial_title = job.title
        job.set_title(f"{initial_title} / Connecting")

        headers = {
            "Accept-Encoding": "gzip, deflate",
            "User-Agent": self._user_agent,
        }
        if not use_cache:
            headers["Cache-Control"] = "no-cache"
            headers["Pragma"] = "no-cache"

        response = self._open(job, method, url, headers)
        with response:
            job.set_progress(0.03)
            if not job.should_proceed():
                return DownloadResult(bytes_written=0, digest=None)

            job.set_title(f"{initial_title} / Downloading")
            content_encoding = response.headers.get("Content-Encoding", "").strip().lower()
            compressed = content_encoding in ("gzip", "deflate")
            job.set_progress(0.04)

            content_length = _parse_content_length(response.headers.get("Content-Length"))
            mime_type = response.headers.get("Content-Type")
            content_disposition = response.headers.get("Content-Disposition")
            job.set_progress(0.05)

            if method == "HEAD" or destination is None:
                job.set_progress(1)
                return DownloadResult(0, None, content_length, mime_type, content_disposition)

            sub = job.new_sub_job(0.95, "Reading the data")
            try:
                written, digest = self._read_data(
                    sub, response, destination, hash_algorithm, compressed, content_length
                )
            finally:
                if sub.error_message:
                    job.set_error_message(sub.error_message)

        if job.should_proceed():
            job.set_progress(1)
        return DownloadResult(written, digest, content_length, mime_type, content_disposition)

    def _open(
        self,
        job: Job,
        method: str,
        url: str,
        headers: dict[str, str],
    ) -> requests.Response:
        """Send the request, asking for credentials on 401/407."""
        auth: AuthBase | None = None
        for attempt in range(MAX_AUTH_ATTEMPTS + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    headers=headers,
                    auth=auth,
                    stream=True,
                    timeout=self._timeout,
                    allow_redirects=True,
                )
            except requests.RequestException as e:
                raise NetworkError(f"Cannot connect to {url}: {e}") from e

            job.set_progress(0.01)
            status = response.status_code
            if status == 200:
                return response

            response.close()
            can_prompt = self._credentials is not None and attempt < MAX_AUTH_ATTEMPTS
            if status in (401, 407) and can_prompt:
                proxy = status == 407
                header = "Proxy-Authenticate" if proxy else "WWW-Authenticate"
                realm = _parse_realm(response.headers.get(header, ""), url)
                logger.info("HTTP %s requires authentication (%d)", "proxy" if proxy else "server", status)
                credentials = self._credentials.prompt_credentials(realm, proxy)
                if credentials is None:
                    raise NetworkError("Cancelled by the user")
                auth = HTTPProxyAuth(*credentials) if proxy else HTTPBasicAuth(*credentials)
                continue

            raise NetworkError(f"Cannot handle HTTP status code {status}")

        # The loop either returns or raises
        raise NetworkError(f"Cannot handle HTTP status code {status}")

    def _read_data(
        self,
        job: Job,
        response: requests.Response,
        destination: Path | BinaryIO,
        hash_algorithm: str | None,
        compressed: bool,
        content_length: int,
    ) -> tuple[int, str | None]:
        """Copy the response body into the destination.

        Returns:
            (decoded bytes written, hex digest or None if cancelled).
        """
        initial_title = job.title
        hasher = _new_hasher(hash_algorithm)
        # 32 added to the window bits lets zlib detect gzip and zlib headers
        decompressor = zlib.decompressobj(zlib.MAX_WBITS | 32) if compressed else None
        already_read = 0
        written = 0

        try:
            with _open_destination(destination) as out:
                while job.should_proceed():
                    chunk = response.raw.read(self._chunk_size, decode_content=False)
                    if not chunk:
                        break

                    if decompressor is not None:
                        for data in self._inflate(decompressor, chunk):
                            written += _consume(data, out, hasher)
                    else:
                        written += _consume(chunk, out, hasher)

                    already_read += len(chunk)
                    if content_length > 0:
                        job.set_progress(already_read / content_length)
                        job.set_title(f"{initial_title} / {already_read:,} of {content_length:,} bytes")
                    else:
                        job.set_progress(UNKNOWN_LENGTH_PROGRESS)
                        job.set_title(f"{initial_title} / {already_read:,} bytes")

                if decompressor is not None and job.should_proceed():
                    written += _consume(decompressor.flush(), out, hasher)
                    if not decompressor.eof:
                        raise DownloadError("Compressed stream ended unexpectedly")
        except zlib.error as e:
            job.set_error_message(f"zlib error {e}")
            job.complete()
            raise DownloadError(f"zlib error {e}") from e
        except (OSError, urllib3.exceptions.HTTPError, requests.RequestException) as e:
            job.set_error_message(str(e))
            job.complete()
            raise NetworkError(f"Error reading data: {e}") from e
        except DownloadError as e:
            job.set_error_message(str(e))
            job.complete()
            raise

        digest: str | None = None
        if job.should_proceed():
            job.set_progress(1)
            if hasher is not None:
                digest = hasher.hexdigest().lower()
        job.complete()
        return written, digest

    def _inflate(self, decompressor: zlib._Decompress, chunk: bytes) -> Iterator[bytes]:
        """Decode one wire chunk in output pieces of at most chunk_size bytes."""
        data = decompressor.decompress(chunk, self._chunk_size)
        yield data
        while decompressor.unconsumed_tail and not decompressor.eof:
            yield decompressor.decompress(decompressor.unconsumed_tail, self._chunk_size)

    # -------------------------------------------------------------------------
    # data: URLs
    # -------------------------------------------------------------------------

    def _fetch_data_url(
        self,
        job: Job,
        url: str,
        destination: Path | BinaryIO,
        hash_algorithm: str | None,
    ) -> DownloadResult:
        header, sep, payload = url[len("data:") :].partition(",")
        if not sep:
            raise DownloadError("Invalid data: URL")
        try:
            if header.endswith(";base64"):
                data = base64.b64decode(payload, validate=True)
            else:
                data = unquote_to_bytes(payload)
        except ValueError as e:
            raise DownloadError(f"Invalid data: URL payload: {e}") from e

        hasher = _new_hasher(hash_algorithm)
        try:
            with _open_destination(destination) as out:
                written = _consume(data, out, hasher)
        except OSError as e:
            raise DownloadError(f"Error writing data: {e}") from e
        job.set_progress(1)
        mime_type = header.removesuffix(";base64") or "text/plain"
        digest = hasher.hexdigest().lower() if hasher is not None else None
        return DownloadResult(written, digest, len(data), mime_type)


def _new_hasher(hash_algorithm: str | None) -> hashlib._Hash | None:
    if not hash_algorithm:
        return None
    try:
        return hashlib.new(hash_algorithm)
    except ValueError as e:
        raise DownloadError(f"Unsupported hash algorithm: {hash_algorithm}") from e


def _consume(data: bytes, out: BinaryIO, hasher: hashlib._Hash | None) -> int:
    if not data:
        return 0
    if hasher is not None:
        hasher.update(data)
    out.write(data)
    return len(data)


@contextlib.contextmanager
def _open_destination(destination: Path | BinaryIO) -> Iterator[BinaryIO]:
    if isinstance(destination, Path):
        with open(destination, "wb") as f:
            yield f
    else:
        yield destination


def _parse_content_length(value: str | None) -> int:
    if value is None:
        return -1
    try:
        return int(value)
    except ValueError:
        return 0


def _parse_realm(header: str, url: str) -> str:
    match = _REALM_PATTERN.search(header)
    if match:
        return match.group(1)
    return urlparse(url).netloc
