from __future__ import annotations

import httpx
from pydantic import BaseModel, ConfigDict

from ocr_gateway.dto.acquisition import FetchResult
from ocr_gateway.dto.error_response import ErrorKind, Failure
from ocr_gateway.settings import settings
from ocr_gateway.utils.utils import format_size_limit, setup_logging

DEFAULT_PORTS: dict[str, int] = {"https": 443, "http": 80}
SUPPORTED_URL_PREFIXES: tuple[str, ...] = ("https://", "http://")

UNSUPPORTED_SCHEME_MESSAGE = "Invalid URL scheme. Use http:// or https://"
TLS_UNAVAILABLE_MESSAGE = "HTTPS not supported (TLS support is not available)"


class TlsUnavailableError(Exception):
    """Raised from the request hook when a redirect leads to https without TLS."""


class RemoteTarget(BaseModel):
    """Where a remote image lives, split into its transport parts."""

    model_config = ConfigDict(frozen=True)

    scheme: str
    host: str
    port: int
    path: str = "/"

    @property
    def use_tls(self) -> bool:
        return self.scheme == "https"

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"


def parse_remote_url(url: str) -> RemoteTarget:
    """ Splits an http(s) URL into scheme, host, port and path.

    Only the exact lowercase prefixes `https://` and `http://` are accepted.
    The path defaults to `/` and keeps its query string; the port defaults
    to 443 for https and 80 for http.

    Args:
        url (str): absolute URL as received from the client

    Raises:
        ValueError: unsupported scheme, missing host or invalid port

    Returns:
        RemoteTarget: the parsed target
    """

    if not url.startswith(SUPPORTED_URL_PREFIXES):
        raise ValueError(UNSUPPORTED_SCHEME_MESSAGE)

    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ValueError(str(exc)) from exc

    if not parsed.host:
        raise ValueError("missing host")

    scheme = "https" if url.startswith("https://") else "http"
    path = parsed.raw_path.decode("ascii") or "/"
    if not path.startswith("/"):
        path = "/" + path

    return RemoteTarget(scheme=scheme,
                        host=parsed.host,
                        port=parsed.port or DEFAULT_PORTS[scheme],
                        path=path)


class RemoteFetcher:
    """ Downloads images over http(s) with fixed timeouts and a size ceiling.

    Whether https can be used is decided once, at construction time, through
    the `tls_available` capability flag.
    """

    def __init__(self,
                 tls_available: bool | None = None,
                 max_bytes: int | None = None,
                 connect_timeout: float | None = None,
                 read_timeout: float | None = None,
                 follow_redirects: bool | None = None,
                 transport: httpx.BaseTransport | None = None) -> None:
        self.log = setup_logging(component_name="fetcher", log_level=settings.LOG_LEVEL)
        self.tls_available = settings.TLS_AVAILABLE if tls_available is None else tls_available
        self.max_bytes = settings.MAX_PAYLOAD_BYTES if max_bytes is None else max_bytes

        connect_timeout = settings.OCR_SERVICE_FETCH_CONNECT_TIMEOUT if connect_timeout is None else connect_timeout
        read_timeout = settings.OCR_SERVICE_FETCH_READ_TIMEOUT if read_timeout is None else read_timeout
        if follow_redirects is None:
            follow_redirects = settings.OCR_SERVICE_FETCH_FOLLOW_REDIRECTS

        self.client = httpx.Client(timeout=httpx.Timeout(read_timeout, connect=connect_timeout),
                                   follow_redirects=follow_redirects,
                                   transport=transport,
                                   event_hooks={"request": [self._check_transport]})

        self.log.debug("remote fetcher ready | tls: " + str(self.tls_available)
                       + " | max bytes: " + str(self.max_bytes))

    def _check_transport(self, request: httpx.Request) -> None:
        # runs for the first request and for every redirect hop
        if request.url.scheme == "https" and not self.tls_available:
            raise TlsUnavailableError(TLS_UNAVAILABLE_MESSAGE)

    def _fail(self, kind: ErrorKind, message: str, status_code: int | None = None) -> FetchResult:
        self.log.warning(message)
        return FetchResult(status_code=status_code, failure=Failure(kind=kind, message=message))

    def fetch(self, url: str) -> FetchResult:
        """ Fetches the raw bytes behind `url`.

        Never raises: every problem is returned as a classified failure.

        Args:
            url (str): http(s) URL of the image

        Returns:
            FetchResult: content and status on success, failure otherwise
        """

        if not url.startswith(SUPPORTED_URL_PREFIXES):
            return self._fail(ErrorKind.UNSUPPORTED_SCHEME, UNSUPPORTED_SCHEME_MESSAGE)

        try:
            target = parse_remote_url(url)
        except ValueError as exc:
            return self._fail(ErrorKind.FETCH_FAILED, "Invalid URL: " + str(exc))

        if target.use_tls and not self.tls_available:
            return self._fail(ErrorKind.TLS_UNAVAILABLE, TLS_UNAVAILABLE_MESSAGE)

        too_large_message = "Image size exceeds " + format_size_limit(self.max_bytes) + " limit"

        self.log.info("Fetching image from URL: " + target.url)

        try:
            with self.client.stream("GET", target.url) as response:
                if response.status_code != 200:
                    return self._fail(ErrorKind.FETCH_FAILED,
                                      f"Failed to fetch image: HTTP {response.status_code}",
                                      status_code=response.status_code)

                declared_length = response.headers.get("content-length", "")
                if declared_length.isdigit() and int(declared_length) > self.max_bytes:
                    return self._fail(ErrorKind.PAYLOAD_TOO_LARGE, too_large_message, status_code=200)

                content = bytearray()
                for chunk in response.iter_bytes():
                    content.extend(chunk)
                    if len(content) > self.max_bytes:
                        return self._fail(ErrorKind.PAYLOAD_TOO_LARGE, too_large_message, status_code=200)

        except TlsUnavailableError as exc:
            return self._fail(ErrorKind.TLS_UNAVAILABLE, str(exc))
        except httpx.HTTPError as exc:
            return self._fail(ErrorKind.FETCH_FAILED, "Failed to fetch image: " + (str(exc) or type(exc).__name__))

        self.log.info(f"Fetched {len(content)} bytes from {target.url}")

        return FetchResult(content=bytes(content), status_code=200)

    def close(self) -> None:
        self.client.close()
