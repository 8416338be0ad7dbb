# Copyright 2025 jiangyouhua
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""HTTP client façade for JYHNet.

NetworkClient issues GET, POST and download requests and reports every
outcome as a Result: Success with the decoded payload, or Failure with a
NetError classified into one of the NetErrorKind values. Request failures
are never raised to the caller.

Each request goes through the same pipeline:

1. Reachability pre-flight (local, no traffic). Offline -> NO_NETWORK.
2. Request construction. Unusable address or params -> INVALID_URL.
3. Transport through a fresh ``requests.Session`` with retries disabled.
   Transport exceptions -> REQUEST_ERROR or INVALID_RESPONSE.
4. Status check. Anything outside 200-299 -> RESPONSE_ERROR(code).
5. Payload. Empty body -> EMPTY_DATA; undecodable body -> PARSING_FAILED.

The asynchronous operations (get, post, download) run the pipeline on a
worker pool, invoke the completion callback exactly once on the worker
thread, and return a Future resolving to the same Result. The synchronous
forms (request, fetch_file) run it on the calling thread.

Example:
    Fetching the category list:
        ```python
        from jyhnet.client import NetworkClient
        from jyhnet.models import Back, Category

        def on_done(result):
            if result.is_failure:
                print(result.error)
            elif not result.value.ok:
                print(f"backend status {result.value.status}")
            else:
                for category in result.value.data:
                    print(category.name)

        with NetworkClient().set_timeout(15) as client:
            client.get(
                "https://muutr.com/back",
                {"table": "category", "handle": "get"},
                on_done,
                decoder=Back.decoder(Category),
            ).result()
        ```

Note:
    Download progress is delivered through the client's dispatcher so a
    host application can marshal it onto its main thread. Values are in
    [0.0, 1.0], strictly increasing, and end with 1.0 before success.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import http.client
import json
import os
from pathlib import Path
import tempfile
import threading
from typing import Any, Callable, Mapping
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from jyhnet.config.loader import ClientConfig
from jyhnet.dispatch import Dispatcher, ImmediateDispatcher
from jyhnet.exceptions import JYHNetError, NetError, NetErrorKind
from jyhnet.logging import Logger, get_global_logger
from jyhnet.reachability import Reachability
from jyhnet.request_builder import build_get_request, build_request
from jyhnet.results import Failure, Result, Success

Callback = Callable[[Result], None]
Progress = Callable[[float], None]


class CancellationToken:
    """Flag a caller sets to abandon a request.

    The client checks the token before the transport call and between
    download chunks. A cancelled request completes with CANCELLED.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProgressObservation:
    """Handle tying a progress callback to the running download.

    Reports are clamped to [0.0, 1.0] and dropped unless they advance past
    the last reported value. Once invalidated, nothing more is delivered.
    """

    def __init__(self, progress: Progress, dispatcher: Dispatcher) -> None:
        self._progress = progress
        self._dispatcher = dispatcher
        self._last = -1.0
        self._valid = True
        self._lock = threading.Lock()

    @property
    def valid(self) -> bool:
        return self._valid

    def report(self, fraction: float) -> None:
        fraction = min(max(fraction, 0.0), 1.0)
        with self._lock:
            if not self._valid or fraction <= self._last:
                return
            self._last = fraction
        self._dispatcher.post(lambda: self._deliver(fraction))

    def _deliver(self, fraction: float) -> None:
        # Re-check on the main context: the handle may have been released
        # while the call was queued.
        if self._valid:
            self._progress(fraction)

    def invalidate(self) -> None:
        with self._lock:
            self._valid = False


def make_session(config: ClientConfig) -> requests.Session:
    """
    Create a requests.Session for a single request.

    - Retries are disabled; every failure is terminal.
    - TLS verification follows the config.
    """
    s = requests.Session()
    no_retries = Retry(total=0, read=False, raise_on_status=False)
    s.mount("http://", HTTPAdapter(max_retries=no_retries))
    s.mount("https://", HTTPAdapter(max_retries=no_retries))
    s.verify = config.verify_tls
    return s


def _find_in_chain(
    err: BaseException, types: tuple[type[BaseException], ...]
) -> BaseException | None:
    """Search an exception, its args and its cause/context chain for ``types``."""
    pending: list[BaseException] = [err]
    seen: set[int] = set()
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, types):
            return current
        pending.extend(a for a in current.args if isinstance(a, BaseException))
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                pending.append(linked)
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            pending.append(reason)
    return None


def classify_transport_error(err: requests.RequestException, address: str) -> NetError:
    """Map an exception raised by requests to a NetError."""
    if isinstance(
        err,
        (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ),
    ):
        return NetError(NetErrorKind.INVALID_URL, address, cause=err)
    if isinstance(
        err,
        (
            requests.exceptions.ChunkedEncodingError,
            requests.exceptions.ContentDecodingError,
            requests.exceptions.InvalidHeader,
        ),
    ):
        return NetError(NetErrorKind.INVALID_RESPONSE, address, cause=err)

    # A peer that hangs up is a transport failure; any other HTTP parse
    # failure (bad status line, oversized headers) is an invalid response.
    if _find_in_chain(err, (http.client.RemoteDisconnected,)) is None:
        protocol_err = _find_in_chain(err, (http.client.HTTPException,))
        if protocol_err is not None:
            return NetError(NetErrorKind.INVALID_RESPONSE, address, cause=err)
    return NetError(NetErrorKind.REQUEST_ERROR, address, cause=err)


def _check_status(response: requests.Response, address: str) -> None:
    status = response.status_code
    if isinstance(status, bool) or not isinstance(status, int):
        raise NetError(NetErrorKind.INVALID_RESPONSE, address)
    if not 200 <= status <= 299:
        raise NetError(NetErrorKind.RESPONSE_ERROR, address, status_code=status)


def _decode(content: bytes, decoder: Callable[[Any], Any] | None, address: str) -> Any:
    try:
        payload = json.loads(content)
    except ValueError as err:
        raise NetError(NetErrorKind.PARSING_FAILED, address, cause=err) from err
    if decoder is None:
        return payload
    try:
        return decoder(payload)
    except Exception as err:  # any decoder failure counts as a schema mismatch
        raise NetError(NetErrorKind.PARSING_FAILED, address, cause=err) from err


def _suffix_from_url(url: str) -> str:
    """File suffix of the URL path (".zip", ...), or "" when there is none."""
    return Path(urlsplit(url).path).suffix


def _content_length(response: requests.Response) -> int:
    try:
        return max(int(response.headers.get("Content-Length", "0") or 0), 0)
    except ValueError:
        return 0


class NetworkClient:
    """Issues GET, POST and download requests and classifies their outcome.

    Args:
        config: Client settings. Defaults to ``ClientConfig()``.
        reachability: Object with a ``have_network()`` method. Defaults to a
            Reachability probing the configured address.
        dispatcher: Where progress callbacks run. Defaults to
            ImmediateDispatcher, which calls them on the worker thread. A
            host with a main loop passes a QueueDispatcher and drains it
            there (see jyhnet.dispatch).
        logger: Logger for request tracing. Defaults to the global logger.
        session_factory: Builds the requests.Session used for one request.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        reachability: Any = None,
        dispatcher: Dispatcher | None = None,
        logger: Logger | None = None,
        session_factory: Callable[[ClientConfig], requests.Session] = make_session,
    ) -> None:
        self._config = config or ClientConfig()
        self._reachability = reachability or Reachability(
            self._config.probe_host, self._config.probe_port
        )
        self._dispatcher: Dispatcher = dispatcher or ImmediateDispatcher()
        self._logger = logger
        self._session_factory = session_factory
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()
        self._observation: ProgressObservation | None = None
        self._closed = False

    # -------------------------------
    # Configuration
    # -------------------------------

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def timeout(self) -> float:
        return self._config.timeout

    def set_timeout(self, timeout: float) -> NetworkClient:
        """Set the timeout for requests built from now on; returns self.

        Raises:
            ConfigError: If timeout is not a positive number.
        """
        self._config = self._config.with_timeout(timeout)
        return self

    @property
    def logger(self) -> Logger:
        return self._logger if self._logger is not None else get_global_logger()

    @property
    def observation(self) -> ProgressObservation | None:
        """The progress handle of the most recent observed download."""
        return self._observation

    def have_network(self) -> bool:
        """Run the local reachability check."""
        return bool(self._reachability.have_network())

    def _default_headers(self) -> dict[str, str]:
        return {"User-Agent": self._config.user_agent, **self._config.headers}

    # -------------------------------
    # Synchronous pipeline
    # -------------------------------

    def _preflight(self, address: str) -> None:
        if not self.have_network():
            self.logger.verbose("REACH", f"No network, skipping {address}")
            raise NetError(NetErrorKind.NO_NETWORK, address)

    @staticmethod
    def _check_cancel(cancel: CancellationToken | None, address: str) -> None:
        if cancel is not None and cancel.cancelled:
            raise NetError(NetErrorKind.CANCELLED, address)

    def _send(
        self,
        session: requests.Session,
        prepared: requests.PreparedRequest,
        address: str,
        *,
        stream: bool = False,
    ) -> requests.Response:
        self.logger.verbose("HTTP", f"{prepared.method} {prepared.url}")
        try:
            response = session.send(
                prepared, timeout=self._config.timeout, allow_redirects=True, stream=stream
            )
        except requests.RequestException as err:
            self.logger.verbose("HTTP", f"Transport error: {err}")
            raise classify_transport_error(err, address) from err
        self.logger.verbose("HTTP", f"Response: {response.status_code} {response.reason}")
        return response

    def request(
        self,
        method: str,
        address: str,
        params: Mapping[str, Any] | None = None,
        decoder: Callable[[Any], Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> Result:
        """Run a GET or POST on the calling thread and return its Result.

        Args:
            method: "GET" or "POST".
            address: Target URL.
            params: Query items (GET) or JSON body (POST).
            decoder: Turns the parsed JSON into the typed value; None returns
                the parsed JSON unchanged. Anything it raises becomes
                PARSING_FAILED.
            cancel: Optional cancellation token.

        Returns:
            Success with the decoded value, or Failure with a NetError.

        Raises:
            ValueError: If method is neither GET nor POST.
        """
        try:
            self._preflight(address)
            prepared = build_request(method, address, params, self._default_headers())
            self._check_cancel(cancel, address)
            with self._session_factory(self._config) as session:
                response = self._send(session, prepared, address)
                _check_status(response, address)
                content = response.content
            if not content:
                raise NetError(NetErrorKind.EMPTY_DATA, address)
            self.logger.debug("HTTP", f"Body: {content[:200]!r}")
            return Success(_decode(content, decoder, address))
        except NetError as err:
            return Failure(err)
        except requests.RequestException as err:
            # Raised while reading the body after the status line.
            return Failure(classify_transport_error(err, address))

    def fetch_file(
        self,
        address: str,
        progress: Progress | None = None,
        cancel: CancellationToken | None = None,
    ) -> Result:
        """Download ``address`` into a temporary file on the calling thread.

        Args:
            address: Target URL.
            progress: Optional callback receiving completion fractions,
                delivered through the client's dispatcher.
            cancel: Optional cancellation token, checked between chunks.

        Returns:
            Success with the Path of the temporary file, or Failure. The
            caller owns the file and should move or delete it.
        """
        observation = None
        if progress is not None:
            observation = ProgressObservation(progress, self._dispatcher)
            with self._lock:
                if self._observation is not None:
                    self._observation.invalidate()
                self._observation = observation

        try:
            self._preflight(address)
            prepared = build_get_request(address, None, self._default_headers())
            self._check_cancel(cancel, address)
            with self._session_factory(self._config) as session:
                response = self._send(session, prepared, address, stream=True)
                with response:
                    _check_status(response, address)
                    path = self._stream_to_file(response, address, observation, cancel)
        except NetError as err:
            return Failure(err)

        if observation is not None:
            observation.report(1.0)
        return Success(path)

    def _stream_to_file(
        self,
        response: requests.Response,
        address: str,
        observation: ProgressObservation | None,
        cancel: CancellationToken | None,
    ) -> Path:
        target_dir = self._config.download_dir
        try:
            if target_dir is not None:
                target_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(
                prefix="jyhnet-", suffix=_suffix_from_url(response.url or address), dir=target_dir
            )
        except OSError as err:
            self.logger.warning("FILE", f"Cannot create download file in {target_dir}: {err}")
            raise NetError(NetErrorKind.REQUEST_ERROR, address, cause=err) from err
        path = Path(name)
        total = _content_length(response)
        downloaded = 0
        self.logger.verbose("FILE", f"Downloading to: {path}")

        try:
            with os.fdopen(fd, "wb") as f:
                for chunk in response.iter_content(chunk_size=self._config.chunk_size):
                    self._check_cancel(cancel, address)
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)
                    if observation is not None and total:
                        observation.report(downloaded / total)
            if downloaded == 0:
                raise NetError(NetErrorKind.EMPTY_DATA, address)
        except requests.RequestException as err:
            path.unlink(missing_ok=True)
            raise classify_transport_error(err, address) from err
        except OSError as err:
            path.unlink(missing_ok=True)
            raise NetError(NetErrorKind.REQUEST_ERROR, address, cause=err) from err
        except NetError:
            path.unlink(missing_ok=True)
            raise

        self.logger.verbose("FILE", f"Download complete: {path} ({downloaded} bytes)")
        return path

    # -------------------------------
    # Asynchronous operations
    # -------------------------------

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._closed:
                raise JYHNetError("client is closed")
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.max_workers,
                    thread_name_prefix="jyhnet",
                )
            return self._executor

    def _submit(self, work: Callable[[], Result], back: Callback | None) -> Future:
        def run() -> Result:
            result = work()
            if back is not None:
                back(result)
            return result

        return self._pool().submit(run)

    def get(
        self,
        address: str,
        params: Mapping[str, Any] | None = None,
        back: Callback | None = None,
        *,
        decoder: Callable[[Any], Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> Future:
        """GET ``address`` with ``params`` as query items, asynchronously.

        ``back`` is called exactly once with the Result; the returned Future
        resolves to the same Result after the callback returns.
        """
        return self._submit(
            lambda: self.request("GET", address, params, decoder, cancel), back
        )

    def post(
        self,
        address: str,
        params: Mapping[str, Any] | None = None,
        back: Callback | None = None,
        *,
        decoder: Callable[[Any], Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> Future:
        """POST ``params`` as a JSON body to ``address``, asynchronously."""
        return self._submit(
            lambda: self.request("POST", address, params, decoder, cancel), back
        )

    def download(
        self,
        address: str,
        back: Callback | None = None,
        progress: Progress | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> Future:
        """Download ``address`` to a temporary file, asynchronously."""
        return self._submit(lambda: self.fetch_file(address, progress, cancel), back)

    # -------------------------------
    # Lifetime
    # -------------------------------

    def close(self, wait: bool = True) -> None:
        """Release the progress handle and stop the worker pool."""
        with self._lock:
            self._closed = True
            if self._observation is not None:
                self._observation.invalidate()
                self._observation = None
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def __enter__(self) -> NetworkClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# Process-wide client, created on first use.
_shared_client: NetworkClient | None = None
_shared_lock = threading.Lock()


def get_shared_client() -> NetworkClient:
    """Return the process-wide client, creating it with defaults if needed."""
    global _shared_client
    with _shared_lock:
        if _shared_client is None:
            _shared_client = NetworkClient()
        return _shared_client


def set_shared_client(client: NetworkClient | None) -> None:
    """Replace the process-wide client; None drops it.

    The previous client is not closed.
    """
    global _shared_client
    with _shared_lock:
        _shared_client = client
