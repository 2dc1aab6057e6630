"""MTA GTFS-Realtime feed fetcher with caching, retry, and cancellation."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

import requests

from .cache import FeedCache
from .config import FeedConfig
from .decode import DecodedFeed, decode_feed
from .errors import FeedCancelledError, FeedError, FeedTransportError
from .models import FeedEndpoint

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Cooperative cancellation shared between a caller and in-flight fetches.

    cancel() sets the flag and runs registered callbacks (fetches register
    callbacks that stop waiting on a pending request and close an open
    response).
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds. Returns True if cancelled meanwhile."""
        return self._event.wait(timeout)

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Run callback on cancel. Runs it immediately if already cancelled.

        Returns:
            A function that unregisters the callback.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)
        callback()
        return lambda: None

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)


@dataclass
class BatchResult:
    """Outcome of fetch_many. Both maps iterate in request order."""
    results: Dict[FeedEndpoint, DecodedFeed] = field(default_factory=dict)
    errors: Dict[FeedEndpoint, Exception] = field(default_factory=dict)

    @property
    def all_failed(self) -> bool:
        return bool(self.errors) and not self.results


class FeedFetcher:
    """Fetches and decodes MTA GTFS-Realtime feeds."""

    def __init__(
        self,
        config: Optional[FeedConfig] = None,
        cache: Optional[FeedCache] = None,
        session: Optional[requests.Session] = None,
        max_workers: int = 8,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Feed settings. Defaults to FeedConfig.from_env().
            cache: Cache to read and write. Defaults to a fresh FeedCache.
            session: HTTP session. Defaults to a new requests.Session.
            max_workers: Upper bound on concurrent endpoint fetches.
        """
        self.config = config if config is not None else FeedConfig.from_env()
        self.cache = cache if cache is not None else FeedCache()
        self._session = session if session is not None else requests.Session()
        self._max_workers = max_workers

    def fetch(
        self,
        endpoint: FeedEndpoint,
        token: Optional[CancellationToken] = None,
        cache_ttl_ms: Optional[int] = None,
        no_retry: bool = False,
    ) -> DecodedFeed:
        """
        Fetch and decode a single feed.

        Args:
            endpoint: Feed to fetch.
            token: Optional cancellation token.
            cache_ttl_ms: Serve from cache when the entry is younger than this.
                0 bypasses the cache. Defaults to config.cache_ttl_ms.
            no_retry: Skip retries.

        Returns:
            The decoded feed.

        Raises:
            FeedTransportError: Non-2xx status or network failure.
            FeedDecodeError: Body is not a valid FeedMessage.
            FeedCancelledError: The token was cancelled.
        """
        ttl_ms = self.config.cache_ttl_ms if cache_ttl_ms is None else cache_ttl_ms
        cached = self.cache.get_fresh(endpoint, ttl_ms)
        if cached is not None:
            return cached

        retries = 0 if no_retry else self.config.max_retries
        feed = self._fetch_with_retry(endpoint, token, retries)
        if token is not None and token.cancelled:
            raise FeedCancelledError(endpoint)
        self.cache.put(endpoint, feed)
        return feed

    def fetch_many(
        self,
        endpoints: Iterable[FeedEndpoint],
        token: Optional[CancellationToken] = None,
        cache_ttl_ms: Optional[int] = None,
        no_retry: bool = False,
    ) -> BatchResult:
        """
        Fetch several feeds concurrently.

        Never raises for a failing endpoint: each one lands in either
        results or errors. Duplicate endpoints are fetched once.
        """
        ordered = list(dict.fromkeys(endpoints))
        batch = BatchResult()
        if not ordered:
            return batch

        workers = min(len(ordered), self._max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="feed-fetch") as executor:
            futures = [
                (endpoint, executor.submit(self.fetch, endpoint, token, cache_ttl_ms, no_retry))
                for endpoint in ordered
            ]
            for endpoint, future in futures:
                try:
                    batch.results[endpoint] = future.result()
                except Exception as e:
                    logger.debug(f"Feed {endpoint.value} failed: {e}")
                    batch.errors[endpoint] = e

        logger.debug(f"Fetched {len(batch.results)}/{len(ordered)} feeds")
        return batch

    def _fetch_with_retry(
        self,
        endpoint: FeedEndpoint,
        token: Optional[CancellationToken],
        retries: int,
    ) -> DecodedFeed:
        last_error: Optional[FeedError] = None

        for attempt in range(retries + 1):
            try:
                return self._fetch_and_decode(endpoint, token)
            except FeedCancelledError:
                raise
            except FeedError as e:
                last_error = e
                if token is not None and token.cancelled:
                    raise FeedCancelledError(endpoint) from e

                if attempt < retries:
                    delay = self.config.retry_delay_ms * (attempt + 1) / 1000
                    logger.warning(f"{e}; retrying in {delay:.1f}s (attempt {attempt + 1}/{retries})")
                    self._backoff(endpoint, delay, token)

        raise last_error

    @staticmethod
    def _backoff(endpoint: FeedEndpoint, delay: float, token: Optional[CancellationToken]) -> None:
        if token is None:
            time.sleep(delay)
        elif token.wait(delay):
            raise FeedCancelledError(endpoint)

    def _fetch_and_decode(self, endpoint: FeedEndpoint, token: Optional[CancellationToken]) -> DecodedFeed:
        if token is not None and token.cancelled:
            raise FeedCancelledError(endpoint)

        url = self.config.url_for(endpoint)
        logger.debug(f"Fetching {url}")
        try:
            response = self._send(endpoint, url, token)
        except requests.RequestException as e:
            if token is not None and token.cancelled:
                raise FeedCancelledError(endpoint) from e
            raise FeedTransportError(endpoint, reason=str(e)) from e

        unregister = token.register(response.close) if token is not None else None
        try:
            if not 200 <= response.status_code < 300:
                raise FeedTransportError(endpoint, status=response.status_code)
            data = self._read_body(response, endpoint, token)
        finally:
            if unregister is not None:
                unregister()
            response.close()

        # A closed response reads as a short or empty body
        if token is not None and token.cancelled:
            raise FeedCancelledError(endpoint)
        return decode_feed(data, endpoint)

    def _get(self, url: str) -> requests.Response:
        return self._session.get(
            url,
            headers=self.config.headers(),
            timeout=self.config.request_timeout_s,
            stream=True,
        )

    def _send(self, endpoint: FeedEndpoint, url: str, token: Optional[CancellationToken]) -> requests.Response:
        """
        Issue the GET, returning as soon as the token is cancelled.

        requests cannot abort a pending connect or header read, so with a
        token the request runs on its own thread. An abandoned request's
        response is closed whenever it arrives.
        """
        if token is None:
            return self._get(url)

        done = threading.Event()
        outcome = {}

        def run():
            try:
                outcome["response"] = self._get(url)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()
            if token.cancelled and "response" in outcome:
                outcome["response"].close()

        unregister = token.register(done.set)
        try:
            threading.Thread(target=run, name=f"feed-get-{endpoint.name}", daemon=True).start()
            done.wait()
        finally:
            unregister()

        if token.cancelled:
            if "response" in outcome:
                outcome["response"].close()
            raise FeedCancelledError(endpoint)
        if "error" in outcome:
            raise outcome["error"]
        return outcome["response"]

    def _read_body(self, response, endpoint: FeedEndpoint, token: Optional[CancellationToken]) -> bytes:
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=self.config.chunk_size):
                if token is not None and token.cancelled:
                    raise FeedCancelledError(endpoint)
                chunks.append(chunk)
        except FeedCancelledError:
            raise
        except Exception as e:
            # Closing the response from cancel() surfaces as an arbitrary read error
            if token is not None and token.cancelled:
                raise FeedCancelledError(endpoint) from e
            if isinstance(e, requests.RequestException):
                raise FeedTransportError(endpoint, reason=str(e)) from e
            raise
        return b"".join(chunks)
