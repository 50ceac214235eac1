"""
HTTP client for the BoardGameGeek XML API2.

Issues the outbound requests and maps transport and HTTP failures onto the
package error taxonomy. Retrying is left to callers (see
error_handling.call_with_retries), except for the 202 polling the
collection endpoint requires.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import requests

from ..config import (
    BGG_API_BASE_URL,
    BGG_API_TOKEN,
    COLLECTION_POLL_ATTEMPTS,
    COLLECTION_POLL_DELAY,
    REQUEST_INTERVAL,
    REQUEST_TIMEOUT,
    SEARCH_RESULT_LIMIT,
    USER_AGENT,
)
from ..error_handling import BGGHTTPError, CollectionNotReady, NetworkError, RateLimited
from ..models import CollectionItem, GameDetails, SearchResult
from .parser import parse_collection, parse_game_details, parse_search_results

logger = logging.getLogger(__name__)


class RequestThrottle:
    """
    Keeps a minimum interval between requests, shared by all threads
    using the same client.
    """

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._next_slot = 0.0

    def wait(self) -> None:
        if self.interval <= 0:
            return
        with self._lock:
            now = self._clock()
            slot = max(now, self._next_slot)
            self._next_slot = slot + self.interval
        delay = slot - now
        if delay > 0:
            self._sleep(delay)


class BGGClient:
    """
    Thin client over the BGG search, thing and collection endpoints.
    """

    def __init__(self, base_url: str = BGG_API_BASE_URL, api_token: Optional[str] = BGG_API_TOKEN,
                 timeout: float = REQUEST_TIMEOUT, request_interval: float = REQUEST_INTERVAL,
                 poll_attempts: int = COLLECTION_POLL_ATTEMPTS, poll_delay: float = COLLECTION_POLL_DELAY,
                 session: Optional[requests.Session] = None):
        """
        Initialize the BGG client.

        Args:
            base_url: XML API2 root
            api_token: Optional bearer token sent with every request
            timeout: Per-request timeout in seconds
            request_interval: Minimum seconds between outbound requests
            poll_attempts: How many times to ask for a queued collection
            poll_delay: Seconds to wait between collection polls
            session: Preconfigured requests session (mainly for tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.poll_attempts = max(1, poll_attempts)
        self.poll_delay = poll_delay
        self.throttle = RequestThrottle(request_interval)

        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})
        if api_token:
            self.session.headers.update({'Authorization': f"Bearer {api_token}"})

    def _get(self, endpoint: str, params: Dict) -> requests.Response:
        """
        Perform one GET and classify failures.

        Returns:
            The response for any 2xx status (including 202)

        Raises:
            NetworkError: Connection problems, timeouts and 5xx answers
            RateLimited: HTTP 429 or a rate-limit message in the body
            BGGHTTPError: Other 4xx answers
        """
        url = f"{self.base_url}/{endpoint}"
        self.throttle.wait()
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise NetworkError(f"Timed out calling {url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        status = response.status_code
        if status == 429:
            raise RateLimited(retry_after=self._retry_after(response))
        if status >= 500:
            raise NetworkError(f"BGG responded with status {status} for {endpoint}")
        if status >= 400:
            raise BGGHTTPError(f"BGG responded with status {status} for {endpoint}", status_code=status)
        if b"Rate limit exceeded" in response.content[:512]:
            raise RateLimited(retry_after=self._retry_after(response))
        return response

    @staticmethod
    def _retry_after(response: requests.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def search(self, term: str, limit: int = SEARCH_RESULT_LIMIT) -> List[SearchResult]:
        """
        Search BGG for board games by name.

        Args:
            term: Free-text search term
            limit: Maximum number of results returned

        Returns:
            Up to `limit` results; empty when nothing matches
        """
        term = (term or "").strip()
        if not term:
            return []
        logger.info(f"Searching BGG for: {term}")
        response = self._get("search", {'query': term, 'type': 'boardgame'})
        results = parse_search_results(response.content, limit=limit)
        logger.info(f"Found {len(results)} games from BGG search")
        return results

    def fetch_details(self, bgg_id: int) -> GameDetails:
        """
        Fetch the detail record of one game.

        Raises:
            NotFound: BGG has no item with this id
            ParseError: The response lacks the id or primary name
        """
        logger.debug(f"Fetching BGG details for ID: {bgg_id}")
        response = self._get("thing", {'id': bgg_id, 'stats': 1})
        return parse_game_details(response.content, bgg_id=int(bgg_id))

    def fetch_collection(self, username: str, owned_only: bool = True) -> List[CollectionItem]:
        """
        Fetch a user's collection listing.

        BGG answers 202 while it prepares the export; the request is
        repeated until the listing is ready or polling is exhausted.

        Args:
            username: BGG username
            owned_only: Restrict the listing to owned games

        Raises:
            CollectionNotReady: Still queued after all polls
            NotFound: Unknown username
        """
        params = {'username': username, 'stats': 1}
        if owned_only:
            params['own'] = 1

        for attempt in range(self.poll_attempts):
            response = self._get("collection", params)
            if response.status_code != 202 and response.content.strip():
                items = parse_collection(response.content)
                logger.info(f"Found {len(items)} games in BGG collection of {username}")
                return items
            logger.info(f"Collection for {username} is queued by BGG [{attempt + 1}/{self.poll_attempts}]")
            if attempt < self.poll_attempts - 1:
                time.sleep(self.poll_delay)

        raise CollectionNotReady(
            f"BGG is still preparing the collection of '{username}'. Please try again in a few moments."
        )

    def close(self) -> None:
        self.session.close()
