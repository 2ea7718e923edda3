"""
Geoapify geocoding API wrapper and the retrying geocode client.

GeoapifyProvider performs exactly one HTTP call per search.
GeocodeClient wraps a provider with rate limiting, a per-call timeout,
retries and linear-growth backoff.

Reference: https://apidocs.geoapify.com/docs/geocoding/forward-geocoding/
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import requests

from ..utils.errors import EmptyResult, GeocodeFailure, NotFound, ProviderError, ProviderUnconfigured, Timeout
from .base import Geocoder, GeocodingProvider, RateLimiter
from .models import Coordinates, GeocodeQuery, GeocodingPipelineConfig
from .retry import RetryPhase, RetryState, backoff_delay, transition
from .throttling import SYSTEM_CLOCK, Clock, shared_rate_limiter

logger = logging.getLogger(__name__)

GEOAPIFY_SEARCH_URL = "https://api.geoapify.com/v1/geocode/search"


class GeoapifyProvider(GeocodingProvider):
    """
    Geoapify forward-geocoding endpoint.

    Sends `{text, format=json, apiKey, limit=1}` and reads the first
    element of `results`.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = GEOAPIFY_SEARCH_URL,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize Geoapify wrapper.

        Args:
            api_key: Geoapify API key
            base_url: Search endpoint URL
            session: Optional requests session (a new one is created if omitted)

        Raises:
            ProviderUnconfigured: if no API key is given
        """
        if not api_key:
            raise ProviderUnconfigured(
                "Geocoding service not configured: set GEOAPIFY_API_KEY or GEOCODING_API_KEY"
            )
        self.api_key = api_key
        self.base_url = base_url
        self.session = session or requests.Session()

    def search(self, text: str, timeout: float) -> Coordinates:
        """
        Send one forward-geocoding request.

        `timeout` is handed to requests, which applies it to the connect and
        to each socket read, not to the response as a whole. A server that
        trickles bytes can therefore hold the call past `timeout`.
        """
        params = {
            "text": text,
            "format": "json",
            "apiKey": self.api_key,
            "limit": 1,
        }
        headers = {"Accept": "application/json"}

        logger.debug(f"Querying geocoder: {text}")

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                timeout=timeout,
                headers=headers,
            )
        except requests.exceptions.Timeout as e:
            raise Timeout(f"Geocoding service timeout after {timeout}s", query=text) from e
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Geocoding service error: {e}", query=text) from e

        logger.debug(f"Geocoder status: {response.status_code}")

        if response.status_code == 404:
            raise NotFound(f"Location not found: {text}", query=text, http_status=404)

        if not response.ok:
            raise ProviderError(
                f"Geocoding service error: {self._error_message(response)}",
                query=text,
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(
                "Geocoding service returned invalid JSON",
                query=text,
                http_status=response.status_code,
            ) from e

        return self._extract_first(payload, text)

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Pull a readable message out of an error response."""
        try:
            body = response.json()
            if isinstance(body, dict):
                return str(body.get("message") or body.get("error") or body)[:500]
        except ValueError:
            pass
        return (response.text or f"HTTP {response.status_code}")[:500]

    @staticmethod
    def _extract_first(payload: Any, text: str) -> Coordinates:
        """
        Extract coordinates from the first result.

        Raises:
            EmptyResult: if the result list is missing or empty
            ProviderError: if the first result has no usable coordinates
        """
        results = payload.get("results") if isinstance(payload, dict) else None
        if results is not None and not isinstance(results, list):
            raise ProviderError("Unexpected results payload from provider", query=text, http_status=200)
        if not results:
            raise EmptyResult(f"No results found for {text}", query=text, http_status=200)

        first = results[0]
        # Geoapify sometimes returns coordinates as strings
        try:
            lat = float(first.get("lat"))
            lon = float(first.get("lon"))
        except (AttributeError, TypeError, ValueError) as e:
            raise ProviderError("First result has no coordinates", query=text, http_status=200) from e

        try:
            return Coordinates(lat, lon)
        except ValueError as e:
            raise ProviderError(f"Provider returned invalid coordinates: {e}", query=text, http_status=200) from e


class GeocodeClient(Geocoder):
    """
    Retrying geocode client.

    Every attempt first acquires the rate limiter. A retry then waits a
    further `retry_base_delay_s * attempts_so_far` on top of the limiter
    interval before the call goes out. NotFound is terminal, Timeout and ProviderError are retried up to `max_attempts`.
    """

    def __init__(
        self,
        provider: GeocodingProvider,
        rate_limiter: RateLimiter,
        max_attempts: int = 3,
        timeout_s: float = 10.0,
        retry_base_delay_s: float = 1.0,
        retry_empty_results: bool = True,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize geocode client.

        Args:
            provider: Single-call provider adapter
            rate_limiter: Gate consulted before every attempt
            max_attempts: Upper bound on attempts per query (including the first)
            timeout_s: Per-attempt deadline in seconds
            retry_base_delay_s: Backoff unit between attempts
            retry_empty_results: Retry when the provider returns no results
            clock: Time source for backoff sleeps
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.timeout_s = timeout_s
        self.retry_base_delay_s = retry_base_delay_s
        self.retry_empty_results = retry_empty_results
        self.clock = clock or SYSTEM_CLOCK

        logger.info(
            f"Initialized GeocodeClient: {type(provider).__name__}, "
            f"attempts={max_attempts}, timeout={timeout_s}s"
        )

    @classmethod
    def from_config(
        cls,
        config: GeocodingPipelineConfig,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Optional[Clock] = None,
    ) -> "GeocodeClient":
        """
        Build a Geoapify-backed client from pipeline config.

        Without an explicit limiter the process-wide shared limiter is used.

        Raises:
            ProviderUnconfigured: if the config has no API key
        """
        provider = GeoapifyProvider(
            api_key=config.api_key,
            base_url=config.base_url,
            session=session,
        )
        return cls(
            provider=provider,
            rate_limiter=rate_limiter or shared_rate_limiter(config.min_request_interval_s),
            max_attempts=config.max_retries,
            timeout_s=config.request_timeout_s,
            retry_base_delay_s=config.retry_base_delay_s,
            retry_empty_results=config.retry_empty_results,
            clock=clock,
        )

    def geocode(self, query: GeocodeQuery, cancel_event: Optional[threading.Event] = None) -> Coordinates:
        """
        Geocode a single query.

        Args:
            query: GeocodeQuery with at least city and country
            cancel_event: Optional event checked before each attempt

        Returns:
            Coordinates of the first provider result

        Raises:
            NotFound: provider has no result (EmptyResult after exhausted retries)
            Timeout: deadline exceeded on the last attempt, or cancelled
            ProviderError: any other failure on the last attempt
        """
        if not query.is_valid():
            raise ValueError("GeocodeQuery requires city and country")

        text = query.to_text()
        state = RetryState()

        while not state.is_final:
            self._check_cancelled(cancel_event, text)

            self.rate_limiter.acquire()
            if state.phase is RetryPhase.RETRYING:
                delay = backoff_delay(state, self.retry_base_delay_s)
                logger.warning(
                    f"Attempt {state.attempts}/{self.max_attempts} failed for "
                    f"'{text}': {state.error}. Retrying in {delay:.1f}s"
                )
                self.clock.sleep(delay)
                # Next interval counts from the delayed call, not the acquire
                self.rate_limiter.mark()

            try:
                outcome = self.provider.search(text, timeout=self.timeout_s)
            except GeocodeFailure as e:
                outcome = e

            # A cancel that landed mid-call wins over whatever the call returned
            self._check_cancelled(cancel_event, text)

            state = transition(
                state,
                outcome,
                max_attempts=self.max_attempts,
                retry_empty_results=self.retry_empty_results,
            )

        if state.phase is RetryPhase.SUCCEEDED:
            assert state.coordinates is not None
            return state.coordinates

        assert state.error is not None
        logger.debug(f"Giving up on '{text}' after {state.attempts} attempts: {state.error}")
        raise state.error

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], text: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise Timeout(f"Geocoding cancelled for {text}", query=text)
