"""
Abstract base classes for the geocoding system.

These define the interfaces that all concrete implementations must follow.
"""

import threading
from abc import ABC, abstractmethod
from typing import Optional

from .models import Coordinates, GeocodeQuery


class RateLimiter(ABC):
    """
    Abstract base for rate limiters.

    Rate limiters control the rate at which requests are made,
    useful for respecting API rate limits.
    """

    @abstractmethod
    def acquire(self) -> None:
        """Block until it's safe to make another request, then claim the slot."""
        pass

    def mark(self) -> None:
        """Record that a request went out now; the next interval counts from here."""
        pass


class GeocodingProvider(ABC):
    """
    Abstract base for a single outbound provider call.

    Implementations perform exactly one request and raise NotFound,
    EmptyResult, Timeout or ProviderError instead of returning None.
    """

    @abstractmethod
    def search(self, text: str, timeout: float) -> Coordinates:
        """
        Resolve a free-text address.

        Args:
            text: Query string (e.g. "1 Main St, London, UK")
            timeout: Deadline for the call in seconds

        Returns:
            Coordinates of the first provider result
        """
        pass


class Geocoder(ABC):
    """
    Abstract base for geocoders.

    Geocoders turn a GeocodeQuery into Coordinates, handling whatever
    retry and throttling policy they implement.
    """

    @abstractmethod
    def geocode(self, query: GeocodeQuery, cancel_event: Optional[threading.Event] = None) -> Coordinates:
        """
        Geocode a single query.

        Args:
            query: The geocoding query
            cancel_event: Optional event; when set the call gives up with Timeout

        Returns:
            Coordinates for the query
        """
        pass
