"""Batch geocoding of uploaded person/address tables."""

from .pipeline import GeocodingPipeline
from .readers import read_rows

__all__ = ['GeocodingPipeline', 'read_rows']
