"""Career data domain: record formatting and queries."""

from .service import CareerDataService, SOURCES

__all__ = ["CareerDataService", "SOURCES"]
