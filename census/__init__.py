"""Android Census: device census ingestion and reporting."""

__version__ = "0.1.0"
