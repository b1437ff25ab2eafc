"""API gateway metadata, validation, filters, load balancing, builders and a test backend."""

__version__ = "0.1.0"