"""httpdoc - parse .http request documents into typed requests."""

__version__ = "0.1.0"
