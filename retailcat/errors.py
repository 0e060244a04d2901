"""Exception types shared across the package."""

from __future__ import annotations


class RetailcatError(Exception):
    """Base class for errors raised by retailcat."""


class ConfigurationError(RetailcatError):
    """Raised when required settings or retailer definitions are missing."""


class FetchError(RetailcatError):
    """Raised when a retailer endpoint returns an unusable response."""


class CatalogError(RetailcatError):
    """Raised when a catalog file cannot be read or written."""


class UploadError(RetailcatError):
    """Raised when a catalog cannot be delivered to the SFTP server."""
