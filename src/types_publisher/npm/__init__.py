"""clients for reading from and publishing to the npm registry."""
from .client import CachedNpmInfoClient, UncachedNpmInfoClient, escape_package_name
from .publish import NpmPublishClient

__all__ = [
    "CachedNpmInfoClient",
    "UncachedNpmInfoClient",
    "NpmPublishClient",
    "escape_package_name",
]
