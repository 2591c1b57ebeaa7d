"""NuGet registry package.

This package provides NuGet v2 feed support:
- client.py: version queries and artifact downloads against an OData feed
- manifest.py: dependency declarations from the .nuspec inside a .nupkg
"""

from .client import GalleryClient, parse_feed  # noqa: F401
from .manifest import parse_nuspec, read_dependencies  # noqa: F401

__all__ = [
    "GalleryClient",
    "parse_feed",
    "parse_nuspec",
    "read_dependencies",
]
