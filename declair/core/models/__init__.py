"""
Domain models — Pydantic types for declair.

All models are re-exported here for convenient access:

    from declair.core.models import Settings, PackageInfo, SearchResult
"""

from declair.core.models.package import PackageInfo, SearchResult
from declair.core.models.settings import Settings

__all__ = [
    # package.py
    "PackageInfo",
    "SearchResult",
    # settings.py
    "Settings",
]
