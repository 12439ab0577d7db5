from __future__ import annotations

from functools import lru_cache

from ..catalog import SpreadsheetCatalog
from ..catalog import catalog as default_catalog
from ..generator import ReviewGenerator


@lru_cache(maxsize=1)
def get_review_generator() -> ReviewGenerator:
    return ReviewGenerator()


def get_catalog() -> SpreadsheetCatalog:
    return default_catalog
