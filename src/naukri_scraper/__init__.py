"""Naukri job scraper: search, enrich and persist job postings."""

from .models import ApplicationType, JobRecord, SearchContext

__version__ = "0.1.0"

__all__ = ["ApplicationType", "JobRecord", "SearchContext", "__version__"]
