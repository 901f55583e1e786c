"""
Data models for the Naukri scraper
Defines the job record, its application pathway and search provenance
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

NOT_AVAILABLE = "Not available"
NOT_SPECIFIED = "Not specified"
NOT_DISCLOSED = "Not disclosed"


class ApplicationType(str, Enum):
    """How a candidate applies for the posting"""

    INTERNAL = "Internal"    # in-site apply
    EXTERNAL = "External"    # redirect to the employer's site
    UNKNOWN = "Unknown"


class SearchContext(BaseModel):
    """The search that surfaced a job"""

    model_config = ConfigDict(frozen=True)

    query: str
    location: str
    experience: str = "0"

    def __str__(self) -> str:
        return f"'{self.query}' in {self.location} (exp {self.experience})"


class JobRecord(BaseModel):
    """Represents a single job posting. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = NOT_AVAILABLE
    company: str = NOT_AVAILABLE
    location: str = NOT_AVAILABLE
    experience: str = NOT_SPECIFIED
    salary: str = NOT_DISCLOSED
    skills: str = NOT_AVAILABLE
    description: str = NOT_AVAILABLE
    application_type: ApplicationType = ApplicationType.INTERNAL

    scraped_at: datetime = Field(default_factory=datetime.now)
    search_context: SearchContext

    @field_validator("url")
    @classmethod
    def _url_required(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("job url is required")
        return value

    def __str__(self) -> str:
        return f"{self.title} at {self.company} ({self.location})"

    def to_document(self) -> Dict[str, Any]:
        """Store document; datetimes stay native for the database driver."""
        doc = self.model_dump()
        doc["application_type"] = self.application_type.value
        return doc

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
