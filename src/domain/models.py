from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict

class RepositoryRecord(BaseModel):
    """
    Immutable aggregated view of one repository.

    Only ``github_url`` is always present. Every other field is absent until the
    sub-fetch owning it has succeeded, and absent fields are left out of the
    serialized record (``exclude_unset``). Updates go through ``merged``, which
    returns a new record with the given fields marked as set.
    """
    model_config = ConfigDict(frozen=True)

    github_url: str = Field(..., description="Public URL of the repository on GitHub")
    created_on: Optional[datetime] = Field(None, description="Repository creation timestamp")
    description: Optional[str] = Field(None, description="Repository description, may be null upstream")
    website_url: Optional[str] = Field(None, description="Homepage configured on the repository")
    last_commit_on: Optional[datetime] = Field(None, description="Author date of the most recent commit")
    opened_issues: Optional[int] = Field(None, ge=0, description="Number of open issues on the first page")
    contributors: Optional[int] = Field(None, ge=0, description="Number of contributors on the first page")
    pending_pull_requests: Optional[int] = Field(None, ge=0, description="Number of open pull requests on the first page")
    last_release: Optional[str] = Field(None, description="Tag name of the latest release, empty when there is none")

    @classmethod
    def placeholder(cls, web_url: str, organization: str, name: str) -> "RepositoryRecord":
        return cls(github_url=f"{web_url.rstrip('/')}/{organization}/{name}")

    def merged(self, fields: Dict[str, Any]) -> "RepositoryRecord":
        if not fields:
            return self
        return self.model_copy(update=fields)

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


Snapshot = Dict[str, RepositoryRecord]


class SubFetchKind(str, Enum):
    METADATA = "metadata"
    COMMITS = "commits"
    ISSUES = "issues"
    CONTRIBUTORS = "contributors"
    PULL_REQUESTS = "pulls"
    RELEASES = "releases"


class ErrorKind(str, Enum):
    TRANSPORT = "transport"
    SHAPE = "shape"


class SubFetchResult(BaseModel):
    """
    Outcome of one sub-fetch.

    ``error`` is None when the upstream body had the expected structure. A
    failed sub-fetch usually carries no fields (the target stays absent), but
    may carry a fallback value, as releases do with an empty ``last_release``.
    """
    model_config = ConfigDict(frozen=True)

    kind: SubFetchKind
    fields: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CycleProgress(BaseModel):
    """Completion counters of one aggregation cycle."""
    cycle: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    completed: int = Field(0, ge=0)

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.completed / self.total

    @property
    def finished(self) -> bool:
        return self.completed >= self.total
