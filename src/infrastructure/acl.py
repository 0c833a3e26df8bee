from datetime import datetime
from typing import Any, Callable, Dict, Optional

from src.domain.exceptions import ResponseShapeError
from src.domain.models import SubFetchKind


def _parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ResponseShapeError(f"Expected an ISO timestamp, got {type(raw).__name__}.")
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as e:
        raise ResponseShapeError(f"Malformed timestamp {raw!r}.") from e


def _first_entry(body: Any) -> Dict[str, Any]:
    if not isinstance(body, list) or not body or not isinstance(body[0], dict):
        raise ResponseShapeError("Expected a non-empty list of objects.")
    return body[0]


def _count(body: Any) -> int:
    if not isinstance(body, list):
        raise ResponseShapeError(f"Expected a list, got {type(body).__name__}.")
    return len(body)


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST bodies into RepositoryRecord fields.

    Each translator returns the fields its sub-fetch owns, or raises ResponseShapeError
    when the body does not have the expected structure.
    """

    @staticmethod
    def repository_fields(body: Any) -> Dict[str, Any]:
        """
        Extracts creation date, description and homepage from ``GET /repos/{org}/{name}``.

        Keys missing from the body are skipped rather than failing the whole sub-fetch;
        keys present with a null value are kept as null.
        """
        if not isinstance(body, dict):
            raise ResponseShapeError("Repository metadata is not an object.")

        fields: Dict[str, Any] = {}
        if "created_at" in body:
            fields["created_on"] = _parse_timestamp(body["created_at"])
        if "description" in body:
            fields["description"] = body["description"]
        if "homepage" in body:
            fields["website_url"] = body["homepage"]
        return fields

    @staticmethod
    def last_commit_fields(body: Any) -> Dict[str, Any]:
        entry = _first_entry(body)
        try:
            raw_date = entry["commit"]["author"]["date"]
        except (KeyError, TypeError) as e:
            raise ResponseShapeError("Commit entry has no author date.") from e
        if raw_date is None:
            raise ResponseShapeError("Commit entry has a null author date.")
        return {"last_commit_on": _parse_timestamp(raw_date)}

    @staticmethod
    def opened_issues_fields(body: Any) -> Dict[str, Any]:
        return {"opened_issues": _count(body)}

    @staticmethod
    def contributors_fields(body: Any) -> Dict[str, Any]:
        return {"contributors": _count(body)}

    @staticmethod
    def pending_pull_requests_fields(body: Any) -> Dict[str, Any]:
        return {"pending_pull_requests": _count(body)}

    @staticmethod
    def last_release_fields(body: Any) -> Dict[str, Any]:
        entry = _first_entry(body)
        tag_name = entry.get("tag_name")
        if not isinstance(tag_name, str):
            raise ResponseShapeError("Release entry has no tag name.")
        return {"last_release": tag_name}


TRANSLATORS: Dict[SubFetchKind, Callable[[Any], Dict[str, Any]]] = {
    SubFetchKind.METADATA: GitHubTranslator.repository_fields,
    SubFetchKind.COMMITS: GitHubTranslator.last_commit_fields,
    SubFetchKind.ISSUES: GitHubTranslator.opened_issues_fields,
    SubFetchKind.CONTRIBUTORS: GitHubTranslator.contributors_fields,
    SubFetchKind.PULL_REQUESTS: GitHubTranslator.pending_pull_requests_fields,
    SubFetchKind.RELEASES: GitHubTranslator.last_release_fields,
}

# Fields written when a sub-fetch fails; every other kind leaves its fields absent.
FAILURE_FALLBACKS: Dict[SubFetchKind, Dict[str, Any]] = {
    SubFetchKind.RELEASES: {"last_release": ""},
}
