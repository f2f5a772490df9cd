"""Schema definitions for monitored feeds and their health observations.

A ``FeedSource`` identifies one published LLMFeed document. Each crawl
cycle appends an immutable ``HealthCheck`` (with an optional nested
``ValidationResult``) to the feed's history. The outreach engine only
reads these records.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal
from urllib.parse import urlparse

IssueType = Literal["error", "warning", "info"]

VALID_ISSUE_TYPES: frozenset[str] = frozenset({
    "error",
    "warning",
    "info",
})


def parse_timestamp(value: Any) -> datetime:
    """Coerce a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings and epoch milliseconds (the
    format used by the crawler's JSON exports).
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    if isinstance(value, str):
        return parse_timestamp(datetime.fromisoformat(value))
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    raise ValueError(f"Unsupported timestamp value: {value!r}")


@dataclass(frozen=True)
class GitHubRepo:
    """Repository hosting a feed, when one could be detected."""

    owner: str
    repo: str
    feed_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "repo": self.repo, "feed_path": self.feed_path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GitHubRepo":
        return cls(
            owner=data["owner"],
            repo=data["repo"],
            feed_path=data.get("feed_path", data.get("feedPath")),
        )


@dataclass(frozen=True)
class ContactInfo:
    """Owner contact details extracted from feed metadata."""

    email: str | None = None
    twitter: str | None = None
    website: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"email": self.email, "twitter": self.twitter, "website": self.website}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContactInfo":
        return cls(
            email=data.get("email") or None,
            twitter=data.get("twitter") or None,
            website=data.get("website") or None,
        )


@dataclass
class FeedSource:
    """Identity of a monitored feed.

    Attributes:
        id: Stable, opaque identifier.
        url: Full URL of the feed document.
        domain: Host serving the feed (derived from ``url`` when empty).
        github_repo: Repository the feed lives in, if detected.
        contact: Contact details from the feed metadata, if any.
        opted_out: Whether the owner asked not to be contacted.
        opt_out_reason: Where the opt-out signal came from.
        discovered_at: When the feed was first seen.
    """

    id: str
    url: str
    domain: str = ""
    github_repo: GitHubRepo | None = None
    contact: ContactInfo | None = None
    opted_out: bool = False
    opt_out_reason: str | None = None
    discovered_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        if not self.domain:
            self.domain = urlparse(self.url).hostname or ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "url": self.url,
            "domain": self.domain,
            "github_repo": self.github_repo.to_dict() if self.github_repo else None,
            "contact": self.contact.to_dict() if self.contact else None,
            "opted_out": self.opted_out,
            "opt_out_reason": self.opt_out_reason,
            "discovered_at": self.discovered_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedSource":
        """Create a FeedSource from a dictionary.

        Args:
            data: Dictionary with feed fields (snake_case or camelCase keys).

        Returns:
            FeedSource instance.
        """
        repo = data.get("github_repo", data.get("githubRepo"))
        contact = data.get("contact")
        discovered_at = data.get("discovered_at", data.get("discoveredAt"))

        return cls(
            id=data["id"],
            url=data["url"],
            domain=data.get("domain", ""),
            github_repo=GitHubRepo.from_dict(repo) if repo else None,
            contact=ContactInfo.from_dict(contact) if contact else None,
            opted_out=data.get("opted_out", data.get("optedOut", False)),
            opt_out_reason=data.get("opt_out_reason", data.get("optOutReason")),
            discovered_at=(
                parse_timestamp(discovered_at)
                if discovered_at is not None
                else datetime.now(timezone.utc)
            ),
        )


@dataclass(frozen=True)
class ValidationIssue:
    """A single finding reported by the feed validator."""

    type: str
    code: str
    message: str
    path: str | None = None
    suggestion: str | None = None

    def __post_init__(self) -> None:
        if self.type not in VALID_ISSUE_TYPES:
            raise ValueError(
                f"Invalid issue type {self.type!r}. "
                f"Must be one of: {sorted(VALID_ISSUE_TYPES)}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "path": self.path,
            "suggestion": self.suggestion,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationIssue":
        return cls(
            type=data["type"],
            code=data["code"],
            message=data["message"],
            path=data.get("path"),
            suggestion=data.get("suggestion"),
        )


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one feed document.

    The issue list is authoritative. ``error_count`` and ``warning_count``
    are derived from it when omitted and must agree with it when given.

    Attributes:
        valid: Overall validity as judged by the validator.
        score: Trust score, integer 0-100.
        issues: Findings in declaration order.
        capabilities_count: Number of capabilities the feed declares.
        error_count: Number of issues of type ``error``.
        warning_count: Number of issues of type ``warning``.
        signature_valid: Signature verification status, if checked.
    """

    valid: bool
    score: int
    issues: tuple[ValidationIssue, ...] = ()
    capabilities_count: int = 0
    error_count: int | None = None
    warning_count: int | None = None
    signature_valid: bool | None = None

    def __post_init__(self) -> None:
        if isinstance(self.score, bool) or not isinstance(self.score, int):
            raise ValueError(f"score must be an integer, got {self.score!r}")
        if not 0 <= self.score <= 100:
            raise ValueError(f"score must be within 0..100, got {self.score}")

        object.__setattr__(self, "issues", tuple(self.issues))
        errors = sum(1 for i in self.issues if i.type == "error")
        warnings = sum(1 for i in self.issues if i.type == "warning")

        if self.error_count is None:
            object.__setattr__(self, "error_count", errors)
        elif self.error_count != errors:
            raise ValueError(
                f"error_count={self.error_count} disagrees with "
                f"{errors} error issue(s)"
            )

        if self.warning_count is None:
            object.__setattr__(self, "warning_count", warnings)
        elif self.warning_count != warnings:
            raise ValueError(
                f"warning_count={self.warning_count} disagrees with "
                f"{warnings} warning issue(s)"
            )

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "error"]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "warning"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "score": self.score,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "signature_valid": self.signature_valid,
            "issues": [i.to_dict() for i in self.issues],
            "capabilities_count": self.capabilities_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationResult":
        return cls(
            valid=data["valid"],
            score=data["score"],
            issues=tuple(
                ValidationIssue.from_dict(i) for i in data.get("issues", [])
            ),
            capabilities_count=data.get(
                "capabilities_count", data.get("capabilitiesCount", 0)
            ) or 0,
            error_count=data.get("error_count", data.get("errorCount")),
            warning_count=data.get("warning_count", data.get("warningCount")),
            signature_valid=data.get("signature_valid", data.get("signatureValid")),
        )


@dataclass(frozen=True)
class HealthCheck:
    """One point-in-time observation of a feed."""

    timestamp: datetime
    reachable: bool
    http_status: int | None = None
    response_time_ms: int | None = None
    validation: ValidationResult | None = None
    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(self.errors))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "reachable": self.reachable,
            "http_status": self.http_status,
            "response_time_ms": self.response_time_ms,
            "validation": self.validation.to_dict() if self.validation else None,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HealthCheck":
        validation = data.get("validation")
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            reachable=data["reachable"],
            http_status=data.get("http_status", data.get("httpStatus")),
            response_time_ms=data.get(
                "response_time_ms", data.get("responseTimeMs")
            ),
            validation=ValidationResult.from_dict(validation) if validation else None,
            errors=tuple(data.get("errors", [])),
        )
