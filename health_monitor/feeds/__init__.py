"""Feed records produced by the crawler and read by the outreach engine."""

from health_monitor.feeds.schemas import (
    VALID_ISSUE_TYPES,
    ContactInfo,
    FeedSource,
    GitHubRepo,
    HealthCheck,
    IssueType,
    ValidationIssue,
    ValidationResult,
)

__all__ = [
    "ContactInfo",
    "FeedSource",
    "GitHubRepo",
    "HealthCheck",
    "IssueType",
    "VALID_ISSUE_TYPES",
    "ValidationIssue",
    "ValidationResult",
]
