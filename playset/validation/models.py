"""Validation rule and result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from playset.design.models import Design


RULE_CATEGORIES = ("structural", "safety", "compatibility")

ERROR_TYPES = (
    "structural_integrity",
    "safety_compliance",
    "compatibility",
    "connection_invalid",
    "height_exceeded",
    "capacity_exceeded",
    "missing_access",
    "disconnected_component",
)

WARNING_TYPES = (
    "suboptimal_layout",
    "material_mismatch",
    "age_range_mismatch",
    "recommended_component_missing",
)


@dataclass
class RuleResult:
    passed: bool
    affected_components: list[str] = field(default_factory=list)   # instance IDs
    message: str | None = None
    suggestion: str | None = None


PASSED = RuleResult(passed=True)


def failed(
    affected: list[str], message: str, suggestion: str | None = None,
) -> RuleResult:
    """Build a failing RuleResult; affected IDs are de-duplicated in order."""
    return RuleResult(
        passed=False,
        affected_components=list(dict.fromkeys(affected)),
        message=message,
        suggestion=suggestion,
    )


@dataclass
class Rule:
    id: str
    name: str
    description: str
    kind: str                               # "error" | "warning"
    category: str                           # one of RULE_CATEGORIES
    check: Callable[[Design], RuleResult]
    enabled: bool = True


@dataclass
class ValidationIssue:
    """An error (blocks a quote) or a warning (does not)."""
    id: str
    type: str
    message: str
    affected_components: list[str] = field(default_factory=list)
    suggestion: str | None = None


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)

    @property
    def affected_components(self) -> list[str]:
        """Every instance ID named by an error, in first-seen order."""
        ids: list[str] = []
        for issue in self.errors:
            ids.extend(issue.affected_components)
        return list(dict.fromkeys(ids))


def issue_to_dict(issue: ValidationIssue) -> dict:
    return {
        "id": issue.id,
        "type": issue.type,
        "message": issue.message,
        "affectedComponents": list(issue.affected_components),
        **({"suggestion": issue.suggestion} if issue.suggestion else {}),
    }


def validation_to_dict(result: ValidationResult) -> dict:
    return {
        "isValid": result.is_valid,
        "errors": [issue_to_dict(e) for e in result.errors],
        "warnings": [issue_to_dict(w) for w in result.warnings],
    }
