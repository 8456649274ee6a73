"""Rule registry and evaluation engine.

Rules are plain ``Rule`` records whose ``check`` callable inspects a
design and returns a ``RuleResult``.  The registry keeps error and
warning rules apart, in registration order; the engine runs the enabled
ones and turns every failure into a ``ValidationIssue``.
"""

from __future__ import annotations

import logging
import time

from playset.design.models import Design
from playset.validation.models import (
    Rule, RuleResult, ValidationIssue, ValidationResult, failed,
)

log = logging.getLogger("playset.validation")


class RuleRegistry:
    def __init__(self) -> None:
        self._errors: dict[str, Rule] = {}
        self._warnings: dict[str, Rule] = {}

    def register(self, rule: Rule) -> None:
        if rule.kind not in ("error", "warning"):
            raise ValueError(f"Rule {rule.id!r} has unknown kind {rule.kind!r}")
        target = self._errors if rule.kind == "error" else self._warnings
        target[rule.id] = rule

    def error_rules(self) -> list[Rule]:
        return [r for r in self._errors.values() if r.enabled]

    def warning_rules(self) -> list[Rule]:
        return [r for r in self._warnings.values() if r.enabled]

    def get(self, rule_id: str) -> Rule | None:
        return self._errors.get(rule_id) or self._warnings.get(rule_id)

    def set_enabled(self, rule_id: str, enabled: bool) -> None:
        rule = self.get(rule_id)
        if rule is None:
            raise KeyError(rule_id)
        rule.enabled = enabled

    def by_category(self, category: str) -> list[Rule]:
        """Enabled rules of *category*, errors first."""
        return [
            r for r in (*self.error_rules(), *self.warning_rules())
            if r.category == category
        ]

    def __len__(self) -> int:
        return len(self._errors) + len(self._warnings)


# ── Issue type mapping ─────────────────────────────────────────────


def error_type_for(rule: Rule) -> str:
    rid = rule.id
    if rid.startswith("structural"):
        return "structural_integrity"
    if rid.startswith("safety"):
        return "safety_compliance"
    if rid.startswith("compatibility"):
        return "compatibility"
    for needle, kind in (
        ("connection", "connection_invalid"),
        ("height", "height_exceeded"),
        ("capacity", "capacity_exceeded"),
        ("access", "missing_access"),
        ("disconnected", "disconnected_component"),
    ):
        if needle in rid:
            return kind
    return "structural_integrity"


def warning_type_for(rule: Rule) -> str:
    rid = rule.id
    if "material" in rid:
        return "material_mismatch"
    if "age" in rid:
        return "age_range_mismatch"
    if "recommended" in rid:
        return "recommended_component_missing"
    return "suboptimal_layout"


# ── Engine ─────────────────────────────────────────────────────────


class ValidationEngine:
    def __init__(self, registry: RuleRegistry) -> None:
        self.registry = registry

    def evaluate(self, design: Design) -> ValidationResult:
        """Run every enabled rule; the design is valid when no error fires."""
        result = ValidationResult()
        for rule in self.registry.error_rules():
            if (issue := self._run(rule, design)) is not None:
                result.errors.append(issue)
        for rule in self.registry.warning_rules():
            if (issue := self._run(rule, design)) is not None:
                result.warnings.append(issue)
        result.is_valid = not result.errors
        log.debug(
            "Validated %d component(s): %d error(s), %d warning(s)",
            len(design.components), len(result.errors), len(result.warnings),
        )
        return result

    def evaluate_category(self, design: Design, category: str) -> ValidationResult:
        result = ValidationResult()
        for rule in self.registry.by_category(category):
            if (issue := self._run(rule, design)) is None:
                continue
            if rule.kind == "error":
                result.errors.append(issue)
            else:
                result.warnings.append(issue)
        result.is_valid = not result.errors
        return result

    def _run(self, rule: Rule, design: Design) -> ValidationIssue | None:
        try:
            outcome: RuleResult = rule.check(design)
        except Exception as exc:
            log.exception("Rule %s raised while checking design", rule.id)
            outcome = failed([], f"{rule.name} could not be checked: {exc}")
        if outcome.passed:
            return None
        return ValidationIssue(
            id=f"{rule.id}-{int(time.time() * 1000)}",
            type=error_type_for(rule) if rule.kind == "error" else warning_type_for(rule),
            message=outcome.message or rule.description,
            affected_components=list(outcome.affected_components),
            suggestion=outcome.suggestion,
        )
