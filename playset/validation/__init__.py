"""Design validation: structural, safety and compatibility rules."""

from .config import SafetyRules, SAFETY_RULES
from .models import (
    Rule, RuleResult, ValidationIssue, ValidationResult,
    RULE_CATEGORIES, ERROR_TYPES, WARNING_TYPES,
    issue_to_dict, validation_to_dict,
)
from .engine import RuleRegistry, ValidationEngine, error_type_for, warning_type_for
from .graph import build_connection_graph, find_connected, are_connected
from .structural import structural_rules
from .safety import safety_rules
from .compatibility import compatibility_rules, connection_types_compatible


def default_registry() -> RuleRegistry:
    """A registry holding every built-in rule, errors before warnings per set."""
    registry = RuleRegistry()
    for rule in (*structural_rules(), *safety_rules(), *compatibility_rules()):
        registry.register(rule)
    return registry


def default_engine() -> ValidationEngine:
    return ValidationEngine(default_registry())


__all__ = [
    # Config
    "SafetyRules", "SAFETY_RULES",
    # Models
    "Rule", "RuleResult", "ValidationIssue", "ValidationResult",
    "RULE_CATEGORIES", "ERROR_TYPES", "WARNING_TYPES",
    "issue_to_dict", "validation_to_dict",
    # Engine
    "RuleRegistry", "ValidationEngine", "error_type_for", "warning_type_for",
    "default_registry", "default_engine",
    # Graph
    "build_connection_graph", "find_connected", "are_connected",
    # Rule sets
    "structural_rules", "safety_rules", "compatibility_rules",
    "connection_types_compatible",
]
