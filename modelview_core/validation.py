"""
Graph validation - Check an entity graph for structural issues.

Ingestion results are tolerated as-is (unresolvable references simply drop
out of diagrams); this module reports what will be dropped or ambiguous so
the host can show it in its log panel.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .models import parent_path
from .resolver import ReferenceResolver

if TYPE_CHECKING:
    from .models import EntityGraph


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Broken structure, diagrams may be wrong
    WARNING = "warning"  # Something will be dropped or is ambiguous
    INFO = "info"        # Tolerated, may be intentional


@dataclass
class ValidationIssue:
    """A single validation issue found in a graph."""
    severity: IssueSeverity
    message: str
    model_path: str | None = None
    class_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.model_path is not None:
            result["model_path"] = self.model_path
        if self.class_id:
            result["class_id"] = self.class_id
        return result


def validate_graph(graph: "EntityGraph") -> list[ValidationIssue]:
    """
    Validate a graph and return a list of issues.

    Checks for:
    - Empty graph - INFO
    - Models whose parent model is missing - ERROR
    - Model class lists naming unknown class ids - ERROR
    - Classes whose home model is missing or does not list them - ERROR
    - Duplicate class names within one model - WARNING
    - Association endpoints that are not classes - WARNING
    - Unresolvable class references - INFO

    Args:
        graph: The graph to validate

    Returns:
        List of ValidationIssue objects
    """
    issues: list[ValidationIssue] = []

    if not graph.classes and len(graph.models) <= 1:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Graph has no classes"
        ))
        return issues

    for path, model in graph.models.items():
        parent = parent_path(path)
        if parent is not None and parent not in graph.models:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Parent model missing for {path!r}",
                model_path=path
            ))

        for class_id in model.classes:
            if class_id not in graph.classes:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Model lists unknown class id: {class_id}",
                    model_path=path,
                    class_id=class_id
                ))

        names = Counter(graph.classes[cid].name for cid in model.classes if cid in graph.classes)
        for name, count in names.items():
            if count > 1:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"{count} classes named {name!r}; path references resolve to the first",
                    model_path=path
                ))

    for cls in graph.classes.values():
        home = graph.models.get(cls.home_model_path)
        if home is None or cls.id not in home.classes:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Class {cls.name!r} is not listed by its home model",
                model_path=cls.home_model_path,
                class_id=cls.id
            ))

    for assoc in graph.associations:
        for end in (assoc.from_id, assoc.to_id):
            if end not in graph.classes:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.WARNING,
                    message=f"Association {assoc.id} references unknown class {end}",
                    class_id=end
                ))

    resolver = ReferenceResolver(graph)
    for cls in graph.classes.values():
        for ref in cls.refs:
            if resolver.resolve(ref, cls.home_model_path) is None:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.INFO,
                    message=f"Unresolved reference {ref!r} from {cls.name!r}",
                    model_path=cls.home_model_path,
                    class_id=cls.id
                ))

    return issues


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    return {
        "total": len(issues),
        "errors": len([i for i in issues if i.severity == IssueSeverity.ERROR]),
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": len([i for i in issues if i.severity == IssueSeverity.ERROR]) == 0
    }
