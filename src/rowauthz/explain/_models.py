"""Data models for explain output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

__all__ = [
    "AccessExplanation",
    "AccessPolicyEvaluation",
    "VisibilityMatrix",
]


@dataclass(frozen=True, slots=True)
class AccessPolicyEvaluation:
    """Result of evaluating a single policy against one row.

    Attributes:
        name: Policy name.
        description: Human-readable description.
        matched: Whether the predicate held.
        write_check_passed: Whether the write check held on the post-image
            (``None`` for reads, deletes and policies without one).
        error: Message of the failure that forced ``False``, if any.
    """

    name: str
    description: str
    matched: bool
    write_check_passed: bool | None = None
    error: str | None = None

    @property
    def granted(self) -> bool:
        return self.matched and self.write_check_passed is not False

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "matched": self.matched,
            "write_check_passed": self.write_check_passed,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class AccessExplanation:
    """Explanation of why an identity can or cannot act on a row.

    For operators and tests only: it names policies, which
    ``AccessDenied`` deliberately does not.

    Attributes:
        subject_id: The caller's subject id.
        role: The caller's token role.
        operation: The operation being checked.
        table: The row's table.
        row_id: The row's id.
        allowed: Whether access is allowed overall.
        deny_by_default: True if no policies were found.
        policies: Per-policy evaluation results.
    """

    subject_id: str
    role: str
    operation: str
    table: str
    row_id: Any
    allowed: bool
    deny_by_default: bool
    policies: list[AccessPolicyEvaluation]

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "subject_id": self.subject_id,
            "role": self.role,
            "operation": self.operation,
            "table": self.table,
            "row_id": self.row_id,
            "allowed": self.allowed,
            "deny_by_default": self.deny_by_default,
            "policies": [p.to_dict() for p in self.policies],
        }

    def __str__(self) -> str:
        """Return a human-readable multi-line explanation."""
        verdict = "ALLOWED" if self.allowed else "DENIED"
        lines: list[str] = []
        lines.append(f"Access Check: {verdict}")
        lines.append(f"  Subject: {self.subject_id} (role={self.role})")
        lines.append(f"  Operation: {self.operation}")
        lines.append(f"  Row: {self.table} ({self.row_id!r})")
        lines.append("")
        if self.deny_by_default:
            lines.append("  DENY BY DEFAULT (no policies registered)")
        else:
            lines.append("  Policy Results:")
            for p in self.policies:
                status = "MATCH" if p.granted else "NO MATCH"
                lines.append(f"    - {p.name} [{status}]: {p.description}")
                if p.write_check_passed is False:
                    lines.append("      write check failed on post-image")
                if p.error:
                    lines.append(f"      error: {p.error}")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class VisibilityMatrix:
    """Which identities see which rows of one table.

    Attributes:
        table: The table compared.
        subjects: Subject ids, in the order given.
        row_ids: Row ids, in candidate order.
        visible: ``visible[subject_id]`` is the list of row ids that subject sees.
    """

    table: str
    subjects: list[str]
    row_ids: list[Any]
    visible: dict[str, list[Any]]

    def sees(self, subject_id: str, row_id: Any) -> bool:
        return row_id in self.visible.get(subject_id, [])

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return {
            "table": self.table,
            "subjects": list(self.subjects),
            "row_ids": list(self.row_ids),
            "visible": {k: list(v) for k, v in self.visible.items()},
        }

    def __str__(self) -> str:
        width = max([len(str(s)) for s in self.subjects] + [7])
        header = "subject".ljust(width) + " | " + " | ".join(str(r) for r in self.row_ids)
        lines = [f"Visibility on {self.table}", header, "-" * len(header)]
        for s in self.subjects:
            marks = [
                ("x" if self.sees(s, r) else ".").center(len(str(r))) for r in self.row_ids
            ]
            lines.append(str(s).ljust(width) + " | " + " | ".join(marks))
        return "\n".join(lines)
