"""
errors.py — Exception hierarchy and reportable issue kinds.

Exceptions are raised for per-value failures (a code that cannot be
normalized) and for hard failures of an import run (a write that would
break a foreign key). Repairs and informational findings are never raised;
they are recorded as IssueKind entries on the relevant report.
"""

from __future__ import annotations

from enum import Enum


class PSGCError(Exception):
    """Base class for all psgc errors."""


class InvalidCode(PSGCError, ValueError):
    """A raw code is empty, non-numeric, or denotes 'no code' (000000000)."""

    def __init__(self, raw: object, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Invalid PSGC code {raw!r}: {reason}")


class MissingRequiredField(PSGCError, ValueError):
    """A record has no usable code or name."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Missing required field: {field}")


class UnclassifiableCode(PSGCError):
    """A normalized code matches none of the level shapes.

    Unreachable for valid 9-digit input; seeing one is a data-quality bug.
    """

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"PSGC code {code!r} matches no level pattern")


class InvalidAncestorRequest(PSGCError, ValueError):
    """parent_code() was asked for a level that is not a strict ancestor."""

    def __init__(self, code: str, target: str) -> None:
        self.code = code
        self.target = target
        super().__init__(f"{target!r} is not an ancestor level of code {code!r}")


class ForeignKeyViolation(PSGCError):
    """The store refused a write because a parent row does not exist.

    After reconciliation this cannot happen; it aborts the import run.
    """

    def __init__(self, table: str, column: str, missing: list[tuple[str, str]]) -> None:
        self.table = table
        self.column = column
        self.missing = missing
        preview = ", ".join(f"{code}->{parent}" for code, parent in missing[:5])
        super().__init__(
            f"{len(missing)} row(s) in {table!r} reference a missing {column}: {preview}"
        )


class IssueKind(str, Enum):
    """Non-fatal events recorded on reconciliation/merge/validation reports."""

    INVALID_CODE = "invalid_code"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNCLASSIFIABLE_CODE = "unclassifiable_code"
    UNSUPPORTED_LEVEL = "unsupported_level"
    ANCESTOR_MISSING = "ancestor_missing"
    DUPLICATE_CODE = "duplicate_code"
    PARENT_MISMATCH = "parent_mismatch"
    STANDARDS_MISMATCH = "standards_mismatch"
