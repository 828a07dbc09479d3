"""
errors/aggregator.py - Aggregate and report store errors
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import uuid

from .taxonomy import StoreError, ErrorCategory, ErrorSeverity


@dataclass
class ErrorReport:
    """Aggregated error report."""

    report_id: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    # Counts
    total_errors: int = 0
    by_severity: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    by_field: Dict[str, int] = field(default_factory=dict)

    summary: str = ""

    all_errors: List[StoreError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": self.report_id,
            "total_errors": self.total_errors,
            "by_severity": self.by_severity,
            "by_category": self.by_category,
            "by_field": self.by_field,
            "summary": self.summary,
        }


class ErrorAggregator:
    """
    Collects the errors one store handled without raising.

    Bounded: once max_errors is reached the oldest records are dropped.
    """

    def __init__(self, max_errors: Optional[int] = 200):
        self._max_errors = max_errors
        self._errors: List[StoreError] = []
        self._by_field: Dict[str, List[StoreError]] = {}

    def add(self, error: StoreError) -> None:
        """Add an error."""
        self._errors.append(error)
        if error.field_name is not None:
            self._by_field.setdefault(error.field_name, []).append(error)

        if self._max_errors is not None and len(self._errors) > self._max_errors:
            dropped = self._errors.pop(0)
            if dropped.field_name is not None:
                bucket = self._by_field.get(dropped.field_name, [])
                if dropped in bucket:
                    bucket.remove(dropped)

    def add_all(self, errors: List[StoreError]) -> None:
        for error in errors:
            self.add(error)

    def get_by_severity(self, severity: ErrorSeverity) -> List[StoreError]:
        return [e for e in self._errors if e.severity == severity]

    def get_by_category(self, category: ErrorCategory) -> List[StoreError]:
        return [e for e in self._errors if e.category == category]

    def get_by_field(self, field_name: str) -> List[StoreError]:
        return list(self._by_field.get(field_name, []))

    def last_for_field(self, field_name: str) -> Optional[StoreError]:
        bucket = self._by_field.get(field_name)
        return bucket[-1] if bucket else None

    def has_errors(self) -> bool:
        """Check if any errors (not just warnings)."""
        return any(
            e.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]
            for e in self._errors
        )

    @property
    def errors(self) -> List[StoreError]:
        return list(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def generate_report(self) -> ErrorReport:
        """Generate aggregated report."""
        report = ErrorReport(
            report_id=str(uuid.uuid4())[:8],
            total_errors=len(self._errors),
        )

        for severity in ErrorSeverity:
            count = sum(1 for e in self._errors if e.severity == severity)
            if count > 0:
                report.by_severity[severity.value] = count

        for category in ErrorCategory:
            count = sum(1 for e in self._errors if e.category == category)
            if count > 0:
                report.by_category[category.value] = count

        for field_name, bucket in self._by_field.items():
            if bucket:
                report.by_field[field_name] = len(bucket)

        if report.by_severity.get("error", 0) > 0:
            report.summary = f"{report.by_severity['error']} error(s) found"
        elif report.by_severity.get("warning", 0) > 0:
            report.summary = f"{report.by_severity['warning']} warning(s) found"
        else:
            report.summary = "No significant issues"

        report.all_errors = self._errors.copy()

        return report

    def clear(self) -> None:
        self._errors.clear()
        self._by_field.clear()
