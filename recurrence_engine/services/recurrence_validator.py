"""Recurrence Validator."""
from datetime import datetime
from typing import Dict, Any, Optional

from recurrence_engine.models.recurrence_pattern import RecurrencePattern
from recurrence_engine.services.exceptions import InvalidRule


class RecurrenceValidator:
    """Validate recurrence rules for templates."""

    @staticmethod
    def validate_rule(
        pattern: Any,
        interval: Optional[int] = 1,
        anchor_day_of_week: Optional[int] = None,
        anchor_day_of_month: Optional[int] = None,
        anchor_month_of_year: Optional[int] = None,
        end_at: Optional[datetime] = None,
        occurrence_cap: Optional[int] = None,
        first_due: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Validate a recurrence rule.

        Args:
            pattern: Recurrence pattern (daily, weekly, biweekly, monthly, quarterly, yearly)
            interval: Repeat every N units, at least 1
            anchor_day_of_week: 0-6 (Sunday-Saturday)
            anchor_day_of_month: 1-31
            anchor_month_of_year: 1-12
            end_at: Optional hard stop
            occurrence_cap: Optional maximum number of occurrences
            first_due: Optional first scheduled instant

        Returns:
            Dict with validation result
        """
        result = {
            "valid": True,
            "errors": [],
            "warnings": []
        }

        parsed = RecurrencePattern.parse(pattern)
        if parsed is None:
            allowed = ", ".join(p.value for p in RecurrencePattern)
            result["errors"].append(f"Recurrence pattern must be one of: {allowed}")

        if interval is not None and (not isinstance(interval, int) or interval < 1):
            result["errors"].append("Recurrence interval must be at least 1")

        if anchor_day_of_week is not None and not 0 <= anchor_day_of_week <= 6:
            result["errors"].append("Day of week must be 0-6 (Sunday-Saturday)")

        if anchor_day_of_month is not None and not 1 <= anchor_day_of_month <= 31:
            result["errors"].append("Day of month must be 1-31")

        if anchor_month_of_year is not None and not 1 <= anchor_month_of_year <= 12:
            result["errors"].append("Month of year must be 1-12")

        if occurrence_cap is not None and occurrence_cap < 1:
            result["errors"].append("Occurrence cap must be at least 1")

        if end_at is not None and first_due is not None and end_at < first_due:
            result["errors"].append("End date must not be before the first due date")

        # Anchors that the pattern ignores are accepted but flagged
        if parsed is not None:
            if anchor_day_of_week is not None and parsed is not RecurrencePattern.WEEKLY:
                result["warnings"].append(f"Day of week is ignored for {parsed.value} recurrence")
            if anchor_day_of_month is not None and parsed not in (
                RecurrencePattern.MONTHLY, RecurrencePattern.QUARTERLY, RecurrencePattern.YEARLY
            ):
                result["warnings"].append(f"Day of month is ignored for {parsed.value} recurrence")
            if anchor_month_of_year is not None and parsed is not RecurrencePattern.YEARLY:
                result["warnings"].append(f"Month of year is ignored for {parsed.value} recurrence")

        result["valid"] = not result["errors"]
        return result

    @staticmethod
    def ensure_valid(**rule) -> Dict[str, Any]:
        """Validate a rule and raise InvalidRule when it has errors."""
        result = RecurrenceValidator.validate_rule(**rule)
        if not result["valid"]:
            raise InvalidRule("; ".join(result["errors"]), errors=result["errors"])
        return result

    @staticmethod
    def validate_template(template) -> Dict[str, Any]:
        """Validate the rule fields of a persisted template."""
        return RecurrenceValidator.validate_rule(
            pattern=template.pattern,
            interval=template.interval,
            anchor_day_of_week=template.anchor_day_of_week,
            anchor_day_of_month=template.anchor_day_of_month,
            anchor_month_of_year=template.anchor_month_of_year,
            occurrence_cap=template.occurrence_cap,
        )

