"""
Two-Stage Form Validation

The core assumes well-formed records. Checking user input is this
module's job and happens before anything is stored.

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (name, price, category, payment date)
- Format validation (price is a number, cycle is known, date parses)
- Non-negative price

STAGE 2 - SEMANTIC VALIDATION:
- Unusually high price
- Payment date far in the past
- Category outside the suggested set

Stage 2 only produces warnings and info notes. It never blocks a save.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for the user to correct.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Mapping, Optional

from subtracker.config import get_settings
from subtracker.core.errors import InvalidCycle, InvalidDate
from subtracker.core.normalization import coerce_cycle, to_decimal
from subtracker.core.schedule import coerce_date
from subtracker.models.subscription import (
    SUGGESTED_CATEGORIES,
    SubscriptionDraft,
    SubscriptionPatch,
    ValidationIssue,
    ValidationResult,
)


def _parse_price(value: Any) -> Decimal:
    return to_decimal(value.strip() if isinstance(value, str) else value)


class SubscriptionValidator:
    """Validates add/edit form input for subscriptions."""

    def __init__(self, today: Optional[date] = None):
        self._settings = get_settings().app
        self._today = today

    def _validate_schema(self, form: Mapping[str, Any]) -> list[ValidationIssue]:
        issues = []

        name = form.get("name")
        if name is None or not str(name).strip():
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Name is required",
                severity="error",
            ))

        price = form.get("price")
        if price is None or (isinstance(price, str) and not price.strip()):
            issues.append(ValidationIssue(
                field="price",
                issue_type="missing",
                message="Price is required",
                severity="error",
            ))
        else:
            try:
                amount = _parse_price(price)
                if not amount.is_finite() or amount < 0:
                    raise ValueError(amount)
            except ValueError:
                issues.append(ValidationIssue(
                    field="price",
                    issue_type="invalid_value",
                    message="Price must be a valid positive number",
                    severity="error",
                    suggested_fix="Enter the amount without a currency symbol, e.g. 9.99",
                ))

        try:
            coerce_cycle(form.get("cycle", "monthly"))
        except InvalidCycle as e:
            issues.append(ValidationIssue(
                field="cycle",
                issue_type="invalid_value",
                message=str(e),
                severity="error",
            ))

        category = form.get("category")
        if category is None or not str(category).strip():
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
                severity="error",
            ))

        payment_date = form.get("payment_date")
        if payment_date is None or payment_date == "":
            issues.append(ValidationIssue(
                field="payment_date",
                issue_type="missing",
                message="Payment date is required",
                severity="error",
            ))
        else:
            try:
                coerce_date(payment_date)
            except InvalidDate as e:
                issues.append(ValidationIssue(
                    field="payment_date",
                    issue_type="invalid_format",
                    message=str(e),
                    severity="error",
                    suggested_fix="Use the YYYY-MM-DD format",
                ))

        return issues

    def _validate_semantic(self, form: Mapping[str, Any]) -> list[ValidationIssue]:
        issues = []
        today = self._today or date.today()

        amount = _parse_price(form["price"])
        max_price = Decimal(str(self._settings.max_reasonable_price))
        if amount > max_price:
            issues.append(ValidationIssue(
                field="price",
                issue_type="suspicious_value",
                message=f"Price ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        payment_date = coerce_date(form["payment_date"])
        oldest = today - timedelta(days=self._settings.stale_payment_date_days)
        if payment_date < oldest:
            issues.append(ValidationIssue(
                field="payment_date",
                issue_type="suspicious_date",
                message=(
                    f"Payment date ({payment_date}) is more than "
                    f"{self._settings.stale_payment_date_days} days in the past"
                ),
                severity="warning",
                suggested_fix="Enter the next upcoming payment date instead",
            ))

        if form["category"] not in SUGGESTED_CATEGORIES:
            issues.append(ValidationIssue(
                field="category",
                issue_type="custom_value",
                message=f"'{form['category']}' is a custom category",
                severity="info",
            ))

        return issues

    def validate(self, form: Mapping[str, Any]) -> ValidationResult:
        """
        Run both stages on raw form input.

        Args:
            form: Field name -> submitted value (name, price, cycle,
                  category, payment_date, notes)
        """
        issues = self._validate_schema(form)
        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_semantic(form))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def validate_patch(
        self,
        patch: SubscriptionPatch,
        current: Mapping[str, Any],
    ) -> ValidationResult:
        """Validate an edit by checking the record it would produce."""
        merged = dict(current)
        merged.update(patch.model_dump(exclude_unset=True))
        return self.validate(merged)

    def to_draft(self, form: Mapping[str, Any]) -> SubscriptionDraft:
        """
        Build a draft from form input that passed validation.

        Raises:
            ValueError: if the input has error-level issues.
        """
        result = self.validate(form)
        if not result.is_valid:
            raise ValueError(
                "; ".join(i.message for i in result.issues if i.severity == "error")
            )

        notes = form.get("notes")
        return SubscriptionDraft(
            name=form["name"],
            price=_parse_price(form["price"]),
            cycle=coerce_cycle(form.get("cycle", "monthly")),
            category=form["category"],
            payment_date=coerce_date(form["payment_date"]),
            notes=notes if notes else None,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """Generate a short summary of validation results for the form."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []
        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
