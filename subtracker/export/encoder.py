"""
Export Encoder

Serializes subscriptions into a downloadable artifact (CSV or JSON).

The encoder only produces bytes plus a suggested filename and media type.
Offering the file for download is the UI's job.

CSV layout:
    Name,Price,Cycle,Category,Payment Date,Notes,Created At
Fields are quoted only when they contain a comma, a double quote or a line
break; embedded quotes are doubled. Prices are plain decimals with no
currency symbol.

JSON layout: a list of records using the interchange field names
(id, name, price, cycle, category, paymentDate, notes, ownerId, createdAt),
indented for readability. `price` is a JSON number. decode_json() reads it
back.

A stored payment date that is not a valid date is exported as its original
text in both formats.
"""

import csv
import io
import json
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence, Union

from pydantic import TypeAdapter

from subtracker.core.aggregation import scoped_to_owner
from subtracker.models.subscription import (
    ExportArtifact,
    ExportFormat,
    Subscription,
)

CSV_HEADERS = [
    "Name",
    "Price",
    "Cycle",
    "Category",
    "Payment Date",
    "Notes",
    "Created At",
]

MEDIA_TYPES = {
    ExportFormat.CSV: "text/csv",
    ExportFormat.JSON: "application/json",
}

_SUBSCRIPTION_LIST = TypeAdapter(list[Subscription])


def _plain_decimal(value: Decimal) -> str:
    # format "f" never falls back to exponent notation (1E+1 -> "10")
    return format(value, "f")


def _json_number(value: Decimal):
    # Whole amounts stay integers; prices carry at most a few decimal
    # places, well inside float precision.
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def export_filename(export_format: ExportFormat, today: Optional[date] = None) -> str:
    """subscriptions_<YYYY-MM-DD>.<ext>"""
    day = today or date.today()
    return f"subscriptions_{day.isoformat()}.{export_format.value}"


def encode_csv(subscriptions: Sequence[Subscription]) -> str:
    """Render subscriptions as CSV text, one row per record in input order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for subscription in subscriptions:
        writer.writerow([
            subscription.name,
            _plain_decimal(subscription.price),
            subscription.cycle.value,
            subscription.category,
            subscription.payment_date_text,
            subscription.notes or "",
            subscription.created_at.isoformat(),
        ])
    return buffer.getvalue()


def encode_json(subscriptions: Sequence[Subscription]) -> str:
    """Render subscriptions as pretty-printed JSON text."""
    payload = []
    for subscription in subscriptions:
        record = subscription.model_dump(mode="json", by_alias=True)
        record["price"] = _json_number(subscription.price)
        record["paymentDate"] = subscription.payment_date_text or None
        payload.append(record)
    return json.dumps(payload, indent=2, ensure_ascii=False)


def decode_json(content: Union[bytes, str]) -> list[Subscription]:
    """
    Parse a JSON export back into Subscription records.

    Raises:
        pydantic.ValidationError: if the content is not a valid export.
    """
    return _SUBSCRIPTION_LIST.validate_json(content)


def encode(
    subscriptions: Sequence[Subscription],
    export_format: Union[ExportFormat, str],
    today: Optional[date] = None,
    owner_id: Optional[str] = None,
) -> ExportArtifact:
    """
    Encode subscriptions for download.

    Args:
        subscriptions: Records to export, written in the given order
        export_format: "csv" or "json"
        today: Date used in the filename (defaults to today)
        owner_id: If given, every record must belong to this owner

    Raises:
        ValueError: for an unknown format
        OwnershipViolation: if a record belongs to another owner
    """
    try:
        fmt = ExportFormat(export_format)
    except ValueError:
        raise ValueError(
            f"Unsupported export format: {export_format!r}. Use 'csv' or 'json'"
        ) from None

    records = scoped_to_owner(subscriptions, owner_id)
    if fmt == ExportFormat.CSV:
        text = encode_csv(records)
    else:
        text = encode_json(records)

    return ExportArtifact(
        content=text.encode("utf-8"),
        filename=export_filename(fmt, today),
        media_type=MEDIA_TYPES[fmt],
        record_count=len(records),
    )
