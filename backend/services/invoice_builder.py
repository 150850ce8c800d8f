"""
Invoice construction and the presentation helpers shared by the billing,
receipt and cart views.

Building an invoice never fails on data shape: missing names become "Item",
missing or invalid prices become 0 and quantities are floored at 1. The
invoice's total_amount is the authoritative total for the rest of checkout.
"""
import logging
import math
import time
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from schemas.invoice import Invoice, InvoiceLine
from services.normalize import normalize_raw_item, pick, to_number, to_text

logger = logging.getLogger(__name__)


def generate_invoice_number(now: Optional[float] = None) -> str:
    timestamp = time.time() if now is None else now
    return f"INV{int(timestamp * 1000)}"


def map_items_to_invoice_lines(items: Iterable[Any] = ()) -> List[InvoiceLine]:
    lines = []
    for raw in items or []:
        item = normalize_raw_item(raw)
        price = max(0.0, to_number(item["price"]))
        quantity = max(1, int(to_number(item["quantity"])))
        product_id = item["product_id"]
        lines.append(InvoiceLine(
            product_id=None if product_id is None else to_text(product_id),
            name=to_text(item["name"] or "Item"),
            price=price,
            quantity=quantity,
            subtotal=price * quantity,
            farmer_id=item["farmer_id"],
            farmer_email=item["farmer_email"],
            farmer_name=item["farmer_name"],
            product_image=item["product_image"],
        ))
    return lines


def invoice_total(lines: Iterable[InvoiceLine]) -> float:
    # fsum is exactly rounded, so line order cannot change the total
    return math.fsum(line.subtotal for line in lines)


def build_invoice(items: Iterable[Any] = (), metadata: Optional[Mapping[str, Any]] = None) -> Invoice:
    metadata = metadata or {}
    lines = map_items_to_invoice_lines(items)
    buyer_id = pick(metadata, "buyer_id")
    return Invoice(
        invoice_no=to_text(pick(metadata, "invoice_no") or generate_invoice_number()),
        date=to_text(pick(metadata, "date") or datetime.now().isoformat()),
        items=lines,
        total_amount=invoice_total(lines),
        buyer_id=None if buyer_id is None else to_text(buyer_id),
        buyer_name=pick(metadata, "buyer_name"),
        created_at=pick(metadata, "created_at"),
    )


def _group_digits(digits: str, locale: str) -> str:
    if len(digits) <= 3:
        return digits
    if locale.replace("-", "_").lower() == "en_in":
        # Lakh grouping: last three digits, then pairs (12,34,567)
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        return ",".join(groups + [tail])
    return f"{int(digits):,}"


def format_currency(value: Any, locale: str = "en_IN") -> str:
    """Two decimals with the locale's digit grouping; display only."""
    amount = to_number(value)
    sign = "-" if amount < 0 else ""
    whole, fraction = f"{abs(amount):.2f}".split(".")
    return f"{sign}{_group_digits(whole, locale)}.{fraction}"


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def format_invoice_date(value: Any = None) -> str:
    date = _parse_date(value) if value not in (None, "") else None
    if date is None:
        if value not in (None, ""):
            logger.debug("Unparsable invoice date %r, showing current time", value)
        date = datetime.now()
    return date.strftime("%d/%m/%Y, %I:%M:%S %p").lower()
