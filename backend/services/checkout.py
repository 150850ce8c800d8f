"""
Payment submission.

submit_payment validates the whole invoice up front, splits it into one
order per farmer, submits the orders and only then clears the buyer's cart.
Any failure leaves the cart and the pending invoice exactly as they were, so
the buyer can simply retry; the backend deduplicates resubmitted invoices.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from schemas.invoice import Invoice, InvoiceLine
from schemas.order import OrderCreate, OrderItemCreate
from services.errors import (
    CheckoutInProgressError, CheckoutPreconditionError, CheckoutValidationError, OrderBackendError,
)
from services.normalize import normalize_user

logger = logging.getLogger(__name__)

UNKNOWN_FARMER = "unknown"


class CheckoutStatus(str, enum.Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class FarmerGroup:
    key: str
    farmer_id: str
    farmer_email: str
    farmer_name: str
    lines: List[InvoiceLine] = field(default_factory=list)


def farmer_key(line: InvoiceLine) -> str:
    return line.farmer_email or line.farmer_id or UNKNOWN_FARMER


def split_by_farmer(lines: List[InvoiceLine]) -> List[FarmerGroup]:
    """Group lines per farmer, keeping the order in which farmers first appear."""
    groups = {}
    for line in lines:
        key = farmer_key(line)
        if key not in groups:
            groups[key] = FarmerGroup(
                key=key,
                farmer_id=line.farmer_id,
                farmer_email=line.farmer_email,
                farmer_name=line.farmer_name or "Unknown Farmer",
            )
        groups[key].lines.append(line)
    return list(groups.values())


def build_order_payloads(invoice: Invoice, groups: List[FarmerGroup], buyer_id: str) -> List[OrderCreate]:
    return [
        OrderCreate(
            buyer_id=buyer_id,
            invoice_no=invoice.invoice_no,
            farmer_key=group.key,
            items=[
                OrderItemCreate(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price_at_purchase=line.price,
                    farmer_id=line.farmer_id or line.farmer_email,
                ) for line in group.lines
            ],
        ) for group in groups
    ]


class CheckoutOrchestrator:
    def __init__(self, backend, cart_store, catalog=None, users=None, sessions=None):
        self.backend = backend
        self.cart_store = cart_store
        self.catalog = catalog
        self.users = users
        self.sessions = sessions
        self.status = CheckoutStatus.IDLE
        self.message = "Review your billing details before completing payment."
        self.error: Optional[str] = None

    @property
    def processing(self) -> bool:
        return self.status == CheckoutStatus.PROCESSING

    def resolve_farmer(self, line: InvoiceLine) -> InvoiceLine:
        """Fill farmer identity from the line, then the catalog, then the user directory."""
        farmer_id, email, name = line.farmer_id, line.farmer_email, line.farmer_name
        product = None
        if not email and line.product_id and self.catalog is not None:
            product = self.catalog.get_product_by_id(line.product_id)
            if product is not None:
                farmer_id = product.farmer_id or farmer_id
                email = product.farmer_email
                name = product.farmer_name or name

        if not email and self.users is not None:
            owner = (product.owner_id or product.farmer_id) if product is not None else farmer_id
            user = self.users.find(owner)
            if user is not None:
                email = user.email
                name = user.name or name
                farmer_id = user.email or user.id

        return line.model_copy(update={"farmer_id": farmer_id, "farmer_email": email, "farmer_name": name})

    def validate(self, invoice: Invoice) -> List[InvoiceLine]:
        errors = []
        resolved = []
        for index, line in enumerate(invoice.items, start=1):
            if not line.product_id:
                errors.append(f"Item {index}: Missing productId")
            if not line.name:
                errors.append(f"Item {index}: Missing name")
            if not line.price > 0:
                errors.append(f"Item {index}: Invalid price")
            if not line.quantity > 0:
                errors.append(f"Item {index}: Invalid quantity")
            line = self.resolve_farmer(line)
            if not (line.farmer_email or line.farmer_id):
                errors.append(f"Item {index}: Missing farmer information")
            resolved.append(line)
        if errors:
            raise CheckoutValidationError(errors)
        return resolved

    def _fail(self, message: str) -> None:
        self.status = CheckoutStatus.FAILED
        self.error = message
        self.message = "We could not complete the payment."

    async def submit_payment(self, invoice: Optional[Invoice], buyer: Any) -> Invoice:
        buyer = normalize_user(buyer)
        if invoice is None or not invoice.items:
            raise CheckoutPreconditionError("The billing session expired. Please return to your cart and try again.")
        if buyer is None:
            raise CheckoutPreconditionError("Please sign in to complete your purchase.")
        if self.processing:
            raise CheckoutInProgressError(f"Invoice {invoice.invoice_no} is already being processed")

        try:
            lines = self.validate(invoice)
        except CheckoutValidationError as e:
            self._fail(e.message)
            raise

        self.status = CheckoutStatus.PROCESSING
        self.error = None
        self.message = "Processing payment..."

        groups = split_by_farmer(lines)
        payloads = build_order_payloads(invoice, groups, buyer.id)
        logger.info("Submitting invoice %s as %d order(s) for buyer %s",
                    invoice.invoice_no, len(payloads), buyer.id)

        order_ids = []
        try:
            for payload in payloads:
                order = await self.backend.create_order(payload)
                order_ids.append(order.id)
        except OrderBackendError as e:
            logger.warning("Payment for invoice %s failed: %s", invoice.invoice_no, e.message)
            self._fail(e.message or "Payment failed. Please try again.")
            raise
        except Exception:
            logger.exception("Unexpected error while submitting invoice %s", invoice.invoice_no)
            self._fail("Payment failed. Please try again.")
            raise

        # Every farmer order is confirmed; now the cart can go
        self.cart_store.clear_cart(buyer.id)

        completed = invoice.model_copy(update={
            "paid_at": datetime.now().isoformat(),
            "order_id": order_ids[0] if order_ids else None,
            "order_ids": order_ids,
        })
        if self.sessions is not None:
            self.sessions.clear_pending(buyer.id)
            self.sessions.save_receipt(buyer.id, completed)

        self.status = CheckoutStatus.SUCCEEDED
        self.message = "Purchase Successful!"
        return completed
