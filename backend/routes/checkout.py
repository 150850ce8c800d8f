# backend/routes/checkout.py
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
import logging

from config import settings
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log
from models.users import User
from routes.cart import get_cart_store
from schemas.cart import CartLine
from schemas.invoice import BuyNowRequest, Invoice, InvoiceView, PaymentRequest
from services.cart_store import CartStore
from services.catalog import ProductCatalog, UserDirectory
from services.checkout import CheckoutOrchestrator
from services.checkout_sessions import CheckoutSessionStore
from services.errors import (
    CheckoutInProgressError, CheckoutPreconditionError, CheckoutValidationError, OrderBackendError,
)
from services.invoice_builder import build_invoice, format_currency, format_invoice_date
from services.normalize import to_number
from services.order_backend import OrderBackend, get_order_backend

router = APIRouter(prefix="/checkout", tags=["Checkout"])
logger = logging.getLogger(__name__)

SESSION_EXPIRED = "The billing session expired. Please return to your cart and try again."


def _ip(request: Request):
    return request.client.host if request.client else None


def _view(invoice: Invoice) -> InvoiceView:
    return InvoiceView(
        invoice=invoice,
        date_display=format_invoice_date(invoice.date),
        total_display=format_currency(invoice.total_amount, settings.CURRENCY_LOCALE),
        paid_at_display=format_invoice_date(invoice.paid_at) if invoice.paid_at else None,
    )


def _back_to_cart(message: str):
    raise HTTPException(status_code=409, detail={"message": message, "redirect": "cart"})


def _metadata(user: User) -> dict:
    return {
        "buyer_id": user.id,
        "buyer_name": user.name,
        "created_at": datetime.now().isoformat(),
    }


# Build an invoice from the cart and open a billing session
@router.post("/invoice", response_model=InvoiceView)
def proceed_to_checkout(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    items = store.resolved_items(current_user.id)
    if not items:
        raise HTTPException(status_code=400, detail="Your cart is empty.")

    invoice = build_invoice(items, _metadata(current_user))
    CheckoutSessionStore(db).save_pending(current_user.id, invoice)

    write_log(
        db, user_id=current_user.id, action="INVOICE_CREATE", resource="checkout", status="SUCCESS",
        ip=_ip(request), meta={"invoice_no": invoice.invoice_no, "total": invoice.total_amount},
    )
    return _view(invoice)


# Invoice for a single product, bypassing the cart
@router.post("/buy-now", response_model=InvoiceView)
def buy_now(
    payload: BuyNowRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
):
    if ProductCatalog(db).get_product_by_id(payload.product_id) is None:
        raise HTTPException(status_code=404, detail="Product not found")

    quantity = max(1, int(to_number(payload.quantity, default=1)))
    item = store.resolve(CartLine(product_id=payload.product_id, quantity=quantity))
    invoice = build_invoice([item], _metadata(current_user))
    CheckoutSessionStore(db).save_pending(current_user.id, invoice)

    write_log(
        db, user_id=current_user.id, action="INVOICE_CREATE", resource="checkout", status="SUCCESS",
        ip=_ip(request), meta={"invoice_no": invoice.invoice_no, "buy_now": payload.product_id},
    )
    return _view(invoice)


# Resume the billing session after a reload
@router.get("/invoice", response_model=InvoiceView)
def get_pending_invoice(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    invoice = CheckoutSessionStore(db).load_pending(current_user.id)
    if invoice is None:
        _back_to_cart(SESSION_EXPIRED)
    return _view(invoice)


# Abandon the billing session; the cart is kept
@router.delete("/invoice", status_code=204)
def abandon_invoice(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    CheckoutSessionStore(db).clear_pending(current_user.id)


# Submit payment for the pending invoice
@router.post("/pay", response_model=InvoiceView)
async def submit_payment(
    request: Request,
    payload: Optional[PaymentRequest] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: CartStore = Depends(get_cart_store),
    backend: OrderBackend = Depends(get_order_backend),
):
    sessions = CheckoutSessionStore(db)
    invoice = sessions.load_pending(current_user.id)
    if invoice is not None and payload and payload.invoice_no and payload.invoice_no != invoice.invoice_no:
        _back_to_cart(SESSION_EXPIRED)

    orchestrator = CheckoutOrchestrator(
        backend, store, catalog=ProductCatalog(db), users=UserDirectory(db), sessions=sessions,
    )
    try:
        completed = await orchestrator.submit_payment(invoice, current_user)
    except (CheckoutPreconditionError, CheckoutInProgressError) as e:
        _back_to_cart(str(e))
    except CheckoutValidationError as e:
        write_log(
            db, user_id=current_user.id, action="PAYMENT", resource="checkout", status="FAIL",
            ip=_ip(request), meta={"invoice_no": invoice.invoice_no, "errors": e.errors},
        )
        raise HTTPException(status_code=422, detail={"message": e.message, "errors": e.errors})
    except OrderBackendError as e:
        write_log(
            db, user_id=current_user.id, action="PAYMENT", resource="checkout", status="FAIL",
            ip=_ip(request), meta={"invoice_no": invoice.invoice_no, "error": e.message},
        )
        status_code = e.status_code if e.status_code and 400 <= e.status_code < 500 else 502
        raise HTTPException(status_code=status_code, detail=e.message)

    write_log(
        db, user_id=current_user.id, action="PAYMENT", resource="checkout", status="SUCCESS",
        ip=_ip(request), meta={"invoice_no": completed.invoice_no, "order_ids": completed.order_ids},
    )
    return _view(completed)


# Receipt of the last completed purchase
@router.get("/receipt", response_model=InvoiceView)
def get_receipt(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    invoice = CheckoutSessionStore(db).load_receipt(current_user.id)
    if invoice is None:
        raise HTTPException(status_code=404, detail="No completed purchase found")
    return _view(invoice)
