# Persisted invoices: the pending one during billing and the last receipt
import json
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from models.checkout import CheckoutSession, SessionKind
from schemas.invoice import Invoice

logger = logging.getLogger(__name__)


class CheckoutSessionStore:
    def __init__(self, db: Session):
        self.db = db

    def _row(self, user_key: str, kind: SessionKind) -> Optional[CheckoutSession]:
        return self.db.query(CheckoutSession).filter(
            CheckoutSession.user_key == str(user_key), CheckoutSession.kind == kind
        ).first()

    def _load(self, user_key: str, kind: SessionKind) -> Optional[Invoice]:
        row = self._row(user_key, kind)
        if not row:
            return None
        try:
            return Invoice.model_validate(json.loads(row.payload))
        except (ValueError, ValidationError) as e:
            # A corrupt snapshot is treated as absent
            logger.warning("Discarding unreadable %s invoice for user %s: %s", kind.value, user_key, e)
            return None

    def _save(self, user_key: str, kind: SessionKind, invoice: Invoice) -> None:
        row = self._row(user_key, kind)
        if not row:
            row = CheckoutSession(user_key=str(user_key), kind=kind)
            self.db.add(row)
        row.invoice_no = invoice.invoice_no
        row.payload = invoice.model_dump_json()
        self.db.commit()

    def _clear(self, user_key: str, kind: SessionKind) -> None:
        self.db.query(CheckoutSession).filter(
            CheckoutSession.user_key == str(user_key), CheckoutSession.kind == kind
        ).delete()
        self.db.commit()

    def load_pending(self, user_key) -> Optional[Invoice]:
        return self._load(user_key, SessionKind.PENDING)

    def save_pending(self, user_key, invoice: Invoice) -> None:
        self._save(user_key, SessionKind.PENDING, invoice)

    def clear_pending(self, user_key) -> None:
        self._clear(user_key, SessionKind.PENDING)

    def load_receipt(self, user_key) -> Optional[Invoice]:
        return self._load(user_key, SessionKind.RECEIPT)

    def save_receipt(self, user_key, invoice: Invoice) -> None:
        self._save(user_key, SessionKind.RECEIPT, invoice)
