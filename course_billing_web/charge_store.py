"""Persistence layer for course charges.

The billing engine works on plain charge snapshots and never touches storage.
This store keeps those snapshots for the web service as JSON payloads keyed
by enrollment, in any SQLAlchemy-compatible database. It defaults to SQLite
for local development.

Charges are never deleted: they are created when an enrollment is billed and
afterwards only updated by payment processing.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from course_billing.data_models import Charge, ChargeStatus
from course_billing.utils import round_currency, to_decimal

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ChargeModel(Base):
    __tablename__ = "course_charges"

    id = Column(String(64), primary_key=True)
    enrollment_id = Column(String(64), index=True, nullable=False)
    payload_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class ChargeNotFoundError(LookupError):
    """No charge with the given id exists for the enrollment."""


class ChargeStore:
    """Database-backed charge store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_charges(self, enrollment_id: str) -> List[Dict[str, Any]]:
        """Return the charges of an enrollment ordered by due date."""
        if not enrollment_id:
            return []
        with self._session_factory() as session:
            rows: Iterable[ChargeModel] = session.execute(
                select(ChargeModel)
                .where(ChargeModel.enrollment_id == enrollment_id)
                .order_by(ChargeModel.created_at.asc())
            ).scalars()
            records = [self._to_dict(row) for row in rows]
        return sorted(records, key=lambda r: r["due_date"])

    def get_charge(self, enrollment_id: str, charge_id: str) -> Dict[str, Any]:
        with self._session_factory() as session:
            row = session.get(ChargeModel, charge_id)
            if row is None or row.enrollment_id != enrollment_id:
                raise ChargeNotFoundError(charge_id)
            return self._to_dict(row)

    def add_charge(
        self,
        enrollment_id: str,
        charge_id: str,
        amount: Decimal,
        due_date: date,
        course_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store a new outstanding charge and return it."""
        payload = {
            "course_name": course_name,
            "status": ChargeStatus.OUTSTANDING.value,
            "due_date": due_date.isoformat(),
            "amount": str(round_currency(to_decimal(amount))),
            "amount_paid": "0.00",
            "paid_date": None,
            "payment_method": None,
        }
        row = ChargeModel(
            id=charge_id,
            enrollment_id=enrollment_id,
            payload_json=json.dumps(payload),
            created_at=_utcnow(),
        )
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            logger.info("Created charge %s for enrollment %s", charge_id, enrollment_id)
            return self._to_dict(row)

    def record_payment(
        self,
        enrollment_id: str,
        charge_id: str,
        amount: Decimal,
        paid_date: date,
        payment_method: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Apply a payment to a charge.

        ``amount_paid`` accumulates; the charge becomes ``clear`` once it
        covers the billed amount and ``partially_paid`` before that.
        """
        with self._session_factory() as session:
            row = session.get(ChargeModel, charge_id)
            if row is None or row.enrollment_id != enrollment_id:
                raise ChargeNotFoundError(charge_id)
            payload = json.loads(row.payload_json)
            paid = round_currency(to_decimal(payload["amount_paid"]) + to_decimal(amount))
            billed = to_decimal(payload["amount"])
            payload["amount_paid"] = str(paid)
            payload["status"] = (ChargeStatus.CLEAR if paid >= billed else ChargeStatus.PARTIALLY_PAID).value
            payload["paid_date"] = paid_date.isoformat()
            payload["payment_method"] = payment_method
            row.payload_json = json.dumps(payload)
            session.commit()
            logger.info("Recorded payment of %s on charge %s (%s)", amount, charge_id, payload["status"])
            return self._to_dict(row)

    @staticmethod
    def to_charge(record: Dict[str, Any]) -> Charge:
        return Charge.from_dict(record)

    @staticmethod
    def _to_dict(row: ChargeModel) -> Dict[str, Any]:
        payload = json.loads(row.payload_json)
        return {
            "id": row.id,
            "enrollment_id": row.enrollment_id,
            **payload,
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None) -> ChargeStore:
    return ChargeStore(url or "sqlite:///course_charges.sqlite3")
