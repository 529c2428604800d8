"""
User-scoped persistence for transactions.

Every query goes through `_query()`, which filters on the owning user, so a
transaction id belonging to someone else behaves exactly like a missing one.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
from sqlalchemy import func
from sqlalchemy.orm import Session
import logging

from fintrack.models import Transaction
from fintrack.services.statistics import GroupedTotal

logger = logging.getLogger(__name__)


class TransactionStore:
    """Query and mutation primitives for one user's transactions."""

    def __init__(self, db: Session, user_id: UUID):
        self.db = db
        self.user_id = user_id

    def _query(self):
        return self.db.query(Transaction).filter(Transaction.user_id == self.user_id)

    def _filtered(
        self,
        transaction_type: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ):
        query = self._query()
        if transaction_type:
            query = query.filter(Transaction.type == transaction_type)
        if category:
            query = query.filter(Transaction.category == category)
        if start_date:
            query = query.filter(Transaction.date >= start_date)
        if end_date:
            query = query.filter(Transaction.date <= end_date)
        return query

    def paginate(
        self,
        page: int = 1,
        limit: int = 50,
        transaction_type: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Transaction], int]:
        """
        One page of transactions, newest first, plus the total matching count.
        """
        query = self._filtered(transaction_type, category, start_date, end_date)
        total = query.count()
        items = (
            query.order_by(Transaction.date.desc(), Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return items, total

    def get(self, transaction_id: UUID) -> Optional[Transaction]:
        return self._query().filter(Transaction.id == transaction_id).first()

    def create(self, data: Dict[str, Any], commit: bool = True) -> Transaction:
        transaction = Transaction(**data, user_id=self.user_id)
        self.db.add(transaction)
        if commit:
            self.db.commit()
            self.db.refresh(transaction)
        return transaction

    def update(self, transaction: Transaction, data: Dict[str, Any]) -> Transaction:
        for field, value in data.items():
            setattr(transaction, field, value)
        self.db.commit()
        self.db.refresh(transaction)
        return transaction

    def delete(self, transaction_id: UUID) -> bool:
        transaction = self.get(transaction_id)
        if not transaction:
            return False
        self.db.delete(transaction)
        self.db.commit()
        return True

    def delete_all(self) -> int:
        deleted = self._query().delete(synchronize_session=False)
        logger.info(f"[STORE] Deleted {deleted} transactions for user {self.user_id}")
        return deleted

    def all(self) -> List[Transaction]:
        """Every transaction of the user, newest first."""
        return self._query().order_by(Transaction.date.desc(), Transaction.created_at.desc()).all()

    def in_range(self, start: datetime, end: datetime) -> List[Transaction]:
        """Transactions dated within [start, end], both bounds inclusive."""
        return self._filtered(start_date=start, end_date=end).all()

    def grouped_totals(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[GroupedTotal]:
        """
        Sum and count per (category, type), computed by the database.
        """
        query = self.db.query(
            Transaction.category.label("category"),
            Transaction.type.label("type"),
            func.sum(Transaction.amount).label("total"),
            func.count(Transaction.id).label("count"),
        ).filter(Transaction.user_id == self.user_id)

        if start:
            query = query.filter(Transaction.date >= start)
        if end:
            query = query.filter(Transaction.date <= end)

        rows = query.group_by(Transaction.category, Transaction.type).all()

        return [
            GroupedTotal(
                category=r.category,
                type=r.type,
                total=Decimal(str(r.total)) if r.total is not None else Decimal("0"),
                count=int(r.count),
            )
            for r in rows
        ]
