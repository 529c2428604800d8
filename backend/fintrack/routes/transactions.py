from fastapi import APIRouter, Depends, HTTPException, Path, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, time, timezone
from uuid import UUID
import logging
import math

from fintrack.database import get_db
from fintrack.db_helpers import get_current_user
from fintrack.models import User, utcnow
from fintrack.schemas import (
    CategoryName,
    TransactionCreate,
    TransactionImportRequest,
    TransactionType,
    TransactionUpdate,
    category_allowed,
    transaction_to_dict,
    user_to_dict,
)
from fintrack.services.statistics import compute_monthly_summary, month_bounds
from fintrack.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)

router = APIRouter()

# Keys an exported transaction carries that must not be fed back on import
IMPORT_IGNORED_KEYS = {"_id", "id", "userId", "user_id", "createdAt", "created_at", "updatedAt", "updated_at"}


def _parse_date_param(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse an ISO date or datetime query parameter.
    A bare date used as an upper bound covers the whole day.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use ISO 8601")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if end_of_day and len(value) == 10:
        parsed = datetime.combine(parsed.date(), time.max)
    return parsed


@router.get("")
def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=1000),
    transaction_type: Optional[TransactionType] = Query(None, alias="type"),
    category: Optional[CategoryName] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List the current user's transactions, newest first."""
    store = TransactionStore(db, user.id)
    items, total = store.paginate(
        page=page,
        limit=limit,
        transaction_type=transaction_type,
        category=category,
        start_date=_parse_date_param(start_date),
        end_date=_parse_date_param(end_date, end_of_day=True),
    )
    return {
        "transactions": [transaction_to_dict(t) for t in items],
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "total": total,
    }


@router.post("", status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    store = TransactionStore(db, user.id)
    transaction = store.create(payload.model_dump())
    return {
        "message": "Transaction created successfully",
        "transaction": transaction_to_dict(transaction),
    }


@router.get("/summary/{year}/{month}")
def get_monthly_summary(
    year: int = Path(..., ge=1, le=9999),
    month: int = Path(..., ge=1, le=12),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Income, expenses and category breakdown for one calendar month."""
    start, end = month_bounds(year, month)
    store = TransactionStore(db, user.id)
    summary = compute_monthly_summary(store.in_range(start, end), year, month)
    return summary.to_dict()


@router.get("/export")
def export_transactions(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All of the user's transactions in the format accepted by /import."""
    store = TransactionStore(db, user.id)
    items = store.all()
    return {
        "transactions": [transaction_to_dict(t) for t in items],
        "exportDate": utcnow().isoformat(),
        "user": user_to_dict(user),
    }


@router.post("/import")
def import_transactions(
    request: TransactionImportRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Import previously exported transactions.

    Each item is validated on its own; invalid items are counted as errors
    and skipped, the rest are inserted in a single commit.
    """
    store = TransactionStore(db, user.id)
    imported = 0
    errors = 0

    for index, item in enumerate(request.transactions):
        if not isinstance(item, dict):
            errors += 1
            logger.warning(f"[IMPORT] Skipping item {index}: not an object")
            continue
        data = {k: v for k, v in item.items() if k not in IMPORT_IGNORED_KEYS}
        try:
            payload = TransactionCreate.model_validate(data)
        except ValidationError as e:
            errors += 1
            logger.warning(f"[IMPORT] Skipping item {index}: {e.error_count()} validation error(s)")
            continue
        store.create(payload.model_dump(), commit=False)
        imported += 1

    db.commit()
    logger.info(f"[IMPORT] User {user.id}: {imported} imported, {errors} errors")

    return {
        "message": f"Import completed! {imported} transactions imported, {errors} errors.",
        "imported": imported,
        "errors": errors,
    }


@router.get("/{transaction_id}")
def get_transaction(
    transaction_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    transaction = TransactionStore(db, user.id).get(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"transaction": transaction_to_dict(transaction)}


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: UUID,
    updates: TransactionUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update some fields of a transaction."""
    store = TransactionStore(db, user.id)
    transaction = store.get(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")

    update_data = updates.model_dump(exclude_unset=True)
    new_type = update_data.get("type", transaction.type)
    new_category = update_data.get("category", transaction.category)
    if not category_allowed(new_type, new_category):
        raise HTTPException(
            status_code=400,
            detail=f"Category '{new_category}' is not valid for {new_type} transactions",
        )

    transaction = store.update(transaction, update_data)
    return {
        "message": "Transaction updated successfully",
        "transaction": transaction_to_dict(transaction),
    }


@router.delete("/{transaction_id}")
def delete_transaction(
    transaction_id: UUID,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not TransactionStore(db, user.id).delete(transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"message": "Transaction deleted successfully"}
