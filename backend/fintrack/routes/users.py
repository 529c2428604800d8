from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Tuple
import logging

from fintrack.database import get_db
from fintrack.db_helpers import get_current_user
from fintrack.models import DEFAULT_MONTHLY_BUDGET, User, utcnow
from fintrack.schemas import (
    AccountDelete,
    BudgetUpdate,
    PasswordChange,
    PreferencesUpdate,
    ProfileUpdate,
    transaction_to_dict,
    user_to_dict,
)
from fintrack.security.credentials import hash_password, verify_password
from fintrack.services.statistics import compute_user_stats, month_bounds, summarize_grouped
from fintrack.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_SUMMARY_MONTHS = 12


def _recent_months(year: int, month: int, count: int) -> List[Tuple[int, int]]:
    """(year, month) pairs from the given month backwards, newest first."""
    months = []
    for offset in range(count):
        index = year * 12 + (month - 1) - offset
        months.append((index // 12, index % 12 + 1))
    return months


def _preferences(user: User) -> dict:
    return {
        "currency": user.currency or "USD",
        "monthlyBudget": float(user.monthly_budget if user.monthly_budget is not None else DEFAULT_MONTHLY_BUDGET),
        "dateFormat": user.date_format or "MM/DD/YYYY",
        "theme": user.theme or "light",
    }


@router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return {"user": user_to_dict(user)}


@router.put("/profile")
def update_profile(
    updates: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update name, budget or currency. Omitted or null fields are left alone."""
    update_data = updates.model_dump(exclude_none=True)
    for field, value in update_data.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return {"message": "Profile updated successfully", "user": user_to_dict(user)}


@router.put("/budget")
def update_budget(
    payload: BudgetUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user.monthly_budget = payload.monthly_budget
    db.commit()
    db.refresh(user)
    return {"message": "Budget updated successfully", "user": user_to_dict(user)}


@router.get("/stats")
def get_stats(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    All-time and current-month totals, this month's category breakdown,
    the activity streak and the account age in days.
    """
    store = TransactionStore(db, user.id)
    stats = compute_user_stats(
        store.all(),
        now=utcnow(),
        account_created_at=user.created_at,
    )
    return stats.to_dict()


@router.put("/password")
def change_password(
    payload: PasswordChange,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    user.password_hash = hash_password(payload.new_password)
    db.commit()
    logger.info(f"[USERS] Password changed for user {user.id}")
    return {"message": "Password updated successfully"}


@router.delete("/account")
def delete_account(
    payload: AccountDelete,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete the account and every transaction it owns."""
    if not verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid password")

    user_id = user.id
    TransactionStore(db, user_id).delete_all()
    db.delete(user)
    db.commit()
    logger.info(f"[USERS] Deleted account {user_id}")
    return {"message": "Account deleted successfully"}


@router.get("/preferences")
def get_preferences(user: User = Depends(get_current_user)):
    return _preferences(user)


@router.put("/preferences")
def update_preferences(
    updates: PreferencesUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    update_data = updates.model_dump(exclude_none=True)
    for field, value in update_data.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return {"message": "Preferences updated successfully", "preferences": _preferences(user)}


@router.get("/export")
def export_all_data(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Full data export: profile, every transaction and the summaries of the
    last twelve months, current month first. Summaries are aggregated by
    the database rather than from the loaded rows.
    """
    store = TransactionStore(db, user.id)
    now = utcnow()

    summaries = []
    for year, month in _recent_months(now.year, now.month, EXPORT_SUMMARY_MONTHS):
        start, end = month_bounds(year, month)
        summary = summarize_grouped(store.grouped_totals(start, end), year, month)
        summaries.append({"year": year, "month": month, **summary.to_dict()})

    return {
        "user": user_to_dict(user),
        "transactions": [transaction_to_dict(t) for t in store.all()],
        "summaries": summaries,
        "exportDate": now.isoformat(),
        "monthlyBudget": _preferences(user)["monthlyBudget"],
    }
