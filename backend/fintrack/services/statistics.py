"""
Statistics over a user's transactions: monthly summaries, category breakdowns
and activity streaks.

Everything here is a pure function of the rows passed in. Callers fetch and
scope rows (see TransactionStore); nothing in this module touches the database.
Amounts are summed as Decimal, so totals do not depend on input order.

The store may also pre-aggregate with GROUP BY. `summarize_grouped` and
`merge_grouped_totals` fold those (category, type) rows into the same shapes
the row-wise functions produce.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple, Union

INCOME = "income"
EXPENSE = "expense"

# Only this many of the most recent transactions are looked at for the streak
STREAK_WINDOW = 30

ZERO = Decimal("0")


class UnknownTransactionTypeError(ValueError):
    """Raised when a row reaches the engine with a type other than income/expense."""

    def __init__(self, transaction_type: object):
        super().__init__(f"Unknown transaction type: {transaction_type!r}")
        self.transaction_type = transaction_type


class TransactionLike(Protocol):
    type: str
    amount: Decimal
    category: str
    date: datetime


@dataclass(frozen=True)
class TransactionRecord:
    """Plain in-memory transaction; ORM rows satisfy the same protocol."""
    type: str
    amount: Decimal
    category: str
    date: datetime


@dataclass(frozen=True)
class GroupedTotal:
    """One (category, type) group as returned by a GROUP BY aggregation."""
    category: str
    type: str
    total: Decimal
    count: int


@dataclass
class CategoryTotals:
    income: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.income + self.expenses

    def add(self, transaction_type: str, amount: Decimal) -> None:
        if _check_type(transaction_type) == INCOME:
            self.income += amount
        else:
            self.expenses += amount

    def to_dict(self) -> dict:
        return {
            "income": float(self.income),
            "expenses": float(self.expenses),
            "total": float(self.total),
        }


@dataclass(frozen=True)
class MonthlySummary:
    year: int
    month: int
    total_income: Decimal = ZERO
    total_expenses: Decimal = ZERO
    transaction_count: int = 0
    category_breakdown: Dict[str, CategoryTotals] = field(default_factory=dict)

    @property
    def net_balance(self) -> Decimal:
        return self.total_income - self.total_expenses

    def to_dict(self) -> dict:
        return {
            "totalIncome": float(self.total_income),
            "totalExpenses": float(self.total_expenses),
            "netBalance": float(self.net_balance),
            "transactionCount": self.transaction_count,
            "categoryBreakdown": _breakdown_to_dict(self.category_breakdown),
        }


@dataclass(frozen=True)
class UserStats:
    total_transactions: int
    all_time_income: Decimal
    all_time_expenses: Decimal
    month_income: Decimal
    month_expenses: Decimal
    month_transaction_count: int
    category_breakdown: Dict[str, CategoryTotals]
    streak: int
    account_age: int

    @property
    def net_worth(self) -> Decimal:
        return self.all_time_income - self.all_time_expenses

    @property
    def month_net_balance(self) -> Decimal:
        return self.month_income - self.month_expenses

    def to_dict(self) -> dict:
        return {
            "totalTransactions": self.total_transactions,
            "allTime": {
                "income": float(self.all_time_income),
                "expenses": float(self.all_time_expenses),
                "netWorth": float(self.net_worth),
            },
            "thisMonth": {
                "income": float(self.month_income),
                "expenses": float(self.month_expenses),
                "netBalance": float(self.month_net_balance),
                "transactionCount": self.month_transaction_count,
            },
            "categoryBreakdown": _breakdown_to_dict(self.category_breakdown),
            "streak": self.streak,
            "accountAge": self.account_age,
        }


def _check_type(transaction_type: object) -> str:
    if transaction_type not in (INCOME, EXPENSE):
        raise UnknownTransactionTypeError(transaction_type)
    return transaction_type


def _as_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _breakdown_to_dict(breakdown: Dict[str, CategoryTotals]) -> dict:
    return {category: totals.to_dict() for category, totals in breakdown.items()}


def _sorted_breakdown(breakdown: Dict[str, CategoryTotals]) -> Dict[str, CategoryTotals]:
    # Key order must not leak the input order into the response
    return dict(sorted(breakdown.items()))


def _day_key(value: Union[datetime, date]) -> date:
    return value.date() if isinstance(value, datetime) else value


def month_bounds(year: int, month: int) -> Tuple[datetime, datetime]:
    """
    First and last instant of a calendar month, both inclusive.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1)
    end = datetime.combine(date(year, month, last_day), time.max)
    return start, end


def in_month(value: datetime, year: int, month: int) -> bool:
    return value.year == year and value.month == month


def build_category_breakdown(transactions: Iterable[TransactionLike]) -> Dict[str, CategoryTotals]:
    breakdown: Dict[str, CategoryTotals] = {}
    for transaction in transactions:
        totals = breakdown.setdefault(transaction.category, CategoryTotals())
        totals.add(transaction.type, _as_decimal(transaction.amount))
    return _sorted_breakdown(breakdown)


def compute_monthly_summary(
    transactions: Sequence[TransactionLike],
    year: int,
    month: int,
) -> MonthlySummary:
    """
    Summarize one month of transactions.

    The caller passes only rows dated inside the month (see `month_bounds`).

    Args:
        transactions: Rows for the month, in any order
        year: Calendar year of the month
        month: Month number, 1-12

    Returns:
        MonthlySummary with income/expense totals, count and per-category totals

    Raises:
        UnknownTransactionTypeError: If a row is neither income nor expense
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    total_income = ZERO
    total_expenses = ZERO
    count = 0
    for transaction in transactions:
        amount = _as_decimal(transaction.amount)
        if _check_type(transaction.type) == INCOME:
            total_income += amount
        else:
            total_expenses += amount
        count += 1

    return MonthlySummary(
        year=year,
        month=month,
        total_income=total_income,
        total_expenses=total_expenses,
        transaction_count=count,
        category_breakdown=build_category_breakdown(transactions),
    )


def group_by_category_and_type(transactions: Iterable[TransactionLike]) -> List[GroupedTotal]:
    """In-process equivalent of GROUP BY category, type."""
    groups: Dict[Tuple[str, str], List] = {}
    for transaction in transactions:
        key = (transaction.category, _check_type(transaction.type))
        bucket = groups.setdefault(key, [ZERO, 0])
        bucket[0] += _as_decimal(transaction.amount)
        bucket[1] += 1
    return [
        GroupedTotal(category=category, type=transaction_type, total=total, count=count)
        for (category, transaction_type), (total, count) in sorted(groups.items())
    ]


def merge_grouped_totals(rows: Iterable[GroupedTotal]) -> Dict[str, CategoryTotals]:
    """Merge (category, type) groups into category -> {income, expenses, total}."""
    breakdown: Dict[str, CategoryTotals] = {}
    for row in rows:
        breakdown.setdefault(row.category, CategoryTotals()).add(row.type, _as_decimal(row.total))
    return _sorted_breakdown(breakdown)


def summarize_grouped(rows: Sequence[GroupedTotal], year: int, month: int) -> MonthlySummary:
    """
    Build a MonthlySummary from store-side grouped totals.
    Produces the same result as compute_monthly_summary over the raw rows.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    total_income = ZERO
    total_expenses = ZERO
    count = 0
    for row in rows:
        if _check_type(row.type) == INCOME:
            total_income += _as_decimal(row.total)
        else:
            total_expenses += _as_decimal(row.total)
        count += row.count

    return MonthlySummary(
        year=year,
        month=month,
        total_income=total_income,
        total_expenses=total_expenses,
        transaction_count=count,
        category_breakdown=merge_grouped_totals(rows),
    )


def compute_streak(
    dates: Iterable[Union[datetime, date]],
    today: date,
    window: int = STREAK_WINDOW,
) -> int:
    """
    Number of consecutive days, ending today, with at least one transaction.

    Only the `window` most recent transaction dates are considered. Returns 0
    when today has no transaction; earlier runs do not count.
    """
    recent_days = sorted((_day_key(value) for value in dates), reverse=True)[:window]
    active_days = set(recent_days)

    streak = 0
    day = today
    while day in active_days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def account_age_days(now: datetime, created_at: datetime) -> int:
    """Whole days since the account was created, rounded down."""
    return (now - created_at) // timedelta(days=1)


def compute_user_stats(
    transactions: Sequence[TransactionLike],
    now: datetime,
    account_created_at: datetime,
) -> UserStats:
    """
    Aggregate statistics across all of a user's transactions.

    Args:
        transactions: Every transaction the user owns, in any order
        now: Reference time; its calendar month is "this month" and its date is "today"
        account_created_at: When the user registered

    Returns:
        UserStats for the all-time and current-month buckets, the current
        month's category breakdown, the activity streak and account age
    """
    all_time_income = ZERO
    all_time_expenses = ZERO
    month_income = ZERO
    month_expenses = ZERO
    this_month: List[TransactionLike] = []

    for transaction in transactions:
        amount = _as_decimal(transaction.amount)
        is_income = _check_type(transaction.type) == INCOME
        if is_income:
            all_time_income += amount
        else:
            all_time_expenses += amount

        if in_month(transaction.date, now.year, now.month):
            this_month.append(transaction)
            if is_income:
                month_income += amount
            else:
                month_expenses += amount

    return UserStats(
        total_transactions=len(transactions),
        all_time_income=all_time_income,
        all_time_expenses=all_time_expenses,
        month_income=month_income,
        month_expenses=month_expenses,
        month_transaction_count=len(this_month),
        category_breakdown=merge_grouped_totals(group_by_category_and_type(this_month)),
        streak=compute_streak((t.date for t in transactions), now.date()),
        account_age=account_age_days(now, account_created_at),
    )
