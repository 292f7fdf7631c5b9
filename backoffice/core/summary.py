from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import logging

from backoffice.core.timestamps import parse_timestamp
from backoffice.schemas.entities import EntityKind, EntryType, PaymentStatus
from backoffice.schemas.summary import (
    CategoryBreakdown,
    CustomerSummary,
    DashboardSummary,
    SampleDataReport,
    TeamCustomerStats,
)

logger = logging.getLogger(__name__)


def _record_date(record: Dict[str, Any], *fields: str) -> Optional[datetime]:
    for field in fields:
        value = record.get(field)
        if value:
            try:
                return parse_timestamp(value)
            except (TypeError, ValueError):
                logger.debug(f"Ignoring unparseable {field} on {record.get('id')}: {value!r}")
    return None


def _newest_first(records: List[Dict[str, Any]], *fields: str) -> List[Dict[str, Any]]:
    def key(record):
        value = _record_date(record, *fields)
        return value.timestamp() if value else float("-inf")
    return sorted(records, key=key, reverse=True)


def _paid_total(records: List[Dict[str, Any]]) -> float:
    return sum(r.get("amount") or 0 for r in records if r.get("status") == PaymentStatus.PAID.value)


def summarize_customers(store) -> CustomerSummary:
    """
    Customer counts by type, customer-transaction totals by type, per-team
    customer stats and the ten most recent customer transactions.
    """
    customers = store.list(EntityKind.CUSTOMERS)
    customer_transactions = store.list(EntityKind.CUSTOMER_TRANSACTIONS)

    customer_counts: Dict[str, int] = {}
    team_map: Dict[str, TeamCustomerStats] = {}
    for customer in customers:
        kind = customer.get("type")
        customer_counts[kind] = customer_counts.get(kind, 0) + 1

        team_id = customer.get("teamId")
        if team_id:
            stats = team_map.setdefault(team_id, TeamCustomerStats(team_id=team_id))
            stats.count += 1
            stats.total_initial_amount += customer.get("initialAmount") or 0

    transaction_totals: Dict[str, float] = {}
    for transaction in customer_transactions:
        kind = transaction.get("type")
        transaction_totals[kind] = transaction_totals.get(kind, 0) + (transaction.get("amount") or 0)

    return CustomerSummary(
        customer_counts=customer_counts,
        transaction_totals=transaction_totals,
        team_stats=list(team_map.values()),
        recent_transactions=_newest_first(customer_transactions, "date", "createdAt")[:10],
    )


def summarize_dashboard(
    store,
    start: Optional[Union[str, datetime]] = None,
    end: Optional[Union[str, datetime]] = None,
) -> DashboardSummary:
    """
    Income/expense totals, paid compensation and per-category breakdown.

    ``start`` / ``end`` bound the transactions considered (inclusive). A
    transaction with no usable date is dropped only when a bound is given.
    Compensation is never filtered by the window.
    """
    start_dt = parse_timestamp(start) if start else None
    end_dt = parse_timestamp(end) if end else None

    transactions = []
    for transaction in store.list(EntityKind.TRANSACTIONS):
        if start_dt or end_dt:
            when = _record_date(transaction, "date", "createdAt")
            if when is None:
                continue
            if start_dt and when < start_dt:
                continue
            if end_dt and when > end_dt:
                continue
        transactions.append(transaction)

    total_income = sum(t.get("amount") or 0 for t in transactions if t.get("type") == EntryType.INCOME.value)
    total_expense = sum(t.get("amount") or 0 for t in transactions if t.get("type") == EntryType.EXPENSE.value)

    paid_salaries = _paid_total(store.list(EntityKind.SALARIES))
    paid_bonuses = _paid_total(store.list(EntityKind.BONUSES))
    paid_commissions = _paid_total(store.list(EntityKind.COMMISSIONS))
    total_paid_compensation = paid_salaries + paid_bonuses + paid_commissions
    total_expense_with_compensation = total_expense + total_paid_compensation

    categories = []
    for category in store.list(EntityKind.CATEGORIES):
        matched = [t for t in transactions if t.get("categoryId") == category.get("id")]
        total = sum(t.get("amount") or 0 for t in matched)
        # Only categories that actually carry money
        if total > 0:
            categories.append(CategoryBreakdown(
                category_id=category.get("id"),
                name=category.get("name") or "-",
                type=category.get("type"),
                total=total,
                count=len(matched),
            ))

    return DashboardSummary(
        total_income=total_income,
        total_expense=total_expense,
        paid_salaries=paid_salaries,
        paid_bonuses=paid_bonuses,
        paid_commissions=paid_commissions,
        total_paid_compensation=total_paid_compensation,
        total_expense_with_compensation=total_expense_with_compensation,
        net_profit=total_income - total_expense_with_compensation,
        team_count=len(store.list(EntityKind.TEAMS)),
        transaction_count=len(transactions),
        categories=categories,
        recent_transactions=_newest_first(transactions, "date", "createdAt")[:5],
    )


def sample_data_report(store) -> SampleDataReport:
    categories = store.list(EntityKind.CATEGORIES)
    transactions = store.list(EntityKind.TRANSACTIONS)
    income = [t for t in transactions if t.get("type") == EntryType.INCOME.value]
    expense = [t for t in transactions if t.get("type") == EntryType.EXPENSE.value]

    return SampleDataReport(
        teams=len(store.list(EntityKind.TEAMS)),
        members=len(store.list(EntityKind.MEMBERS)),
        customers=len(store.list(EntityKind.CUSTOMERS)),
        customer_counts=len(store.list(EntityKind.CUSTOMER_COUNTS)),
        salaries=len(store.list(EntityKind.SALARIES)),
        bonuses=len(store.list(EntityKind.BONUSES)),
        commissions=len(store.list(EntityKind.COMMISSIONS)),
        categories=len(categories),
        transactions=len(transactions),
        income_categories=sum(1 for c in categories if c.get("type") == EntryType.INCOME.value),
        expense_categories=sum(1 for c in categories if c.get("type") == EntryType.EXPENSE.value),
        income_transactions=len(income),
        expense_transactions=len(expense),
        total_income=sum(t.get("amount") or 0 for t in income),
        total_expense=sum(t.get("amount") or 0 for t in expense),
    )
