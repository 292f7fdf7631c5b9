import pytest

from backoffice.core.summary import sample_data_report, summarize_customers, summarize_dashboard
from backoffice.db.backends import ProcessGlobalBackend
from backoffice.db.store import EntityStore


def sample_store():
    store = EntityStore(ProcessGlobalBackend({}))
    store.load_sample_data()
    return store


def test_dashboard_over_sample_data():
    summary = summarize_dashboard(sample_store())

    assert summary.total_income == 93500
    assert summary.total_expense == 167000
    assert summary.paid_salaries == 110000
    assert summary.paid_bonuses == 20500
    assert summary.paid_commissions == 37500
    assert summary.total_paid_compensation == 168000
    assert summary.total_expense_with_compensation == 335000
    assert summary.net_profit == 93500 - 335000
    assert summary.team_count == 3
    assert summary.transaction_count == 20
    assert len(summary.categories) == 10
    assert len(summary.recent_transactions) == 5
    assert summary.recent_transactions[0]["date"] == "2025-02-28T00:00:00.000Z"


def test_dashboard_date_window_is_inclusive():
    summary = summarize_dashboard(sample_store(), start="2025-02-01", end="2025-02-28")

    assert summary.transaction_count == 6
    assert summary.total_income == 18000 + 12000 + 3000
    assert summary.total_expense == 12000 + 58000 + 1800
    # Compensation is not windowed
    assert summary.paid_salaries == 110000
    assert {c.name for c in summary.categories} == {
        "Sales Revenue",
        "Commission Income",
        "Other Income",
        "General Expenses",
        "Office Expenses",
        "Staff Wages",
    }


def test_dashboard_rejects_bad_dates():
    with pytest.raises(ValueError):
        summarize_dashboard(sample_store(), start="last tuesday")


def test_dashboard_on_empty_store():
    summary = summarize_dashboard(EntityStore(ProcessGlobalBackend({})))

    assert summary.net_profit == 0
    assert summary.categories == []


def test_customer_summary():
    store = sample_store()
    customer_id = store.list_customers()[0]["id"]
    store.create_customer_transaction({"customerId": customer_id, "type": "deposit", "amount": 1000, "date": "2025-03-01T00:00:00.000Z"})
    store.create_customer_transaction({"customerId": customer_id, "type": "deposit", "amount": 500, "date": "2025-03-05T00:00:00.000Z"})
    store.create_customer_transaction({"customerId": customer_id, "type": "extension", "amount": 200, "date": "2025-02-01T00:00:00.000Z"})

    summary = summarize_customers(store)

    assert summary.customer_counts == {"new": 1, "deposit": 1}
    assert summary.transaction_totals == {"deposit": 1500, "extension": 200}
    assert sorted(s.total_initial_amount for s in summary.team_stats) == [30000, 50000]
    assert [t["amount"] for t in summary.recent_transactions] == [500, 1000, 200]


def test_sample_data_report():
    report = sample_data_report(sample_store())

    assert report.teams == 3
    assert report.customer_counts == 3
    assert report.income_categories == 5
    assert report.expense_categories == 5
    assert report.income_transactions == 8
    assert report.expense_transactions == 12
    assert report.total_income == 93500
    assert report.total_expense == 167000
