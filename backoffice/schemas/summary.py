from pydantic import BaseModel, Field
from typing import Any, Dict, List

class TeamCustomerStats(BaseModel):
    team_id: str
    count: int = 0
    total_initial_amount: float = 0.0

class CustomerSummary(BaseModel):
    customer_counts: Dict[str, int] = Field(default_factory=dict)
    transaction_totals: Dict[str, float] = Field(default_factory=dict)
    team_stats: List[TeamCustomerStats] = []
    recent_transactions: List[Dict[str, Any]] = []

class CategoryBreakdown(BaseModel):
    category_id: str
    name: str = "-"
    type: str
    total: float = 0.0
    count: int = 0

class DashboardSummary(BaseModel):
    total_income: float = 0.0
    total_expense: float = 0.0
    paid_salaries: float = 0.0
    paid_bonuses: float = 0.0
    paid_commissions: float = 0.0
    total_paid_compensation: float = 0.0
    total_expense_with_compensation: float = 0.0
    net_profit: float = 0.0
    team_count: int = 0
    transaction_count: int = 0
    categories: List[CategoryBreakdown] = []
    recent_transactions: List[Dict[str, Any]] = []

class SampleDataReport(BaseModel):
    teams: int = 0
    members: int = 0
    customers: int = 0
    customer_counts: int = 0
    salaries: int = 0
    bonuses: int = 0
    commissions: int = 0
    categories: int = 0
    transactions: int = 0
    income_categories: int = 0
    expense_categories: int = 0
    income_transactions: int = 0
    expense_transactions: int = 0
    total_income: float = 0.0
    total_expense: float = 0.0
