from enum import Enum
from typing import Any, Dict, Optional, Type
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from backoffice.core.errors import UnknownEntityKindError


class EntityKind(str, Enum):
    """Collections held by the store. Values are the snapshot keys."""
    TEAMS = "teams"
    MEMBERS = "members"
    CUSTOMERS = "customers"
    CATEGORIES = "categories"
    TRANSACTIONS = "transactions"
    SALARIES = "salaries"
    BONUSES = "bonuses"
    COMMISSIONS = "commissions"
    USERS = "users"
    AUDIT_LOGS = "auditLogs"
    CUSTOMER_TRANSACTIONS = "customerTransactions"
    CUSTOMER_COUNTS = "customerCounts"

    @property
    def id_prefix(self) -> str:
        return _ID_PREFIXES[self]

    @property
    def slug(self) -> str:
        return _SLUGS.get(self, self.value)

    @classmethod
    def resolve(cls, kind: Any) -> "EntityKind":
        """Accept an EntityKind, a snapshot key or a URL slug."""
        if isinstance(kind, cls):
            return kind
        try:
            return cls(kind)
        except ValueError:
            pass
        for member, slug in _SLUGS.items():
            if slug == kind:
                return member
        raise UnknownEntityKindError(kind)


_ID_PREFIXES = {
    EntityKind.TEAMS: "team",
    EntityKind.MEMBERS: "member",
    EntityKind.CUSTOMERS: "customer",
    EntityKind.CATEGORIES: "category",
    EntityKind.TRANSACTIONS: "transaction",
    EntityKind.SALARIES: "salary",
    EntityKind.BONUSES: "bonus",
    EntityKind.COMMISSIONS: "commission",
    EntityKind.USERS: "user",
    EntityKind.AUDIT_LOGS: "audit_log",
    EntityKind.CUSTOMER_TRANSACTIONS: "customer_transaction",
    EntityKind.CUSTOMER_COUNTS: "customer_count",
}

_SLUGS = {
    EntityKind.AUDIT_LOGS: "audit-logs",
    EntityKind.CUSTOMER_TRANSACTIONS: "customer-transactions",
    EntityKind.CUSTOMER_COUNTS: "customer-counts",
}


class EntryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"

class CustomerType(str, Enum):
    NEW = "new"
    DEPOSIT = "deposit"
    EXTENSION = "extension"

class CustomerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BLACKLIST = "blacklist"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class EntityRecord(BaseModel):
    # Records are loosely shaped: unknown fields (embedded display snapshots
    # such as `team` or `member`) pass through untouched.
    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
        use_enum_values=True,
    )


class Team(EntityRecord):
    name: str = Field(..., min_length=1)
    description: str = ""
    leader: str = ""
    budget: float = Field(0, ge=0)
    color: str = "blue"

class Member(EntityRecord):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account: Optional[str] = None
    bank_branch: Optional[str] = None
    role: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    salary: float = Field(0, ge=0)
    hire_date: Optional[str] = None
    status: str = "active"
    team_id: Optional[str] = None

class Customer(EntityRecord):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    type: CustomerType = CustomerType.NEW
    initial_amount: float = Field(0, ge=0)
    extension_amount: Optional[float] = Field(None, ge=0)
    total_amount: Optional[float] = Field(None, ge=0)
    team_id: Optional[str] = None
    member_id: Optional[str] = None
    status: CustomerStatus = CustomerStatus.ACTIVE
    notes: Optional[str] = None

class Category(EntityRecord):
    name: str = Field(..., min_length=1)
    description: str = ""
    type: EntryType
    budget: Optional[float] = Field(None, ge=0)
    icon: Optional[str] = None
    color: Optional[str] = None

class Transaction(EntityRecord):
    title: Optional[str] = None
    description: Optional[str] = None
    amount: float = Field(..., ge=0)
    type: EntryType
    category_id: str
    team_id: Optional[str] = None
    member_id: Optional[str] = None
    date: Optional[str] = None
    # Income entries carry bank details, expense entries card details.
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    card_type: Optional[str] = None
    card_last_four: Optional[str] = None

class Salary(EntityRecord):
    member_id: str
    amount: float = Field(..., ge=0)
    pay_date: Optional[str] = None
    month: Optional[int] = Field(None, ge=1, le=12)
    year: Optional[int] = None
    status: PaymentStatus = PaymentStatus.PENDING
    description: Optional[str] = None

class Bonus(EntityRecord):
    member_id: str
    amount: float = Field(..., ge=0)
    reason: Optional[str] = None
    date: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING

class Commission(EntityRecord):
    member_id: str
    amount: float = Field(..., ge=0)
    percentage: Optional[float] = Field(None, ge=0)
    sales_amount: Optional[float] = Field(None, ge=0)
    description: Optional[str] = None
    date: Optional[str] = None
    status: PaymentStatus = PaymentStatus.PENDING

class CustomerCount(EntityRecord):
    record_date: Optional[str] = None
    new_customers: int = Field(0, ge=0)
    deposit_customers: int = Field(0, ge=0)
    extension_customers: int = Field(0, ge=0)
    total_customers: int = Field(0, ge=0)
    expenses: float = Field(0, ge=0)
    team_id: Optional[str] = None
    member_id: Optional[str] = None
    notes: Optional[str] = None

class CustomerTransaction(EntityRecord):
    customer_id: str
    type: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    date: Optional[str] = None
    description: Optional[str] = None

class User(EntityRecord):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None

class AuditLog(EntityRecord):
    endpoint: str
    method: str
    action_type: str
    actor: str = "system"
    input_hash: Optional[str] = None
    output_hash: Optional[str] = None
    status: str


ENTITY_SCHEMAS: Dict[EntityKind, Type[EntityRecord]] = {
    EntityKind.TEAMS: Team,
    EntityKind.MEMBERS: Member,
    EntityKind.CUSTOMERS: Customer,
    EntityKind.CATEGORIES: Category,
    EntityKind.TRANSACTIONS: Transaction,
    EntityKind.SALARIES: Salary,
    EntityKind.BONUSES: Bonus,
    EntityKind.COMMISSIONS: Commission,
    EntityKind.USERS: User,
    EntityKind.AUDIT_LOGS: AuditLog,
    EntityKind.CUSTOMER_TRANSACTIONS: CustomerTransaction,
    EntityKind.CUSTOMER_COUNTS: CustomerCount,
}

# Kinds exposed through the CRUD routes; users and audit logs are read-only.
CRUD_KINDS = [
    EntityKind.TEAMS,
    EntityKind.MEMBERS,
    EntityKind.CUSTOMERS,
    EntityKind.CATEGORIES,
    EntityKind.TRANSACTIONS,
    EntityKind.SALARIES,
    EntityKind.BONUSES,
    EntityKind.COMMISSIONS,
    EntityKind.CUSTOMER_COUNTS,
    EntityKind.CUSTOMER_TRANSACTIONS,
]


def camel_keys(kind: EntityKind, data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename snake_case field names of ``kind`` to their stored camelCase alias."""
    fields = ENTITY_SCHEMAS[kind].model_fields
    return {(fields[k].alias or k) if k in fields else k: v for k, v in data.items()}
