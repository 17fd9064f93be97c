"""
models.py
Domain types (dataclasses), constants and exceptions.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field

ROLES = ("admin", "treasurer", "member")
EDITOR_ROLES = ("admin", "treasurer")

INCOME_TYPES = ("dues", "other")
EXPENSE_TYPES = ("meal", "condolence", "other")

# "-" means nothing recorded for the month yet
DUES_STATUSES = ("-", "unpaid", "paid", "prepaid")
DUES_STATUS_LABELS = {"-": "-", "unpaid": "Unpaid", "paid": "Paid", "prepaid": "Prepaid"}

# Member-name highlight in the dues grid, cycled on click
MEMBER_COLORS = ("white", "sky", "pink")

MONTHS = tuple(range(1, 13))
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class ClubError(Exception):
    """Base class for domain errors shown to the user."""


class ValidationError(ClubError):
    pass


class NotFoundError(ClubError):
    pass


class PermissionDenied(ClubError):
    pass


@dataclass(frozen=True)
class User:
    id: str
    name: str
    role: str  # admin / treasurer / member
    password_hash: str = ""
    created_at: str = ""
    contact: str = ""


@dataclass(frozen=True)
class Member:
    id: str
    name: str


@dataclass(frozen=True)
class Income:
    id: str
    date: str
    type: str  # dues / other
    amount: int
    year: int
    month: int
    member_id: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class Expense:
    id: str
    date: str
    type: str  # meal / condolence / other
    amount: int
    year: int
    month: int
    member_id: str | None = None
    note: str | None = None


@dataclass
class MonthlyDue:
    month: int
    status: str = "-"
    amount: int = 0  # amount actually paid (paid) or owed (unpaid)
    dues_amount: int = 0  # expected dues for the month
    color: str = "white"
    income_id: str | None = None

    @property
    def is_paid(self) -> bool:
        return self.status in ("paid", "prepaid")


@dataclass
class DuesData:
    member_id: str
    year: int
    months: list[MonthlyDue] = field(default_factory=list)
    unpaid_amount: int = 0

    def month(self, month: int) -> MonthlyDue:
        return self.months[month - 1]

    def to_row(self) -> dict:
        return {
            "member_id": self.member_id,
            "year": self.year,
            "months": [asdict(m) for m in self.months],
            "unpaid_amount": self.unpaid_amount,
        }

    @classmethod
    def from_row(cls, row: dict) -> "DuesData":
        return cls(
            member_id=row["member_id"],
            year=int(row["year"]),
            months=[MonthlyDue(**m) for m in row["months"]],
            unpaid_amount=int(row["unpaid_amount"] or 0),
        )


@dataclass(frozen=True)
class MonthAmount:
    month: int
    amount: int


@dataclass(frozen=True)
class YearlyData:
    year: int
    opening_balance: int
    monthly_incomes: tuple[MonthAmount, ...]
    monthly_expenses: tuple[MonthAmount, ...]

    @property
    def total_income(self) -> int:
        return sum(m.amount for m in self.monthly_incomes)

    @property
    def total_expense(self) -> int:
        return sum(m.amount for m in self.monthly_expenses)

    @property
    def closing_balance(self) -> int:
        return self.opening_balance + self.total_income - self.total_expense


@dataclass(frozen=True)
class SpecialEvent:
    id: str
    date: str
    name: str
    description: str = ""
    amount: int = 0


@dataclass(frozen=True)
class EventHistory:
    id: str
    year: int
    created_at: str
    events: tuple[SpecialEvent, ...] = ()
