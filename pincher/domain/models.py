# pincher/domain/models.py
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pincher.domain.errors import ValidationError


class MemberRole(Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CONTRIBUTOR = "CONTRIBUTOR"
    VIEWER = "VIEWER"

    @property
    def rank(self) -> int:
        # ADMIN-first ordering: a lower rank is more privileged
        return _ROLE_RANKS[self]

    @classmethod
    def parse(cls, value: str) -> "MemberRole":
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            raise ValidationError(f"invalid role: {value}")


_ROLE_RANKS = {
    MemberRole.ADMIN: 0,
    MemberRole.MANAGER: 1,
    MemberRole.CONTRIBUTOR: 2,
    MemberRole.VIEWER: 3,
}


class Clearance(Enum):
    SUFFICIENT = "sufficient"
    INSUFFICIENT = "insufficient"


class TransactionType(Enum):
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    TRANSFER_TO = "TRANSFER_TO"
    TRANSFER_FROM = "TRANSFER_FROM"
    NONE = "NONE"

    @classmethod
    def from_amount(cls, amount: int, is_transfer: bool) -> "TransactionType":
        if amount > 0:
            return cls.TRANSFER_TO if is_transfer else cls.DEPOSIT
        if amount < 0:
            return cls.TRANSFER_FROM if is_transfer else cls.WITHDRAWAL
        return cls.NONE

    @property
    def is_transfer(self) -> bool:
        return _IS_TRANSFER[self]

    def invert(self) -> "TransactionType":
        """Counterpart type of a transfer leg."""
        inverted = _TRANSFER_INVERSIONS.get(self)
        if inverted is None:
            raise ValueError(f"{self.value} is not a transfer type")
        return inverted


_IS_TRANSFER = {
    TransactionType.DEPOSIT: False,
    TransactionType.WITHDRAWAL: False,
    TransactionType.TRANSFER_TO: True,
    TransactionType.TRANSFER_FROM: True,
    TransactionType.NONE: False,
}

_TRANSFER_INVERSIONS = {
    TransactionType.TRANSFER_TO: TransactionType.TRANSFER_FROM,
    TransactionType.TRANSFER_FROM: TransactionType.TRANSFER_TO,
}


class ResourceKind(Enum):
    ACCOUNT = "account"
    PAYEE = "payee"
    CATEGORY = "category"
    GROUP = "group"


UNCATEGORIZED = "UNCATEGORIZED"
TRANSFER_AMOUNT = "TRANSFER AMOUNT"


@dataclass(frozen=True)
class BudgetScope:
    """Authorized budget scope produced by the clearance gate."""

    budget_id: int
    user_id: int
    role: MemberRole


@dataclass
class Budget:
    id: int
    admin_id: int
    name: str
    notes: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class BudgetMembership:
    budget_id: int
    user_id: int
    role: MemberRole


@dataclass
class Account:
    id: int
    budget_id: int
    name: str
    account_type: str = ""
    notes: str = ""
    is_deleted: bool = False


@dataclass
class Group:
    id: int
    budget_id: int
    name: str
    notes: str = ""


@dataclass
class Category:
    id: int
    budget_id: int
    name: str
    group_id: Optional[int] = None
    notes: str = ""


@dataclass
class Payee:
    id: int
    budget_id: int
    name: str
    notes: str = ""


@dataclass
class TransactionSplit:
    category_id: Optional[int]
    amount: int
    category_name: Optional[str] = None


@dataclass
class Transaction:
    id: int
    budget_id: int
    logger_id: int
    account_id: int
    transaction_type: TransactionType
    transaction_date: date
    payee_id: Optional[int]
    notes: str
    cleared: bool
    splits: List[TransactionSplit] = field(default_factory=list)
    transfer_transaction_id: Optional[int] = None

    @property
    def total_amount(self) -> int:
        return sum(s.amount for s in self.splits)


@dataclass
class TransactionInput:
    """Raw upsert request, names not yet resolved."""

    account_name: str
    transaction_date: str
    amounts: Dict[str, int]
    transfer_account_name: str = ""
    payee_name: str = ""
    notes: str = ""
    cleared: bool = False


@dataclass
class ValidatedTransaction:
    txn_type: TransactionType
    txn_date: date
    amounts: Dict[str, int]
    is_transfer: bool
    account_name: str
    transfer_account_name: str = ""
    payee_name: str = ""
    notes: str = ""
    cleared: bool = False


@dataclass
class ResolvedTransaction:
    """Validated transaction with every name converted to an identifier."""

    txn_type: TransactionType
    txn_date: date
    account_id: int
    # category id -> amount; None collects the sentinel (uncategorized) splits
    amounts: Dict[Optional[int], int]
    transfer_account_id: Optional[int] = None
    payee_id: Optional[int] = None
    notes: str = ""
    cleared: bool = False

    @property
    def is_transfer(self) -> bool:
        return self.txn_type.is_transfer


@dataclass
class Assignment:
    category_id: int
    month: date
    assigned: int


@dataclass
class CategoryReport:
    category_id: int
    name: str
    month: date
    assigned: int = 0
    activity: int = 0
    balance: int = 0


@dataclass
class MonthReport:
    month: date
    assigned: int
    activity: int
    balance: int
    capital: int

    @property
    def assignable(self) -> int:
        return self.capital - self.balance
