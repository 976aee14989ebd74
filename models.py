from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Dict, List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from config import MAX_EXPENSE_AMOUNT
from utils import parse_currency, to_major

# Net balance per user id, positive = should receive, negative = owes.
Balances = Dict[str, Decimal]


class Expense(BaseModel):
    """A shared cost as seen by the settlement engine.

    No validation happens here: malformed records are skipped during
    aggregation rather than rejected.
    """
    payer: str = ""
    amount: Decimal = Decimal(0)
    participants: List[str] = Field(default_factory=list)


class Settlement(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_user_id: str = Field(alias="from")
    to_user_id: str = Field(alias="to")
    amount: Decimal


class ExpenseCreate(BaseModel):
    payer: str
    amount: Decimal
    participants: List[str] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator('payer')
    @classmethod
    def payer_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Payer is required')
        return v.strip()

    @field_validator('amount', mode='before')
    @classmethod
    def parse_amount_text(cls, v):
        if isinstance(v, str):
            return to_major(parse_currency(v))
        return v

    @field_validator('amount')
    @classmethod
    def amount_positive(cls, v):
        if not v.is_finite() or v <= 0:
            raise ValueError('Amount must be greater than 0')
        if v > MAX_EXPENSE_AMOUNT:
            raise ValueError(f'Amount must not exceed {MAX_EXPENSE_AMOUNT}')
        return v

    @field_validator('participants')
    @classmethod
    def strip_participants(cls, v):
        return [p.strip() for p in v if p and p.strip()]


class LedgerEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    group_id: str
    kind: Literal['expense', 'reset'] = 'expense'
    payer: Optional[str] = None
    amount: Optional[Decimal] = None
    participants: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    def to_expense(self) -> Expense:
        return Expense(payer=self.payer or "",
                       amount=self.amount or Decimal(0),
                       participants=self.participants)


class Group(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('Group name must not be empty')
        return v.strip()


class Balance(BaseModel):
    user_id: str
    amount: Decimal


class SettlementSummary(BaseModel):
    group_id: str
    anchor: Optional[datetime] = None
    balances: List[Balance]
    settlements: List[Settlement]
