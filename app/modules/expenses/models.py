"""Ledger records: accounts, categories, expenses and budgets."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field


class Account(BaseModel):
    """A bank account (or wallet) money is spent from."""

    id: int
    icon: str
    name: str

    class Config:  # noqa
        extra = "forbid"


class Category(BaseModel):
    """An expense category."""

    id: int
    icon: str
    name: str

    class Config:  # noqa
        extra = "forbid"


class Expense(BaseModel):
    id: int
    account_id: int
    category_id: int
    amount: Decimal = Field(gt=0)
    spent_on: date
    description: str

    class Config:  # noqa
        extra = "forbid"


class Budget(BaseModel):
    """Monthly spending limit of one category. A category has at most one."""

    id: int
    category_id: int
    value: Decimal = Field(gt=0)

    class Config:  # noqa
        extra = "forbid"
