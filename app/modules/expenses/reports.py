"""Text formatting for ledger replies."""

import calendar
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from core.config import settings
from modules.expenses.models import Account, Budget, Category, Expense

NO_ACCOUNTS = "No accounts yet...\nUse /add_account to add one."
NO_CATEGORIES = "No categories yet...\nUse /add_category to add one."
NO_BUDGETS = "No budgets yet...\nUse /set_budget to add one."
NO_EXPENSES = "No expenses yet...\nUse /add_expense to add one."

CENTS = Decimal("0.01")


def format_amount(amount: Decimal, currency: Optional[str] = None) -> str:
    """Format a money amount, dropping the decimals of whole amounts.

    Examples:
        >>> format_amount(Decimal("12"))
        '12€'
        >>> format_amount(Decimal("12.5"))
        '12.50€'
    """
    currency = settings.expenses.CURRENCY_SYMBOL if currency is None else currency
    rounded = Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    if rounded == rounded.to_integral_value():
        return f"{int(rounded)}{currency}"
    return f"{rounded}{currency}"


def format_entity(entity: Union[Account, Category]) -> str:
    return f"{entity.icon} {entity.name}"


def format_entities(entities: Sequence[Union[Account, Category]], empty: str) -> str:
    return "\n".join(format_entity(e) for e in entities) or empty


def format_expense(expense: Expense, categories: Iterable[Category]) -> str:
    """``YYYY-MM-DD icon description amount€``"""
    icon = next((c.icon for c in categories if c.id == expense.category_id), "?")
    return (
        f"{expense.spent_on.isoformat()} {icon} {expense.description} "
        f"{format_amount(expense.amount)}"
    )


def format_expense_list(expenses: Sequence[Expense], categories: Sequence[Category]) -> str:
    return "\n".join(format_expense(e, categories) for e in expenses) or NO_EXPENSES


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_starts(today: date, months_back: int) -> List[date]:
    """First days of the last ``months_back`` months plus the current one, oldest first."""
    first = add_months(today, -months_back)
    return [add_months(first, offset) for offset in range(months_back + 1)]


def month_name(day: date) -> str:
    return calendar.month_name[day.month]


def totals_by_category(expenses: Iterable[Expense]) -> Dict[int, Decimal]:
    totals: Dict[int, Decimal] = {}
    for expense in expenses:
        totals[expense.category_id] = (
            totals.get(expense.category_id, Decimal(0)) + expense.amount
        )
    return totals


def budget_usage(spent: Decimal, budget: Budget) -> Decimal:
    """Percentage of the budget already spent."""
    return (Decimal(spent) / budget.value * 100).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_budget_notice(category: Category, spent: Decimal, budget: Budget) -> str:
    return (
        f"You've spent {format_amount(spent)} in {category.name} for this month, "
        f"which is {budget_usage(spent, budget)}% of your monthly budget."
    )


def format_budgets(
    budgets: Sequence[Budget],
    categories: Sequence[Category],
    month_expenses: Iterable[Expense],
) -> str:
    """Each budget with the share used during the current month."""
    totals = totals_by_category(month_expenses)
    by_id = {c.id: c for c in categories}
    blocks = []
    for budget in budgets:
        category = by_id.get(budget.category_id)
        if category is None:
            continue
        usage = budget_usage(totals.get(budget.category_id, Decimal(0)), budget)
        blocks.append(
            f"{format_amount(budget.value)} - {format_entity(category)}\n"
            f"    {usage}% used for this month"
        )
    return "\n\n".join(blocks) or NO_BUDGETS


def _months(expenses: Sequence[Expense], starts: List[date]):
    for start in starts:
        end = add_months(start, 1)
        yield start, [e for e in expenses if start <= e.spent_on < end]


def format_biggest_expenses(
    expenses: Sequence[Expense], categories: Sequence[Category], starts: List[date]
) -> str:
    """Per month, expenses sorted by amount, biggest first."""
    sections = []
    for start, month in _months(expenses, starts):
        month = sorted(month, key=lambda e: e.amount, reverse=True)
        lines = [f"*{month_name(start)}* :"]
        lines.extend(format_expense(e, categories) for e in month)
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def format_expenses_by_category(
    expenses: Sequence[Expense], categories: Sequence[Category], starts: List[date]
) -> str:
    """Per month, the total spent in each category that has expenses."""
    sections = []
    for start, month in _months(expenses, starts):
        totals = totals_by_category(month)
        lines = [f"*{month_name(start)}* :"]
        for category in categories:
            total = totals.get(category.id, Decimal(0))
            if total > 0:
                lines.append(f"{format_entity(category)} : {format_amount(total)}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections)


def spending_summary(
    categories: Sequence[Category],
    budgets: Sequence[Budget],
    expenses: Sequence[Expense],
    starts: List[date],
) -> str:
    """Plain-text digest of the ledger handed to the completion service."""
    by_id = {c.id: c for c in categories}
    budget_lines = [
        f"{format_entity(by_id[b.category_id])}: {format_amount(b.value)}"
        for b in budgets
        if b.category_id in by_id
    ]
    parts = [
        "Categories:\n" + format_entities(categories, "none"),
        "Monthly budgets:\n" + ("\n".join(budget_lines) or "none"),
        "Totals per month and category:\n"
        + format_expenses_by_category(expenses, categories, starts),
        "Expenses:\n" + format_expense_list(expenses, categories),
    ]
    return "\n\n".join(parts)
