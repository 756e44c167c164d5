"""Expense tracking commands.

Every command except /start works on the conversation's ledger, which the
router resolves through the ledger directory before the chain starts.
"""

import calendar
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, List, Optional

from core.config import settings
from core.logging import get_module_logger
from infrastructure.conversations import (
    ChainContext,
    ChainState,
    Choice,
    CommandRegistry,
    GuardFailure,
)
from integrations.openrouter import AiMessage, CompletionError, ask_ai
from modules.expenses.reports import (
    NO_ACCOUNTS,
    NO_CATEGORIES,
    NO_EXPENSES,
    format_biggest_expenses,
    format_budget_notice,
    format_budgets,
    format_entities,
    format_entity,
    format_expense,
    format_expense_list,
    format_expenses_by_category,
    month_start,
    month_starts,
    spending_summary,
)
from modules.expenses.store import LedgerDirectory

logger = get_module_logger()

ASSISTANT_PROMPT = (
    "You are a personal finance assistant. Answer the user's question using "
    "only the ledger below. Amounts are in {currency}. Be brief.\n\n{summary}"
)
ASSISTANT_UNAVAILABLE = "The assistant could not answer right now. Try again later."

PLAIN_AMOUNT = re.compile(r"^\d{1,12}(\.\d{1,2})?$")


class EntityDraft(ChainState):
    icon: Optional[str] = None
    title: Optional[str] = None


class ExpenseDraft(ChainState):
    account_id: Optional[int] = None
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None
    title: Optional[str] = None


class BudgetDraft(ChainState):
    category_id: Optional[int] = None
    amount: Optional[Decimal] = None


class ExpensePick(ChainState):
    expense_id: Optional[int] = None


class ExpenseDateDraft(ExpensePick):
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None


class Question(ChainState):
    question: Optional[str] = None


def today() -> date:
    return date.today()


def parse_amount(text: str) -> Optional[Decimal]:
    """Parse a positive amount such as ``12``, ``12.5`` or ``12,5``.

    Only plain amounts with at most 12 integer digits and 2 decimals are
    accepted, so exponents like ``1e30`` are rejected.

    Returns:
        The amount, or None when the text is not a positive plain amount.
    """
    cleaned = (
        text.strip()
        .rstrip(settings.expenses.CURRENCY_SYMBOL)
        .replace(" ", "")
        .replace(",", ".")
    )
    if not PLAIN_AMOUNT.match(cleaned):
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if amount <= 0:
        return None
    return amount


# Choice sources


def account_choices(context: ChainContext) -> List[Choice]:
    return [
        Choice(label=format_entity(account), payload=account.id)
        for account in context.store.get_accounts()
    ]


def category_choices(context: ChainContext) -> List[Choice]:
    return [
        Choice(label=format_entity(category), payload=category.id)
        for category in context.store.get_categories()
    ]


def expense_choices(context: ChainContext) -> List[Choice]:
    """Most recent expenses, labelled with their id so labels stay unique."""
    categories = context.store.get_categories()
    expenses = context.store.get_expenses()[: settings.expenses.CHOICE_EXPENSES_LIMIT]
    return [
        Choice(label=f"#{e.id} {format_expense(e, categories)}", payload=e.id)
        for e in expenses
    ]


def year_choices(context: ChainContext) -> List[Choice]:
    year = today().year
    return [
        Choice(label="Last year", payload=year - 1),
        Choice(label="This year", payload=year),
    ]


def month_choices(context: ChainContext) -> List[Choice]:
    return [Choice(label=calendar.month_name[m], payload=m) for m in range(1, 13)]


def day_choices(context: ChainContext) -> List[Choice]:
    days = calendar.monthrange(context.state.year, context.state.month)[1]
    return [Choice(label=str(d), payload=d) for d in range(1, days + 1)]


# Guards


def require_accounts_and_categories(context: ChainContext) -> None:
    if not context.store.get_accounts():
        raise GuardFailure(NO_ACCOUNTS)
    if not context.store.get_categories():
        raise GuardFailure(NO_CATEGORIES)


def require_categories(context: ChainContext) -> None:
    if not context.store.get_categories():
        raise GuardFailure(NO_CATEGORIES)


# Accounts and categories


def set_icon(context: ChainContext, icon: str) -> None:
    context.state.icon = icon.strip()


def set_title(context: ChainContext, title: str) -> None:
    context.state.title = title.strip()
    context.reply(f"{context.state.icon} {context.state.title}")


def confirm_entity(context: ChainContext, confirmed: bool) -> Optional[bool]:
    if not confirmed:
        context.reply("Cancelled.")
        return False
    return None


def save_account(context: ChainContext) -> None:
    account = context.store.add_account(context.state.icon, context.state.title)
    context.reply(f"{format_entity(account)} added.")


def save_category(context: ChainContext) -> None:
    category = context.store.add_category(context.state.icon, context.state.title)
    context.reply(f"{format_entity(category)} added.")


def list_accounts(context: ChainContext) -> None:
    context.reply(format_entities(context.store.get_accounts(), NO_ACCOUNTS))


def list_categories(context: ChainContext) -> None:
    context.reply(format_entities(context.store.get_categories(), NO_CATEGORIES))


# Expenses


def set_account(context: ChainContext, account_id: int) -> None:
    context.state.account_id = account_id


def set_category(context: ChainContext, category_id: int) -> None:
    context.state.category_id = category_id


def set_amount(context: ChainContext, amount: Decimal) -> None:
    context.state.amount = amount


def set_expense_title(context: ChainContext, title: str) -> None:
    context.state.title = title.strip()


def save_expense(context: ChainContext) -> None:
    """Store the expense and report the category's budget usage, if any."""
    store = context.store
    state = context.state
    day = today()
    store.add_expense(
        account_id=state.account_id,
        category_id=state.category_id,
        amount=state.amount,
        spent_on=day,
        description=state.title,
    )
    context.reply("Expense added.")

    budget = next(
        (b for b in store.get_budgets() if b.category_id == state.category_id), None
    )
    if budget is None:
        return

    category = next(
        (c for c in store.get_categories() if c.id == state.category_id), None
    )
    if category is None:
        return
    spent = sum(
        (
            e.amount
            for e in store.get_expenses(start=month_start(day))
            if e.category_id == state.category_id
        ),
        Decimal(0),
    )
    context.reply(format_budget_notice(category, spent, budget))


def list_last_expenses(context: ChainContext) -> None:
    expenses = context.store.get_expenses()[: settings.expenses.LAST_EXPENSES_LIMIT]
    context.reply(format_expense_list(expenses, context.store.get_categories()))


def set_expense(context: ChainContext, expense_id: int) -> None:
    context.state.expense_id = expense_id


def remove_expense(context: ChainContext) -> None:
    if context.store.remove_expense(context.state.expense_id):
        context.reply("Expense removed.")
    else:
        context.reply("Expense not found.")


def set_year(context: ChainContext, year: int) -> None:
    context.state.year = year


def set_month(context: ChainContext, month: int) -> None:
    context.state.month = month


def set_day(context: ChainContext, day: int) -> None:
    context.state.day = day


def change_expense_date(context: ChainContext) -> None:
    state = context.state
    new_date = date(state.year, state.month, state.day)
    if context.store.change_expense_date(state.expense_id, new_date):
        context.reply("Expense date changed.")
    else:
        context.reply("Expense not found.")


def _recent(context: ChainContext):
    starts = month_starts(today(), settings.expenses.MONTHS_TO_SHOW)
    expenses = context.store.get_expenses(start=starts[0])
    return expenses, context.store.get_categories(), starts


def list_biggest_expenses(context: ChainContext) -> None:
    expenses, categories, starts = _recent(context)
    context.reply(format_biggest_expenses(expenses, categories, starts))


def list_expenses_by_category(context: ChainContext) -> None:
    expenses, categories, starts = _recent(context)
    context.reply(format_expenses_by_category(expenses, categories, starts))


# Budgets


def save_budget(context: ChainContext) -> None:
    context.store.set_budget(context.state.category_id, context.state.amount)
    context.reply("Budget set.")


def list_budgets(context: ChainContext) -> None:
    store = context.store
    month_expenses = store.get_expenses(start=month_start(today()))
    context.reply(
        format_budgets(store.get_budgets(), store.get_categories(), month_expenses)
    )


# Assistant


def set_question(context: ChainContext, question: str) -> None:
    context.state.question = question.strip()


def make_answer_question(ask: Callable[[List[AiMessage]], str]) -> Callable[[ChainContext], None]:
    def answer_question(context: ChainContext) -> None:
        expenses, categories, starts = _recent(context)
        summary = spending_summary(
            categories, context.store.get_budgets(), expenses, starts
        )
        messages = [
            AiMessage(
                role="system",
                content=ASSISTANT_PROMPT.format(
                    currency=settings.expenses.CURRENCY_SYMBOL, summary=summary
                ),
            ),
            AiMessage(role="user", content=context.state.question),
        ]
        try:
            answer = ask(messages)
        except CompletionError as e:
            logger.warning("assistant_unavailable", error=str(e))
            raise GuardFailure(ASSISTANT_UNAVAILABLE) from e
        context.reply(answer)

    return answer_question


def make_start(directory: LedgerDirectory) -> Callable[[ChainContext], None]:
    def start(context: ChainContext) -> None:
        _, created = directory.create(context.conversation_id)
        if created:
            context.reply(
                "Your ledger is ready.\n"
                "Add an account with /add_account and a category with /add_category."
            )
        else:
            context.reply("This conversation already has a ledger.")

    return start


def register(
    registry: CommandRegistry,
    directory: LedgerDirectory,
    ask: Optional[Callable[[List[AiMessage]], str]] = None,
) -> None:
    """Register the expense commands on ``registry``.

    Args:
        registry: Command registry to fill.
        directory: Ledger directory used by /start.
        ask: Completion function used by /ask. Defaults to OpenRouter.
    """
    ask = ask or ask_ai

    registry.register("/start", "Creates the ledger of this conversation", important=True).tap(
        make_start(directory)
    )

    registry.register(
        "/add_account",
        "Adds a new bank account",
        important=True,
        requires_store=True,
        state_model=EntityDraft,
    ).free_text("Icon of the account?", set_icon).free_text(
        "Title of the account?", set_title
    ).confirm("Are you sure?", confirm_entity).tap(save_account)

    registry.register(
        "/get_accounts", "Lists the accounts", requires_store=True
    ).tap(list_accounts)

    registry.register(
        "/add_category",
        "Adds a new expense category",
        important=True,
        requires_store=True,
        state_model=EntityDraft,
    ).free_text("Icon of the category?", set_icon).free_text(
        "Title of the category?", set_title
    ).confirm("Are you sure?", confirm_entity).tap(save_category)

    registry.register(
        "/get_categories", "Lists all the expense categories", requires_store=True
    ).tap(list_categories)

    registry.register(
        "/add_expense",
        "Spend money",
        important=True,
        requires_store=True,
        state_model=ExpenseDraft,
    ).guard(require_accounts_and_categories).choice(
        "Which account?", account_choices, set_account, columns=2
    ).choice(
        "Which category?", category_choices, set_category, columns=2
    ).free_text(
        "How much did you spend?", set_amount, parser=parse_amount
    ).free_text(
        "Title?", set_expense_title
    ).tap(
        save_expense
    )

    registry.register(
        "/set_budget",
        "Set a monthly budget on a category",
        requires_store=True,
        state_model=BudgetDraft,
    ).guard(require_categories).choice(
        "Which category?", category_choices, set_category, columns=2
    ).free_text(
        "How much can you spend per month?", set_amount, parser=parse_amount
    ).tap(
        save_budget
    )

    registry.register(
        "/get_budgets",
        "Lists the budgets for each category",
        important=True,
        requires_store=True,
    ).tap(list_budgets)

    registry.register(
        "/get_last_expenses",
        f"Get the last {settings.expenses.LAST_EXPENSES_LIMIT} expenses",
        requires_store=True,
    ).tap(list_last_expenses)

    registry.register(
        "/remove_expense",
        "Remove an expense",
        requires_store=True,
        state_model=ExpensePick,
    ).choice(
        "Which expense?", expense_choices, set_expense, empty_message=NO_EXPENSES
    ).tap(
        remove_expense
    )

    registry.register(
        "/change_expense_date",
        "Change the date of an expense",
        requires_store=True,
        state_model=ExpenseDateDraft,
    ).choice(
        "Which expense?", expense_choices, set_expense, empty_message=NO_EXPENSES
    ).choice(
        "Which year?", year_choices, set_year, columns=2
    ).choice(
        "Which month?", month_choices, set_month, columns=3
    ).choice(
        "Which day?", day_choices, set_day, columns=3
    ).tap(
        change_expense_date
    )

    registry.register(
        "/get_biggest_expenses",
        "Get biggest expenses for each month",
        requires_store=True,
    ).tap(list_biggest_expenses)

    registry.register(
        "/get_expenses_by_category",
        "Get expenses by category",
        requires_store=True,
    ).tap(list_expenses_by_category)

    registry.register(
        "/ask",
        "Ask a question about your spending",
        requires_store=True,
        state_model=Question,
    ).free_text("What would you like to know about your spending?", set_question).guard(
        make_answer_question(ask)
    )

    logger.info("expense_commands_registered", commands=len(registry))
