"""DynamoDB ledger backend.

Two tables:

- ledgers (``LEDGERS_TABLE``): partition key ``conversation_id`` holding the
  ``ledger_id`` of the conversation.
- records (``RECORDS_TABLE``): partition key ``ledger_id``, sort key ``sk``
  of the form ``account#00000001``, ``category#...``, ``expense#...`` and
  ``budget#<category id>``. Ids come from ``counter#records`` items
  incremented with ``ADD``.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from core.config import settings
from core.logging import get_module_logger
from integrations.aws import dynamodb
from modules.expenses.models import Account, Budget, Category, Expense
from modules.expenses.store import LedgerStoreError, in_range, newest_first

logger = get_module_logger()

serializer = TypeSerializer()
deserializer = TypeDeserializer()

COUNTER_KEY = "counter#records"


def sort_key(kind: str, record_id: int) -> str:
    return f"{kind}#{record_id:08d}"


def serialize(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: serializer.serialize(v) for k, v in record.items()}


def deserialize(item: Dict[str, Any]) -> Dict[str, Any]:
    return {k: deserializer.deserialize(v) for k, v in item.items()}


def _checked(response, operation: str):
    # integrations.aws helpers return False after logging the AWS error
    if response is False:
        raise LedgerStoreError(f"DynamoDB {operation} failed")
    return response


class DynamoDBExpenseStore:
    """Ledger stored in the records table."""

    def __init__(self, ledger_id: str, table: Optional[str] = None):
        self.ledger_id = ledger_id
        self.table = table or settings.store.RECORDS_TABLE

    def _key(self, sk: str) -> Dict[str, Any]:
        return serialize({"ledger_id": self.ledger_id, "sk": sk})

    def _next_id(self) -> int:
        response = _checked(
            dynamodb.update_item(
                TableName=self.table,
                Key=self._key(COUNTER_KEY),
                UpdateExpression="ADD #value :one",
                ExpressionAttributeNames={"#value": "value"},
                ExpressionAttributeValues={":one": {"N": "1"}},
                ReturnValues="UPDATED_NEW",
            ),
            "update_item",
        )
        return int(response["Attributes"]["value"]["N"])

    def _records(self, kind: str) -> List[Dict[str, Any]]:
        items = _checked(
            dynamodb.query(
                TableName=self.table,
                KeyConditionExpression="ledger_id = :ledger AND begins_with(sk, :kind)",
                ExpressionAttributeValues={
                    ":ledger": {"S": self.ledger_id},
                    ":kind": {"S": f"{kind}#"},
                },
            ),
            "query",
        )
        return [deserialize(item) for item in items or []]

    def _put(self, kind: str, record_id: int, record: Dict[str, Any], sk: Optional[str] = None):
        item = {"ledger_id": self.ledger_id, "sk": sk or sort_key(kind, record_id)}
        item.update(record)
        _checked(dynamodb.put_item(TableName=self.table, Item=serialize(item)), "put_item")

    def get_accounts(self) -> List[Account]:
        return [
            Account(id=int(r["id"]), icon=r["icon"], name=r["name"])
            for r in self._records("account")
        ]

    def add_account(self, icon: str, name: str) -> Account:
        account = Account(id=self._next_id(), icon=icon, name=name)
        self._put("account", account.id, account.model_dump())
        logger.info("account_added", ledger_id=self.ledger_id, account_id=account.id)
        return account

    def get_categories(self) -> List[Category]:
        return [
            Category(id=int(r["id"]), icon=r["icon"], name=r["name"])
            for r in self._records("category")
        ]

    def add_category(self, icon: str, name: str) -> Category:
        category = Category(id=self._next_id(), icon=icon, name=name)
        self._put("category", category.id, category.model_dump())
        logger.info(
            "category_added", ledger_id=self.ledger_id, category_id=category.id
        )
        return category

    def add_expense(
        self,
        account_id: int,
        category_id: int,
        amount: Decimal,
        spent_on: date,
        description: str,
    ) -> Expense:
        expense = Expense(
            id=self._next_id(),
            account_id=account_id,
            category_id=category_id,
            amount=amount,
            spent_on=spent_on,
            description=description,
        )
        record = expense.model_dump()
        record["spent_on"] = expense.spent_on.isoformat()
        self._put("expense", expense.id, record)
        logger.info("expense_added", ledger_id=self.ledger_id, expense_id=expense.id)
        return expense

    def remove_expense(self, expense_id: int) -> bool:
        key = self._key(sort_key("expense", expense_id))
        if not _checked(dynamodb.get_item(TableName=self.table, Key=key), "get_item"):
            return False
        _checked(dynamodb.delete_item(TableName=self.table, Key=key), "delete_item")
        logger.info("expense_removed", ledger_id=self.ledger_id, expense_id=expense_id)
        return True

    def change_expense_date(self, expense_id: int, spent_on: date) -> bool:
        key = self._key(sort_key("expense", expense_id))
        if not _checked(dynamodb.get_item(TableName=self.table, Key=key), "get_item"):
            return False
        _checked(
            dynamodb.update_item(
                TableName=self.table,
                Key=key,
                UpdateExpression="SET spent_on = :spent_on",
                ExpressionAttributeValues={":spent_on": {"S": spent_on.isoformat()}},
            ),
            "update_item",
        )
        return True

    def get_expenses(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[Expense]:
        """Expenses with ``start <= spent_on < end``, newest first."""
        expenses = [
            Expense(
                id=int(r["id"]),
                account_id=int(r["account_id"]),
                category_id=int(r["category_id"]),
                amount=r["amount"],
                spent_on=date.fromisoformat(r["spent_on"]),
                description=r["description"],
            )
            for r in self._records("expense")
        ]
        return newest_first([e for e in expenses if in_range(e, start, end)])

    def set_budget(self, category_id: int, value: Decimal) -> Budget:
        """Replace the budget of a category (one item per category)."""
        budget = Budget(id=self._next_id(), category_id=category_id, value=value)
        self._put(
            "budget",
            budget.id,
            budget.model_dump(),
            sk=f"budget#{category_id:08d}",
        )
        logger.info("budget_set", ledger_id=self.ledger_id, category_id=category_id)
        return budget

    def get_budgets(self) -> List[Budget]:
        return [
            Budget(id=int(r["id"]), category_id=int(r["category_id"]), value=r["value"])
            for r in self._records("budget")
        ]


class DynamoDBLedgerDirectory:
    """Conversation to ledger mapping stored in the ledgers table."""

    def __init__(self, ledgers_table: Optional[str] = None, records_table: Optional[str] = None):
        self.ledgers_table = ledgers_table or settings.store.LEDGERS_TABLE
        self.records_table = records_table or settings.store.RECORDS_TABLE

    def _store(self, ledger_id: str) -> DynamoDBExpenseStore:
        return DynamoDBExpenseStore(ledger_id, table=self.records_table)

    def resolve(self, conversation_id: str) -> Optional[DynamoDBExpenseStore]:
        """The conversation's ledger, or None when it has none.

        Raises:
            LedgerStoreError: If the ledgers table could not be read.
        """
        item = _checked(
            dynamodb.get_item(
                TableName=self.ledgers_table,
                Key={"conversation_id": {"S": conversation_id}},
            ),
            "get_item",
        )
        if not item:
            return None
        return self._store(deserialize(item)["ledger_id"])

    def create(self, conversation_id: str) -> Tuple[DynamoDBExpenseStore, bool]:
        """Return the conversation's ledger, creating it if needed.

        A put rejected because another request created the ledger first
        returns that ledger.
        """
        existing = self.resolve(conversation_id)
        if existing is not None:
            return existing, False

        ledger_id = str(uuid.uuid4())
        response = dynamodb.put_item(
            TableName=self.ledgers_table,
            Item=serialize(
                {
                    "conversation_id": conversation_id,
                    "ledger_id": ledger_id,
                    "created_at": datetime.now(timezone.utc).isoformat(),
                }
            ),
            ConditionExpression="attribute_not_exists(conversation_id)",
        )
        if response is False:
            existing = self.resolve(conversation_id)
            if existing is None:
                raise LedgerStoreError("DynamoDB put_item failed")
            logger.info(
                "ledger_created_concurrently",
                conversation_id=conversation_id,
                ledger_id=existing.ledger_id,
            )
            return existing, False
        logger.info(
            "ledger_created", conversation_id=conversation_id, ledger_id=ledger_id
        )
        return self._store(ledger_id), True
