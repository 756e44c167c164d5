"""Budget Bot configuration settings."""

from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import structlog

logger = structlog.stdlib.get_logger().bind(component="config")


class SlackSettings(BaseSettings):
    """Slack configuration settings."""

    APP_TOKEN: str = ""
    SLACK_TOKEN: str = ""
    BOT_NAME: str = Field(default="budget_bot", alias="SLACK_BOT_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class AwsSettings(BaseSettings):
    """AWS configuration settings."""

    AWS_REGION: str = Field(default="ca-central-1", alias="AWS_REGION")
    DYNAMODB_ENDPOINT_URL: Optional[str] = Field(
        default=None, alias="DYNAMODB_ENDPOINT_URL"
    )

    THROTTLING_ERRS: list[str] = [
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
        "ProvisionedThroughputExceededException",
    ]
    RESOURCE_NOT_FOUND_ERRS: list[str] = ["ResourceNotFoundException"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class StoreSettings(BaseSettings):
    """Ledger store configuration settings.

    Environment Variables:
        STORE_BACKEND: ``memory`` (default) or ``dynamodb``
        LEDGERS_TABLE: table mapping conversations to ledgers
        RECORDS_TABLE: table holding accounts, categories, expenses and budgets
    """

    BACKEND: Literal["memory", "dynamodb"] = Field(
        default="memory", alias="STORE_BACKEND"
    )
    LEDGERS_TABLE: str = Field(default="budget_bot_ledgers", alias="LEDGERS_TABLE")
    RECORDS_TABLE: str = Field(default="budget_bot_records", alias="RECORDS_TABLE")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class OpenRouterSettings(BaseSettings):
    """OpenRouter text completion settings."""

    OPENROUTER_API_KEY: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")
    OPENROUTER_URL: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        alias="OPENROUTER_URL",
    )
    OPENROUTER_MODEL: str = Field(
        default="google/gemini-2.0-flash-001", alias="OPENROUTER_MODEL"
    )
    OPENROUTER_TIMEOUT: int = Field(default=60, alias="OPENROUTER_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


class ConversationSettings(BaseSettings):
    """Interaction chain engine settings.

    Labels and canned replies used by the router and the step runner.
    All values can be overridden with ``CONVERSATION_``-prefixed variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CONVERSATION_",
        case_sensitive=True,
        extra="ignore",
    )

    AFFIRMATIVE_LABEL: str = "Yes"
    NEGATIVE_LABEL: str = "No"
    INVALID_ANSWER_MESSAGE: str = "Invalid answer."
    DONE_MESSAGE: str = "All done"
    CANCELLED_MESSAGE: str = "Cancelled."
    NOTHING_TO_CANCEL_MESSAGE: str = "Nothing to cancel."
    EMPTY_CHOICE_MESSAGE: str = "No options available."
    SELECTED_TEMPLATE: str = "{label} selected."
    UNKNOWN_COMMAND_MESSAGE: str = "Unknown command."
    NO_SUCH_COMMAND_TEMPLATE: str = "No such command: {command}"
    MAIN_COMMANDS_HEADER: str = "The main commands are:"
    HELP_HEADER: str = "Available commands:"
    MISSING_STORE_MESSAGE: str = (
        "No ledger set up for this conversation yet.\nUse /start to create one."
    )
    SETUP_TRIGGER: str = "/start"
    HELP_TRIGGER: str = "/help"
    CANCEL_TRIGGER: str = "/cancel"
    COMMAND_PREFIX: str = "/"
    MENU_COLUMNS: int = 2
    ANSWER_BEFORE_COMMANDS: bool = True
    ADDRESS_SUFFIXES: List[str] = []


class ExpensesSettings(BaseSettings):
    """Expense module settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EXPENSES_",
        case_sensitive=True,
        extra="ignore",
    )

    CURRENCY_SYMBOL: str = "€"
    MONTHS_TO_SHOW: int = 3
    LAST_EXPENSES_LIMIT: int = 100
    CHOICE_EXPENSES_LIMIT: int = 20


class Settings(BaseSettings):
    """Budget Bot configuration settings - main aggregator.

    Example:
        ```python
        from core.config import settings

        slack_token = settings.slack.SLACK_TOKEN
        if settings.store.BACKEND == "dynamodb":
            ...
        ```
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    # Integration settings
    slack: SlackSettings
    aws: AwsSettings
    store: StoreSettings
    openrouter: OpenRouterSettings

    # Functionality settings
    conversation: ConversationSettings
    expenses: ExpensesSettings

    @property
    def is_production(self) -> bool:
        """Check if the application is running in production."""
        return not bool(self.PREFIX)

    @property
    def address_suffixes(self) -> List[str]:
        """Trailing addressing suffixes stripped from command triggers."""
        suffixes = list(self.conversation.ADDRESS_SUFFIXES)
        if self.slack.BOT_NAME:
            suffixes.append(f"@{self.slack.BOT_NAME}")
        return suffixes

    def __init__(self, **kwargs):
        settings_map = {
            "slack": SlackSettings,
            "aws": AwsSettings,
            "store": StoreSettings,
            "openrouter": OpenRouterSettings,
            "conversation": ConversationSettings,
            "expenses": ExpensesSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


# Create the settings instance
settings = Settings()
