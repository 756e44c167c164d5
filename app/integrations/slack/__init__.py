"""Slack Integration Package.

Contains:

- client: shared WebClient and the OperationResult facade.
- blocks: Block Kit helpers for replies with suggested-reply buttons.
- session: Session implementation bound to one Slack conversation.
- handlers: message, button and slash command listeners feeding the router.
"""
