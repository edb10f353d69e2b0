"""Conversation ID logging context for tracing one chat across modules.

The dispatcher sets the current conversation for every inbound message; a
filter on the output handlers copies it onto each record so the formatted
line carries ``[<conversation id>]``. Handler-level filtering means records
from any logger (ours or a library's) format cleanly, while concurrent chats
stay apart because each asyncio task sees its own context value.

Usage:
    configure_logging("INFO")
    set_conversation_id("5215512345678@c.us")
    logging.getLogger(__name__).info("Processing message")
    # 2025-08-17 10:00:00 [appointment_bot.x] [5215512345678@c.us] INFO: Processing message
"""

import logging
from contextvars import ContextVar

NO_CONVERSATION = "-"

LOG_FORMAT = "%(asctime)s [%(name)s] [%(conversation_id)s] %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_conversation_id: ContextVar[str] = ContextVar("conversation_id", default=NO_CONVERSATION)


def set_conversation_id(conversation_id: str) -> None:
    """Set the conversation identifier for the current async context."""
    _conversation_id.set(conversation_id)


def get_conversation_id() -> str:
    """Retrieve the current conversation identifier."""
    return _conversation_id.get()


class ConversationIdFilter(logging.Filter):
    """Injects conversation_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "conversation_id"):
            record.conversation_id = _conversation_id.get()  # type: ignore[attr-defined]
        return True


def attach_conversation_filter(handler: logging.Handler) -> logging.Handler:
    """Add the filter to a handler once; returns the handler for chaining."""
    if not any(isinstance(f, ConversationIdFilter) for f in handler.filters):
        handler.addFilter(ConversationIdFilter())
    return handler


def configure_logging(level: str) -> None:
    """Root logging with the conversation id in every formatted line.

    Keeps handlers someone else already installed but still filters them, so
    a format string using ``%(conversation_id)s`` never fails on a record.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    for handler in logging.getLogger().handlers:
        attach_conversation_filter(handler)


def get_conversation_logger(name: str) -> logging.Logger:
    """Return a logger with the ConversationIdFilter attached.

    Handlers installed by ``configure_logging`` already stamp records; the
    logger-level filter covers handlers added elsewhere on this logger.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, ConversationIdFilter) for f in logger.filters):
        logger.addFilter(ConversationIdFilter())
    return logger
