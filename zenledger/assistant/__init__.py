"""Bookkeeping assistant: context building, reply parsing, Gemini client."""

from zenledger.assistant.interface import (
    FALLBACK_REPLY,
    AssistantAction,
    AssistantContext,
    AssistantInterface,
    AssistantReply,
    ContextAccount,
    ContextTag,
    ContextTransaction,
    build_assistant_context,
    parse_assistant_reply,
)

__all__ = [
    "FALLBACK_REPLY",
    "AssistantAction",
    "AssistantContext",
    "AssistantInterface",
    "AssistantReply",
    "ContextAccount",
    "ContextTag",
    "ContextTransaction",
    "build_assistant_context",
    "parse_assistant_reply",
]
