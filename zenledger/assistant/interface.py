"""
Assistant Interface and Reply Parsing

DESIGN DECISION: The assistant is a PROPOSER, not a WRITER.

CRITICAL BOUNDARIES:
- It CAN read a bounded context (tags, accounts, recent transactions)
- It CAN propose a transaction draft
- It CANNOT save anything; a draft reaches the ledger only when the
  user accepts it through the normal create path
- Anything it returns that cannot be understood becomes a plain chat reply
"""

import json
from abc import ABC, abstractmethod
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from zenledger.engine.views import recent_transactions
from zenledger.engine.windows import local_date
from zenledger.models.ledger import LedgerSnapshot, TransactionDraft


FALLBACK_REPLY = "I'm having trouble thinking right now. Please try again."


class AssistantAction(str, Enum):
    CREATE = "create"
    ANALYSIS = "analysis"
    CHAT = "chat"


class ContextTag(BaseModel):
    id: str
    name: str
    sub_tags: list[str] = Field(default_factory=list)


class ContextAccount(BaseModel):
    id: str
    name: str


class ContextTransaction(BaseModel):
    date: str
    amount: float
    type: str
    note: Optional[str] = None


class AssistantContext(BaseModel):
    """The read-only slice of the ledger the assistant may see."""

    today: str
    tags: list[ContextTag] = Field(default_factory=list)
    accounts: list[ContextAccount] = Field(default_factory=list)
    recent_transactions: list[ContextTransaction] = Field(default_factory=list)


class AssistantReply(BaseModel):
    """A parsed assistant answer, optionally carrying a draft."""

    action: AssistantAction = AssistantAction.CHAT
    text: str = ""
    draft: Optional[TransactionDraft] = None

    @property
    def proposes_transaction(self) -> bool:
        return self.action == AssistantAction.CREATE and self.draft is not None


def build_assistant_context(
    snapshot: LedgerSnapshot,
    recent_window: int = 10,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> AssistantContext:
    """Collect what the assistant is allowed to know."""
    today = local_date(now, tz) if now else datetime.now().date()
    recent = recent_transactions(snapshot.transactions, recent_window)
    return AssistantContext(
        today=today.isoformat(),
        tags=[
            ContextTag(id=tag.id, name=tag.name, sub_tags=list(tag.sub_tags))
            for tag in snapshot.tags
        ],
        accounts=[
            ContextAccount(id=account.id, name=account.name)
            for account in snapshot.accounts
        ],
        recent_transactions=[
            ContextTransaction(
                date=local_date(tx.date, tz).isoformat(),
                amount=tx.amount,
                type=tx.type.value,
                note=tx.note,
            )
            for tx in recent
        ],
    )


def _extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Find the outermost {...} in model output and parse it."""
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def parse_assistant_reply(raw_text: Optional[str]) -> AssistantReply:
    """
    Turn raw model output into a reply.

    Never raises. Unknown actions and unparseable output fall back to a
    chat reply; a "create" whose data is not a usable draft is downgraded
    to chat so nothing half-formed is offered for saving.
    """
    data = _extract_json_object(raw_text or "")
    if data is None:
        text = (raw_text or "").strip()
        return AssistantReply(action=AssistantAction.CHAT, text=text or FALLBACK_REPLY)

    try:
        action = AssistantAction(str(data.get("action", "chat")).lower())
    except ValueError:
        action = AssistantAction.CHAT
    text = str(data.get("text") or "")

    draft = None
    if action == AssistantAction.CREATE:
        payload = data.get("data")
        if isinstance(payload, dict):
            try:
                draft = TransactionDraft.model_validate(payload)
            except ValidationError:
                draft = None
        if draft is None:
            action = AssistantAction.CHAT

    return AssistantReply(action=action, text=text or FALLBACK_REPLY, draft=draft)


class AssistantInterface(ABC):
    """
    Abstract interface for the bookkeeping assistant.

    Implementations must:
    - Never mutate the ledger
    - Return a reply for every input (fallback text on failure)
    """

    @abstractmethod
    async def respond(
        self,
        user_input: str,
        context: AssistantContext,
    ) -> AssistantReply:
        """Answer one user message given the ledger context."""
        pass
