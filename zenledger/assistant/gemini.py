"""
Gemini-backed bookkeeping assistant.

The model is a TRANSLATOR, not an ORACLE: it turns a sentence like
"20 for lunch from cash" into a draft, or comments on the recent
transactions it was shown. It never invents balances and never saves.
"""

from typing import Optional

import google.generativeai as genai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from zenledger.assistant.interface import (
    FALLBACK_REPLY,
    AssistantAction,
    AssistantContext,
    AssistantInterface,
    AssistantReply,
    parse_assistant_reply,
)
from zenledger.config import GeminiSettings, get_settings


class AssistantUnavailableError(Exception):
    """The model could not be reached after retries."""
    pass


def build_prompt(context: AssistantContext) -> str:
    """System instruction describing the ledger and the reply format."""
    tag_lines = "\n".join(
        f'Tag: "{tag.name}" (ID: {tag.id})'
        + (f", SubTags: [{', '.join(tag.sub_tags)}]" if tag.sub_tags else "")
        for tag in context.tags
    )
    account_lines = "\n".join(
        f'Account: "{account.name}" (ID: {account.id})'
        for account in context.accounts
    )
    recent = "[" + ", ".join(
        tx.model_dump_json() for tx in context.recent_transactions
    ) + "]"

    return f"""You are the financial assistant of ZenLedger, a minimalist bookkeeping app.

Current Context:
- Current Date: {context.today}
- Available Accounts:
{account_lines or "none"}
- Available Tags (Categories):
{tag_lines or "none"}
- Recent Transactions:
{recent}

Analyze the user's message and respond with ONLY a JSON object.

1. RECORD A TRANSACTION (the user wants to log spending or income):
   Extract amount (number), type (expense/income), accountId, tags (array of IDs), note.
   {{"action": "create", "data": {{"amount": 20, "type": "expense", "accountId": "a1", "tags": ["1"], "note": "lunch"}}, "text": "I've prepared the transaction for you."}}

2. ANALYSIS (the user asks for insights):
   {{"action": "analysis", "text": "..."}}
   Only use the transactions listed above. If they do not answer the question, say so.

3. CHAT (anything else):
   {{"action": "chat", "text": "..."}}
"""


class GeminiAssistant(AssistantInterface):
    """
    Assistant implementation on Google Gemini.

    BOUNDARIES:
    - NEVER persists data
    - NEVER fills in an account or amount the user did not give
    - ALWAYS returns a reply, falling back to a canned message on failure
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    @retry(
        retry=retry_if_exception_type(AssistantUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        reraise=True,
    )
    async def _generate(self, prompt: str, user_input: str) -> str:
        try:
            response = await self._model.generate_content_async(
                [prompt, f"User message: {user_input}"]
            )
            return response.text
        except Exception as e:
            raise AssistantUnavailableError(str(e)) from e

    async def respond(
        self,
        user_input: str,
        context: AssistantContext,
    ) -> AssistantReply:
        """Ask the model and parse its answer into a reply."""
        try:
            raw = await self._generate(build_prompt(context), user_input)
        except AssistantUnavailableError:
            return AssistantReply(action=AssistantAction.CHAT, text=FALLBACK_REPLY)
        return parse_assistant_reply(raw)
