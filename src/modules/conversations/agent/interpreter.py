import json
import logging
import re
from typing import Any, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ValidationError

from src.configuration.config import settings
from src.modules.conversations.agent.intents import Intent, parse_intent

logger = logging.getLogger(__name__)

LANGUAGE_NAMES = {"en": "English", "es": "Spanish", "fr": "French", "pt": "Portuguese"}

SYSTEM_PROMPT = """You are HushPay, a friendly SMS assistant for private crypto payments on Solana.

Keep responses SHORT (SMS has character limits). Be conversational.
Always reply in {language}.

IMPORTANT: Respond with JSON only. Format:
{{"reply": "your message", "intent": null}}

Or for actions:
{{"reply": "Send 50 USD1 to +1234567890?\\nAmount will be hidden on-chain.\\n\\nReply YES to confirm.", "intent": {{"action": "send_payment", "amount": 50, "token": "USD1", "recipient": "+1234567890"}}}}
{{"reply": "Send 1 SOL anonymously to 7xKX...?\\n\\nReply YES to confirm.", "intent": {{"action": "anon_send", "amount": 1, "token": "SOL", "recipientWallet": "7xKX..."}}}}
{{"reply": "Deposit 2 SOL to the private pool?\\n\\nReply YES to confirm.", "intent": {{"action": "deposit", "amount": 2, "token": "SOL"}}}}
{{"reply": "Withdraw 1 SOL to your public wallet?\\n\\nReply YES to confirm.", "intent": {{"action": "withdraw", "amount": 1, "token": "SOL"}}}}
{{"reply": "Send 10 USDC to 0xabc... on Base?\\n\\nReply YES to confirm.", "intent": {{"action": "cross_chain_send", "amount": 10, "token": "USDC", "destinationChain": "base", "recipientAddress": "0xabc..."}}}}
{{"reply": "Split 3 SOL between 3 people (1 SOL each)?\\n\\nReply YES to confirm.", "intent": {{"action": "split_payment", "totalAmount": 3, "token": "SOL", "recipients": ["+2348012345678", "mom", "+2348098765432"]}}}}
{{"reply": "Send 5 USDC to mom every week?\\n\\nReply YES to confirm.", "intent": {{"action": "recurring_payment", "amount": 5, "token": "USDC", "recipient": "mom", "frequency": "weekly"}}}}
{{"reply": "", "intent": {{"action": "check_balance"}}}}
{{"reply": "", "intent": {{"action": "get_wallet"}}}}
{{"reply": "", "intent": {{"action": "get_receipts"}}}}
{{"reply": "", "intent": {{"action": "list_contacts"}}}}
{{"reply": "", "intent": {{"action": "list_recurring"}}}}
{{"reply": "", "intent": {{"action": "save_contact", "name": "mom", "phone": "+2348012345678"}}}}
{{"reply": "", "intent": {{"action": "delete_contact", "name": "mom"}}}}
{{"reply": "", "intent": {{"action": "cancel_recurring", "target": "mom"}}}}
{{"reply": "", "intent": {{"action": "set_language", "language": "es"}}}}
{{"reply": "", "intent": {{"action": "price_alert", "token": "SOL", "targetPrice": 200, "condition": "above"}}}}
{{"reply": "", "intent": {{"action": "payment_request", "amount": 5, "token": "SOL", "payer": "+2348012345678"}}}}
{{"reply": "", "intent": {{"action": "set_pin"}}}}
{{"reply": "", "intent": {{"action": "help"}}}}

Recipients can be phone numbers in international format or saved contact names.
For cross-chain sends you need the recipient's 0x address; ask for it if missing.
Frequencies: daily, weekly, monthly. Default token: {native_token}.

Saved contacts: {contacts}"""


class Interpretation(BaseModel):
    reply_text: str = ""
    intent: Intent | None = None


class IntentInterpreter(Protocol):
    async def interpret(
        self,
        identity_id: str,
        message_text: str,
        history: list[dict[str, str]],
        language: str,
        contacts: dict[str, str],
    ) -> Interpretation: ...


_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```")


def parse_interpretation(text: str) -> Interpretation:
    """
    Parse the model's JSON answer. Anything that is not valid JSON becomes a
    plain reply; an intent that fails validation is dropped.
    """
    cleaned = _CODE_FENCE.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return Interpretation(reply_text=cleaned)
    if not isinstance(data, dict):
        return Interpretation(reply_text=cleaned)

    reply = str(data.get("reply") or "")
    raw_intent = data.get("intent")
    if not isinstance(raw_intent, dict):
        return Interpretation(reply_text=reply)

    try:
        intent = parse_intent(raw_intent)
    except ValidationError as e:
        logger.warning(f"Discarding invalid intent {raw_intent.get('action')!r}: {e.error_count()} error(s)")
        return Interpretation(reply_text=reply)
    return Interpretation(reply_text=reply, intent=intent)


class LLMIntentInterpreter:
    def __init__(self, llm: BaseChatModel | None = None, history_window: int | None = None):
        if llm is None:
            if not settings.OPENAI_API_KEY:
                raise ValueError("OPENAI_API_KEY is not configured")
            llm = ChatOpenAI(
                model=settings.OPENAI_MODEL,
                temperature=0,
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL or None,
            )
        self.llm = llm
        self.history_window = history_window or settings.HISTORY_WINDOW

    def _build_messages(
        self,
        message_text: str,
        history: list[dict[str, str]],
        language: str,
        contacts: dict[str, str],
    ) -> list[BaseMessage]:
        contact_text = ", ".join(f"{name}: {phone}" for name, phone in contacts.items()) or "none"
        messages: list[BaseMessage] = [
            SystemMessage(
                content=SYSTEM_PROMPT.format(
                    language=LANGUAGE_NAMES.get(language, "English"),
                    native_token=settings.NATIVE_TOKEN,
                    contacts=contact_text,
                )
            )
        ]
        for msg in history[-self.history_window:]:
            if msg.get("role") == "user":
                messages.append(HumanMessage(content=msg.get("content", "")))
            elif msg.get("role") == "assistant":
                messages.append(AIMessage(content=msg.get("content", "")))
        messages.append(HumanMessage(content=message_text))
        return messages

    async def interpret(
        self,
        identity_id: str,
        message_text: str,
        history: list[dict[str, Any]],
        language: str,
        contacts: dict[str, str],
    ) -> Interpretation:
        response = await self.llm.ainvoke(self._build_messages(message_text, history, language, contacts))
        content = response.content if isinstance(response.content, str) else str(response.content)
        return parse_interpretation(content)
