import logging
import re
from typing import Any

from langchain_core.runnables import RunnableConfig
from langgraph.graph import END, StateGraph

from src.common.enums import ActionKind, ConversationStatus
from src.configuration.config import settings
from src.modules.actions.services.action_executor import summarize_action
from src.modules.conversations.agent.agent_state import ConversationState
from src.modules.conversations.agent.context import MessageContext
from src.modules.conversations.agent.intent_handlers import IntentRouter
from src.modules.conversations.agent.intents import principal_amount
from src.modules.conversations.agent.interpreter import IntentInterpreter
from src.modules.conversations.agent.messages import translate
from src.modules.identities.services.phone import mask_phone

logger = logging.getLogger(__name__)

CANCEL_WORDS = re.compile(r"^(undo|cancel|no|n)$", re.IGNORECASE)
RETRY_WORDS = re.compile(r"^retry$", re.IGNORECASE)
CONFIRM_WORDS = re.compile(r"^(yes|confirm|y|si|sí|oui|sim)$", re.IGNORECASE)


def classify_command(text: str) -> str | None:
    """Whole-message match, first match wins: cancel, retry, confirm."""
    cleaned = (text or "").strip()
    if CANCEL_WORDS.match(cleaned):
        return "cancel"
    if RETRY_WORDS.match(cleaned):
        return "retry"
    if CONFIRM_WORDS.match(cleaned):
        return "confirm"
    return None


def _context(config: RunnableConfig) -> MessageContext:
    return config["configurable"]["context"]


class ConversationAgent:
    """
    Per-message state machine: special commands first, then interpretation.

    classify -> cancel | retry | confirm | interpret
    confirm  -> END, or interpret when nothing is pending
    interpret -> route_intent -> END
    """

    def __init__(self, interpreter: IntentInterpreter, router: IntentRouter | None = None):
        self.interpreter = interpreter
        self.router = router or IntentRouter()
        self.graph = self._build_graph()

    def _build_graph(self):
        workflow = StateGraph(ConversationState)

        workflow.add_node("classify", self._classify)
        workflow.add_node("cancel", self._cancel)
        workflow.add_node("retry", self._retry)
        workflow.add_node("confirm", self._confirm)
        workflow.add_node("interpret", self._interpret)
        workflow.add_node("route_intent", self._route_intent)

        workflow.set_entry_point("classify")

        workflow.add_conditional_edges(
            "classify",
            self._next_after_classify,
            {"cancel": "cancel", "retry": "retry", "confirm": "confirm", "interpret": "interpret"},
        )
        workflow.add_conditional_edges(
            "confirm",
            self._next_after_confirm,
            {"done": END, "interpret": "interpret"},
        )
        workflow.add_edge("interpret", "route_intent")
        workflow.add_edge("cancel", END)
        workflow.add_edge("retry", END)
        workflow.add_edge("route_intent", END)

        return workflow.compile()

    @staticmethod
    def _next_after_classify(state: ConversationState) -> str:
        return state.get("command") or "interpret"

    @staticmethod
    def _next_after_confirm(state: ConversationState) -> str:
        return "done" if state.get("reply") is not None else "interpret"

    async def _classify(self, state: ConversationState) -> dict[str, Any]:
        return {"command": classify_command(state["text"])}

    async def _cancel(self, state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
        ctx = _context(config)
        if ctx.pending_actions.discard(ctx.user.phone):
            logger.info(f"Pending action cancelled by {mask_phone(ctx.user.phone)}")
            reply = translate("cancelled", ctx.language)
        else:
            reply = translate("nothing_to_cancel", ctx.language)
        return {"reply": reply, "status": ConversationStatus.IDLE}

    async def _retry(self, state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
        ctx = _context(config)
        failed = ctx.failed_actions.consume(ctx.user.phone)
        if failed is None:
            return {"reply": translate("nothing_to_retry", ctx.language), "status": ConversationStatus.IDLE}

        ctx.pending_actions.stage(ctx.user.phone, failed.kind, failed.payload, ctx.now)
        reply = translate("retry_prompt", ctx.language, summary=summarize_action(failed.kind, failed.payload))
        return {"reply": reply, "status": ConversationStatus.AWAITING_CONFIRMATION}

    async def _confirm(self, state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
        ctx = _context(config)
        pending = ctx.pending_actions.consume(ctx.user.phone, ctx.now)
        if pending is None:
            # A YES with nothing staged is treated as an ordinary message
            return {"reply": None}

        kind = ActionKind(pending.kind)
        if ctx.pins.requires_step_up(ctx.user, principal_amount(kind, pending.payload)):
            link = ctx.step_up.create_link(ctx.user.phone, kind, pending.payload, ctx.now, ctx.channel)
            return {
                "reply": translate("step_up_link", ctx.language, url=link.url),
                "status": ConversationStatus.AWAITING_STEP_UP,
            }

        logger.info(f"Executing {kind.value} for {mask_phone(ctx.user.phone)}")
        reply = await ctx.executor.execute(ctx.user, kind, pending.payload, ctx.channel)
        return {"reply": reply, "status": ConversationStatus.IDLE}

    async def _interpret(self, state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
        ctx = _context(config)
        history = [
            {"role": m.role, "content": m.content}
            for m in ctx.messages.get_recent(ctx.user.phone, settings.HISTORY_WINDOW)
        ]
        contacts = {c.display_name: c.target_phone for c in ctx.contacts.list(ctx.user.phone)}
        interpretation = await self.interpreter.interpret(
            ctx.user.phone, state["text"], history, ctx.language, contacts
        )
        return {"intent": interpretation.intent, "interpreter_reply": interpretation.reply_text}

    async def _route_intent(self, state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
        ctx = _context(config)
        reply, status = await self.router.route(state.get("intent"), state.get("interpreter_reply", ""), ctx)
        return {"reply": reply, "status": status}

    async def run(self, text: str, ctx: MessageContext) -> ConversationState:
        initial_state: ConversationState = {
            "phone": ctx.user.phone,
            "text": text,
            "channel": ctx.channel.value,
            "language": ctx.language,
            "command": None,
            "status": ConversationStatus.IDLE,
            "reply": None,
            "intent": None,
            "interpreter_reply": "",
        }
        return await self.graph.ainvoke(initial_state, config={"configurable": {"context": ctx}})
