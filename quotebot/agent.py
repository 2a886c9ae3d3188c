"""LangGraph tool-calling agent for container quotes.

Architecture:
  The agent is a small LangGraph StateGraph with four nodes:

    1. **model**      — the chat model (tools bound) answers directly or
                        asks for ``get_container_quote``
    2. **tools**      — validates the arguments and runs the quote
    3. **fallback**   — the model produced nothing usable: look for a
                        ZIP code in the raw text and quote it directly
    4. **exhausted**  — the step budget ran out before a final answer

  Routing:
    model → (text?)       → END
          → (tool calls?) → tools → (reply?) → END
                                  → (budget left?) → model (loop)
                                  → (budget spent?) → exhausted → END
          → (nothing?)    → fallback → END

  Every path ends with exactly one ``reply`` in the state, which
  ``QuoteAgent.handle`` sends back to the user.  The model is called at
  most ``MAX_STEPS`` times per inbound message.

  Memory:
    None.  Each inbound message starts a fresh conversation; the graph is
    compiled without a checkpointer.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Annotated, Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    AnyMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from quotebot.config import Settings
from quotebot.errors import QuoteBotError, ValidationError
from quotebot.intent import extract_postal_code
from quotebot.prompts import (
    APOLOGY_REPLY,
    BUDGET_EXHAUSTED_REPLY,
    NO_ANSWER_REPLY,
    SYSTEM_PROMPT,
    clarification_for,
    format_quote_reply,
)
from quotebot.services.llm import build_chat_model
from quotebot.services.messenger import MessengerClient
from quotebot.services.quote_client import QuoteClient, QuoteResult
from quotebot.tools.quote import QUOTE_TOOL_NAME, build_quote_tool, parse_quote_args

logger = logging.getLogger(__name__)

MAX_STEPS = 3
MODEL_TIMEOUT_SECONDS = 20.0


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict, total=False):
    """The state that flows through the graph for one inbound message.

    ``messages`` uses the LangGraph ``add_messages`` reducer so that each
    node can append turns without overwriting the history.  ``steps``
    counts model calls; ``reply`` is the single message that will be sent
    back once the graph finishes.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    user_text: str
    steps: int
    reply: str | None
    quote: QuoteResult | None


def initial_state(user_text: str) -> AgentState:
    return {
        "messages": [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=user_text)],
        "user_text": user_text,
        "steps": 0,
        "reply": None,
        "quote": None,
    }


# ── Message helpers ──────────────────────────────────────────────────


def _tool_calls(message: BaseMessage) -> list[dict[str, Any]]:
    return list(getattr(message, "tool_calls", None) or [])


def message_text(message: BaseMessage) -> str:
    """Flatten a model message to plain text.

    Gemini sometimes returns content as a list of parts instead of a string.
    """
    content = message.content
    if isinstance(content, str):
        return content.strip()
    parts: list[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts).strip()


# ── LLM builder ─────────────────────────────────────────────────────


def _build_llm(settings: Settings, tools: list[BaseTool]):
    """Build the configured chat model with the quote tool bound."""
    llm: BaseChatModel = build_chat_model(settings)
    return llm.bind_tools(tools)


# ── Node: model ─────────────────────────────────────────────────────


def _make_model_node(llm_with_tools):
    """Create the node that calls the chat model.

    A failed or timed-out call is logged and recorded as an empty
    ``AIMessage`` (no text, no tool calls), which routes to the fallback.
    """

    async def model_node(state: AgentState) -> dict:
        step = state.get("steps", 0) + 1
        t0 = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                llm_with_tools.ainvoke(state["messages"]),
                timeout=MODEL_TIMEOUT_SECONDS,
            )
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            logger.warning(
                "Model call %d/%d failed after %.0fms (%s: %s)",
                step, MAX_STEPS, elapsed, type(exc).__name__, exc,
            )
            return {"messages": [AIMessage(content="")], "steps": step}

        elapsed = (time.perf_counter() - t0) * 1000
        calls = _tool_calls(response)
        logger.debug(
            "Model call %d/%d responded in %.0fms (tool calls: %d)",
            step, MAX_STEPS, elapsed, len(calls),
        )

        update: dict[str, Any] = {"messages": [response], "steps": step}
        if not calls:
            text = message_text(response)
            if text:
                update["reply"] = text
        return update

    return model_node


# ── Node: tools ─────────────────────────────────────────────────────


def _make_tools_node(quote_tool: BaseTool, reply_mode: str):
    """Create the node that executes the model's tool calls.

    Invalid arguments and quoting failures end the run with a user-facing
    reply; they are never sent back to the model for another attempt.
    """

    async def tools_node(state: AgentState) -> dict:
        last_message = state["messages"][-1]
        quote = state.get("quote")
        results: list[ToolMessage] = []

        for call in _tool_calls(last_message):
            name = call.get("name")
            call_id = call.get("id") or f"{name}-call"

            if name != QUOTE_TOOL_NAME:
                logger.warning("Model requested unknown tool %r", name)
                results.append(
                    ToolMessage(
                        content=f"Error: there is no tool named {name!r}.",
                        tool_call_id=call_id,
                        name=str(name),
                        status="error",
                    )
                )
                continue

            try:
                args = parse_quote_args(call.get("args"))
            except ValidationError as exc:
                logger.info("Rejected %s call: %s", name, exc)
                return {"reply": clarification_for(exc)}

            try:
                quote = await quote_tool.ainvoke(args.model_dump())
            except QuoteBotError as exc:
                logger.error(
                    "Quote lookup for %s failed: %s: %s (status=%s)",
                    args.zipcode, type(exc).__name__, exc, exc.status_code,
                )
                return {"reply": APOLOGY_REPLY}

            if reply_mode == "template":
                return {"reply": format_quote_reply(quote), "quote": quote}

            results.append(
                ToolMessage(
                    content=json.dumps(quote.as_tool_payload()),
                    tool_call_id=call_id,
                    name=name,
                )
            )

        return {"messages": results, "quote": quote}

    return tools_node


# ── Node: fallback ──────────────────────────────────────────────────


def _make_fallback_node(quote_client: QuoteClient):
    """Create the node used when the model gave neither text nor a tool call."""

    async def fallback_node(state: AgentState) -> dict:
        quote = state.get("quote")
        if quote is not None:
            # A tool call already priced this message.
            return {"reply": format_quote_reply(quote)}

        postal_code = extract_postal_code(state.get("user_text"))
        if postal_code is None:
            return {"reply": NO_ANSWER_REPLY}

        logger.info("No usable model output; quoting ZIP %s directly", postal_code)
        try:
            quote = await quote_client.request_quote(postal_code)
        except QuoteBotError as exc:
            logger.error(
                "Fallback quote for %s failed: %s: %s (status=%s)",
                postal_code, type(exc).__name__, exc, exc.status_code,
            )
            return {"reply": APOLOGY_REPLY}
        return {"reply": format_quote_reply(quote), "quote": quote}

    return fallback_node


# ── Node: exhausted ─────────────────────────────────────────────────


def exhausted_node(state: AgentState) -> dict:
    """Step budget spent without a final answer: reply with what we have."""
    logger.warning("Step budget of %d exhausted without a final reply", MAX_STEPS)
    quote = state.get("quote")
    if quote is not None:
        return {"reply": format_quote_reply(quote)}
    return {"reply": BUDGET_EXHAUSTED_REPLY}


# ── Conditional edges ────────────────────────────────────────────────


def route_after_model(state: AgentState) -> str:
    if state.get("reply"):
        return END
    if _tool_calls(state["messages"][-1]):
        return "tools"
    return "fallback"


def route_after_tools(state: AgentState) -> str:
    if state.get("reply"):
        return END
    if state.get("steps", 0) >= MAX_STEPS:
        return "exhausted"
    return "model"


# ── Graph assembly ───────────────────────────────────────────────────


def create_quote_graph(
    llm_with_tools,
    quote_tool: BaseTool,
    quote_client: QuoteClient,
    *,
    reply_mode: str = "template",
):
    """Build and compile the quote agent graph.

    Returns a compiled graph that can be invoked with:
        await graph.ainvoke(initial_state("How much to 90210?"))
    """
    graph = StateGraph(AgentState)

    graph.add_node("model", _make_model_node(llm_with_tools))
    graph.add_node("tools", _make_tools_node(quote_tool, reply_mode))
    graph.add_node("fallback", _make_fallback_node(quote_client))
    graph.add_node("exhausted", exhausted_node)

    graph.set_entry_point("model")

    graph.add_conditional_edges(
        "model",
        route_after_model,
        {"tools": "tools", "fallback": "fallback", END: END},
    )
    graph.add_conditional_edges(
        "tools",
        route_after_tools,
        {"model": "model", "exhausted": "exhausted", END: END},
    )
    graph.add_edge("fallback", END)
    graph.add_edge("exhausted", END)

    compiled = graph.compile()
    logger.debug("Quote agent compiled — reply mode: %s, max steps: %d", reply_mode, MAX_STEPS)
    return compiled


# ── Per-event entry point ────────────────────────────────────────────


class QuoteAgent:
    """Runs the graph for one inbound message and sends the single reply.

    ``llm`` is optional and must already have the quote tool bound; when
    omitted the model configured in *settings* is built.
    """

    def __init__(
        self,
        settings: Settings,
        quote_client: QuoteClient,
        messenger: MessengerClient,
        *,
        llm=None,
    ):
        self._quote_client = quote_client
        self._messenger = messenger
        quote_tool = build_quote_tool(quote_client)
        llm_with_tools = llm if llm is not None else _build_llm(settings, [quote_tool])
        self._graph = create_quote_graph(
            llm_with_tools, quote_tool, quote_client, reply_mode=settings.reply_mode,
        )

    async def run(self, user_text: str) -> str:
        """Produce the reply for *user_text* without sending it."""
        result = await self._graph.ainvoke(initial_state(user_text))
        return result.get("reply") or NO_ANSWER_REPLY

    async def handle(self, sender_id: str, text: str | None) -> bool:
        """Answer one inbound message.  Never raises for processing errors."""
        if not text or not text.strip():
            return False

        t0 = time.perf_counter()
        try:
            reply = await self.run(text)
        except Exception:
            logger.exception("Error handling message from %s", sender_id)
            reply = APOLOGY_REPLY

        sent = await self._messenger.send(sender_id, reply)
        logger.info(
            "Handled message from %s in %.0fms (delivered=%s)",
            sender_id, (time.perf_counter() - t0) * 1000, sent,
        )
        return sent

    async def aclose(self) -> None:
        await self._quote_client.aclose()
        await self._messenger.aclose()


def create_quote_agent(settings: Settings) -> QuoteAgent:
    """Wire the production clients and model into a ready ``QuoteAgent``."""
    return QuoteAgent(settings, QuoteClient(settings), MessengerClient(settings))
