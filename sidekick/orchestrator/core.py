"""
Orchestrator core -- the round loop that drives one conversation.

For each submission the orchestrator:
1. Appends the user turn to the conversation store
2. Builds the outbound request (system prompt + full history)
3. Streams a model response through the event reconciler
4. Executes any requested tools, in announcement order, and feeds the
   results back into the conversation
5. Repeats until a round produces no tool calls or ``max_rounds`` is hit
6. Emits exactly one completion delta, whatever happened
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from sidekick.cancellation import CancellationToken
from sidekick.conversation.reconciler import EventReconciler
from sidekick.conversation.sink import NullSink, OutputSink
from sidekick.conversation.store import ConversationStore
from sidekick.llm.errors import NOT_CONFIGURED_MESSAGE, classify_error, user_facing_message
from sidekick.llm.router import LLMRouter
from sidekick.llm.types import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_TOOL,
    ImagePart,
    Message,
    ResultEnvelope,
    SamplingConfig,
    ToolCallPart,
    ToolResultPart,
    ToolResultReady,
    user_message,
)
from sidekick.orchestrator.context import ContextProvider, PageContext
from sidekick.prompts.system import DEFAULT_MAX_CONTEXT_CHARS, build_system_prompt
from sidekick.tools.invoker import ToolInvoker
from sidekick.tools.registry import ToolRegistry
from sidekick.types import OperationCancelled

logger = logging.getLogger(__name__)

MAX_ROUNDS = 10

UNANSWERED_CALL_OUTPUT = {"success": False, "message": "Tool call was cancelled"}


def close_unanswered_calls(history: list[Message]) -> list[Message]:
    """
    Return a copy of *history* in which every tool call has a result.

    A submission cancelled while a tool ran leaves an assistant tool call with
    no tool message after it, which providers reject.  A failed result is
    inserted for each such call, right after the tool messages that answer
    its siblings.  The stored history is not touched.
    """
    closed: list[Message] = []
    pending: list[ToolCallPart] = []

    def flush() -> None:
        for call in pending:
            closed.append(
                Message(
                    role=ROLE_TOOL,
                    content=[
                        ToolResultPart(
                            id=call.id,
                            name=call.name,
                            output=ResultEnvelope(value=dict(UNANSWERED_CALL_OUTPUT)),
                        )
                    ],
                )
            )
        pending.clear()

    for msg in history:
        if msg.role == ROLE_TOOL:
            result = msg.tool_result
            if result is not None:
                pending[:] = [c for c in pending if c.id != result.id]
        else:
            flush()
        closed.append(msg)
        if msg.role == ROLE_ASSISTANT:
            pending.extend(msg.tool_calls)
    flush()
    return closed


class Orchestrator:
    """
    Owns one conversation and runs submissions against it, one at a time.

    Parameters
    ----------
    router : LLMRouter
        Model invocation.  An empty router means "not configured".
    registry : ToolRegistry
        Tools offered to the model every round.
    sink : OutputSink
        Receives history snapshots and content deltas.
    context_provider : ContextProvider
        Supplies page URL/text for the system prompt.  Optional.
    store : ConversationStore
        Created (bound to *sink*) when not given.
    sampling : SamplingConfig
        Forwarded to the provider on every round.
    max_rounds : int
        Round cap; the loop stops after this many rounds even if the model
        keeps calling tools.
    tool_timeout : float
        Max seconds for a single tool execution.
    max_context_chars : int
        Page text beyond this length is truncated in the system prompt.
    """

    def __init__(
        self,
        router: LLMRouter,
        registry: ToolRegistry,
        sink: OutputSink | None = None,
        context_provider: ContextProvider | None = None,
        store: ConversationStore | None = None,
        sampling: SamplingConfig | None = None,
        max_rounds: int = MAX_ROUNDS,
        tool_timeout: float = 60.0,
        max_context_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
    ) -> None:
        self.router = router
        self.registry = registry
        self.sink = sink or NullSink()
        self.context_provider = context_provider
        self.store = store or ConversationStore(self.sink)
        self.sampling = sampling or SamplingConfig()
        self.max_rounds = max_rounds
        self.max_context_chars = max_context_chars
        self.invoker = ToolInvoker(registry, tool_timeout=tool_timeout)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def get_history(self) -> list[Message]:
        return self.store.snapshot()

    def clear(self) -> None:
        """Reset the conversation.  Raises ``InvalidState`` mid-round."""
        self.store.clear()

    async def submit(
        self,
        user_text: str,
        image: ImagePart | None = None,
        *,
        cancel: CancellationToken | None = None,
        message_id: str | None = None,
    ) -> None:
        """
        Process one user turn.  Results arrive only through the sink.

        Submissions are serialized: a call made while another is running
        waits for it to finish.
        """
        message_id = message_id or uuid.uuid4().hex
        cancel = cancel or CancellationToken()
        async with self._lock:
            await self._run_submission(user_text, image, cancel, message_id)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def _run_submission(
        self,
        user_text: str,
        image: ImagePart | None,
        cancel: CancellationToken,
        message_id: str,
    ) -> None:
        completion = ""
        try:
            self.store.append(user_message(user_text, image))

            if not self.router.is_configured:
                logger.error("No LLM provider configured; submission %s dropped", message_id)
                completion = NOT_CONFIGURED_MESSAGE
                return

            history = close_unanswered_calls(self.store.snapshot())
            outbound = [await self._system_message()] + history
            await self._round_loop(outbound, cancel, message_id)
        except OperationCancelled:
            logger.info("Submission %s cancelled: %s", message_id, cancel.reason)
        except Exception as exc:
            category = classify_error(exc)
            logger.error(
                "Submission %s failed (%s)", message_id, category.value, exc_info=True
            )
            completion = user_facing_message(category)
        finally:
            self.sink.content_delta(message_id, completion, True)

    async def _system_message(self) -> Message:
        context = PageContext()
        if self.context_provider is not None:
            try:
                context = await self.context_provider.page_context()
            except Exception:
                logger.exception("Failed to read page context")
        prompt = build_system_prompt(
            url=context.url,
            page_text=context.text,
            max_context_chars=self.max_context_chars,
        )
        return Message(role=ROLE_SYSTEM, content=prompt)

    async def _round_loop(
        self,
        outbound: list[Message],
        cancel: CancellationToken,
        message_id: str,
    ) -> int:
        """Run rounds until a natural stop or the cap; returns rounds used."""
        tools = self.registry.to_schema()

        for round_no in range(1, self.max_rounds + 1):
            cancel.raise_if_cancelled()
            round_id = f"{message_id}:{round_no}"
            logger.debug("Round %d start (%d outbound messages)", round_no, len(outbound))

            with self.store.writer(round_id):
                reconciler = EventReconciler(
                    self.store, self.sink, message_id=message_id, writer=round_id
                )
                events = self.router.stream_events(
                    outbound, tools=tools or None, sampling=self.sampling
                )
                async for event in cancel.iterate(events):
                    reconciler.apply(event)

                state = reconciler.state
                if not state.has_tool_calls:
                    logger.debug("Round %d finished without tool calls", round_no)
                    return round_no

                for call in state.pending_calls:
                    result = await self.invoker.invoke(call, cancel)
                    reconciler.apply(
                        ToolResultReady(id=call.id, name=call.name, output=result.to_output())
                    )

            outbound.extend(state.outbound)

        logger.warning(
            "Submission %s stopped at the round cap (%d rounds)", message_id, self.max_rounds
        )
        return self.max_rounds
