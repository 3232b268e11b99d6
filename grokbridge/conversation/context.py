"""Per-conversation continuation state and outbound request shapes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Optional

from ..core.exceptions import TurnInProgressError
from ..stream.events import TurnResult

logger = logging.getLogger("grokbridge")

DEFAULT_MODEL_NAME = "grok-3"
NEW_CONVERSATION_PATH = "conversations/new"
REASONING_OVER_DEEP_SEARCH_WARNING = (
    "Both reasoning and deep search enabled. Deep search will be ignored."
)


@dataclass
class TurnOptions:
    """Per-turn overrides; ``None`` means "use the context default"."""

    reasoning: Optional[bool] = None
    deep_search: Optional[bool] = None
    disable_search: Optional[bool] = None
    custom_instructions: Optional[str] = None
    temporary: Optional[bool] = None
    personality: Optional[str] = None


@dataclass
class ConversationContext:
    """State binding successive turns into one continuation thread.

    Mutated only by ``ConversationTracker`` after a turn completes, or
    through ``reset``.
    """

    conversation_id: Optional[str] = None
    last_response_id: Optional[str] = None
    personality: str = ""
    temporary: bool = False
    reasoning: bool = False
    deep_search: bool = False
    disable_search: bool = False
    custom_instructions: str = ""
    last_metadata: Optional[dict[str, Any]] = None

    @property
    def is_new(self) -> bool:
        return not self.conversation_id


@dataclass(frozen=True)
class ResolvedOptions:
    reasoning: bool
    deep_search: bool
    disable_search: bool
    custom_instructions: str
    temporary: bool
    personality: str


@dataclass
class OutboundRequest:
    """The request shape chosen for one turn."""

    path: str
    payload: dict[str, Any]
    is_new: bool
    warnings: list[str] = field(default_factory=list)
    # tracker generation the turn was started in; bumped by reset()
    generation: int = 0


def resolve_options(
    context: ConversationContext, options: Optional[TurnOptions] = None
) -> tuple[ResolvedOptions, list[str]]:
    """Merge per-turn options over the context toggles.

    Reasoning wins over deep search; the conflict is reported as a warning
    rather than an error.
    """
    values = {
        f.name: getattr(context, f.name) for f in fields(TurnOptions)
    }
    if options is not None:
        for f in fields(TurnOptions):
            override = getattr(options, f.name)
            if override is not None:
                values[f.name] = override

    warnings: list[str] = []
    if values["reasoning"] and values["deep_search"]:
        logger.warning(REASONING_OVER_DEEP_SEARCH_WARNING)
        warnings.append(REASONING_OVER_DEEP_SEARCH_WARNING)
        values["deep_search"] = False

    resolved = ResolvedOptions(
        reasoning=bool(values["reasoning"]),
        deep_search=bool(values["deep_search"]),
        disable_search=bool(values["disable_search"]),
        custom_instructions=str(values["custom_instructions"] or ""),
        temporary=bool(values["temporary"]),
        personality=str(values["personality"] or ""),
    )
    return resolved, warnings


def build_payload(
    message: str,
    options: ResolvedOptions,
    model_name: str = DEFAULT_MODEL_NAME,
    parent_response_id: Optional[str] = None,
) -> dict[str, Any]:
    """Build the JSON body shared by the new and continue request shapes."""
    payload: dict[str, Any] = {
        "message": message,
        "modelName": model_name,
        "temporary": options.temporary,
        "disableSearch": options.disable_search,
        "customInstructions": options.custom_instructions,
        "customPersonality": options.personality,
        "isReasoning": options.reasoning,
        "deepsearchPreset": "default" if options.deep_search else "",
        "sendFinalMetadata": True,
        "fileAttachments": [],
        "imageAttachments": [],
        "enableImageGeneration": False,
        "returnImageBytes": False,
        "forceConcise": False,
        "toolOverrides": {},
    }
    if parent_response_id is None:
        payload["isPreset"] = False
        payload["enableSideBySide"] = True
    else:
        payload["parentResponseId"] = parent_response_id
    return payload


class ConversationTracker:
    """Owns a ``ConversationContext`` and enforces one turn at a time."""

    def __init__(
        self,
        context: Optional[ConversationContext] = None,
        model_name: str = DEFAULT_MODEL_NAME,
    ) -> None:
        self.context = context if context is not None else ConversationContext()
        self.model_name = model_name
        self._in_flight = False
        self._generation = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def begin_or_continue(
        self, message: str, options: Optional[TurnOptions] = None
    ) -> tuple[bool, OutboundRequest]:
        """Pick the request shape for the next turn and mark it in flight.

        Raises:
            TurnInProgressError: If the previous turn has not completed.
        """
        if self._in_flight:
            raise TurnInProgressError(
                "a turn is already in flight for this conversation; "
                "await or cancel it before starting another"
            )

        resolved, warnings = resolve_options(self.context, options)
        conversation_id = self.context.conversation_id
        if conversation_id:
            parent = self.context.last_response_id or ""
            request = OutboundRequest(
                path=f"conversations/{conversation_id}/responses",
                payload=build_payload(message, resolved, self.model_name, parent_response_id=parent),
                is_new=False,
                warnings=warnings,
                generation=self._generation,
            )
            logger.debug(
                "Continuing conversation %s from response %s", conversation_id, parent or "-"
            )
        else:
            request = OutboundRequest(
                path=NEW_CONVERSATION_PATH,
                payload=build_payload(message, resolved, self.model_name),
                is_new=True,
                warnings=warnings,
                generation=self._generation,
            )
            logger.debug("Starting a new conversation")

        self._in_flight = True
        return request.is_new, request

    def _is_stale(self, generation: Optional[int]) -> bool:
        return generation is not None and generation != self._generation

    def record(self, result: TurnResult, generation: Optional[int] = None) -> None:
        """Store the identifiers a completed turn yielded.

        A turn started before the last ``reset()`` is dropped, so it can
        neither rebind the fresh context nor free the slot of a newer turn.
        """
        if self._is_stale(generation):
            logger.info(
                "Discarding result of a turn started before reset (response_id=%s)",
                result.response_id or "-",
            )
            return
        context = self.context
        if result.conversation_id:
            if not context.conversation_id:
                context.conversation_id = result.conversation_id
                logger.info("Conversation %s started", result.conversation_id)
            elif result.conversation_id != context.conversation_id:
                logger.warning(
                    "Ignoring conversation id %s; context is bound to %s",
                    result.conversation_id,
                    context.conversation_id,
                )
        elif not context.conversation_id:
            logger.warning("Turn completed without a conversation id; next turn starts fresh")

        if result.response_id:
            context.last_response_id = result.response_id
        context.last_metadata = result.metadata
        self._in_flight = False

    def abandon(self, generation: Optional[int] = None) -> None:
        """Release the in-flight slot without touching the context."""
        if self._is_stale(generation):
            return
        self._in_flight = False

    def reset(self) -> None:
        """Forget the current thread; the next turn starts a new conversation.

        A turn still in flight keeps running but its outcome is ignored.
        """
        self.context.conversation_id = None
        self.context.last_response_id = None
        self.context.last_metadata = None
        self._in_flight = False
        self._generation += 1
        logger.info("Conversation context reset")
