"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse

from ...conversation import TurnOptions
from ...core.exceptions import BridgeError, InvalidRequestError
from ...core.registry import get_bridge
from ...translate import (
    ChatCompletionStreamAdapter,
    build_error_body,
    collect_chat_completion,
    error_status_and_type,
)

logger = logging.getLogger("grokbridge")

VALID_ROLES = {"system", "user", "assistant"}
# Low temperatures ask for careful answers; map them onto reasoning mode
REASONING_TEMPERATURE_THRESHOLD = 0.5
WARNING_HEADER = "X-Grokbridge-Warning"


@dataclass
class ChatTurnRequest:
    """The parts of a chat completions body the bridge acts on."""

    model: str
    message: str
    options: TurnOptions
    stream: bool = False


def _message_text(content: Any, index: int) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, Mapping) and part.get("type") == "text":
                parts.append(str(part.get("text") or ""))
            else:
                raise InvalidRequestError(
                    f"messages[{index}] contains unsupported content parts",
                    code="unsupported_content",
                )
        return "".join(parts)
    raise InvalidRequestError(
        f"messages[{index}].content must be a string", code="invalid_content"
    )


def _optional_bool(payload: Mapping[str, Any], key: str) -> Optional[bool]:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise InvalidRequestError(f"{key} must be a boolean", code="invalid_parameter")
    return value


def parse_chat_request(payload: Mapping[str, Any]) -> ChatTurnRequest:
    """Validate a chat completions body and derive the turn to send.

    The last user message is sent; the first system message becomes the
    custom instructions.

    Raises:
        InvalidRequestError: If the body is not a usable chat request.
    """
    model = payload.get("model")
    if not isinstance(model, str) or not model.strip():
        raise InvalidRequestError("You must provide a model parameter", code="missing_parameter")

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequestError("Messages array must not be empty", code="missing_parameter")

    system_message: Optional[str] = None
    last_user_message = ""
    for index, message in enumerate(messages):
        if not isinstance(message, Mapping):
            raise InvalidRequestError(
                f"messages[{index}] must be an object", code="invalid_message"
            )
        role = message.get("role")
        if role not in VALID_ROLES:
            raise InvalidRequestError(f"Invalid role: {role}", code="invalid_role")
        text = _message_text(message.get("content"), index)
        if role == "system" and system_message is None:
            system_message = text
        elif role == "user":
            last_user_message = text

    if not last_user_message.strip():
        raise InvalidRequestError(
            "At least one user message is required", code="missing_user_message"
        )

    reasoning = _optional_bool(payload, "reasoning")
    temperature = payload.get("temperature")
    if reasoning is None and isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
        reasoning = temperature < REASONING_TEMPERATURE_THRESHOLD

    personality = payload.get("personality")
    if personality is not None and not isinstance(personality, str):
        raise InvalidRequestError("personality must be a string", code="invalid_parameter")

    options = TurnOptions(
        reasoning=reasoning,
        deep_search=_optional_bool(payload, "deep_search"),
        disable_search=_optional_bool(payload, "disable_search"),
        custom_instructions=system_message,
        personality=personality,
    )
    return ChatTurnRequest(
        model=model.strip(),
        message=last_user_message,
        options=options,
        stream=bool(payload.get("stream")),
    )


def _http_error(exc: BridgeError) -> HTTPException:
    status, _ = error_status_and_type(exc)
    return HTTPException(status_code=status, detail=build_error_body(exc))


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions

    Each request runs as its own single-turn conversation.
    """
    logger.info("Received chat completions request")
    body = await request.body()
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON payload: {exc}")
        raise _http_error(InvalidRequestError("Invalid JSON payload", code="invalid_json")) from exc

    if not isinstance(payload, Mapping):
        logger.error("Payload must be a JSON object")
        raise _http_error(
            InvalidRequestError("Request body must be a JSON object", code="invalid_json_shape")
        )

    try:
        chat_request = parse_chat_request(payload)
    except InvalidRequestError as exc:
        logger.error(f"Invalid chat request: {exc.message}")
        raise _http_error(exc) from exc

    bridge = get_bridge()
    client = bridge.new_client()
    turn = client.send_turn(chat_request.message, chat_request.options)
    headers = {}
    if turn.warnings:
        headers[WARNING_HEADER] = "; ".join(turn.warnings)

    logger.info(
        f"Processing request for model {chat_request.model}, stream={chat_request.stream}"
    )

    if chat_request.stream:
        adapter = ChatCompletionStreamAdapter(chat_request.model)
        headers["Cache-Control"] = "no-cache"
        return StreamingResponse(
            adapter.adapt_stream(turn, disconnect_checker=request.is_disconnected),
            media_type="text/event-stream",
            headers=headers,
        )

    try:
        completion = await collect_chat_completion(turn, chat_request.model)
    except BridgeError as exc:
        logger.error(f"Error processing request for model {chat_request.model}: {exc.message}")
        raise _http_error(exc) from exc

    logger.info(f"Request for model {chat_request.model} completed successfully")
    return JSONResponse(completion, headers=headers)
