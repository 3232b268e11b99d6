"""Models listing endpoint - OpenAI compatible."""

import logging
import time

from ...core.registry import get_bridge

logger = logging.getLogger("grokbridge")

# Report models as created a day ago; clients only need a plausible timestamp
MODEL_AGE_SECONDS = 86400


async def list_models() -> dict:
    """List the model names clients may send, in OpenAI API format.

    GET /v1/models and GET /models

    Every listed name is served by the same upstream model.
    """
    logger.info("Received models list request")

    created = int(time.time()) - MODEL_AGE_SECONDS
    models = [
        {
            "id": model_name,
            "object": "model",
            "created": created,
            "owned_by": "grokbridge",
        }
        for model_name in get_bridge().models
    ]

    return {
        "object": "list",
        "data": models
    }
