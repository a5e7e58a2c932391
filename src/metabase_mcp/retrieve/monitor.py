"""Response size monitoring for retrieve results.

Token counts are estimated from the serialized size; the thresholds only
drive operator-facing log messages and never block a response.
"""

from __future__ import annotations

import logging
import math
from typing import Final

from metabase_mcp.retrieve.models import OptimizationLevel

CHARS_PER_TOKEN: Final[int] = 4
MODERATE_TOKEN_THRESHOLD: Final[int] = 15_000
LARGE_TOKEN_THRESHOLD: Final[int] = 20_000


def estimate_tokens(serialized: str) -> int:
    """Rough token estimate (about four characters per token)."""
    return math.ceil(len(serialized) / CHARS_PER_TOKEN)


def log_response_size(
    serialized: str,
    *,
    level: OptimizationLevel,
    item_count: int,
    request_id: str,
    logger: logging.Logger,
) -> int:
    """Log moderate/large response sizes and return the token estimate."""
    size = len(serialized)
    tokens = estimate_tokens(serialized)
    fields = {
        "requestId": request_id,
        "responseSize": size,
        "estimatedTokens": tokens,
        "optimizationLevel": level.value,
    }
    if tokens >= LARGE_TOKEN_THRESHOLD:
        logger.warning(
            "Large response detected: %d chars (~%d tokens) for %d items at %s level; "
            "consider smaller batches",
            size,
            tokens,
            item_count,
            level.value,
            extra={**fields, "itemCount": item_count},
        )
    elif tokens >= MODERATE_TOKEN_THRESHOLD:
        logger.debug(
            "Moderate response size: %d chars (~%d tokens) at %s level",
            size,
            tokens,
            level.value,
            extra=fields,
        )
    return tokens
