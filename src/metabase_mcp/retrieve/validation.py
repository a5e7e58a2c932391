"""Argument validation for the retrieve tool.

Runs before any upstream call. The MCP tool schema enforces the same rules;
the checks here cover direct calls with raw argument mappings.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, cast

from metabase_mcp.exceptions import InvalidParameterError
from metabase_mcp.retrieve.models import (
    MAX_DATABASE_IDS_PER_REQUEST,
    MAX_IDS_PER_REQUEST,
    MAX_TABLE_LIMIT,
    SUPPORTED_MODELS,
    ModelType,
    RetrievalRequest,
)


def max_ids_for_model(model: ModelType) -> int:
    """Per-model cap on IDs in one request; databases carry whole table lists."""
    return MAX_DATABASE_IDS_PER_REQUEST if model == "database" else MAX_IDS_PER_REQUEST


def is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: object) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def invalid_parameter(
    logger: logging.Logger,
    request_id: str,
    parameter: str,
    message: str,
    log_message: str | None = None,
    **fields: Any,
) -> InvalidParameterError:
    """Log a rejected parameter and build the error for the caller to raise."""
    logger.warning(log_message or message, extra={"requestId": request_id, **fields})
    return InvalidParameterError(parameter, message)


def validate_whole_number(
    value: object, name: str, logger: logging.Logger, request_id: str
) -> int:
    if not _is_number(value):
        raise invalid_parameter(
            logger,
            request_id,
            name,
            f"Invalid parameter: {name}. {name} must be a number",
            value=value,
        )
    number = cast("int | float", value)
    if isinstance(number, float) and not number.is_integer():
        raise invalid_parameter(
            logger,
            request_id,
            name,
            f"Invalid parameter: {name}. {name} must be a whole number",
            value=value,
        )
    return int(number)


def validate_retrieve_request(
    arguments: Mapping[str, Any] | None,
    *,
    request_id: str,
    logger: logging.Logger,
) -> RetrievalRequest:
    """Validate raw retrieve arguments in rule order.

    Raises:
        InvalidParameterError: On the first rule that fails
    """
    args = arguments or {}

    model = args.get("model")
    if not model:
        raise invalid_parameter(
            logger,
            request_id,
            "model",
            f"Invalid parameter: model. Must be one of: {', '.join(SUPPORTED_MODELS)}",
            log_message="Missing model parameter in retrieve request",
        )
    if model not in SUPPORTED_MODELS:
        raise invalid_parameter(
            logger,
            request_id,
            "model",
            f"Invalid parameter: model. Must be one of: {', '.join(SUPPORTED_MODELS)}",
            log_message=f"Invalid model parameter: {model}",
            validValues=list(SUPPORTED_MODELS),
        )
    model = cast("ModelType", model)

    ids = args.get("ids")
    if not isinstance(ids, list | tuple) or len(ids) == 0:
        raise invalid_parameter(
            logger,
            request_id,
            "ids",
            "Invalid parameter: ids. Must be a non-empty array of IDs",
            log_message="Missing or invalid ids parameter in retrieve request",
        )

    cap = max_ids_for_model(model)
    if len(ids) > cap:
        raise invalid_parameter(
            logger,
            request_id,
            "ids",
            f"Too many IDs requested: {len(ids)}. Maximum allowed for {model}: {cap}. "
            "Split the request into smaller batches.",
        )

    for value in ids:
        if not is_int(value) or value <= 0:
            raise invalid_parameter(
                logger,
                request_id,
                "ids",
                f"Invalid parameter: ids. Each id must be a positive integer, got {value!r}",
                log_message="Invalid id parameter - must be a positive number",
                value=value,
            )

    raw_offset = args.get("table_offset")
    raw_limit = args.get("table_limit")
    if (raw_offset is not None or raw_limit is not None) and model != "database":
        raise invalid_parameter(
            logger,
            request_id,
            "table_offset/table_limit",
            "Invalid parameter: table_offset/table_limit. "
            "Table pagination is only supported for the database model",
        )

    table_offset: int | None = None
    if raw_offset is not None:
        table_offset = validate_whole_number(raw_offset, "table_offset", logger, request_id)
        if table_offset < 0:
            raise invalid_parameter(
                logger,
                request_id,
                "table_offset",
                "Invalid parameter: table_offset. table_offset must be non-negative",
                value=raw_offset,
            )

    table_limit: int | None = None
    if raw_limit is not None:
        table_limit = validate_whole_number(raw_limit, "table_limit", logger, request_id)
        if table_limit < 1 or table_limit > MAX_TABLE_LIMIT:
            raise invalid_parameter(
                logger,
                request_id,
                "table_limit",
                f"Invalid parameter: table_limit. table_limit must be between 1 and "
                f"{MAX_TABLE_LIMIT}",
                value=raw_limit,
            )

    return RetrievalRequest(
        model=model,
        ids=[int(i) for i in ids],
        table_offset=table_offset,
        table_limit=table_limit,
    )
