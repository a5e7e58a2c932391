from __future__ import annotations

import logging
from typing import Any

import pytest

from metabase_mcp.exceptions import InvalidParameterError, ValidationError
from metabase_mcp.retrieve.validation import max_ids_for_model, validate_retrieve_request

_log = logging.getLogger("tests.validation")


def _validate(arguments: dict[str, Any] | None):
    return validate_retrieve_request(arguments, request_id="req-1", logger=_log)


def test_valid_card_request() -> None:
    request = _validate({"model": "card", "ids": [3, 1, 2]})
    assert request.model == "card"
    assert request.ids == [3, 1, 2]
    assert request.table_offset is None
    assert request.table_limit is None


def test_missing_arguments() -> None:
    with pytest.raises(InvalidParameterError, match="Invalid parameter: model") as info:
        _validate(None)
    assert info.value.parameter == "model"
    assert isinstance(info.value, ValidationError)


def test_invalid_model_lists_choices(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="tests.validation")
    with pytest.raises(InvalidParameterError) as info:
        _validate({"model": "question", "ids": [1]})
    assert str(info.value) == (
        "Invalid parameter: model. Must be one of: "
        "card, dashboard, table, database, collection, field"
    )
    record = next(r for r in caplog.records if "Invalid model parameter" in r.getMessage())
    assert record.requestId == "req-1"  # type: ignore[attr-defined]
    assert record.validValues[0] == "card"  # type: ignore[attr-defined]


@pytest.mark.parametrize("ids", [None, [], "1,2", 5])
def test_ids_must_be_non_empty_list(ids: Any) -> None:
    with pytest.raises(InvalidParameterError, match="Must be a non-empty array of IDs"):
        _validate({"model": "card", "ids": ids})


def test_too_many_ids() -> None:
    with pytest.raises(InvalidParameterError) as info:
        _validate({"model": "card", "ids": list(range(1, 52))})
    assert "Too many IDs requested: 51. Maximum allowed for card: 50" in str(info.value)


def test_database_cap_is_two() -> None:
    assert max_ids_for_model("database") == 2
    assert max_ids_for_model("table") == 50
    with pytest.raises(InvalidParameterError, match="Maximum allowed for database: 2"):
        _validate({"model": "database", "ids": [1, 2, 3]})


@pytest.mark.parametrize("bad", [0, -4, 1.5, "7", True, None])
def test_each_id_must_be_positive_integer(bad: Any) -> None:
    with pytest.raises(InvalidParameterError, match="Each id must be a positive integer"):
        _validate({"model": "table", "ids": [1, bad]})


def test_pagination_rejected_for_other_models() -> None:
    with pytest.raises(
        InvalidParameterError, match="Table pagination is only supported for the database model"
    ):
        _validate({"model": "table", "ids": [1], "table_limit": 10})


def test_table_offset_checks() -> None:
    with pytest.raises(InvalidParameterError, match="table_offset must be a number"):
        _validate({"model": "database", "ids": [1], "table_offset": "10"})
    with pytest.raises(InvalidParameterError, match="table_offset must be non-negative"):
        _validate({"model": "database", "ids": [1], "table_offset": -1})
    with pytest.raises(InvalidParameterError, match="table_offset must be a whole number"):
        _validate({"model": "database", "ids": [1], "table_offset": 2.5})


@pytest.mark.parametrize("limit", [0, 101, 150])
def test_table_limit_out_of_range(limit: int) -> None:
    with pytest.raises(
        InvalidParameterError, match="table_limit must be between 1 and 100"
    ) as info:
        _validate({"model": "database", "ids": [1], "table_limit": limit})
    assert info.value.parameter == "table_limit"


def test_table_limit_boundaries_accepted() -> None:
    request = _validate({"model": "database", "ids": [1], "table_offset": 0, "table_limit": 100})
    assert request.table_offset == 0
    assert request.table_limit == 100
    request = _validate({"model": "database", "ids": [1, 2], "table_limit": 1.0})
    assert request.table_limit == 1
