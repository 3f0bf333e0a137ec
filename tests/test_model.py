"""Tests for the token parsers in linkplan.model."""

import pytest

from linkplan.errors import INVALID_INPUT, ConfigError
from linkplan.model import (
    ASAN,
    DEBUG,
    RELEASE,
    TSAN,
    parse_build_type,
    parse_sanitizers,
)


class TestParseBuildType:
    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_unset_is_debug(self, value: str | None) -> None:
        assert parse_build_type(value) == DEBUG

    def test_case_insensitive(self) -> None:
        assert parse_build_type(" Release ") == RELEASE

    @pytest.mark.parametrize("value", [5, ["release"], True])
    def test_non_string_is_invalid_input(self, value: object) -> None:
        with pytest.raises(ConfigError) as exc_info:
            parse_build_type(value)  # type: ignore[arg-type]
        assert exc_info.value.kind == INVALID_INPUT


class TestParseSanitizers:
    def test_comma_separated(self) -> None:
        assert parse_sanitizers("address, ,THREAD") == frozenset({ASAN, TSAN})

    def test_list(self) -> None:
        assert parse_sanitizers(["address"]) == frozenset({ASAN})

    @pytest.mark.parametrize("value", [5, {"address": True}, [1], ["address", None]])
    def test_wrong_type_is_invalid_input(self, value: object) -> None:
        with pytest.raises(ConfigError) as exc_info:
            parse_sanitizers(value)  # type: ignore[arg-type]
        assert exc_info.value.kind == INVALID_INPUT
