from __future__ import annotations

import os

import pytest

from agentgraph.config import (
    ConfigurationError,
    MissingConfigurationError,
    env_flag,
    env_float,
    env_int,
    env_list,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_B", raising=False)
    monkeypatch.setenv("MISSING_A", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)
    assert isinstance(exc.value, ConfigurationError)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", True), ("TRUE", True), (" on ", True), ("no", False), ("0", False), ("", True)],
)
def test_env_flag_parses_common_spellings(monkeypatch: pytest.MonkeyPatch, raw: str, expected: bool) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", raw)

    assert env_flag("EXAMPLE_FLAG", default=True) is expected


def test_env_flag_rejects_garbage(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLAG", "maybe")

    with pytest.raises(ConfigurationError, match="EXAMPLE_FLAG"):
        env_flag("EXAMPLE_FLAG", default=False)


def test_env_int_defaults_and_bounds(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("EXAMPLE_INT", raising=False)
    assert env_int("EXAMPLE_INT", default=7) == 7

    monkeypatch.setenv("EXAMPLE_INT", "-1")
    with pytest.raises(ConfigurationError, match=">= 0"):
        env_int("EXAMPLE_INT", default=7, minimum=0)

    monkeypatch.setenv("EXAMPLE_INT", "seven")
    with pytest.raises(ConfigurationError, match="integer"):
        env_int("EXAMPLE_INT", default=7)


def test_env_float_parses_numbers(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_FLOAT", "2.5")
    assert env_float("EXAMPLE_FLOAT", default=1.0) == 2.5

    monkeypatch.setenv("EXAMPLE_FLOAT", "fast")
    with pytest.raises(ConfigurationError):
        env_float("EXAMPLE_FLOAT", default=1.0)


def test_env_list_drops_blank_entries(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_LIST", " a, ,b,, c ")

    assert env_list("EXAMPLE_LIST") == ("a", "b", "c")
    monkeypatch.delenv("EXAMPLE_LIST")
    assert os.getenv("EXAMPLE_LIST") is None
    assert env_list("EXAMPLE_LIST") == ()
