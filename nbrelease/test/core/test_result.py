"""Tests for nbrelease.core.result module."""

from __future__ import annotations

import pytest

from nbrelease.core.result import Err, Ok, Result


class TestOk:
    """Tests for Ok type."""

    def test_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_frozen(self) -> None:
        result = Ok(1)
        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]

    def test_repr(self) -> None:
        assert repr(Ok("v1.0.0")) == "Ok('v1.0.0')"


class TestErr:
    """Tests for Err type."""

    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_equality(self) -> None:
        assert Err("boom") == Err("boom")
        assert Err("boom") != Ok("boom")


def test_pattern_matching() -> None:
    def half(n: int) -> Result[int, str]:
        if n % 2:
            return Err(f"{n} is odd")
        return Ok(n // 2)

    match half(10):
        case Ok(value):
            assert value == 5
        case Err(_):
            pytest.fail("Should not match Err")

    match half(3):
        case Ok(_):
            pytest.fail("Should not match Ok")
        case Err(error):
            assert error == "3 is odd"
