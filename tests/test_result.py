"""Tests for the Result type."""

from __future__ import annotations

import pytest

from core.result import Failure, Success, failure, success
from services.search.errors import ExtractionError


class TestSuccess:
    """Tests for Success."""

    def test_predicates(self) -> None:
        """Success reports success only."""
        result = Success(["item"])

        assert result.is_success() is True
        assert result.is_failure() is False

    def test_unwrap_returns_value(self) -> None:
        """unwrap and unwrap_or return the value."""
        result = Success(3)

        assert result.unwrap() == 3
        assert result.unwrap_or(0) == 3

    def test_map_transforms_value(self) -> None:
        """map applies the function to the value."""
        result = Success(["a", "b"]).map(len)

        assert result == Success(2)


class TestFailure:
    """Tests for Failure."""

    def test_predicates(self) -> None:
        """Failure reports failure only."""
        result = Failure(ExtractionError("boom"))

        assert result.is_success() is False
        assert result.is_failure() is True

    def test_unwrap_raises_value_error(self) -> None:
        """unwrap raises with the error in the message."""
        result = Failure(ExtractionError("boom", site="vinted"))

        with pytest.raises(ValueError, match=r"\[vinted\] extraction: boom"):
            result.unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        """A failed job counts as an empty result list."""
        result = Failure(ExtractionError("boom"))

        assert result.unwrap_or([]) == []

    def test_map_returns_self(self) -> None:
        """map leaves a failure untouched."""
        result = Failure("error")

        assert result.map(len) is result


class TestFactories:
    """Tests for success() and failure()."""

    def test_success(self) -> None:
        """success() wraps a value."""
        assert success([]) == Success([])

    def test_failure(self) -> None:
        """failure() wraps an error."""
        error = ExtractionError("boom")

        assert failure(error).error is error
