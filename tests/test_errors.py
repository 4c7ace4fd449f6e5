"""Tests for the error hierarchy."""

from __future__ import annotations

from inkspan.errors import ConfigurationError, ErrorCode, InkspanError


def test_inkspan_error_to_dict() -> None:
    error = InkspanError(error_code="custom", message="Something broke", details={"field": "x"})

    assert str(error) == "[custom] Something broke"
    assert error.to_dict() == {"error": "custom", "message": "Something broke", "details": {"field": "x"}}


def test_configuration_error_defaults_and_issues() -> None:
    error = ConfigurationError(issues=("a: bad",))

    assert isinstance(error, ValueError)
    assert error.error_code == ErrorCode.INVALID_OPTIONS
    assert error.to_dict()["issues"] == ["a: bad"]


def test_configuration_error_without_issues_omits_key() -> None:
    payload = ConfigurationError(error_code=ErrorCode.INVALID_RULE, message="nope").to_dict()

    assert payload == {"error": "invalid_rule", "message": "nope"}
