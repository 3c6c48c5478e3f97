"""
Tests for PromQL input validation.

These tests ensure request parameters cannot break out of the label
matchers and duration slots of the query templates.
"""

import pytest
from kubedash.utils.prometheus_validation import (
    sanitize_label_value,
    validate_step,
    PromQLValidationError
)


class TestSanitizeLabelValue:
    """Test label value sanitization."""

    def test_valid_node_and_instance(self):
        """Test node names and IP:port instances."""
        assert sanitize_label_value("node-01") == "node-01"
        assert sanitize_label_value("10.0.0.11:9100") == "10.0.0.11:9100"
        assert sanitize_label_value("ip-10-0-0-11.ec2.internal") == "ip-10-0-0-11.ec2.internal"

    def test_valid_endpoint_path(self):
        """Test endpoint paths with slashes."""
        assert sanitize_label_value("/api/v1/orders") == "/api/v1/orders"

    def test_invalid_with_quotes(self):
        """Test that quotes are rejected (injection risk)."""
        with pytest.raises(PromQLValidationError, match="invalid characters"):
            sanitize_label_value('10.0.0.11:9100"} or up{')

    def test_invalid_with_braces_and_spaces(self):
        """Test braces and whitespace are rejected."""
        with pytest.raises(PromQLValidationError, match="invalid characters"):
            sanitize_label_value("node}attack")
        with pytest.raises(PromQLValidationError, match="invalid characters"):
            sanitize_label_value("node 01")

    def test_empty_value(self):
        """Test that empty values are rejected."""
        with pytest.raises(PromQLValidationError, match="cannot be empty"):
            sanitize_label_value("")

    def test_too_long(self):
        """Test the maximum length."""
        with pytest.raises(PromQLValidationError, match="maximum length"):
            sanitize_label_value("a" * 256)
        assert sanitize_label_value("a" * 10, max_length=10) == "a" * 10

    def test_is_value_error(self):
        """Test validation errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            sanitize_label_value("bad value")


class TestValidateStep:
    """Test duration validation."""

    @pytest.mark.parametrize("step", ["30s", "5m", "1h", "1d", "1w", "500ms"])
    def test_valid_steps(self, step):
        """Test valid PromQL durations."""
        assert validate_step(step) == step

    @pytest.mark.parametrize("step", ["", "5", "m", "5 m", "5m]", "1h30m", "-5m"])
    def test_invalid_steps(self, step):
        """Test invalid durations are rejected."""
        with pytest.raises(PromQLValidationError):
            validate_step(step)
