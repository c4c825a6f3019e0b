"""Tests for the JSON value validation boundary."""

import json

import pytest

from memoria.core.errors import ValidationError
from memoria.core.json_value import load_metadata, validate_json_value, validate_metadata


class TestValidateJsonValue:
    """Accepted and rejected values."""

    @pytest.mark.parametrize(
        "value",
        [None, True, 0, -3, 1.5, "text", [], {}, [1, "a", None], {"a": {"b": [1, 2]}}],
    )
    def test_accepts_json_types(self, value):
        assert json.loads(validate_json_value(value)) == value

    def test_output_is_compact(self):
        assert validate_json_value({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_keeps_unicode(self):
        assert validate_json_value("héllo") == '"héllo"'

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), {"x": [float("-inf")]}])
    def test_rejects_non_finite(self, value):
        with pytest.raises(ValidationError):
            validate_json_value(value)

    def test_rejects_non_string_keys(self):
        with pytest.raises(ValidationError, match="not a string"):
            validate_json_value({1: "a"})

    def test_rejects_unsupported_types(self):
        with pytest.raises(ValidationError, match="Unsupported type"):
            validate_json_value({"when": object()})

    def test_depth_limit(self):
        nested: list = []
        value = nested
        for _ in range(5):
            inner: list = []
            value.append(inner)
            value = inner
        validate_json_value(nested, max_depth=5)
        with pytest.raises(ValidationError, match="deeper"):
            validate_json_value(nested, max_depth=4)

    def test_size_limit(self):
        with pytest.raises(ValidationError, match="bytes"):
            validate_json_value("x" * 100, max_bytes=50)


class TestMetadata:
    def test_none_is_empty_object(self):
        assert validate_metadata(None) == "{}"

    def test_must_be_object(self):
        with pytest.raises(ValidationError, match="JSON object"):
            validate_metadata(["a"])

    def test_load_metadata_tolerates_non_object(self):
        assert load_metadata('"text"') == {}
        assert load_metadata(None) == {}
        assert load_metadata('{"k": 1}') == {"k": 1}
