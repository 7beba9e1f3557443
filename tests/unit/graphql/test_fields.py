import logging

import pytest

from watsonwork.core.errors import InvalidFieldSpec
from watsonwork.graphql.fields import ensure_required_field, project


class TestProject:
    """测试字段投影"""

    def test_strings_joined_in_order(self):
        assert project(["id", "displayName", "email"]) == "id displayName email"

    def test_single_field(self):
        assert project(["content"]) == "content"

    def test_nested_selection(self):
        fields = ["id", {"name": "createdBy", "fields": ["id", "displayName"]}]
        result = project(fields)
        assert "createdBy { id displayName }" in result
        assert result == "id createdBy { id displayName }"

    def test_deeply_nested_selection(self):
        fields = [
            {
                "name": "conversation",
                "fields": ["id", {"name": "members", "fields": ["id"]}],
            },
            "content",
        ]
        assert project(fields) == "conversation { id members { id } } content"

    @pytest.mark.parametrize("fields", [None, []])
    def test_empty_defaults_to_id(self, fields, caplog):
        """空字段列表回退为 id 并记录警告"""
        with caplog.at_level(logging.WARNING, logger="watsonwork"):
            assert project(fields) == "id"
        assert "only id will be returned" in caplog.text

    def test_pure_function(self):
        fields = ["id", {"name": "createdBy", "fields": ["displayName"]}]
        snapshot = [f if isinstance(f, str) else dict(f) for f in fields]
        assert project(fields) == project(fields)
        assert fields == snapshot

    @pytest.mark.parametrize(
        "fields",
        [
            [1],
            [None],
            [{"fields": ["id"]}],
            [{"name": "createdBy"}],
            [{"name": "createdBy", "fields": []}],
            [{"name": "createdBy", "fields": "id"}],
            "id displayName",
        ],
    )
    def test_invalid_elements(self, fields):
        with pytest.raises(InvalidFieldSpec):
            project(fields)

    def test_invalid_field_spec_is_value_error(self):
        with pytest.raises(ValueError):
            project([3.14])


class TestEnsureRequiredField:
    """测试 id 字段补齐"""

    def test_appends_missing_id(self):
        assert ensure_required_field(["displayName"]) == ["displayName", "id"]

    def test_idempotent(self):
        assert ensure_required_field(["id", "displayName"]) == ["id", "displayName"]
        once = ensure_required_field(["displayName"])
        assert ensure_required_field(once) == once

    def test_does_not_mutate_input(self):
        fields = ["displayName"]
        ensure_required_field(fields)
        assert fields == ["displayName"]

    def test_none_and_custom_field(self):
        assert ensure_required_field(None) == ["id"]
        assert ensure_required_field(["id"], required="created") == ["id", "created"]
