"""Tests for the embedded command schemas and registry."""

import pytest
from pydantic import ValidationError

from ridge_code.schemas import (
    CommandSchemaRegistry,
    CommandPayload,
    ContextStoreCommand,
    TaskCreateCommand,
    default_registry,
)


@pytest.fixture
def registry():
    return default_registry()


class TestContextStoreCommand:
    """Test the context_store contract."""

    def test_minimal_payload(self):
        cmd = ContextStoreCommand.model_validate({"content": "x", "type": "code"})

        assert cmd.content == "x"
        assert cmd.type == "code"
        assert cmd.to_payload() == {"content": "x", "type": "code"}

    def test_camel_case_fields(self):
        cmd = ContextStoreCommand.model_validate({
            "content": "x",
            "type": "milestone",
            "relevanceScore": 7.5,
            "sessionId": "s-1",
            "metadata": {"source": "chat"},
        })

        assert cmd.relevance_score == 7.5
        assert cmd.session_id == "s-1"
        payload = cmd.to_payload()
        assert payload["relevanceScore"] == 7.5
        assert payload["sessionId"] == "s-1"
        assert payload["metadata"] == {"source": "chat"}

    @pytest.mark.parametrize("score", [0, 10])
    def test_relevance_score_boundaries_pass(self, score):
        cmd = ContextStoreCommand.model_validate({"content": "x", "type": "code", "relevanceScore": score})
        assert cmd.relevance_score == score

    @pytest.mark.parametrize("score", [-0.1, 10.5, 11])
    def test_relevance_score_out_of_range_fails(self, score):
        with pytest.raises(ValidationError):
            ContextStoreCommand.model_validate({"content": "x", "type": "code", "relevanceScore": score})

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            ContextStoreCommand.model_validate({"content": "x", "type": "gossip"})

    def test_empty_content_rejected(self):
        with pytest.raises(ValidationError):
            ContextStoreCommand.model_validate({"content": "", "type": "code"})

    def test_content_must_be_string(self):
        with pytest.raises(ValidationError):
            ContextStoreCommand.model_validate({"content": 42, "type": "code"})

    def test_unknown_keys_ignored(self):
        cmd = ContextStoreCommand.model_validate({"content": "x", "type": "code", "color": "blue"})
        assert "color" not in cmd.to_payload()


class TestTaskCreateCommand:
    """Test the task_create contract."""

    def test_defaults_applied(self):
        payload = TaskCreateCommand.model_validate({"title": "Write tests"}).to_payload()

        assert payload == {"title": "Write tests", "type": "general", "priority": "medium"}

    def test_full_payload(self):
        payload = TaskCreateCommand.model_validate({
            "title": "Fix parser",
            "description": "Handles nested braces",
            "type": "bugfix",
            "priority": "urgent",
            "assignedTo": "alex",
            "dependencies": ["t-1"],
            "tags": ["parser"],
        }).to_payload()

        assert payload["assignedTo"] == "alex"
        assert payload["priority"] == "urgent"
        assert payload["dependencies"] == ["t-1"]

    def test_invalid_priority_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateCommand.model_validate({"title": "x", "priority": "whenever"})

    def test_missing_title_rejected(self):
        with pytest.raises(ValidationError):
            TaskCreateCommand.model_validate({"description": "no title"})


class TestCommandSchemaRegistry:
    """Test registry lookups and validation."""

    def test_default_commands(self, registry):
        assert registry.names() == ["context_store", "task_create"]
        assert "context_store" in registry
        assert registry.get("task_create") is TaskCreateCommand

    def test_lookup_miss_returns_none(self, registry):
        assert registry.get("context_delete") is None
        assert "context_delete" not in registry

    def test_validate_unknown_command(self, registry):
        assert registry.validate("context_delete", {"id": 1}) is None

    def test_validate_non_object_payload(self, registry):
        assert registry.validate("context_store", ["content", "code"]) is None

    def test_validate_invalid_payload(self, registry):
        assert registry.validate("context_store", {"content": "x", "type": "nope"}) is None

    def test_validate_returns_normalized_payload(self, registry):
        assert registry.validate("task_create", {"title": "t"}) == {
            "title": "t", "type": "general", "priority": "medium"
        }

    def test_register_additional_schema(self):
        class NamingRegister(CommandPayload):
            name: str

        registry = CommandSchemaRegistry()
        registry.register("naming_register", NamingRegister)

        assert registry.names() == ["naming_register"]
        assert registry.validate("naming_register", {"name": "ResponseHistory"}) == {"name": "ResponseHistory"}


class TestStrictTypes:
    """Values of the wrong JSON type are rejected, not converted."""

    @pytest.mark.parametrize("score", ["5", True, False, None])
    def test_relevance_score_must_be_a_number(self, registry, score):
        payload = {"content": "x", "type": "code", "relevanceScore": score}
        if score is None:
            # explicit null is the same as leaving the score out
            assert registry.validate("context_store", payload) == {"content": "x", "type": "code"}
        else:
            assert registry.validate("context_store", payload) is None

    def test_integer_score_accepted(self, registry):
        payload = registry.validate("context_store", {"content": "x", "type": "code", "relevanceScore": 5})
        assert payload["relevanceScore"] == 5

    def test_tags_must_be_strings(self, registry):
        assert registry.validate("task_create", {"title": "t", "tags": [1, 2]}) is None

    def test_title_must_be_string(self, registry):
        assert registry.validate("task_create", {"title": 123}) is None
