"""Tests for the prompt manager."""

import pytest

from mcphub.mcp.models import ROLE_SYSTEM, Prompt, PromptResult
from mcphub.servers.prompts import PromptManager, extract_arguments, render_template


class TestTemplates:
    """Tests for placeholder handling."""

    def test_extract_arguments_in_order_without_duplicates(self):
        names = [a.name for a in extract_arguments("{a} and {b} then {a}")]
        assert names == ["a", "b"]

    def test_render_leaves_unknown_placeholders(self):
        assert render_template("{x} {y}", {"x": 1}) == "1 {y}"


class TestPromptManager:
    """Tests for registering and rendering prompts."""

    def test_text_prompt(self):
        manager = PromptManager().register_text_prompt(
            "review", "Code review", "Review {language} code: {code}"
        )
        result = manager.get_prompt("review", {"language": "Python", "code": "x = 1"})
        assert result.description == "Code review"
        assert result.messages[0].content == "Review Python code: x = 1"

    def test_missing_argument(self):
        manager = PromptManager().register_text_prompt("p", None, "Hi {name}")
        with pytest.raises(ValueError, match="name"):
            manager.get_prompt("p", {})

    def test_unknown_prompt(self):
        with pytest.raises(LookupError, match="Prompt not found: nope"):
            PromptManager().get_prompt("nope")

    def test_fixed_prompt_role(self):
        manager = PromptManager().register_fixed("sys", "System", "Be brief", role=ROLE_SYSTEM)
        message = manager.get_prompt("sys").messages[0]
        assert message.role == "system"
        assert message.content == "Be brief"

    def test_custom_executor(self):
        manager = PromptManager().register(
            Prompt(name="count"),
            lambda args: PromptResult.simple(None, str(len(args))),
        )
        assert manager.get_prompt("count", {"a": 1, "b": 2}).messages[0].content == "2"

    def test_unregister(self):
        manager = PromptManager().register_fixed("a", None, "x").register_fixed("b", None, "y")
        manager.unregister("a")
        assert len(manager) == 1
        assert not manager.has_prompt("a")
        assert [p.name for p in manager.list_prompts()] == ["b"]
