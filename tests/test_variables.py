"""Tests for placeholder discovery and substitution."""

import pytest

from browser_grid.errors import UndefinedVariable
from browser_grid.models.actions import ExecuteScriptAction, NavigateAction, TypeAction
from browser_grid.variables import find_variables, substitute


class TestFindVariables:
    def test_both_syntaxes_in_first_seen_order(self):
        steps = [
            NavigateAction(url="https://{{host}}/login"),
            TypeAction(selector="#user", text="${username}"),
            TypeAction(selector="#again", text="${ username }"),
            ExecuteScriptAction(script="return 1", args=["${token}"]),
        ]
        assert find_variables(steps) == ["host", "username", "token"]

    def test_plain_mappings(self):
        assert find_variables([{"action": "type", "text": "${a}-${b}"}]) == ["a", "b"]

    def test_none(self):
        assert find_variables([NavigateAction(url="https://example.test")]) == []

    def test_template_literals_are_not_variables(self):
        steps = [ExecuteScriptAction(script="return `${document.title} - ${location.href}`")]
        assert find_variables(steps) == []

    def test_escaped_placeholder_is_not_a_variable(self):
        assert find_variables([{"text": "$${literal} ${real}"}]) == ["real"]


class TestSubstitute:
    def test_replaces_only_placeholders(self):
        assert substitute("user=${username}!", {"username": "alice"}) == "user=alice!"
        assert substitute("{{a}}/{{b}}", {"a": 1, "b": "x"}) == "1/x"

    def test_nested_containers_are_copied(self):
        original = {"action": "execute_script", "args": ["${x}", {"k": "${x}"}], "timeout": 5}
        result = substitute(original, {"x": "v"})
        assert result == {"action": "execute_script", "args": ["v", {"k": "v"}], "timeout": 5}
        assert original["args"] == ["${x}", {"k": "${x}"}]

    def test_undefined(self):
        with pytest.raises(UndefinedVariable) as exc:
            substitute("${missing}", {})
        assert "missing" in exc.value.message

    def test_text_without_placeholders(self):
        assert substitute("$ {not} {single}", {}) == "$ {not} {single}"

    def test_template_literal_passes_through(self):
        script = "return `${document.title} (${location.host})`"
        assert substitute(script, {}) == script

    def test_escape(self):
        assert substitute("$${name} is ${name}", {"name": "bob"}) == "${name} is bob"
