"""Tests for payload template rendering."""
import pytest

from app.services.template_engine import render, resolve_path


@pytest.mark.parametrize(
    "value",
    [
        "plain text",
        "{{ not closed",
        "prefix {{user.id}}",
        "{{user.id}} suffix",
        "{{a}}{{b}}",
        "{{a}}\n",
        "\n{{a}}",
        42,
        3.5,
        True,
        None,
        [],
        {},
    ],
)
def test_non_placeholder_values_pass_through(value):
    """Anything that is not a full-string placeholder is returned as-is."""
    assert render(value, {"user": {"id": "abc"}, "a": 1, "b": 2}) == value


def test_placeholder_resolves_nested_path():
    assert render("{{user.id}}", {"user": {"id": "abc"}}) == "abc"


def test_placeholder_allows_whitespace_inside_braces():
    assert render("{{  user.id }}", {"user": {"id": "abc"}}) == "abc"


def test_missing_path_keeps_placeholder():
    assert render("{{missing.path}}", {}) == "{{missing.path}}"


def test_traversal_into_non_object_keeps_placeholder():
    context = {"user": {"id": "abc"}, "tags": ["a", "b"]}
    assert render("{{user.id.length}}", context) == "{{user.id.length}}"
    assert render("{{tags.0}}", context) == "{{tags.0}}"


def test_empty_placeholder_is_left_alone():
    assert render("{{}}", {"": "x"}) == "{{}}"


@pytest.mark.parametrize("value", [None, False, 0, "", [], {}])
def test_falsy_values_still_resolve(value):
    """Only a missing path falls back; present falsy values are substituted."""
    assert render("{{field}}", {"field": value}) == value


def test_resolved_value_keeps_its_type():
    context = {"content": {"id": 7, "meta": {"tags": ["news"]}}}
    assert render("{{content.id}}", context) == 7
    assert render("{{content.meta}}", context) == {"tags": ["news"]}


def test_recursive_rendering():
    template = {"a": "{{x}}", "b": [{"c": "{{y}}"}]}
    assert render(template, {"x": 1, "y": 2}) == {"a": 1, "b": [{"c": 2}]}


def test_rendering_does_not_mutate_template():
    template = {"a": "{{x}}", "b": ["{{x}}"]}
    render(template, {"x": 1})
    assert template == {"a": "{{x}}", "b": ["{{x}}"]}


def test_top_level_list_template():
    assert render(["{{x}}", "literal", 5], {"x": "y"}) == ["y", "literal", 5]


def test_resolve_path_falls_back_to_default():
    assert resolve_path({"a": {}}, "a.b", default="absent") == "absent"
    assert resolve_path({"a": {"b": None}}, "a.b", default="absent") is None
