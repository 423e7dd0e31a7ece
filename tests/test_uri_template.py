"""
Tests for URI template matching.

This test module validates:
- Template parsing into literal and parameter segments
- Anchored, case-sensitive matching with one-segment parameters
- Regex metacharacters in literal text
- Expansion and the raising match_uri helper
"""

from __future__ import annotations

import pytest

from mcp_serverkit.errors import UriNotMatchedError
from mcp_serverkit.uri_template import (
    LiteralSegment,
    ParameterSegment,
    UriTemplate,
    match_uri,
    parse_template,
)


class TestParseTemplate:
    """Tests for parse_template."""

    def test_segments(self) -> None:
        """Test alternating literal and parameter segments."""
        assert parse_template("user://{user_id}/profile") == [
            LiteralSegment("user://"),
            ParameterSegment("user_id"),
            LiteralSegment("/profile"),
        ]

    def test_static(self) -> None:
        """Test a template without parameters."""
        assert parse_template("config://app") == [LiteralSegment("config://app")]

    def test_stray_braces_are_literal(self) -> None:
        """Test that braces not enclosing a word stay literal."""
        assert parse_template("x://{}/{a-b}") == [LiteralSegment("x://{}/{a-b}")]

    def test_duplicate_names(self) -> None:
        """Test that repeated parameter names are rejected."""
        with pytest.raises(ValueError, match="Duplicate parameter"):
            parse_template("a://{id}/{id}")


class TestUriTemplate:
    """Tests for UriTemplate matching."""

    def test_match(self) -> None:
        """Test parameter extraction."""
        template = UriTemplate("user://{user_id}/profile")

        assert template.match("user://42/profile") == {"user_id": "42"}

    def test_multiple_parameters(self) -> None:
        """Test several parameters in one template."""
        template = UriTemplate("repo://{owner}/{name}")

        assert template.match("repo://acme/widgets") == {
            "owner": "acme",
            "name": "widgets",
        }
        assert template.parameter_names == ["owner", "name"]

    def test_parameter_does_not_span_slash(self) -> None:
        """Test that a parameter captures a single path segment."""
        template = UriTemplate("file://{path}")

        assert template.match("file://a/b") is None

    def test_parameter_requires_text(self) -> None:
        """Test that an empty parameter does not match."""
        assert UriTemplate("user://{id}/profile").match("user:///profile") is None

    def test_anchored(self) -> None:
        """Test that prefixes and suffixes do not match."""
        template = UriTemplate("user://{id}")

        assert template.match("xuser://1") is None
        assert template.match("order://99") is None

    def test_case_sensitive(self) -> None:
        """Test that literal text is case-sensitive."""
        assert UriTemplate("user://{id}").match("USER://1") is None

    def test_literal_metacharacters(self) -> None:
        """Test that regex metacharacters in literals are matched literally."""
        template = UriTemplate("calc://{a}+{b}.txt")

        assert template.match("calc://1+2.txt") == {"a": "1", "b": "2"}
        assert template.match("calc://1+2xtxt") is None

    def test_static_template(self) -> None:
        """Test static templates."""
        template = UriTemplate("config://app")

        assert template.is_static
        assert template.match("config://app") == {}

    def test_expand(self) -> None:
        """Test substitution of parameter values."""
        template = UriTemplate("user://{user_id}/profile")

        assert template.expand({"user_id": "7"}) == "user://7/profile"

    def test_equality(self) -> None:
        """Test equality and hashing by template string."""
        assert UriTemplate("a://{x}") == UriTemplate("a://{x}")
        assert len({UriTemplate("a://{x}"), UriTemplate("a://{x}")}) == 1


class TestMatchUri:
    """Tests for match_uri."""

    def test_match(self) -> None:
        """Test the string template form."""
        assert match_uri("user://{user_id}/profile", "user://42/profile") == {
            "user_id": "42"
        }

    def test_no_match_raises(self) -> None:
        """Test that a miss raises uri_not_matched."""
        with pytest.raises(UriNotMatchedError) as exc_info:
            match_uri("user://{user_id}/profile", "order://99")

        assert exc_info.value.kind == "uri_not_matched"
        assert exc_info.value.details["uri"] == "order://99"
