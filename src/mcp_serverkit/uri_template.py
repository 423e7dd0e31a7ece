"""
URI template matching for resource addressing.

A template such as ``user://{user_id}/profile`` is parsed once into alternating
literal and parameter segments. Each ``{name}`` parameter captures one or more
characters other than ``/``; every other character, including braces that do
not enclose a word, is literal text. Matching is anchored to the whole URI and
case-sensitive.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union

from mcp_serverkit.errors import UriNotMatchedError

_PARAMETER_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class LiteralSegment:
    """Literal text matched character for character."""

    text: str


@dataclass(frozen=True)
class ParameterSegment:
    """A named placeholder capturing one or more non-``/`` characters."""

    name: str


Segment = Union[LiteralSegment, ParameterSegment]


def parse_template(template: str) -> list[Segment]:
    """
    Split a template into literal and parameter segments.

    Raises:
        ValueError: If a parameter name appears more than once.

    Example:
        >>> parse_template("user://{user_id}/profile")
        [LiteralSegment(text='user://'), ParameterSegment(name='user_id'), LiteralSegment(text='/profile')]
    """
    segments: list[Segment] = []
    seen: set[str] = set()
    position = 0
    for found in _PARAMETER_RE.finditer(template):
        if found.start() > position:
            segments.append(LiteralSegment(template[position : found.start()]))
        name = found.group(1)
        if name in seen:
            raise ValueError(
                f"Duplicate parameter '{name}' in URI template '{template}'"
            )
        seen.add(name)
        segments.append(ParameterSegment(name))
        position = found.end()
    if position < len(template):
        segments.append(LiteralSegment(template[position:]))
    return segments


class UriTemplate:
    """
    A compiled URI template.

    Attributes:
        template: The original template string.
        segments: Parsed literal/parameter segments.

    Example:
        >>> UriTemplate("user://{user_id}/profile").match("user://42/profile")
        {'user_id': '42'}
    """

    def __init__(self, template: str) -> None:
        self.template = template
        self.segments = parse_template(template)
        self._names = [
            segment.name
            for segment in self.segments
            if isinstance(segment, ParameterSegment)
        ]
        self._pattern = re.compile(
            "".join(
                "([^/]+)"
                if isinstance(segment, ParameterSegment)
                else re.escape(segment.text)
                for segment in self.segments
            )
        )

    @property
    def parameter_names(self) -> list[str]:
        """Names of the template's parameters, in order of appearance."""
        return list(self._names)

    @property
    def is_static(self) -> bool:
        """True when the template has no parameters."""
        return not self._names

    def match(self, uri: str) -> dict[str, str] | None:
        """
        Match a concrete URI against the template.

        Returns:
            Mapping of parameter name to captured text, or None if the URI
            does not match.
        """
        found = self._pattern.fullmatch(uri)
        if found is None:
            return None
        return dict(zip(self._names, found.groups()))

    def expand(self, params: Mapping[str, str]) -> str:
        """
        Substitute parameter values into the template.

        Raises:
            KeyError: If a parameter value is missing.
        """
        return "".join(
            str(params[segment.name])
            if isinstance(segment, ParameterSegment)
            else segment.text
            for segment in self.segments
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UriTemplate):
            return NotImplemented
        return self.template == other.template

    def __hash__(self) -> int:
        return hash(self.template)

    def __repr__(self) -> str:
        return f"UriTemplate({self.template!r})"


def match_uri(template: str | UriTemplate, uri: str) -> dict[str, str]:
    """
    Match ``uri`` against ``template`` and return the extracted parameters.

    Raises:
        UriNotMatchedError: If the URI does not match the template.
    """
    compiled = template if isinstance(template, UriTemplate) else UriTemplate(template)
    params = compiled.match(uri)
    if params is None:
        raise UriNotMatchedError(compiled.template, uri)
    return params
