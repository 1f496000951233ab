"""Ordered first-match-wins rule lists for field extraction.

A cascade is a list of (pattern, normalizer) rules tried in priority order.
The first rule whose pattern matches *and* whose normalizer returns a value
wins; later, looser rules are never consulted and partial matches are never
combined.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

Normalizer = Callable[[re.Match], str | None]


def first_group(match: re.Match) -> str | None:
    """Default normalizer: the first capture group (or whole match), stripped."""
    value = match.group(1) if match.groups() else match.group(0)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class Rule:
    """One candidate pattern for a field."""

    name: str
    pattern: re.Pattern
    normalize: Normalizer = first_group


def rule(
    name: str, pattern: str, flags: int = 0, normalize: Normalizer = first_group
) -> Rule:
    """Compile a rule."""
    return Rule(name=name, pattern=re.compile(pattern, flags), normalize=normalize)


@dataclass(frozen=True)
class CascadeHit:
    """Value produced by a cascade and the rule that produced it."""

    value: str
    rule_name: str


def run_cascade(rules: Sequence[Rule], text: str) -> CascadeHit | None:
    """Evaluate rules in order and return the first successful value.

    Only the first match of each pattern is considered.
    """
    for candidate in rules:
        match = candidate.pattern.search(text)
        if match is None:
            continue
        value = candidate.normalize(match)
        if value:
            return CascadeHit(value=value, rule_name=candidate.name)
    return None
