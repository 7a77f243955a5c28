"""Exclusion rules: parsing and matching."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from wcmatch import glob

from .models import ExclusionRule, MatchKind

if TYPE_CHECKING:
    from .formats.base import AccessLine

# "**" matches across "/" and "{a,b}" alternates; "*" also matches leading dots.
_GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.DOTGLOB

# Shorthands that expand to one or more rule strings.
PRESETS: dict[str, tuple[str, ...]] = {
    "static": (
        r"path:re:.*\.(?:js|css|png|jpe?g|gif|ico|svg|webp|avif|woff2?|ttf|otf|eot|map|txt|xml|json|webmanifest)$",
        r"content_type:re:^(text/(css|javascript|plain)|image/|font/|"
        r"application/(json|javascript|xml|octet-stream|font-|manifest))",
    ),
    "redirect": ("status:glob:3??",),
}


def _glob_is_malformed(pattern: str) -> bool:
    """Detect unclosed ``[``/``{`` groups and a dangling trailing escape.

    wcmatch reads these literally instead of rejecting them.
    """
    depth = 0
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            if i + 1 == n:
                return True
            i += 2
            continue
        if c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            # a "]" right after the opener is a member, not the close
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 2 if pattern[j] == "\\" else 1
            if j >= n:
                return True
            i = j + 1
            continue
        if c == "{":
            depth += 1
        elif c == "}" and depth:
            depth -= 1
        i += 1
    return depth > 0


def matches(value: str, rule: ExclusionRule) -> bool:
    """Return True if ``value`` satisfies ``rule`` (after negation).

    A malformed glob never matches, so its negation always does.
    """
    if rule.kind is MatchKind.GLOB:
        m = not _glob_is_malformed(rule.pattern) and glob.globmatch(value, rule.pattern, flags=_GLOB_FLAGS)
    elif rule.kind is MatchKind.REGEX:
        m = rule.regex is not None and rule.regex.search(value) is not None
    else:
        m = rule.pattern in value
    return not m if rule.negate else m


def is_excluded(line: AccessLine, rules: Iterable[ExclusionRule]) -> bool:
    """Return True if any rule matches the field it targets."""
    return any(matches(line.field_value(rule.field), rule) for rule in rules)


def parse_exclude(spec: str) -> ExclusionRule:
    """Parse one ``[!]field:[glob:|re:]pattern`` rule string."""
    negate = spec.startswith("!")
    body = spec[1:] if negate else spec

    name, sep, pattern = body.partition(":")
    if not sep or not pattern:
        raise ValueError(f"no pattern in exclude rule {spec!r}")

    kind = MatchKind.SUBSTRING
    if pattern.startswith("glob:"):
        kind, pattern = MatchKind.GLOB, pattern[len("glob:") :]
    elif pattern.startswith("re:"):
        kind, pattern = MatchKind.REGEX, pattern[len("re:") :]

    return ExclusionRule(field=name, pattern=pattern, kind=kind, negate=negate)


def parse_excludes(specs: Sequence[str]) -> list[ExclusionRule]:
    """Expand presets and parse every rule string, keeping list order."""
    rules: list[ExclusionRule] = []
    for spec in specs:
        spec = spec.strip()
        if not spec:
            continue
        for expanded in PRESETS.get(spec, (spec,)):
            rules.append(parse_exclude(expanded))
    return rules
