from __future__ import annotations

import pytest

from access_log_normalizer.core.exclude import is_excluded, matches, parse_exclude, parse_excludes
from access_log_normalizer.core.formats import FieldMap
from access_log_normalizer.core.models import ExclusionRule, Field, MatchKind


def _rule(field: str, pattern: str, kind: MatchKind = MatchKind.SUBSTRING, negate: bool = False) -> ExclusionRule:
    return ExclusionRule(field=field, pattern=pattern, kind=kind, negate=negate)


def test_substring() -> None:
    rule = _rule("path", "/admin")
    assert matches("/admin/users", rule)
    assert matches("/x/admin", rule)
    assert not matches("/adm", rule)


def test_empty_substring_matches_everything() -> None:
    rule = _rule("path", "")
    assert matches("", rule)
    assert matches("/anything", rule)


@pytest.mark.parametrize(
    ("pattern", "value", "expected"),
    [
        ("**.example.com", "a.b.example.com", True),
        ("**.example.com", "example.org", False),
        ("/static/**", "/static/css/site.css", True),
        ("/static/*", "/static/css/site.css", False),
        ("*.{js,css}", "app.css", True),
        ("*.{js,css}", "app.png", False),
        ("{GET,HEAD}", "HEAD", True),
        ("3??", "301", True),
        ("3??", "200", False),
        ("*", ".hidden", True),
    ],
)
def test_glob(pattern: str, value: str, expected: bool) -> None:
    assert matches(value, _rule("path", pattern, MatchKind.GLOB)) is expected


@pytest.mark.parametrize("pattern", ["[", "[a", "[]", "a[", "{a,b", "{a,{b,c}", "a\\"])
def test_malformed_glob_is_a_non_match(pattern: str) -> None:
    assert matches(pattern, _rule("path", pattern, MatchKind.GLOB)) is False
    assert matches("a", _rule("path", pattern, MatchKind.GLOB)) is False


def test_negated_malformed_glob_drops_the_record() -> None:
    line = FieldMap(values={"path": "["})
    assert is_excluded(line, [_rule("path", "[", MatchKind.GLOB, negate=True)])


@pytest.mark.parametrize(
    ("pattern", "value"),
    [("[]]", "]"), ("[!a]", "b"), ("\\[x", "[x")],
)
def test_closed_or_escaped_brackets_still_match(pattern: str, value: str) -> None:
    assert matches(value, _rule("path", pattern, MatchKind.GLOB))


def test_regex_searches_anywhere() -> None:
    rule = _rule("user_agent", r"\bbot\b", MatchKind.REGEX)
    assert matches("Mozilla/5.0 (compatible; Googlebot/2.1)", rule) is False
    assert matches("some bot here", rule)
    assert matches("bot", rule)


def test_negation_flips_result() -> None:
    rule = _rule("user_agent", "bot", negate=True)
    assert matches("Mozilla/5.0", rule)
    assert not matches("Googlebot", rule)


def test_is_excluded_is_an_or_over_rules() -> None:
    line = FieldMap(values={"host": "example.org", "path": "/favicon.ico"})
    rules = [_rule("host", "example.com"), _rule("path", r"\.ico$", MatchKind.REGEX)]
    assert is_excluded(line, rules)
    assert not is_excluded(line, rules[:1])
    assert not is_excluded(line, [])


def test_rule_validates_field() -> None:
    with pytest.raises(ValueError, match="invalid field"):
        _rule("nope", "x")
    assert _rule("xff", "x").field is Field.XFF


def test_rule_compiles_regex_once() -> None:
    rule = _rule("path", "^/a", MatchKind.REGEX)
    assert rule.regex is not None
    assert rule.regex.pattern == "^/a"
    with pytest.raises(ValueError, match="invalid regular expression"):
        _rule("path", "(", MatchKind.REGEX)


@pytest.mark.parametrize(
    ("spec", "field", "kind", "pattern", "negate"),
    [
        ("path:/admin", Field.PATH, MatchKind.SUBSTRING, "/admin", False),
        ("!host:glob:*.example.com", Field.HOST, MatchKind.GLOB, "*.example.com", True),
        ("user_agent:re:bot|crawler", Field.USER_AGENT, MatchKind.REGEX, "bot|crawler", False),
        ("query:a:b", Field.QUERY, MatchKind.SUBSTRING, "a:b", False),
    ],
)
def test_parse_exclude(spec: str, field: Field, kind: MatchKind, pattern: str, negate: bool) -> None:
    rule = parse_exclude(spec)
    assert (rule.field, rule.kind, rule.pattern, rule.negate) == (field, kind, pattern, negate)


@pytest.mark.parametrize("spec", ["host", "host:", "!path:", "timing:1", "path:re:("])
def test_parse_exclude_rejects(spec: str) -> None:
    with pytest.raises(ValueError):
        parse_exclude(spec)


def test_parse_excludes_expands_presets_in_order() -> None:
    rules = parse_excludes(["host:a", "static", " ", "redirect"])
    assert [r.field for r in rules] == [Field.HOST, Field.PATH, Field.CONTENT_TYPE, Field.STATUS]

    static_path = rules[1]
    assert matches("/assets/app.min.js", static_path)
    assert not matches("/index.html", static_path)
    assert matches("image/png", rules[2])
    assert matches("302", rules[3])
