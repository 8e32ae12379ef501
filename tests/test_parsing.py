"""Tests for spec_debate/parsing.py."""

import json
import logging

from spec_debate.models import IssueSeverity, Persona, Verdict
from spec_debate.parsing import PARSE_FAILURE_SUMMARY, parse_critique, strip_fence


def test_approve_without_issues():
    raw = json.dumps({"verdict": "approve", "summary": "Ready.", "issues": []})
    parsed = parse_critique(raw, Persona.SECURITY)
    assert parsed.verdict is Verdict.APPROVE
    assert parsed.summary == "Ready."
    assert parsed.issues == []
    assert parsed.raw_response == raw


def test_full_issue_fields():
    raw = json.dumps({
        "verdict": "reject",
        "summary": "Unsafe.",
        "issues": [{
            "severity": "critical",
            "title": "Tokens in logs",
            "description": "Access tokens are logged verbatim.",
            "section": "Logging",
            "suggestion": "Redact tokens.",
        }],
    })
    parsed = parse_critique(raw, Persona.SECURITY)
    assert parsed.verdict is Verdict.REJECT
    issue = parsed.issues[0]
    assert issue.severity is IssueSeverity.CRITICAL
    assert issue.title == "Tokens in logs"
    assert issue.section == "Logging"
    assert issue.suggestion == "Redact tokens."


def test_json_inside_code_fence():
    raw = 'Here you go:\n```json\n{"verdict": "approve", "summary": "ok", "issues": []}\n```\nThanks!'
    parsed = parse_critique(raw, Persona.QA)
    assert parsed.verdict is Verdict.APPROVE
    assert parsed.raw_response == raw


def test_unlabelled_code_fence():
    raw = '```\n{"verdict": "needs-changes", "summary": "meh", "issues": []}\n```'
    assert parse_critique(raw, Persona.QA).verdict is Verdict.NEEDS_CHANGES


def test_invalid_verdict_defaults_to_needs_changes():
    raw = json.dumps({"verdict": "LGTM", "summary": "s", "issues": []})
    assert parse_critique(raw, Persona.PM).verdict is Verdict.NEEDS_CHANGES


def test_missing_verdict_defaults_to_needs_changes():
    raw = json.dumps({"summary": "s"})
    parsed = parse_critique(raw, Persona.PM)
    assert parsed.verdict is Verdict.NEEDS_CHANGES
    assert parsed.issues == []


def test_invalid_severity_defaults_to_minor():
    raw = json.dumps({"verdict": "approve", "issues": [{"severity": "blocker", "title": "t", "description": "d"}]})
    assert parse_critique(raw, Persona.PM).issues[0].severity is IssueSeverity.MINOR


def test_missing_text_fields_get_placeholders():
    raw = json.dumps({"verdict": "approve", "issues": [{"severity": "major"}]})
    parsed = parse_critique(raw, Persona.ONCALL)
    assert parsed.summary == "No summary provided"
    assert parsed.issues[0].title == "Untitled issue"
    assert parsed.issues[0].description == ""
    assert parsed.issues[0].section is None


def test_undecodable_response_is_major_parse_error(caplog):
    raw = "The spec looks great to me!"
    with caplog.at_level(logging.WARNING):
        parsed = parse_critique(raw, Persona.PERFORMANCE)
    assert parsed.verdict is Verdict.NEEDS_CHANGES
    assert parsed.summary == PARSE_FAILURE_SUMMARY
    assert len(parsed.issues) == 1
    assert parsed.issues[0].severity is IssueSeverity.MAJOR
    assert parsed.issues[0].title == "Parse Error"
    assert "Could not parse agent response" in parsed.issues[0].description
    assert parsed.raw_response == raw
    assert any("performance" in msg for msg in caplog.messages)


def test_json_array_is_parse_error():
    parsed = parse_critique("[1, 2, 3]", Persona.QA)
    assert parsed.issues[0].title == "Parse Error"
    assert "list" in parsed.issues[0].description


def test_issues_not_a_list_is_parse_error():
    parsed = parse_critique(json.dumps({"verdict": "approve", "issues": "none"}), Persona.QA)
    assert parsed.summary == PARSE_FAILURE_SUMMARY


def test_empty_response_is_parse_error():
    assert parse_critique("", Persona.QA).issues[0].title == "Parse Error"


def test_strip_fence_without_fence_trims():
    assert strip_fence("  plain text \n") == "plain text"


def test_unfenced_json_quoting_a_fence_parses_whole():
    raw = json.dumps({
        "verdict": "approve",
        "summary": "Fine.",
        "issues": [{
            "severity": "suggestion",
            "title": "Config example",
            "description": "Add an example like ```yaml\nkey: v\n``` to the docs.",
        }],
    })
    parsed = parse_critique(raw, Persona.QA)
    assert parsed.verdict is Verdict.APPROVE
    assert parsed.issues[0].title == "Config example"
    assert "```yaml" in parsed.issues[0].description


def test_fenced_json_quoting_a_fence_keeps_full_payload():
    body = json.dumps({"verdict": "approve", "summary": "Ask authors to use ```sql``` blocks.", "issues": []})
    parsed = parse_critique(f"```json\n{body}\n```", Persona.QA)
    assert parsed.verdict is Verdict.APPROVE
    assert parsed.summary == "Ask authors to use ```sql``` blocks."


def test_deeply_nested_payload_is_parse_error():
    raw = "[" * 100000 + "]" * 100000
    parsed = parse_critique(raw, Persona.QA)
    assert parsed.summary == PARSE_FAILURE_SUMMARY
    assert parsed.issues[0].title == "Parse Error"


def test_strip_fence_unwraps_only_enclosing_block():
    assert strip_fence("```json\n{}\n```") == "{}"
    embedded = "Intro\n\n```python\nx = 1\n```\n\nOutro"
    assert strip_fence(embedded) == embedded
