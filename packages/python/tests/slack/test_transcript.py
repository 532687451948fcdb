"""Tests for flattening Slack blocks into text."""
import pytest

from mcbot.slack.transcript import extract_text_from_blocks, merge_message_text


def _rich_text(*elements):
    return {"type": "rich_text", "elements": list(elements)}


def _section(*elements):
    return {"type": "rich_text_section", "elements": list(elements)}


def test_mention_is_omitted():
    blocks = [
        {
            "type": "rich_text",
            "block_id": "8WioH",
            "elements": [
                {
                    "type": "rich_text_section",
                    "elements": [
                        {"type": "user", "user_id": "U0A68AR27J6"},
                        {"type": "text", "text": "1 + 1"},
                    ],
                }
            ],
        }
    ]
    assert extract_text_from_blocks(blocks) == "1 + 1"


def test_bulleted_list():
    blocks = [_rich_text(
        _section({"type": "text", "text": "Check these:"}),
        {"type": "rich_text_list", "style": "bullet", "elements": [
            _section({"type": "text", "text": "pods"}),
            _section({"type": "text", "text": "deployments"}),
            _section(),
        ]},
    )]
    assert extract_text_from_blocks(blocks) == "Check these:- pods\n- deployments"


def test_links_and_emoji():
    blocks = [_rich_text(_section(
        {"type": "text", "text": "See "},
        {"type": "link", "url": "https://example.com/docs", "text": "docs"},
        {"type": "text", "text": " and "},
        {"type": "link", "url": "https://example.com"},
        {"type": "text", "text": " "},
        {"type": "emoji", "name": "tada"},
    ))]
    assert extract_text_from_blocks(blocks) == "See docs: https://example.com/docs and https://example.com :tada:"


def test_header_section_fields_and_actions():
    blocks = [
        {"type": "header", "text": {"type": "plain_text", "text": "Incident"}},
        {"type": "section", "text": {"type": "mrkdwn", "text": "  *nginx* is down  "}, "fields": [
            {"type": "mrkdwn", "text": "Severity: high"},
            {"type": "mrkdwn", "text": ""},
        ]},
        {"type": "actions", "elements": [
            {"type": "button", "text": {"type": "plain_text", "text": "Open"}, "url": "https://mc.example.com/i/1"},
            {"type": "button", "text": {"type": "plain_text", "text": "Approve"}, "action_id": "tool_approval_approve"},
        ]},
        {"type": "divider"},
        {"type": "context", "elements": [{"type": "mrkdwn", "text": "ignored"}]},
    ]
    assert extract_text_from_blocks(blocks) == "\n".join([
        "Incident",
        "*nginx* is down",
        "Severity: high",
        "Open: https://mc.example.com/i/1",
        "Approve",
    ])


@pytest.mark.parametrize(
    "blocks",
    [
        None,
        "text",
        [],
        [None, 3, "x", {}, {"type": "section"}, {"type": "section", "text": "not a dict"}],
        [{"type": "rich_text", "elements": [None, {"type": "rich_text_list", "elements": [None, 1]}]}],
        [{"type": "actions", "elements": [None, {"type": "button"}]}],
    ],
)
def test_malformed_blocks_give_empty_text(blocks):
    assert extract_text_from_blocks(blocks) == ""


@pytest.mark.parametrize(
    "block_text,base_text,expected",
    [
        ("hello", "hello", "hello"),
        ("hello world", "world", "hello world"),
        ("summary", "details", "summary\n\ndetails"),
        ("", "plain", "plain"),
        ("blocks", "", "blocks"),
        ("", "", ""),
        ("hi", "<@UBOT> hi", "hi"),
        ("ping  now", "<@U2> ping <!here> now", "ping  now"),
        ("hi", "<@UBOT> bye", "hi\n\n<@UBOT> bye"),
    ],
)
def test_merge_message_text(block_text, base_text, expected):
    assert merge_message_text(block_text, base_text) == expected
