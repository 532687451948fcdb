"""
Flatten Slack block structures into plain text for the model.
"""
from __future__ import annotations

import re
from typing import Any

MENTION_TOKEN = re.compile(r"<[@!][^>]+>")


def _text_of(obj: Any) -> str:
    if isinstance(obj, dict):
        text = obj.get("text")
        if isinstance(text, str):
            return text
    return ""


def _extract_rich_text(elements: Any) -> str:
    if not isinstance(elements, list):
        return ""

    parts: list[str] = []
    for element in elements:
        if not isinstance(element, dict):
            continue
        kind = element.get("type")
        if kind in ("rich_text_section", "rich_text_quote", "rich_text_preformatted"):
            text = _extract_rich_text(element.get("elements"))
            if text:
                parts.append(text)
        elif kind == "rich_text_list":
            items = []
            for item in element.get("elements") or []:
                if not isinstance(item, dict):
                    continue
                item_text = _extract_rich_text(item.get("elements"))
                if item_text:
                    items.append(f"- {item_text}")
            if items:
                parts.append("\n".join(items))
        elif kind == "text":
            if element.get("text"):
                parts.append(element["text"])
        elif kind == "user":
            # Mentions carry no content for the model
            continue
        elif kind == "link":
            url = element.get("url")
            label = element.get("text")
            if label and url:
                parts.append(f"{label}: {url}")
            elif url:
                parts.append(url)
        elif kind == "emoji":
            if element.get("name"):
                parts.append(f":{element['name']}:")
    return "".join(parts)


def extract_text_from_blocks(blocks: Any) -> str:
    """
    Plain text from a message's blocks: header, section (text and fields), actions
    (control labels, "label: url" for link buttons) and rich_text. Other block types
    are ignored. Never raises; malformed input gives "".
    """
    if not isinstance(blocks, list):
        return ""

    parts: list[str] = []
    for block in blocks:
        if not isinstance(block, dict):
            continue
        kind = block.get("type")
        if kind == "header":
            parts.append(_text_of(block.get("text")))
        elif kind == "section":
            parts.append(_text_of(block.get("text")))
            for field in block.get("fields") or []:
                parts.append(_text_of(field))
        elif kind == "actions":
            for element in block.get("elements") or []:
                if not isinstance(element, dict):
                    continue
                label = _text_of(element.get("text"))
                if label and element.get("url"):
                    parts.append(f"{label}: {element['url']}")
                elif label:
                    parts.append(label)
        elif kind == "rich_text":
            parts.append(_extract_rich_text(block.get("elements")))

    return "\n".join(p.strip() for p in parts if p and p.strip())


def merge_message_text(block_text: str, base_text: str) -> str:
    """
    Combine the block-derived text with the message's plain text field.
    Block text wins when it already contains the plain text. Mention tokens are left out
    of that check since rich text drops mentions.
    """
    if block_text and base_text and block_text != base_text:
        if MENTION_TOKEN.sub("", base_text).strip() in block_text:
            return block_text
        return f"{block_text}\n\n{base_text}"
    return block_text or base_text
