"""Atlassian Document Format helpers for issue descriptions."""

from typing import Any, Dict, List, Optional


def _text_paragraph(text: str) -> Dict[str, Any]:
    return {"type": "paragraph", "content": [{"type": "text", "text": text}]}


def build_adf(description: str, acceptance_criteria: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Build a Jira description document.

    The description becomes a paragraph; acceptance criteria become a
    level-3 "Acceptance Criteria" heading followed by a bullet list.
    """
    content: List[Dict[str, Any]] = []

    if description:
        content.append(_text_paragraph(description))

    if acceptance_criteria:
        content.append({
            "type": "heading",
            "attrs": {"level": 3},
            "content": [{"type": "text", "text": "Acceptance Criteria"}]
        })
        content.append({
            "type": "bulletList",
            "content": [
                {"type": "listItem", "content": [_text_paragraph(ac)]}
                for ac in acceptance_criteria
            ]
        })

    return {"version": 1, "type": "doc", "content": content}


def extract_text(doc: Any) -> str:
    """Flatten a document to plain text, text nodes joined by single spaces."""
    if not isinstance(doc, dict) or not doc.get("content"):
        return ""

    texts: List[str] = []

    def walk(node: Any) -> None:
        if not isinstance(node, dict):
            return
        if node.get("type") == "text":
            texts.append(node.get("text") or "")
        for child in node.get("content") or []:
            walk(child)

    walk(doc)
    return " ".join(texts).strip()
