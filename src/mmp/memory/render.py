"""Textual renderings of a fetched node (presentation only)."""

import json
from enum import Enum
from xml.sax.saxutils import escape, quoteattr

from mmp.memory.base import MemoryNode


class OutputFormat(Enum):
    JSON = "json"
    XML = "xml"
    TEXT = "text"


def render_json(node: MemoryNode) -> str:
    return json.dumps(node.to_dict(), indent=2, ensure_ascii=False)


def render_xml(node: MemoryNode) -> str:
    lines = [
        f"<node path={quoteattr(node.path)} name={quoteattr(node.name)} "
        f"type={quoteattr(node.type.value)}>"
    ]
    if node.description:
        lines.append(f"  <description>{escape(node.description)}</description>")
    if node.content:
        lines.append(f"  <content>{escape(node.content)}</content>")
    lines.append("</node>")
    return "\n".join(lines)


def render_text(node: MemoryNode) -> str:
    return (
        f"Path: {node.path}\n"
        f"Name: {node.name}\n"
        f"Type: {node.type.value}\n"
        f"Description: {node.description or ''}\n"
        f"Content:\n{node.content or ''}"
    )


def render_node(node: MemoryNode, output_format: OutputFormat | str = OutputFormat.TEXT) -> str:
    output_format = OutputFormat(output_format)
    if output_format == OutputFormat.JSON:
        return render_json(node)
    if output_format == OutputFormat.XML:
        return render_xml(node)
    return render_text(node)
