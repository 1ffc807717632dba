"""
Renderers for traversal results.

- MermaidRenderer: Mermaid ``graph`` source
- NarrativeRenderer: markdown report at a chosen resolution depth
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from memory_graph.models.memory import MemoryNode
from memory_graph.models.relationships import type_value
from memory_graph.models.traversal import ResolutionDepth, TraversalResult, TraversedEdge

MermaidDirection = Literal["TB", "BT", "LR", "RL"]


class MermaidContentFormat(BaseModel):
    """How node labels are rendered."""

    model_config = ConfigDict(populate_by_name=True)

    max_length: int = Field(default=50, ge=4, alias="maxLength")
    truncation_suffix: str = Field(default="...", alias="truncationSuffix")
    include_timestamp: bool = Field(default=False, alias="includeTimestamp")
    include_id: bool = Field(default=False, alias="includeId")


def truncate(text: str, max_length: int = 50, suffix: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - len(suffix)] + suffix


def escape_quotes(text: str) -> str:
    return text.replace('"', '\\"')


class MermaidRenderer:
    """
    Render a traversal as a Mermaid flowchart.

    Node ids are qualified with their domain when more than one domain is
    present, since ids are only unique within a domain.
    """

    def __init__(
        self,
        direction: MermaidDirection = "LR",
        content_format: MermaidContentFormat | None = None,
    ):
        self.direction = direction
        self.content_format = content_format or MermaidContentFormat()

    def render(self, result: TraversalResult) -> str:
        qualify = len(result.nodes) > 1
        lines = [f"graph {self.direction}"]

        for domain, nodes in result.nodes.items():
            for node in nodes:
                node_id = self._node_id(domain, node.id, qualify)
                lines.append(f'    {node_id}["{escape_quotes(self._label(node))}"]')

        for edge in result.edges:
            source = self._node_id(edge.domain, edge.source, qualify)
            target = self._node_id(edge.domain, edge.target, qualify)
            lines.append(f"    {source} -->|{escape_quotes(type_value(edge.type))}| {target}")

        for connection in result.cross_domain_connections:
            if result.find_node(connection.to_domain, connection.to_node_id) is None:
                continue
            source = self._node_id(connection.from_domain, connection.from_node_id, qualify)
            target = self._node_id(connection.to_domain, connection.to_node_id, qualify)
            label = escape_quotes(connection.description or "domain ref")
            lines.append(f"    {source} -.->|{label}| {target}")

        if qualify:
            for domain, nodes in result.nodes.items():
                members = ",".join(self._node_id(domain, node.id, True) for node in nodes)
                lines.append(f"    classDef {domain} stroke-width:2px")
                lines.append(f"    class {members} {domain}")

        return "\n".join(lines)

    @staticmethod
    def _node_id(domain: str, node_id: str, qualify: bool) -> str:
        return f"{domain}__{node_id}" if qualify else node_id

    def _label(self, node: MemoryNode) -> str:
        fmt = self.content_format
        parts = []
        if fmt.include_id:
            parts.append(f"[{node.id}]")
        parts.append(truncate(node.content, fmt.max_length, fmt.truncation_suffix))
        if fmt.include_timestamp:
            parts.append(f"({node.timestamp:%Y-%m-%d %H:%M:%S} UTC)")
        return " ".join(parts)


class NarrativeRenderer:
    """Render a traversal as a markdown report."""

    def __init__(self, resolution: ResolutionDepth = ResolutionDepth.STANDARD):
        self.resolution = resolution

    @staticmethod
    def title(node: MemoryNode) -> str:
        """First sentence of the content, or a generic title."""
        return node.content.split(".")[0].strip() or f"Memory {node.id}"

    def render(self, result: TraversalResult) -> str:
        ctx = result.context
        out = ["# Memory Graph Traversal", ""]
        out += [
            "## Context",
            "",
            f"- Starting Point: {ctx.starting_point}",
            f"- Traversal Depth: {ctx.depth}",
            f"- Domains Visited: {', '.join(ctx.domains)}",
            f"- Resolution Depth: {self.resolution.value}",
            "",
        ]

        for domain, nodes in result.nodes.items():
            out += [f"## Domain: {domain}", ""]
            domain_edges = [edge for edge in result.edges if edge.domain == domain]
            for node in nodes:
                out += self._node_section(domain, node, domain_edges, result)

        return "\n".join(out)

    def _node_section(
        self,
        domain: str,
        node: MemoryNode,
        edges: list[TraversedEdge],
        result: TraversalResult,
    ) -> list[str]:
        minimal = self.resolution == ResolutionDepth.MINIMAL
        out = [f"### Memory {node.id}" if minimal else f"### {self.title(node)}", ""]

        if minimal:
            out += [f"*ID: {node.id}*", ""]
        else:
            out += [node.content, "", f"*Created: {node.timestamp:%Y-%m-%d %H:%M:%S} UTC*"]
            if self.resolution != ResolutionDepth.STANDARD:
                if node.path:
                    out.append(f"*Path: {node.path}*")
                if node.tags:
                    out.append(f"*Tags: {', '.join(node.tags)}*")

        incoming = [edge for edge in edges if edge.target == node.id]
        outgoing = [edge for edge in edges if edge.source == node.id]
        if incoming:
            out += ["", "#### Incoming Connections", ""]
            for edge in incoming:
                other = result.find_node(domain, edge.source)
                if other is not None:
                    out += self._connection_line(edge, "from", other)
        if outgoing:
            out += ["", "#### Outgoing Connections", ""]
            for edge in outgoing:
                other = result.find_node(domain, edge.target)
                if other is not None:
                    out += self._connection_line(edge, "to", other)

        pointing = [
            c
            for c in result.cross_domain_connections
            if c.from_domain == domain and c.from_node_id == node.id
        ]
        referenced = [
            c
            for c in result.cross_domain_connections
            if c.to_domain == domain and c.to_node_id == node.id
        ]
        if pointing or referenced:
            out += ["", "#### Cross-Domain Connections", ""]
            for c in pointing:
                line = f'- **→ Points to** domain "{c.to_domain}" (memory {c.to_node_id})'
                out.append(f"{line}: {c.description}" if c.description else line)
            for c in referenced:
                line = f'- **← Referenced from** domain "{c.from_domain}" (memory {c.from_node_id})'
                out.append(f"{line}: {c.description}" if c.description else line)
            out.append("")

        out += ["---", ""]
        return out

    def _connection_line(self, edge: TraversedEdge, direction: str, other: MemoryNode) -> list[str]:
        head = f"- **{type_value(edge.type)}** (strength: {edge.strength:.2f}) {direction}"
        if self.resolution == ResolutionDepth.MINIMAL:
            return [f"{head} Memory {other.id}", ""]
        if self.resolution in (ResolutionDepth.STANDARD, ResolutionDepth.DETAILED):
            return [f'{head} "{self.title(other)}"', ""]
        return [
            f'{head} "{self.title(other)}" [{other.id}]',
            f'  *"{truncate(other.content, 103)}"*',
            "",
        ]
