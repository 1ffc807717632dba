"""
Tests for the Mermaid and narrative renderers.
"""

import pytest

from memory_graph.core.graph.context import DomainContext
from memory_graph.core.graph.render import (
    MermaidContentFormat,
    MermaidRenderer,
    NarrativeRenderer,
    escape_quotes,
    truncate,
)
from memory_graph.core.graph.traversal import TraversalEngine
from memory_graph.models import (
    DomainRef,
    MemoryNode,
    ResolutionDepth,
    TraversalResult,
    TraverseMemoriesInput,
)


@pytest.fixture
async def single_domain(sample_context) -> TraversalResult:
    """Traversal a -> {b, d} at depth 1."""

    async def no_domains(domain: str) -> DomainContext | None:
        return None

    return await TraversalEngine().traverse(
        sample_context, TraverseMemoriesInput(start_node_id="a", max_depth=1), no_domains
    )


@pytest.fixture
async def two_domains(sample_context, base_time) -> TraversalResult:
    """Traversal c -> work:w1 through a domain ref."""
    work = DomainContext(
        "work", {"w1": MemoryNode(id="w1", content="Sprint planning", timestamp=base_time)}
    )
    sample_context.nodes["c"].domain_refs = [
        DomainRef(domain="work", node_id="w1", description="planning")
    ]

    async def load(domain: str) -> DomainContext | None:
        return work if domain == "work" else None

    return await TraversalEngine().traverse(
        sample_context, TraverseMemoriesInput(start_node_id="c", max_depth=1), load
    )


@pytest.mark.unit
class TestHelpers:
    """Tests for label helpers."""

    def test_truncate(self):
        assert truncate("short", 10) == "short"
        assert truncate("abcdef", 5) == "ab..."
        assert truncate("abcdef", 5, "~") == "abcd~"

    def test_escape_quotes(self):
        assert escape_quotes('say "hi"') == 'say \\"hi\\"'


@pytest.mark.unit
class TestMermaidRenderer:
    """Tests for Mermaid output."""

    async def test_single_domain(self, single_domain):
        output = MermaidRenderer().render(single_domain)

        assert output.splitlines() == [
            "graph LR",
            '    a["Python is a programming language. It is popular."]',
            '    b["Asyncio brings coroutines to Python"]',
            '    d["Type hints improve readability"]',
            "    a -->|relates_to| b",
            "    b -->|relates_to| a",
            "    a -->|supports| d",
        ]

    async def test_direction(self, single_domain):
        assert MermaidRenderer(direction="TB").render(single_domain).startswith("graph TB")

    async def test_content_format(self, single_domain):
        fmt = MermaidContentFormat(max_length=10, include_id=True, include_timestamp=True)
        output = MermaidRenderer(content_format=fmt).render(single_domain)

        assert '    a["[a] Python ... (2024-01-01 12:00:00 UTC)"]' in output.splitlines()

    def test_content_format_aliases(self):
        fmt = MermaidContentFormat.model_validate({"maxLength": 20, "truncationSuffix": "…"})
        assert fmt.max_length == 20
        assert fmt.truncation_suffix == "…"

    def test_quotes_escaped_in_labels(self, base_time):
        node = MemoryNode(id="q", content='He said "yes"', timestamp=base_time)
        result = TraversalResult(nodes={"general": [node]})

        assert '    q["He said \\"yes\\""]' in MermaidRenderer().render(result).splitlines()

    async def test_multi_domain_qualifies_ids(self, two_domains):
        lines = MermaidRenderer().render(two_domains).splitlines()

        assert '    general__c["Event loops schedule callbacks"]' in lines
        assert '    work__w1["Sprint planning"]' in lines
        assert "    general__b -->|follows| general__c" in lines
        assert "    general__c -.->|planning| work__w1" in lines
        assert "    classDef work stroke-width:2px" in lines
        assert "    class work__w1 work" in lines

    def test_empty_result(self):
        assert MermaidRenderer().render(TraversalResult()) == "graph LR"


@pytest.mark.unit
class TestNarrativeRenderer:
    """Tests for the markdown report."""

    def test_title(self):
        assert NarrativeRenderer.title(MemoryNode(id="x", content="First. Second.")) == "First"
        assert NarrativeRenderer.title(MemoryNode(id="x", content=". odd")) == "Memory x"

    async def test_context_header(self, single_domain):
        lines = NarrativeRenderer().render(single_domain).splitlines()

        assert lines[0] == "# Memory Graph Traversal"
        assert "- Starting Point: a" in lines
        assert "- Traversal Depth: 1" in lines
        assert "- Domains Visited: general" in lines
        assert "- Resolution Depth: standard" in lines
        assert "## Domain: general" in lines

    async def test_standard(self, single_domain):
        lines = NarrativeRenderer().render(single_domain).splitlines()

        assert "### Python is a programming language" in lines
        assert "*Created: 2024-01-01 12:00:00 UTC*" in lines
        assert "#### Incoming Connections" in lines
        assert '- **relates_to** (strength: 0.90) from "Asyncio brings coroutines to Python"' in lines
        assert '- **supports** (strength: 0.60) to "Type hints improve readability"' in lines
        assert not any(line.startswith("*Path:") for line in lines)

    async def test_minimal(self, single_domain):
        lines = NarrativeRenderer(ResolutionDepth.MINIMAL).render(single_domain).splitlines()

        assert "### Memory a" in lines
        assert "*ID: a*" in lines
        assert "- **supports** (strength: 0.60) to Memory d" in lines
        assert not any(line.startswith("*Created:") for line in lines)

    async def test_detailed_adds_path_and_tags(self, single_domain):
        lines = NarrativeRenderer(ResolutionDepth.DETAILED).render(single_domain).splitlines()

        assert "*Path: /lang*" in lines
        assert "*Tags: python, lang*" in lines

    async def test_comprehensive_quotes_content(self, single_domain):
        lines = NarrativeRenderer(ResolutionDepth.COMPREHENSIVE).render(single_domain).splitlines()

        assert '- **supports** (strength: 0.60) to "Type hints improve readability" [d]' in lines
        assert '  *"Type hints improve readability"*' in lines

    async def test_cross_domain_section(self, two_domains):
        lines = NarrativeRenderer().render(two_domains).splitlines()

        assert "## Domain: work" in lines
        assert "#### Cross-Domain Connections" in lines
        assert '- **→ Points to** domain "work" (memory w1): planning' in lines
        assert '- **← Referenced from** domain "general" (memory c): planning' in lines
