"""
Flow diagrams embedded in SKILL.md.

A flow skill describes its steps as a mermaid flowchart inside a fenced
code block of the skill body:

    ```mermaid
    flowchart TD
    BEGIN([BEGIN]) --> A[Collect inputs]
    A --> B{Valid?}
    B -->|yes| END([END])
    B -->|no| A
    ```

This module only finds and parses that block into a graph. It checks that
the graph has a single BEGIN node leading somewhere and at least one END
node; anything deeper belongs to whatever executes the flow.
"""

from __future__ import annotations

import collections as _collections
import dataclasses as _dataclasses
import enum as _enum
import logging as _logging
import re as _re

import skald.constants as constants

_logger = _logging.getLogger(__name__)

# Opening code fence: up to 3 spaces of indent, then ``` or ~~~ (3 or more)
_FENCE_RE = _re.compile(r"^ {0,3}(?P<fence>`{3,}|~{3,})(?P<info>.*)$")

# Flowchart header line ("flowchart TD", "graph LR", ...)
_HEADER_RE = _re.compile(r"^(?:flowchart|graph)\b", _re.IGNORECASE)

_NODE_ID_RE = _re.compile(r"\w+")

# Class assignment suffix on a node reference: A:::highlight
_CLASS_SUFFIX_RE = _re.compile(r":::[\w-]+")

_GROUP_SEPARATOR_RE = _re.compile(r"\s*&\s*")

# Link between two node groups. Either an operator with an optional
# |label| (A -->|yes| B) or a label written inside the link (A -- yes --> B).
_LINK_RE = _re.compile(
    r"""
    \s*
    (?:
        (?:--|==|-\.)\s+(?P<inline_label>[^|]+?)\s+(?:-{2,}>|={2,}>|\.+->|-{3,}|={3,})
      |
        <?(?:-{2,}[>xo]|={2,}[>xo]|-\.+-[>xo]?|-{3,}|={3,})
        (?:\s*\|(?P<pipe_label>[^|]*)\|)?
    )
    \s*
    """,
    _re.VERBOSE,
)

# Node shapes as (opener, closer, name). Longer openers come first so that
# "([" is not read as "(".
_SHAPES: tuple[tuple[str, str, str], ...] = (
    ("(((", ")))", "double-circle"),
    ("([", "])", "stadium"),
    ("((", "))", "circle"),
    ("[[", "]]", "subroutine"),
    ("[(", ")]", "cylinder"),
    ("{{", "}}", "hexagon"),
    ("[", "]", "rect"),
    ("(", ")", "round"),
    ("{", "}", "rhombus"),
    (">", "]", "asymmetric"),
)

# Statements that carry styling or layout only (keywords are case-sensitive)
_IGNORED_KEYWORDS = frozenset(
    {"classDef", "class", "style", "linkStyle", "click", "direction"}
)

_OPENING_BRACKETS = "[({"
_CLOSING_BRACKETS = "])}"


class FlowParseError(ValueError):
    """Raised when a flow diagram is not a usable flow."""


class FlowNodeKind(_enum.Enum):
    """Role of a node within a flow."""

    BEGIN = "begin"
    """The single entry node."""

    END = "end"
    """A terminal node."""

    TASK = "task"
    """A step with at most one way out."""

    DECISION = "decision"
    """A step with several ways out."""


@_dataclasses.dataclass(frozen=True)
class FlowNode:
    """A node declared or referenced in the flowchart."""

    id: str
    """Node identifier, case-sensitive."""

    label: str
    """Display text; the id when the node was never given a label."""

    shape: str | None = None
    """Mermaid shape name ("rect", "stadium", ...), None if never declared."""

    kind: FlowNodeKind = FlowNodeKind.TASK
    """Role of the node within the flow."""


@_dataclasses.dataclass(frozen=True)
class FlowEdge:
    """A directed link between two nodes."""

    source: str
    target: str
    label: str | None = None


@_dataclasses.dataclass(frozen=True)
class FlowGraph:
    """
    Nodes and edges of a flowchart.

    Edges form a multigraph: a link written twice is kept twice.
    """

    nodes: dict[str, FlowNode] = _dataclasses.field(hash=False)
    edges: tuple[FlowEdge, ...] = ()

    def outgoing(self, node_id: str) -> list[FlowEdge]:
        """Get the edges leaving a node, in declaration order."""
        return [edge for edge in self.edges if edge.source == node_id]

    def successors(self, node_id: str) -> list[str]:
        """Get the distinct targets of a node's outgoing edges."""
        return list(dict.fromkeys(edge.target for edge in self.outgoing(node_id)))

    def reachable_from(self, node_id: str) -> set[str]:
        """Get every node reachable from ``node_id`` by following edges."""
        seen: set[str] = set()
        queue = _collections.deque(self.successors(node_id))
        while queue:
            current = queue.popleft()
            if current in seen:
                continue
            seen.add(current)
            queue.extend(self.successors(current))
        return seen

    @property
    def end_ids(self) -> list[str]:
        """Ids of all END nodes."""
        return [n.id for n in self.nodes.values() if n.kind is FlowNodeKind.END]


@_dataclasses.dataclass(frozen=True)
class FlowDefinition:
    """A parsed flow: its graph and where execution starts."""

    begin_id: str
    graph: FlowGraph

    @property
    def begin_node(self) -> FlowNode:
        """The BEGIN node."""
        return self.graph.nodes[self.begin_id]


@_dataclasses.dataclass
class _NodeRef:
    id: str
    label: str | None = None
    shape: str | None = None


def find_flow_block(body: str) -> str | None:
    """
    Find the first mermaid code block in a markdown body.

    Fenced blocks of any other language are skipped whole, so a mermaid
    fence quoted inside another block is not picked up.

    Args:
        body: Markdown text.

    Returns:
        Content of the block (without fences), or None if there is none.
    """
    lines = body.splitlines()
    i = 0
    while i < len(lines):
        match = _FENCE_RE.match(lines[i])
        i += 1
        if not match:
            continue

        fence = match.group("fence")
        info = match.group("info").strip()
        if fence[0] == "`" and "`" in info:
            # Not a fence, inline code at the start of a line
            continue

        language = info.split()[0].lower() if info else ""
        content: list[str] = []
        while i < len(lines):
            stripped = lines[i].strip()
            i += 1
            if stripped.startswith(fence) and stripped == fence[0] * len(stripped):
                break
            content.append(lines[i - 1])

        if language == constants.FLOW_FENCE_LANGUAGE:
            return "\n".join(content)

    return None


def _strip_quotes(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text


def _split_statements(line: str) -> list[str]:
    """
    Split a line on ``;`` separators.

    A ``;`` inside a node shape, a quoted label or a ``|link label|`` is
    part of the label, not a separator.
    """
    statements: list[str] = []
    start = 0
    depth = 0
    quote: str | None = None
    for index, char in enumerate(line):
        if quote is not None:
            if char == quote:
                quote = None
        elif char in "\"|":
            quote = char
        elif char in _OPENING_BRACKETS:
            depth += 1
        elif char in _CLOSING_BRACKETS:
            # ">x]" closes a shape it never opened
            depth = max(depth - 1, 0)
        elif char == ";" and depth == 0:
            statements.append(line[start:index])
            start = index + 1
    statements.append(line[start:])
    return statements


def _parse_node(statement: str, pos: int) -> tuple[_NodeRef, int] | None:
    """Parse one node reference (id plus optional shape) at ``pos``."""
    while pos < len(statement) and statement[pos].isspace():
        pos += 1

    match = _NODE_ID_RE.match(statement, pos)
    if not match:
        return None

    node = _NodeRef(id=match.group())
    pos = match.end()

    for opener, closer, shape in _SHAPES:
        if not statement.startswith(opener, pos):
            continue
        label_start = pos + len(opener)
        if statement.startswith('"', label_start):
            quote_end = statement.find('"', label_start + 1)
            if quote_end == -1:
                return None
            close_at = statement.find(closer, quote_end + 1)
        else:
            close_at = statement.find(closer, label_start)
        if close_at == -1:
            return None
        node.label = _strip_quotes(statement[label_start:close_at])
        node.shape = shape
        pos = close_at + len(closer)
        break

    suffix = _CLASS_SUFFIX_RE.match(statement, pos)
    if suffix:
        pos = suffix.end()

    return node, pos


def _parse_group(statement: str, pos: int) -> tuple[list[_NodeRef], int] | None:
    """Parse ``A & B & C`` at ``pos``."""
    parsed = _parse_node(statement, pos)
    if parsed is None:
        return None
    node, pos = parsed
    group = [node]

    while True:
        separator = _GROUP_SEPARATOR_RE.match(statement, pos)
        if not separator or separator.end() == pos:
            break
        parsed = _parse_node(statement, separator.end())
        if parsed is None:
            return None
        node, pos = parsed
        group.append(node)

    return group, pos


def _parse_statement(
    statement: str,
) -> tuple[list[_NodeRef], list[FlowEdge]] | None:
    """
    Parse a node declaration or a chain of links.

    Returns the node references and edges found, or None if any part of
    the statement cannot be read.
    """
    parsed = _parse_group(statement, 0)
    if parsed is None:
        return None
    group, pos = parsed

    refs = list(group)
    edges: list[FlowEdge] = []
    while pos < len(statement):
        link = _LINK_RE.match(statement, pos)
        if not link or link.end() == pos:
            break
        label = link.group("inline_label") or link.group("pipe_label")
        label = _strip_quotes(label) if label and label.strip() else None

        parsed = _parse_group(statement, link.end())
        if parsed is None:
            return None
        targets, pos = parsed

        for source in group:
            for target in targets:
                edges.append(FlowEdge(source=source.id, target=target.id, label=label))
        refs.extend(targets)
        group = targets

    if statement[pos:].strip():
        return None
    return refs, edges


def _is_marker(node_id: str, label: str, marker: str) -> bool:
    marker = marker.casefold()
    return node_id.casefold() == marker or label.strip().casefold() == marker


def parse_flowchart(source: str) -> FlowDefinition:
    """
    Parse mermaid flowchart source into a flow.

    Lines that cannot be read are skipped. A shaped reference such as
    ``A[Label]`` declares the node and replaces an earlier declaration;
    a bare ``A`` only creates the node if it is new.

    Args:
        source: Content of the mermaid block.

    Returns:
        The parsed flow.

    Raises:
        FlowParseError: If there is not exactly one BEGIN node, no END
            node, or nothing follows the BEGIN node.
    """
    declared: dict[str, _NodeRef] = {}
    edges: list[FlowEdge] = []

    for line_no, line in enumerate(source.splitlines(), start=1):
        if line.lstrip().startswith("%%"):
            continue
        for raw in _split_statements(line):
            statement = raw.strip()
            if not statement:
                continue
            if _HEADER_RE.match(statement):
                continue

            keyword = statement.split(maxsplit=1)[0]
            if keyword in _IGNORED_KEYWORDS:
                continue
            # Subgraph wrappers are transparent; "end" is reserved and never a node
            if keyword == "subgraph" or statement == "end":
                continue

            parsed = _parse_statement(statement)
            if parsed is None:
                _logger.debug("Skipping unreadable flow line %d: %r", line_no, statement)
                continue

            refs, statement_edges = parsed
            for ref in refs:
                if ref.shape is not None or ref.id not in declared:
                    declared[ref.id] = ref
            edges.extend(statement_edges)

    if not declared:
        raise FlowParseError("Flow diagram declares no nodes")

    out_degree = _collections.Counter(edge.source for edge in edges)
    nodes: dict[str, FlowNode] = {}
    for node_id, ref in declared.items():
        label = ref.label if ref.label is not None else node_id
        if _is_marker(node_id, label, constants.FLOW_BEGIN_MARKER):
            kind = FlowNodeKind.BEGIN
        elif _is_marker(node_id, label, constants.FLOW_END_MARKER):
            kind = FlowNodeKind.END
        elif out_degree[node_id] > 1:
            kind = FlowNodeKind.DECISION
        else:
            kind = FlowNodeKind.TASK
        nodes[node_id] = FlowNode(id=node_id, label=label, shape=ref.shape, kind=kind)

    graph = FlowGraph(nodes=nodes, edges=tuple(edges))

    begin_ids = [n.id for n in nodes.values() if n.kind is FlowNodeKind.BEGIN]
    if len(begin_ids) != 1:
        raise FlowParseError(
            f"Flow must have exactly one {constants.FLOW_BEGIN_MARKER} node, "
            f"found {len(begin_ids)}"
        )
    if not graph.end_ids:
        raise FlowParseError(
            f"Flow must have at least one {constants.FLOW_END_MARKER} node"
        )

    begin_id = begin_ids[0]
    if not graph.successors(begin_id):
        raise FlowParseError(f"Nothing follows {begin_id!r} in the flow")

    return FlowDefinition(begin_id=begin_id, graph=graph)


def parse_flow_block(body: str) -> FlowDefinition | None:
    """
    Find and parse the flow diagram of a skill body.

    Never raises: a missing or unusable diagram gives None.

    Args:
        body: Markdown body of SKILL.md (after the metadata header).

    Returns:
        The parsed flow, or None.
    """
    source = find_flow_block(body)
    if source is None:
        _logger.debug("No %s block found", constants.FLOW_FENCE_LANGUAGE)
        return None

    try:
        return parse_flowchart(source)
    except FlowParseError as e:
        _logger.debug("Invalid flow diagram: %s", e)
        return None
