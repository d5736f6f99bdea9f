"""Core data models shared across repodoc components."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Tuple

if TYPE_CHECKING:  # pragma: no cover - typing aid
    import networkx as nx

PURPOSE_MAX_LENGTH = 240

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    """Return a kebab-case slug, splitting camel case words."""
    spaced = _CAMEL_BOUNDARY.sub("-", value)
    slug = _NON_SLUG.sub("-", spaced.lower())
    return slug.strip("-")


def derive_abstraction_id(path: str, name: str) -> str:
    """Build the stable abstraction id from its source path and declared name."""
    stem = path.rsplit(".", 1)[0] if "." in path.rsplit("/", 1)[-1] else path
    path_slug = slugify(stem.replace("/", "-"))
    name_slug = slugify(name)
    if not name_slug or path_slug == name_slug or path_slug.endswith(f"-{name_slug}"):
        return path_slug or name_slug
    if not path_slug:
        return name_slug
    return f"{path_slug}-{name_slug}"


def module_path(path: str) -> str:
    """Return the dotted module path for a source path, without its extension."""
    stem = path.rsplit(".", 1)[0] if "." in path.rsplit("/", 1)[-1] else path
    parts = [part for part in stem.split("/") if part and part != "."]
    if parts and parts[-1] in {"__init__", "index"}:
        parts = parts[:-1]
    return ".".join(parts)


def bound_purpose(text: str, limit: int = PURPOSE_MAX_LENGTH) -> str:
    """Collapse whitespace and truncate a purpose summary to ``limit`` characters."""
    collapsed = " ".join(text.split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - 3].rstrip() + "..."


@dataclass(frozen=True)
class SourceUnit:
    """A scanned file; identity is its relative path."""

    path: str
    ecosystem: Optional[str]
    size: int
    hash: str


class AbstractionKind(str, Enum):
    MODULE = "module"
    SERVICE = "service"
    UTILITY = "utility"
    STORE = "store"
    CONFIG = "config"


@dataclass(frozen=True)
class Operation:
    """A public operation declared by an abstraction."""

    name: str
    parameters: Tuple[str, ...] = ()
    returns: str = "unspecified"

    def signature(self) -> str:
        return f"{self.name}({', '.join(self.parameters)}) -> {self.returns}"


@dataclass(frozen=True)
class Abstraction:
    """A discovered core component of the analysed repository."""

    id: str
    name: str
    kind: AbstractionKind
    purpose: str = ""
    operations: Tuple[Operation, ...] = ()
    config_keys: Mapping[str, str] = field(default_factory=dict)
    source_path: str = ""
    ecosystem: Optional[str] = None


class EdgeKind(str, Enum):
    USES = "uses"
    CONFIGURES = "configures"
    EXTENDS = "extends"


@dataclass(frozen=True)
class ReferenceHint:
    """An adapter's claim that ``source_id`` refers to something named ``target``."""

    source_id: str
    target: str
    kind: EdgeKind = EdgeKind.USES


@dataclass(frozen=True, order=True)
class DependencyEdge:
    """Directed relation between two abstractions."""

    source: str
    target: str
    kind: EdgeKind

    def key(self) -> Tuple[str, str, str]:
        return (self.source, self.target, self.kind.value)


class FindingKind(str, Enum):
    SCAN_EXCLUSIONS = "scan-exclusions"
    UNIT_SKIPPED = "unit-skipped"
    SYMLINK_CYCLE = "symlink-cycle"
    ADAPTER_ERROR = "adapter-error"
    KIND_CONFLICT = "kind-conflict"
    ID_COLLISION = "abstraction-id-collision"
    EXTENDS_CYCLE = "extends-cycle-detected"
    UNRESOLVED_REFERENCE = "unresolved-reference"
    DANGLING_CROSS_REFERENCE = "dangling-cross-reference"
    CROSS_REFERENCE_REPAIRED = "cross-reference-repaired"
    DEADLINE_EXCEEDED = "deadline-exceeded"


@dataclass(frozen=True)
class Finding:
    """Structured, non-fatal diagnostic recorded by a pipeline stage."""

    kind: FindingKind
    stage: str
    subject: str
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "stage": self.stage,
            "subject": self.subject,
            "message": self.message,
            "details": dict(self.details),
        }


class DependencyGraph:
    """Surfaced abstractions plus the deduplicated dependency edges between them."""

    def __init__(
        self,
        abstractions: Tuple[Abstraction, ...],
        edges: Tuple[DependencyEdge, ...],
        *,
        extends_cycles: Tuple[Tuple[str, ...], ...] = (),
        findings: Tuple[Finding, ...] = (),
    ) -> None:
        self.abstractions = tuple(abstractions)
        self.edges = tuple(edges)
        self.extends_cycles = tuple(extends_cycles)
        self.findings = tuple(findings)
        self._by_id: Dict[str, Abstraction] = {item.id: item for item in self.abstractions}
        if len(self._by_id) != len(self.abstractions):
            raise ValueError("Abstraction ids must be unique within a graph")
        seen: set[Tuple[str, str, str]] = set()
        for edge in self.edges:
            if edge.source == edge.target:
                raise ValueError(f"Self edge is not allowed: {edge.source}")
            if edge.source not in self._by_id or edge.target not in self._by_id:
                raise ValueError(f"Edge references unknown abstraction: {edge.key()}")
            if edge.key() in seen:
                raise ValueError(f"Duplicate edge: {edge.key()}")
            seen.add(edge.key())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DependencyGraph):
            return NotImplemented
        return (
            self.abstractions == other.abstractions
            and self.edges == other.edges
            and self.extends_cycles == other.extends_cycles
            and self.findings == other.findings
        )

    def __repr__(self) -> str:
        return f"DependencyGraph(abstractions={len(self.abstractions)}, edges={len(self.edges)})"

    @property
    def ids(self) -> List[str]:
        return [item.id for item in self.abstractions]

    def get(self, abstraction_id: str) -> Optional[Abstraction]:
        return self._by_id.get(abstraction_id)

    def edges_of_kind(self, *kinds: EdgeKind) -> List[DependencyEdge]:
        if not kinds:
            return list(self.edges)
        return [edge for edge in self.edges if edge.kind in kinds]

    def successors(self, abstraction_id: str, *kinds: EdgeKind) -> List[str]:
        return [edge.target for edge in self.edges_of_kind(*kinds) if edge.source == abstraction_id]

    def predecessors(self, abstraction_id: str, *kinds: EdgeKind) -> List[str]:
        return [edge.source for edge in self.edges_of_kind(*kinds) if edge.target == abstraction_id]

    def in_degree(self, abstraction_id: str, *kinds: EdgeKind) -> int:
        return len(self.predecessors(abstraction_id, *kinds))

    def out_degree(self, abstraction_id: str, *kinds: EdgeKind) -> int:
        return len(self.successors(abstraction_id, *kinds))

    def as_networkx(self, *kinds: EdgeKind) -> "nx.MultiDiGraph":
        """Return a networkx view keyed by edge kind, preserving graph order."""
        import networkx as nx

        view = nx.MultiDiGraph()
        for item in self.abstractions:
            view.add_node(item.id, name=item.name, kind=item.kind.value)
        for edge in self.edges_of_kind(*kinds):
            view.add_edge(edge.source, edge.target, key=edge.kind.value)
        return view


class DiagramKind(str, Enum):
    SYSTEM = "system"
    INTERACTION = "interaction"
    SEQUENCE = "sequence"


@dataclass(frozen=True)
class DiagramNode:
    id: str
    label: str
    boundary: bool = False
    group: Optional[str] = None


@dataclass(frozen=True)
class DiagramEdge:
    source: str
    target: str
    kind: EdgeKind


@dataclass(frozen=True)
class DiagramGroup:
    id: str
    label: str
    members: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SequenceStep:
    index: int
    source: str
    target: str
    label: str


@dataclass(frozen=True)
class DiagramSpec:
    """Declarative, renderer-agnostic graph description of one view."""

    name: str
    kind: DiagramKind
    title: str
    nodes: Tuple[DiagramNode, ...] = ()
    edges: Tuple[DiagramEdge, ...] = ()
    steps: Tuple[SequenceStep, ...] = ()
    groups: Tuple[DiagramGroup, ...] = ()

    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]


class NodeKind(str, Enum):
    HUB = "hub"
    SECTION = "section"
    COMPONENT_PAGE = "component-page"
    TUTORIAL_STEP = "tutorial-step"


class BlockKind(str, Enum):
    PROSE = "prose"
    CODE = "code"
    DIAGRAM = "diagram"
    CROSS_REFERENCE = "cross-reference"


@dataclass(frozen=True)
class CrossReference:
    """Typed pointer to another document node's output path."""

    target: str
    label: str
    relation: str = "navigation"


@dataclass(frozen=True)
class ContentBlock:
    kind: BlockKind
    text: str = ""
    heading: Optional[str] = None
    language: Optional[str] = None
    diagram: Optional[str] = None
    reference: Optional[CrossReference] = None

    @classmethod
    def prose(cls, text: str, *, heading: str | None = None) -> "ContentBlock":
        return cls(kind=BlockKind.PROSE, text=text, heading=heading)

    @classmethod
    def code(cls, text: str, *, language: str | None = None, heading: str | None = None) -> "ContentBlock":
        return cls(kind=BlockKind.CODE, text=text, language=language, heading=heading)

    @classmethod
    def diagram_ref(cls, name: str, *, heading: str | None = None) -> "ContentBlock":
        return cls(kind=BlockKind.DIAGRAM, diagram=name, heading=heading)

    @classmethod
    def link(
        cls,
        target: str,
        label: str,
        *,
        relation: str = "navigation",
        text: str = "",
        heading: str | None = None,
    ) -> "ContentBlock":
        return cls(
            kind=BlockKind.CROSS_REFERENCE,
            text=text,
            heading=heading,
            reference=CrossReference(target=target, label=label, relation=relation),
        )


@dataclass
class DocumentNode:
    """A node of the output documentation tree; owns its children."""

    path: str
    title: str
    kind: NodeKind
    blocks: List[ContentBlock] = field(default_factory=list)
    children: List["DocumentNode"] = field(default_factory=list)

    def add(self, child: "DocumentNode") -> "DocumentNode":
        self.children.append(child)
        return child

    def walk(self) -> Iterator["DocumentNode"]:
        """Yield this node and its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def path_index(self) -> Dict[str, "DocumentNode"]:
        index: Dict[str, DocumentNode] = {}
        for node in self.walk():
            if node.path in index:
                raise ValueError(f"Duplicate document path: {node.path}")
            index[node.path] = node
        return index

    def find(self, path: str) -> Optional["DocumentNode"]:
        for node in self.walk():
            if node.path == path:
                return node
        return None

    def references(self) -> List[CrossReference]:
        return [
            block.reference
            for node in self.walk()
            for block in node.blocks
            if block.kind is BlockKind.CROSS_REFERENCE and block.reference is not None
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "title": self.title,
            "kind": self.kind.value,
            "blocks": [_block_to_dict(block) for block in self.blocks],
            "children": [child.to_dict() for child in self.children],
        }


def _block_to_dict(block: ContentBlock) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"kind": block.kind.value}
    if block.text:
        payload["text"] = block.text
    if block.heading:
        payload["heading"] = block.heading
    if block.language:
        payload["language"] = block.language
    if block.diagram:
        payload["diagram"] = block.diagram
    if block.reference is not None:
        payload["reference"] = {
            "target": block.reference.target,
            "label": block.reference.label,
            "relation": block.reference.relation,
        }
    return payload
