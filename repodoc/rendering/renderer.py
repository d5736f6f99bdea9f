"""Maps the dependency graph, diagrams and tutorial plan onto the documentation tree."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..logging import get_logger
from ..models import (
    Abstraction,
    AbstractionKind,
    ContentBlock,
    DependencyGraph,
    DiagramSpec,
    DocumentNode,
    EdgeKind,
    Finding,
    NodeKind,
)
from ..tutorial import TutorialPlan
from .constants import (
    ADVANCED_FEATURES_PAGE,
    ARCHITECTURE_PAGE,
    BASIC_USAGE_PAGE,
    CODE_LANGUAGES,
    CONFIGURATION_PAGE,
    DEPLOYMENT_PAGE,
    FAQ_PAGE,
    GETTING_STARTED_PAGE,
    INDEX_PAGE,
    PAGE_TITLES,
    TECHNICAL_INDEX,
    TECHNICAL_PAGES,
    TROUBLESHOOTING_PAGE,
    TUTORIAL_INDEX,
    TUTORIAL_PAGES,
    component_page,
)

_ENVIRONMENT_EFFECT = "read from the environment"
_DEPLOYABLE_KINDS = (AbstractionKind.SERVICE, AbstractionKind.STORE)


class DocumentRenderer:
    """Builds the fixed documentation hierarchy.

    Every page is derived from the abstraction records, the graph and the
    diagram specifications; nothing is written that those inputs do not carry.
    Rendering the same inputs twice yields equal trees.
    """

    def __init__(self) -> None:
        self.logger = get_logger("renderer")

    def render(
        self,
        graph: DependencyGraph,
        diagrams: Sequence[DiagramSpec],
        plan: TutorialPlan,
        project_name: str | None = None,
    ) -> DocumentNode:
        title = project_name or "Project"
        hub = DocumentNode(path=INDEX_PAGE, title=f"{title} Documentation", kind=NodeKind.HUB)
        hub.blocks.append(ContentBlock.prose(self._overview(title, graph), heading="Overview"))
        hub.blocks.append(
            ContentBlock.link(
                TECHNICAL_INDEX,
                PAGE_TITLES[TECHNICAL_INDEX],
                text="Components, architecture, configuration and deployment.",
                heading="Contents",
            )
        )
        hub.blocks.append(
            ContentBlock.link(
                TUTORIAL_INDEX,
                PAGE_TITLES[TUTORIAL_INDEX],
                text="A guided path from the foundational components to the advanced ones.",
            )
        )

        hub.add(self._technical_section(graph, diagrams))
        hub.add(self._tutorial_section(graph, plan))

        pages = sum(1 for _ in hub.walk())
        self.logger.info("Rendered %d documentation page(s)", pages)
        return hub

    # Technical section -------------------------------------------------

    def _technical_section(self, graph: DependencyGraph, diagrams: Sequence[DiagramSpec]) -> DocumentNode:
        section = DocumentNode(path=TECHNICAL_INDEX, title=PAGE_TITLES[TECHNICAL_INDEX], kind=NodeKind.SECTION)
        section.blocks.append(
            ContentBlock.prose(
                f"This reference covers {len(graph.abstractions)} component(s) and "
                f"{len(graph.edges)} dependency relation(s) between them."
            )
        )
        for index, path in enumerate(TECHNICAL_PAGES):
            section.blocks.append(
                ContentBlock.link(path, PAGE_TITLES[path], heading="Guides" if index == 0 else None)
            )
        for index, abstraction in enumerate(graph.abstractions):
            section.blocks.append(
                ContentBlock.link(
                    component_page(abstraction.id),
                    abstraction.name,
                    relation="component",
                    text=abstraction.purpose,
                    heading="Components" if index == 0 else None,
                )
            )

        section.add(self._architecture_page(graph, diagrams))
        section.add(self._configuration_page(graph))
        section.add(self._deployment_page(graph))
        for abstraction in graph.abstractions:
            section.add(self._component_page(graph, abstraction))
        return section

    def _architecture_page(self, graph: DependencyGraph, diagrams: Sequence[DiagramSpec]) -> DocumentNode:
        page = DocumentNode(path=ARCHITECTURE_PAGE, title=PAGE_TITLES[ARCHITECTURE_PAGE], kind=NodeKind.SECTION)
        for spec in diagrams:
            page.blocks.append(ContentBlock.diagram_ref(spec.name, heading=spec.title))
            if spec.steps:
                page.blocks.append(
                    ContentBlock.prose("\n".join(f"{step.index}. {step.label}" for step in spec.steps))
                )

        for index, cycle in enumerate(graph.extends_cycles):
            names = " -> ".join(_name(graph, node) for node in cycle)
            page.blocks.append(
                ContentBlock.prose(
                    f"Inheritance cycle between components: {names}.",
                    heading="Known Issues" if index == 0 else None,
                )
            )
            for node in dict.fromkeys(cycle):
                page.blocks.append(
                    ContentBlock.link(component_page(node), _name(graph, node), relation="component")
                )

        page.blocks.append(_back_link())
        return page

    def _configuration_page(self, graph: DependencyGraph) -> DocumentNode:
        page = DocumentNode(path=CONFIGURATION_PAGE, title=PAGE_TITLES[CONFIGURATION_PAGE], kind=NodeKind.SECTION)
        owners = [item for item in graph.abstractions if item.config_keys]
        if not owners:
            page.blocks.append(ContentBlock.prose("No configuration keys were discovered."))
        for abstraction in owners:
            page.blocks.append(ContentBlock.prose(_key_list(abstraction.config_keys), heading=abstraction.name))
            configured = graph.successors(abstraction.id, EdgeKind.CONFIGURES)
            if configured:
                page.blocks.append(
                    ContentBlock.prose(
                        "Configures: " + ", ".join(_name(graph, node) for node in configured) + "."
                    )
                )
            page.blocks.append(
                ContentBlock.link(component_page(abstraction.id), abstraction.name, relation="component")
            )
        page.blocks.append(_back_link())
        return page

    def _deployment_page(self, graph: DependencyGraph) -> DocumentNode:
        page = DocumentNode(path=DEPLOYMENT_PAGE, title=PAGE_TITLES[DEPLOYMENT_PAGE], kind=NodeKind.SECTION)
        deployable = [item for item in graph.abstractions if item.kind in _DEPLOYABLE_KINDS]
        if deployable:
            page.blocks.append(
                ContentBlock.prose(
                    "These services and stores make up the runtime footprint.", heading="Runtime Components"
                )
            )
            for abstraction in deployable:
                page.blocks.append(
                    ContentBlock.link(
                        component_page(abstraction.id),
                        abstraction.name,
                        relation="component",
                        text=f"{abstraction.kind.value} defined in `{abstraction.source_path}`"
                        if abstraction.source_path
                        else abstraction.kind.value,
                    )
                )
        else:
            page.blocks.append(ContentBlock.prose("No service or store components were discovered."))

        environment: Dict[str, List[str]] = {}
        for abstraction in graph.abstractions:
            for key, effect in abstraction.config_keys.items():
                if effect.startswith(_ENVIRONMENT_EFFECT):
                    environment.setdefault(key, []).append(abstraction.name)
        if environment:
            page.blocks.append(
                ContentBlock.prose(
                    "\n".join(
                        f"- `{key}` (used by {', '.join(names)})" for key, names in sorted(environment.items())
                    ),
                    heading="Environment Variables",
                )
            )
        page.blocks.append(_back_link())
        return page

    def _component_page(self, graph: DependencyGraph, abstraction: Abstraction) -> DocumentNode:
        page = DocumentNode(
            path=component_page(abstraction.id), title=abstraction.name, kind=NodeKind.COMPONENT_PAGE
        )
        summary = f"Kind: {abstraction.kind.value}."
        if abstraction.source_path:
            summary += f" Defined in `{abstraction.source_path}`."
        page.blocks.append(ContentBlock.prose(summary))
        if abstraction.purpose:
            page.blocks.append(ContentBlock.prose(abstraction.purpose, heading="Purpose"))
        if abstraction.operations:
            page.blocks.append(
                ContentBlock.code(
                    "\n".join(operation.signature() for operation in abstraction.operations),
                    language=CODE_LANGUAGES.get(abstraction.ecosystem or ""),
                    heading="Operations",
                )
            )
        if abstraction.config_keys:
            page.blocks.append(ContentBlock.prose(_key_list(abstraction.config_keys), heading="Configuration"))

        outgoing = [edge for edge in graph.edges if edge.source == abstraction.id]
        for index, edge in enumerate(outgoing):
            page.blocks.append(
                ContentBlock.link(
                    component_page(edge.target),
                    _name(graph, edge.target),
                    relation="dependency",
                    text=edge.kind.value,
                    heading="Depends On" if index == 0 else None,
                )
            )
        incoming = [edge for edge in graph.edges if edge.target == abstraction.id]
        for index, edge in enumerate(incoming):
            page.blocks.append(
                ContentBlock.link(
                    component_page(edge.source),
                    _name(graph, edge.source),
                    relation="dependency",
                    text=edge.kind.value,
                    heading="Used By" if index == 0 else None,
                )
            )

        cycles = [cycle for cycle in graph.extends_cycles if abstraction.id in cycle]
        for index, cycle in enumerate(cycles):
            page.blocks.append(
                ContentBlock.prose(
                    "Part of an inheritance cycle: " + " -> ".join(_name(graph, node) for node in cycle) + ".",
                    heading="Known Issues" if index == 0 else None,
                )
            )
        page.blocks.append(_back_link())
        return page

    # Tutorial section --------------------------------------------------

    def _tutorial_section(self, graph: DependencyGraph, plan: TutorialPlan) -> DocumentNode:
        section = DocumentNode(path=TUTORIAL_INDEX, title=PAGE_TITLES[TUTORIAL_INDEX], kind=NodeKind.SECTION)
        section.blocks.append(
            ContentBlock.prose(
                "Work through the pages in order: components that others build on come first."
            )
        )
        for path in TUTORIAL_PAGES:
            section.blocks.append(ContentBlock.link(path, PAGE_TITLES[path], relation="tutorial"))

        section.add(self._getting_started(graph, plan))
        section.add(
            self._subjects_page(
                graph,
                BASIC_USAGE_PAGE,
                plan.basic,
                "Start with these foundational components.",
                empty="No foundational components were discovered.",
            )
        )
        section.add(
            self._subjects_page(
                graph,
                ADVANCED_FEATURES_PAGE,
                plan.advanced,
                "These components build on the basics.",
                empty="Every discovered component is covered in Basic Usage.",
            )
        )
        section.add(self._troubleshooting(graph))
        section.add(self._faq(graph))
        return section

    def _getting_started(self, graph: DependencyGraph, plan: TutorialPlan) -> DocumentNode:
        page = _tutorial_page(GETTING_STARTED_PAGE)
        first: Optional[Abstraction] = graph.get(plan.basic[0]) if plan.basic else None
        if first is None:
            page.blocks.append(ContentBlock.prose("No components were discovered in this repository."))
        else:
            page.blocks.append(
                ContentBlock.prose(
                    f"Begin with {first.name}; it is the first of {len(plan.ordered)} component(s) "
                    "in dependency order."
                )
            )
            if first.purpose:
                page.blocks.append(ContentBlock.prose(first.purpose, heading=first.name))
            if first.operations:
                page.blocks.append(
                    ContentBlock.code(
                        first.operations[0].signature(),
                        language=CODE_LANGUAGES.get(first.ecosystem or ""),
                        heading="First Operation",
                    )
                )
            page.blocks.append(ContentBlock.link(component_page(first.id), first.name, relation="component"))
        page.blocks.append(ContentBlock.link(BASIC_USAGE_PAGE, PAGE_TITLES[BASIC_USAGE_PAGE], relation="tutorial"))
        return page

    def _subjects_page(
        self,
        graph: DependencyGraph,
        path: str,
        subjects: Iterable[str],
        intro: str,
        *,
        empty: str,
    ) -> DocumentNode:
        page = _tutorial_page(path)
        records = [graph.get(subject) for subject in subjects]
        present = [record for record in records if record is not None]
        page.blocks.append(ContentBlock.prose(intro if present else empty))
        for abstraction in present:
            if abstraction.purpose:
                page.blocks.append(ContentBlock.prose(abstraction.purpose, heading=abstraction.name))
            dependencies = graph.successors(abstraction.id, EdgeKind.USES, EdgeKind.EXTENDS)
            if dependencies:
                page.blocks.append(
                    ContentBlock.prose(
                        "Builds on: " + ", ".join(_name(graph, node) for node in dependencies) + ".",
                        heading=None if abstraction.purpose else abstraction.name,
                    )
                )
            page.blocks.append(
                ContentBlock.link(
                    component_page(abstraction.id),
                    abstraction.name,
                    relation="component",
                    heading=None if abstraction.purpose or dependencies else abstraction.name,
                )
            )
        page.blocks.append(ContentBlock.link(TUTORIAL_INDEX, PAGE_TITLES[TUTORIAL_INDEX], relation="navigation"))
        return page

    def _troubleshooting(self, graph: DependencyGraph) -> DocumentNode:
        page = _tutorial_page(TROUBLESHOOTING_PAGE)
        if not graph.findings:
            page.blocks.append(ContentBlock.prose("No issues were detected while analysing the repository."))
        for finding in graph.findings:
            page.blocks.append(ContentBlock.prose(_describe_finding(finding), heading=finding.kind.value))
            if graph.get(finding.subject) is not None:
                page.blocks.append(
                    ContentBlock.link(
                        component_page(finding.subject), _name(graph, finding.subject), relation="component"
                    )
                )
        page.blocks.append(
            ContentBlock.link(ARCHITECTURE_PAGE, PAGE_TITLES[ARCHITECTURE_PAGE], relation="navigation")
        )
        return page

    def _faq(self, graph: DependencyGraph) -> DocumentNode:
        page = _tutorial_page(FAQ_PAGE)
        page.blocks.append(
            ContentBlock.link(
                ARCHITECTURE_PAGE,
                PAGE_TITLES[ARCHITECTURE_PAGE],
                text="The architecture page shows the system map and the primary request flow.",
                heading="How do the components fit together?",
            )
        )
        page.blocks.append(
            ContentBlock.link(
                CONFIGURATION_PAGE,
                PAGE_TITLES[CONFIGURATION_PAGE],
                text=f"{sum(len(item.config_keys) for item in graph.abstractions)} configuration key(s) are listed there.",
                heading="Where are the configuration options?",
            )
        )
        page.blocks.append(
            ContentBlock.link(
                GETTING_STARTED_PAGE,
                PAGE_TITLES[GETTING_STARTED_PAGE],
                relation="tutorial",
                heading="Where should I start?",
            )
        )
        return page

    @staticmethod
    def _overview(title: str, graph: DependencyGraph) -> str:
        ecosystems = sorted({item.ecosystem for item in graph.abstractions if item.ecosystem})
        summary = f"{title} is documented through {len(graph.abstractions)} core component(s)"
        if ecosystems:
            summary += f" written in {', '.join(ecosystems)}"
        return summary + "."


def _tutorial_page(path: str) -> DocumentNode:
    return DocumentNode(path=path, title=PAGE_TITLES[path], kind=NodeKind.TUTORIAL_STEP)


def _back_link() -> ContentBlock:
    return ContentBlock.link(TECHNICAL_INDEX, PAGE_TITLES[TECHNICAL_INDEX])


def _name(graph: DependencyGraph, abstraction_id: str) -> str:
    abstraction = graph.get(abstraction_id)
    return abstraction.name if abstraction else abstraction_id


def _key_list(keys: Mapping[str, str]) -> str:
    return "\n".join(f"- `{key}`: {effect}" for key, effect in keys.items())


def _describe_finding(finding: Finding) -> str:
    return f"{finding.message} (stage: {finding.stage})"


__all__ = ["DocumentRenderer"]
