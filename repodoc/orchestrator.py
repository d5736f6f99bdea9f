"""Pipeline orchestration from repository scan to validated documentation tree."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .adapters import build_registry
from .config import ConfigError, RepoDocConfig, ScanRule, load_config
from .deadline import Deadline, DeadlineExceeded
from .diagrams import DiagramSynthesizer
from .extractor import AbstractionExtractor
from .graph import DependencyGraphBuilder
from .logging import get_logger, log_findings
from .models import DependencyGraph, DiagramSpec, DocumentNode, Finding
from .rendering.renderer import DocumentRenderer
from .repo_scanner import RepoScanner
from .tutorial import TutorialPlan, TutorialSequencer
from .validators import CrossReferenceValidator


@dataclass
class PipelineResult:
    """Everything a run produced: the validated tree plus the intermediate models."""

    root: Path
    tree: DocumentNode
    diagrams: Tuple[DiagramSpec, ...]
    graph: DependencyGraph
    plan: TutorialPlan
    status: str
    findings: List[Finding] = field(default_factory=list)
    unanalyzed: List[str] = field(default_factory=list)
    candidates: int = 0

    def pages(self) -> List[str]:
        return [node.path for node in self.tree.walk()]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": str(self.root),
            "status": self.status,
            "pages": self.pages(),
            "abstractions": [
                {
                    "id": item.id,
                    "name": item.name,
                    "kind": item.kind.value,
                    "source_path": item.source_path,
                    "operations": [operation.signature() for operation in item.operations],
                }
                for item in self.graph.abstractions
            ],
            "candidates": self.candidates,
            "edges": [
                {"source": edge.source, "target": edge.target, "kind": edge.kind.value}
                for edge in self.graph.edges
            ],
            "extends_cycles": [list(cycle) for cycle in self.graph.extends_cycles],
            "diagrams": [spec.name for spec in self.diagrams],
            "tutorial": {"basic": list(self.plan.basic), "advanced": list(self.plan.advanced)},
            "unanalyzed": list(self.unanalyzed),
            "findings": [finding.to_dict() for finding in self.findings],
        }


class Orchestrator:
    """Coordinates the documentation pipeline.

    Components may be injected; any that are not are built from the
    repository's ``.repodoc.yml`` on each run.
    """

    def __init__(
        self,
        scanner: RepoScanner | None = None,
        extractor: AbstractionExtractor | None = None,
        graph_builder: DependencyGraphBuilder | None = None,
        synthesizer: DiagramSynthesizer | None = None,
        sequencer: TutorialSequencer | None = None,
        renderer: DocumentRenderer | None = None,
        validator: CrossReferenceValidator | None = None,
    ) -> None:
        self.scanner = scanner
        self.extractor = extractor
        self.graph_builder = graph_builder or DependencyGraphBuilder()
        self.synthesizer = synthesizer or DiagramSynthesizer()
        self.sequencer = sequencer or TutorialSequencer()
        self.renderer = renderer or DocumentRenderer()
        self.validator = validator
        self.logger = get_logger("orchestrator")

    def load_config(self, path: str | Path) -> RepoDocConfig:
        repo_path = Path(path).expanduser()
        if not repo_path.is_dir():
            # The scanner reports the missing root; do not pick up a parent's config.
            return RepoDocConfig(root=repo_path)
        return load_config(repo_path)

    def run(
        self,
        path: str | Path,
        *,
        rules: Optional[Sequence[ScanRule]] = None,
        deadline_seconds: float | None = None,
        max_abstractions: int | None = None,
        auto_repair: bool | None = None,
        project_name: str | None = None,
        config: RepoDocConfig | None = None,
    ) -> PipelineResult:
        """Run every stage over ``path`` and return the validated result."""
        repo_path = Path(path).expanduser()
        config = config or self.load_config(repo_path)
        seconds = deadline_seconds if deadline_seconds is not None else config.deadline
        deadline = Deadline(seconds)
        findings: List[Finding] = []

        try:
            scanner = self.scanner or self._build_scanner(config)
            extractor = self.extractor or self._build_extractor(config, max_abstractions)
            validator = self.validator or self._build_validator(config, auto_repair)
        except ValueError as exc:
            raise ConfigError(f"Invalid run settings: {exc}") from exc

        self.logger.info("Starting documentation run for %s", repo_path)
        try:
            scan = scanner.scan(repo_path, rules, deadline=deadline)
            findings.extend(scan.findings)
            self.logger.debug("Scanner discovered %d units", len(scan.units))

            deadline.check("extract")
            extraction = extractor.extract(scan, deadline=deadline)
            findings.extend(extraction.findings)

            deadline.check("graph")
            graph = self.graph_builder.build(extraction.abstractions, extraction.hints)
            findings.extend(graph.findings)

            deadline.check("diagrams")
            diagrams = self.synthesizer.synthesize(graph)
            plan = self.sequencer.sequence(graph)

            deadline.check("render")
            name = project_name or config.output.project_name or scan.root.name
            tree = self.renderer.render(graph, diagrams, plan, name)

            deadline.check("validate")
            report = validator.validate(tree)
            findings.extend(report.findings)
        except DeadlineExceeded as exc:
            self.logger.warning("Run aborted: %s", exc)
            log_findings(self.logger, findings)
            raise exc.with_findings(findings) from exc

        self.logger.info(
            "Run finished with status %s: %d page(s), %d finding(s)",
            report.status,
            sum(1 for _ in tree.walk()),
            len(findings),
        )
        log_findings(self.logger, findings)
        return PipelineResult(
            root=scan.root,
            tree=tree,
            diagrams=tuple(diagrams),
            graph=graph,
            plan=plan,
            status=report.status,
            findings=findings,
            unanalyzed=list(extraction.unanalyzed),
            candidates=extraction.candidates,
        )

    @staticmethod
    def _build_scanner(config: RepoDocConfig) -> RepoScanner:
        return RepoScanner(
            config.scan.rules,
            respect_gitignore=config.scan.respect_gitignore,
            max_file_bytes=config.scan.max_file_bytes,
            read_timeout=config.scan.read_timeout,
            workers=config.scan.workers,
        )

    @staticmethod
    def _build_extractor(config: RepoDocConfig, max_abstractions: int | None) -> AbstractionExtractor:
        return AbstractionExtractor(
            build_registry(config.extract.adapters),
            max_abstractions=(
                config.extract.max_abstractions if max_abstractions is None else max_abstractions
            ),
            min_abstractions=config.extract.min_abstractions,
            workers=config.extract.workers,
        )

    @staticmethod
    def _build_validator(config: RepoDocConfig, auto_repair: bool | None) -> CrossReferenceValidator:
        return CrossReferenceValidator(
            auto_repair=config.validate.auto_repair if auto_repair is None else auto_repair,
            repair_threshold=config.validate.repair_threshold,
        )


__all__ = ["Orchestrator", "PipelineResult"]
