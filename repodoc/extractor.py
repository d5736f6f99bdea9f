"""Abstraction extraction across ecosystems, with ranking down to a bounded set."""

from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from .adapters import AdapterOutput, AdapterRegistry, build_registry
from .deadline import Deadline, DeadlineExceeded
from .graph import ReferenceResolver
from .logging import get_logger
from .models import Abstraction, Finding, FindingKind, ReferenceHint, SourceUnit
from .repo_scanner import ScanResult

STAGE = "extract"
DEFAULT_MAX_ABSTRACTIONS = 15
DEFAULT_MIN_ABSTRACTIONS = 5


@dataclass
class ExtractionResult:
    """Surfaced abstractions plus the hints and findings that go with them."""

    abstractions: List[Abstraction] = field(default_factory=list)
    hints: List[ReferenceHint] = field(default_factory=list)
    unanalyzed: List[str] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    candidates: int = 0


@dataclass
class _UnitSlot:
    unit: SourceUnit
    output: Optional[AdapterOutput] = None
    error: Optional[Finding] = None
    unsupported: bool = False


class AbstractionExtractor:
    """Runs the registered adapters over scanned units and surfaces core abstractions."""

    def __init__(
        self,
        registry: AdapterRegistry | None = None,
        *,
        max_abstractions: int = DEFAULT_MAX_ABSTRACTIONS,
        min_abstractions: int = DEFAULT_MIN_ABSTRACTIONS,
        workers: int | None = None,
    ) -> None:
        if max_abstractions < 1:
            raise ValueError("max_abstractions must be at least 1")
        self.registry = registry if registry is not None else build_registry()
        self.max_abstractions = max_abstractions
        self.min_abstractions = min_abstractions
        self.workers = workers
        self.logger = get_logger("extractor")

    def extract(self, scan: ScanResult, *, deadline: Deadline | None = None) -> ExtractionResult:
        deadline = deadline or Deadline()
        units = sorted(scan.units, key=lambda unit: unit.path)
        slots = [_UnitSlot(unit) for unit in units]

        if slots:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="Extract") as executor:
                futures = [executor.submit(self._process, scan, slot, deadline) for slot in slots]
                for future in futures:
                    future.result()

        result = ExtractionResult()
        by_id: Dict[str, Abstraction] = {}
        hints: List[ReferenceHint] = []
        for slot in slots:
            if slot.unsupported:
                result.unanalyzed.append(slot.unit.path)
                continue
            if slot.error is not None:
                result.unanalyzed.append(slot.unit.path)
                result.findings.append(slot.error)
                continue
            if slot.output is None:
                continue
            renamed: Dict[str, str] = {}
            for abstraction in slot.output.abstractions:
                abstraction = self._claim_id(abstraction, by_id, renamed, result.findings)
                existing = by_id.get(abstraction.id)
                if existing is None:
                    by_id[abstraction.id] = abstraction
                    continue
                if existing.kind is not abstraction.kind:
                    result.findings.append(
                        Finding(
                            kind=FindingKind.KIND_CONFLICT,
                            stage=STAGE,
                            subject=abstraction.id,
                            message=(
                                f"Abstraction {abstraction.id} declared as {existing.kind.value} "
                                f"and {abstraction.kind.value}; keeping {existing.kind.value}"
                            ),
                            details={"kept": existing.kind.value, "discarded": abstraction.kind.value},
                        )
                    )
            hints.extend(
                replace(hint, source_id=renamed[hint.source_id]) if hint.source_id in renamed else hint
                for hint in slot.output.hints
            )

        candidates = list(by_id.values())
        result.candidates = len(candidates)
        surfaced = self._surface(candidates, hints)
        surfaced_ids = {item.id for item in surfaced}
        result.abstractions = surfaced
        result.hints = [hint for hint in hints if hint.source_id in surfaced_ids]

        if len(surfaced) < self.min_abstractions:
            self.logger.info(
                "Only %d abstraction(s) found; fewer than the preferred minimum of %d",
                len(surfaced),
                self.min_abstractions,
            )
        self.logger.info(
            "Extracted %d candidate(s), surfaced %d, %d unit(s) unanalyzed",
            len(candidates),
            len(surfaced),
            len(result.unanalyzed),
        )
        return result

    def _claim_id(
        self,
        abstraction: Abstraction,
        by_id: Dict[str, Abstraction],
        renamed: Dict[str, str],
        findings: List[Finding],
    ) -> Abstraction:
        """Give ``abstraction`` an id no abstraction from another file holds.

        Ids derived from different paths can coincide (``orders.py:Store`` and
        ``orders/store.py:Store``).  The later unit in scan order receives a
        numbered suffix, recorded in ``renamed`` so its hints follow it.
        """
        if abstraction.id in renamed:
            return replace(abstraction, id=renamed[abstraction.id])
        existing = by_id.get(abstraction.id)
        if existing is None or existing.source_path == abstraction.source_path:
            return abstraction
        suffix = 2
        while f"{abstraction.id}-{suffix}" in by_id:
            suffix += 1
        unique_id = f"{abstraction.id}-{suffix}"
        renamed[abstraction.id] = unique_id
        self.logger.debug("Renaming %s from %s to %s", abstraction.id, abstraction.source_path, unique_id)
        findings.append(
            Finding(
                kind=FindingKind.ID_COLLISION,
                stage=STAGE,
                subject=unique_id,
                message=(
                    f"{abstraction.source_path} and {existing.source_path} both derive id {abstraction.id}; "
                    f"{abstraction.name} from {abstraction.source_path} is documented as {unique_id}"
                ),
                details={"derived": abstraction.id, "kept_source": existing.source_path},
            )
        )
        return replace(abstraction, id=unique_id)

    def _process(self, scan: ScanResult, slot: _UnitSlot, deadline: Deadline) -> None:
        deadline.check(STAGE)
        adapter = self.registry.for_ecosystem(slot.unit.ecosystem)
        if adapter is None:
            slot.unsupported = True
            return
        try:
            content = scan.read_text(slot.unit)
            slot.output = adapter.extract(slot.unit, content)
        except DeadlineExceeded:
            raise
        except Exception as exc:  # adapter failures are recorded, never fatal
            self.logger.debug("Adapter %s failed on %s: %s", adapter.name, slot.unit.path, exc)
            slot.error = Finding(
                kind=FindingKind.ADAPTER_ERROR,
                stage=STAGE,
                subject=slot.unit.path,
                message=f"{adapter.name} adapter could not analyse {slot.unit.path}: {exc}",
                details={"adapter": adapter.name, "error": type(exc).__name__},
            )

    def _surface(self, candidates: Sequence[Abstraction], hints: Sequence[ReferenceHint]) -> List[Abstraction]:
        if len(candidates) <= self.max_abstractions:
            return list(candidates)

        resolver = ReferenceResolver(candidates)
        inbound: Counter[str] = Counter()
        for hint in hints:
            target = resolver.resolve(hint.target)
            if target is not None and target != hint.source_id:
                inbound[target] += 1

        ranked = sorted(
            range(len(candidates)),
            key=lambda position: (
                -len(candidates[position].operations) * inbound[candidates[position].id],
                -len(candidates[position].operations),
                position,
            ),
        )
        keep = sorted(ranked[: self.max_abstractions])
        for position in ranked[self.max_abstractions :]:
            self.logger.debug("Not surfacing %s", candidates[position].id)
        return [candidates[position] for position in keep]


__all__ = [
    "AbstractionExtractor",
    "DEFAULT_MAX_ABSTRACTIONS",
    "DEFAULT_MIN_ABSTRACTIONS",
    "ExtractionResult",
]
