"""Cross-reference validation over the rendered documentation tree."""

from __future__ import annotations

import difflib
from typing import Dict, List, Optional, Tuple

from ..logging import get_logger
from ..models import BlockKind, ContentBlock, CrossReference, DocumentNode, Finding, FindingKind
from .base import VALID, VALID_WITH_FINDINGS, ValidationReport

STAGE = "validate"
DEFAULT_REPAIR_THRESHOLD = 0.6


class CrossReferenceValidator:
    """Ensures every cross-reference in the tree points at an existing page.

    Dangling references are dropped by default.  With ``auto_repair`` enabled
    the validator retargets a reference to the existing page whose title or
    final path segment is most similar, provided the similarity reaches
    ``repair_threshold``.  Blocks are edited in place; no page is ever added.
    """

    name = "cross-reference"

    def __init__(self, *, auto_repair: bool = False, repair_threshold: float = DEFAULT_REPAIR_THRESHOLD) -> None:
        if not 0.0 <= repair_threshold <= 1.0:
            raise ValueError("repair_threshold must be between 0 and 1")
        self.auto_repair = auto_repair
        self.repair_threshold = repair_threshold
        self.logger = get_logger("validators.crossref")

    def validate(self, tree: DocumentNode) -> ValidationReport:
        index = tree.path_index()
        report = ValidationReport()

        for node in tree.walk():
            kept: List[ContentBlock] = []
            for block in node.blocks:
                reference = block.reference
                if block.kind is not BlockKind.CROSS_REFERENCE or reference is None:
                    kept.append(block)
                    continue
                report.checked += 1
                if reference.target in index:
                    kept.append(block)
                    continue

                replacement = self._repair(reference, index) if self.auto_repair else None
                if replacement is not None:
                    target, score = replacement
                    kept.append(
                        ContentBlock.link(
                            target,
                            reference.label,
                            relation=reference.relation,
                            text=block.text,
                            heading=block.heading,
                        )
                    )
                    report.repaired += 1
                    report.findings.append(
                        Finding(
                            kind=FindingKind.CROSS_REFERENCE_REPAIRED,
                            stage=STAGE,
                            subject=node.path,
                            message=f"Retargeted '{reference.target}' to '{target}'",
                            details={"original": reference.target, "target": target, "score": round(score, 3)},
                        )
                    )
                    continue

                report.dropped += 1
                report.findings.append(
                    Finding(
                        kind=FindingKind.DANGLING_CROSS_REFERENCE,
                        stage=STAGE,
                        subject=node.path,
                        message=f"Dropped reference to missing page '{reference.target}'",
                        details={"target": reference.target, "label": reference.label},
                    )
                )
                if block.text or block.heading:
                    kept.append(ContentBlock.prose(block.text, heading=block.heading))
            node.blocks = kept

        report.status = VALID_WITH_FINDINGS if report.findings else VALID
        self.logger.info(
            "Checked %d cross-reference(s): %d dropped, %d repaired",
            report.checked,
            report.dropped,
            report.repaired,
        )
        return report

    def _repair(self, reference: CrossReference, index: Dict[str, DocumentNode]) -> Optional[Tuple[str, float]]:
        wanted_label = reference.label.lower()
        wanted_segment = reference.target.rsplit("/", 1)[-1].lower()
        best: Optional[Tuple[str, float]] = None
        for path, node in index.items():
            score = max(
                difflib.SequenceMatcher(None, wanted_label, node.title.lower()).ratio(),
                difflib.SequenceMatcher(None, wanted_segment, path.rsplit("/", 1)[-1].lower()).ratio(),
            )
            if best is None or score > best[1]:
                best = (path, score)
        if best is None or best[1] < self.repair_threshold:
            return None
        return best


__all__ = ["CrossReferenceValidator", "DEFAULT_REPAIR_THRESHOLD"]
