"""Tests for repodoc.validators.crossref."""

from __future__ import annotations

import pytest

from repodoc.models import BlockKind, ContentBlock, DocumentNode, FindingKind, NodeKind
from repodoc.validators import VALID, VALID_WITH_FINDINGS, CrossReferenceValidator


def _tree(*blocks: ContentBlock) -> DocumentNode:
    root = DocumentNode(path="README", title="Shop Documentation", kind=NodeKind.HUB, blocks=list(blocks))
    section = root.add(DocumentNode(path="technical/README", title="Technical Reference", kind=NodeKind.SECTION))
    section.add(
        DocumentNode(
            path="technical/components/app-store-order-store",
            title="OrderStore",
            kind=NodeKind.COMPONENT_PAGE,
        )
    )
    return root


def test_tree_without_dangling_references_is_valid() -> None:
    tree = _tree(ContentBlock.link("technical/README", "Technical Reference"))

    report = CrossReferenceValidator().validate(tree)

    assert report.status == VALID
    assert report.findings == []
    assert report.checked == 1


def test_dangling_reference_is_dropped_and_reported() -> None:
    tree = _tree(
        ContentBlock.link("technical/components/missing", "Missing", text="Gone.", heading="Components"),
        ContentBlock.prose("Unrelated."),
    )

    report = CrossReferenceValidator().validate(tree)

    assert report.status == VALID_WITH_FINDINGS
    assert report.dropped == 1
    assert [finding.kind for finding in report.findings] == [FindingKind.DANGLING_CROSS_REFERENCE]
    assert report.findings[0].subject == "README"
    assert report.findings[0].details == {"target": "technical/components/missing", "label": "Missing"}
    assert [block.kind for block in tree.blocks] == [BlockKind.PROSE, BlockKind.PROSE]
    assert tree.blocks[0].heading == "Components"
    assert tree.blocks[0].text == "Gone."
    assert all(reference.target in tree.path_index() for reference in tree.references())


def test_bare_dangling_reference_leaves_nothing_behind() -> None:
    tree = _tree(ContentBlock.link("nowhere", "Nowhere"))

    CrossReferenceValidator().validate(tree)

    assert tree.blocks == []


def test_auto_repair_retargets_to_most_similar_page() -> None:
    tree = _tree(ContentBlock.link("technical/components/app-store-order-stor", "OrderStore"))

    report = CrossReferenceValidator(auto_repair=True).validate(tree)

    assert report.repaired == 1
    assert report.dropped == 0
    assert report.status == VALID_WITH_FINDINGS
    assert report.findings[0].kind is FindingKind.CROSS_REFERENCE_REPAIRED
    assert report.findings[0].details["target"] == "technical/components/app-store-order-store"
    assert tree.blocks[0].reference is not None
    assert tree.blocks[0].reference.target == "technical/components/app-store-order-store"


def test_auto_repair_drops_when_nothing_is_similar_enough() -> None:
    tree = _tree(ContentBlock.link("zzz/qqq", "Xylophone"))

    report = CrossReferenceValidator(auto_repair=True).validate(tree)

    assert report.repaired == 0
    assert report.dropped == 1
    assert tree.references() == []


def test_validation_never_adds_pages() -> None:
    tree = _tree(ContentBlock.link("technical/components/other", "Other"))
    before = [node.path for node in tree.walk()]

    CrossReferenceValidator(auto_repair=True).validate(tree)

    assert [node.path for node in tree.walk()] == before


def test_threshold_must_be_a_ratio() -> None:
    with pytest.raises(ValueError):
        CrossReferenceValidator(repair_threshold=1.5)
