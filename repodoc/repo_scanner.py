"""Repository scanning: walks the tree and produces normalized source units."""

from __future__ import annotations

import hashlib
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from .config import ScanRule
from .deadline import Deadline
from .logging import get_logger
from .models import Finding, FindingKind, SourceUnit

_LOGGER = get_logger("scanner")

_STAGE = "scan"

DEFAULT_RULES: Tuple[ScanRule, ...] = tuple(
    ScanRule(pattern=pattern, effect="exclude")
    for pattern in (
        # version control metadata
        ".git",
        ".hg",
        ".svn",
        # dependency caches
        "node_modules",
        ".venv",
        "venv",
        "vendor",
        "__pycache__",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        # build output
        "build/",
        "dist/",
        "target/",
        "*.egg-info",
        "*.pyc",
        # test trees
        "tests",
        "test",
        "test_*.py",
        "*_test.py",
        "*_test.go",
        "conftest.py",
        "*.test.*",
        "*.spec.*",
        # temporary files
        "*.tmp",
        "*.swp",
        "*.bak",
        "*~",
        ".DS_Store",
        "Thumbs.db",
    )
)

_ECOSYSTEM_BY_SUFFIX = {
    ".py": "python",
    ".pyi": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".kts": "kotlin",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cc": "cpp",
    ".hh": "cpp",
    ".swift": "swift",
    ".scala": "scala",
    ".sh": "shell",
}

_WILDCARDS = "*?["


class ScanError(RuntimeError):
    """Raised when the repository root is missing or unreadable."""


class _SkipUnit(Exception):
    def __init__(self, reason: str, **details: object) -> None:
        super().__init__(reason)
        self.reason = reason
        self.details = details


@dataclass
class ScanResult:
    """Stable snapshot of the scanned repository."""

    root: Path
    units: List[SourceUnit]
    findings: List[Finding] = field(default_factory=list)
    excluded: int = 0

    def read_text(self, unit: SourceUnit) -> str:
        return (self.root / unit.path).read_text(encoding="utf-8", errors="replace")


@dataclass
class _GlobRule:
    """Compiled form of a ScanRule."""

    pattern: str
    include: bool
    directory_only: bool
    anchored: bool
    regex: Pattern[str]
    literal_prefix: str

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        parts = rel_path.split("/")
        if self.anchored:
            candidates = ["/".join(parts[: index + 1]) for index in range(len(parts))]
        else:
            candidates = list(parts)
        for position, candidate in enumerate(candidates):
            is_last = position == len(candidates) - 1
            if self.directory_only and is_last and not is_dir:
                continue
            if self.regex.fullmatch(candidate):
                return True
            if self.anchored and (is_dir or not is_last) and self.regex.fullmatch(f"{candidate}/"):
                return True
        return False

    def may_apply_beneath(self, rel_dir: str) -> bool:
        if not self.anchored:
            return False
        prefix = f"{rel_dir}/"
        return self.literal_prefix.startswith(prefix) or prefix.startswith(self.literal_prefix)


def _glob_to_regex(pattern: str) -> Pattern[str]:
    parts: List[str] = []
    index = 0
    length = len(pattern)
    while index < length:
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
            continue
        if pattern.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = pattern[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            closing = pattern.find("]", index + 1)
            if closing == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : closing]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                index = closing
        else:
            parts.append(re.escape(char))
        index += 1
    return re.compile("".join(parts))


def compile_rule(rule: ScanRule) -> _GlobRule:
    pattern = rule.pattern.strip().replace("\\", "/")
    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")
    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")
    anchored = anchored or "/" in pattern
    prefix_end = min((pattern.find(char) for char in _WILDCARDS if char in pattern), default=len(pattern))
    return _GlobRule(
        pattern=pattern,
        include=rule.include,
        directory_only=directory_only,
        anchored=anchored,
        regex=_glob_to_regex(pattern),
        literal_prefix=pattern[:prefix_end],
    )


def parse_gitignore(path: Path) -> List[ScanRule]:
    """Translate a .gitignore file into ordered scan rules."""
    if not path.is_file():
        return []

    rules: List[ScanRule] = []
    for raw_line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("!"):
            if line[1:].strip():
                rules.append(ScanRule(pattern=line[1:].strip(), effect="include"))
            continue
        rules.append(ScanRule(pattern=line, effect="exclude"))
    return rules


class _RuleSet:
    def __init__(self, rules: Iterable[ScanRule]) -> None:
        self._rules = [compile_rule(rule) for rule in rules if rule.pattern.strip()]
        self._includes = [rule for rule in self._rules if rule.include]

    def excluded(self, rel_path: str, is_dir: bool) -> bool:
        excluded = False
        for rule in self._rules:
            if rule.matches(rel_path, is_dir):
                excluded = not rule.include
        return excluded

    def prunes(self, rel_dir: str) -> bool:
        if not self.excluded(rel_dir, True):
            return False
        return not any(rule.may_apply_beneath(rel_dir) for rule in self._includes)


@dataclass
class _Candidate:
    rel_path: str
    abs_path: str
    real_path: str
    via_symlink: bool


@dataclass
class _WalkBuffer:
    candidates: List[_Candidate] = field(default_factory=list)
    findings: List[Finding] = field(default_factory=list)
    excluded: int = 0


def detect_ecosystem(path: str) -> Optional[str]:
    suffix = os.path.splitext(path)[1].lower()
    return _ECOSYSTEM_BY_SUFFIX.get(suffix)


def _hash_file(path: Path, *, max_bytes: int, timeout: float) -> Tuple[int, str]:
    size = path.stat().st_size
    if size > max_bytes:
        raise _SkipUnit("exceeds size bound", size=size, limit=max_bytes)
    digest = hashlib.sha256()
    started = time.monotonic()
    read = 0
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(64 * 1024), b""):
            read += len(chunk)
            if read > max_bytes:
                raise _SkipUnit("exceeds size bound", size=read, limit=max_bytes)
            if time.monotonic() - started > timeout:
                raise _SkipUnit("exceeds read time bound", timeout=timeout)
            digest.update(chunk)
    return read, digest.hexdigest()


def _default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


class RepoScanner:
    """Walks the repository to produce an ordered list of source units."""

    def __init__(
        self,
        rules: Sequence[ScanRule] | None = None,
        *,
        respect_gitignore: bool = True,
        max_file_bytes: int = 1024 * 1024,
        read_timeout: float = 5.0,
        workers: int | None = None,
    ) -> None:
        self.rules = list(rules or [])
        self.respect_gitignore = respect_gitignore
        self.max_file_bytes = max_file_bytes
        self.read_timeout = read_timeout
        self.workers = workers or _default_workers()

    def scan(
        self,
        root: str | Path,
        rules: Sequence[ScanRule] | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> ScanResult:
        """Walk ``root`` fully and return a snapshot sorted by path."""
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise ScanError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise ScanError(f"Repository path is not a directory: {root}")
        root_path = root_path.resolve()
        try:
            with os.scandir(root_path):
                pass
        except OSError as exc:
            raise ScanError(f"Repository path is unreadable: {root}: {exc}") from exc

        deadline = deadline or Deadline()
        ordered_rules: List[ScanRule] = list(DEFAULT_RULES)
        if self.respect_gitignore:
            ordered_rules.extend(parse_gitignore(root_path / ".gitignore"))
        ordered_rules.extend(self.rules)
        ordered_rules.extend(rules or [])
        rule_set = _RuleSet(ordered_rules)

        root_real = os.path.realpath(root_path)
        top = _WalkBuffer()
        subtrees: List[Tuple[str, str, Tuple[str, ...], bool]] = []
        self._walk_directory(
            root_path,
            "",
            (root_real,),
            False,
            rule_set,
            top,
            deadline,
            descend=lambda abs_dir, rel, ancestors, via: subtrees.append((abs_dir, rel, ancestors, via)),
        )

        buffers = [top]
        if subtrees:
            with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="RepoScan") as executor:
                futures = [
                    executor.submit(self._walk_subtree, entry, rule_set, deadline) for entry in subtrees
                ]
                buffers.extend(future.result() for future in futures)

        candidates = self._deduplicate(candidate for buffer in buffers for candidate in buffer.candidates)
        findings: List[Finding] = [finding for buffer in buffers for finding in buffer.findings]
        excluded = sum(buffer.excluded for buffer in buffers)

        units: List[SourceUnit] = []
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="RepoHash") as executor:
            outcomes = list(executor.map(lambda item: self._load_unit(item, deadline), candidates))
        for outcome in outcomes:
            if isinstance(outcome, Finding):
                findings.append(outcome)
            else:
                units.append(outcome)

        findings.sort(key=lambda finding: (finding.kind.value, finding.subject))
        if excluded:
            findings.insert(
                0,
                Finding(
                    kind=FindingKind.SCAN_EXCLUSIONS,
                    stage=_STAGE,
                    subject=".",
                    message=f"{excluded} path(s) excluded by scan rules",
                    details={"count": excluded},
                ),
            )

        _LOGGER.info("Scanned %s: %d units, %d excluded", root_path, len(units), excluded)
        return ScanResult(root=root_path, units=units, findings=findings, excluded=excluded)

    def _walk_subtree(
        self,
        entry: Tuple[str, str, Tuple[str, ...], bool],
        rule_set: _RuleSet,
        deadline: Deadline,
    ) -> _WalkBuffer:
        buffer = _WalkBuffer()
        pending = [entry]
        while pending:
            abs_dir, rel_dir, ancestors, via_symlink = pending.pop()
            self._walk_directory(
                Path(abs_dir),
                rel_dir,
                ancestors,
                via_symlink,
                rule_set,
                buffer,
                deadline,
                descend=lambda *item: pending.append(item),
            )
        return buffer

    def _walk_directory(
        self,
        abs_dir: Path,
        rel_dir: str,
        ancestors: Tuple[str, ...],
        via_symlink: bool,
        rule_set: _RuleSet,
        buffer: _WalkBuffer,
        deadline: Deadline,
        *,
        descend,
    ) -> None:
        try:
            with os.scandir(abs_dir) as iterator:
                entries = sorted(iterator, key=lambda item: item.name)
        except OSError as exc:
            _LOGGER.warning("Skipping unreadable directory %s: %s", rel_dir or ".", exc)
            return

        for entry in entries:
            deadline.check(_STAGE)
            rel_path = f"{rel_dir}/{entry.name}" if rel_dir else entry.name
            is_link = entry.is_symlink()
            try:
                is_dir = entry.is_dir(follow_symlinks=True)
                is_file = not is_dir and entry.is_file(follow_symlinks=True)
            except OSError:
                continue

            if is_dir:
                if rule_set.prunes(rel_path):
                    _LOGGER.debug("Excluded directory %s", rel_path)
                    buffer.excluded += 1
                    continue
                real = os.path.realpath(entry.path)
                if real in ancestors:
                    buffer.findings.append(
                        Finding(
                            kind=FindingKind.SYMLINK_CYCLE,
                            stage=_STAGE,
                            subject=rel_path,
                            message=f"Symlink cycle at {rel_path}; not followed",
                        )
                    )
                    continue
                descend(entry.path, rel_path, ancestors + (real,), via_symlink or is_link)
            elif is_file:
                if rule_set.excluded(rel_path, False):
                    _LOGGER.debug("Excluded file %s", rel_path)
                    buffer.excluded += 1
                    continue
                buffer.candidates.append(
                    _Candidate(
                        rel_path=rel_path,
                        abs_path=entry.path,
                        real_path=os.path.realpath(entry.path),
                        via_symlink=via_symlink or is_link,
                    )
                )

    @staticmethod
    def _deduplicate(candidates: Iterable[_Candidate]) -> List[_Candidate]:
        chosen: dict[str, _Candidate] = {}
        for candidate in sorted(candidates, key=lambda item: (item.via_symlink, item.rel_path)):
            if candidate.real_path in chosen:
                _LOGGER.debug("Skipping %s: same file as %s", candidate.rel_path, chosen[candidate.real_path].rel_path)
                continue
            chosen[candidate.real_path] = candidate
        return sorted(chosen.values(), key=lambda item: item.rel_path)

    def _load_unit(self, candidate: _Candidate, deadline: Deadline) -> SourceUnit | Finding:
        deadline.check(_STAGE)
        try:
            size, digest = _hash_file(
                Path(candidate.abs_path),
                max_bytes=self.max_file_bytes,
                timeout=self.read_timeout,
            )
        except _SkipUnit as skip:
            _LOGGER.warning("Skipping %s: %s", candidate.rel_path, skip.reason)
            return Finding(
                kind=FindingKind.UNIT_SKIPPED,
                stage=_STAGE,
                subject=candidate.rel_path,
                message=f"{candidate.rel_path} skipped: {skip.reason}",
                details=dict(skip.details),
            )
        except OSError as exc:
            _LOGGER.warning("Skipping %s: %s", candidate.rel_path, exc)
            return Finding(
                kind=FindingKind.UNIT_SKIPPED,
                stage=_STAGE,
                subject=candidate.rel_path,
                message=f"{candidate.rel_path} skipped: unreadable",
            )
        return SourceUnit(
            path=candidate.rel_path,
            ecosystem=detect_ecosystem(candidate.rel_path),
            size=size,
            hash=digest,
        )


__all__ = [
    "DEFAULT_RULES",
    "RepoScanner",
    "ScanError",
    "ScanResult",
    "compile_rule",
    "detect_ecosystem",
    "parse_gitignore",
]
