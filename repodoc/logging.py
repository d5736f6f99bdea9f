"""Logging utilities for repodoc commands.

Records carry a ``stage`` attribute naming the pipeline component that emitted
them (``extractor``, ``graph``, ``validators.crossref``), so console lines read
``[repodoc:extractor] INFO ...``.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable

from .models import Finding, FindingKind

_LOGGER_NAME = "repodoc"
CONSOLE_FORMAT = "[repodoc:%(stage)s] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(stage)s: %(message)s"

# Findings that mean part of the repository went undocumented.
_WARNING_FINDINGS = {
    FindingKind.ADAPTER_ERROR,
    FindingKind.SYMLINK_CYCLE,
    FindingKind.EXTENDS_CYCLE,
    FindingKind.DANGLING_CROSS_REFERENCE,
    FindingKind.DEADLINE_EXCEEDED,
}


class StageFilter(logging.Filter):
    """Set ``record.stage`` from the logger name unless the caller supplied one."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "stage", None):
            name = record.name
            if name.startswith(f"{_LOGGER_NAME}."):
                record.stage = name[len(_LOGGER_NAME) + 1 :]
            else:
                record.stage = "cli" if name == _LOGGER_NAME else name
        return True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the repodoc hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Configure the repodoc logger with console output and an optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.addFilter(StageFilter())
    stream_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.addFilter(StageFilter())
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def log_findings(logger: logging.Logger, findings: Iterable[Finding]) -> None:
    """Log a per-kind tally, then each finding under the stage that recorded it."""
    findings = list(findings)
    if not findings:
        return
    counts = Counter(finding.kind.value for finding in findings)
    logger.info("Findings: %s", ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items())))
    for finding in findings:
        level = logging.WARNING if finding.kind in _WARNING_FINDINGS else logging.DEBUG
        logger.log(
            level,
            "%s %s: %s",
            finding.kind.value,
            finding.subject,
            finding.message,
            extra={"stage": finding.stage},
        )


__all__ = ["CONSOLE_FORMAT", "FILE_FORMAT", "StageFilter", "configure_logging", "get_logger", "log_findings"]
