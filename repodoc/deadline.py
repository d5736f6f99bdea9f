"""Overall run deadline shared by the pipeline stages."""

from __future__ import annotations

import time
from typing import Iterable, List

from .models import Finding, FindingKind


class DeadlineExceeded(RuntimeError):
    """Raised when a run passes its deadline; carries the findings gathered so far."""

    def __init__(self, stage: str, findings: Iterable[Finding] = ()) -> None:
        super().__init__(f"Deadline exceeded during {stage}")
        self.stage = stage
        self.findings: List[Finding] = list(findings)

    def with_findings(self, findings: Iterable[Finding]) -> "DeadlineExceeded":
        """Return a copy whose findings are ``findings`` followed by the deadline marker."""
        marker = Finding(
            kind=FindingKind.DEADLINE_EXCEEDED,
            stage=self.stage,
            subject=self.stage,
            message=str(self),
        )
        return DeadlineExceeded(self.stage, [*findings, *self.findings, marker])


class Deadline:
    """Monotonic deadline; ``None`` seconds means the run never expires."""

    def __init__(self, seconds: float | None = None, *, clock=time.monotonic) -> None:
        self._clock = clock
        self.seconds = seconds
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self, stage: str) -> None:
        if self.expired():
            raise DeadlineExceeded(stage)


__all__ = ["Deadline", "DeadlineExceeded"]
