# app/services/triggers.py
from __future__ import annotations

"""
In-process document triggers for sub-content writes.

Mirrors the host platform's "on document written" hook: the dispatcher gets
the before/after images of a sub-content document and runs the matching
fan-out. Delivery is at-least-once: partial propagation failures and store
errors are retried (every run re-derives its work from current state, so
replays converge); validation errors are not, because retrying cannot fix
the input.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import PartialPropagationFailure, ValidationFailedError
from app.docstore.base import DocumentStoreError
from app.services.slider_propagation import PropagationReport, SliderPropagator

logger = logging.getLogger(__name__)


@dataclass
class TriggerResult:
    event: str  # "create" | "update" | "delete" | "noop"
    ok: bool = True
    attempts: int = 0
    report: Optional[PropagationReport] = None
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        """Client-facing view: counters and a classified error, never store detail."""
        report = None
        if self.report is not None:
            report = {k: v for k, v in self.report.as_dict().items() if k != "failures"}
            report["failures"] = len(self.report.failures)
        return {
            "event": self.event,
            "ok": self.ok,
            "attempts": self.attempts,
            "report": report,
            "error": self.error,
        }


def _classify(exc: Exception) -> str:
    """Public summary of a failed run; the raw exception is only logged."""
    if isinstance(exc, (PartialPropagationFailure, ValidationFailedError)):
        return f"{exc.kind}: {exc.message}"
    return f"{type(exc).__name__}: Operation failed."


class TriggerDispatcher:
    def __init__(self, propagator: SliderPropagator, *, max_attempts: Optional[int] = None) -> None:
        self.propagator = propagator
        self.max_attempts = max(1, int(max_attempts or settings.TRIGGER_MAX_ATTEMPTS))

    async def on_sub_content_written(
        self,
        series_id: str,
        sub_content_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
    ) -> TriggerResult:
        if before is None and after is None:
            return TriggerResult("noop")
        if before is None:
            # a brand-new document cannot be embedded anywhere yet
            return TriggerResult("create")

        if after is None:
            event = "delete"

            async def run() -> PropagationReport:
                return await self.propagator.propagate_delete(series_id, sub_content_id)

        else:
            event = "update"

            async def run() -> PropagationReport:
                return await self.propagator.propagate_update(series_id, sub_content_id, after)

        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                report = await run()
                return TriggerResult(event, ok=True, attempts=attempt, report=report)
            except ValidationFailedError as exc:
                logger.error(
                    "subContent %s sync rejected series=%s subContent=%s: %s",
                    event, series_id, sub_content_id, exc.errors,
                )
                return TriggerResult(event, ok=False, attempts=attempt, error=_classify(exc))
            except (PartialPropagationFailure, DocumentStoreError) as exc:
                last_error = exc
                logger.warning(
                    "subContent %s sync attempt %s/%s failed series=%s subContent=%s: %r",
                    event, attempt, self.max_attempts, series_id, sub_content_id, exc,
                )

        logger.error(
            "subContent %s sync gave up series=%s subContent=%s after %s attempt(s)",
            event, series_id, sub_content_id, self.max_attempts,
        )
        report = getattr(last_error, "report", None)
        return TriggerResult(event, ok=False, attempts=self.max_attempts, report=report, error=_classify(last_error))


__all__ = ["TriggerDispatcher", "TriggerResult"]
