from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable

from cvmatch.schemas.progress import ProgressEvent, ProgressSnapshot, ProgressStep, RunStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepDefinition:
    id: str
    name: str
    percentage: int


STEPS: tuple[StepDefinition, ...] = (
    StepDefinition("upload", "Processing CV file", 0),
    StepDefinition("ats", "Checking ATS compatibility", 10),
    StepDefinition("parsing", "Parsing CV and job description", 20),
    StepDefinition("keywords", "Extracting keywords (10+ per category)", 35),
    StepDefinition("embeddings", "Generating contextual embeddings", 50),
    StepDefinition("similarity", "Calculating similarity scores", 65),
    StepDefinition("recommendations", "Generating recommendations", 80),
    StepDefinition("suggestions", "Creating improvement suggestions", 90),
    StepDefinition("complete", "Analysis complete", 100),
)

TERMINAL_STEP_ID = "complete"
_STEP_INDEX = {step.id: idx for idx, step in enumerate(STEPS)}


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ProgressState:
    analysis_id: str
    started_at: float
    updated_at: float
    steps: list[ProgressStep] = field(
        default_factory=lambda: [ProgressStep(id=s.id, name=s.name, percentage=s.percentage) for s in STEPS]
    )
    current_index: int = -1
    percentage: int = 0
    status: RunStatus = "in_progress"
    finished_at: float | None = None
    last_event: ProgressEvent | None = None
    subscribers: set[asyncio.Queue] = field(default_factory=set)

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    @property
    def current_step(self) -> ProgressStep | None:
        if self.current_index < 0:
            return None
        return self.steps[self.current_index]


class ProgressTracker:
    """Per-analysis progress state with push delivery to stream subscribers.

    Each analysis id owns one ProgressState. Steps only move forward, the
    percentage never decreases, and exactly one terminal event (completed or
    failed) is emitted per run. Finished entries are kept for `retention_s`
    so late subscribers can read the outcome; unfinished entries older than
    `ttl_s` are failed and evicted by `purge_expired`.
    """

    def __init__(
        self,
        *,
        ttl_s: float = 900.0,
        retention_s: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_s = ttl_s
        self.retention_s = retention_s
        self._clock = clock
        self._states: dict[str, ProgressState] = {}

    def __contains__(self, analysis_id: str) -> bool:
        return analysis_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def init(self, analysis_id: str) -> ProgressSnapshot:
        existing = self._states.get(analysis_id)
        if existing is not None and not existing.finished:
            return self._snapshot(existing)
        now = self._clock()
        state = ProgressState(analysis_id=analysis_id, started_at=now, updated_at=now)
        self._states[analysis_id] = state
        logger.info("progress_init analysis_id=%s", analysis_id)
        return self._snapshot(state)

    def advance(
        self,
        analysis_id: str,
        step_id: str,
        details: dict[str, Any] | None = None,
        message: str | None = None,
    ) -> ProgressEvent | None:
        state = self._active_state(analysis_id)
        if state is None:
            return None
        index = self._step_index(step_id)
        if index < state.current_index:
            logger.warning(
                "progress_regression_ignored analysis_id=%s step=%s current=%s",
                analysis_id,
                step_id,
                state.steps[state.current_index].id,
            )
            return None

        step = state.steps[index]
        if step.status == "completed":
            logger.warning("progress_step_already_completed analysis_id=%s step=%s", analysis_id, step_id)
            return None

        for earlier in state.steps[:index]:
            earlier.status = "completed"
        step.status = "in_progress"
        if details:
            step.details = {**(step.details or {}), **details}
        state.current_index = index
        state.percentage = max(state.percentage, step.percentage)
        return self._emit(state, message or step.name, details or {})

    def complete(
        self,
        analysis_id: str,
        step_id: str,
        results: dict[str, Any] | None = None,
    ) -> ProgressEvent | None:
        state = self._active_state(analysis_id)
        if state is None:
            return None
        index = self._step_index(step_id)
        step = state.steps[index]
        if step.status == "completed":
            logger.warning("progress_step_already_completed analysis_id=%s step=%s", analysis_id, step_id)
            return None

        terminal = step_id == TERMINAL_STEP_ID
        step.status = "completed"
        if results:
            step.details = {**(step.details or {}), **results}
        state.current_index = max(state.current_index, index)
        state.percentage = max(state.percentage, step.percentage)
        if terminal:
            state.status = "completed"
            state.finished_at = self._clock()

        event = self._emit(
            state,
            "Analysis completed successfully" if terminal else f"{step.name} - done",
            results or {},
            current=step,
        )
        if not terminal and index + 1 < len(STEPS):
            self.advance(analysis_id, STEPS[index + 1].id)
        return event

    def fail(self, analysis_id: str, message: str) -> ProgressEvent | None:
        state = self._active_state(analysis_id)
        if state is None:
            return None
        state.status = "failed"
        state.finished_at = self._clock()
        current = state.current_step or state.steps[0]
        logger.warning("progress_failed analysis_id=%s step=%s", analysis_id, current.id)
        return self._emit(state, message, {"error": message}, current=current)

    def snapshot(self, analysis_id: str) -> ProgressSnapshot | None:
        state = self._states.get(analysis_id)
        if state is None:
            return None
        return self._snapshot(state)

    async def subscribe(self, analysis_id: str) -> AsyncIterator[ProgressEvent]:
        """Yield events for one analysis until its terminal event.

        The latest event is replayed first. Leaving the iterator early only
        detaches this subscriber; the analysis keeps running.
        """
        state = self._states.get(analysis_id)
        if state is None:
            raise KeyError(analysis_id)

        queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()
        if state.last_event is not None:
            queue.put_nowait(state.last_event)
        if not state.finished:
            state.subscribers.add(queue)
        try:
            while True:
                event = await queue.get()
                yield event
                if event.completed:
                    break
        finally:
            state.subscribers.discard(queue)

    def remove(self, analysis_id: str) -> None:
        state = self._states.pop(analysis_id, None)
        if state is not None:
            state.subscribers.clear()

    def purge_expired(self, now: float | None = None) -> list[str]:
        now = self._clock() if now is None else now
        expired: list[str] = []
        for analysis_id, state in list(self._states.items()):
            if state.finished:
                if state.finished_at is not None and now - state.finished_at >= self.retention_s:
                    expired.append(analysis_id)
            elif now - state.updated_at >= self.ttl_s:
                self.fail(analysis_id, "Analysis timed out")
                expired.append(analysis_id)
        for analysis_id in expired:
            self.remove(analysis_id)
        if expired:
            logger.info("progress_purged count=%s", len(expired))
        return expired

    def _active_state(self, analysis_id: str) -> ProgressState | None:
        state = self._states.get(analysis_id)
        if state is None:
            logger.warning("progress_unknown_analysis analysis_id=%s", analysis_id)
            return None
        if state.finished:
            logger.warning("progress_already_finished analysis_id=%s status=%s", analysis_id, state.status)
            return None
        return state

    @staticmethod
    def _step_index(step_id: str) -> int:
        try:
            return _STEP_INDEX[step_id]
        except KeyError:
            raise ValueError(f"Unknown progress step '{step_id}'") from None

    def _emit(
        self,
        state: ProgressState,
        message: str,
        details: dict[str, Any],
        *,
        current: ProgressStep | None = None,
    ) -> ProgressEvent:
        step = current or state.current_step or state.steps[0]
        state.updated_at = self._clock()
        event = ProgressEvent(
            current_step=step.model_copy(deep=True),
            percentage=state.percentage,
            message=message,
            details=details,
            completed=state.finished,
            status=state.status,
            timestamp=_now_ms(),
        )
        state.last_event = event
        for queue in list(state.subscribers):
            queue.put_nowait(event)
        return event

    def _snapshot(self, state: ProgressState) -> ProgressSnapshot:
        return ProgressSnapshot(
            analysis_id=state.analysis_id,
            percentage=state.percentage,
            current_step=state.current_step.model_copy(deep=True) if state.current_step else None,
            all_steps=[step.model_copy(deep=True) for step in state.steps],
            elapsed_time=int(((state.finished_at or self._clock()) - state.started_at) * 1000),
            completed=state.finished,
            status=state.status,
        )
