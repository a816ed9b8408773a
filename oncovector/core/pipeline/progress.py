"""
Progress State

Single-writer progress record for the active run. The controller is the only
writer; any number of readers poll snapshot() or subscribe() for a callback
after every write.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from oncovector.utils import get_logger, ProgressInvariantError
from .stages import PipelineStage

logger = get_logger(__name__)

LOG_CAPACITY = 4
INITIAL_LABEL = "Initializing..."


@dataclass(frozen=True)
class ProgressSnapshot:
    stage: PipelineStage
    label: str
    percent: int
    log: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage.value,
            "label": self.label,
            "percent": self.percent,
            "log": list(self.log),
        }


ProgressObserver = Callable[[ProgressSnapshot], None]


class ProgressState:
    """Current stage, human label, percent complete and the last few log lines."""

    def __init__(self, log_capacity: int = LOG_CAPACITY):
        self.stage: PipelineStage = PipelineStage.IDLE
        self.label: str = INITIAL_LABEL
        self.percent: int = 0
        self._log: Deque[str] = deque(maxlen=log_capacity)
        self._observers: List[ProgressObserver] = []

    @property
    def log(self) -> Tuple[str, ...]:
        return tuple(self._log)

    def reset(
        self,
        stage: PipelineStage = PipelineStage.IDLE,
        label: str = INITIAL_LABEL,
        percent: int = 0,
        first_entry: Optional[str] = None,
    ) -> None:
        """Start a new run: the only place percent may go down."""
        self._check_range(percent)
        self._log.clear()
        self.stage = stage
        self.label = label
        self.percent = percent
        if first_entry:
            self._log.append(first_entry)
        self._notify()

    def advance(
        self,
        stage: PipelineStage,
        label: Optional[str] = None,
        percent: Optional[int] = None,
    ) -> None:
        """
        Move to `stage`, optionally updating label and percent.

        Raises:
            ProgressInvariantError: percent is outside [0, 100] or lower than
                the current value.
        """
        if percent is not None:
            self._check_range(percent)
            if percent < self.percent:
                raise ProgressInvariantError(
                    f"Progress cannot decrease within a run ({self.percent} -> {percent})"
                )
        self.stage = stage
        if label is not None:
            self.label = label
        if percent is not None:
            self.percent = percent
        self._notify()

    def append_log(self, entry: str) -> None:
        self._log.append(entry)
        self._notify()

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            stage=self.stage,
            label=self.label,
            percent=self.percent,
            log=tuple(self._log),
        )

    def subscribe(self, observer: ProgressObserver) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        if not self._observers:
            return
        snapshot = self.snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:
                # Readers must not be able to break the writer
                logger.error(f"Progress observer {observer!r} raised {exc}", exc_info=True)

    @staticmethod
    def _check_range(percent: int) -> None:
        if not 0 <= percent <= 100:
            raise ProgressInvariantError(f"Progress percent out of range: {percent}")
