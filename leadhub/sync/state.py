"""LeadHub — Run State Tracking.

In-memory idle → running → completed/error state for one kind of run.
Claiming a run happens without an await in between, so within one event
loop only one caller can win. Separate processes do not share this state.
"""

from datetime import datetime, timezone
from typing import Callable, Generic, TypeVar

from leadhub.core.errors import SyncAlreadyRunning
from leadhub.models.sync_models import RunProgress, RunStatus

P = TypeVar("P", bound=RunProgress)


class RunTracker(Generic[P]):
    def __init__(self, progress_factory: Callable[[], P]):
        self._factory = progress_factory
        self.progress: P = progress_factory()

    @property
    def is_running(self) -> bool:
        return self.progress.status == RunStatus.RUNNING

    def try_begin(self) -> P:
        """Claim the run or raise SyncAlreadyRunning with the live snapshot."""
        if self.is_running:
            raise SyncAlreadyRunning(self.snapshot())
        self.progress = self._factory()
        self.progress.status = RunStatus.RUNNING
        self.progress.started_at = datetime.now(timezone.utc)
        return self.progress

    def snapshot(self) -> P:
        return self.progress.model_copy(deep=True)

    def complete(self) -> None:
        self.progress.status = RunStatus.COMPLETED
        self.progress.finished_at = datetime.now(timezone.utc)

    def fail(self, error: str) -> None:
        self.progress.status = RunStatus.ERROR
        self.progress.error = error
        self.progress.finished_at = datetime.now(timezone.utc)
