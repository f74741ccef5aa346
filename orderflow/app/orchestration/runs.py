"""In-memory run store."""

import uuid

from orderflow.app.errors import RunNotFoundError
from orderflow.app.orchestration.state import PipelineRun


class RunStore:
    """Process-local store of pipeline runs. Nothing is persisted."""

    def __init__(self) -> None:
        self._runs: dict[uuid.UUID, PipelineRun] = {}

    def create(self) -> PipelineRun:
        run = PipelineRun(run_id=uuid.uuid4())
        self._runs[run.run_id] = run
        return run

    def get(self, run_id: uuid.UUID) -> PipelineRun:
        """Get a run by id.

        Raises:
            RunNotFoundError: Unknown run id
        """
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(f"Run {run_id} not found")
        return run

    def delete(self, run_id: uuid.UUID) -> bool:
        return self._runs.pop(run_id, None) is not None

    def __len__(self) -> int:
        return len(self._runs)
