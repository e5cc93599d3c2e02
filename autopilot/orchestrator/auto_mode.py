"""
Auto Mode - inbound commands and the backlog loop

Owns the registry of in-flight Executions. One Execution per feature at a
time; a second start for a feature that is still running is refused rather
than allowed to race the first on the feature list.
"""

import logging

from autopilot.context_log import ContextLog
from autopilot.exceptions import ExecutionBusyError, FeatureNotFoundError
from autopilot.features import FeatureStatus, FeatureStore, select_next
from autopilot.orchestrator.controller import AttemptResult, ExecutionController
from autopilot.orchestrator.execution import Execution
from autopilot.state import AttemptKind

logger = logging.getLogger(__name__)


class AutoModeService:
    """
    Start, cancel and loop over feature attempts for one project.

    Args:
        controller: Controller that runs each attempt
        store: Feature store to select from
        context_log: Transcript store, read back for resumes
    """

    def __init__(
        self,
        controller: ExecutionController,
        store: FeatureStore,
        context_log: ContextLog,
    ):
        self.controller = controller
        self.store = store
        self.context_log = context_log
        self._running: dict[str, Execution] = {}
        self._stopped = False

    @property
    def running_feature_ids(self) -> list[str]:
        return list(self._running)

    def is_running(self, feature_id: str) -> bool:
        execution = self._running.get(feature_id)
        return execution is not None and execution.is_active()

    async def start(
        self,
        feature_id: str,
        kind: AttemptKind | str = AttemptKind.IMPLEMENT,
        previous_context: str | None = None,
        fresh: bool = False,
    ) -> AttemptResult:
        """
        Run one attempt for a feature and wait for its result.

        With ``fresh`` an implement attempt first discards the feature's
        recorded transcript.

        Raises:
            FeatureNotFoundError: If no feature has this id
            ExecutionBusyError: If an attempt for the feature is still running
        """
        kind = AttemptKind(kind)
        feature = self.store.get(feature_id)
        if feature is None:
            raise FeatureNotFoundError(feature_id)
        if self.is_running(feature_id):
            raise ExecutionBusyError(feature_id, kind.value)

        execution = Execution(feature_id, kind)
        self._running[feature_id] = execution
        try:
            if kind == AttemptKind.IMPLEMENT:
                if fresh and self.context_log.clear(feature_id):
                    logger.info(f"Discarded previous context for {feature_id}")
                self.store.update_status(feature_id, FeatureStatus.IN_PROGRESS)
                return await self.controller.implement(feature, execution)
            if kind == AttemptKind.RESUME:
                return await self.controller.resume(feature, execution, previous_context)
            return await self.controller.commit(feature, execution)
        finally:
            if self._running.get(feature_id) is execution:
                del self._running[feature_id]

    def cancel(self, feature_id: str) -> bool:
        """Stop the running attempt for a feature. Returns False if none was running."""
        execution = self._running.get(feature_id)
        if execution is None or not execution.is_active():
            return False
        logger.info(f"Cancelling {execution.kind.value} of {feature_id}")
        execution.stop()
        return True

    def cancel_all(self) -> int:
        """Stop every running attempt and return how many were stopped."""
        return sum(1 for feature_id in list(self._running) if self.cancel(feature_id))

    def stop(self) -> None:
        """End the backlog loop after the current attempt and cancel running attempts."""
        self._stopped = True
        self.cancel_all()

    async def run(self, max_features: int | None = None) -> list[AttemptResult]:
        """
        Implement features one after another until the backlog is exhausted.

        Each feature is attempted at most once per run. A failed verification
        moves on to the next feature; an aborted attempt ends the loop; a
        raised fault propagates and halts the backlog.
        """
        self._stopped = False
        attempted: set[str] = set()
        results: list[AttemptResult] = []

        while not self._stopped:
            if max_features is not None and len(results) >= max_features:
                break

            candidates = [f for f in self.store.load() if f.id not in attempted]
            feature = select_next(candidates)
            if feature is None:
                logger.info("No remaining features to implement")
                break

            attempted.add(feature.id)
            logger.info(f"Auto mode: implementing {feature.id}")
            result = await self.start(feature.id, AttemptKind.IMPLEMENT)
            results.append(result)

            if result.aborted:
                logger.info(f"Auto mode stopped: {result.message}")
                break

        return results
