"""
Workflow State Store
====================

Single source of truth for pipeline progress. Holds one immutable
WorkflowState snapshot; every mutation publishes a whole new snapshot to all
subscribers. The store does not validate anything: deployability is decided
by the severity gate and written only alongside a detection report.
"""

import queue
import threading
from dataclasses import replace
from typing import Callable, Iterator, List, Optional

from .gate import is_deployable
from .models import (
    CompileArtifact,
    DeployResult,
    DetectionReport,
    WorkflowState,
)

Callback = Callable[[WorkflowState], None]


class Subscription:
    """Live stream of snapshots for one observer"""

    def __init__(self, store: "WorkflowStateStore", callback: Optional[Callback] = None):
        self._store = store
        self._callback = callback
        self._queue: "queue.Queue[Optional[WorkflowState]]" = queue.Queue()
        self.closed = False

    def _deliver(self, snapshot: WorkflowState) -> None:
        if self.closed:
            return
        self._queue.put(snapshot)
        if self._callback is not None:
            self._callback(snapshot)

    def get(self, timeout: Optional[float] = None) -> WorkflowState:
        """Next published snapshot (raises queue.Empty on timeout)"""
        snapshot = self._queue.get(timeout=timeout)
        if snapshot is None:
            raise queue.Empty()
        return snapshot

    def drain(self) -> List[WorkflowState]:
        """All snapshots delivered so far and not yet consumed"""
        items = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return items
            if item is not None:
                items.append(item)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._store._unsubscribe(self)
            self._queue.put(None)

    def __iter__(self) -> Iterator[WorkflowState]:
        while True:
            snapshot = self._queue.get()
            if snapshot is None:
                return
            yield snapshot


class WorkflowStateStore:
    """Versioned publish/subscribe cell for WorkflowState"""

    def __init__(self):
        self._state = WorkflowState()
        self._subscribers: List[Subscription] = []
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> WorkflowState:
        return self._state

    def subscribe(self, callback: Optional[Callback] = None) -> Subscription:
        """Register an observer; the current snapshot is delivered immediately"""
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscribers.append(subscription)
            current = self._state
        subscription._deliver(current)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def _publish(self, build: Callable[[WorkflowState], WorkflowState]) -> WorkflowState:
        # Swap is atomic; concurrent writers still get last-write-wins
        with self._lock:
            new_state = replace(build(self._state), version=self._state.version + 1)
            self._state = new_state
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription._deliver(new_state)
        return new_state

    # ------------------------------------------------------------------
    # Stage mutations
    # ------------------------------------------------------------------

    def set_generated_code(
        self, code: str, compile_artifact: Optional[CompileArtifact] = None
    ) -> WorkflowState:
        """New code body: everything computed for the previous code is dropped"""
        return self._publish(lambda s: WorkflowState(
            version=s.version,
            generated_code=code,
            compile_artifact=compile_artifact,
        ))

    def set_compile_artifact(self, artifact: Optional[CompileArtifact]) -> WorkflowState:
        return self._publish(lambda s: replace(s, compile_artifact=artifact))

    def set_detection_report(self, report: Optional[DetectionReport]) -> WorkflowState:
        ready = is_deployable(report)
        return self._publish(lambda s: replace(
            s,
            detection_report=report,
            final_detection_report=None,
            repaired_code="",
            is_ready_for_deployment=ready,
            deployment_result=None,
        ))

    def set_repair_result(
        self, repaired_code: str, final_report: Optional[DetectionReport] = None
    ) -> WorkflowState:
        """Repaired code is deployable only once its own report passes the gate"""
        ready = is_deployable(final_report)
        return self._publish(lambda s: replace(
            s,
            repaired_code=repaired_code,
            final_detection_report=final_report,
            is_ready_for_deployment=ready,
            deployment_result=None,
        ))

    def set_deployment_result(self, result: Optional[DeployResult]) -> WorkflowState:
        return self._publish(lambda s: replace(s, deployment_result=result))

    def reset(self) -> WorkflowState:
        return self._publish(lambda s: WorkflowState(version=s.version))
