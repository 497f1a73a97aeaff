"""Apply Executor: run plan actions against a provider and record state."""

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any, Dict, List, Optional
from ..ingest.expressions import Reference
from ..planning.models import ActionType, Plan, PlanAction
from ..planning.values import resolve_value
from ..providers.base import Provider
from ..state.models import StateRecord
from ..state.store import StateStore
from ..utils.errors import ApplyError, InfraPlanError
from ..utils.logging import get_logger
from .models import ActionResult, ActionStatus, ApplyOutcome, ApplyResult

logger = get_logger("apply.executor")


class ApplyExecutor:
    """
    Executes a plan's actions in order against a provider.

    Actions whose prerequisites have all applied are dispatched to a bounded
    thread pool (max_workers=1 runs strictly in plan order). A failed action
    marks every action that transitively requires it as skipped; unrelated
    branches keep going. Nothing is rolled back.

    The state store is written by the worker before its future completes,
    so a dependent action can never start before its prerequisite's record
    is durable.
    """

    def __init__(self, provider: Provider, state_store: StateStore, max_workers: int = 1,
                 poll_interval: float = 0.05):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.provider = provider
        self.state_store = state_store
        self.max_workers = max_workers
        self.poll_interval = poll_interval
        self._cancel = threading.Event()

    def cancel(self) -> None:
        """Stop dispatching new actions. In-flight actions are allowed to finish."""
        if not self._cancel.is_set():
            logger.warning("Cancellation requested: no new actions will start")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def apply(self, plan: Plan, check_serial: bool = True) -> ApplyResult:
        """
        Execute the plan.

        Args:
            plan: Plan from create_plan
            check_serial: Refuse to run if state changed since the plan was made

        Returns:
            ApplyResult with a status per action and the overall outcome

        Raises:
            ApplyError: The plan is stale or malformed (raised before any provider call)
        """
        self._validate(plan, check_serial)

        results: Dict[str, ActionResult] = {
            action.id: ActionResult(action_id=action.id, address=action.address, action=action.action)
            for action in plan.actions
        }
        pending: List[PlanAction] = list(plan.actions)
        in_flight: Dict[Future, PlanAction] = {}
        cancelled = False

        logger.info(f"Applying {len(plan.actions)} actions with {self.max_workers} worker(s)")

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="infraplan-apply") as pool:
            while pending or in_flight:
                try:
                    if self._cancel.is_set():
                        cancelled = True
                        break
                    self._dispatch(pending, in_flight, results, pool)
                    if not in_flight:
                        continue
                    done, _ = wait(list(in_flight), timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                    for future in done:
                        action = in_flight.pop(future)
                        self._complete(action, future, results[action.id])
                except KeyboardInterrupt:
                    logger.warning("Interrupt received, waiting for in-flight actions to finish")
                    self.cancel()

            if in_flight:
                logger.warning(f"Waiting for {len(in_flight)} in-flight action(s) after cancellation")
                wait(list(in_flight))
                for future, action in in_flight.items():
                    self._complete(action, future, results[action.id], at_cancel=True)

        ordered = [results[action.id] for action in plan.actions]
        outcome = _outcome(ordered, cancelled)
        result = ApplyResult(outcome=outcome, results=ordered, cancelled=cancelled)

        counts = result.counts()
        logger.info(
            f"Apply {outcome.value}: {counts['applied']} applied, {counts['failed']} failed, "
            f"{counts['skipped']} skipped, {counts['not_started']} not started"
        )
        return result

    def _validate(self, plan: Plan, check_serial: bool) -> None:
        seen = set()
        for action in plan.actions:
            for required in action.requires:
                if required not in seen:
                    raise ApplyError(
                        f"Malformed plan: {action.id} requires {required}, which is not an earlier action"
                    )
            seen.add(action.id)

        if check_serial and plan.actions:
            current = self.state_store.snapshot().serial
            if current != plan.state_serial:
                raise ApplyError(
                    f"State changed since the plan was created (serial {plan.state_serial} -> {current}). "
                    "Run plan again."
                )

    def _dispatch(
        self,
        pending: List[PlanAction],
        in_flight: Dict[Future, PlanAction],
        results: Dict[str, ActionResult],
        pool: ThreadPoolExecutor
    ) -> None:
        """Skip blocked actions and submit ready ones, walking pending in plan order."""
        remaining: List[PlanAction] = []
        for action in pending:
            blocker = _blocker(action, results)
            if blocker is not None:
                result = results[action.id]
                result.status = ActionStatus.SKIPPED
                result.blocked_by = blocker
                logger.warning(f"Skipping {action.id}: prerequisite {blocker} did not apply")
                continue

            ready = all(results[r].status == ActionStatus.APPLIED for r in action.requires)
            if ready and len(in_flight) < self.max_workers:
                logger.debug(f"Dispatching {action.id}")
                in_flight[pool.submit(self._execute, action)] = action
                continue
            remaining.append(action)
        pending[:] = remaining

    def _complete(self, action: PlanAction, future: Future, result: ActionResult, at_cancel: bool = False) -> None:
        try:
            future.result()
        except InfraPlanError as e:
            result.status = ActionStatus.IN_FLIGHT_AT_CANCEL if at_cancel else ActionStatus.FAILED
            result.error = str(e)
            result.error_type = type(e).__name__
            logger.error(f"{action.id} failed: {e}")
            return
        except Exception as e:
            result.status = ActionStatus.IN_FLIGHT_AT_CANCEL if at_cancel else ActionStatus.FAILED
            result.error = str(e) or repr(e)
            result.error_type = type(e).__name__
            logger.error(f"{action.id} failed unexpectedly: {e}", exc_info=e)
            return

        result.status = ActionStatus.IN_FLIGHT_AT_CANCEL if at_cancel else ActionStatus.APPLIED
        logger.info(f"{action.id} applied")

    def _lookup(self, source: str, reference: Reference) -> Any:
        record = self.state_store.get(reference.target)
        if record is None:
            raise ApplyError(f"{source}: {reference.target} has no applied state")
        try:
            return record.lookup(reference.attribute)
        except KeyError:
            raise ApplyError(f"{source}: {reference.target} has no attribute '{reference.attribute}'")

    def _resolve(self, action: PlanAction) -> Dict[str, Any]:
        return resolve_value(action.attributes, lambda ref: self._lookup(action.address, ref))

    def _execute(self, action: PlanAction) -> None:
        """Run one action in a worker thread: provider call, then state write."""
        if action.action == ActionType.CREATE:
            attributes = self._resolve(action)
            created = self.provider.create(action.resource_type, attributes)
            self.state_store.put(StateRecord(
                address=action.address,
                resource_type=action.resource_type,
                provider_id=created.provider_id,
                attributes=attributes,
                outputs=created.outputs,
                dependencies=list(action.dependencies),
            ))
            return

        record = self.state_store.get(action.address)

        if action.action == ActionType.UPDATE:
            if record is None:
                raise ApplyError(f"{action.address} is not in state, cannot update")
            changed = self._resolve(action)
            outputs = self.provider.update(record.provider_id, changed)
            attributes = dict(record.attributes)
            for key, value in changed.items():
                if value is None:
                    attributes.pop(key, None)
                else:
                    attributes[key] = value
            self.state_store.put(record.model_copy(update={
                "attributes": attributes,
                "outputs": {**record.outputs, **(outputs or {})},
                "dependencies": list(action.dependencies),
            }))
            return

        provider_id = record.provider_id if record else action.provider_id
        if not provider_id:
            raise ApplyError(f"{action.address} has no provider id, cannot destroy")
        self.provider.destroy(provider_id)
        self.state_store.delete(action.address)


def _blocker(action: PlanAction, results: Dict[str, ActionResult]) -> Optional[str]:
    """Root-cause action id if any prerequisite failed or was skipped."""
    for required in action.requires:
        result = results[required]
        if result.status == ActionStatus.FAILED:
            return required
        if result.status == ActionStatus.SKIPPED:
            return result.blocked_by or required
    return None


def _outcome(results: List[ActionResult], cancelled: bool) -> ApplyOutcome:
    if cancelled:
        return ApplyOutcome.CANCELLED
    statuses = [result.status for result in results]
    if all(status == ActionStatus.APPLIED for status in statuses):
        return ApplyOutcome.APPLIED
    if not any(status == ActionStatus.APPLIED for status in statuses) and any(
        status == ActionStatus.FAILED for status in statuses
    ):
        return ApplyOutcome.FAILED
    return ApplyOutcome.PARTIALLY_APPLIED
