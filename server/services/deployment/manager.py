"""Deployment Manager - per-target coalescing and serialized deploy runs.

Notifications for a target only ever update its pending version. A single
run loop per target drains that slot:

- Idle target: the notification starts a run loop immediately
- Running target: the notification overwrites the pending version; when
  the current run finishes the loop picks up the latest value and runs again
- Intermediate versions are discarded, only the most recent one is deployed
"""

import asyncio
import time
from typing import Dict, Any, List, Optional, TYPE_CHECKING

from core.logging import get_logger, log_execution_time
from .exceptions import DeployActionFailed, InternalUnavailable
from .executor import DeployExecutor
from .state import Notification, RunRecord, RunStatus, TargetSlot

if TYPE_CHECKING:
    from services.targets import TargetRegistry

logger = get_logger(__name__)


class DeploymentManager:
    """Owns the PendingVersion / RunLock pair of every configured target.

    Slots are created once from the registry and never torn down; targets
    never share locks, so a slow deploy of one target does not delay another.
    """

    def __init__(
        self,
        registry: "TargetRegistry",
        executor: DeployExecutor,
        history_size: int = 20,
    ):
        self._executor = executor
        self._slots: Dict[str, TargetSlot] = {
            target.name: TargetSlot.create(target, history_size) for target in registry
        }
        self._run_counter = 0
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def active_runs(self) -> int:
        return sum(1 for slot in self._slots.values() if slot.running)

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def notify(self, notification: Notification) -> bool:
        """Record a notification and start a run if the target is idle.

        Returns:
            True if a run loop was started, False if the version was coalesced
            into the pending slot of an in-progress run.

        Raises:
            InternalUnavailable: If the manager is shutting down
            KeyError: If the target is not configured
        """
        if self._closed:
            logger.warning("Notification dropped, shutting down",
                           target=notification.target, version=notification.version)
            raise InternalUnavailable("deployment manager is shut down")

        slot = self._slots[notification.target]
        async with slot.lock:
            slot.notifications += 1
            if slot.pending_version is not None:
                slot.coalesced += 1
                logger.info("Pending version superseded", target=notification.target,
                            dropped=slot.pending_version, version=notification.version)
            slot.pending_version = notification.version

            if slot.running:
                logger.info("Deploy in progress, version queued",
                            target=notification.target, version=notification.version)
                return False

            slot.running = True
            slot.task = asyncio.create_task(self._run_loop(slot))
            return True

    # =========================================================================
    # RUN LOOP
    # =========================================================================

    async def _run_loop(self, slot: TargetSlot) -> None:
        """Drain the pending version until none is left, then go idle."""
        name = slot.target.name
        try:
            while True:
                async with slot.lock:
                    version = slot.pending_version
                    if version is None:
                        slot.running = False
                        slot.task = None
                        logger.debug("Target idle", target=name)
                        return
                    slot.pending_version = None

                await self._execute(slot, version)
        finally:
            # Cancelled at shutdown, nothing else can hold the slot then
            if slot.task is asyncio.current_task():
                slot.running = False
                slot.task = None

    async def _execute(self, slot: TargetSlot, version: str) -> RunRecord:
        """Run one deploy and record its outcome. Failures never propagate."""
        name = slot.target.name
        self._run_counter += 1
        record = RunRecord(
            run_id=f"run_{name}_{self._run_counter}",
            target=name,
            version=version,
        )
        slot.current = record
        start_time = time.time()
        logger.info("Deploy run started", run_id=record.run_id, target=name, version=version)

        try:
            result = await self._executor.run(slot.target, version)
            record.finish(RunStatus.SUCCEEDED, time.time() - start_time,
                          exit_code=result.exit_code, output=result.output)
            log_execution_time(logger, "deploy", start_time, time.time(),
                               run_id=record.run_id, target=name, version=version)
        except DeployActionFailed as e:
            record.finish(RunStatus.FAILED, time.time() - start_time,
                          exit_code=e.exit_code, output=e.output, error=e.cause)
            logger.error("Deploy run failed", run_id=record.run_id, target=name,
                         version=version, cause=e.cause, exit_code=e.exit_code,
                         output=e.output)
        except asyncio.CancelledError:
            record.finish(RunStatus.CANCELLED, time.time() - start_time,
                          error="cancelled at shutdown")
            logger.warning("Deploy run cancelled", run_id=record.run_id, target=name,
                           version=version)
            raise
        except Exception as e:
            record.finish(RunStatus.FAILED, time.time() - start_time, error=str(e))
            logger.error("Deploy run crashed", run_id=record.run_id, target=name,
                         version=version, error=str(e), exc_info=True)
        finally:
            slot.current = None
            slot.history.append(record)

        return record

    # =========================================================================
    # STATUS & LIFECYCLE
    # =========================================================================

    def get_status(self, target: Optional[str] = None) -> Dict[str, Any]:
        """Get deployment status for one target or all of them.

        Raises:
            KeyError: If `target` is given and not configured
        """
        if target is not None:
            return self._slots[target].to_dict()

        return {
            "accepting": not self._closed,
            "active_runs": self.active_runs,
            "run_counter": self._run_counter,
            "targets": [slot.to_dict() for slot in self._slots.values()],
        }

    def history(self, target: str) -> List[RunRecord]:
        return list(self._slots[target].history)

    async def join(self, target: Optional[str] = None) -> None:
        """Wait until the given target (or all targets) is idle."""
        slots = [self._slots[target]] if target is not None else list(self._slots.values())
        while True:
            tasks = [slot.task for slot in slots if slot.task is not None]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    async def shutdown(self, grace: float = 30.0) -> None:
        """Stop accepting notifications and let active runs finish.

        Runs still active after `grace` seconds are cancelled, which kills
        their deploy commands.
        """
        self._closed = True
        tasks = [slot.task for slot in self._slots.values() if slot.task is not None]
        if not tasks:
            logger.info("Deployment manager stopped", active_runs=0)
            return

        logger.info("Waiting for active deploy runs", active_runs=len(tasks), grace=grace)
        done, pending = await asyncio.wait(tasks, timeout=grace)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Deployment manager stopped", finished=len(done), cancelled=len(pending))
