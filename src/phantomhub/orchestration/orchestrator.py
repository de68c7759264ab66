"""Deployment orchestration with dependency injection.

DeploymentOrchestrator drives one deployment from pending to a terminal
status: claim the device, open a transport session, send the payload,
await acknowledgement and result, persisting every transition before the
next step starts. Transport failures end the deployment as failed; they
are never raised to the caller. ConflictError and NotFoundError are raised
before anything is mutated; StoreError aborts the call and leaves the
deployment at its last persisted status.
"""

import threading
from collections import OrderedDict
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import contextmanager
from typing import Dict, Iterator, List, Mapping, Optional

from phantomhub.core.protocols import Logger, TimeProvider
from phantomhub.diagnostics.checks import CheckResult
from phantomhub.diagnostics.engine import DiagnosticsEngine, failing_remediation
from phantomhub.models import (
    ConnectionType,
    Deployment,
    DeploymentStatus,
    Device,
    DeviceStatus,
    Payload,
)
from phantomhub.orchestration.exceptions import ConflictError
from phantomhub.orchestration.leases import DeviceLeaseRegistry
from phantomhub.orchestration.state_machine import DeploymentEvent, DeploymentStateMachine
from phantomhub.store.base import DeploymentRepository
from phantomhub.store.exceptions import NotFoundError, StoreError
from phantomhub.transport.base import TransportSession
from phantomhub.transport.exceptions import (
    DeploymentCancelled,
    DeviceConnectionError,
    TransportError,
    TransportTimeoutError,
)
from phantomhub.transport.factory import SessionFactory
from phantomhub.transport.protocol import CommandChannel
from phantomhub.utils.config import Settings

CANCELLED_RESULT = "Deployment cancelled by operator request"
CANCELLED_BEFORE_START_RESULT = "Deployment cancelled by operator request before it started"
CLAIMABLE_STATUSES = (DeviceStatus.ONLINE, DeviceStatus.OFFLINE)
ACTIVE_STATUSES = tuple(s for s in DeploymentStatus if s.is_active)


class DeploymentOrchestrator:
    """Coordinates store, transport sessions, state machine and diagnostics.

    Args:
        store: persistence collaborator
        session_factory: builds a transport session for a device
        diagnostics: engine run when a session fails to open
        settings: timeouts, protocol framing and worker count
        time_provider: wall clock for persisted timestamps
        logger: logging abstraction
        leases: per-device lease registry (shared between orchestrators
            in one process if several are created)
    """

    def __init__(
        self,
        store: DeploymentRepository,
        session_factory: SessionFactory,
        diagnostics: DiagnosticsEngine,
        settings: Settings,
        time_provider: TimeProvider,
        logger: Logger,
        leases: Optional[DeviceLeaseRegistry] = None,
    ):
        self.store = store
        self.sessions = session_factory
        self.diagnostics = diagnostics
        self.settings = settings
        self.time = time_provider
        self.log = logger
        self.leases = leases or DeviceLeaseRegistry()
        # Most recent diagnostics_history runs, oldest first
        self.last_diagnostics: "OrderedDict[str, List[CheckResult]]" = OrderedDict()
        self.diagnostics_history = 100
        self._lock = threading.Lock()
        self._cancel_events: Dict[str, threading.Event] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

    # Public operations

    def deploy(self, deployment_id: str) -> DeploymentStatus:
        """Run one deployment to a terminal status.

        Returns:
            DeploymentStatus.COMPLETED or DeploymentStatus.FAILED

        Raises:
            NotFoundError: deployment, device or payload missing
            ConflictError: device busy, or deployment not pending
            StoreError: a transition could not be persisted
        """
        with self._in_flight(deployment_id) as cancel_event:
            deployment = self.store.load_deployment(deployment_id)
            if deployment.status != DeploymentStatus.PENDING:
                raise ConflictError(
                    f"Deployment {deployment_id} is {deployment.status.value}; only pending deployments can run"
                )
            device = self.store.load_device(deployment.device_id)
            payload = self.store.load_payload(deployment.payload_id)

            self._claim_device(device, deployment_id)
            machine = DeploymentStateMachine(
                deployment,
                persist=self._persist_transition,
                owns_device=lambda: self.leases.holder(device.id) == deployment_id,
            )
            try:
                session = self.sessions.create(device, cancel_event)
                try:
                    return self._drive(machine, session, device, payload)
                finally:
                    session.close()
                    self.log.debug(f"Session to {device.name} closed")
            finally:
                self._release_device(device, deployment_id, opened=machine.reached_connected)

    def submit(self, deployment_id: str) -> "Future[DeploymentStatus]":
        """Run deploy() on the worker pool."""
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.settings.max_workers,
                    thread_name_prefix='phantomhub-deploy',
                )
            executor = self._executor
        return executor.submit(self.deploy, deployment_id)

    def cancel(self, deployment_id: str) -> bool:
        """Request cancellation.

        An in-flight deployment is interrupted at its next suspension
        point. A pending deployment that has not started is failed
        immediately. Returns False if there was nothing to cancel.

        Raises:
            NotFoundError: unknown deployment
        """
        with self._lock:
            event = self._cancel_events.get(deployment_id)
            if event is not None:
                event.set()
                self.log.info(f"Cancellation requested for deployment {deployment_id}")
                return True

            deployment = self.store.load_deployment(deployment_id)
            if deployment.status != DeploymentStatus.PENDING:
                return False

            machine = DeploymentStateMachine(deployment, persist=self._persist_transition)
            machine.advance(DeploymentEvent.CANCELLED, CANCELLED_BEFORE_START_RESULT)
            return True

    def run_diagnostics(
        self,
        connection_type: ConnectionType,
        address: Optional[str] = None,
        attestations: Optional[Mapping[str, bool]] = None,
    ) -> List[CheckResult]:
        return self.diagnostics.run(connection_type, address, attestations)

    def recover_interrupted(self) -> List[str]:
        """Fail deployments left connected/executing by a crash.

        Also resets busy devices that no live deployment in this process
        holds. Returns the ids of the deployments that were failed.
        """
        recovered: List[str] = []
        with self._lock:
            in_flight = set(self._cancel_events)

        stale = self.store.list_deployments(statuses=ACTIVE_STATUSES)
        for deployment in stale:
            if deployment.id in in_flight:
                continue
            machine = DeploymentStateMachine(deployment, persist=self._persist_transition)
            machine.advance(
                DeploymentEvent.INTERRUPTED,
                f"Deployment interrupted before completion; last persisted state was "
                f"{deployment.status.value}",
            )
            recovered.append(deployment.id)
            self.log.warning(f"Recovered interrupted deployment {deployment.id} as failed")

        for device in self.store.list_devices():
            if device.status == DeviceStatus.BUSY and self.leases.holder(device.id) is None:
                self.store.save_device_status(device.id, DeviceStatus.ONLINE, None)
                self.log.info(f"Released stale busy flag on device {device.name}")

        return recovered

    def shutdown(self, cancel_running: bool = True) -> None:
        """Stop the worker pool, optionally cancelling in-flight deployments first."""
        if cancel_running:
            with self._lock:
                events = list(self._cancel_events.values())
            for event in events:
                event.set()
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)

    def in_flight(self) -> List[str]:
        with self._lock:
            return list(self._cancel_events)

    # Driving

    def _drive(
        self,
        machine: DeploymentStateMachine,
        session: TransportSession,
        device: Device,
        payload: Payload,
    ) -> DeploymentStatus:
        timeouts = self.settings.timeouts
        channel = CommandChannel(session, self.settings.protocol, self.time)

        # pending -> connected | failed
        try:
            session.open()
        except DeploymentCancelled:
            return self._finish(machine, DeploymentEvent.CANCELLED, CANCELLED_RESULT)
        except DeviceConnectionError as e:
            return self._finish(machine, DeploymentEvent.OPEN_FAILED, self._connection_failure(machine, device, e))
        self.log.info(f"Connected to {device.describe()}")
        machine.advance(DeploymentEvent.SESSION_OPENED)

        # connected -> executing | failed
        try:
            channel.send_payload(payload.script)
            ack = channel.read_response(timeouts.ack_seconds)
        except DeploymentCancelled:
            return self._finish(machine, DeploymentEvent.CANCELLED, CANCELLED_RESULT)
        except TransportTimeoutError:
            return self._finish(
                machine, DeploymentEvent.SEND_FAILED,
                f"Timed out after {timeouts.ack_seconds:.1f}s waiting for {device.name} to acknowledge "
                f"payload '{payload.name}' (v{payload.version})",
            )
        except TransportError as e:
            return self._finish(machine, DeploymentEvent.SEND_FAILED, f"Transport error while sending payload: {e}")
        if not ack.success:
            return self._finish(
                machine, DeploymentEvent.SEND_FAILED,
                f"Device rejected payload '{payload.name}': {ack.error or ack.data or 'no acknowledgement'}",
            )
        machine.advance(DeploymentEvent.PAYLOAD_ACKNOWLEDGED)

        # executing -> completed | failed
        try:
            response = channel.read_response(timeouts.result_seconds)
        except DeploymentCancelled:
            return self._finish(machine, DeploymentEvent.CANCELLED, CANCELLED_RESULT)
        except TransportTimeoutError:
            return self._finish(
                machine, DeploymentEvent.EXECUTION_FAILED,
                f"Timed out after {timeouts.result_seconds:.1f}s waiting for the execution result from {device.name}",
            )
        except TransportError as e:
            return self._finish(
                machine, DeploymentEvent.EXECUTION_FAILED, f"Transport error while awaiting execution result: {e}"
            )

        if response.success:
            return self._finish(
                machine, DeploymentEvent.EXECUTION_SUCCEEDED, response.data or "Payload executed successfully"
            )
        return self._finish(
            machine, DeploymentEvent.EXECUTION_FAILED,
            f"Execution failed: {response.error or response.data or 'Unknown error'}",
        )

    def _finish(self, machine: DeploymentStateMachine, event: DeploymentEvent, result: str) -> DeploymentStatus:
        machine.advance(event, result)
        return machine.status

    def _connection_failure(self, machine: DeploymentStateMachine, device: Device, error: DeviceConnectionError) -> str:
        results = self.diagnostics.run(device.connection_type, device.ip_address)
        self._remember_diagnostics(machine.deployment.id, results)
        hints = failing_remediation(results)

        text = f"Connection to {device.describe()} failed: {error.reason}"
        if hints:
            text += "\n\nSuggested fixes:\n" + "\n".join(f"  - {hint}" for hint in hints)
        else:
            text += f"\n\nRun 'phantomhub diagnose --type {device.connection_type.value}' for a guided checklist."
        return text

    def _remember_diagnostics(self, deployment_id: str, results: List[CheckResult]) -> None:
        with self._lock:
            self.last_diagnostics.pop(deployment_id, None)
            self.last_diagnostics[deployment_id] = results
            while len(self.last_diagnostics) > self.diagnostics_history:
                self.last_diagnostics.popitem(last=False)

    # Persistence and device ownership

    def _persist_transition(
        self,
        deployment_id: str,
        status: DeploymentStatus,
        result: Optional[str],
    ) -> Deployment:
        try:
            stored = self.store.save_deployment_transition(deployment_id, status, result, self.time.now())
        except NotFoundError as e:
            raise StoreError(f"Deployment {deployment_id} could not be updated: {e}") from e
        self.log.info(f"Deployment {deployment_id} -> {status.value}")
        return stored

    def _claim_device(self, device: Device, deployment_id: str) -> None:
        if not self.leases.acquire(device.id, deployment_id):
            raise ConflictError(
                f"Device {device.name} is busy with deployment {self.leases.holder(device.id)}"
            )
        try:
            active = [
                d for d in self.store.list_deployments(
                    device_id=device.id,
                    statuses=ACTIVE_STATUSES,
                )
                if d.id != deployment_id
            ]
            if active:
                raise ConflictError(
                    f"Device {device.name} already has active deployment {active[0].id}\n"
                    f"If no deployment is running, run 'phantomhub recover' to clear it."
                )
            if not self.store.compare_and_set_device_status(device.id, CLAIMABLE_STATUSES, DeviceStatus.BUSY):
                raise ConflictError(
                    f"Device {device.name} is marked busy\n"
                    f"If no deployment is running, run 'phantomhub recover' to clear it."
                )
        except BaseException:
            self.leases.release(device.id, deployment_id)
            raise
        self.log.debug(f"Device {device.name} claimed by deployment {deployment_id}")

    def _release_device(self, device: Device, deployment_id: str, opened: bool) -> None:
        status = DeviceStatus.ONLINE if opened else DeviceStatus.OFFLINE
        try:
            self.store.save_device_status(device.id, status, device.last_seen)
        except NotFoundError as e:
            raise StoreError(f"Device {device.name} disappeared during deployment {deployment_id}: {e}") from e
        finally:
            self.leases.release(device.id, deployment_id)
            self.log.debug(f"Device {device.name} released by deployment {deployment_id}")

    @contextmanager
    def _in_flight(self, deployment_id: str) -> Iterator[threading.Event]:
        with self._lock:
            if deployment_id in self._cancel_events:
                raise ConflictError(f"Deployment {deployment_id} is already running")
            event = threading.Event()
            self._cancel_events[deployment_id] = event
        try:
            yield event
        finally:
            with self._lock:
                self._cancel_events.pop(deployment_id, None)
