"""Automation engine with state machine.

Implements the control loop including:
- State machine (idle/running/stopping)
- Round-robin device loop on a background thread
- Start/Stop/Emergency stop controls
- Statistics snapshots and cycle observers
"""

import threading
from datetime import datetime
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from .capabilities import (
    ActuationCapability,
    ClassificationCapability,
    PersistenceCapability,
)
from .config import AppConfig, EngineConfig
from .cycle import CycleExecutor
from .logging import Logger, get_logger
from .model import (
    AutomationStatus,
    ControlResult,
    CycleResult,
    Device,
    EngineState,
    EngineStats,
    EngineStatus,
    Platform,
)
from .timing import TimingPolicy

CycleCallback = Callable[[CycleResult], None]


class CancellationToken:
    """Per-run stop flag polled by the loop at its check points."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        if seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)


class AutomationEngine(QObject):
    """Owns the engine state and runs the device loop.

    Public operations never raise; failures come back as ControlResult
    or end up in the recent-error list.
    """

    status_changed = Signal(str)  # EngineStatus value
    cycle_completed = Signal(object)  # CycleResult

    def __init__(
        self,
        persistence: PersistenceCapability,
        actuation: ActuationCapability,
        classifier: ClassificationCapability,
        app_config: Optional[AppConfig] = None,
        timing: Optional[TimingPolicy] = None,
        logger: Optional[Logger] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            persistence: Config and device storage
            actuation: Device input capability
            classifier: Screenshot classification capability
            app_config: Process-wide settings (defaults if None)
            timing: Delay policy (real time and randomness if None)
            logger: Logger instance (uses global if None)
            parent: Parent QObject
        """
        super().__init__(parent)

        self._persistence = persistence
        self._app_config = app_config or AppConfig()
        self._timing = timing or TimingPolicy()
        self._logger = logger or get_logger()
        self._cycle = CycleExecutor(
            actuation,
            classifier,
            persistence,
            self._timing,
            logger=self._logger,
        )

        self._state = EngineState()
        self._lock = threading.Lock()
        self._token: Optional[CancellationToken] = None
        self._thread: Optional[threading.Thread] = None
        self._callbacks: list[CycleCallback] = []

    # Control

    def start(self) -> ControlResult:
        """Validate the saved configuration and launch the loop.

        Returns:
            Success with warnings about skipped devices, or the reason
            the engine could not start
        """
        with self._lock:
            if self._state.status == EngineStatus.RUNNING:
                return ControlResult.failure("Engine is already running")
            if self._state.status == EngineStatus.STOPPING:
                return ControlResult.failure(
                    "Engine is currently stopping, please wait"
                )

        try:
            automation = self._persistence.load_config()
            devices = self._persistence.load_devices()
        except Exception as e:
            self._logger.error(f"Failed to load configuration: {e}")
            return ControlResult.failure(f"Failed to load configuration: {e}")

        if not automation.device_ids:
            return ControlResult.failure("No devices selected for automation")

        platform = Platform(automation.platform)
        warnings: list[str] = []
        by_id = {d.id: d for d in devices}
        valid: list[Device] = []
        for device_id in automation.device_ids:
            device = by_id.get(device_id)
            if device is None:
                warnings.append(f"Device {device_id} not found, skipping")
                continue
            if not device.has_like(platform):
                warnings.append(
                    f"Device {device.label} missing {platform.value} like coordinates, skipping"
                )
                continue
            valid.append(device)

        if not valid:
            return ControlResult.failure(
                f"No valid devices available for {platform.value} automation"
            )

        if not automation.triggers:
            warnings.append("No triggers configured, automation will only scroll")

        for warning in warnings:
            self._logger.warning(warning)

        config = EngineConfig.build(automation, self._app_config)
        token = CancellationToken()

        with self._lock:
            # Re-check: another caller may have started while we validated
            if self._state.status != EngineStatus.IDLE:
                return ControlResult.failure("Engine is already running")
            old_status = self._state.status
            self._state = EngineState(
                status=EngineStatus.RUNNING,
                started_at=datetime.now(),
            )
            self._token = token

        self._logger.state_change(old_status.value, EngineStatus.RUNNING.value)
        self._persist_running(AutomationStatus.RUNNING)
        self._logger.info(
            f"Automation started with {len(valid)} device(s) for {platform.value}"
        )
        self.status_changed.emit(EngineStatus.RUNNING.value)

        self._thread = threading.Thread(
            target=self._run_loop,
            args=(token, valid, config, platform),
            name="otgcontrol-engine",
            daemon=True,
        )
        self._thread.start()

        return ControlResult(success=True, warnings=warnings)

    def stop(self) -> ControlResult:
        """Ask the loop to finish its current device and exit."""
        with self._lock:
            if self._state.status == EngineStatus.IDLE:
                return ControlResult.failure("Engine is not running")
            if self._state.status == EngineStatus.STOPPING:
                return ControlResult.failure("Engine is already stopping")
            self._state.status = EngineStatus.STOPPING
            token = self._token

        if token is not None:
            token.cancel()
        self._logger.state_change(
            EngineStatus.RUNNING.value, EngineStatus.STOPPING.value
        )
        self._logger.info("Stopping automation...")
        self._persist_running(AutomationStatus.STOPPED)
        self.status_changed.emit(EngineStatus.STOPPING.value)
        return ControlResult(success=True)

    def emergency_stop(self) -> None:
        """Force the engine idle immediately.

        A gesture already sent to a device still completes; the loop
        sends nothing new after its next check point.
        """
        with self._lock:
            old_status = self._state.status
            self._state.status = EngineStatus.IDLE
            self._state.clear_current_device()
            token = self._token

        if token is not None:
            token.cancel()
        self._logger.warning("EMERGENCY STOP triggered")
        self._persist_running(AutomationStatus.STOPPED)
        if old_status != EngineStatus.IDLE:
            self._logger.state_change(old_status.value, EngineStatus.IDLE.value)
            self.status_changed.emit(EngineStatus.IDLE.value)

    # Queries

    def is_running(self) -> bool:
        with self._lock:
            return self._state.status == EngineStatus.RUNNING

    @property
    def status(self) -> EngineStatus:
        with self._lock:
            return self._state.status

    def stats(self) -> EngineStats:
        """Snapshot of the engine state."""
        with self._lock:
            state = self._state
            uptime = None
            if state.started_at is not None:
                uptime = round(
                    (datetime.now() - state.started_at).total_seconds()
                )
            return EngineStats(
                status=state.status,
                cycle_count=state.cycle_count,
                uptime_seconds=uptime,
                current_device=state.current_device_label,
                recent_errors=list(state.errors),
                last_cycle_result=state.last_cycle_result,
            )

    def on_cycle_complete(self, callback: Optional[CycleCallback]) -> None:
        """Register an observer for every CycleResult; None clears them."""
        with self._lock:
            if callback is None:
                self._callbacks.clear()
            else:
                self._callbacks.append(callback)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the loop thread to exit; True if it has."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    # Loop

    def _should_continue(self, token: CancellationToken) -> bool:
        with self._lock:
            return (
                not token.cancelled
                and self._token is token
                and self._state.status == EngineStatus.RUNNING
            )

    def _run_loop(
        self,
        token: CancellationToken,
        devices: list[Device],
        config: EngineConfig,
        platform: Platform,
    ) -> None:
        """Round-robin over devices until stopped.

        This is called in the loop thread.
        """
        self._logger.info(f"Main loop started for {platform.value}")
        try:
            while self._should_continue(token):
                for device in devices:
                    if not self._should_continue(token):
                        break
                    self._run_device(token, device, config, platform)
                    if not self._should_continue(token):
                        break

                    delay_ms = self._timing.jitter(
                        config.post_interval_seconds * 1000,
                        config.delay_jitter_min,
                        config.delay_jitter_max,
                    )
                    self._logger.info(
                        f"Waiting {delay_ms / 1000:.1f}s before next cycle..."
                    )
                    if token.wait(delay_ms / 1000):
                        break
        except Exception as e:
            message = f"Main loop error: {e}"
            self._logger.error(message)
            with self._lock:
                if self._token is token:
                    self._state.errors.append(message)
        finally:
            self._finish(token)

    def _run_device(
        self,
        token: CancellationToken,
        device: Device,
        config: EngineConfig,
        platform: Platform,
    ) -> None:
        with self._lock:
            if self._token is not token:
                return
            self._state.current_device_id = device.id
            self._state.current_device_label = device.label

        self._logger.info(f"Processing device: {device.label}", device_id=device.id)
        result = self._cycle.run(device.id, config, platform)

        with self._lock:
            # A newer run owns the state after an emergency stop + start
            if self._token is not token:
                return
            self._state.cycle_count += 1
            if result.error:
                self._state.errors.append(result.error)
            self._state.last_cycle_result = result
            callbacks = list(self._callbacks)

        action = None
        if result.action_executed is not None and result.matched_trigger:
            action = result.matched_trigger.action_name
        self._logger.cycle_summary(
            device.id, result.success, action=action, error=result.error
        )
        self._notify(result, callbacks)

    def _notify(self, result: CycleResult, callbacks: list[CycleCallback]) -> None:
        for callback in callbacks:
            try:
                callback(result)
            except Exception as e:
                self._logger.error(f"Cycle callback error: {e}")
        self.cycle_completed.emit(result)

    def _finish(self, token: CancellationToken) -> None:
        """Cleanup after the loop exits, unless a newer run took over."""
        with self._lock:
            if self._token is not token:
                self._logger.debug("Stale loop exited")
                return
            old_status = self._state.status
            self._state.status = EngineStatus.IDLE
            self._state.clear_current_device()

        self._persist_running(AutomationStatus.STOPPED)
        if old_status != EngineStatus.IDLE:
            self._logger.state_change(old_status.value, EngineStatus.IDLE.value)
            self.status_changed.emit(EngineStatus.IDLE.value)
        self._logger.info("Automation stopped")

    def _persist_running(self, running: AutomationStatus) -> None:
        """Flip the stored running flag; failures are logged, never raised."""
        try:
            result = self._persistence.set_running_status(running)
        except Exception as e:
            self._logger.error(f"Failed to persist running status: {e}")
            return
        if not result:
            self._logger.error(f"Failed to persist running status: {result.error}")
