"""Power profile daemon: watch loop and serialized decision pipeline."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Optional

from ..config import Policy, last_ac_file_path, last_state_file_path, override_file_path
from ..monitoring.power_supply_sysfs import SensorSource, SysfsPowerSupplySensor
from ..monitoring.watch import PathWatcher, WatchTarget
from ..notifications import send_notification
from ..power_policies.profile_policy import decide
from ..state.records import LastAppliedStore, OverrideStore
from ..system_power.applier import Applied, ApplyResult, StateApplier
from ..system_power.backends import PowerProfilesCtlBackend

logger = logging.getLogger(__name__)

Notifier = Callable[[str, str], object]
WatcherFactory = Callable[["PolicyDaemon"], Optional[PathWatcher]]


def _ac_label(on_ac: Optional[bool]) -> str:
    if on_ac is None:
        return "unknown"
    return "AC" if on_ac else "battery"


def default_watcher_factory(daemon: "PolicyDaemon") -> PathWatcher:
    override_path = daemon.override_store.path
    return PathWatcher(
        [
            WatchTarget(override_path.parent, frozenset({override_path.name}), create=True),
            WatchTarget(daemon.policy.power_supply_root),
        ],
        on_change=daemon.on_watch_event,
        is_running=daemon.is_running,
    )


class PolicyDaemon:
    """Decide and apply power profiles from AC/battery state.

    Two producers trigger evaluations: an inotify watcher thread and the
    polling loop in `run()`. Both go through `evaluate()`, which holds a
    single lock, so sensor reads and applies never interleave.
    """

    def __init__(
        self,
        policy: Policy,
        *,
        sensor: SensorSource,
        applier: StateApplier,
        override_store: OverrideStore,
        last_applied: LastAppliedStore,
        notifier: Optional[Notifier] = None,
        watcher_factory: Optional[WatcherFactory] = default_watcher_factory,
    ) -> None:
        self.policy = policy
        self.sensor = sensor
        self.applier = applier
        self.override_store = override_store
        self.last_applied = last_applied
        self._notifier = notifier
        self._watcher_factory = watcher_factory

        self._pipeline_lock = threading.Lock()
        self._stop = threading.Event()
        self._watch_thread: Optional[threading.Thread] = None

    @classmethod
    def from_policy(cls, policy: Policy) -> "PolicyDaemon":
        """Wire the sysfs sensor, powerprofilesctl and the default state files."""

        backend = PowerProfilesCtlBackend(policy.backend_command, timeout_s=policy.command_timeout)
        last_applied = LastAppliedStore(last_state_file_path(), last_ac_file_path(), policy.states)
        return cls(
            policy,
            sensor=SysfsPowerSupplySensor(policy.power_supply_root, acpi_timeout_s=policy.command_timeout),
            applier=StateApplier(backend, last_applied, verify=policy.verify_apply),
            override_store=OverrideStore(override_file_path(), policy.states),
            last_applied=last_applied,
            notifier=send_notification if policy.notifications else None,
        )

    def is_running(self) -> bool:
        return not self._stop.is_set()

    def stop(self) -> None:
        """Request shutdown. Safe to call from a signal handler."""

        self._stop.set()

    # ---- pipeline

    def _apply(self, target: str, *, on_ac: Optional[bool]) -> ApplyResult:
        result = self.applier.apply(target, on_ac=on_ac)
        if isinstance(result, Applied) and self._notifier is not None:
            try:
                self._notifier("Power Profile", result.state)
            except Exception as exc:
                logger.debug("Notification failed: %s", exc)
        return result

    def _record_baseline(self, on_ac: bool) -> None:
        try:
            self.last_applied.write(on_ac=on_ac)
        except OSError as exc:
            logger.warning("Failed to record AC baseline: %s", exc)

    def initial_decision(self) -> ApplyResult:
        """Startup decision: reapply a valid override, else decide fresh.

        The AC baseline is left untouched when an override is reapplied so a
        power change that happened while the daemon was down still clears it.
        """

        with self._pipeline_lock:
            override = self.override_store.read()
            if override is not None:
                logger.info("Found persistent override: %s (re-applying)", override.state)
                return self._apply(override.state, on_ac=None)

            reading = self.sensor.read()
            target = decide(reading, None, self.policy)
            logger.info(
                "Initial: %s, battery %s%% -> %s", _ac_label(reading.connected), reading.level, target
            )
            result = self._apply(target, on_ac=reading.connected)
            self._record_baseline(reading.connected)
            return result

    def evaluate(self, trigger: str = "poll") -> Optional[ApplyResult]:
        """Run one sensor -> decide -> apply pass. Returns None when nothing was due."""

        with self._pipeline_lock:
            return self._evaluate_locked(trigger)

    def _evaluate_locked(self, trigger: str) -> Optional[ApplyResult]:
        reading = self.sensor.read()
        last = self.last_applied.read()

        if last.on_ac is not None and reading.connected != last.on_ac:
            logger.info(
                "AC state changed (%s): %s -> %s", trigger, _ac_label(last.on_ac), _ac_label(reading.connected)
            )
            # Overrides do not survive a power-source change.
            if self.override_store.clear():
                logger.info("Cleared persistent override due to AC change")
            target = decide(reading, None, self.policy)
            result = self._apply(target, on_ac=reading.connected)
            # Consumed even when the apply failed; the retry goes through the state check below.
            self._record_baseline(reading.connected)
            return result

        if last.on_ac is None:
            self._record_baseline(reading.connected)

        override = self.override_store.read()
        target = decide(reading, override, self.policy)

        if override is not None:
            return self._apply(target, on_ac=None)

        # On battery the threshold is re-checked every tick. On AC only act when
        # the last applied state differs (failed apply, override just removed).
        if not reading.connected or last.state != target:
            return self._apply(target, on_ac=reading.connected)

        return None

    # ---- triggers

    def on_watch_event(self) -> None:
        try:
            self.evaluate("watch")
        except Exception as exc:
            logger.exception("Evaluation after watch event failed: %s", exc)

    def start_watching(self) -> None:
        if not self.policy.watch_enabled or self._watcher_factory is None:
            logger.info("File watching disabled, polling every %ss", self.policy.poll_interval)
            return
        if self._watch_thread is not None:
            return

        watcher = self._watcher_factory(self)
        if watcher is None:
            return

        self._watch_thread = threading.Thread(target=watcher.run, name="autoprofile-watch", daemon=True)
        self._watch_thread.start()

    def _join_watcher(self) -> None:
        if self._watch_thread is None:
            return
        # The watcher wakes at least every read timeout to notice the stop flag.
        self._watch_thread.join(timeout=max(2.0, self.policy.command_timeout * 2))
        self._watch_thread = None

    def run(self) -> None:
        """Initial decision, then watch + poll until `stop()` is called."""

        logger.info(
            "Starting (threshold %s%%, poll %ss, states %s)",
            self.policy.threshold,
            self.policy.poll_interval,
            "/".join(self.policy.states),
        )

        try:
            self.initial_decision()
        except Exception as exc:
            logger.exception("Initial decision failed: %s", exc)

        self.start_watching()
        try:
            while not self._stop.wait(self.policy.poll_interval):
                try:
                    self.evaluate("poll")
                except Exception as exc:
                    logger.exception("Policy evaluation error: %s", exc)
        finally:
            self.stop()
            self._join_watcher()
            logger.info("Stopped")
