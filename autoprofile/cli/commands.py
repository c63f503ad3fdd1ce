from __future__ import annotations

import atexit
import json
import logging
import signal
import sys
from typing import Optional, TextIO

from ..core.config import Policy, last_ac_file_path, last_state_file_path, lock_file_path, override_file_path
from ..core.monitoring.power_supply_sysfs import SensorSource, SysfsPowerSupplySensor
from ..core.notifications import send_notification
from ..core.power_management.manager import PolicyDaemon
from ..core.power_policies.profile_policy import decide, next_state
from ..core.state.instance_lock import InstanceLock
from ..core.state.records import LastAppliedStore, OverrideStore
from ..core.system_power.applier import ApplyFailed, StateApplier
from ..core.system_power.backends import PowerProfilesCtlBackend, StateBackend
from ..core.utils.exceptions import AlreadyRunning, BackendError, LockAcquireError
from .waybar import format_waybar_json

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def _backend(policy: Policy) -> PowerProfilesCtlBackend:
    return PowerProfilesCtlBackend(policy.backend_command, timeout_s=policy.command_timeout)


def _override_store(policy: Policy) -> OverrideStore:
    return OverrideStore(override_file_path(), policy.states)


def _preflight(daemon: PolicyDaemon) -> bool:
    """Only fatal combination: no power-supply entry and an unqueryable backend."""

    if daemon.sensor.probe():
        return True

    try:
        current = daemon.applier.backend.get_state()
    except BackendError as exc:
        logger.error("No power supply detected and backend unavailable: %s", exc)
        return False

    logger.warning("No power supply detected; treating this machine as AC powered (current: %s)", current)
    return True


def _install_signal_handlers(daemon: PolicyDaemon) -> None:
    def _handle(signum, _frame) -> None:
        logger.info("Received signal %s, shutting down", signum)
        daemon.stop()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


def cmd_start(policy: Policy, *, daemon: Optional[PolicyDaemon] = None, lock: Optional[InstanceLock] = None) -> int:
    lock = lock or InstanceLock(lock_file_path())
    try:
        lock.acquire()
    except AlreadyRunning as exc:
        logger.info("%s, exiting", exc)
        return EXIT_OK
    except LockAcquireError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE

    atexit.register(lock.release)
    try:
        daemon = daemon or PolicyDaemon.from_policy(policy)
        if not _preflight(daemon):
            return EXIT_FAILURE
        _install_signal_handlers(daemon)
        daemon.run()
        return EXIT_OK
    finally:
        lock.release()


def cmd_status(
    policy: Policy,
    *,
    sensor: Optional[SensorSource] = None,
    overrides: Optional[OverrideStore] = None,
    out: Optional[TextIO] = None,
) -> int:
    overrides = overrides or _override_store(policy)
    override = overrides.read()
    if override is not None:
        payload = {"state": override.state, "source": "override"}
    else:
        sensor = sensor or SysfsPowerSupplySensor(policy.power_supply_root, acpi_timeout_s=policy.command_timeout)
        payload = {"state": decide(sensor.read(), None, policy), "source": "auto"}

    print(json.dumps(payload), file=out)
    return EXIT_OK


def cmd_override(
    policy: Policy,
    state: Optional[str],
    *,
    clear: bool = False,
    overrides: Optional[OverrideStore] = None,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
) -> int:
    overrides = overrides or _override_store(policy)

    if clear:
        if overrides.clear():
            print("Override cleared", file=out)
        else:
            print("No override set", file=out)
        return EXIT_OK

    if not state:
        print("override: a state or --clear is required", file=err or sys.stderr)
        return EXIT_USAGE

    if not policy.is_valid_state(state):
        print(f"override: unknown state {state!r} (choose from: {', '.join(policy.states)})", file=err or sys.stderr)
        return EXIT_USAGE

    overrides.write(state)
    logger.info("Override set: %s", state)
    print(f"Override set: {state}", file=out)
    return EXIT_OK


def _current_state(backend: StateBackend) -> Optional[str]:
    try:
        return backend.get_state()
    except BackendError as exc:
        logger.warning("Cannot read current profile: %s", exc)
        return None


def cmd_waybar(policy: Policy, *, backend: Optional[StateBackend] = None, out: Optional[TextIO] = None) -> int:
    backend = backend or _backend(policy)
    print(format_waybar_json(_current_state(backend)), file=out)
    return EXIT_OK


def cmd_cycle(
    policy: Policy,
    *,
    backend: Optional[StateBackend] = None,
    overrides: Optional[OverrideStore] = None,
    last_applied: Optional[LastAppliedStore] = None,
    notifier=send_notification,
    out: Optional[TextIO] = None,
) -> int:
    """Advance to the next state, apply it now and keep it as the override."""

    backend = backend or _backend(policy)
    overrides = overrides or _override_store(policy)
    last_applied = last_applied or LastAppliedStore(last_state_file_path(), last_ac_file_path(), policy.states)

    current = _current_state(backend)
    if current is None:
        print(format_waybar_json(None), file=out)
        return EXIT_FAILURE

    target = next_state(current, policy)
    result = StateApplier(backend, last_applied, verify=policy.verify_apply).apply(target)
    if isinstance(result, ApplyFailed):
        print(format_waybar_json(_current_state(backend)), file=out)
        return EXIT_FAILURE

    overrides.write(target)
    if notifier is not None:
        notifier(f"Power Profile: {target.capitalize()}", "")
    print(format_waybar_json(target), file=out)
    return EXIT_OK
