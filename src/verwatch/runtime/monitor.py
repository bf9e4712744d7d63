#
# SPDX-FileCopyrightText: Copyright (c) 2025 provide.io llc. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#

"""The per-relationship monitor actor.

A ``MonitorActor`` owns one relationship's configuration and state and is
the only writer of its persisted slot. It drives the cycle

    wake → fetch latest release → compare → (dispatch) → re-arm

Two checks for the same key never overlap: scheduled wake-ups queue behind
the check lock, manual triggers are rejected with ``MonitorBusyError`` while
a check is running.

All retries happen through the timer. A failed fetch or dispatch is
counted in ``consecutive_failures`` and the next wake-up is armed
``retry_interval`` ahead; nothing is retried in-process. The current
version only advances after a successful dispatch, so a release whose
notification failed is offered again on the next cycle (at-least-once).
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from enum import Enum

from attrs import define
from provide.foundation.logger import get_logger

from verwatch.config.models import GlobalConfig, MonitorConfig
from verwatch.engines.protocols import Dispatcher, ReleaseSource
from verwatch.errors import (
    DispatchError,
    MonitorBusyError,
    MonitorNotFoundError,
    ReleaseComparisonError,
    SetupFailureError,
    StateStoreError,
    UpstreamFetchError,
)
from verwatch.release import DEFAULT_DISPATCH_EVENT_TYPE, DispatchPayload, ReleaseRecord
from verwatch.scheduler.clock import Clock
from verwatch.scheduler.timer import TimerService
from verwatch.state.runtime import (
    MonitorState,
    MonitorStatus,
    MonitorSummary,
    monitor_from_dict,
    monitor_to_dict,
)
from verwatch.state.store import StateStore

log = get_logger(__name__)


class CheckOutcome(Enum):
    """Result of one check cycle."""

    DISPATCHED = "dispatched"
    UNCHANGED = "unchanged"
    FETCH_FAILED = "fetch_failed"
    DISPATCH_FAILED = "dispatch_failed"
    ABANDONED = "abandoned"  # monitor stopped while the check was in flight

    @property
    def succeeded(self) -> bool:
        return self in (CheckOutcome.DISPATCHED, CheckOutcome.UNCHANGED)


@define(frozen=True)
class MonitorSettings:
    """Process-wide knobs shared by every monitor."""

    fetch_timeout: float = 15.0
    dispatch_timeout: float = 15.0
    default_credential_ref: str = "MY_GITHUB_PAT"
    dispatch_event_type: str = DEFAULT_DISPATCH_EVENT_TYPE

    @classmethod
    def from_global(cls, global_config: GlobalConfig) -> MonitorSettings:
        return cls(
            fetch_timeout=global_config.fetch_timeout_seconds,
            dispatch_timeout=global_config.dispatch_timeout_seconds,
            default_credential_ref=global_config.pat_token_name,
            dispatch_event_type=global_config.dispatch_event_type,
        )


class MonitorActor:
    """Owns and drives one upstream → downstream relationship."""

    def __init__(
        self,
        key: str,
        *,
        store: StateStore,
        timer: TimerService,
        clock: Clock,
        release_source: ReleaseSource,
        dispatcher: Dispatcher,
        settings: MonitorSettings | None = None,
    ) -> None:
        self.key = key
        self._store = store
        self._timer = timer
        self._clock = clock
        self._release_source = release_source
        self._dispatcher = dispatcher
        self._settings = settings or MonitorSettings()

        self._config: MonitorConfig | None = None
        self._state = MonitorState()
        self._status = MonitorStatus.UNINITIALIZED
        self._alive = True
        self._check_lock = asyncio.Lock()
        # Orders saves against the delete in stop(); held only around store calls.
        self._store_lock = asyncio.Lock()
        self._log = log.bind(monitor=key)

    # --- Introspection ---

    @property
    def status(self) -> MonitorStatus:
        return self._status

    @property
    def config(self) -> MonitorConfig | None:
        return self._config

    @property
    def state(self) -> MonitorState:
        """A copy of the in-memory state; mutating it has no effect."""
        return self._state.copy()

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def is_checking(self) -> bool:
        return self._check_lock.locked()

    def _require_config(self) -> MonitorConfig:
        if not self._alive or self._config is None:
            raise MonitorNotFoundError(self.key)
        return self._config

    # --- Lifecycle ---

    async def setup(self, config: MonitorConfig) -> None:
        """Initialise fresh state and arm the first wake-up after ``initial_delay``.

        Raises:
            SetupFailureError: If the state could not be persisted or the
                wake-up could not be armed.
        """
        if self._status is not MonitorStatus.UNINITIALIZED:
            raise SetupFailureError(self.key, RuntimeError(f"monitor is already {self._status.name}"))

        self._config = config
        self._state = MonitorState()
        next_at = self._clock.now() + config.time_config.initial_delay
        self._state.next_check_at = next_at

        try:
            await self._persist()
            self._timer.arm(self.key, next_at)
        except Exception as e:
            self._timer.cancel(self.key)
            self._log.error("Monitor setup failed", error=str(e))
            raise SetupFailureError(self.key, e) from e

        self._status = MonitorStatus.SCHEDULED
        self._log.info(
            "Monitor set up",
            upstream=config.base.upstream,
            downstream=config.base.downstream,
            first_check_at=next_at.isoformat(),
        )

    async def restore(self, config: MonitorConfig, state: MonitorState) -> None:
        """Resume from persisted state after a restart.

        Overdue wake-ups fire immediately. Paused monitors stay paused with
        nothing armed.
        """
        self._config = config
        self._state = state.copy()

        if self._state.paused:
            self._status = MonitorStatus.PAUSED
            self._log.info("Monitor restored (paused)")
            return

        now = self._clock.now()
        next_at = self._state.next_check_at
        if next_at is None or next_at < now:
            next_at = now
        self._state.next_check_at = next_at
        self._timer.arm(self.key, next_at)
        self._status = MonitorStatus.SCHEDULED
        self._log.info(
            "Monitor restored",
            current_version=self._state.current_version.tag if self._state.current_version else None,
            next_check_at=next_at.isoformat(),
        )

    async def stop(self) -> MonitorConfig | None:
        """Cancel the pending wake-up and erase persisted state.

        A check already in flight is allowed to finish its outbound call but
        commits nothing afterwards.

        Returns:
            The configuration that was in effect.

        Raises:
            StateStoreError: If the persisted slot could not be erased.
        """
        self._alive = False
        self._timer.cancel(self.key)
        self._status = MonitorStatus.STOPPED
        config = self._config
        async with self._store_lock:
            await self._store.delete(self.key)
        self._log.info("Monitor stopped")
        return config

    async def set_paused(self, paused: bool) -> None:
        """Pause (cancel the wake-up, keep state) or resume (re-arm ``check_interval`` from now)."""
        config = self._require_config()

        if paused:
            if self._state.paused:
                return
            self._timer.cancel(self.key)
            self._state.paused = True
            self._state.next_check_at = None
            if not self.is_checking:
                self._status = MonitorStatus.PAUSED
            await self._persist()
            self._log.info("Monitor paused")
            return

        if not self._state.paused:
            return
        next_at = self._clock.now() + config.time_config.check_interval
        self._state.paused = False
        self._state.next_check_at = next_at
        await self._persist()
        if not self._alive or self._state.paused:
            # Stopped or paused again while the resume was being saved.
            self._log.debug("Resume superseded, nothing armed")
            return
        self._timer.arm(self.key, next_at)
        if not self.is_checking:
            self._status = MonitorStatus.SCHEDULED
        self._log.info("Monitor resumed", next_check_at=next_at.isoformat())

    # --- Checking ---

    async def on_wake(self) -> None:
        """Timer callback: run one check and re-arm exactly one wake-up."""
        async with self._check_lock:
            if not self._alive or self._config is None:
                return
            if self._state.paused:
                self._log.debug("Wake-up ignored while paused")
                return

            config = self._config
            self._status = MonitorStatus.CHECKING
            try:
                outcome = await self._check_once(config)
            except Exception as e:
                self._log.exception("Check cycle crashed")
                self._state.record_failure(f"{type(e).__name__}: {e}")
                outcome = CheckOutcome.FETCH_FAILED

            if not self._alive:
                return
            if self._state.paused:
                # Paused while the check was running.
                self._status = MonitorStatus.PAUSED
                await self._persist_quietly()
                return

            interval = self._next_interval(config, outcome)
            next_at = self._clock.now() + interval
            self._state.next_check_at = next_at
            await self._persist_quietly()

            # The save yields; stop() or set_paused(True) may have run meanwhile.
            if not self._alive:
                return
            if self._state.paused:
                self._status = MonitorStatus.PAUSED
                return
            self._timer.arm(self.key, next_at)
            self._status = MonitorStatus.SCHEDULED
            self._log.debug(
                "Next check scheduled",
                outcome=outcome.value,
                next_check_at=next_at.isoformat(),
                consecutive_failures=self._state.consecutive_failures,
            )

    async def trigger_now(self) -> CheckOutcome:
        """Run one check immediately, leaving the armed wake-up untouched.

        Raises:
            MonitorBusyError: If a check is already running for this monitor.
            MonitorNotFoundError: If the monitor has been stopped.
        """
        if self._check_lock.locked():
            raise MonitorBusyError(self.key)

        async with self._check_lock:
            config = self._require_config()
            previous_status = self._status
            self._status = MonitorStatus.CHECKING
            self._log.info("Manual check triggered")
            outcome = await self._check_once(config)
            if not self._alive:
                return outcome
            self._status = MonitorStatus.PAUSED if self._state.paused else previous_status
            await self._persist_quietly()
            return outcome

    async def run_check_cycle(self) -> CheckOutcome:
        """Run one check under the check lock and persist the result, without rescheduling."""
        async with self._check_lock:
            config = self._require_config()
            outcome = await self._check_once(config)
            if self._alive:
                await self._persist_quietly()
            return outcome

    def _next_interval(self, config: MonitorConfig, outcome: CheckOutcome) -> timedelta:
        if outcome.succeeded:
            return config.time_config.check_interval
        return config.time_config.retry_interval

    def _credential_ref(self, config: MonitorConfig) -> str:
        return config.base.dispatch_token_secret or self._settings.default_credential_ref

    async def _check_once(self, config: MonitorConfig) -> CheckOutcome:
        """Fetch, compare and dispatch; then commit the outcome to in-memory state."""
        upstream = config.base.upstream
        downstream = config.base.downstream
        mode = config.comparison_mode
        record: ReleaseRecord | None = None
        error: str | None = None

        try:
            record = await asyncio.wait_for(
                self._release_source.fetch_latest(upstream), timeout=self._settings.fetch_timeout
            )
            newer = record.is_newer_than(self._state.current_version, mode)
        except TimeoutError:
            outcome, error = CheckOutcome.FETCH_FAILED, f"fetch timed out after {self._settings.fetch_timeout}s"
        except (UpstreamFetchError, ReleaseComparisonError) as e:
            outcome, error = CheckOutcome.FETCH_FAILED, str(e)
        except Exception as e:
            self._log.exception("Unexpected error fetching release", upstream=upstream)
            outcome, error = CheckOutcome.FETCH_FAILED, f"{type(e).__name__}: {e}"
        else:
            if not newer:
                outcome = CheckOutcome.UNCHANGED
            elif not self._alive:
                outcome = CheckOutcome.ABANDONED
            else:
                outcome, error = await self._dispatch(config, record)

        if not self._alive:
            self._log.info("Check finished after monitor was stopped, discarding result", outcome=outcome.value)
            return CheckOutcome.ABANDONED

        now = self._clock.now()
        self._state.last_checked_at = now
        if outcome is CheckOutcome.DISPATCHED and record is not None:
            previous = self._state.current_version
            self._state.advance_version(record, now)
            self._log.info(
                "New release delivered",
                upstream=upstream,
                downstream=downstream,
                tag=record.tag,
                previous_tag=previous.tag if previous else None,
            )
        elif outcome is CheckOutcome.UNCHANGED:
            self._state.record_success()
            self._log.debug("No newer release", upstream=upstream, tag=record.tag if record else None)
        else:
            self._state.record_failure(error or outcome.value)
            self._log.warning(
                "Check failed",
                outcome=outcome.value,
                error=error,
                consecutive_failures=self._state.consecutive_failures,
            )
        return outcome

    async def _dispatch(self, config: MonitorConfig, record: ReleaseRecord) -> tuple[CheckOutcome, str | None]:
        downstream = config.base.downstream
        try:
            payload = DispatchPayload.for_release(
                record, config.comparison_mode, event_type=self._settings.dispatch_event_type
            )
            await asyncio.wait_for(
                self._dispatcher.send(downstream, self._credential_ref(config), payload),
                timeout=self._settings.dispatch_timeout,
            )
        except TimeoutError:
            return CheckOutcome.DISPATCH_FAILED, f"dispatch timed out after {self._settings.dispatch_timeout}s"
        except (DispatchError, ReleaseComparisonError) as e:
            return CheckOutcome.DISPATCH_FAILED, str(e)
        except Exception as e:
            self._log.exception("Unexpected error dispatching", downstream=downstream)
            return CheckOutcome.DISPATCH_FAILED, f"{type(e).__name__}: {e}"
        return CheckOutcome.DISPATCHED, None

    # --- Persistence ---

    async def _persist(self) -> None:
        if self._config is None:
            return
        async with self._store_lock:
            # A save queued behind stop() must not resurrect the erased slot.
            if not self._alive:
                return
            await self._store.save(self.key, monitor_to_dict(self._config, self._state))

    async def _persist_quietly(self) -> None:
        """Persist, logging instead of raising so the schedule keeps running."""
        try:
            await self._persist()
        except StateStoreError as e:
            self._log.error("Failed to persist monitor state", error=str(e))

    async def snapshot(self) -> MonitorSummary:
        """Read this monitor's persisted record for listings.

        Raises:
            StateStoreError: If the record is missing or unreadable.
        """
        record = await self._store.load(self.key)
        if record is None:
            raise StateStoreError(f"No persisted state for monitor '{self.key}'", self.key)
        try:
            config, state = monitor_from_dict(record)
        except (KeyError, TypeError, ValueError) as e:
            raise StateStoreError(f"Corrupt state for monitor '{self.key}': {e}", self.key) from e
        return MonitorSummary(key=self.key, config=config, state=state, status=self._status)


# 🔼⚙️🔚
