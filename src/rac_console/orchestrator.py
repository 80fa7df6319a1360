"""Apply NIC addressing to a batch of targets and wait for it to take.

Lifecycle per target:

    PENDING -> APPLIED | ERRORED          (phase 1, setniccfg)
    ERRORED -> APPLIED | GAVE_UP          (phase 2, fixed-delay retries)
    APPLIED -> ADDRESS_CONVERGED | TIMED_OUT
                                          (phase 3, getniccfg polling)
    ADDRESS_CONVERGED -> CONNECTIVITY_CONFIRMED | TIMED_OUT
                                          (phase 4, ping probes)

Targets that give up in phase 2 are reported and skipped; the rest of the
batch continues. Phases 3 and 4 run one task per target, joined at the end
of each phase, and every console command goes through the client's lock.
"""
import asyncio
import logging
import re
from typing import Awaitable, Callable, Iterable, Optional

from tenacity import RetryCallState

from .applier import ERROR_MARKER, ConfigurationApplier
from .config.settings import ConvergenceSettings
from .console.parser import ParsedResponse
from .errors import ConvergenceCancelled, ConvergenceTimeoutError
from .models import (
    ConvergenceReport,
    NetworkTarget,
    StaticAddressing,
    TargetOutcome,
    TargetState,
)
from .utils.connection import Sleeper, poll_until
from .utils.logging_config import timed_section

logger = logging.getLogger(__name__)

UNASSIGNED_ADDRESS = "0.0.0.0"
PING_SUCCESS = re.compile(r"(^|[^\d])1 packets received", re.MULTILINE)


def apply_succeeded(output: ParsedResponse) -> bool:
    return ERROR_MARKER not in output.text


def dhcp_converged(output: ParsedResponse) -> bool:
    address = output.get("IP Address")
    return (
        output.get("DHCP Enabled") == "1"
        and bool(address)
        and address != UNASSIGNED_ADDRESS
    )


def static_converged(desired: StaticAddressing) -> Callable[[ParsedResponse], bool]:
    def _check(output: ParsedResponse) -> bool:
        return output.get("IP Address") == desired.ip_address
    return _check


def ping_succeeded(output: ParsedResponse) -> bool:
    return bool(PING_SUCCESS.search(output.text))


class ConvergenceOrchestrator:
    """Drives a batch of NetworkTargets to confirmed connectivity."""

    def __init__(
        self,
        applier: ConfigurationApplier,
        settings: Optional[ConvergenceSettings] = None,
        sleep: Sleeper = asyncio.sleep,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.applier = applier
        self.client = applier.client
        self.settings = settings or ConvergenceSettings()
        self._sleep = sleep
        self.cancel_event = cancel_event or asyncio.Event()

    def cancel(self) -> None:
        """Abort the run at the next attempt or sleep boundary."""
        self.cancel_event.set()

    def _check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ConvergenceCancelled("Convergence run cancelled")

    async def _wait(self, seconds: float) -> None:
        """Sleep, returning early if the run is cancelled."""
        self._check_cancelled()
        sleeper = asyncio.ensure_future(self._sleep(seconds))
        watcher = asyncio.ensure_future(self.cancel_event.wait())
        try:
            await asyncio.wait({sleeper, watcher}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, watcher):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, watcher, return_exceptions=True)
        self._check_cancelled()
        sleeper.result()

    async def converge(self, targets: Iterable[NetworkTarget]) -> ConvergenceReport:
        """Apply, retry, poll and probe every target.

        Returns:
            ConvergenceReport with one outcome per target, in input order

        Raises:
            ConvergenceTimeoutError: A target timed out and halt_on_timeout is set
            ConvergenceCancelled: cancel() was called
            ConsoleConfigurationError: No usable console session
        """
        report = ConvergenceReport([TargetOutcome(target) for target in targets])
        outcomes = report.outcomes

        async with self.client.session():
            async with timed_section("apply", target=self.client.host, targets=len(outcomes)):
                for outcome in outcomes:
                    await self._apply_first(outcome)

            errored = self._in_state(outcomes, TargetState.ERRORED)
            if errored:
                async with timed_section("retry_apply", target=self.client.host, targets=len(errored)):
                    for outcome in errored:
                        await self._retry_apply(outcome)

            applied = self._in_state(outcomes, TargetState.APPLIED)
            async with timed_section("wait_for_address", target=self.client.host, targets=len(applied)):
                await self._run_phase(applied, self._wait_for_address, report)

            converged = self._in_state(outcomes, TargetState.ADDRESS_CONVERGED)
            async with timed_section("wait_for_connectivity", target=self.client.host, targets=len(converged)):
                await self._run_phase(converged, self._wait_for_connectivity, report)

        logger.info(
            f"Convergence finished: {len(report.confirmed)}/{len(outcomes)} targets reachable"
        )
        return report

    @staticmethod
    def _in_state(outcomes: list[TargetOutcome], state: TargetState) -> list[TargetOutcome]:
        return [o for o in outcomes if o.state == state]

    async def _run_phase(
        self,
        outcomes: list[TargetOutcome],
        step: Callable[[TargetOutcome], Awaitable[None]],
        report: ConvergenceReport,
    ) -> None:
        if not outcomes:
            return

        if not self.settings.concurrent:
            for outcome in outcomes:
                await step(outcome)
                self._halt_if_timed_out([outcome], report)
            return

        tasks = [asyncio.ensure_future(step(outcome)) for outcome in outcomes]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        self._halt_if_timed_out(outcomes, report)

    def _halt_if_timed_out(self, outcomes: list[TargetOutcome], report: ConvergenceReport) -> None:
        if not self.settings.halt_on_timeout:
            return
        for outcome in outcomes:
            if outcome.state == TargetState.TIMED_OUT:
                raise ConvergenceTimeoutError(
                    outcome.error or f"Timed out waiting for {outcome.target.name}",
                    target=outcome.target.name,
                    outcomes=report.outcomes,
                )

    def _time_out(self, outcome: TargetOutcome, message: str) -> None:
        outcome.error = message
        outcome.transition(TargetState.TIMED_OUT)
        logger.error(message)

    # Phases 1 and 2

    async def _apply(self, outcome: TargetOutcome) -> ParsedResponse:
        self._check_cancelled()
        outcome.attempts += 1
        target = outcome.target
        return await self.applier.set_network_interface(target.name, target.desired)

    async def _apply_first(self, outcome: TargetOutcome) -> None:
        output = await self._apply(outcome)
        if apply_succeeded(output):
            outcome.transition(TargetState.APPLIED)
        else:
            outcome.transition(TargetState.ERRORED)

    async def _retry_apply(self, outcome: TargetOutcome) -> None:
        target = outcome.target
        delay = self.settings.apply_retry_delay
        remaining = self.settings.apply_attempts - outcome.attempts

        async def _recorded_wait(seconds: float) -> None:
            outcome.retry_delays.append(seconds)
            await self._wait(seconds)

        def _log_retry(state: Optional[RetryCallState] = None) -> None:
            logger.debug(
                f"Could not set {target.desired.mode} network for {target.name}. "
                f"Retrying in {delay} seconds..."
            )

        result = None
        if remaining > 0:
            _log_retry()
            await _recorded_wait(delay)
            result = await poll_until(
                lambda: self._apply(outcome),
                attempts=remaining,
                delay=delay,
                done=apply_succeeded,
                sleep=_recorded_wait,
                before_sleep=_log_retry,
            )

        if result is not None and result.succeeded:
            outcome.transition(TargetState.APPLIED)
            return

        outcome.error = f"Networking cannot be set for {target.name}."
        outcome.transition(TargetState.GAVE_UP)
        logger.error(outcome.error)

    # Phase 3

    async def _wait_for_address(self, outcome: TargetOutcome) -> None:
        target = outcome.target
        if isinstance(target.desired, StaticAddressing):
            label = "static"
            done = static_converged(target.desired)
        else:
            label = "DHCP"
            done = dhcp_converged

        async def _poll() -> ParsedResponse:
            self._check_cancelled()
            return await self.client.run("getniccfg", {"m": target.name})

        def _log_wait(state: RetryCallState) -> None:
            logger.info(f"Waiting for {label} address for {target.name}")

        result = await poll_until(
            _poll,
            attempts=self.settings.poll_attempts,
            delay=self.settings.poll_interval,
            done=done,
            sleep=self._wait,
            before_sleep=_log_wait,
        )
        outcome.polls = result.attempts
        outcome.address = result.value.get("IP Address")

        if result.succeeded:
            outcome.transition(TargetState.ADDRESS_CONVERGED)
        else:
            self._time_out(outcome, f"Timed out waiting for {label} address for {target.name}")

    # Phase 4

    async def _wait_for_connectivity(self, outcome: TargetOutcome) -> None:
        name = outcome.target.name
        address = outcome.address

        async def _probe() -> ParsedResponse:
            self._check_cancelled()
            logger.info(f"Waiting for connectivity to {name} at {address}...")
            return await self.client.run("ping", params=address)

        result = await poll_until(
            _probe,
            attempts=self.settings.ping_attempts,
            delay=self.settings.ping_interval,
            done=ping_succeeded,
            sleep=self._wait,
        )
        outcome.probes = result.attempts

        if result.succeeded:
            outcome.transition(TargetState.CONNECTIVITY_CONFIRMED)
            logger.info(f"{name} is now reachable at {address}")
        else:
            self._time_out(outcome, f"Could not ping {name} at {address}")
