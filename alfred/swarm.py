"""Swarm mode: negotiate with many providers concurrently.

Providers are called in consecutive batches of ``max_concurrent_calls``.
Every call in a batch is launched together and raced against a per-call
timeout; the orchestrator waits for the whole batch to settle before it
decides whether to stop early. Stopping early only marks providers in
batches that never started as ``cancelled`` unless ``interrupt_in_flight``
is enabled, in which case the rest of the current batch is cancelled as
soon as one call succeeds.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from .config import settings
from .schema import CallResult, CallState, CallStatus, Provider, SwarmResult
from .timeutil import format_for_user, parse_local
from .tools.providers import ProviderLookup
from .tools.scoring import batch_providers

logger = logging.getLogger(__name__)

StatusCallback = Callable[[CallStatus], None]
SlotChooser = Callable[[Provider], str]


class Negotiator(Protocol):
    async def negotiate(
        self,
        provider_id: str,
        requested_slot: str,
        service_description: Optional[str] = None,
    ) -> CallResult:
        ...


@dataclass(frozen=True)
class SwarmConfig:
    max_concurrent_calls: int = 5
    timeout_ms: int = 15000
    stop_on_first_success: bool = True
    # Retry a timed-out call once, inside its batch
    retry_failed_calls: bool = False
    # Cancel the rest of a batch as soon as one call in it succeeds
    interrupt_in_flight: bool = False

    @classmethod
    def from_settings(cls, **overrides) -> "SwarmConfig":
        values = {
            "max_concurrent_calls": settings.max_concurrent_calls,
            "timeout_ms": settings.call_timeout_ms,
            "stop_on_first_success": settings.stop_on_first_success,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SwarmOrchestrator:
    """Dispatches negotiations and aggregates them into a ``SwarmResult``.

    One orchestrator may run several ``execute`` calls concurrently: all
    per-run bookkeeping lives inside ``execute``.
    """

    def __init__(
        self,
        simulator: Negotiator,
        lookup: Optional[ProviderLookup] = None,
        config: Optional[SwarmConfig] = None,
        on_status_update: Optional[StatusCallback] = None,
    ):
        self.simulator = simulator
        self.lookup = lookup
        self.config = config or SwarmConfig()
        self.on_status_update = on_status_update

    def set_status_callback(self, callback: Optional[StatusCallback]) -> None:
        self.on_status_update = callback

    def _transition(self, status: CallStatus, new_state: CallState) -> None:
        logger.debug("call %s: %s -> %s", status.provider_id, status.status.value, new_state.value)
        status.status = new_state
        if new_state == CallState.CALLING:
            status.started_at = _now_ms()
        elif new_state != CallState.PENDING:
            status.completed_at = _now_ms()

        if self.on_status_update is not None:
            try:
                self.on_status_update(status)
            except Exception:
                logger.exception("status callback failed for %s", status.provider_id)

    async def _negotiate_with_timeout(self, status: CallStatus, slot: str, service_description: Optional[str]) -> Optional[CallResult]:
        attempts = 2 if self.config.retry_failed_calls else 1
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(
                    self.simulator.negotiate(status.provider_id, slot, service_description),
                    timeout=self.config.timeout_ms / 1000.0,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "call %s timed out after %dms (attempt %d/%d)",
                    status.provider_id, self.config.timeout_ms, attempt, attempts,
                )
        return None

    async def _run_call(self, status: CallStatus, slot: str, service_description: Optional[str]) -> CallStatus:
        self._transition(status, CallState.CALLING)
        try:
            result = await self._negotiate_with_timeout(status, slot, service_description)
        except asyncio.CancelledError:
            self._transition(status, CallState.CANCELLED)
            raise
        except Exception as exc:
            logger.exception("call %s failed", status.provider_id)
            status.result = CallResult(
                success=False,
                provider_id=status.provider_id,
                provider_name=status.provider_name,
                message=f"Call could not be completed: {exc}",
                wait_time_ms=0,
            )
            self._transition(status, CallState.FAILED)
            return status

        if result is None:
            self._transition(status, CallState.TIMEOUT)
        else:
            status.result = result
            self._transition(status, CallState.SUCCESS if result.success else CallState.FAILED)
        return status

    async def _run_batch(self, tasks: List[asyncio.Task]) -> None:
        if not (self.config.interrupt_in_flight and self.config.stop_on_first_success):
            await asyncio.gather(*tasks)
            return

        pending = set(tasks)
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                if any(t.result().status == CallState.SUCCESS for t in done) and pending:
                    logger.info("interrupting %d in-flight calls after first success", len(pending))
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
                    return
        except asyncio.CancelledError:
            # asyncio.wait leaves its tasks running when the caller is cancelled
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

    async def execute(
        self,
        providers: Sequence[Provider],
        requested_slot: str,
        service_description: Optional[str] = None,
        slot_for: Optional[SlotChooser] = None,
    ) -> SwarmResult:
        """Call ``providers`` in batches and return the aggregated result.

        Args:
            providers: Candidates in call order (usually ranked).
            requested_slot: Local-time slot asked of every provider.
            service_description: Spoken by the agent, e.g. "teeth cleaning".
            slot_for: Optional per-provider override of the requested slot.

        Returns:
            SwarmResult. Never raises for failed, timed-out or unknown calls.
        """
        started = time.monotonic()
        statuses = [CallStatus(provider_id=p.id, provider_name=p.name) for p in providers]
        indexed = list(zip(providers, statuses))

        batches = batch_providers(indexed, self.config.max_concurrent_calls)
        for number, batch in enumerate(batches, start=1):
            logger.info("swarm batch %d/%d: %d calls", number, len(batches), len(batch))
            tasks = [
                asyncio.create_task(
                    self._run_call(status, slot_for(p) if slot_for else requested_slot, service_description),
                    name=f"call-{p.id}",
                )
                for p, status in batch
            ]
            await self._run_batch(tasks)

            if self.config.stop_on_first_success and any(s.status == CallState.SUCCESS for _, s in batch):
                remaining = [s for s in statuses if s.status == CallState.PENDING]
                if remaining:
                    logger.info("first success in batch %d, cancelling %d queued calls", number, len(remaining))
                for status in remaining:
                    self._transition(status, CallState.CANCELLED)
                break

        return self._aggregate(providers, statuses, started)

    def _rating_of(self, provider_id: str, fallback: Dict[str, float]) -> float:
        if self.lookup is not None:
            provider = self.lookup.get_provider(provider_id)
            if provider is not None:
                return provider.rating
        return fallback.get(provider_id, 0.0)

    def select_best_match(self, statuses: Sequence[CallStatus], providers: Sequence[Provider] = ()) -> Optional[CallStatus]:
        """Earliest booked slot wins; ties go to the higher rating, then input order."""
        fallback = {p.id: getattr(p, "rating", 0.0) for p in providers}
        candidates = [
            (index, s) for index, s in enumerate(statuses)
            if s.status == CallState.SUCCESS and s.result is not None and s.result.booked_slot
        ]
        if not candidates:
            return None
        _, best = min(
            candidates,
            key=lambda c: (parse_local(c[1].result.booked_slot), -self._rating_of(c[1].provider_id, fallback), c[0]),
        )
        return best

    def _aggregate(self, providers: Sequence[Provider], statuses: List[CallStatus], started: float) -> SwarmResult:
        snapshot = [s.model_copy(deep=True) for s in statuses]
        best = self.select_best_match(snapshot, providers)
        result = SwarmResult(
            total_providers=len(providers),
            successful_bookings=[s for s in snapshot if s.status == CallState.SUCCESS],
            failed_calls=[s for s in snapshot if s.status in (CallState.FAILED, CallState.TIMEOUT)],
            cancelled_calls=[s for s in snapshot if s.status == CallState.CANCELLED],
            best_match=best,
            total_duration_ms=int((time.monotonic() - started) * 1000),
            call_statuses=snapshot,
        )
        logger.info(
            "swarm done: total=%d success=%d failed=%d cancelled=%d best=%s",
            result.total_providers,
            len(result.successful_bookings),
            len(result.failed_calls),
            len(result.cancelled_calls),
            best.provider_id if best else None,
        )
        return result


async def initiate_provider_call(
    simulator: Negotiator,
    provider: Provider,
    requested_slot: str,
    service_description: Optional[str] = None,
    timeout_ms: Optional[int] = None,
    lookup: Optional[ProviderLookup] = None,
) -> CallStatus:
    """Single-call mode: one provider, one batch, timeout still applied."""
    config = SwarmConfig(
        max_concurrent_calls=1,
        timeout_ms=timeout_ms or settings.call_timeout_ms,
        stop_on_first_success=False,
    )
    orchestrator = SwarmOrchestrator(simulator, lookup=lookup, config=config)
    result = await orchestrator.execute([provider], requested_slot, service_description)
    return result.call_statuses[0]


async def execute_swarm_calls(
    simulator: Negotiator,
    providers: Sequence[Provider],
    requested_slot: str,
    service_description: Optional[str] = None,
    max_concurrent: Optional[int] = None,
    stop_on_first_success: Optional[bool] = None,
    on_status_update: Optional[StatusCallback] = None,
    lookup: Optional[ProviderLookup] = None,
) -> SwarmResult:
    """Convenience wrapper for a one-off swarm run with settings defaults."""
    config = SwarmConfig.from_settings(
        max_concurrent_calls=max_concurrent,
        stop_on_first_success=stop_on_first_success,
    )
    orchestrator = SwarmOrchestrator(simulator, lookup=lookup, config=config, on_status_update=on_status_update)
    return await orchestrator.execute(providers, requested_slot, service_description)


def format_swarm_summary(result: SwarmResult) -> str:
    lines = [
        "Swarm Call Summary",
        "=" * 21,
        f"Total Providers: {result.total_providers}",
        f"Successful: {len(result.successful_bookings)}",
        f"Failed/Timeout: {len(result.failed_calls)}",
        f"Cancelled: {len(result.cancelled_calls)}",
        f"Duration: {result.total_duration_ms / 1000:.1f}s",
        "",
    ]
    if result.best_match and result.best_match.result and result.best_match.result.booked_slot:
        lines += [
            "Best Match:",
            f"   {result.best_match.provider_name}",
            f"   {format_for_user(result.best_match.result.booked_slot)}",
        ]
    else:
        lines.append("No successful bookings")
    return "\n".join(lines)
