"""Adapter executor with retry, radius degradation and status instrumentation."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, List, Optional, Tuple

from discovery.constants import (
    DEFAULT_ADAPTER_TIMEOUT_S,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MIN_RETRY_RADIUS_M,
    DEFAULT_RADIUS_STEP_M,
    DEFAULT_RETRY_BASE_DELAY_S,
)
from discovery.exceptions import AdapterFailure
from discovery.models import POI, Origin, POIType, ProviderStatusSnapshot
from discovery.adapters.base import SourceAdapter
from observability.metrics import (
    discovery_provider_duration_seconds,
    discovery_provider_errors_total,
    discovery_provider_retries_total,
    discovery_results_count,
)

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Per-adapter retry: shrink the radius, back off linearly."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    radius_step_m: int = DEFAULT_RADIUS_STEP_M
    min_radius_m: int = DEFAULT_MIN_RETRY_RADIUS_M
    base_delay_s: float = DEFAULT_RETRY_BASE_DELAY_S
    timeout_s: float = DEFAULT_ADAPTER_TIMEOUT_S

    def initial_radius(self, radius_m: int) -> int:
        """No attempt queries below the floor, the first one included."""
        return max(self.min_radius_m, radius_m)

    def next_radius(self, previous_m: int) -> int:
        return max(self.min_radius_m, previous_m - self.radius_step_m)

    def delay_for(self, failed_attempts: int) -> float:
        return self.base_delay_s * failed_attempts

    def radii(self, initial_m: int) -> List[int]:
        """Radius for every attempt, in order."""
        radii = [self.initial_radius(initial_m)]
        while len(radii) < self.max_attempts:
            radii.append(self.next_radius(radii[-1]))
        return radii


@dataclass
class AdapterRun:
    """Outcome of one adapter across all of its attempts."""

    pois: List[POI]
    status: ProviderStatusSnapshot
    failure: Optional[AdapterFailure] = None
    radii_m: List[int] = field(default_factory=list)


async def run_adapter_with_retry(
    adapter: SourceAdapter,
    origin: Origin,
    radius_m: int,
    enabled_types: FrozenSet[POIType],
    *,
    language: Optional[str] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Sleeper = asyncio.sleep,
) -> AdapterRun:
    """Run one adapter to success or exhaustion. Never raises adapter errors."""
    policy = policy or RetryPolicy()
    source = adapter.source
    started = time.monotonic()
    radii: List[int] = []
    last_error: Optional[BaseException] = None
    last_status = "error"
    radius = policy.initial_radius(radius_m)

    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            radius = policy.next_radius(radius)
            delay = policy.delay_for(attempt - 1)
            discovery_provider_retries_total.labels(source=source.value).inc()
            logger.info(
                f"Retrying {source.value} (attempt {attempt}/{policy.max_attempts})",
                extra={
                    "event": "adapter_retry",
                    "source": source.value,
                    "attempt": attempt,
                    "radius_m": radius,
                    "delay_s": delay,
                },
            )
            if delay > 0:
                await sleep(delay)
        radii.append(radius)

        try:
            pois = await asyncio.wait_for(
                adapter.fetch(origin, radius, enabled_types, language=language),
                timeout=policy.timeout_s,
            )
        except asyncio.TimeoutError as e:
            last_error, last_status = e, "timeout"
            discovery_provider_errors_total.labels(source=source.value, error_type="timeout").inc()
            logger.warning(f"[{source.value}] attempt {attempt} timed out after {policy.timeout_s}s")
            continue
        except Exception as e:
            last_error, last_status = e, "error"
            discovery_provider_errors_total.labels(
                source=source.value, error_type=type(e).__name__
            ).inc()
            logger.warning(f"[{source.value}] attempt {attempt} failed: {type(e).__name__}: {e}")
            continue

        elapsed = time.monotonic() - started
        pois = list(pois)
        discovery_provider_duration_seconds.labels(source=source.value).observe(elapsed)
        discovery_results_count.labels(source=source.value).observe(len(pois))
        status = ProviderStatusSnapshot(
            source=source,
            status="ok",
            result_count=len(pois),
            latency_ms=int(elapsed * 1000),
            attempts=attempt,
            radii_m=tuple(radii),
        )
        return AdapterRun(pois=pois, status=status, radii_m=radii)

    elapsed = time.monotonic() - started
    discovery_provider_duration_seconds.labels(source=source.value).observe(elapsed)
    failure = AdapterFailure(source.value, policy.max_attempts, last_error)
    logger.error(
        failure.message,
        extra={"event": "adapter_exhausted", "source": source.value, "attempts": policy.max_attempts},
    )
    status = ProviderStatusSnapshot(
        source=source,
        status="exhausted" if policy.max_attempts > 1 else last_status,
        result_count=0,
        latency_ms=int(elapsed * 1000),
        attempts=policy.max_attempts,
        radii_m=tuple(radii),
        message=f"{last_status}: {str(last_error)[:100]}" if last_error else last_status,
    )
    return AdapterRun(pois=[], status=status, failure=failure, radii_m=radii)


async def run_adapters_concurrently(
    adapters: List[SourceAdapter],
    origin: Origin,
    radius_m: int,
    enabled_types: FrozenSet[POIType],
    *,
    language: Optional[str] = None,
    policy: Optional[RetryPolicy] = None,
    sleep: Sleeper = asyncio.sleep,
) -> Tuple[AdapterRun, ...]:
    """Fan out to every adapter and join once all have settled."""
    runs = await asyncio.gather(
        *(
            run_adapter_with_retry(
                adapter,
                origin,
                radius_m,
                enabled_types,
                language=language,
                policy=policy,
                sleep=sleep,
            )
            for adapter in adapters
        )
    )
    return tuple(runs)
