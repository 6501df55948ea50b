"""Baseline and burst traffic generation against the target."""

import logging
from dataclasses import dataclass

from .client import TargetClient
from .config import DetectionThresholds
from .exceptions import InsufficientInput
from .models import BaselineMetrics, RequestSample, TrafficMetrics
from .stats import summarize_baseline, summarize_burst

logger = logging.getLogger(__name__)

# (request type, path) pairs a burst rotates through
BURST_REQUEST_TYPES = (
    ("config", "/api/config"),
    ("user", "/api/user/1"),
    ("search", "/api/search?q=test"),
    ("home", "/"),
)


@dataclass(frozen=True)
class BaselineRun:
    samples: tuple[RequestSample, ...]
    metrics: BaselineMetrics


@dataclass(frozen=True)
class BurstRun:
    samples: tuple[RequestSample, ...]
    metrics: TrafficMetrics


class TrafficAnalyzer:
    """Generates reference and burst traffic and summarizes what came back."""

    def __init__(
        self,
        client: TargetClient,
        thresholds: DetectionThresholds | None = None,
        request_types: tuple[tuple[str, str], ...] = BURST_REQUEST_TYPES,
    ) -> None:
        self._client = client
        self._clock = client.clock
        self._thresholds = thresholds or DetectionThresholds()
        self._request_types = request_types

    async def measure_baseline(self, endpoints: list[str], iterations: int = 3) -> BaselineRun:
        """Hit every endpoint once per iteration, pausing between iterations like a person would."""
        if iterations < 0:
            raise InsufficientInput(f"iterations must be non-negative, got {iterations}")

        samples = []
        started = self._clock.now_ms()
        if endpoints:
            for _ in range(iterations):
                for endpoint in endpoints:
                    response = await self._client.get(endpoint)
                    samples.append(RequestSample.from_response(response, endpoint))
                await self._clock.sleep(self._thresholds.baseline_pause_ms)
        duration_ms = self._clock.now_ms() - started

        metrics = summarize_baseline(samples, duration_ms)
        logger.info(
            "Baseline: %d requests at %.2f req/s, success rate %.0f%%",
            metrics.total_requests, metrics.request_rate, metrics.success_rate * 100,
        )
        return BaselineRun(samples=tuple(samples), metrics=metrics)

    async def generate_burst(self, count: int = 20, delay_ms: int | None = None) -> BurstRun:
        """Fire ``count`` requests in quick succession, rotating through the request types."""
        if count < 0:
            raise InsufficientInput(f"count must be non-negative, got {count}")
        if delay_ms is None:
            delay_ms = self._thresholds.burst_delay_ms

        logger.info("Generating traffic burst of %d requests", count)
        samples = []
        started = self._clock.now_ms()
        for i in range(count):
            name, path = self._request_types[i % len(self._request_types)]
            response = await self._client.get(path)
            if response.failed:
                logger.warning("Burst request %s failed: %s", path, response.error)
            samples.append(RequestSample.from_response(response, name))
            await self._clock.sleep(delay_ms)
        duration_ms = self._clock.now_ms() - started

        metrics = summarize_burst(samples, duration_ms, self._thresholds)
        logger.info(
            "Burst rate %.2f req/s (%d%% of baseline), spike=%s",
            metrics.burst_rate, metrics.rate_increase_percent, metrics.sudden_spike,
        )
        return BurstRun(samples=tuple(samples), metrics=metrics)
