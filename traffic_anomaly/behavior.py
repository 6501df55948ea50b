"""Automated-tool and session-irregularity signatures.

These are heuristics meant to be combined with other evidence. A failed
sub-request never raises; it degrades the affected flag to its
non-anomalous default.
"""

import asyncio
import logging
import statistics
from dataclasses import dataclass
from typing import Sequence

from .client import TargetClient
from .config import DetectionThresholds
from .models import BehaviorPatternReport, BehaviorSignature, RequestSample, SessionAnomalyReport
from .stats import requests_per_second

logger = logging.getLogger(__name__)

SESSION_HEADER_MARKERS = ("session", "auth")


@dataclass(frozen=True)
class ScannerRun:
    samples: tuple[RequestSample, ...]
    signature: BehaviorSignature


class BehaviorAnalyzer:
    def __init__(self, client: TargetClient, thresholds: DetectionThresholds | None = None) -> None:
        self._client = client
        self._clock = client.clock
        self._thresholds = thresholds or DetectionThresholds()

    async def simulate_automated_scanner(self, endpoints: list[str]) -> ScannerRun:
        """Enumerate endpoints with machine-like pacing and derive the tool signature."""
        t = self._thresholds
        samples = []
        started = self._clock.now_ms()
        for endpoint in endpoints:
            response = await self._client.get(endpoint)
            samples.append(RequestSample.from_response(response, endpoint))
            await self._clock.sleep(t.scanner_delay_ms)
        duration_ms = self._clock.now_ms() - started

        count = len(endpoints)
        rate = requests_per_second(count, duration_ms)
        signature = BehaviorSignature(
            rapid_sequential_requests=rate > t.rapid_request_rate,
            systematic_enumeration=count > t.enumeration_endpoint_count,
            no_human_delay=duration_ms < count * t.human_delay_ms,
            directory_traversal=any(".." in e for e in endpoints),
            request_rate_per_sec=round(rate, 2),
            total_requests=count,
            duration_ms=duration_ms,
        )
        logger.info("Scanner signature: %s", signature)
        return ScannerRun(samples=tuple(samples), signature=signature)

    async def detect_session_anomalies(self, path: str = "/api/user/1") -> SessionAnomalyReport:
        """Reuse one session from several concurrent callers, then probe for session headers."""
        fanout = self._thresholds.session_fanout
        responses = await asyncio.gather(*(self._client.get(path) for _ in range(fanout)))
        simultaneous = fanout > 0 and all(r.status == 200 for r in responses)

        probe = await self._client.get(path)
        if probe.failed:
            logger.warning("Session context probe failed: %s", probe.error)
            missing_context = False
        else:
            missing_context = not any(
                marker in name.lower()
                for name in probe.headers
                for marker in SESSION_HEADER_MARKERS
            )

        return SessionAnomalyReport(
            simultaneous_sessions=simultaneous,
            missing_session_context=missing_context,
            concurrent_requests=fanout,
        )


def analyze_behavior_patterns(
    navigation_ms: Sequence[int],
    interaction_ms: Sequence[int],
    thresholds: DetectionThresholds | None = None,
) -> BehaviorPatternReport:
    """Judge navigation and interaction timestamps for non-human regularity."""
    t = thresholds or DetectionThresholds()

    abnormal_speed = False
    if len(navigation_ms) >= 2:
        span = navigation_ms[-1] - navigation_ms[0]
        abnormal_speed = requests_per_second(len(navigation_ms), span) > t.abnormal_actions_per_sec

    gaps = _intervals(interaction_ms)
    return BehaviorPatternReport(
        abnormal_speed=abnormal_speed,
        missing_human_patterns=bool(gaps) and all(g < t.human_delay_ms for g in gaps),
        systematic_behavior=_is_systematic(navigation_ms, t.systematic_interval_variation),
        consistent_timing=bool(gaps) and len(set(gaps)) < len(gaps) * t.consistent_timing_ratio,
    )


def _intervals(timestamps: Sequence[int]) -> list[int]:
    return [b - a for a, b in zip(timestamps, timestamps[1:])]


def _is_systematic(timestamps: Sequence[int], max_variation: float) -> bool:
    # every interval within max_variation of the mean interval
    if len(timestamps) < 3:
        return False
    intervals = _intervals(timestamps)
    mean = statistics.fmean(intervals)
    if mean <= 0:
        return False
    return all(abs(i - mean) / mean < max_variation for i in intervals)
