"""Systematic error generation and error-rate analysis."""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Sequence

from .client import TargetClient
from .config import DetectionThresholds
from .models import ErrorPatternReport, RequestSample, categorize_status
from .stats import cluster_by_window

logger = logging.getLogger(__name__)

# (method, path, json body)
BASELINE_REQUESTS: tuple[tuple[str, str, Any], ...] = (
    ("GET", "/api/user/1", None),
    ("POST", "/api/login", {"username": "user1", "password": "password"}),
    ("GET", "/api/search?q=laptop", None),
)

ERROR_CATALOGUE: tuple[tuple[str, str, Any], ...] = (
    # 404
    ("GET", "/api/nonexistent", None),
    ("GET", "/api/user/999999", None),
    ("GET", "/admin/secret", None),
    ("GET", "/api/invalid/endpoint", None),
    # 401
    ("GET", "/api/admin", None),
    ("POST", "/api/login", {"username": "invalid", "password": "wrong"}),
    ("GET", "/api/protected/resource", None),
    # 400
    ("POST", "/api/login", {"malformed": "json"}),
    ("POST", "/api/register", {}),
    ("POST", "/api/user", {"invalid": "data"}),
    # 422
    ("POST", "/api/register", {"email": "invalid-email"}),
    ("PUT", "/api/user/1", {"age": "not-a-number"}),
    # 405
    ("PUT", "/api/login", {}),
    ("DELETE", "/api/search", None),
    # 403
    ("GET", "/api/admin/users", None),
    ("DELETE", "/api/admin/config", None),
    # possible 500
    ("GET", "/api/user/null", None),
    ("POST", "/api/login", {"username": None, "password": None}),
    ("GET", "/api/search?q=" + "x" * 10000, None),
    # unreachable hosts
    ("GET", "http://invalid-domain-that-does-not-exist.invalid/api", None),
    ("GET", "http://localhost:99999/api", None),
)

__all__ = [
    "BASELINE_REQUESTS",
    "ERROR_CATALOGUE",
    "ErrorPatternAnalyzer",
    "ErrorPatternRun",
    "analyze_error_patterns",
    "categorize_status",
    "error_rate",
]


@dataclass(frozen=True)
class ErrorPatternRun:
    baseline_samples: tuple[RequestSample, ...]
    samples: tuple[RequestSample, ...]
    report: ErrorPatternReport


def error_rate(samples: Sequence[RequestSample]) -> float:
    """Fraction of samples that are errors; 0 for an empty sequence."""
    if not samples:
        return 0.0
    return sum(1 for s in samples if s.is_error) / len(samples)


def analyze_error_patterns(
    baseline: Sequence[RequestSample],
    generated: Sequence[RequestSample],
    window_ms: int = 1000,
) -> ErrorPatternReport:
    """Compare generated error traffic with the baseline and find error bursts."""
    baseline_rate = error_rate(baseline)
    generated_rate = error_rate(generated)

    errors = [s for s in generated if s.is_error]
    clusters = cluster_by_window(errors, window_ms)
    max_in_window = max((len(c) for c in clusters.values()), default=0)

    if baseline_rate > 0:
        increase = round((generated_rate - baseline_rate) / baseline_rate * 100)
    else:
        increase = None

    timestamps = [s.timestamp_ms for s in generated]
    duration_ms = max(timestamps) - min(timestamps) if timestamps else 0

    return ErrorPatternReport(
        baseline_error_rate_pct=round(baseline_rate * 100),
        generated_error_rate_pct=round(generated_rate * 100),
        error_rate_increase_pct=increase,
        error_type_distribution=dict(Counter(s.category for s in errors)),
        max_errors_in_one_second_window=max_in_window,
        total_errors=len(errors),
        duration_ms=duration_ms,
    )


class ErrorPatternAnalyzer:
    """Drives the target through every error category and reports the pattern."""

    def __init__(
        self,
        client: TargetClient,
        thresholds: DetectionThresholds | None = None,
        baseline_requests: Sequence[tuple[str, str, Any]] = BASELINE_REQUESTS,
        catalogue: Sequence[tuple[str, str, Any]] = ERROR_CATALOGUE,
    ) -> None:
        self._client = client
        self._clock = client.clock
        self._thresholds = thresholds or DetectionThresholds()
        self._baseline_requests = baseline_requests
        self._catalogue = catalogue

    async def establish_baseline(self) -> list[RequestSample]:
        samples = []
        for method, path, body in self._baseline_requests:
            response = await self._client.request(method, path, json=body)
            samples.append(RequestSample.from_response(response))
        logger.info("Baseline error rate: %.1f%%", error_rate(samples) * 100)
        return samples

    async def generate_systematic_errors(self) -> list[RequestSample]:
        logger.info("Systematically generating %d error requests", len(self._catalogue))
        samples = []
        for method, path, body in self._catalogue:
            response = await self._client.request(method, path, json=body)
            sample = RequestSample.from_response(response)
            logger.debug("%s %s -> %s (%s)", method, path[:80], sample.status, sample.category)
            samples.append(sample)
            await self._clock.sleep(self._thresholds.error_delay_ms)
        return samples

    async def generate_error_patterns(self) -> ErrorPatternRun:
        baseline = await self.establish_baseline()
        generated = await self.generate_systematic_errors()
        report = analyze_error_patterns(baseline, generated, self._thresholds.error_window_ms)
        return ErrorPatternRun(
            baseline_samples=tuple(baseline),
            samples=tuple(generated),
            report=report,
        )
