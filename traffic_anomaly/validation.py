"""Live checks of a remote model service: load behaviour and feature parity."""

import asyncio
import logging
import statistics
from typing import Sequence

from .client import RemoteModel
from .clock import Clock, MonotonicClock
from .exceptions import InsufficientInput, MalformedResponse, TransportFailure
from .features import extract_features, validate_input
from .models import FeatureParityReport, ModelPerformanceReport
from .stats import requests_per_second

logger = logging.getLogger(__name__)

DEFAULT_PERFORMANCE_INPUTS = (
    "normal user login",
    "normal search query",
    "<script>alert(1)</script>",
    "admin' OR '1'='1'--",
    "regular browsing",
    "suspicious activity",
    "UNION SELECT * FROM users",
    "legitimate request",
)

DEFAULT_VALIDATION_INPUTS = ("normal request", "", "valid search query")

DEFAULT_FEATURE_REQUESTS = (
    "GET /api/user/1",
    "GET /api/search?q=test",
    "<script>alert(1)</script>",
)


async def _timed_score(remote: RemoteModel, text: str, clock: Clock) -> tuple[bool, int]:
    started = clock.now_ms()
    try:
        await remote.score(text)
    except (TransportFailure, MalformedResponse) as exc:
        logger.debug("Prediction for %r failed: %s", text, exc)
        return False, clock.now_ms() - started
    return True, clock.now_ms() - started


async def measure_model_performance(
    remote: RemoteModel,
    inputs: Sequence[str] = DEFAULT_PERFORMANCE_INPUTS,
    count: int = 20,
    clock: Clock | None = None,
) -> ModelPerformanceReport:
    """Fire ``count`` concurrent predictions, cycling through ``inputs``.

    Throughput counts successful predictions only. The scalability score is
    success rate scaled by how far average latency stays under one second,
    capped at 1.
    """
    if count < 0:
        raise InsufficientInput(f"count must be non-negative, got {count}")
    if count and not inputs:
        raise InsufficientInput("Performance measurement requires at least one input")
    clock = clock or MonotonicClock()

    started = clock.now_ms()
    outcomes = await asyncio.gather(
        *(_timed_score(remote, inputs[i % len(inputs)], clock) for i in range(count))
    )
    duration_ms = clock.now_ms() - started

    successes = sum(1 for ok, _ in outcomes if ok)
    average = statistics.fmean(ms for _, ms in outcomes) if outcomes else 0.0
    success_rate = successes / count if count else 0.0
    report = ModelPerformanceReport(
        total_requests=count,
        successful_requests=successes,
        success_rate=round(success_rate, 2),
        average_response_ms=round(average, 2),
        throughput_per_sec=round(requests_per_second(successes, duration_ms), 2),
        scalability_score=round(min(success_rate * 1000 / max(average, 1), 1.0), 3),
        duration_ms=duration_ms,
    )
    logger.info(
        "Model performance: %d/%d predictions in %d ms, %.2f/s",
        successes, count, duration_ms, report.throughput_per_sec,
    )
    return report


async def check_feature_parity(
    remote: RemoteModel,
    inputs: Sequence[str] = DEFAULT_VALIDATION_INPUTS,
    requests: Sequence[str] = DEFAULT_FEATURE_REQUESTS,
) -> FeatureParityReport:
    """Compare the service's input validation and feature extraction with ours."""
    input_matches = feature_matches = unreachable = 0
    mismatches = []

    for text in inputs:
        try:
            theirs = await remote.validate_input(text)
        except (TransportFailure, MalformedResponse) as exc:
            logger.warning("Input validation for %r unavailable: %s", text, exc)
            unreachable += 1
            continue
        if theirs == validate_input(text):
            input_matches += 1
        else:
            mismatches.append(f"validate_input({text!r})")

    for line in requests:
        try:
            theirs = await remote.extract_features(line)
        except (TransportFailure, MalformedResponse) as exc:
            logger.warning("Feature extraction for %r unavailable: %s", line, exc)
            unreachable += 1
            continue
        if theirs == extract_features(line):
            feature_matches += 1
        else:
            mismatches.append(f"extract_features({line!r})")

    return FeatureParityReport(
        input_checks=len(inputs),
        input_matches=input_matches,
        feature_checks=len(requests),
        feature_matches=feature_matches,
        unreachable=unreachable,
        mismatches=tuple(mismatches),
    )
