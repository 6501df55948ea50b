"""Summary statistics over request samples."""

import math
import statistics
from collections import Counter, defaultdict
from typing import Sequence

from .config import DetectionThresholds
from .models import (
    BaselineMetrics,
    PayloadAnomalyReport,
    PayloadSample,
    RequestSample,
    ResponseTimeReport,
    TrafficMetrics,
)


def requests_per_second(count: int, duration_ms: int) -> float:
    """Request rate over a run, with the duration floored at 1 ms."""
    if count <= 0:
        return 0.0
    return count / (max(duration_ms, 1) / 1000)


def summarize_baseline(samples: Sequence[RequestSample], duration_ms: int) -> BaselineMetrics:
    """Compute rate, latency and success ratio of low-rate reference traffic."""
    if not samples:
        return BaselineMetrics(
            total_requests=0,
            duration_ms=duration_ms,
            request_rate=0.0,
            average_response_ms=0.0,
            success_rate=0.0,
            error_rate=0.0,
        )

    success_rate = sum(1 for s in samples if s.succeeded) / len(samples)
    return BaselineMetrics(
        total_requests=len(samples),
        duration_ms=duration_ms,
        request_rate=round(requests_per_second(len(samples), duration_ms), 2),
        average_response_ms=round(statistics.fmean(s.duration_ms for s in samples), 2),
        success_rate=success_rate,
        error_rate=1 - success_rate,
    )


def summarize_burst(
    samples: Sequence[RequestSample],
    duration_ms: int,
    thresholds: DetectionThresholds | None = None,
) -> TrafficMetrics:
    """Compare a burst's request rate against the reference baseline rate."""
    thresholds = thresholds or DetectionThresholds()
    baseline_rate = thresholds.reference_baseline_rate
    burst_rate = requests_per_second(len(samples), duration_ms)
    increase = round(burst_rate / baseline_rate * 100) if baseline_rate > 0 else 0
    distribution = dict(Counter(s.endpoint for s in samples))

    return TrafficMetrics(
        baseline_rate=round(baseline_rate, 2),
        burst_rate=round(burst_rate, 2),
        rate_increase_percent=increase,
        sudden_spike=increase > thresholds.spike_increase_percent,
        abnormal_distribution=len(distribution) < thresholds.min_distinct_request_types,
        total_requests=len(samples),
        duration_ms=duration_ms,
        request_type_distribution=distribution,
    )


def analyze_payload_anomalies(
    samples: Sequence[PayloadSample],
    thresholds: DetectionThresholds | None = None,
) -> PayloadAnomalyReport:
    """Flag payload sizes that stand out from the rest of the run.

    A sample is anomalous when it falls outside mean +/- sigma * stddev, or
    when it is a size spike by itself (larger than size_spike_factor * mean).
    The second test catches a lone outlier in a small set, whose z-score can
    never exceed sqrt(n - 1).
    """
    thresholds = thresholds or DetectionThresholds()
    if not samples:
        return PayloadAnomalyReport(
            average_size=0.0,
            max_size=0.0,
            min_size=0.0,
            std_dev=0.0,
            anomalous_count=0,
            size_spike=False,
            unusual_variation=False,
            total_requests=0,
        )

    sizes = [s.size for s in samples]
    mean = statistics.fmean(sizes)
    std_dev = statistics.pstdev(sizes)
    max_size = max(sizes)
    min_size = min(sizes)

    band = thresholds.payload_sigma * std_dev
    spike_limit = mean * thresholds.size_spike_factor
    anomalous = [
        size for size in sizes
        if size > mean + band or size < mean - band or (mean > 0 and size > spike_limit)
    ]

    return PayloadAnomalyReport(
        average_size=round(mean, 2),
        max_size=max_size,
        min_size=min_size,
        std_dev=round(std_dev, 2),
        anomalous_count=len(anomalous),
        size_spike=max_size > spike_limit,
        unusual_variation=std_dev > mean * thresholds.variation_factor,
        total_requests=len(samples),
    )


def analyze_response_time_patterns(
    samples: Sequence[RequestSample],
    thresholds: DetectionThresholds | None = None,
) -> ResponseTimeReport:
    """Count slow and fast outliers and flag latency degradation."""
    thresholds = thresholds or DetectionThresholds()
    if not samples:
        return ResponseTimeReport(
            average_ms=0.0,
            max_ms=0.0,
            min_ms=0.0,
            slow_count=0,
            fast_count=0,
            performance_degradation=False,
            inconsistent_timing=False,
        )

    times = [s.duration_ms for s in samples]
    mean = statistics.fmean(times)
    max_time = max(times)
    min_time = min(times)

    return ResponseTimeReport(
        average_ms=round(mean, 2),
        max_ms=max_time,
        min_ms=min_time,
        slow_count=sum(1 for t in times if t > mean * thresholds.slow_factor),
        fast_count=sum(1 for t in times if t < mean * thresholds.fast_factor),
        performance_degradation=max_time > mean * thresholds.degradation_factor,
        inconsistent_timing=(max_time - min_time) > mean * thresholds.inconsistent_spread_factor,
    )


def cluster_by_window(
    samples: Sequence[RequestSample],
    window_ms: int = 1000,
) -> dict[int, list[RequestSample]]:
    """Bucket samples by floor(timestamp / window) * window."""
    if window_ms <= 0:
        raise ValueError(f"window_ms must be positive, got {window_ms}")
    clusters: dict[int, list[RequestSample]] = defaultdict(list)
    for sample in samples:
        window = math.floor(sample.timestamp_ms / window_ms) * window_ms
        clusters[window].append(sample)
    return dict(clusters)
