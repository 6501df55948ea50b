"""Data models for traffic-anomaly."""

from dataclasses import dataclass, field

NORMAL = "normal"
ANOMALY = "anomaly"
ATTACK = "attack"


@dataclass(frozen=True)
class FeatureVector:
    """Features derived from a single request line or payload string."""

    payload_size: int = 0
    has_script: bool = False
    has_sql_keywords: bool = False
    has_special_chars: bool = False
    method: str = "GET"
    endpoint: str = "/unknown"

    def as_vector(self) -> list[int]:
        """Numeric form: size followed by the three flags as 0/1."""
        return [
            self.payload_size,
            int(self.has_script),
            int(self.has_sql_keywords),
            int(self.has_special_chars),
        ]


@dataclass(frozen=True)
class InputValidation:
    is_valid: bool
    input_length: int
    has_special_chars: bool
    sanitized: str


@dataclass(frozen=True)
class RuleMatch:
    """A scoring rule that matched an input."""

    rule_id: str
    weight: float
    reason: str


@dataclass(frozen=True)
class AnomalyScore:
    """Continuous anomaly score plus the verdict at a given threshold."""

    score: float
    prediction: str  # "normal" or "anomaly"
    confidence: float
    threshold: float
    matched_rules: tuple[RuleMatch, ...] = ()

    @property
    def is_anomaly(self) -> bool:
        return self.prediction == ANOMALY


@dataclass(frozen=True)
class Classification:
    """Categorical verdict from the first-match classifier."""

    prediction: str  # "attack" or "normal"
    confidence: float
    rule_id: str | None = None

    @property
    def is_attack(self) -> bool:
        return self.prediction == ATTACK

    @property
    def categories(self) -> dict[str, float]:
        other = round(1 - self.confidence, 3)
        if self.is_attack:
            return {NORMAL: other, ATTACK: self.confidence}
        return {NORMAL: self.confidence, ATTACK: other}


@dataclass(frozen=True)
class LabeledCase:
    input: str
    expected_is_attack: bool


@dataclass(frozen=True)
class ConfusionCounts:
    """TP/FP/TN/FN tallies and the rates derived from them."""

    true_positives: int = 0
    false_positives: int = 0
    true_negatives: int = 0
    false_negatives: int = 0

    @property
    def total(self) -> int:
        return self.true_positives + self.false_positives + self.true_negatives + self.false_negatives

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return _ratio(2 * p * r, p + r)

    @property
    def accuracy(self) -> float:
        return _ratio(self.true_positives + self.true_negatives, self.total)

    @property
    def false_positive_rate(self) -> float:
        return _ratio(self.false_positives, self.false_positives + self.true_negatives)

    @property
    def false_negative_rate(self) -> float:
        return _ratio(self.false_negatives, self.false_negatives + self.true_positives)


@dataclass(frozen=True)
class ThresholdResult:
    threshold: float
    counts: ConfusionCounts


@dataclass(frozen=True)
class ThresholdReport:
    """Outcome of a threshold sweep."""

    current_threshold: float
    optimal_threshold: float
    sensitivity_analysis: tuple[ThresholdResult, ...] = ()

    @property
    def optimal_f1(self) -> float:
        for result in self.sensitivity_analysis:
            if result.threshold == self.optimal_threshold:
                return result.counts.f1
        return 0.0


@dataclass(frozen=True)
class ClassifierMetrics:
    precision: float
    recall: float
    f1: float
    accuracy: float
    false_positive_rate: float
    false_negative_rate: float


@dataclass(frozen=True)
class ModelPerformanceReport:
    """Latency and throughput of a remote scoring service under concurrent load."""

    total_requests: int
    successful_requests: int
    success_rate: float
    average_response_ms: float
    throughput_per_sec: float
    scalability_score: float
    duration_ms: int


@dataclass(frozen=True)
class FeatureParityReport:
    """Agreement between local feature code and the remote service."""

    input_checks: int = 0
    input_matches: int = 0
    feature_checks: int = 0
    feature_matches: int = 0
    unreachable: int = 0
    mismatches: tuple[str, ...] = ()

    @property
    def consistent(self) -> bool:
        return not self.mismatches and not self.unreachable


@dataclass(frozen=True)
class TargetResponse:
    """One HTTP exchange with the system under test. Status 0 means transport failure."""

    method: str
    path: str
    status: int
    duration_ms: int
    timestamp_ms: int
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == 0


@dataclass(frozen=True)
class RequestSample:
    """Per-request observation fed into the statistics pipeline."""

    endpoint: str
    status: int
    duration_ms: int
    timestamp_ms: int
    method: str = "GET"
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return 200 <= self.status <= 399

    @property
    def is_error(self) -> bool:
        return self.status == 0 or self.status >= 400

    @property
    def category(self) -> str:
        return categorize_status(self.status)

    @classmethod
    def from_response(cls, response: TargetResponse, endpoint: str | None = None) -> "RequestSample":
        return cls(
            endpoint=endpoint if endpoint is not None else response.path,
            status=response.status,
            duration_ms=response.duration_ms,
            timestamp_ms=response.timestamp_ms,
            method=response.method,
            error=response.error,
        )


@dataclass(frozen=True)
class BaselineMetrics:
    total_requests: int
    duration_ms: int
    request_rate: float
    average_response_ms: float
    success_rate: float
    error_rate: float


@dataclass(frozen=True)
class TrafficMetrics:
    """Burst traffic compared against the reference baseline rate."""

    baseline_rate: float
    burst_rate: float
    rate_increase_percent: int
    sudden_spike: bool
    abnormal_distribution: bool
    total_requests: int
    duration_ms: int
    request_type_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PayloadSample:
    size: int
    endpoint: str = ""
    timestamp_ms: int = 0


@dataclass(frozen=True)
class PayloadAnomalyReport:
    average_size: float
    max_size: float
    min_size: float
    std_dev: float
    anomalous_count: int
    size_spike: bool
    unusual_variation: bool
    total_requests: int = 0


@dataclass(frozen=True)
class ResponseTimeReport:
    average_ms: float
    max_ms: float
    min_ms: float
    slow_count: int
    fast_count: int
    performance_degradation: bool
    inconsistent_timing: bool


@dataclass(frozen=True)
class ErrorPatternReport:
    baseline_error_rate_pct: int
    generated_error_rate_pct: int
    error_rate_increase_pct: int | None
    error_type_distribution: dict[str, int]
    max_errors_in_one_second_window: int
    total_errors: int
    duration_ms: int


@dataclass(frozen=True)
class BehaviorSignature:
    """Automated-tool heuristics. Signals, not verdicts."""

    rapid_sequential_requests: bool
    systematic_enumeration: bool
    no_human_delay: bool
    directory_traversal: bool
    request_rate_per_sec: float
    total_requests: int
    duration_ms: int


@dataclass(frozen=True)
class SessionAnomalyReport:
    simultaneous_sessions: bool
    missing_session_context: bool
    concurrent_requests: int


@dataclass(frozen=True)
class BehaviorPatternReport:
    abnormal_speed: bool
    missing_human_patterns: bool
    systematic_behavior: bool
    consistent_timing: bool


@dataclass(frozen=True)
class InjectionProbeReport:
    """Outcome of firing a fixed payload list at the target."""

    attempted_payloads: tuple[str, ...]
    successful_injections: int = 0
    error_based_attempts: int = 0
    time_based_attempts: int = 0
    reflected: int = 0
    stored: int = 0
    flagged_by_scorer: int = 0


def categorize_status(status: int) -> str:
    """Map an HTTP status (0 for transport failure) onto the error taxonomy."""
    if status == 0:
        return "NETWORK_ERROR"
    if status == 400:
        return "BAD_REQUEST"
    if status == 401:
        return "UNAUTHORIZED"
    if status == 403:
        return "FORBIDDEN"
    if status == 404:
        return "NOT_FOUND"
    if status == 405:
        return "METHOD_NOT_ALLOWED"
    if status == 422:
        return "VALIDATION_ERROR"
    if status >= 500:
        return "SERVER_ERROR"
    if status >= 400:
        return "CLIENT_ERROR"
    return "SUCCESS"


def _ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator
