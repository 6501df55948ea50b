"""traffic-anomaly: rule-weighted anomaly scoring and traffic statistics for HTTP traffic."""

from .attacks import InjectionProbe
from .behavior import BehaviorAnalyzer, analyze_behavior_patterns
from .client import RemoteModel, TargetClient
from .config import DetectionProfile, DetectionThresholds, load_default_profile, load_profile
from .errors import ErrorPatternAnalyzer, analyze_error_patterns, categorize_status
from .exceptions import InsufficientInput, MalformedResponse, TrafficAnomalyError, TransportFailure
from .features import extract_features, validate_input
from .models import (
    AnomalyScore,
    BehaviorSignature,
    Classification,
    ConfusionCounts,
    ErrorPatternReport,
    FeatureParityReport,
    FeatureVector,
    LabeledCase,
    ModelPerformanceReport,
    PayloadAnomalyReport,
    PayloadSample,
    RequestSample,
    ResponseTimeReport,
    ThresholdReport,
    TrafficMetrics,
)
from .scorer import RuleClassifier, RuleScorer
from .stats import analyze_payload_anomalies, analyze_response_time_patterns
from .traffic import TrafficAnalyzer
from .tuning import (
    evaluate_classifier,
    evaluate_classifier_async,
    select_optimal,
    tune_threshold,
    tune_threshold_async,
)
from .validation import check_feature_parity, measure_model_performance

__all__ = [
    "AnomalyScore",
    "BehaviorAnalyzer",
    "BehaviorSignature",
    "Classification",
    "ConfusionCounts",
    "DetectionProfile",
    "DetectionThresholds",
    "ErrorPatternAnalyzer",
    "ErrorPatternReport",
    "FeatureParityReport",
    "FeatureVector",
    "InjectionProbe",
    "InsufficientInput",
    "LabeledCase",
    "MalformedResponse",
    "ModelPerformanceReport",
    "PayloadAnomalyReport",
    "PayloadSample",
    "RemoteModel",
    "RequestSample",
    "ResponseTimeReport",
    "RuleClassifier",
    "RuleScorer",
    "TargetClient",
    "ThresholdReport",
    "TrafficAnalyzer",
    "TrafficAnomalyError",
    "TrafficMetrics",
    "TransportFailure",
    "analyze_behavior_patterns",
    "analyze_error_patterns",
    "analyze_payload_anomalies",
    "analyze_response_time_patterns",
    "categorize_status",
    "check_feature_parity",
    "evaluate_classifier",
    "evaluate_classifier_async",
    "extract_features",
    "load_default_profile",
    "load_profile",
    "measure_model_performance",
    "select_optimal",
    "tune_threshold",
    "tune_threshold_async",
    "validate_input",
]
