"""YAML detection profile loading and validation."""

import importlib.resources
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .models import ATTACK, NORMAL


@dataclass
class ScoringConfig:
    """Bounds and noise applied to the additive anomaly score."""

    threshold: float = 0.5
    jitter: float = 0.05
    min: float = 0.0
    max: float = 1.0


@dataclass
class ConditionConfig:
    """A declarative condition evaluated against an input string.

    Supports leaf conditions (operator + value), negation (not + condition),
    and compound conditions (all/any + conditions list).
    """

    operator: str
    value: Any = None
    condition: "ConditionConfig | None" = None  # for "not"
    conditions: "list[ConditionConfig] | None" = None  # for "all" / "any"


@dataclass
class RuleConfig:
    """A single weighted scoring rule from the profile."""

    id: str
    name: str
    description: str
    weight: float
    condition: ConditionConfig


@dataclass
class ClassifierRuleConfig:
    """One entry of the ordered, first-match-wins classifier."""

    id: str
    prediction: str  # "attack" or "normal"
    confidence: float
    condition: ConditionConfig


@dataclass
class ClassifierConfig:
    default_prediction: str = NORMAL
    default_confidence: float = 0.5
    rules: list[ClassifierRuleConfig] = field(default_factory=list)


@dataclass
class PluginConfig:
    """A plugin reference from the profile."""

    id: str
    name: str
    callable: str  # dotted Python path


@dataclass
class DetectionThresholds:
    """Factors behind every statistical and timing heuristic.

    Timing-sensitive checks read from here so slow environments can
    calibrate them without code changes.
    """

    reference_baseline_rate: float = 1.5
    spike_increase_percent: float = 300
    min_distinct_request_types: int = 2
    payload_sigma: float = 2.0
    size_spike_factor: float = 3.0
    variation_factor: float = 0.5
    slow_factor: float = 2.0
    fast_factor: float = 0.5
    degradation_factor: float = 3.0
    inconsistent_spread_factor: float = 2.0
    rapid_request_rate: float = 5.0
    enumeration_endpoint_count: int = 5
    human_delay_ms: int = 100
    abnormal_actions_per_sec: float = 10.0
    systematic_interval_variation: float = 0.1
    consistent_timing_ratio: float = 0.3
    error_window_ms: int = 1000
    slow_injection_ms: int = 4000
    baseline_pause_ms: int = 1000
    burst_delay_ms: int = 25
    error_delay_ms: int = 50
    scanner_delay_ms: int = 10
    probe_delay_ms: int = 100
    session_fanout: int = 3


@dataclass
class DetectionProfile:
    """Complete detection profile loaded from YAML."""

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    rules: list[RuleConfig] = field(default_factory=list)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    plugins: list[PluginConfig] = field(default_factory=list)
    thresholds: DetectionThresholds = field(default_factory=DetectionThresholds)


VALID_OPERATORS = {"contains", "matches", "any_char", "longer_than", "not", "all", "any"}
VALID_PREDICTIONS = {ATTACK, NORMAL}


def load_profile(path: str | Path) -> DetectionProfile:
    """Load a detection profile from a YAML file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _build_profile(data or {})


def load_default_profile() -> DetectionProfile:
    """Load the bundled default detection profile."""
    pkg = importlib.resources.files("traffic_anomaly") / "profiles" / "default.yaml"
    text = pkg.read_text(encoding="utf-8")
    data = yaml.safe_load(text)
    return _build_profile(data)


def _build_profile(data: dict) -> DetectionProfile:
    """Build a DetectionProfile from parsed YAML data."""
    rules = [_parse_rule(r) for r in data.get("rules", [])]

    plugins = []
    for p in data.get("plugins", []):
        plugins.append(PluginConfig(
            id=p["id"],
            name=p.get("name", p["id"]),
            callable=p["callable"],
        ))

    profile = DetectionProfile(
        scoring=_parse_scoring(data.get("scoring", {})),
        rules=rules,
        classifier=_parse_classifier(data.get("classifier", {})),
        plugins=plugins,
        thresholds=_parse_thresholds(data.get("thresholds", {})),
    )
    _validate_profile(profile)
    return profile


def _parse_scoring(data: dict) -> ScoringConfig:
    defaults = ScoringConfig()
    return ScoringConfig(
        threshold=float(data.get("threshold", defaults.threshold)),
        jitter=float(data.get("jitter", defaults.jitter)),
        min=float(data.get("min", defaults.min)),
        max=float(data.get("max", defaults.max)),
    )


def _parse_rule(data: dict) -> RuleConfig:
    """Parse a single scoring rule from YAML data."""
    required = {"id", "weight", "condition"}
    missing = required - set(data.keys())
    if missing:
        raise ValueError(f"Rule missing required fields: {missing}")

    return RuleConfig(
        id=data["id"],
        name=data.get("name", data["id"]),
        description=data.get("description", ""),
        weight=float(data["weight"]),
        condition=_parse_condition(data["condition"]),
    )


def _parse_classifier(data: dict) -> ClassifierConfig:
    default = data.get("default", {})
    rules = []
    for r in data.get("rules", []):
        missing = {"id", "prediction", "confidence", "condition"} - set(r.keys())
        if missing:
            raise ValueError(f"Classifier rule missing required fields: {missing}")
        rules.append(ClassifierRuleConfig(
            id=r["id"],
            prediction=r["prediction"],
            confidence=float(r["confidence"]),
            condition=_parse_condition(r["condition"]),
        ))
    return ClassifierConfig(
        default_prediction=default.get("prediction", NORMAL),
        default_confidence=float(default.get("confidence", 0.5)),
        rules=rules,
    )


def _parse_thresholds(data: dict) -> DetectionThresholds:
    known = {f.name: f.type for f in fields(DetectionThresholds)}
    unknown = set(data) - set(known)
    if unknown:
        raise ValueError(f"Unknown threshold keys: {sorted(unknown)}")
    values = {}
    for key, value in data.items():
        values[key] = int(value) if known[key] in (int, "int") else float(value)
    return DetectionThresholds(**values)


def _parse_condition(data: dict) -> ConditionConfig:
    """Recursively parse a condition tree from YAML data."""
    operator = data.get("operator")
    if not operator:
        raise ValueError(f"Condition missing 'operator': {data}")

    if operator in ("not",):
        inner = data.get("condition")
        if not inner:
            raise ValueError("'not' operator requires a 'condition' field")
        return ConditionConfig(
            operator=operator,
            condition=_parse_condition(inner),
        )

    if operator in ("all", "any"):
        inner_list = data.get("conditions")
        if not inner_list:
            raise ValueError(f"'{operator}' operator requires a 'conditions' list")
        return ConditionConfig(
            operator=operator,
            conditions=[_parse_condition(c) for c in inner_list],
        )

    # Leaf condition
    return ConditionConfig(
        operator=operator,
        value=data.get("value"),
    )


def _validate_profile(profile: DetectionProfile) -> None:
    """Validate a detection profile for correctness."""
    scoring = profile.scoring
    if scoring.min > scoring.max:
        raise ValueError(f"Scoring min {scoring.min} exceeds max {scoring.max}")
    if scoring.jitter < 0:
        raise ValueError(f"Scoring jitter must be non-negative, got {scoring.jitter}")

    seen_ids = set()
    for r in profile.rules:
        if r.id in seen_ids:
            raise ValueError(f"Duplicate rule id: {r.id!r}")
        seen_ids.add(r.id)
        _validate_condition(r.condition, r.id)

    classifier = profile.classifier
    if classifier.default_prediction not in VALID_PREDICTIONS:
        raise ValueError(
            f"Classifier default has invalid prediction {classifier.default_prediction!r}. "
            f"Must be one of: {VALID_PREDICTIONS}"
        )
    seen_classifier_ids = set()
    for r in classifier.rules:
        if r.id in seen_classifier_ids:
            raise ValueError(f"Duplicate classifier rule id: {r.id!r}")
        seen_classifier_ids.add(r.id)
        if r.prediction not in VALID_PREDICTIONS:
            raise ValueError(
                f"Classifier rule {r.id!r} has invalid prediction {r.prediction!r}. "
                f"Must be one of: {VALID_PREDICTIONS}"
            )
        if not 0.0 <= r.confidence <= 1.0:
            raise ValueError(f"Classifier rule {r.id!r}: confidence {r.confidence} outside [0, 1]")
        _validate_condition(r.condition, r.id)

    seen_plugin_ids = set()
    for p in profile.plugins:
        if p.id in seen_plugin_ids:
            raise ValueError(f"Duplicate plugin id: {p.id!r}")
        seen_plugin_ids.add(p.id)


def _validate_condition(cond: ConditionConfig, rule_id: str) -> None:
    """Recursively validate a condition tree."""
    if cond.operator not in VALID_OPERATORS:
        raise ValueError(
            f"Rule {rule_id!r}: invalid operator {cond.operator!r}. "
            f"Must be one of: {VALID_OPERATORS}"
        )

    if cond.operator == "not":
        if cond.condition is None:
            raise ValueError(f"Rule {rule_id!r}: 'not' requires 'condition'")
        _validate_condition(cond.condition, rule_id)
    elif cond.operator in ("all", "any"):
        if not cond.conditions:
            raise ValueError(f"Rule {rule_id!r}: '{cond.operator}' requires 'conditions'")
        for sub in cond.conditions:
            _validate_condition(sub, rule_id)
    else:
        # Leaf operators need a value
        if cond.value is None or cond.value == "":
            raise ValueError(
                f"Rule {rule_id!r}: operator {cond.operator!r} requires 'value'"
            )
