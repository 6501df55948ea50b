"""Tests for live model-service checks."""

import json

import httpx
import pytest

from traffic_anomaly.client import RemoteModel
from traffic_anomaly.exceptions import InsufficientInput
from traffic_anomaly.features import extract_features
from traffic_anomaly.validation import (
    DEFAULT_FEATURE_REQUESTS,
    DEFAULT_VALIDATION_INPUTS,
    check_feature_parity,
    measure_model_performance,
)

PREDICTION = {"success": True, "score": 0.1, "prediction": "normal", "confidence": 0.9}


class TestMeasureModelPerformance:
    @pytest.mark.asyncio
    async def test_all_predictions_succeed(self, target, clock):
        report = await measure_model_performance(RemoteModel(target), clock=clock)
        assert report.total_requests == 20
        assert report.successful_requests == 20
        assert report.success_rate == 1.0
        assert report.scalability_score == 1.0

    @pytest.mark.asyncio
    async def test_throughput_over_the_whole_run(self, make_client, clock):
        def slow(request):
            clock.advance(100)
            return httpx.Response(200, json=PREDICTION)

        report = await measure_model_performance(RemoteModel(make_client(slow)), clock=clock)
        assert report.duration_ms == 2000
        assert report.throughput_per_sec == 10.0
        assert report.average_response_ms > 0

    @pytest.mark.asyncio
    async def test_failed_predictions(self, make_client, clock):
        def no_scripts(request):
            if "<script>" in json.loads(request.content)["input"]:
                return httpx.Response(500)
            return httpx.Response(200, json=PREDICTION)

        report = await measure_model_performance(RemoteModel(make_client(no_scripts)), clock=clock)
        # the script input comes round three times in 20 requests over 8 inputs
        assert report.successful_requests == 17
        assert report.success_rate == 0.85

    @pytest.mark.asyncio
    async def test_offline(self, offline, clock):
        report = await measure_model_performance(RemoteModel(offline), ["x"], count=5, clock=clock)
        assert report.successful_requests == 0
        assert report.throughput_per_sec == 0.0
        assert report.scalability_score == 0.0

    @pytest.mark.asyncio
    async def test_zero_count(self, target, clock):
        report = await measure_model_performance(RemoteModel(target), [], count=0, clock=clock)
        assert report.total_requests == 0
        assert report.success_rate == 0.0

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, target, clock):
        with pytest.raises(InsufficientInput):
            await measure_model_performance(RemoteModel(target), count=-1, clock=clock)
        with pytest.raises(InsufficientInput):
            await measure_model_performance(RemoteModel(target), [], count=3, clock=clock)


def _first_token_server(request):
    """Service whose extractor takes the first word as the method even for a bare payload."""
    if request.url.path != "/api/ml/extract-features":
        return httpx.Response(404)
    line = json.loads(request.content)["request"]
    parts = line.split(" ")
    local = extract_features(line)
    return httpx.Response(200, json={
        "success": True,
        "features": {
            "method": parts[0],
            "endpoint": parts[1] if len(parts) > 1 else "/unknown",
            "payloadSize": local.payload_size,
            "hasScript": local.has_script,
            "hasSqlKeywords": local.has_sql_keywords,
            "hasSpecialChars": local.has_special_chars,
        },
    })


class TestCheckFeatureParity:
    @pytest.mark.asyncio
    async def test_matching_service(self, target):
        report = await check_feature_parity(RemoteModel(target))
        assert report.input_checks == len(DEFAULT_VALIDATION_INPUTS)
        assert report.input_matches == len(DEFAULT_VALIDATION_INPUTS)
        assert report.feature_checks == len(DEFAULT_FEATURE_REQUESTS)
        assert report.feature_matches == len(DEFAULT_FEATURE_REQUESTS)
        assert report.consistent

    @pytest.mark.asyncio
    async def test_divergent_service(self, make_client):
        report = await check_feature_parity(RemoteModel(make_client(_first_token_server)))
        assert report.mismatches == ("extract_features('<script>alert(1)</script>')",)
        assert report.feature_matches == 2
        # validate-input is missing on this service
        assert report.unreachable == len(DEFAULT_VALIDATION_INPUTS)
        assert not report.consistent

    @pytest.mark.asyncio
    async def test_offline(self, offline, caplog):
        report = await check_feature_parity(RemoteModel(offline))
        assert report.unreachable == len(DEFAULT_VALIDATION_INPUTS) + len(DEFAULT_FEATURE_REQUESTS)
        assert report.mismatches == ()
        assert not report.consistent
        assert "unavailable" in caplog.text
