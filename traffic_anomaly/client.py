"""HTTP access to the system under test."""

import json
import logging
from typing import Any, Self

import httpx

from .clock import Clock, MonotonicClock
from .exceptions import MalformedResponse, TransportFailure
from .models import (
    ANOMALY,
    ATTACK,
    NORMAL,
    AnomalyScore,
    Classification,
    FeatureVector,
    InputValidation,
    TargetResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_TIMEOUT = httpx.Timeout(5.0, connect=5.0)


class TargetClient:
    """Issues requests and turns every outcome into a TargetResponse.

    Transport errors and timeouts never escape ``request``; they come back
    as a response with status 0 and ``error`` set.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
        clock: Clock | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.clock = clock or MonotonicClock()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers=headers,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> TargetResponse:
        method = method.upper()
        started = self.clock.now_ms()
        try:
            response = await self._client.request(method, path, json=json, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            finished = self.clock.now_ms()
            logger.debug("%s %s failed: %s", method, path, exc)
            return TargetResponse(
                method=method,
                path=path,
                status=0,
                duration_ms=finished - started,
                timestamp_ms=finished,
                error=str(exc) or type(exc).__name__,
            )
        finished = self.clock.now_ms()
        return TargetResponse(
            method=method,
            path=path,
            status=response.status_code,
            duration_ms=finished - started,
            timestamp_ms=finished,
            headers=dict(response.headers),
            body=response.text,
        )

    async def get(self, path: str, **kwargs: Any) -> TargetResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> TargetResponse:
        return await self.request("POST", path, **kwargs)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class RemoteModel:
    """ScoringModel/ClassificationModel backed by the target's /api/ml endpoints.

    Also exposes the service's feature extraction and input validation so
    they can be checked against the local implementations.
    """

    def __init__(
        self,
        client: TargetClient,
        predict_path: str = "/api/ml/predict",
        classify_path: str = "/api/ml/classify",
        features_path: str = "/api/ml/extract-features",
        validate_path: str = "/api/ml/validate-input",
    ) -> None:
        self._client = client
        self._predict_path = predict_path
        self._classify_path = classify_path
        self._features_path = features_path
        self._validate_path = validate_path

    async def score(self, text: str, threshold: float = 0.5) -> AnomalyScore:
        """Ask the service for a score.

        Raises TransportFailure or MalformedResponse; callers decide how to
        degrade.
        """
        payload = await self._post(self._predict_path, {"input": text, "threshold": threshold})
        try:
            score = float(payload["score"])
            prediction = payload["prediction"]
            confidence = float(payload.get("confidence", score if prediction == ANOMALY else 1 - score))
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"Incomplete prediction payload: {payload!r}") from exc
        if prediction not in (ANOMALY, NORMAL):
            raise MalformedResponse(f"Unknown prediction {prediction!r}")
        return AnomalyScore(
            score=score,
            prediction=prediction,
            confidence=confidence,
            threshold=threshold,
        )

    async def classify(self, text: str) -> Classification:
        """Ask the service for a class; an unreadable answer yields the neutral default."""
        try:
            payload = await self._post(self._classify_path, {"input": text})
            prediction = payload["prediction"]
            confidence = float(payload["confidence"])
            if prediction not in (ATTACK, NORMAL):
                raise MalformedResponse(f"Unknown prediction {prediction!r}")
        except (MalformedResponse, KeyError, TypeError, ValueError) as exc:
            logger.warning("Unreadable classification for %r, assuming normal: %s", text, exc)
            return Classification(prediction=NORMAL, confidence=0.5)
        return Classification(prediction=prediction, confidence=round(confidence, 3))

    async def extract_features(self, text: str) -> FeatureVector:
        """The service's view of a request line; raises like score()."""
        payload = await self._post(self._features_path, {"request": text})
        try:
            features = payload["features"]
            return FeatureVector(
                payload_size=int(features["payloadSize"]),
                has_script=bool(features["hasScript"]),
                has_sql_keywords=bool(features["hasSqlKeywords"]),
                has_special_chars=bool(features["hasSpecialChars"]),
                method=features["method"],
                endpoint=features["endpoint"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"Incomplete feature payload: {payload!r}") from exc

    async def validate_input(self, text: str) -> InputValidation:
        """The service's verdict on an input; raises like score()."""
        payload = await self._post(self._validate_path, {"input": text})
        try:
            data = payload["data"]
            return InputValidation(
                is_valid=bool(data["isValid"]),
                input_length=int(data["inputLength"]),
                has_special_chars=bool(data["hasSpecialChars"]),
                sanitized=data["sanitized"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponse(f"Incomplete validation payload: {payload!r}") from exc

    async def _post(self, path: str, body: dict) -> dict:
        response = await self._client.post(path, json=body)
        if response.failed:
            raise TransportFailure(response.error or f"POST {path} failed")
        if response.status >= 400:
            raise MalformedResponse(f"POST {path} returned HTTP {response.status}")
        try:
            payload = json.loads(response.body)
        except ValueError as exc:
            raise MalformedResponse(f"POST {path} returned non-JSON body") from exc
        if not isinstance(payload, dict):
            raise MalformedResponse(f"POST {path} returned {type(payload).__name__}, expected object")
        return payload
