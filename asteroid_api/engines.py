from __future__ import annotations
import json
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from .config import ENGINE_REMOTE, Settings
from .errors import ConfigurationError, ExternalServiceError
from .impact_model import (
    AnalysisResult, AsteroidInput, CompositionElement, DimensionalStep,
    HIT_THRESHOLD_PERCENT, classify_impact, compute_physical_properties,
)
from .report import build_dimensional_process, build_markdown, build_summary, composition_for


def _now_ms() -> int:
    return int(time.time() * 1000)


def mask_key(s: Optional[str]) -> Optional[str]:
    if not s:
        return s
    return s[:3] + "***" + s[-3:] if len(s) > 6 else "***"


class ImpactEngine(ABC):
    """input -> AnalysisResult. One engine serves a whole invocation."""

    name: str = "abstract"

    @abstractmethod
    def analyze(self, inp: AsteroidInput) -> AnalysisResult:
        ...


# -------------------------------
# Deterministic local engine
# -------------------------------

class LocalImpactEngine(ImpactEngine):
    name = "local"

    def __init__(self, hit_threshold: float = HIT_THRESHOLD_PERCENT, pacing_delay_s: float = 0.0):
        self.hit_threshold = hit_threshold
        self.pacing_delay_s = pacing_delay_s

    def analyze(self, inp: AsteroidInput) -> AnalysisResult:
        inp.validate()
        if self.pacing_delay_s > 0:
            # UI pacing only
            time.sleep(self.pacing_delay_s)

        props = compute_physical_properties(inp)
        impact = classify_impact(inp.distance_km, hit_threshold=self.hit_threshold)

        steps = build_dimensional_process(inp, props)
        composition = composition_for(inp.asteroid_type)

        return AnalysisResult(
            is_hit=impact.is_hit,
            impact_probability=impact.probability,
            kinetic_energy_megatons=props.energy_mt_tnt,
            crater_size_m=props.crater_diameter_m,
            analysis_summary=build_summary(inp, impact, props.energy_mt_tnt),
            dimensional_process=steps,
            composition=composition,
            raw_markdown=build_markdown(inp, props, impact, steps, composition),
            timestamp=_now_ms(),
        )


# -------------------------------
# Generative remote engine
# -------------------------------

REMOTE_INSTRUCTION = (
    "You are a planetary-defense physics assistant. Assess the hypothetical asteroid below. "
    "Show your work as exactly six dimensional-analysis steps in this order: Radius, Volume, "
    "Mass, Velocity Conversion, Kinetic Energy, TNT Equivalent (1 MT = 4.184e15 J). Estimate "
    "impact probability (0-100) from the current distance, a boolean hit flag, the transient "
    "crater diameter in meters, and a material composition breakdown whose percentages sum "
    "to 100. Write a short markdown report in rawMarkdown. Respond with JSON only."
)

_STEP_SCHEMA = {
    "type": "OBJECT",
    "properties": {k: {"type": "STRING"} for k in ("step", "equation", "explanation", "result")},
    "required": ["step", "equation", "explanation", "result"],
}
_ELEMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "element": {"type": "STRING"},
        "percentage": {"type": "NUMBER"},
        "fill": {"type": "STRING"},
    },
    "required": ["element", "percentage"],
}
RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "isHit": {"type": "BOOLEAN"},
        "impactProbability": {"type": "NUMBER"},
        "kineticEnergyMegatons": {"type": "NUMBER"},
        "craterSizeMeters": {"type": "NUMBER"},
        "analysisSummary": {"type": "STRING"},
        "dimensionalProcess": {"type": "ARRAY", "items": _STEP_SCHEMA},
        "composition": {"type": "ARRAY", "items": _ELEMENT_SCHEMA},
        "rawMarkdown": {"type": "STRING"},
    },
    "required": ["isHit", "impactProbability", "kineticEnergyMegatons",
                 "dimensionalProcess", "composition", "rawMarkdown"],
}

DEFAULT_FILL = "#8884d8"


class RemoteStep(BaseModel):
    step: str
    equation: str
    explanation: str
    result: str


class RemoteElement(BaseModel):
    element: str
    percentage: float = Field(..., ge=0, le=100)
    fill: str = DEFAULT_FILL


class RemoteAnalysisPayload(BaseModel):
    isHit: bool
    impactProbability: float = Field(..., ge=0, le=100)
    kineticEnergyMegatons: float = Field(..., ge=0)
    craterSizeMeters: float = Field(0.0, ge=0)
    analysisSummary: Optional[str] = None
    dimensionalProcess: List[RemoteStep] = Field(..., min_length=6, max_length=6)
    composition: List[RemoteElement]
    rawMarkdown: str

    def to_result(self, timestamp: int) -> AnalysisResult:
        return AnalysisResult(
            is_hit=self.isHit,
            impact_probability=round(self.impactProbability, 1),
            kinetic_energy_megatons=self.kineticEnergyMegatons,
            crater_size_m=self.craterSizeMeters,
            analysis_summary=self.analysisSummary or self.rawMarkdown,
            dimensional_process=tuple(DimensionalStep(**s.model_dump()) for s in self.dimensionalProcess),
            composition=tuple(CompositionElement(**c.model_dump()) for c in self.composition),
            raw_markdown=self.rawMarkdown,
            timestamp=timestamp,
        )


def _strip_fences(text: str) -> str:
    t = text.strip()
    if t.startswith("```"):
        t = t.split("\n", 1)[1] if "\n" in t else ""
        if t.rstrip().endswith("```"):
            t = t.rstrip()[:-3]
    return t.strip()


class RemoteImpactEngine(ImpactEngine):
    """
    Delegates the analysis to a text-generation service constrained to the
    AnalysisResult JSON schema. Non-deterministic; every failure surfaces as
    ExternalServiceError. No retries.
    """

    name = "remote"

    def __init__(self, api_key: str, model: str, base_url: str, timeout_s: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None, log_body_chars: int = 400):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.log_body_chars = log_body_chars
        self._transport = transport

    def _request_body(self, inp: AsteroidInput) -> Dict[str, Any]:
        prompt = (
            f"{REMOTE_INSTRUCTION}\n\n"
            f"Name: {inp.name}\n"
            f"Diameter: {inp.diameter_m} m\n"
            f"Velocity: {inp.velocity_kmps} km/s\n"
            f"Distance from Earth: {inp.distance_km} km\n"
            f"Type: {inp.type_label}"
        )
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        print(f"[remote.request] POST {url} key={mask_key(self.api_key)} timeout_s={self.timeout_s}")
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self._transport) as client:
                r = client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
        except httpx.TimeoutException as e:
            print(f"[remote.timeout] error={e}")
            raise ExternalServiceError(f"Generative engine timed out: {e}", status_code=504)
        except httpx.HTTPError as e:
            print(f"[remote.error] error={e}")
            raise ExternalServiceError(f"Generative engine unreachable: {e}")

        preview = r.text[:self.log_body_chars] if r.text else ""
        print(f"[remote.http] status={r.status_code} preview={preview!r}")
        if r.status_code >= 400:
            raise ExternalServiceError(f"Generative engine returned HTTP {r.status_code}.")
        return r

    @staticmethod
    def _extract_text(r: httpx.Response) -> str:
        if not r.content:
            raise ExternalServiceError("Generative engine returned an empty body.")
        try:
            data = r.json()
        except ValueError as je:
            raise ExternalServiceError(f"Generative engine returned non-JSON: {je}")
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ExternalServiceError("Generative engine response has no candidate text.")
        if not isinstance(text, str) or not text.strip():
            raise ExternalServiceError("Generative engine returned an empty completion.")
        return text

    @staticmethod
    def _parse_payload(text: str) -> RemoteAnalysisPayload:
        try:
            obj = json.loads(_strip_fences(text))
        except ValueError as je:
            raise ExternalServiceError(f"Generative completion is not JSON: {je}")
        if not isinstance(obj, dict):
            raise ExternalServiceError("Generative completion is not a JSON object.")
        try:
            return RemoteAnalysisPayload.model_validate(obj)
        except ValidationError as ve:
            missing = [".".join(str(p) for p in err["loc"]) for err in ve.errors()]
            raise ExternalServiceError(f"Generative completion violates the result schema: {missing}")

    def analyze(self, inp: AsteroidInput) -> AnalysisResult:
        if not self.api_key:
            raise ConfigurationError("Remote engine selected but GEMINI_API_KEY is not configured.")
        inp.validate()
        r = self._post(self._request_body(inp))
        payload = self._parse_payload(self._extract_text(r))
        return payload.to_result(timestamp=_now_ms())


def build_engine(settings: Settings, transport: Optional[httpx.BaseTransport] = None) -> ImpactEngine:
    if settings.engine == ENGINE_REMOTE:
        return RemoteImpactEngine(
            api_key=settings.gemini_api_key or "",
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            timeout_s=settings.remote_timeout_s,
            transport=transport,
        )
    return LocalImpactEngine(hit_threshold=settings.hit_threshold, pacing_delay_s=settings.pacing_delay_s)
