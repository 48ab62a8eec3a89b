from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from math import inf, pi, isfinite
from types import MappingProxyType
from typing import Any, Mapping

from .errors import InvalidInputError

# -----------------------------
# Physical constants & defaults
# -----------------------------
G_EARTH = 9.81                   # m/s^2
EARTH_RADIUS_KM = 6371.0         # km
J_PER_MT_TNT = 4.184e15          # J in 1 megaton TNT
K_TRANSIENT_ROCK = 1.161
TARGET_DENSITY = 2500.0          # kg/m^3, Earth-crust proxy
DEFAULT_DENSITY = 2500.0         # kg/m^3, used for unrecognized types

# Impact probability bands (km)
INNER_BOUNDARY_KM = EARTH_RADIUS_KM + 2000.0
OUTER_BOUNDARY_KM = 50_000.0
HIT_THRESHOLD_PERCENT = 60.0


class AsteroidType(str, Enum):
    STONY = "Stony (Silicate)"
    METALLIC = "Metallic (Iron-Nickel)"
    ICY = "Icy (Cometary)"
    CARBONACEOUS = "Carbonaceous (C-type)"

    @classmethod
    def parse(cls, value: Any) -> AsteroidType | None:
        """Resolve a member from itself, its name, its short name or its label; None if unknown."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().lower()
        for member in cls:
            if key in (member.name.lower(), member.value.lower()):
                return member
        return None


# Bulk densities (kg/m^3)
DENSITY_BY_TYPE: Mapping[AsteroidType, float] = MappingProxyType({
    AsteroidType.STONY: 2700.0,         # S-type
    AsteroidType.METALLIC: 7870.0,      # iron
    AsteroidType.ICY: 1000.0,           # water ice
    AsteroidType.CARBONACEOUS: 1300.0,  # C-type
})


@dataclass(frozen=True)
class AsteroidInput:
    name: str
    diameter_m: float
    velocity_kmps: float
    distance_km: float
    type: AsteroidType | str = AsteroidType.STONY

    @property
    def asteroid_type(self) -> AsteroidType | None:
        return AsteroidType.parse(self.type)

    @property
    def type_label(self) -> str:
        t = self.asteroid_type
        return t.value if t is not None else str(self.type)

    def validate(self) -> None:
        """Fail fast on values that would yield NaN or negative physics."""
        for label, value in (("diameter", self.diameter_m),
                             ("velocity", self.velocity_kmps),
                             ("distance", self.distance_km)):
            if not isinstance(value, (int, float)) or isinstance(value, bool) or not isfinite(value):
                raise InvalidInputError(label, value, "must be a finite number")
        if self.diameter_m <= 0:
            raise InvalidInputError("diameter", self.diameter_m, "must be > 0 m")
        if self.velocity_kmps <= 0:
            raise InvalidInputError("velocity", self.velocity_kmps, "must be > 0 km/s")
        if self.distance_km < 0:
            raise InvalidInputError("distance", self.distance_km, "must be >= 0 km")

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "diameter": self.diameter_m,
            "velocity": self.velocity_kmps,
            "distance": self.distance_km,
            "type": self.type_label,
        }


@dataclass(frozen=True)
class DimensionalStep:
    step: str
    equation: str
    explanation: str
    result: str

    def to_dict(self) -> dict:
        return {"step": self.step, "equation": self.equation,
                "explanation": self.explanation, "result": self.result}


@dataclass(frozen=True)
class CompositionElement:
    element: str
    percentage: float
    fill: str

    def to_dict(self) -> dict:
        return {"element": self.element, "percentage": self.percentage, "fill": self.fill}


@dataclass(frozen=True)
class AnalysisResult:
    is_hit: bool
    impact_probability: float
    kinetic_energy_megatons: float
    crater_size_m: float
    analysis_summary: str
    dimensional_process: tuple[DimensionalStep, ...]
    composition: tuple[CompositionElement, ...]
    raw_markdown: str
    timestamp: int  # epoch ms, the only non-deterministic field

    def to_dict(self) -> dict:
        return {
            "isHit": self.is_hit,
            "impactProbability": self.impact_probability,
            "kineticEnergyMegatons": self.kinetic_energy_megatons,
            "craterSizeMeters": self.crater_size_m,
            "analysisSummary": self.analysis_summary,
            "dimensionalProcess": [s.to_dict() for s in self.dimensional_process],
            "composition": [c.to_dict() for c in self.composition],
            "rawMarkdown": self.raw_markdown,
            "timestamp": self.timestamp,
        }


# ---------- Physical properties ----------

def density_for(asteroid_type: AsteroidType | None) -> float:
    if asteroid_type is None:
        return DEFAULT_DENSITY
    return DENSITY_BY_TYPE.get(asteroid_type, DEFAULT_DENSITY)


@dataclass(frozen=True)
class PhysicalProperties:
    """
    Every intermediate of the geometry -> mass -> energy -> crater chain.
    The derivation trace is rendered from these values, never recomputed.
    """
    density_kgpm3: float
    density_source: AsteroidType | None
    radius_m: float
    volume_m3: float
    mass_kg: float
    velocity_mps: float
    kinetic_energy_J: float
    energy_mt_tnt: float
    crater_diameter_m: float


def transient_crater_diameter_m(diameter_m: float, speed_mps: float, density_kgpm3: float,
                                rho_t: float = TARGET_DENSITY, g: float = G_EARTH,
                                K: float = K_TRANSIENT_ROCK) -> float:
    """D_tc = K (rho_i/rho_t)^(1/3) L^0.78 v^0.44 g^-0.22 (vertical impact)."""
    if diameter_m <= 0.0 or speed_mps <= 0.0:
        return 0.0
    return K * (density_kgpm3 / rho_t) ** (1.0 / 3.0) * (diameter_m ** 0.78) * (speed_mps ** 0.44) * (g ** -0.22)


def compute_physical_properties(inp: AsteroidInput) -> PhysicalProperties:
    source = inp.asteroid_type
    density = density_for(source)

    radius = inp.diameter_m / 2.0
    try:
        volume = (4.0 / 3.0) * pi * radius ** 3
    except OverflowError:
        volume = inf
    mass = density * volume
    if not isfinite(mass):
        raise InvalidInputError("diameter", inp.diameter_m, "is too large to represent the mass")

    # km/s -> m/s before squaring
    v_ms = inp.velocity_kmps * 1000.0
    try:
        energy_J = 0.5 * mass * v_ms ** 2
    except OverflowError:
        energy_J = inf
    if not isfinite(energy_J):
        raise InvalidInputError("velocity", inp.velocity_kmps, "is too large to represent the kinetic energy")
    energy_mt = energy_J / J_PER_MT_TNT

    return PhysicalProperties(
        density_kgpm3=density,
        density_source=source,
        radius_m=radius,
        volume_m3=volume,
        mass_kg=mass,
        velocity_mps=v_ms,
        kinetic_energy_J=energy_J,
        energy_mt_tnt=energy_mt,
        crater_diameter_m=transient_crater_diameter_m(inp.diameter_m, v_ms, density),
    )


# ---------- Impact probability ----------

@dataclass(frozen=True)
class ImpactClassification:
    probability: float
    is_hit: bool
    band: str = field(default="outer")


def classify_impact(distance_km: float, hit_threshold: float = HIT_THRESHOLD_PERCENT) -> ImpactClassification:
    """
    Heuristic probability from current distance:
      < inner boundary (LEO/atmosphere)  -> 100 %, hit
      inner..outer (capture zone)         -> linear decay, hit above threshold
      >= outer boundary                   -> 0 %, miss
    """
    if distance_km < INNER_BOUNDARY_KM:
        prob, hit, band = 100.0, True, "inner"
    elif distance_km < OUTER_BOUNDARY_KM:
        span = OUTER_BOUNDARY_KM - INNER_BOUNDARY_KM
        prob = 100.0 * (1.0 - (distance_km - INNER_BOUNDARY_KM) / span)
        hit, band = prob > hit_threshold, "decay"
    else:
        prob, hit, band = 0.0, False, "outer"

    prob = max(0.0, min(100.0, round(prob, 1)))
    return ImpactClassification(probability=prob, is_hit=hit, band=band)
