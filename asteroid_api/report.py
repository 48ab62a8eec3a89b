from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

from .impact_model import (
    AsteroidInput, AsteroidType, CompositionElement, DimensionalStep,
    ImpactClassification, PhysicalProperties, J_PER_MT_TNT,
)

# Severity tiers (upper bound in MT, label); last tier is open-ended
SEVERITY_TIERS = (
    (1.0, "Local Damage"),
    (100.0, "Regional Destruction"),
    (10_000.0, "Continental Catastrophe"),
)
SEVERITY_MAX = "Extinction Event"

STATUS_HIT = "CRITICAL: IMPACT TRAJECTORY CONFIRMED."
STATUS_MISS = "SAFE: NO INTERSECTION DETECTED."

BAND_NOTES = {
    "inner": "inside the atmosphere/LEO entry zone",
    "decay": "inside the gravity-well capture zone",
    "outer": "beyond the capture zone",
}


def _el(element: str, percentage: float, fill: str) -> CompositionElement:
    return CompositionElement(element=element, percentage=percentage, fill=fill)


# Material class breakdown; independent of size, speed and distance
COMPOSITION_BY_TYPE: Mapping[AsteroidType, tuple[CompositionElement, ...]] = MappingProxyType({
    AsteroidType.STONY: (
        _el("Silicates", 70, "#a8a29e"),
        _el("Iron/Nickel", 15, "#94a3b8"),
        _el("Pyroxene", 10, "#d6d3d1"),
        _el("Olivine", 5, "#86efac"),
    ),
    AsteroidType.METALLIC: (
        _el("Iron", 85, "#64748b"),
        _el("Nickel", 14, "#cbd5e1"),
        _el("Iridium", 1, "#f1f5f9"),
    ),
    AsteroidType.ICY: (
        _el("Water Ice", 60, "#bfdbfe"),
        _el("CO2 Ice", 20, "#e0f2fe"),
        _el("Dust", 15, "#7dd3fc"),
        _el("Organics", 5, "#0ea5e9"),
    ),
    AsteroidType.CARBONACEOUS: (
        _el("Carbon", 45, "#475569"),
        _el("Water", 20, "#334155"),
        _el("Silicates", 25, "#94a3b8"),
        _el("Sulfides", 10, "#fbbf24"),
    ),
})


def composition_for(asteroid_type: AsteroidType | None) -> tuple[CompositionElement, ...]:
    if asteroid_type is None:
        return ()
    return COMPOSITION_BY_TYPE.get(asteroid_type, ())


def _fmt_plain(x: float, max_dp: int = 3) -> str:
    """Grouped fixed-point with trailing zeros dropped: 17000.0 -> '17,000'."""
    return f"{x:,.{max_dp}f}".rstrip("0").rstrip(".")


def build_dimensional_process(inp: AsteroidInput, props: PhysicalProperties) -> tuple[DimensionalStep, ...]:
    """Six ordered derivation steps, rendered from already-computed values."""
    source = props.density_source
    if source is not None:
        density_note = f"{source.value} density ({_fmt_plain(props.density_kgpm3)} kg/m³)"
    else:
        density_note = (f"default density ({_fmt_plain(props.density_kgpm3)} kg/m³) "
                        f"for unrecognized type '{inp.type}'")

    return (
        DimensionalStep(
            step="Radius",
            equation=f"r = d / 2 = {_fmt_plain(inp.diameter_m)} / 2",
            explanation="Derive radius from diameter to determine spherical volume.",
            result=f"{props.radius_m:.2f} m",
        ),
        DimensionalStep(
            step="Volume",
            equation="V = (4/3) * π * r^3",
            explanation="Compute volume of a sphere [m] -> [m³].",
            result=f"{props.volume_m3:.2e} m³",
        ),
        DimensionalStep(
            step="Mass",
            equation="M = ρ * V",
            explanation=f"Calculate mass using {density_note}: [kg/m³]·[m³] -> [kg].",
            result=f"{props.mass_kg:.2e} kg",
        ),
        DimensionalStep(
            step="Velocity Conversion",
            equation=f"v_ms = v_km * 1000 = {_fmt_plain(inp.velocity_kmps)} * 1000",
            explanation="Convert km/s to m/s before squaring so energy comes out in Joules.",
            result=f"{_fmt_plain(props.velocity_mps)} m/s",
        ),
        DimensionalStep(
            step="Kinetic Energy",
            equation="E_k = (1/2) * M * v^2",
            explanation="Classical kinetic energy: [kg]·[m/s]² -> [J].",
            result=f"{props.kinetic_energy_J:.2e} J",
        ),
        DimensionalStep(
            step="TNT Equivalent",
            equation=f"MT = E_k / {J_PER_MT_TNT:.3e}",
            explanation="Convert Joules to megatons of TNT for impact context.",
            result=f"{props.energy_mt_tnt:.4f} MT",
        ),
    )


def severity_tier(energy_mt: float) -> str:
    for upper, label in SEVERITY_TIERS:
        if energy_mt < upper:
            return label
    return SEVERITY_MAX


def build_summary(inp: AsteroidInput, impact: ImpactClassification, energy_mt: float) -> str:
    status = STATUS_HIT if impact.is_hit else STATUS_MISS
    tier = severity_tier(energy_mt)
    lines = [
        f"PHYSICS ENGINE REPORT // TARGET: {inp.name.upper()}",
        "",
        f"CLASSIFICATION: {inp.type_label}",
        f"TRAJECTORY ANALYSIS: {impact.probability:g}% Probability of Impact.",
        f"STATUS: {status}",
        "",
        f"KINETIC YIELD: ~{energy_mt:,.2f} Megatons.",
        f"THREAT LEVEL: {tier.upper()}.",
        "",
        "Dimensional analysis verifies mass-velocity integration. All constants valid.",
    ]
    return "\n".join(lines)


def build_markdown(inp: AsteroidInput, props: PhysicalProperties, impact: ImpactClassification,
                   steps: tuple[DimensionalStep, ...],
                   composition: tuple[CompositionElement, ...]) -> str:
    out = [
        f"# Impact Assessment: {inp.name}",
        "",
        f"**Type:** {inp.type_label}  ",
        f"**Status:** {STATUS_HIT if impact.is_hit else STATUS_MISS}  ",
        f"**Threat level:** {severity_tier(props.energy_mt_tnt)}",
        "",
        "## Key figures",
        "",
        "| Quantity | Value |",
        "|---|---|",
        f"| Distance | {_fmt_plain(inp.distance_km)} km ({BAND_NOTES[impact.band]}) |",
        f"| Impact probability | {impact.probability:g} % |",
        f"| Kinetic energy | {props.kinetic_energy_J:.3e} J |",
        f"| TNT equivalent | {props.energy_mt_tnt:,.4f} MT |",
        f"| Transient crater | {props.crater_diameter_m:,.1f} m |",
        "",
        "## Dimensional analysis",
        "",
        "| # | Step | Equation | Result |",
        "|---|---|---|---|",
    ]
    for i, s in enumerate(steps, start=1):
        out.append(f"| {i} | {s.step} | `{s.equation}` | {s.result} |")

    out += ["", "## Composition", ""]
    if composition:
        out += ["| Element | % |", "|---|---|"]
        out += [f"| {c.element} | {c.percentage:g} |" for c in composition]
    else:
        out.append("_No composition profile for this type._")
    out.append("")
    return "\n".join(out)
