import pytest

from asteroid_api.impact_model import AsteroidInput, AsteroidType, classify_impact, compute_physical_properties
from asteroid_api.report import (
    COMPOSITION_BY_TYPE,
    STATUS_HIT,
    STATUS_MISS,
    build_dimensional_process,
    build_markdown,
    build_summary,
    composition_for,
    severity_tier,
)

STEP_ORDER = ["Radius", "Volume", "Mass", "Velocity Conversion", "Kinetic Energy", "TNT Equivalent"]


def _inp(type=AsteroidType.STONY, distance=384_400.0, name="Neo-X1"):
    return AsteroidInput(name=name, diameter_m=50.0, velocity_kmps=17.0, distance_km=distance, type=type)


@pytest.mark.parametrize("t", list(AsteroidType))
def test_composition_sums_to_100(t):
    assert sum(c.percentage for c in composition_for(t)) == 100


def test_composition_tables():
    assert [(c.element, c.percentage) for c in COMPOSITION_BY_TYPE[AsteroidType.STONY]] == [
        ("Silicates", 70), ("Iron/Nickel", 15), ("Pyroxene", 10), ("Olivine", 5)]
    assert [c.percentage for c in COMPOSITION_BY_TYPE[AsteroidType.METALLIC]] == [85, 14, 1]
    assert [c.percentage for c in COMPOSITION_BY_TYPE[AsteroidType.ICY]] == [60, 20, 15, 5]
    assert [c.percentage for c in COMPOSITION_BY_TYPE[AsteroidType.CARBONACEOUS]] == [45, 20, 25, 10]
    assert all(c.fill.startswith("#") for rows in COMPOSITION_BY_TYPE.values() for c in rows)


def test_composition_unknown_type_is_empty():
    assert composition_for(None) == ()


def test_composition_table_is_read_only():
    with pytest.raises(TypeError):
        COMPOSITION_BY_TYPE[AsteroidType.ICY] = ()


@pytest.mark.parametrize("t", list(AsteroidType) + ["Mystery"])
def test_trace_has_six_steps_in_order(t):
    inp = _inp(type=t)
    steps = build_dimensional_process(inp, compute_physical_properties(inp))
    assert [s.step for s in steps] == STEP_ORDER
    assert all(s.equation and s.explanation and s.result for s in steps)


def test_trace_results_carry_units_and_values():
    inp = _inp()
    props = compute_physical_properties(inp)
    steps = build_dimensional_process(inp, props)
    radius, volume, mass, velocity, energy, tnt = (s.result for s in steps)
    assert radius == "25.00 m"
    assert volume == f"{props.volume_m3:.2e} m³"
    assert mass == f"{props.mass_kg:.2e} kg"
    assert velocity == "17,000 m/s"
    assert energy == f"{props.kinetic_energy_J:.2e} J"
    assert tnt == f"{props.energy_mt_tnt:.4f} MT"
    assert steps[0].equation == "r = d / 2 = 50 / 2"


def test_mass_step_cites_density_source():
    inp = _inp(type=AsteroidType.METALLIC)
    mass_step = build_dimensional_process(inp, compute_physical_properties(inp))[2]
    assert "Metallic (Iron-Nickel)" in mass_step.explanation
    assert "7,870 kg/m³" in mass_step.explanation

    odd = _inp(type="Rubble Pile")
    mass_step = build_dimensional_process(odd, compute_physical_properties(odd))[2]
    assert "default density (2,500 kg/m³)" in mass_step.explanation
    assert "Rubble Pile" in mass_step.explanation


@pytest.mark.parametrize("mt,tier", [
    (0.0, "Local Damage"),
    (0.99, "Local Damage"),
    (1.0, "Regional Destruction"),
    (99.9, "Regional Destruction"),
    (100.0, "Continental Catastrophe"),
    (9_999.0, "Continental Catastrophe"),
    (10_000.0, "Extinction Event"),
    (1e8, "Extinction Event"),
])
def test_severity_tiers(mt, tier):
    assert severity_tier(mt) == tier


def test_summary_template_miss():
    inp = _inp(name="Neo-X1")
    impact = classify_impact(inp.distance_km)
    text = build_summary(inp, impact, 0.5)
    assert text.startswith("PHYSICS ENGINE REPORT // TARGET: NEO-X1")
    assert "CLASSIFICATION: Stony (Silicate)" in text
    assert "TRAJECTORY ANALYSIS: 0% Probability of Impact." in text
    assert f"STATUS: {STATUS_MISS}" in text
    assert "KINETIC YIELD: ~0.50 Megatons." in text
    assert "THREAT LEVEL: LOCAL DAMAGE." in text


def test_summary_template_hit():
    inp = _inp(distance=1000.0)
    text = build_summary(inp, classify_impact(inp.distance_km), 12_345.678)
    assert "TRAJECTORY ANALYSIS: 100% Probability of Impact." in text
    assert STATUS_HIT in text
    assert "~12,345.68 Megatons" in text
    assert "EXTINCTION EVENT" in text


def test_markdown_report_sections():
    inp = _inp()
    props = compute_physical_properties(inp)
    impact = classify_impact(inp.distance_km)
    steps = build_dimensional_process(inp, props)
    md = build_markdown(inp, props, impact, steps, composition_for(inp.asteroid_type))
    assert md.startswith("# Impact Assessment: Neo-X1")
    assert "## Dimensional analysis" in md
    assert "| 6 | TNT Equivalent |" in md
    assert "| Silicates | 70 |" in md
    assert "beyond the capture zone" in md


def test_markdown_without_composition():
    inp = _inp(type="Mystery")
    props = compute_physical_properties(inp)
    md = build_markdown(inp, props, classify_impact(10.0), build_dimensional_process(inp, props), ())
    assert "_No composition profile for this type._" in md
