from formula_guru.entities import AnalysisResult, FormulaStep, Scenario
from formula_guru.suitability_guards import (
    apply_neutral_black,
    apply_tone_guard,
    is_level_1_2_black,
)

EXPRESS_TONES = "Pravana ChromaSilk Express Tones"
GUARD_TIMING = "Process 5 minutes only; watch visually."


def _result(analysis, *formulas):
    titles = ["Primary plan", "Alternate (cooler)", "Alternate (warmer)"]
    return AnalysisResult(
        analysis=analysis,
        scenarios=[
            Scenario(title=titles[i], ends=FormulaStep(formula=f, timing="20 minutes"))
            for i, f in enumerate(formulas)
        ],
    )


def test_jet_black_gets_single_not_applicable_plan(registry):
    rule = registry.lookup(EXPRESS_TONES)
    out = apply_tone_guard(_result("Level 1 black hair, no lightening.", "Violet", "Ash"), rule)
    assert len(out.scenarios) == 1
    plan = out.scenarios[0]
    assert plan.title == "Primary plan"
    assert plan.ends.formula.startswith("N/A")
    assert plan.ends.timing == ""
    assert plan.processing == ["Not applicable for this photo with Express Tones."]
    assert plan.confidence == 0.85


def test_jet_black_wins_over_red(registry):
    rule = registry.lookup(EXPRESS_TONES)
    out = apply_tone_guard(_result("Solid black with cherry reflect.", "Rose"), rule)
    assert out.scenarios[0].ends.formula == rule.guard.jet_black_formula


def test_vivid_red_redirects_to_direct_dye(registry):
    rule = registry.lookup(EXPRESS_TONES)
    out = apply_tone_guard(_result("Client wants a vibrant red.", "Copper", "Rose"), rule)
    assert len(out.scenarios) == 1
    assert out.scenarios[0].ends.formula == rule.guard.vivid_red_formula
    assert out.scenarios[0].ends.timing == ""


def test_warm_blonde_uses_fixed_recipe(registry):
    rule = registry.lookup(EXPRESS_TONES)
    out = apply_tone_guard(_result("Pre-lightened, wants golden blonde.", "Violet", "Ash"), rule)
    assert len(out.scenarios) == 2
    assert out.scenarios[0].ends.formula == "Beige + Gold (1:1.5) with PRAVANA Zero Lift Creme Developer"
    assert out.scenarios[1].ends.formula == "Ash"


def test_guard_forces_timing_on_every_step(registry):
    rule = registry.lookup(EXPRESS_TONES)
    result = AnalysisResult(
        analysis="Level 9 pre-lightened, brassy.",
        scenarios=[Scenario(
            title="Primary plan",
            roots=FormulaStep(formula="Violet", timing="20 minutes"),
            ends=FormulaStep(formula="Silver", timing="15 minutes"),
        )],
    )
    out = apply_tone_guard(result, rule)
    plan = out.scenarios[0]
    assert plan.roots.timing == GUARD_TIMING
    assert plan.ends.timing == GUARD_TIMING
    assert plan.melt is None
    assert plan.ends.formula == "Silver"


def test_brands_without_guard_are_untouched(registry):
    rule = registry.lookup("Redken Shades EQ")
    result = _result("Level 1 black hair.", "01N")
    assert apply_tone_guard(result, rule) is result


def test_level_1_2_black_detection():
    assert is_level_1_2_black("Natural level 1-2 black, healthy.")
    assert is_level_1_2_black("Jet black lengths")
    assert not is_level_1_2_black("Level 10 pale blonde")
    assert not is_level_1_2_black(None)


def test_neutral_black_rewrites_1a(registry):
    rule = registry.lookup("Redken Shades EQ")
    result = _result("Level 1-2 natural black.", "1A + 1A (1:1) with Shades EQ Processing Solution", "1AB")
    out = apply_neutral_black(result, rule, registry)
    assert out.scenarios[0].ends.formula == "1N + 1N (1:1) with Shades EQ Processing Solution"
    assert out.scenarios[1].ends.formula == "1AB"


def test_neutral_black_needs_black_analysis(registry):
    rule = registry.lookup("Redken Shades EQ")
    result = _result("Level 6 brunette.", "1A")
    assert apply_neutral_black(result, rule, registry).scenarios[0].ends.formula == "1A"


def test_neutral_black_only_for_listed_brands(registry):
    rule = registry.lookup("Wella Color Touch")
    result = _result("Level 1 black.", "1A")
    assert apply_neutral_black(result, rule, registry).scenarios[0].ends.formula == "1A"


def test_warm_blonde_recipe_gets_guard_timing(registry):
    rule = registry.lookup(EXPRESS_TONES)
    out = apply_tone_guard(_result("Honey blonde goal on level 9.", "Violet"), rule)
    assert out.scenarios[0].ends.timing == GUARD_TIMING
