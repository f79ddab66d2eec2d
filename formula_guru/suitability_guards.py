# formula_guru/suitability_guards.py
"""
Analysis-aware overrides applied after normalization.

- Tone guard (brands with a `guard` in the catalog, e.g. Express Tones):
  deposit-only toners cannot serve unlightened black or saturated red, so
  those photos get a single explanatory "N/A" plan; warm blonde requests get
  the fixed warm recipe. Kept plans always get the brand's short timing.
- Neutral black: on lines with a real 1N, level 1-2 black is written 1N.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from formula_guru.brand_registry import BrandRegistry, BrandRule, ToneGuard
from formula_guru.entities import AnalysisResult, FormulaStep, Scenario

logger = logging.getLogger("formula_guru")

JET_BLACK_RE = re.compile(r"\b(level\s*1|level\s*2|jet\s*black|solid\s*black)\b")
VIVID_RED_RE = re.compile(r"\b(vivid|vibrant|rich)\s+red\b|\b(cherry|ruby|crimson|scarlet)\b")
WARM_BLONDE_RE = re.compile(r"\b(warm|golden|honey|caramel)\b.*\bblonde\b", re.DOTALL)
LEVEL_1_2_BLACK_RE = re.compile(
    r"\b(level\s*1(\s*[-–]\s*2)?|level\s*2|deep\s+black|jet\s+black|solid\s+black)\b"
)
ONE_A_RE = re.compile(r"\b1A\b")


def _not_applicable_plan(formula: str, processing: tuple, confidence: float) -> Scenario:
    return Scenario(
        title="Primary plan",
        condition=None,
        target_level=None,
        roots=None,
        melt=None,
        ends=FormulaStep(formula=formula, timing="", note=None),
        processing=list(processing),
        confidence=confidence,
    )


def _with_timing(step: Optional[FormulaStep], timing: str) -> Optional[FormulaStep]:
    if step is None:
        return None
    return step.model_copy(update={"timing": timing})


def apply_tone_guard(result: AnalysisResult, rule: BrandRule) -> AnalysisResult:
    guard: Optional[ToneGuard] = rule.guard
    if guard is None:
        return result

    a = (result.analysis or "").lower()

    # replacement plans carry no timing of their own
    if JET_BLACK_RE.search(a):
        logger.info(f"[GUARD] {rule.name}: jet black cue, returning not-applicable plan")
        plan = _not_applicable_plan(guard.jet_black_formula, guard.jet_black_processing, guard.confidence)
        return result.model_copy(update={"scenarios": [plan]})
    if VIVID_RED_RE.search(a):
        logger.info(f"[GUARD] {rule.name}: vivid red cue, redirecting to direct dye")
        plan = _not_applicable_plan(guard.vivid_red_formula, guard.vivid_red_processing, guard.confidence)
        return result.model_copy(update={"scenarios": [plan]})

    scenarios = list(result.scenarios)
    if WARM_BLONDE_RE.search(a) and scenarios:
        logger.info(f"[GUARD] {rule.name}: warm blonde cue, using fixed warm recipe")
        first = scenarios[0]
        ends = first.ends.model_copy(update={"formula": guard.warm_blonde_formula})
        scenarios[0] = first.model_copy(update={"ends": ends})

    scenarios = [
        sc.model_copy(update={
            "roots": _with_timing(sc.roots, guard.timing),
            "melt": _with_timing(sc.melt, guard.timing),
            "ends": _with_timing(sc.ends, guard.timing),
        })
        for sc in scenarios
    ]
    return result.model_copy(update={"scenarios": scenarios})


def is_level_1_2_black(analysis: Optional[str]) -> bool:
    return LEVEL_1_2_BLACK_RE.search((analysis or "").lower()) is not None


def _one_a_to_one_n(step: Optional[FormulaStep]) -> Optional[FormulaStep]:
    if step is None or not step.formula:
        return step
    return step.model_copy(update={"formula": ONE_A_RE.sub("1N", step.formula)})


def apply_neutral_black(result: AnalysisResult, rule: BrandRule, registry: BrandRegistry) -> AnalysisResult:
    if not registry.is_neutral_black_brand(rule.name):
        return result
    if not is_level_1_2_black(result.analysis):
        return result

    scenarios = [
        sc.model_copy(update={
            "roots": _one_a_to_one_n(sc.roots),
            "melt": _one_a_to_one_n(sc.melt),
            "ends": _one_a_to_one_n(sc.ends),
        })
        for sc in result.scenarios
    ]
    return result.model_copy(update={"scenarios": scenarios})
