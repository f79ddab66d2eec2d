# formula_guru/scenario_validator.py
from __future__ import annotations

import logging
import re
from typing import List, Optional

from formula_guru.brand_registry import BrandRule
from formula_guru.entities import AnalysisResult, FormulaStep, Scenario
from formula_guru.shade_validator import extract_codes, scenario_valid, step_valid

logger = logging.getLogger("formula_guru")

NOT_APPLICABLE_NOTE = "Not applicable for this photo/brand line."
PRIMARY_ADJUSTED_NOTE = "Adjusted: removed non-brand shade codes."

# Business rule: a deposit-only "alternate" that reaches for level 7+ codes is
# treated as unrealistic for the photo. Kept as-is, coarse by nature.
HIGH_LEVEL_ALTERNATE_THRESHOLD = 7

BLACK_RE = re.compile(r"\b(level\s*[12]\b|solid\s*black)\b")
VIVID_HINT_RE = re.compile(r"\b(single\s+vivid|vivid|fashion\s+shade|magenta|pink|blue|green|purple|teal|neon)\b")
LEVEL_RE = re.compile(r"^0?(1[0-2]|[1-9])(?!\d)")
LEADING_TOKEN_RE = re.compile(r"^\S+")


def is_black_or_single_vivid(analysis: Optional[str]) -> bool:
    a = (analysis or "").lower()
    return bool(BLACK_RE.search(a) or VIVID_HINT_RE.search(a))


def extract_numeric_levels(scenario: Scenario) -> List[int]:
    levels = []
    for _, step in scenario.steps():
        if not step.formula or step.is_not_applicable():
            continue
        for code in extract_codes(step.formula):
            m = LEVEL_RE.match(code)
            if m:
                levels.append(int(m.group(1)))
    return levels


def has_high_level_toner(scenario: Scenario) -> bool:
    return any(n >= HIGH_LEVEL_ALTERNATE_THRESHOLD for n in extract_numeric_levels(scenario))


def mark_alternates(result: AnalysisResult, category: str, rule: BrandRule) -> AnalysisResult:
    """Flag unrealistic alternates as not applicable (permanent plans are exempt)."""
    if category == "permanent":
        return result

    black_or_vivid = is_black_or_single_vivid(result.analysis)
    scenarios = []
    for sc in result.scenarios:
        if "alternate" in sc.title.lower() and (
            black_or_vivid or has_high_level_toner(sc) or not scenario_valid(sc, rule)
        ):
            logger.debug(f"[SCENARIOS] '{sc.title}' marked not applicable for {rule.name}")
            sc = sc.model_copy(update={"na": True, "note": NOT_APPLICABLE_NOTE})
        scenarios.append(sc)
    return result.model_copy(update={"scenarios": scenarios})


def _drop_leading_token(step: Optional[FormulaStep], rule: BrandRule) -> Optional[FormulaStep]:
    if step is None or step_valid(step, rule):
        return step
    return step.model_copy(update={"formula": LEADING_TOKEN_RE.sub("", step.formula).strip()})


def sanitize_primary(result: AnalysisResult, rule: BrandRule) -> AnalysisResult:
    """
    Best-effort repair of the first scenario: a step with a foreign code loses
    its leading word and an advisory line is added. Never rejects the plan.
    """
    if not result.scenarios:
        return result
    primary = result.scenarios[0]
    if scenario_valid(primary, rule):
        return result

    logger.info(f"[SCENARIOS] Repairing primary plan for {rule.name}")
    repaired = primary.model_copy(update={
        "roots": _drop_leading_token(primary.roots, rule),
        "melt": _drop_leading_token(primary.melt, rule),
        "ends": _drop_leading_token(primary.ends, rule),
        "processing": [PRIMARY_ADJUSTED_NOTE] + list(primary.processing),
    })
    return result.model_copy(update={"scenarios": [repaired] + list(result.scenarios[1:])})


def collapse(result: AnalysisResult, category: str) -> AnalysisResult:
    """Demi and semi answer with exactly one plan: the Primary one, else the first."""
    if category == "permanent":
        return result
    if not result.scenarios:
        return result
    primary = next((sc for sc in result.scenarios if "primary" in sc.title.lower()), result.scenarios[0])
    return result.model_copy(update={"scenarios": [primary]})
