# formula_guru/shade_validator.py
"""
Shade Validator + acceptance gate.

step_valid() answers "are these real codes of this brand?" using either the
brand's regex family or its explicit allow-list. check_result() is the gate a
generated result must pass before it is returned: every present, non-"N/A"
step needs accepted codes and the official ratio + developer (or, for RTU
lines, neither).
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from formula_guru.brand_registry import BrandRule
from formula_guru.entities import AnalysisResult, FormulaStep, Scenario, ValidationOutcome
from formula_guru.errors import (
    FormulaValidationError,
    RatioOrDeveloperMissingError,
    ShadeValidationError,
    UpstreamFormatError,
)
from formula_guru.formula_normalizer import (
    RATIO_TOKEN_RE,
    WITH_RE,
    canonical_developer_name,
    is_not_applicable,
)

logger = logging.getLogger("formula_guru")

_PAREN_RE = re.compile(r"\([^)]*\)")
_WITH_WORD_RE = re.compile(r"\bwith\b", re.IGNORECASE)


def unrecognized_shade_reason(brand: str) -> str:
    return f"Unrecognized shade(s) for {brand}"


# -----------------------
# Code extraction
# -----------------------

def extract_codes(formula: Optional[str]) -> List[str]:
    """
    Candidate shade codes of a formula: parenthesised parts removed, cut at the
    first " with ", split on "+", first word of every segment.

        '07NB + 08GI (1:1) with Shades EQ Processing Solution' -> ['07NB', '08GI']
    """
    text = _PAREN_RE.sub(" ", formula or "")
    m = WITH_RE.search(text)
    if m:
        text = text[:m.start()]
    codes = []
    for segment in text.split("+"):
        words = segment.split()
        if not words:
            continue
        # trailing punctuation only, so "6.4" keeps its inner dot
        code = words[0].rstrip(",;.")
        if code:
            codes.append(code)
    return codes


def code_allowed(code: str, rule: BrandRule) -> bool:
    if rule.uses_allow_list:
        return code.lower() in {s.lower() for s in rule.shades}
    return any(p.fullmatch(code) for p in rule.patterns)


def unknown_codes(step: Optional[FormulaStep], rule: BrandRule) -> List[str]:
    if step is None or not step.formula or step.is_not_applicable():
        return []
    return [c for c in extract_codes(step.formula) if not code_allowed(c, rule)]


def step_valid(step: Optional[FormulaStep], rule: BrandRule) -> bool:
    if step is None or not step.formula or step.is_not_applicable():
        return True
    codes = extract_codes(step.formula)
    if not codes:
        return False
    return all(code_allowed(c, rule) for c in codes)


def scenario_valid(scenario: Scenario, rule: BrandRule) -> bool:
    return all(step_valid(step, rule) for _, step in scenario.steps())


# -----------------------
# Ratio / developer gate
# -----------------------

def _canonical_ratio_re(ratio: str) -> re.Pattern:
    a, b = ratio.split(":", 1)
    return re.compile(rf"(?<![\d.]){re.escape(a)}\s*:\s*{re.escape(b)}(?!\d|\.\d)")


def check_mixing(formula: str, rule: BrandRule) -> None:
    """Raise RatioOrDeveloperMissingError when the mixing rule is not honoured."""
    if not formula or is_not_applicable(formula):
        return

    if rule.is_rtu:
        if RATIO_TOKEN_RE.search(formula) or _WITH_WORD_RE.search(formula):
            raise RatioOrDeveloperMissingError(
                f"{rule.name} is ready-to-use; formulas must not include a mixing ratio or developer"
            )
        return

    ratio = rule.simple_ratio
    if ratio and not _canonical_ratio_re(ratio).search(formula):
        raise RatioOrDeveloperMissingError(f"Missing mixing ratio {ratio} for {rule.name}")

    developer = canonical_developer_name(rule)
    if developer and developer.lower() not in formula.lower():
        raise RatioOrDeveloperMissingError(f"Missing developer {developer} for {rule.name}")


def check_result(result: AnalysisResult, rule: BrandRule) -> None:
    """
    Raise the first FormulaValidationError found in the result.
    Scenarios already marked not-applicable are not judged; at least one
    other scenario must carry a formula.
    """
    usable = [
        sc for sc in result.scenarios
        if not sc.na and any(step.formula for _, step in sc.steps())
    ]
    if not usable:
        raise UpstreamFormatError(f"No usable formula returned for {rule.name}")

    for sc in usable:
        if sc.na:
            continue
        for step_name, step in sc.steps():
            if not step.formula or step.is_not_applicable():
                continue
            bad = unknown_codes(step, rule)
            if bad or not extract_codes(step.formula):
                logger.info(f"[VALIDATE] {rule.name} '{sc.title}' {step_name}: unrecognized {bad or step.formula!r}")
                raise ShadeValidationError(unrecognized_shade_reason(rule.name))
            check_mixing(step.formula, rule)


def validate_result(result: AnalysisResult, rule: BrandRule) -> ValidationOutcome:
    try:
        check_result(result, rule)
    except FormulaValidationError as e:
        return ValidationOutcome(valid=False, reason=e.reason)
    return ValidationOutcome(valid=True)
