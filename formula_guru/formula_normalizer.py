# formula_guru/formula_normalizer.py
"""
Formula Normalizer

Brings a formula string in line with the manufacturer mixing rule of its
brand: the canonical developer name is injected into the "with ..." clause
and the official ratio is added as "(a:b)" in front of it.

A formula is handled as a small structured value (FormulaText): the shade
part and the developer clause, split on the first " with ". Edits are made
on the parts and the text is rendered back only at the end, so rendering an
untouched formula gives back exactly the input and a second pass is a no-op.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

from formula_guru.brand_registry import BrandRule
from formula_guru.entities import AnalysisResult, FormulaStep, Scenario

WITH_RE = re.compile(r" with ", re.IGNORECASE)
RATIO_TOKEN_RE = re.compile(r"\d+(?:\.\d+)?\s*:\s*\d+(?:\.\d+)?")

_VOLUME_RE = re.compile(r"\b\d+(?:\s*/\s*\d+)*\s*vol(?:ume)?\b", re.IGNORECASE)
_PERCENT_RE = re.compile(r"\d+(?:\.\d+)?\s*%(?:\s*/\s*\d+(?:\.\d+)?\s*%)*")
_ALTERNATIVE_RE = re.compile(r"\s*/\s*|\s+(?:or|OR)\s+")
_PAREN_RE = re.compile(r"\([^)]*\)")
_SPACES_RE = re.compile(r"\s{2,}")


def is_not_applicable(formula: Optional[str]) -> bool:
    return (formula or "").strip().upper().startswith("N/A")


def canonical_developer_name(rule: BrandRule) -> Optional[str]:
    """
    Display name of the developer/activator without strengths or alternatives,
    e.g. 'Welloxon Perfect 3%/6%/9%/12%' -> 'Welloxon Perfect'.
    None for RTU lines.
    """
    dev = (rule.developer or "").strip()
    if not dev or dev.lower() == "none":
        return None
    # strength lists contain '/', drop them before splitting on alternatives
    dev = _VOLUME_RE.sub("", dev)
    dev = _PERCENT_RE.sub("", dev)
    first = _ALTERNATIVE_RE.split(dev)[0]
    first = _PAREN_RE.sub("", first)
    first = _SPACES_RE.sub(" ", first).strip()
    return first or None


@dataclass(frozen=True)
class FormulaText:
    head: str
    joiner: str = ""
    clause: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "FormulaText":
        m = WITH_RE.search(text)
        if not m:
            return cls(head=text)
        return cls(head=text[:m.start()], joiner=m.group(0), clause=text[m.end():])

    def render(self) -> str:
        if self.clause is None:
            return self.head
        return f"{self.head}{self.joiner}{self.clause}"

    def with_developer(self, developer: str) -> "FormulaText":
        if self.clause is None:
            return replace(self, joiner=" with ", clause=developer)
        return replace(self, clause=f"{developer} {self.clause}".strip())

    def with_ratio(self, ratio: str) -> "FormulaText":
        return replace(self, head=f"{self.head} ({ratio})".strip())


def enforce(formula: Optional[str], rule: BrandRule) -> Optional[str]:
    """
    Inject the canonical developer and the official ratio when absent.
    Empty and "N/A ..." formulas are returned untouched.
    """
    if formula is None or not formula.strip() or is_not_applicable(formula):
        return formula

    out = formula.strip()
    parts = FormulaText.parse(out)

    developer = canonical_developer_name(rule)
    if developer and developer.lower() not in out.lower():
        parts = parts.with_developer(developer)

    ratio = rule.simple_ratio
    if ratio and not RATIO_TOKEN_RE.search(parts.render()):
        parts = parts.with_ratio(ratio)

    return parts.render().strip()


def enforce_step(step: Optional[FormulaStep], rule: BrandRule) -> Optional[FormulaStep]:
    if step is None or not step.formula:
        return step
    return step.model_copy(update={"formula": enforce(step.formula, rule)})


def enforce_scenario(scenario: Scenario, rule: BrandRule) -> Scenario:
    return scenario.model_copy(update={
        "roots": enforce_step(scenario.roots, rule),
        "melt": enforce_step(scenario.melt, rule),
        "ends": enforce_step(scenario.ends, rule),
    })


def enforce_result(result: AnalysisResult, rule: BrandRule) -> AnalysisResult:
    return result.model_copy(update={
        "scenarios": [enforce_scenario(sc, rule) for sc in result.scenarios],
    })
