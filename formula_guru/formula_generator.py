# formula_guru/formula_generator.py

import logging
from typing import Any, Optional

from formula_guru.base_utils import BaseUtils
from formula_guru.brand_registry import BrandRegistry, BrandRule
from formula_guru.entities import AnalysisResult, FormulaStep, Scenario
from formula_guru.errors import FormulaValidationError, UpstreamFormatError
from formula_guru.formula_normalizer import canonical_developer_name, enforce_result
from formula_guru.formula_prompts import (
    BRAND_RULE_LINE,
    DEMI_PROMPT,
    HEADER,
    MIXED_FORMULA_FORMAT,
    PERMANENT_PROMPT,
    RATIO_GUARD,
    RTU_FORMULA_FORMAT,
    RTU_GUARD,
    SEMI_PROMPT,
    SHADE_VOCABULARY,
    SHARED_JSON_SHAPE,
    STRICT_RETRY_CLAUSE,
    USER_PROMPT,
)
from formula_guru.scenario_validator import collapse, mark_alternates, sanitize_primary
from formula_guru.shade_validator import check_result, unrecognized_shade_reason
from formula_guru.suitability_guards import apply_neutral_black, apply_tone_guard

logger = logging.getLogger("formula_guru")

CATEGORY_PROMPTS = {
    "permanent": PERMANENT_PROMPT,
    "semi": SEMI_PROMPT,
    "demi": DEMI_PROMPT,
}


class FormulaGenerator(BaseUtils):
    """
    Turns one photo into a brand-compliant AnalysisResult.

    The collaborator is anything with
        analyze(system_prompt, user_text, image_data_url) -> str
    (VisionLlmClient in production, scripted stubs in tests).

    Flow per request: attempt 0 -> validate -> accepted, or attempt 1 with a
    stricter prompt -> validate -> accepted, or the fixed fallback. The
    collaborator is called at most MAX_ATTEMPTS times; only its transport
    errors propagate.
    """

    MAX_ATTEMPTS = 2

    def __init__(self, registry: BrandRegistry, collaborator: Any):
        self.registry = registry
        self.collaborator = collaborator

    # -----------------------
    # Prompts
    # -----------------------

    def _shade_vocabulary(self, rule: BrandRule) -> str:
        if rule.uses_allow_list:
            return ", ".join(rule.shades)
        return rule.shade_hint or "official codes as printed on the tube"

    def build_system_prompt(self, category: str, rule: BrandRule, strict_reason: Optional[str] = None) -> str:
        brand_rule_line = self.unsafe_string_format(
            BRAND_RULE_LINE, BRAND=rule.name, RATIO=rule.ratio, DEVELOPER=rule.developer, NOTES=rule.notes
        )
        if rule.is_rtu:
            mixing_guard, formula_format = RTU_GUARD, RTU_FORMULA_FORMAT
        else:
            mixing_guard = RATIO_GUARD
            formula_format = self.unsafe_string_format(
                MIXED_FORMULA_FORMAT,
                RATIO=rule.simple_ratio or rule.ratio,
                DEVELOPER=canonical_developer_name(rule) or rule.developer,
            )
        prompt = self.unsafe_string_format(
            CATEGORY_PROMPTS.get(category, DEMI_PROMPT),
            HEADER=self.unsafe_string_format(HEADER, BRAND=rule.name),
            RATIO_GUARD=self.unsafe_string_format(mixing_guard, BRAND=rule.name, BRAND_RULE_LINE=brand_rule_line),
            SHADE_VOCABULARY=self.unsafe_string_format(
                SHADE_VOCABULARY,
                BRAND=rule.name,
                SHADES=self._shade_vocabulary(rule),
                FORMULA_FORMAT=formula_format,
            ),
            JSON_SHAPE=SHARED_JSON_SHAPE,
            BRAND=rule.name,
            print_unused_keys_report=False,
        )
        if strict_reason:
            prompt += "\n\n" + self.unsafe_string_format(STRICT_RETRY_CLAUSE, BRAND=rule.name, REASON=strict_reason)
        return prompt

    def build_user_prompt(self, category: str, brand: str) -> str:
        return self.unsafe_string_format(USER_PROMPT, CATEGORY=category, BRAND=brand)

    # -----------------------
    # Pipeline
    # -----------------------

    def parse_response(self, raw: Any) -> AnalysisResult:
        """Collaborator text -> AnalysisResult; raises UpstreamFormatError."""
        data = raw if isinstance(raw, dict) else self.load_fault_tolerant_json(str(raw or ""))
        try:
            return AnalysisResult.model_validate(data)
        except ValueError as e:
            raise UpstreamFormatError("Analysis model response does not match the schema") from e

    def post_process(self, result: AnalysisResult, category: str, rule: BrandRule) -> AnalysisResult:
        result = enforce_result(result, rule)
        result = apply_tone_guard(result, rule)
        result = apply_neutral_black(result, rule, self.registry)
        return mark_alternates(result, category, rule)

    def fallback_result(self, rule: BrandRule, reason: Optional[str]) -> AnalysisResult:
        reason = reason or unrecognized_shade_reason(rule.name)
        return AnalysisResult(
            analysis=reason,
            scenarios=[Scenario(
                title="Primary plan",
                condition=None,
                target_level=None,
                roots=None,
                melt=None,
                ends=FormulaStep(formula=f"N/A — {reason}.", timing="", note=None),
                processing=[reason],
                confidence=0.0,
            )],
        )

    def generate(self, category: str, brand: str, image_data_url: str) -> AnalysisResult:
        category = self.registry.normalize_category(category)
        brand = self.registry.normalize_brand_name(category, brand)
        rule = self.registry.lookup(brand)
        user_text = self.build_user_prompt(category, brand)

        reason: Optional[str] = None
        for attempt in range(self.MAX_ATTEMPTS):
            system_prompt = self.build_system_prompt(category, rule, strict_reason=reason if attempt else None)
            logger.info(f"[GENERATE] attempt={attempt} category={category} brand={brand}")

            raw = self.collaborator.analyze(system_prompt, user_text, image_data_url)

            try:
                result = self.parse_response(raw)
            except UpstreamFormatError as e:
                logger.warning(f"[GENERATE] attempt={attempt} unparseable response: {e.reason}")
                result = AnalysisResult()

            result = self.post_process(result, category, rule)

            try:
                check_result(result, rule)
            except FormulaValidationError as e:
                reason = e.reason
                logger.info(f"[GENERATE] attempt={attempt} rejected: {reason}")
                continue

            result = sanitize_primary(result, rule)
            return collapse(result, category)

        logger.info(f"[GENERATE] returning fallback for {brand}: {reason}")
        return self.fallback_result(rule, reason)
