# formula_guru/entities.py
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

Category = Literal["permanent", "demi", "semi"]
CATEGORIES: tuple[str, ...] = ("permanent", "demi", "semi")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value).strip()


class FormulaStep(BaseModel):
    formula: str = ""
    timing: str = ""
    note: Optional[str] = None

    @field_validator("formula", "timing", mode="before")
    @classmethod
    def _coerce_text(cls, v):
        return _as_text(v)

    @field_validator("note", mode="before")
    @classmethod
    def _coerce_note(cls, v):
        if v is None:
            return None
        return _as_text(v) or None

    def is_not_applicable(self) -> bool:
        return self.formula.upper().startswith("N/A")


class Scenario(BaseModel):
    title: str = ""
    condition: Optional[str] = None
    target_level: Optional[int] = None
    roots: Optional[FormulaStep] = None
    melt: Optional[FormulaStep] = None
    ends: FormulaStep = Field(default_factory=FormulaStep)
    processing: List[str] = Field(default_factory=list)
    confidence: float = 0.0
    na: Optional[bool] = None
    note: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _coerce_title(cls, v):
        return _as_text(v)

    @field_validator("condition", mode="before")
    @classmethod
    def _coerce_condition(cls, v):
        if v is None:
            return None
        return _as_text(v) or None

    @field_validator("target_level", mode="before")
    @classmethod
    def _coerce_level(cls, v):
        if isinstance(v, bool):
            return None
        if isinstance(v, int):
            return v
        if isinstance(v, float) and v.is_integer():
            return int(v)
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        return None

    @field_validator("roots", "melt", mode="before")
    @classmethod
    def _coerce_optional_step(cls, v):
        if isinstance(v, (dict, FormulaStep)):
            return v
        return None

    @field_validator("ends", mode="before")
    @classmethod
    def _coerce_ends(cls, v):
        if isinstance(v, (dict, FormulaStep)):
            return v
        return FormulaStep()

    @field_validator("processing", mode="before")
    @classmethod
    def _coerce_processing(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v.strip()] if v.strip() else []
        if isinstance(v, (list, tuple)):
            return [_as_text(x) for x in v if _as_text(x)]
        return []

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, v):
        try:
            value = float(v)
        except (TypeError, ValueError):
            return 0.0
        if value != value:  # NaN
            return 0.0
        return min(1.0, max(0.0, value))

    @field_validator("na", mode="before")
    @classmethod
    def _coerce_na(cls, v):
        if v is None:
            return None
        return bool(v)

    def steps(self) -> list[tuple[str, FormulaStep]]:
        """Present steps in display order (roots, melt, ends)."""
        out = []
        for name in ("roots", "melt", "ends"):
            step = getattr(self, name)
            if step is not None:
                out.append((name, step))
        return out


class AnalysisResult(BaseModel):
    analysis: str = ""
    scenarios: List[Scenario] = Field(default_factory=list)

    @field_validator("analysis", mode="before")
    @classmethod
    def _coerce_analysis(cls, v):
        return _as_text(v)

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_scenarios(cls, data):
        if not isinstance(data, dict):
            return data
        raw = data.get("scenarios")
        if not isinstance(raw, list):
            return {**data, "scenarios": []}
        scenarios = []
        for sc in raw:
            if isinstance(sc, Scenario):
                scenarios.append(sc)
            elif isinstance(sc, dict):
                sc = dict(sc)
                if not _as_text(sc.get("title")):
                    sc["title"] = f"Scenario {len(scenarios) + 1}"
                scenarios.append(sc)
        return {**data, "scenarios": scenarios}

    def to_payload(self) -> dict:
        """JSON-ready dict; `na`/`note` only appear on scenarios that carry them."""
        payload = self.model_dump()
        for sc in payload["scenarios"]:
            if sc.get("na") is None:
                sc.pop("na", None)
                if sc.get("note") is None:
                    sc.pop("note", None)
        return payload


class ValidationOutcome(BaseModel):
    valid: bool
    reason: Optional[str] = None
