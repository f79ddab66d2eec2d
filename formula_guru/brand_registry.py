# formula_guru/brand_registry.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import commentjson

from formula_guru.entities import CATEGORIES
from formula_guru.errors import UnknownBrandError
from formula_guru.settings import BRAND_RULES_PATH

logger = logging.getLogger("formula_guru")

RTU = "RTU"
SIMPLE_RATIO_RE = re.compile(r"^\d+(?:\.\d+)?:\d+(?:\.\d+)?$")


@dataclass(frozen=True)
class ToneGuard:
    """Fixed texts used when a deposit-only toner line cannot serve the photo."""
    timing: str
    confidence: float
    jet_black_formula: str
    jet_black_processing: Tuple[str, ...]
    vivid_red_formula: str
    vivid_red_processing: Tuple[str, ...]
    warm_blonde_formula: str


@dataclass(frozen=True)
class BrandRule:
    name: str
    category: str
    ratio: str
    developer: str
    notes: str = ""
    patterns: Tuple[re.Pattern, ...] = ()
    shades: Tuple[str, ...] = ()
    shade_hint: str = ""
    guard: Optional[ToneGuard] = None

    @property
    def is_rtu(self) -> bool:
        return self.ratio.strip().upper() == RTU

    @property
    def simple_ratio(self) -> Optional[str]:
        """The ratio when it is a plain 'a:b' / 'a:b.c' value, else None."""
        r = self.ratio.strip()
        return r if SIMPLE_RATIO_RE.match(r) else None

    @property
    def uses_allow_list(self) -> bool:
        return bool(self.shades)


class BrandRegistry:
    """
    Immutable brand catalog: mixing rules, shade vocabularies and the
    per-category brand lists used to normalize user input.

    Build it once (see get_default_registry) and pass it to every component.
    """

    REQUIRED_KEYS = ("categories", "default_brands", "brands", "neutral_black_brands")

    def __init__(
        self,
        rules: Dict[str, BrandRule],
        default_brands: Dict[str, str],
        neutral_black_brands: Tuple[str, ...] = (),
    ):
        self._rules: Mapping[str, BrandRule] = MappingProxyType(dict(rules))
        self._by_category: Mapping[str, Tuple[str, ...]] = MappingProxyType({
            cat: tuple(name for name, rule in self._rules.items() if rule.category == cat)
            for cat in CATEGORIES
        })
        self._lower_index: Mapping[str, str] = MappingProxyType(
            {name.lower(): name for name in self._rules}
        )
        self._default_brands: Mapping[str, str] = MappingProxyType(dict(default_brands))
        self.neutral_black_brands: frozenset[str] = frozenset(neutral_black_brands)

    # -----------------------
    # Construction
    # -----------------------

    @classmethod
    def load(cls, path: str | Path | None = None) -> "BrandRegistry":
        """
        Load the catalog from a JSON-with-comments file.
        Fails fast if the file or required keys are missing.
        """
        cfg_path = Path(path or BRAND_RULES_PATH)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Brand rules file not found at '{cfg_path}'.")

        with cfg_path.open("r", encoding="utf-8") as f:
            data = commentjson.load(f)

        registry = cls.from_config(data)
        logger.info(f"[BRANDS] Loaded {len(registry._rules)} brand rules from {cfg_path}")
        return registry

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "BrandRegistry":
        if not isinstance(data, dict):
            raise ValueError("Brand rules config must be an object")
        for key in cls.REQUIRED_KEYS:
            if key not in data:
                raise ValueError(f"Brand rules config missing key: {key}")

        categories = list(data["categories"])
        unknown = [c for c in categories if c not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown categories in brand rules config: {unknown}")

        brands = data["brands"]
        if not isinstance(brands, dict) or not brands:
            raise ValueError("Brand rules config 'brands' must be a non-empty object")

        rules: Dict[str, BrandRule] = {}
        for name, raw in brands.items():
            rules[name] = cls._parse_rule(name, raw, categories)

        default_brands = dict(data["default_brands"])
        for cat in categories:
            default = default_brands.get(cat)
            if default not in rules or rules[default].category != cat:
                raise ValueError(f"Default brand for '{cat}' is missing or not a {cat} brand: {default}")

        neutral_black = tuple(data["neutral_black_brands"] or ())
        missing = [b for b in neutral_black if b not in rules]
        if missing:
            raise ValueError(f"neutral_black_brands references unknown brands: {missing}")

        return cls(rules, default_brands, neutral_black)

    @staticmethod
    def _parse_rule(name: str, raw: Dict[str, Any], categories: list) -> BrandRule:
        if not isinstance(raw, dict):
            raise ValueError(f"Brand rule for {name} must be an object")
        for key in ("category", "ratio", "developer"):
            if not raw.get(key):
                raise ValueError(f"Brand rule for {name} missing '{key}'")
        if raw["category"] not in categories:
            raise ValueError(f"Brand rule for {name} has unknown category {raw['category']!r}")
        if not raw.get("patterns") and not raw.get("shades"):
            raise ValueError(f"Brand rule for {name} needs 'patterns' or 'shades'")

        try:
            patterns = tuple(re.compile(p, re.IGNORECASE) for p in raw.get("patterns") or ())
        except re.error as e:
            raise ValueError(f"Brand rule for {name} has an invalid shade pattern: {e}") from e

        guard = None
        g = raw.get("guard")
        if g:
            try:
                guard = ToneGuard(
                    timing=g["timing"],
                    confidence=float(g.get("confidence", 0.85)),
                    jet_black_formula=g["jet_black_formula"],
                    jet_black_processing=tuple(g.get("jet_black_processing") or ()),
                    vivid_red_formula=g["vivid_red_formula"],
                    vivid_red_processing=tuple(g.get("vivid_red_processing") or ()),
                    warm_blonde_formula=g["warm_blonde_formula"],
                )
            except KeyError as e:
                raise ValueError(f"Brand rule for {name} has an incomplete guard: missing {e}") from e

        return BrandRule(
            name=name,
            category=raw["category"],
            ratio=str(raw["ratio"]).strip(),
            developer=str(raw["developer"]).strip(),
            notes=raw.get("notes") or "",
            patterns=patterns,
            shades=tuple(str(s) for s in raw.get("shades") or ()),
            shade_hint=raw.get("shade_hint") or "",
            guard=guard,
        )

    # -----------------------
    # Lookups
    # -----------------------

    def lookup(self, brand_name: str) -> BrandRule:
        rule = self._rules.get(brand_name)
        if rule is None:
            raise UnknownBrandError(brand_name)
        return rule

    def brands_for(self, category: str) -> Tuple[str, ...]:
        return self._by_category.get(category, ())

    def catalog(self) -> Dict[str, list[str]]:
        return {cat: list(self.brands_for(cat)) for cat in ("demi", "permanent", "semi")}

    def is_neutral_black_brand(self, brand_name: str) -> bool:
        return brand_name in self.neutral_black_brands

    @staticmethod
    def normalize_category(raw: Any) -> str:
        s = str(raw or "").strip().lower()
        return s if s in CATEGORIES else "demi"

    def normalize_brand_name(self, category: str, raw_input: Any) -> str:
        """
        Map free-text brand input to a catalog name of the category.
        Never fails: exact (case-insensitive) match, then the first brand whose
        first or last word appears in the input, then the category default.
        """
        category = self.normalize_category(category)
        pool = self.brands_for(category)
        s = str(raw_input or "").strip().lower()

        exact = self._lower_index.get(s)
        if exact in pool:
            return exact

        if s:
            for name in pool:
                words = name.lower().split()
                head, tail = words[0], words[-1]
                if head in s or tail in s:
                    return name

        return self._default_brands[category]


@lru_cache(maxsize=1)
def get_default_registry() -> BrandRegistry:
    return BrandRegistry.load()
