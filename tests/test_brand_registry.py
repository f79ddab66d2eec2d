import pytest

from formula_guru.brand_registry import BrandRegistry
from formula_guru.errors import UnknownBrandError


def test_default_catalog_loads_every_category(registry):
    catalog = registry.catalog()
    assert list(catalog) == ["demi", "permanent", "semi"]
    assert "Redken Shades EQ" in catalog["demi"]
    assert "Redken Color Gels Lacquers" in catalog["permanent"]
    assert "Wella Color Fresh" in catalog["semi"]


def test_lookup_returns_rule(registry):
    rule = registry.lookup("Redken Shades EQ")
    assert rule.ratio == "1:1"
    assert rule.simple_ratio == "1:1"
    assert not rule.is_rtu
    assert not rule.uses_allow_list


def test_lookup_unknown_brand_raises(registry):
    with pytest.raises(UnknownBrandError):
        registry.lookup("Imaginary Gloss")


def test_semi_lines_are_ready_to_use(registry):
    for name in registry.brands_for("semi"):
        rule = registry.lookup(name)
        assert rule.is_rtu
        assert rule.simple_ratio is None


def test_permanent_lines_use_allow_lists(registry):
    for name in registry.brands_for("permanent"):
        assert registry.lookup(name).uses_allow_list


@pytest.mark.parametrize("raw, expected", [
    ("permanent", "permanent"),
    (" SEMI ", "semi"),
    ("demi", "demi"),
    ("", "demi"),
    (None, "demi"),
    ("gloss", "demi"),
])
def test_normalize_category(raw, expected):
    assert BrandRegistry.normalize_category(raw) == expected


@pytest.mark.parametrize("category, raw, expected", [
    ("demi", "redken shades eq", "Redken Shades EQ"),
    ("demi", "REDKEN SHADES EQ", "Redken Shades EQ"),
    ("demi", "pravana", "Pravana ChromaSilk Express Tones"),
    ("demi", "wella", "Wella Color Touch"),
    ("semi", "chroma id", "Schwarzkopf Chroma ID"),
    ("demi", "", "Redken Shades EQ"),
    ("permanent", "no such brand", "Redken Color Gels Lacquers"),
    ("semi", None, "Wella Color Fresh"),
    ("bogus", "wella", "Wella Color Touch"),
])
def test_normalize_brand_name(registry, category, raw, expected):
    assert registry.normalize_brand_name(category, raw) == expected


def test_normalized_brand_always_belongs_to_category(registry):
    for category in ("permanent", "demi", "semi"):
        for raw in ("", "redken", "wella", "pravana", "matrix", "xyz"):
            name = registry.normalize_brand_name(category, raw)
            assert registry.lookup(name).category == category


def test_exact_name_from_another_category_falls_back(registry):
    # an exact permanent name typed under demi still resolves inside the demi pool
    name = registry.normalize_brand_name("demi", "Redken Color Gels Lacquers")
    assert registry.lookup(name).category == "demi"


def test_neutral_black_brands(registry):
    assert registry.is_neutral_black_brand("Redken Shades EQ")
    assert not registry.is_neutral_black_brand("Pravana ChromaSilk Express Tones")


def test_express_tones_carries_tone_guard(registry):
    guard = registry.lookup("Pravana ChromaSilk Express Tones").guard
    assert guard is not None
    assert guard.timing == "Process 5 minutes only; watch visually."
    assert guard.jet_black_formula.startswith("N/A")


def test_substitute_registry(small_registry):
    assert small_registry.catalog() == {
        "demi": ["Test Gloss"],
        "permanent": ["Test Permanent"],
        "semi": ["Test Direct"],
    }
    assert small_registry.normalize_brand_name("demi", "anything") == "Test Gloss"


def test_load_missing_file_fails_fast(tmp_path):
    with pytest.raises(FileNotFoundError):
        BrandRegistry.load(tmp_path / "missing.jsonc")


def test_load_reads_comments(tmp_path):
    path = tmp_path / "rules.jsonc"
    path.write_text(
        """
        // minimal catalog
        {
            "categories": ["demi"],
            "default_brands": {"demi": "Gloss"},
            "neutral_black_brands": [],
            "brands": {
                // the only brand
                "Gloss": {"category": "demi", "ratio": "1:1", "developer": "Gloss Activator", "patterns": ["G\\\\d"]}
            }
        }
        """,
        encoding="utf-8",
    )
    reg = BrandRegistry.load(path)
    assert reg.lookup("Gloss").patterns[0].fullmatch("g5")


def _config(**brand_overrides):
    brand = {"category": "demi", "ratio": "1:1", "developer": "Dev", "patterns": ["A\\d"]}
    brand.update(brand_overrides)
    return {
        "categories": ["demi"],
        "default_brands": {"demi": "Gloss"},
        "neutral_black_brands": [],
        "brands": {"Gloss": brand},
    }


def test_missing_top_level_key_is_rejected():
    cfg = _config()
    del cfg["default_brands"]
    with pytest.raises(ValueError, match="default_brands"):
        BrandRegistry.from_config(cfg)


def test_invalid_pattern_is_rejected():
    with pytest.raises(ValueError, match="invalid shade pattern"):
        BrandRegistry.from_config(_config(patterns=["(unclosed"]))


def test_brand_without_vocabulary_is_rejected():
    with pytest.raises(ValueError, match="patterns"):
        BrandRegistry.from_config(_config(patterns=[]))


def test_default_brand_must_exist():
    cfg = _config()
    cfg["default_brands"] = {"demi": "Other"}
    with pytest.raises(ValueError, match="Default brand"):
        BrandRegistry.from_config(cfg)


def test_registry_is_read_only(registry):
    with pytest.raises(TypeError):
        registry._rules["New"] = None
