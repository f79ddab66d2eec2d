import json

import pytest

from formula_guru.brand_registry import BrandRegistry, get_default_registry


class ScriptedCollaborator:
    """Stands in for the vision model: returns one scripted response per call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def analyze(self, system_prompt, user_text, image_data_url):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_text": user_text,
            "image_data_url": image_data_url,
        })
        item = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, str):
            return item
        return json.dumps(item)


def one_plan(formula, analysis="Medium brown hair with brassy mid-lengths.", title="Primary plan", **extra):
    scenario = {
        "title": title,
        "condition": None,
        "target_level": None,
        "roots": None,
        "melt": None,
        "ends": {"formula": formula, "timing": "20 minutes", "note": None},
        "processing": ["Apply to towel-dried hair."],
        "confidence": 0.8,
    }
    scenario.update(extra)
    return {"analysis": analysis, "scenarios": [scenario]}


@pytest.fixture(scope="session")
def registry():
    return get_default_registry()


@pytest.fixture
def small_registry():
    return BrandRegistry.from_config({
        "categories": ["permanent", "demi", "semi"],
        "default_brands": {"permanent": "Test Permanent", "demi": "Test Gloss", "semi": "Test Direct"},
        "neutral_black_brands": ["Test Gloss"],
        "brands": {
            "Test Permanent": {
                "category": "permanent",
                "ratio": "1:1",
                "developer": "Test Cream Developer 20 vol",
                "shades": ["5N", "6N", "7N"],
            },
            "Test Gloss": {
                "category": "demi",
                "ratio": "1:2",
                "developer": "Test Activator 5%",
                "patterns": ["T\\d{1,2}[A-Z]?", "1[AN]"],
            },
            "Test Direct": {
                "category": "semi",
                "ratio": "RTU",
                "developer": "None",
                "patterns": ["Clear|Teal"],
            },
        },
    })
