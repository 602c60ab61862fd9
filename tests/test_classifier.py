"""
Unit tests for the classification engine.

The engine must always return a complete Classification, whatever the
model does.
"""

import pytest
from src.core.errors import UpstreamServiceError
from src.models.invoice import CATEGORIES, ExtractedData, LineItem
from src.services.classifier import (
    ClassificationEngine,
    build_prompt,
    parse_classification,
    strip_code_fences,
)
from src.services.llm import SamplingConfig
from tests.conftest import ScriptedGenerator


@pytest.fixture
def invoice():
    return ExtractedData(
        vendor="Staples",
        invoice_number="INV-9",
        total_amount=1250.5,
        currency="USD",
        line_items=[
            LineItem(description="Printer paper", quantity=10, amount=45.0),
            LineItem(description="Stapler", amount=0.0),
        ],
    )


class TestBuildPrompt:
    def test_contains_taxonomy_and_details(self, invoice):
        prompt = build_prompt(invoice)
        for category in CATEGORIES:
            assert f"- {category}" in prompt
        assert "Vendor: Staples" in prompt
        assert "1,250.50 USD" in prompt
        assert "JSON" in prompt

    def test_line_item_summary(self, invoice):
        prompt = build_prompt(invoice)
        assert "- Printer paper (Qty: 10) - 45.00 USD" in prompt
        # Zero amounts are left off the bullet
        assert "- Stapler\n" in prompt

    def test_no_line_items_section_when_absent(self):
        prompt = build_prompt(ExtractedData(vendor="Acme Corp", total_amount=10))
        assert "Line Items" not in prompt


class TestParseClassification:
    def test_plain_json(self):
        outcome = parse_classification('{"category": "Utilities", "confidence": 0.8, "reasoning": "Power bill"}')
        assert outcome.ok
        assert outcome.classification.category == "Utilities"
        assert outcome.classification.confidence == 0.8
        assert outcome.classification.reasoning == "Power bill"

    def test_fenced_json_with_mixed_case_keys(self):
        raw = '```json\n{"Category": "IT Services & Software", "CONFIDENCE": 0.9, "Reasoning": "SaaS"}\n```'
        outcome = parse_classification(raw)
        assert outcome.ok
        assert outcome.classification.category == "IT Services & Software"

    def test_bare_fence(self):
        raw = '```\n{"category": "office supplies", "confidence": 0.7}\n```'
        outcome = parse_classification(raw)
        assert outcome.classification.category == "Office Supplies"
        assert outcome.classification.reasoning is None

    def test_confidence_is_clamped(self):
        outcome = parse_classification('{"category": "Utilities", "confidence": 7}')
        assert outcome.classification.confidence == 1.0

    def test_unknown_category_becomes_other(self):
        outcome = parse_classification('{"category": "Snacks", "confidence": 0.6, "reasoning": "Chips"}')
        assert outcome.classification.category == "Other"
        assert "Snacks" in outcome.classification.reasoning

    @pytest.mark.parametrize("raw", [
        None,
        "",
        "   ",
        "I think this is Utilities.",
        "null",
        "[1, 2]",
        '{"confidence": 0.9}',
        '{"category": "Utilities"}',
        '{"category": "Utilities", "confidence": "high"}',
    ])
    def test_failures_are_outcomes_not_exceptions(self, raw):
        outcome = parse_classification(raw)
        assert not outcome.ok
        assert outcome.failure


def test_strip_code_fences_leaves_plain_text():
    assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'


class TestClassificationEngine:
    def test_returns_model_classification(self, classifier, generator, invoice):
        result = classifier.classify(invoice)
        assert result.category == "Office Supplies"
        assert result.confidence == pytest.approx(0.91)
        assert "Staples" in generator.prompts[0]

    @pytest.mark.parametrize("response", ["not json at all", "", "```json\n```"])
    def test_bad_response_falls_back_to_other(self, invoice, response):
        engine = ClassificationEngine(ScriptedGenerator(response=response))
        result = engine.classify(invoice)
        assert result.category == "Other"
        assert result.confidence == 0.5
        assert result.reasoning

    def test_none_response_falls_back(self, invoice):
        result = ClassificationEngine(ScriptedGenerator(response=None)).classify(invoice)
        assert result.category == "Other"

    @pytest.mark.parametrize("error", [
        UpstreamServiceError("Text generation failed", details="429 Too Many Requests"),
        RuntimeError("connection reset"),
        TimeoutError("timed out"),
    ])
    def test_model_errors_never_escape(self, invoice, error):
        result = ClassificationEngine(ScriptedGenerator(error=error)).classify(invoice)
        assert result.category == "Other"
        assert result.confidence == 0.5
        assert result.reasoning.startswith("Classification error:")

    @pytest.mark.parametrize("response", [
        # float() overflows on a 400-digit integer
        '{"category": "Utilities", "confidence": 1' + "0" * 400 + "}",
        # json refuses integers past the int-string conversion limit
        '{"category": "Utilities", "confidence": 1' + "0" * 5000 + "}",
        # runaway nesting
        "[" * 100000 + "]" * 100000,
    ])
    def test_pathological_json_falls_back(self, invoice, response):
        result = ClassificationEngine(ScriptedGenerator(response=response)).classify(invoice)
        assert result.category == "Other"
        assert result.confidence == 0.5
        assert result.reasoning

    def test_unexpected_parse_error_is_contained(self, invoice, monkeypatch):
        from src.services import classifier as classifier_module

        def broken(raw):
            raise KeyError("boom")

        monkeypatch.setattr(classifier_module, "parse_classification", broken)
        engine = ClassificationEngine(ScriptedGenerator(response='{"category": "Utilities", "confidence": 0.9}'))

        result = engine.classify(invoice)
        assert result.category == "Other"
        assert result.reasoning.startswith("Classification error:")

    def test_sampling_config_is_passed_through(self, invoice):
        seen = {}

        class Recorder:
            def complete(self, prompt, sampling, system_prompt=None):
                seen["sampling"] = sampling
                seen["system_prompt"] = system_prompt
                return '{"category": "Utilities", "confidence": 0.9}'

        sampling = SamplingConfig(temperature=0.1, max_tokens=50, top_p=0.9)
        ClassificationEngine(Recorder(), sampling).classify(invoice)
        assert seen["sampling"] == sampling
        assert "JSON" in seen["system_prompt"]
