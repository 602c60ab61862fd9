"""
Spending-category classification with a text-generation model.

The model is asked for a single JSON object. Its answer is repaired (code
fences stripped, keys matched case-insensitively) and validated against the
closed taxonomy. Every attempt ends in a ClassificationOutcome; the engine
resolves failed outcomes to a default "Other" classification, so callers
never see an exception from this module.
"""

import json
import math
import re
from dataclasses import dataclass
from typing import Protocol
from loguru import logger
from .llm import SamplingConfig
from ..models.invoice import CATEGORIES, OTHER, Classification, ExtractedData

DEFAULT_CONFIDENCE = 0.5

SYSTEM_PROMPT = (
    "You are an expert accountant who classifies invoices. "
    "Always respond with valid JSON only."
)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


class TextGenerator(Protocol):
    def complete(self, prompt: str, sampling: SamplingConfig, system_prompt: str | None = None) -> str:
        ...


@dataclass(frozen=True)
class ClassificationOutcome:
    """Either a parsed classification or the reason there is none"""
    classification: Classification | None = None
    failure: str | None = None

    @classmethod
    def success(cls, classification: Classification) -> "ClassificationOutcome":
        return cls(classification=classification)

    @classmethod
    def failed(cls, reason: str) -> "ClassificationOutcome":
        return cls(failure=reason)

    @property
    def ok(self) -> bool:
        return self.classification is not None

    def resolve(self) -> Classification:
        if self.classification is not None:
            return self.classification
        return Classification(
            category=OTHER,
            confidence=DEFAULT_CONFIDENCE,
            reasoning=self.failure or "Unable to classify",
        )


def format_money(amount: float, currency: str) -> str:
    return f"{amount:,.2f} {currency}"


def build_prompt(data: ExtractedData) -> str:
    categories = "\n".join(f"- {category}" for category in CATEGORIES)

    line_items_section = ""
    if data.line_items:
        lines = []
        for item in data.line_items:
            line = f"- {item.description or '(no description)'}"
            if item.quantity is not None:
                line += f" (Qty: {item.quantity:g})"
            if item.amount > 0:
                line += f" - {format_money(item.amount, data.currency)}"
            lines.append(line)
        line_items_section = "\nLine Items:\n" + "\n".join(lines) + "\n"

    return f"""Classify this invoice into exactly one of these categories:
{categories}

Invoice details:
Vendor: {data.vendor or 'Unknown'}
Amount: {format_money(data.total_amount, data.currency)}
{line_items_section}
Use the vendor name, invoice details, and line items (if available) to pick the most appropriate category.
Line item descriptions are the strongest signal.

Return ONLY a single JSON object in this exact format, with no surrounding text, markdown, or code fences:
{{"category": "category name", "confidence": 0.95, "reasoning": "brief explanation"}}"""


def strip_code_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE.sub("", text).strip()
    return text


def _match_category(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for category in CATEGORIES:
        if category.lower() == wanted:
            return category
    return None


def parse_classification(raw: str | None) -> ClassificationOutcome:
    """Parse a model response into an outcome; never raises"""
    if raw is None or not raw.strip():
        return ClassificationOutcome.failed("Unable to classify: empty model response")

    text = strip_code_fences(raw)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        return ClassificationOutcome.failed(f"Unable to classify: response was not valid JSON ({e.msg})")
    except (ValueError, RecursionError) as e:
        # oversized integers or runaway nesting
        return ClassificationOutcome.failed(f"Unable to classify: response could not be decoded ({type(e).__name__})")

    if not isinstance(payload, dict):
        return ClassificationOutcome.failed("Unable to classify: response was not a JSON object")

    fields = {str(key).lower(): value for key, value in payload.items()}
    if not fields.get("category"):
        return ClassificationOutcome.failed("Unable to classify: response missing category")

    try:
        confidence = float(fields.get("confidence"))
    except (TypeError, ValueError, OverflowError):
        return ClassificationOutcome.failed("Unable to classify: response missing numeric confidence")
    if math.isnan(confidence):
        return ClassificationOutcome.failed("Unable to classify: confidence was NaN")
    confidence = min(max(confidence, 0.0), 1.0)

    reasoning = fields.get("reasoning")
    category = _match_category(fields["category"])
    if category is None:
        logger.warning("Model returned a category outside the taxonomy", category=fields["category"])
        reasoning = f"Unrecognized category '{fields['category']}'. {reasoning or ''}".strip()
        category = OTHER

    return ClassificationOutcome.success(Classification(
        category=category,
        confidence=confidence,
        reasoning=str(reasoning) if reasoning is not None else None,
    ))


class ClassificationEngine:
    def __init__(self, generator: TextGenerator, sampling: SamplingConfig | None = None):
        self.generator = generator
        self.sampling = sampling or SamplingConfig()

    def attempt(self, data: ExtractedData) -> ClassificationOutcome:
        prompt = build_prompt(data)
        try:
            response = self.generator.complete(prompt, self.sampling, system_prompt=SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Classification call failed: {str(e)}")
            return ClassificationOutcome.failed(f"Classification error: {str(e)}")

        logger.info("Classification response received", vendor=data.vendor, response=response)
        try:
            return parse_classification(response)
        except Exception as e:
            logger.error("Classification response could not be parsed", vendor=data.vendor, error=str(e))
            return ClassificationOutcome.failed(f"Classification error: {str(e)}")

    def classify(self, data: ExtractedData) -> Classification:
        outcome = self.attempt(data)
        if not outcome.ok:
            logger.warning("Using default classification", vendor=data.vendor, reason=outcome.failure)

        classification = outcome.resolve()
        logger.info(
            "Invoice classified",
            vendor=data.vendor,
            category=classification.category,
            confidence=classification.confidence,
        )
        return classification
