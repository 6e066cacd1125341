"""Keyword heuristics checking that an authored tweak matches what was asked for."""

from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(slots=True, frozen=True)
class ValidationRule:
    name: str
    pattern: re.Pattern[str]
    description: str
    keywords: tuple[str, ...]
    # Request words that make this rule the obvious reading.
    strong: tuple[str, ...]


RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        name="heel_modification",
        pattern=re.compile(r'"action"\s*:\s*"scale_arc_width"[^}]*'),
        description="Modifies bot weak-spot arc",
        keywords=("heel", "smaller", "bigger", "larger", "tiny", "huge", "arc"),
        strong=("heel", "arc"),
    ),
    ValidationRule(
        name="size_modification",
        pattern=re.compile(r'"action"\s*:\s*"scale_radius"[^}]*'),
        description="Modifies bot size/radius",
        keywords=("size", "smaller", "bigger", "larger", "tiny", "huge", "radius"),
        strong=("size", "radius"),
    ),
    ValidationRule(
        name="health_modification",
        pattern=re.compile(r'"action"\s*:\s*"(?:set_health|add_health|heal)"[^}]*'),
        description="Modifies bot health",
        keywords=("health", "life", "lives", "hp", "extra", "more"),
        strong=("health", "life", "hp"),
    ),
    ValidationRule(
        name="speed_modification",
        pattern=re.compile(r'"action"\s*:\s*"(?:scale_speed|set_speed)"[^}]*'),
        description="Modifies bot speed",
        keywords=("speed", "fast", "slow", "velocity", "quick"),
        strong=("speed", "fast", "slow"),
    ),
    ValidationRule(
        name="invisibility_effect",
        pattern=re.compile(r'"action"\s*:\s*"(?:stealth|set_alpha)"[^}]*'),
        description="Creates invisibility effect",
        keywords=("invisible", "stealth", "ghost", "transparent", "vanish", "hide"),
        strong=("invisible", "stealth", "ghost"),
    ),
)

_SIZE_WORDS = frozenset({"smaller", "bigger", "larger", "tiny", "huge"})
_FIX_HINTS = {
    "heel_modification": '{{"hook": "init", "action": "scale_arc_width", "value": {factor}}}',
    "size_modification": '{{"hook": "init", "action": "scale_radius", "value": {factor}}}',
    "health_modification": '{"hook": "init", "action": "add_health", "value": 1}',
    "speed_modification": "Add a scale_speed or set_speed effect on the update hook",
    "invisibility_effect": "Add a stealth effect and a set_alpha effect on the draw hook",
}
_DEFAULT_FACTORS = {"heel_modification": "0.6", "size_modification": "0.7"}
_PERCENT_RE = re.compile(r"(\d+)%")
_MAGNITUDE_RE = re.compile(r"(smaller|bigger|larger|tiny|huge)")
_FACTOR_RE = re.compile(r'"value"\s*:\s*(0\.\d+)')


def _enclosing_object(code: str, index: int) -> str:
    """Return the innermost ``{...}`` around ``index``, or an empty string when braces don't balance."""
    depth = 0
    start = index - 1
    while start >= 0:
        char = code[start]
        if char == "}":
            depth += 1
        elif char == "{":
            if depth == 0:
                break
            depth -= 1
        start -= 1
    if start < 0:
        return ""

    depth = 0
    for end in range(index, len(code)):
        char = code[end]
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return code[start : end + 1]
            depth -= 1
    return ""


@dataclass(slots=True)
class Intent:
    type: str
    description: str
    confidence: float


@dataclass(slots=True)
class Feature:
    type: str
    description: str
    implementation: str


@dataclass(slots=True)
class RequestAnalysis:
    intents: list[Intent]
    percentage: int | None
    magnitude: str | None
    raw_request: str


@dataclass(slots=True)
class ValidationReport:
    is_valid: bool
    intents: list[Intent] = field(default_factory=list)
    features: list[Feature] = field(default_factory=list)
    suggestions: list[dict] = field(default_factory=list)
    score: float = 0.0

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "userIntent": [{"type": i.type, "description": i.description, "confidence": i.confidence} for i in self.intents],
            "codeFeatures": [{"type": f.type, "description": f.description, "implementation": f.implementation} for f in self.features],
            "suggestions": list(self.suggestions),
            "score": self.score,
        }


class TweakValidator:
    def __init__(self, rules: tuple[ValidationRule, ...] = RULES, threshold: float = 0.3) -> None:
        self.rules = rules
        self.threshold = threshold

    def validate(self, request: str, code: str) -> ValidationReport:
        analysis = self.analyze_request(request)
        features = self.analyze_code(code)
        return ValidationReport(
            is_valid=self._aligned(analysis, features),
            intents=analysis.intents,
            features=features,
            suggestions=self._suggestions(analysis, features),
            score=self._score(analysis, features),
        )

    def analyze_request(self, request: str) -> RequestAnalysis:
        text = (request or "").lower()
        intents: list[Intent] = []
        for rule in self.rules:
            confidence = self._contextual_match(text, rule)
            if confidence > self.threshold:
                intents.append(Intent(type=rule.name, description=rule.description, confidence=confidence))

        percent = _PERCENT_RE.search(text)
        magnitude = _MAGNITUDE_RE.search(text)
        return RequestAnalysis(
            intents=intents,
            percentage=int(percent.group(1)) if percent else None,
            magnitude=magnitude.group(1) if magnitude else None,
            raw_request=request,
        )

    def _contextual_match(self, text: str, rule: ValidationRule) -> float:
        score = 0.0
        matched = 0
        mentions_heel = "heel" in text
        for keyword in rule.keywords:
            if keyword not in text:
                continue
            matched += 1
            if any(word in text for word in rule.strong):
                score += 0.8
            elif keyword in _SIZE_WORDS:
                # Bare size words are ambiguous between the body and the heel.
                if rule.name == "heel_modification" and mentions_heel:
                    score += 0.9
                elif rule.name == "size_modification" and not mentions_heel:
                    score += 0.7
                elif rule.name == "size_modification" and "bot" in text:
                    score += 0.4
                else:
                    score += 0.2
            else:
                score += 0.2
        if matched == 0:
            return 0.0
        return min(score, 1.0)

    def analyze_code(self, code: str) -> list[Feature]:
        code = code or ""
        features: list[Feature] = []
        for rule in self.rules:
            match = rule.pattern.search(code)
            if match:
                implementation = _enclosing_object(code, match.start()) or match.group(0)
                features.append(Feature(type=rule.name, description=rule.description, implementation=implementation))
        return features

    @staticmethod
    def _aligned(analysis: RequestAnalysis, features: list[Feature]) -> bool:
        implemented = {feature.type for feature in features}
        return any(intent.type in implemented for intent in analysis.intents)

    @staticmethod
    def _score(analysis: RequestAnalysis, features: list[Feature]) -> float:
        if not analysis.intents:
            return 0.0
        implemented = {feature.type for feature in features}
        hits = sum(1 for intent in analysis.intents if intent.type in implemented)
        return hits / len(analysis.intents)

    def _suggestions(self, analysis: RequestAnalysis, features: list[Feature]) -> list[dict]:
        implemented = {feature.type for feature in features}
        suggestions: list[dict] = []
        for intent in analysis.intents:
            if intent.type in implemented:
                continue
            suggestions.append(
                {
                    "type": "missing_feature",
                    "message": f"The tweak doesn't implement {intent.description.lower()} as requested",
                    "fix": self._fix_hint(intent.type, analysis.percentage),
                }
            )

        if analysis.percentage is not None and not self._has_accurate_percentage(features, analysis.percentage):
            factor = (100 - analysis.percentage) / 100
            suggestions.append(
                {
                    "type": "percentage_mismatch",
                    "message": f"Requested a {analysis.percentage}% change, but the tweak may not apply it accurately",
                    "fix": f"Use a factor of {factor} for {analysis.percentage}% smaller",
                }
            )
        return suggestions

    @staticmethod
    def _fix_hint(intent_type: str, percentage: int | None) -> str:
        hint = _FIX_HINTS.get(intent_type)
        if hint is None:
            return "Add an appropriate effect"
        factor = str((100 - percentage) / 100) if percentage is not None else _DEFAULT_FACTORS.get(intent_type, "1.0")
        if "{factor}" in hint:
            return hint.format(factor=factor)
        return hint

    @staticmethod
    def _has_accurate_percentage(features: list[Feature], percentage: int, tolerance: float = 0.1) -> bool:
        expected = (100 - percentage) / 100
        for feature in features:
            match = _FACTOR_RE.search(feature.implementation)
            if match and abs(float(match.group(1)) - expected) < tolerance:
                return True
        return False
