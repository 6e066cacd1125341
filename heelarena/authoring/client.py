"""Tweak authoring against an OpenAI-compatible chat completion service."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field

import httpx
import openai
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_random_exponential

from ..tweaks.declarative import TweakCompileError, compile_tweak, strip_code_fences
from .settings import AuthoringSettings
from .validation import TweakValidator

logger = logging.getLogger(__name__)

_RETRYABLE = (
    httpx.TimeoutException,
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.InternalServerError,
    openai.RateLimitError,
)

SYSTEM_PROMPT = """You design tweaks for a 2D bumper bot arena game.

GAME MECHANICS:
- Two circular bots bounce around an octagonal arena with perfectly elastic walls.
- Each bot has a rotating weak-spot arc ("achilles heel"). Touching the opponent inside its arc deals 1 damage.
- A bot is invulnerable for 1 second after taking damage. Bots start with 5 health.

Respond with ONLY a JSON object, no markdown and no explanations, shaped like:
{"name": "...", "description": "...", "effects": [EFFECT, ...]}

EFFECT fields:
- "hook": one of "init" (once at start), "update" (every frame, 60 per second),
  "collision" (bots touched), "damage" (this bot was hit), "draw" (rendering only)
- "action": one of
  init:      scale_radius, set_health, add_health, scale_arc_width, scale_speed, set_speed, set_color
  update:    scale_radius, scale_arc_width, scale_speed, set_speed, heal, stealth, particles
  collision: scale_speed, set_speed, heal, stealth, particles
  damage:    scale_arc_width, scale_speed, set_speed, heal, stealth, particles
  draw:      set_alpha, set_color
- "value": number (factor for scale_*, absolute for set_*, amount for heal/add_health, count for particles),
  or a "#rrggbb" string for set_color
- "duration": seconds, required by stealth (bot cannot be hit while it lasts)
- "every": seconds between firings, update hook only
- "color": "#rrggbb" for particles
- "when": optional {"health_below": 0..1, "health_above": 0..1, "unhittable": true|false}

Examples:
- Smaller size: {"hook": "init", "action": "scale_radius", "value": 0.7}
- Extra life: {"hook": "init", "action": "set_health", "value": 6}
- Regeneration: {"hook": "update", "action": "heal", "value": 1, "every": 60}
- Ghost on hit: {"hook": "damage", "action": "stealth", "duration": 2},
  {"hook": "draw", "action": "set_alpha", "value": 0.3, "when": {"unhittable": true}}

Keep tweaks fun but balanced. Weak-spot arc width is clamped to pi/8..pi."""

CRITIQUE_PROMPT = """You are a reviewer for a 2D bumper bot game. Review this generated tweak and give a clear verdict.

USER REQUEST: "{request}"

GENERATED TWEAK:
{code}

CONTEXT: Bots bounce around an arena trying to hit each other's rotating weak-spot arc. The game runs at 60fps.

Respond in this EXACT format:

VERDICT: [Looks good/Try again]

REASONING: [1-2 sentences explaining why the tweak does or doesn't do what was asked]

If the verdict is "Try again", also include:
IMPROVE YOUR PROMPT: [Specific suggestions for rephrasing the request]

Keep it concise and actionable."""

CRITIQUE_FALLBACK = (
    "AI review is temporarily unavailable. The generated tweak compiled and should be safe to test."
)


class TweakAuthoringError(RuntimeError):
    """Raised when the generation service cannot produce a tweak."""

    def __init__(self, message: str, request_id: str) -> None:
        super().__init__(message)
        self.request_id = request_id


@dataclass(slots=True)
class AuthoringResult:
    request_id: str
    name: str
    description: str
    code: str
    validation: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "requestId": self.request_id,
            "name": self.name,
            "description": self.description,
            "code": self.code,
            "validation": self.validation,
        }


def _build_client(settings: AuthoringSettings) -> openai.AsyncOpenAI:
    if settings.use_azure:
        return openai.AsyncAzureOpenAI(
            api_key=settings.api_key,
            azure_endpoint=settings.azure_endpoint,
            api_version=settings.api_version,
        )
    return openai.AsyncOpenAI(api_key=settings.api_key or "unprotected", base_url=settings.base_url)


class TweakAuthor:
    def __init__(
        self,
        settings: AuthoringSettings | None = None,
        *,
        client: openai.AsyncOpenAI | None = None,
        validator: TweakValidator | None = None,
    ) -> None:
        self.settings = settings or AuthoringSettings.from_env()
        self._client = client
        self.validator = validator or TweakValidator()

    @property
    def client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = _build_client(self.settings)
        return self._client

    async def _complete(self, **kwargs) -> str:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(_RETRYABLE),
            wait=wait_random_exponential(min=1, max=20),
            stop=stop_after_attempt(self.settings.max_attempts),
            reraise=True,
        ):
            with attempt:
                response = await self.client.chat.completions.create(**kwargs)
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def generate(self, prompt: str) -> AuthoringResult:
        request = (prompt or "").strip()
        if not request:
            raise ValueError("Prompt is required")

        request_id = uuid.uuid4().hex[:9]
        started = time.perf_counter()
        logger.info("[%s] Generating tweak for prompt: %r", request_id, request)

        try:
            raw = await self._complete(
                model=self.settings.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": request},
                ],
                max_completion_tokens=self.settings.max_tokens,
                temperature=self.settings.temperature,
            )
        except (openai.OpenAIError, httpx.HTTPError) as exc:
            logger.error("[%s] Tweak generation failed after %.0fms: %s", request_id, (time.perf_counter() - started) * 1000, exc)
            raise TweakAuthoringError(f"Failed to generate tweak: {exc}", request_id) from exc

        code = strip_code_fences(raw)
        logger.debug("[%s] Generated tweak source:\n%s", request_id, code)

        compilation_error: str | None = None
        name = "AI Generated Tweak"
        description = "Custom AI generated tweak"
        try:
            plugin = compile_tweak(code)
            name = plugin.name
            description = plugin.description or description
        except TweakCompileError as exc:
            compilation_error = str(exc)
            logger.warning("[%s] Generated tweak does not compile: %s", request_id, exc)

        report = self.validator.validate(request, code)
        validation = report.to_dict()
        validation["userRequest"] = request
        if compilation_error is not None:
            validation["compilationError"] = compilation_error
            validation["isValid"] = False
        validation["aiCritique"] = await self.critique(request_id, request, code)

        logger.info(
            "[%s] Tweak '%s' generated in %.0fms (valid=%s)",
            request_id,
            name,
            (time.perf_counter() - started) * 1000,
            validation["isValid"],
        )
        return AuthoringResult(
            request_id=request_id,
            name=name,
            description=description,
            code=code,
            validation=validation,
        )

    async def critique(self, request_id: str, request: str, code: str) -> dict:
        try:
            text = await self._complete(
                model=self.settings.critique_model,
                messages=[
                    {"role": "system", "content": "You are a senior code reviewer. Provide clear, structured feedback."},
                    {"role": "user", "content": CRITIQUE_PROMPT.format(request=request, code=code)},
                ],
                max_completion_tokens=self.settings.critique_max_tokens,
            )
        except (openai.OpenAIError, httpx.HTTPError) as exc:
            logger.warning("[%s] Critique unavailable: %s", request_id, exc)
            return {"error": str(exc)}

        if not text:
            logger.warning("[%s] Empty critique received, using fallback", request_id)
            return {"rawText": CRITIQUE_FALLBACK, "fallback": True}
        return {"rawText": text}


class AuthoringSession:
    """One pending authoring request that the user may abandon.

    Cancelling does not abort the in-flight call; its result is discarded when it lands.
    """

    def __init__(self, author: TweakAuthor) -> None:
        self.author = author
        self.cancelled = False
        self.result: AuthoringResult | None = None

    def cancel(self) -> None:
        self.cancelled = True

    async def run(self, prompt: str) -> AuthoringResult | None:
        result = await self.author.generate(prompt)
        if self.cancelled:
            logger.info("[%s] Authoring cancelled, discarding result", result.request_id)
            return None
        self.result = result
        return result
