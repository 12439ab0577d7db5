from __future__ import annotations

import asyncio
import math
import random
from decimal import ROUND_HALF_UP, Decimal

from .errors import (
    ConfigurationError,
    EmptySelectionError,
    ReviewServiceError,
    UpstreamError,
)
from .logging_config import get_logger
from .metrics import (
    review_generation_failures_total,
    review_tokens_total,
    reviews_generated_total,
    usage_sink_dispatch_total,
)
from .models import (
    EffectiveSelection,
    GenerationResult,
    PersonaAttributes,
    SelectionState,
    TagCatalog,
    UsageRecord,
)
from .prompts import compose
from .providers import CompletionRequest, OpenAIChatProvider, TextCompletionProvider
from .selection import SubmittedSelection
from .settings import Settings, settings
from .style import select_style
from .usage_sink import UsageSink, default_usage_sink, usage_timestamp

logger = get_logger(__name__)

_COST_QUANTUM = Decimal("0.000001")

SelectionInput = SelectionState | SubmittedSelection | EffectiveSelection


def estimate_tokens(text: str, reported: int | None, multiplier: float) -> tuple[int, str]:
    """Return ``(tokens, source)``.

    Provider usage wins when it is positive. Otherwise the count is derived
    from the output length and never drops to zero while text exists; the
    usage sheet reads zero as "not recorded".
    """
    if reported is not None and reported > 0:
        return reported, "provider"
    if not text:
        return 0, "none"
    return max(1, math.ceil(len(text) * multiplier)), "estimate"


def estimate_cost(tokens: int, cost_per_1k: Decimal) -> Decimal:
    return (Decimal(tokens) / Decimal(1000) * cost_per_1k).quantize(
        _COST_QUANTUM, rounding=ROUND_HALF_UP
    )


class ReviewGenerator:
    """Single-pass review pipeline.

    validate -> draw style -> compose -> complete -> estimate usage, which
    fixes the ``GenerationResult``; the usage record is dispatched afterwards
    and its outcome is only logged.
    """

    def __init__(
        self,
        provider: TextCompletionProvider | None = None,
        sink: UsageSink | None = None,
        config: Settings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.provider = provider or OpenAIChatProvider()
        self.sink = sink or default_usage_sink()
        self.config = config or settings
        self.rng = rng

    def ensure_configured(self) -> None:
        if not self.provider.is_configured():
            review_generation_failures_total.labels(reason=ConfigurationError.reason).inc()
            raise ConfigurationError("Text completion provider has no credentials")

    async def generate(
        self,
        selection: SelectionInput,
        persona: PersonaAttributes | None,
        language: str | None,
        store_category: str | None,
        subject_label: str,
        catalog: TagCatalog | None = None,
    ) -> GenerationResult:
        self.ensure_configured()

        try:
            effective = _effective(selection)
        except ReviewServiceError as exc:
            review_generation_failures_total.labels(reason=exc.reason).inc()
            raise

        style = select_style(self.rng)
        prompt = compose(language, style, store_category, effective, persona, catalog)
        params = self.config.style_parameters
        request = CompletionRequest(
            system_instructions=prompt.system_instructions,
            user_content=prompt.user_content,
            max_output_tokens=params.max_tokens_for(style.value),
            creativity=params.temperature_for(style.value),
        )

        try:
            completion = await self.provider.complete(request)
        except ReviewServiceError as exc:
            review_generation_failures_total.labels(reason=exc.reason).inc()
            logger.warning("review_generation_failed", reason=exc.reason, detail=str(exc))
            raise
        except Exception as exc:
            review_generation_failures_total.labels(reason=UpstreamError.reason).inc()
            logger.exception("review_generation_failed", reason="provider_exception")
            raise UpstreamError(f"Provider raised {type(exc).__name__}") from exc

        text = (completion.text or "").strip()
        tokens, source = estimate_tokens(
            text, completion.total_tokens, self.config.REVIEW_FALLBACK_TOKEN_MULTIPLIER
        )
        result = GenerationResult(
            text=text,
            style=style,
            language=prompt.language,
            token_estimate=tokens,
            cost_estimate=estimate_cost(tokens, self.config.REVIEW_COST_PER_1K_TOKENS),
        )
        reviews_generated_total.labels(style=style.value, language=result.language).inc()
        if tokens:
            review_tokens_total.labels(source=source).inc(tokens)
        logger.info(
            "review_generated",
            style=style.value,
            language=result.language,
            tokens=tokens,
            token_source=source,
            empty=not text,
        )

        await self._dispatch_usage(result, subject_label)
        return result

    async def _dispatch_usage(self, result: GenerationResult, subject_label: str) -> bool:
        if result.token_estimate <= 0:
            usage_sink_dispatch_total.labels(result="skipped").inc()
            return False
        record = UsageRecord(
            timestamp=usage_timestamp(),
            subject=subject_label,
            language=result.language,
            cost=result.cost_estimate,
            token_count=result.token_estimate,
        )
        try:
            await asyncio.wait_for(
                self.sink.record(record), timeout=self.config.USAGE_SINK_TIMEOUT_SECONDS
            )
        except Exception as exc:
            usage_sink_dispatch_total.labels(result="failed").inc()
            logger.warning(
                "usage_record_failed",
                subject=subject_label,
                error_type=type(exc).__name__,
                detail=str(exc),
            )
            return False
        usage_sink_dispatch_total.labels(result="delivered").inc()
        logger.debug("usage_record_delivered", subject=subject_label)
        return True


def _effective(selection: SelectionInput) -> EffectiveSelection:
    if isinstance(selection, EffectiveSelection):
        if selection.total == 0:
            raise EmptySelectionError("No effective tags selected")
        return selection
    return selection.effective()
