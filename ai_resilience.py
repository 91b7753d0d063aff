"""AI Resilience Layer: ordered multi-model fallback.

call_with_fallback() tries each model in turn, one attempt per model, and
returns the first successful response. Every failure is normalized into a
ModelFailure record; when all models fail, AllModelsFailedError carries the
raw provider messages verbatim so quota/auth problems stay diagnosable.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from models import MODEL_IDS

logger = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "Không thể nhận phản hồi từ AI."


class ConfigurationError(Exception):
    """A prerequisite setting (the API key) is missing."""


@dataclass(frozen=True)
class ModelFailure:
    model_id: str
    message: str

    def __str__(self) -> str:
        return f"{self.model_id}: {self.message}"

    def to_dict(self) -> dict:
        return {"model": self.model_id, "message": self.message}


class AllModelsFailedError(Exception):
    """Every model in the fallback list failed; message lists each raw error."""

    def __init__(self, failures: Sequence[ModelFailure]) -> None:
        self.failures = list(failures)
        details = "\n".join(str(f) for f in self.failures)
        super().__init__(f"All models failed. Error details:\n{details}")


@dataclass
class FallbackResult:
    text: str
    model_id: str
    failures: list[ModelFailure] = field(default_factory=list)


# ── Model ordering ──────────────────────────────────────────


def ordered_models(selected: str, known: Iterable[str] = MODEL_IDS) -> list[str]:
    """Selected model first, then the remaining known models in declared order."""
    ordered = [selected] if selected else []
    for model_id in known:
        if model_id not in ordered:
            ordered.append(model_id)
    return ordered


# ── Provider call ───────────────────────────────────────────


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _do_call(model: str, prompt: str, api_key: str, timeout: Optional[float] = None) -> str:
    """Execute one generation request (no retry, no fallback)."""
    import google.generativeai as genai

    genai.configure(api_key=api_key)
    m = genai.GenerativeModel(model)
    kwargs: dict = {}
    if timeout:
        kwargs["request_options"] = {"timeout": timeout}
    response = m.generate_content(prompt, **kwargs)
    return response.text or EMPTY_RESPONSE_TEXT


# ── Main entry point ────────────────────────────────────────


def call_with_fallback(
    prompt: str,
    models: Sequence[str],
    api_key: str,
    timeout: Optional[float] = None,
    call: Optional[Callable[..., str]] = None,
) -> FallbackResult:
    """Try `models` sequentially until one answers.

    Args:
        prompt: Full prompt text, sent unchanged to every model.
        models: Ordered model ids (see ordered_models()).
        api_key: Provider API key; empty raises ConfigurationError before any call.
        timeout: Optional per-attempt timeout in seconds.
        call: Replacement for the provider call, mainly for tests.

    Returns:
        FallbackResult with the response text, the model that produced it and
        the failures recorded before it.
    """
    if not api_key:
        raise ConfigurationError("Gemini API key is not configured. Add it in Settings.")

    do_call = call or _do_call
    failures: list[ModelFailure] = []
    for model_id in models:
        logger.info("Trying model %s", model_id, extra={"model": model_id})
        try:
            text = do_call(model_id, prompt, api_key, timeout)
        except Exception as exc:
            failure = ModelFailure(model_id, _error_message(exc))
            logger.warning("Model %s failed: %s", model_id, failure.message, extra={"model": model_id})
            failures.append(failure)
            continue
        if failures:
            logger.info("Model %s succeeded after %d failure(s)", model_id, len(failures),
                        extra={"model": model_id, "failures": len(failures)})
        return FallbackResult(text=text, model_id=model_id, failures=failures)

    raise AllModelsFailedError(failures)
