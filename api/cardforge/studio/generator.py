from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from cardforge.core.errors import (
    EmptyModelResponseError,
    MalformedResponseError,
    ModelInvocationError,
    PipelineError,
    ServiceUnavailableError,
)
from cardforge.core.gemini import ModelClient, SamplingConfig
from cardforge.schemas.studio import Flashcard, QuizQuestion
from cardforge.studio.prompts import build_flashcard_prompt, build_quiz_prompt

logger = logging.getLogger("studio")

MAX_TEXT_CHARS = 25000
RAW_SAMPLE_CHARS = 1000


class ArtifactKind(str, Enum):
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"


@dataclass(frozen=True)
class KindPolicy:
    label: str
    min_count: int
    max_count: int
    default_count: int
    # quizzes need more context than flashcards to produce plausible distractors
    min_text_chars: int
    sampling: SamplingConfig
    record_model: Type[BaseModel]
    build_prompt: Callable[[str, int], str]


POLICIES: Dict[ArtifactKind, KindPolicy] = {
    ArtifactKind.FLASHCARDS: KindPolicy(
        label="Flashcards",
        min_count=3,
        max_count=25,
        default_count=15,
        min_text_chars=10,
        sampling=SamplingConfig(temperature=0.6, top_k=1, top_p=1.0, max_output_tokens=4096),
        record_model=Flashcard,
        build_prompt=build_flashcard_prompt,
    ),
    ArtifactKind.QUIZ: KindPolicy(
        label="Quiz",
        min_count=3,
        max_count=15,
        default_count=5,
        min_text_chars=50,
        sampling=SamplingConfig(temperature=0.6, top_k=1, top_p=1.0, max_output_tokens=8192),
        record_model=QuizQuestion,
        build_prompt=build_quiz_prompt,
    ),
}

SHORT_TEXT_FLASHCARD = {"front": "Kein Inhalt?", "back": "Text zu kurz."}


def clamp_count(kind: ArtifactKind, requested: Any) -> int:
    """
    Missing, unparsable or zero counts mean the kind's default; anything else
    is clamped into range. Never rejects.
    """
    policy = POLICIES[kind]
    try:
        n = int(requested)
    except (TypeError, ValueError):
        return policy.default_count
    if n == 0:
        return policy.default_count
    return max(policy.min_count, min(policy.max_count, n))


@dataclass(frozen=True)
class GenerationRequest:
    text: str
    kind: ArtifactKind
    count: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "count", clamp_count(self.kind, self.count))


def truncate_text(text: str, limit: int = MAX_TEXT_CHARS) -> str:
    if len(text) <= limit:
        return text
    logger.warning("text truncated chars=%s limit=%s", len(text), limit)
    return text[:limit]


def extract_json_array(raw: str) -> List[Any]:
    """
    Parse the outermost [...] of a free-form model reply.

    Everything before the first '[' and after the last ']' is ignored. No
    repair is attempted on what lies between.
    """
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end < start:
        raise MalformedResponseError(
            "Die KI-Antwort enthält kein JSON-Array.",
            context={"raw_sample": raw[:RAW_SAMPLE_CHARS]},
        )

    json_str = raw[start : end + 1]
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Die KI-Antwort ist nicht lesbar: {e.msg} (Zeile {e.lineno}, Spalte {e.colno})",
            context={"parse_error": str(e), "raw_sample": raw[:RAW_SAMPLE_CHARS]},
        ) from e

    if not isinstance(data, list):
        raise MalformedResponseError(
            "Die KI-Antwort ist kein JSON-Array.",
            context={"raw_sample": raw[:RAW_SAMPLE_CHARS]},
        )
    return data


def validate_records(kind: ArtifactKind, items: List[Any], strict: bool = False) -> List[Any]:
    """
    Check every record against the kind's schema.

    Valid records come back normalized (clean field set, sorted unique answer
    indices). Invalid ones are logged; lenient mode keeps them as the model
    sent them, strict mode drops them.
    """
    model = POLICIES[kind].record_model
    out: List[Any] = []
    invalid = 0
    for i, item in enumerate(items):
        try:
            record = model.model_validate(item)
        except ValidationError as e:
            invalid += 1
            logger.warning(
                "%s record %s does not match schema (%s): %s",
                kind.value,
                i,
                "dropped" if strict else "kept",
                "; ".join(f"{'.'.join(map(str, err['loc'])) or 'record'}: {err['msg']}" for err in e.errors()),
            )
            if not strict:
                out.append(item)
            continue
        out.append(record.model_dump(by_alias=True))

    if invalid:
        logger.warning("%s invalid=%s of total=%s strict=%s", kind.value, invalid, len(items), strict)
    return out


class StudyGenerator:
    """
    Turns normalized text into flashcards or quiz questions through an
    injected model client.

    Per call: guard -> prompt -> model -> boundary -> parse -> validate.
    Any failure ends the call; nothing is retried.
    """

    def __init__(
        self,
        model_client: Optional[ModelClient],
        *,
        max_text_chars: int = MAX_TEXT_CHARS,
        strict: bool = False,
    ) -> None:
        self.model_client = model_client
        self.max_text_chars = max_text_chars
        self.strict = strict

    async def generate_flashcards(self, text: str, max_cards: Any = None) -> List[Any]:
        return await self.generate(GenerationRequest(text=text, kind=ArtifactKind.FLASHCARDS, count=max_cards))

    async def generate_quiz(self, text: str, num_questions: Any = None) -> List[Any]:
        return await self.generate(GenerationRequest(text=text, kind=ArtifactKind.QUIZ, count=num_questions))

    async def generate(self, req: GenerationRequest) -> List[Any]:
        policy = POLICIES[req.kind]
        count = int(req.count or policy.default_count)

        if self.model_client is None:
            raise ServiceUnavailableError(
                f"KI-Dienst ({policy.label}) ist nicht verfügbar (API-Schlüssel fehlt?)."
            )

        text = req.text or ""
        if len(text.strip()) < policy.min_text_chars:
            logger.info(
                "%s text too short chars=%s min=%s; skipping model call",
                req.kind.value,
                len(text.strip()),
                policy.min_text_chars,
            )
            if req.kind is ArtifactKind.FLASHCARDS:
                return [dict(SHORT_TEXT_FLASHCARD)]
            return []

        text = truncate_text(text, self.max_text_chars)
        prompt = policy.build_prompt(text, count)
        logger.info("calling model kind=%s count=%s text_chars=%s", req.kind.value, count, len(text))

        try:
            reply = await self.model_client.generate_content(prompt, policy.sampling)
        except PipelineError:
            raise
        except Exception as e:
            logger.exception("model call failed kind=%s", req.kind.value)
            raise ModelInvocationError(
                f"Fehler bei der Kommunikation mit dem KI-Dienst ({policy.label}).",
                context={"error": repr(e)},
            ) from e

        if not reply.has_content:
            reasons = ""
            if reply.block_reason:
                reasons += f" Grund: {reply.block_reason}"
            if reply.finish_reason:
                reasons += f" Status: {reply.finish_reason}"
            logger.warning(
                "model reply blocked/empty kind=%s block=%s finish=%s",
                req.kind.value,
                reply.block_reason,
                reply.finish_reason,
            )
            raise EmptyModelResponseError(
                f"Keine gültige Antwort von der KI erhalten ({policy.label}).{reasons}",
                context={"block_reason": reply.block_reason, "finish_reason": reply.finish_reason},
            )

        raw = reply.text or ""
        logger.debug("raw model reply sample kind=%s: %s", req.kind.value, raw[:500])

        items = extract_json_array(raw)
        records = validate_records(req.kind, items, strict=self.strict)
        logger.info(
            "parsed %s records=%s returning=%s",
            req.kind.value,
            len(records),
            min(len(records), count),
        )
        return records[:count]
