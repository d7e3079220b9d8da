from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Flashcard(BaseModel):
    front: str = Field(min_length=1)
    back: str = Field(min_length=1)


class QuizQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(min_length=1)
    options: List[str] = Field(min_length=4, max_length=4)
    # indices (0-3) of every correct option; serialized under the model's field name
    correct_answers: List[int] = Field(alias="correctAnswerIndices", min_length=1)

    @field_validator("correct_answers")
    @classmethod
    def _indices_in_range(cls, v: List[int]) -> List[int]:
        bad = [i for i in v if i < 0 or i > 3]
        if bad:
            raise ValueError(f"correct answer indices out of range 0-3: {bad}")
        return sorted(set(v))


# Records are lists of plain JSON objects: with lenient validation a record
# that failed its schema check is passed through as the model produced it.
class FlashcardsResponse(BaseModel):
    flashcards: List[Any]


class QuizResponse(BaseModel):
    quiz: List[Any]


class ErrorResponse(BaseModel):
    error: str
    kind: str


class InfoResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    status: str
    env: str
    model_configured: bool
    model: str
