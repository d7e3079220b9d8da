from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from cardforge.core.errors import InputError


@dataclass(frozen=True)
class InlineText:
    content: str

    def __post_init__(self) -> None:
        if not (self.content or "").strip():
            raise InputError("Kein Text angegeben.")


@dataclass(frozen=True)
class UploadedFile:
    data: bytes = field(repr=False)
    media_type: str
    filename: str = ""

    def __post_init__(self) -> None:
        if not self.data:
            raise InputError("Die hochgeladene Datei ist leer.")

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class RemoteDocument:
    url: str

    def __post_init__(self) -> None:
        if not (self.url or "").strip():
            raise InputError("Keine URL angegeben.")


InputSpec = Union[InlineText, UploadedFile, RemoteDocument]

INPUT_TYPES = ("text", "file", "url")


def build_input_spec(
    input_type: Optional[str],
    text: Optional[str] = None,
    url: Optional[str] = None,
    upload: Optional[UploadedFile] = None,
) -> InputSpec:
    """
    Map the form's inputType selector onto exactly one InputSpec variant.
    Only the payload matching the selector is looked at.
    """
    kind = (input_type or "").strip().lower()
    if kind == "text":
        return InlineText(content=text or "")
    if kind == "file":
        if upload is None:
            raise InputError("Keine Datei hochgeladen.")
        return upload
    if kind == "url":
        return RemoteDocument(url=(url or "").strip())
    raise InputError(f"Ungültiger Input-Typ: {input_type!r}. Erlaubt: text, file, url.")
