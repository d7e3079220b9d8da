import logging
import time
from pathlib import Path
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cardforge.core.config import settings
from cardforge.core.errors import PipelineError
from cardforge.core.gemini import build_model_client
from cardforge.core.logging import setup_logging
from cardforge.ingestion.inputs import UploadedFile, build_input_spec
from cardforge.ingestion.normalizer import normalize
from cardforge.ingestion.parser import check_upload
from cardforge.schemas.studio import ErrorResponse, FlashcardsResponse, InfoResponse, QuizResponse
from cardforge.studio.generator import StudyGenerator

setup_logging(settings.log_level)
logger = logging.getLogger("api")

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}

app = FastAPI(
    title="cardforge API",
    version="1.0.0",
    description="Flashcards and multiple-choice quizzes from text, documents or web pages.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list(),
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.enable_otel:
    from cardforge.observability.otel import setup_otel

    setup_otel(app, service_name=settings.otel_service_name)


@app.on_event("startup")
async def _startup() -> None:
    app.state.model_client = build_model_client(settings)


@app.on_event("shutdown")
async def _shutdown() -> None:
    client = getattr(app.state, "model_client", None)
    if client is not None:
        await client.aclose()


@app.exception_handler(PipelineError)
async def _pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    logger.error(
        "request failed path=%s kind=%s message=%s context=%s",
        request.url.path,
        exc.kind.value,
        exc.message,
        exc.context,
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload())


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error path=%s", request.url.path)
    return JSONResponse(status_code=500, content={"error": "Serverfehler.", "kind": "internal"})


def get_generator(request: Request) -> StudyGenerator:
    return StudyGenerator(
        getattr(request.app.state, "model_client", None),
        max_text_chars=settings.max_text_chars,
        strict=settings.strict_record_validation,
    )


def get_http_client() -> Optional[httpx.AsyncClient]:
    """None: each URL fetch opens and closes its own client."""
    return None


async def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None:
        return None
    # one byte past the limit is enough to know it is too large
    raw = await upload.read(settings.max_upload_bytes + 1)
    media_type = upload.content_type or ""
    check_upload(media_type, len(raw), settings.max_upload_bytes)
    logger.info("upload name=%s media_type=%s size=%s", upload.filename, media_type, len(raw))
    return UploadedFile(data=raw, media_type=media_type, filename=upload.filename or "")


async def _source_text(
    input_type: Optional[str],
    text_data: Optional[str],
    url_data: Optional[str],
    input_file: Optional[UploadFile],
    http_client: Optional[httpx.AsyncClient],
) -> str:
    upload = await _read_upload(input_file) if (input_type or "").strip().lower() == "file" else None
    spec = build_input_spec(input_type, text=text_data, url=url_data, upload=upload)
    content = await normalize(spec, http_client=http_client)
    if content.is_skipped:
        logger.warning("no extractable content source=%s reason=%s", content.source, content.reason)
    return content.text


@app.get("/info", response_model=InfoResponse)
async def info(request: Request) -> InfoResponse:
    return InfoResponse(
        status="ok",
        env=settings.app_env,
        model_configured=getattr(request.app.state, "model_client", None) is not None,
        model=settings.gemini_model,
    )


@app.post("/api/generate", response_model=FlashcardsResponse, responses=ERROR_RESPONSES)
async def generate_flashcards(
    input_type: Optional[str] = Form(None, alias="inputType"),
    text_data: Optional[str] = Form(None, alias="textData"),
    url_data: Optional[str] = Form(None, alias="urlData"),
    max_cards: Optional[str] = Form(None, alias="maxCards"),
    input_file: Optional[UploadFile] = File(None, alias="inputFile"),
    generator: StudyGenerator = Depends(get_generator),
    http_client: Optional[httpx.AsyncClient] = Depends(get_http_client),
) -> FlashcardsResponse:
    t0 = time.perf_counter()
    logger.info("[/api/generate] type=%s maxCards=%s", input_type, max_cards)

    text = await _source_text(input_type, text_data, url_data, input_file, http_client)
    cards = await generator.generate_flashcards(text, max_cards)

    logger.info(
        "[/api/generate] cards=%s total_ms=%s", len(cards), int((time.perf_counter() - t0) * 1000)
    )
    return FlashcardsResponse(flashcards=cards)


@app.post("/api/generate-quiz", response_model=QuizResponse, responses=ERROR_RESPONSES)
async def generate_quiz(
    input_type: Optional[str] = Form(None, alias="inputType"),
    text_data: Optional[str] = Form(None, alias="textData"),
    url_data: Optional[str] = Form(None, alias="urlData"),
    num_questions: Optional[str] = Form(None, alias="numQuestions"),
    input_file: Optional[UploadFile] = File(None, alias="inputFile"),
    generator: StudyGenerator = Depends(get_generator),
    http_client: Optional[httpx.AsyncClient] = Depends(get_http_client),
) -> QuizResponse:
    t0 = time.perf_counter()
    logger.info("[/api/generate-quiz] type=%s numQuestions=%s", input_type, num_questions)

    text = await _source_text(input_type, text_data, url_data, input_file, http_client)
    questions = await generator.generate_quiz(text, num_questions)

    logger.info(
        "[/api/generate-quiz] questions=%s total_ms=%s",
        len(questions),
        int((time.perf_counter() - t0) * 1000),
    )
    return QuizResponse(quiz=questions)


# Mounted last so the API routes above take precedence.
if settings.frontend_dir:
    frontend = Path(settings.frontend_dir).resolve()
    if frontend.is_dir():
        app.mount("/", StaticFiles(directory=frontend, html=True), name="frontend")
        logger.info("serving frontend from %s", frontend)
    else:
        logger.error("frontend_dir %s does not exist; frontend will not be served", frontend)
