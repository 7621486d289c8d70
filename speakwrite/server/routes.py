"""HTTP handlers for the SpeakWrite API."""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Type, TypeVar

import pydantic
from aiohttp import web
from pydantic import BaseModel

from ..errors import ValidationError, NotFoundError
from .keys import STORE_KEY, AUTH_KEY, TRANSCRIPTION_KEY

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


# Request models

class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AddWordRequest(BaseModel):
    word: Optional[str] = None
    pronunciation: Optional[str] = None


class DeleteTranscriptionRequest(BaseModel):
    transcriptionId: Optional[int] = None


class DeleteWordRequest(BaseModel):
    wordId: Optional[int] = None


async def parse_body(request: web.Request, model: Type[ModelT]) -> ModelT:
    """Read a JSON body into a pydantic model."""
    try:
        data = await request.json()
    except ValueError:
        raise ValidationError("Request body must be JSON")
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        logger.debug(f"Rejected {model.__name__}: {e}")
        raise ValidationError("Malformed request")


async def run_blocking(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Run password hashing or store file I/O off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


def parse_id(request: web.Request, label: str) -> int:
    try:
        return int(request.match_info["id"])
    except ValueError:
        raise ValidationError(f"Invalid {label} ID")


# Auth

async def signup(request: web.Request) -> web.Response:
    body = await parse_body(request, SignupRequest)
    user, token = await run_blocking(request.app[AUTH_KEY].signup, body.email, body.password, body.name)
    return web.json_response({"user": user.public_dict(), "token": token, "success": True}, status=201)


async def login(request: web.Request) -> web.Response:
    body = await parse_body(request, LoginRequest)
    user, token = await run_blocking(request.app[AUTH_KEY].login, body.email, body.password)
    return web.json_response({
        "user": {"id": user.id, "email": user.email},
        "token": token,
        "success": True,
    })


async def verify(request: web.Request) -> web.Response:
    user = await run_blocking(request.app[STORE_KEY].get_user_by_id, request["user_id"])
    if user is None:
        raise NotFoundError("User not found")
    return web.json_response({"user": {
        "id": user.id,
        "email": user.email,
        "created_at": user.created_at.isoformat(),
    }})


# Transcription

async def transcribe(request: web.Request) -> web.Response:
    form = await request.post()

    audio = b""
    filename = "audio.webm"
    audio_field = form.get("audio")
    if isinstance(audio_field, web.FileField):
        audio = audio_field.file.read()
        filename = audio_field.filename or filename

    audio_size = None
    if form.get("audioSize"):
        try:
            audio_size = int(form["audioSize"])
        except ValueError:
            raise ValidationError("audioSize must be an integer")

    outcome = await request.app[TRANSCRIPTION_KEY].transcribe(
        user_id=request["user_id"],
        audio=audio,
        filename=filename,
        is_streaming=form.get("isStreaming") == "true",
        previous_text=form.get("previousText") or "",
        final_text=form.get("finalText") or "",
        audio_size=audio_size,
    )
    return web.json_response({"transcription": outcome.text})


# History

async def list_transcriptions(request: web.Request) -> web.Response:
    records = await run_blocking(request.app[STORE_KEY].list_records, request["user_id"])
    return web.json_response({"transcriptions": [
        {
            "id": str(record.id),
            "text": record.content,
            "durationSeconds": record.duration_seconds,
            "createdAt": record.created_at.isoformat(),
        }
        for record in records
    ]})


async def delete_transcription(request: web.Request) -> web.Response:
    if "id" in request.match_info:
        transcription_id = parse_id(request, "transcription")
    else:
        body = await parse_body(request, DeleteTranscriptionRequest)
        if not body.transcriptionId:
            raise ValidationError("Transcription ID required")
        transcription_id = body.transcriptionId

    await run_blocking(request.app[STORE_KEY].delete_record, request["user_id"], transcription_id)
    return web.json_response({"success": True})


# Dictionary

def _word_dict(term) -> dict:
    return {"id": str(term.id), "word": term.word, "pronunciation": term.pronunciation}


async def list_words(request: web.Request) -> web.Response:
    terms = await run_blocking(request.app[STORE_KEY].list_terms, request["user_id"])
    return web.json_response({"words": [_word_dict(term) for term in terms]})


async def add_word(request: web.Request) -> web.Response:
    body = await parse_body(request, AddWordRequest)
    if not body.word:
        raise ValidationError("Word is required")

    term = await run_blocking(request.app[STORE_KEY].add_term, request["user_id"], body.word, body.pronunciation)
    return web.json_response({"word": _word_dict(term)}, status=201)


async def delete_word(request: web.Request) -> web.Response:
    if "id" in request.match_info:
        word_id = parse_id(request, "word")
    else:
        body = await parse_body(request, DeleteWordRequest)
        if not body.wordId:
            raise ValidationError("Word ID required")
        word_id = body.wordId

    await run_blocking(request.app[STORE_KEY].delete_term, request["user_id"], word_id)
    return web.json_response({"success": True})


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def setup_routes(app: web.Application) -> None:
    app.router.add_get("/health", health)
    app.router.add_post("/api/auth/signup", signup)
    app.router.add_post("/api/auth/login", login)
    app.router.add_get("/api/auth/verify", verify)
    app.router.add_post("/api/transcribe", transcribe)
    app.router.add_get("/api/transcriptions", list_transcriptions)
    app.router.add_delete("/api/transcriptions", delete_transcription)
    app.router.add_delete("/api/transcriptions/{id}", delete_transcription)
    app.router.add_get("/api/dictionary", list_words)
    app.router.add_post("/api/dictionary", add_word)
    app.router.add_delete("/api/dictionary", delete_word)
    app.router.add_delete("/api/dictionary/{id}", delete_word)
