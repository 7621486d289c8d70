"""Integration tests for the HTTP API."""

import asyncio
import threading
import pytest
from aiohttp import FormData

from speakwrite.auth import create_token
from speakwrite.errors import TranscriptionError, ServiceUnavailableError, ValidationError
from speakwrite.server.app import create_app
from speakwrite.server.routes import run_blocking


@pytest.fixture
def backend(fake_backend_factory):
    return fake_backend_factory(text="hello world")


@pytest.fixture
async def client(aiohttp_client, test_config, record_store, backend):
    app = create_app(test_config, store=record_store, backend=backend)
    return await aiohttp_client(app)


async def signup(client, email="ada@example.com", password="password123"):
    resp = await client.post("/api/auth/signup", json={"email": email, "password": password, "name": "Ada"})
    assert resp.status == 201
    return await resp.json()


@pytest.fixture
async def auth_headers(client):
    payload = await signup(client)
    return {"Authorization": f"Bearer {payload['token']}"}


def audio_form(size: int, **fields) -> FormData:
    form = FormData()
    form.add_field("audio", b'\x00' * size, filename="slice.wav", content_type="audio/wav")
    for name, value in fields.items():
        form.add_field(name, value)
    return form


@pytest.mark.integration
class TestAuthEndpoints:

    async def test_health_is_public(self, client):
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}

    async def test_signup(self, client):
        payload = await signup(client)

        assert payload["success"] is True
        assert payload["user"]["email"] == "ada@example.com"
        assert "password_hash" not in payload["user"]
        assert payload["token"].count(".") == 2

    async def test_signup_duplicate(self, client):
        await signup(client)
        resp = await client.post("/api/auth/signup", json={"email": "ada@example.com", "password": "password123"})

        assert resp.status == 409
        assert await resp.json() == {"error": "Email already exists"}

    @pytest.mark.parametrize("body,message", [
        ({"email": "ada@example.com"}, "Email and password are required"),
        ({"email": "ada@example.com", "password": "short"}, "Password must be at least 8 characters"),
    ])
    async def test_signup_validation(self, client, body, message):
        resp = await client.post("/api/auth/signup", json=body)

        assert resp.status == 400
        assert (await resp.json())["error"] == message

    async def test_signup_rejects_non_json(self, client):
        resp = await client.post("/api/auth/signup", data="not json")
        assert resp.status == 400

    async def test_login(self, client):
        await signup(client)
        resp = await client.post("/api/auth/login", json={"email": "ada@example.com", "password": "password123"})

        assert resp.status == 200
        payload = await resp.json()
        assert payload["user"]["email"] == "ada@example.com"
        assert payload["token"]

    async def test_login_wrong_password(self, client):
        await signup(client)
        resp = await client.post("/api/auth/login", json={"email": "ada@example.com", "password": "wrong-pass"})

        assert resp.status == 401
        assert await resp.json() == {"error": "Invalid email or password"}

    async def test_verify(self, client, auth_headers):
        resp = await client.get("/api/auth/verify", headers=auth_headers)

        assert resp.status == 200
        user = (await resp.json())["user"]
        assert user["email"] == "ada@example.com"
        assert "created_at" in user

    async def test_verify_unknown_user(self, client):
        token = create_token(999, "test-secret")
        resp = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})

        assert resp.status == 404
        assert await resp.json() == {"error": "User not found"}

    @pytest.mark.parametrize("headers,message", [
        ({}, "Unauthorized"),
        ({"Authorization": "Bearer garbage"}, "Invalid token"),
        ({"Authorization": f"Bearer {create_token(1, 'test-secret', expiry_seconds=1, now=1000)}"}, "Token expired"),
    ])
    async def test_protected_routes_require_token(self, client, headers, message):
        resp = await client.get("/api/transcriptions", headers=headers)

        assert resp.status == 401
        assert await resp.json() == {"error": message}


@pytest.mark.integration
class TestTranscribeEndpoint:

    async def test_streaming_chunk(self, client, auth_headers, backend, record_store):
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(90000, isStreaming="true", previousText="so far"))

        assert resp.status == 200
        assert await resp.json() == {"transcription": "hello world"}
        assert backend.calls[0]["filename"] == "slice.wav"
        assert "Previous context: so far." in backend.calls[0]["prompt"]
        assert record_store.list_records(1) == []

    async def test_final_upload_saved(self, client, auth_headers):
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(90000, isStreaming="false"))
        assert resp.status == 200

        resp = await client.get("/api/transcriptions", headers=auth_headers)
        records = (await resp.json())["transcriptions"]
        assert len(records) == 1
        assert records[0]["text"] == "hello world"
        assert records[0]["durationSeconds"] == 5

    async def test_final_text_saved(self, client, auth_headers, backend):
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(0, isStreaming="false", finalText="merged draft",
                                                 audioSize="160000"))

        assert resp.status == 200
        assert await resp.json() == {"transcription": "merged draft"}
        assert backend.calls == []

        records = (await (await client.get("/api/transcriptions", headers=auth_headers)).json())["transcriptions"]
        assert records[0]["durationSeconds"] == 10

    async def test_missing_audio(self, client, auth_headers):
        form = FormData()
        form.add_field("isStreaming", "true")
        resp = await client.post("/api/transcribe", headers=auth_headers, data=form)

        assert resp.status == 400
        assert (await resp.json())["error"] == "Audio file is required and must not be empty"

    async def test_tiny_audio_returns_empty(self, client, auth_headers, backend):
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(500, isStreaming="true"))

        assert resp.status == 200
        assert await resp.json() == {"transcription": ""}
        assert backend.calls == []

    async def test_backend_error_message_returned(self, client, auth_headers, backend):
        backend.error = TranscriptionError("Audio file format not supported. Please try recording again.")
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(4096, isStreaming="true"))

        assert resp.status == 500
        assert await resp.json() == {"error": "Audio file format not supported. Please try recording again."}

    async def test_unconfigured_backend(self, client, auth_headers, backend):
        backend.error = ServiceUnavailableError("Transcription service is not configured. Please contact support.")

        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(4096, isStreaming="true"))

        assert resp.status == 503

    async def test_unexpected_error_hidden(self, client, auth_headers, backend):
        backend.error = RuntimeError("secret internals")
        resp = await client.post("/api/transcribe", headers=auth_headers,
                                 data=audio_form(4096, isStreaming="true"))

        assert resp.status == 500
        assert await resp.json() == {"error": "Internal server error"}


@pytest.mark.integration
class TestHistoryAndDictionary:

    async def test_history_newest_first_and_scoped(self, client, auth_headers, record_store):
        record_store.create_record(1, "older", 1)
        record_store.create_record(1, "newer", 2)
        record_store.create_record(2, "someone else", 3)

        resp = await client.get("/api/transcriptions", headers=auth_headers)
        records = (await resp.json())["transcriptions"]

        assert [r["text"] for r in records] == ["newer", "older"]
        assert records[0]["id"] == "2"

    async def test_delete_transcription(self, client, auth_headers, record_store):
        record = record_store.create_record(1, "bye", 1)

        resp = await client.delete(f"/api/transcriptions/{record.id}", headers=auth_headers)

        assert resp.status == 200
        assert await resp.json() == {"success": True}
        assert record_store.list_records(1) == []

    async def test_delete_transcription_by_body(self, client, auth_headers, record_store):
        record = record_store.create_record(1, "bye", 1)
        resp = await client.delete("/api/transcriptions", headers=auth_headers,
                                   json={"transcriptionId": record.id})

        assert resp.status == 200
        assert record_store.list_records(1) == []

    async def test_delete_transcription_requires_id(self, client, auth_headers):
        resp = await client.delete("/api/transcriptions", headers=auth_headers, json={})

        assert resp.status == 400
        assert await resp.json() == {"error": "Transcription ID required"}

    async def test_delete_other_users_record_is_noop(self, client, auth_headers, record_store):
        record = record_store.create_record(2, "not yours", 1)

        resp = await client.delete(f"/api/transcriptions/{record.id}", headers=auth_headers)

        assert resp.status == 200
        assert len(record_store.list_records(2)) == 1

    async def test_dictionary_crud(self, client, auth_headers):
        resp = await client.post("/api/dictionary", headers=auth_headers,
                                 json={"word": "nginx", "pronunciation": "engine x"})
        assert resp.status == 201
        word = (await resp.json())["word"]
        assert word["word"] == "nginx"

        # Adding again updates the pronunciation
        resp = await client.post("/api/dictionary", headers=auth_headers,
                                 json={"word": "nginx", "pronunciation": "engine ex"})
        assert (await resp.json())["word"]["id"] == word["id"]

        resp = await client.get("/api/dictionary", headers=auth_headers)
        words = (await resp.json())["words"]
        assert words == [{"id": word["id"], "word": "nginx", "pronunciation": "engine ex"}]

        resp = await client.delete(f"/api/dictionary/{word['id']}", headers=auth_headers)
        assert resp.status == 200
        resp = await client.get("/api/dictionary", headers=auth_headers)
        assert (await resp.json())["words"] == []

    async def test_add_word_requires_word(self, client, auth_headers):
        resp = await client.post("/api/dictionary", headers=auth_headers, json={"pronunciation": "x"})

        assert resp.status == 400
        assert await resp.json() == {"error": "Word is required"}

    async def test_dictionary_feeds_prompt(self, client, auth_headers, backend):
        await client.post("/api/dictionary", headers=auth_headers, json={"word": "Kubernetes"})
        await client.post("/api/transcribe", headers=auth_headers, data=audio_form(4096, isStreaming="true"))

        assert backend.calls[0]["prompt"].startswith("Custom words: Kubernetes. ")

    async def test_backend_closed_on_cleanup(self, aiohttp_client, test_config, record_store, fake_backend_factory):
        backend = fake_backend_factory()
        test_client = await aiohttp_client(create_app(test_config, store=record_store, backend=backend))

        await test_client.close()

        assert backend.closed is True

    async def test_non_integer_id_rejected(self, client, auth_headers):
        resp = await client.delete("/api/dictionary/abc", headers=auth_headers)

        assert resp.status == 400
        assert await resp.json() == {"error": "Invalid word ID"}


@pytest.mark.integration
class TestBlockingWork:

    async def test_run_blocking_uses_worker_thread(self):
        thread_name = await run_blocking(lambda: threading.current_thread().name)
        assert thread_name != threading.main_thread().name

    async def test_run_blocking_propagates_errors(self):
        def fail(message):
            raise ValidationError(message)

        with pytest.raises(ValidationError, match="bad input"):
            await run_blocking(fail, "bad input")

    async def test_health_answers_while_signup_hashes(self, client):
        async def signup_user(i):
            return await client.post("/api/auth/signup",
                                     json={"email": f"user{i}@example.com", "password": "password123"})

        responses = await asyncio.gather(client.get("/health"), *(signup_user(i) for i in range(3)))

        assert responses[0].status == 200
        assert [r.status for r in responses[1:]] == [201, 201, 201]
        assert len({(await r.json())["user"]["id"] for r in responses[1:]}) == 3
