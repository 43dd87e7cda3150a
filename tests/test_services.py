import httpx
import pytest

from backend.errors import GenerativeServiceError, ValidationError
from backend.services import assistant_service, upload_service
from backend.settings import reset_settings

from conftest import run


@pytest.fixture
def llm_env(monkeypatch):
    monkeypatch.setenv("LLM_API_URL", "https://llm.example.com/v1/chat/completions")
    monkeypatch.setenv("LLM_API_KEY", "k")
    reset_settings()


def test_complete_returns_reply_text(llm_env):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"choices": [{"message": {"content": "  Pay early.  "}}]})

    text = run(assistant_service.complete("How do I pay rent?", transport=httpx.MockTransport(handler)))
    assert text == "Pay early."
    assert seen["auth"] == "Bearer k"


def test_complete_surfaces_api_errors(llm_env):
    transport = httpx.MockTransport(lambda request: httpx.Response(500, json={"error": {"message": "boom"}}))
    with pytest.raises(GenerativeServiceError) as excinfo:
        run(assistant_service.complete("hi", transport=transport))
    assert "boom" in excinfo.value.message


def test_complete_requires_configuration():
    with pytest.raises(GenerativeServiceError):
        run(assistant_service.complete("hi"))


def test_upload_writes_file_and_returns_url():
    url = upload_service.upload("receipt.PDF", b"%PDF-1.4")
    assert url.startswith("http://testserver/uploads/")
    assert url.endswith(".pdf")
    name = url.rsplit("/", 1)[1]
    assert upload_service.resolve(name).read_bytes() == b"%PDF-1.4"
    assert upload_service.resolve("../secrets") is None


def test_upload_rejects_empty_file():
    with pytest.raises(ValidationError):
        upload_service.upload("empty.txt", b"")
