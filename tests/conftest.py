"""Pytest configuration and shared fixtures for the test suite."""

from pathlib import Path

import pytest
import requests

from docchat.errors import SinkClosedError

# Keyword vocabulary of the fake embedder; one dimension per word plus a bias.
VOCABULARY = ("revenue", "profit", "risk", "python", "river", "weather", "report", "policy")
EMBEDDING_DIMENSIONS = len(VOCABULARY) + 1


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def keyword_embedding(text: str) -> list[float]:
    """Deterministic embedding counting vocabulary words."""
    lowered = text.lower()
    return [float(lowered.count(word)) for word in VOCABULARY] + [0.1]


class FakeLLMService:
    """In-process stand-in for an LLM service.

    Embeds by keyword counts, answers with a fixed string and streams a fixed
    list of fragments. Every message list it receives is recorded in ``calls``.
    """

    def __init__(
        self,
        answer: str = "The answer.",
        fragments: list[str] | None = None,
        generate_error: Exception | None = None,
        stream_error: Exception | None = None,
        embed_error: Exception | None = None,
    ):
        self.answer = answer
        self.fragments = fragments if fragments is not None else ["The ", "answer."]
        self.generate_error = generate_error
        self.stream_error = stream_error
        self.embed_error = embed_error
        self.calls: list[list[dict]] = []

    def embed(self, text: str) -> list[float]:
        if self.embed_error:
            raise self.embed_error
        return keyword_embedding(text)

    def generate_embeddings(self, texts: list[str], model: str | None = None) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    async def generate_response(self, messages: list[dict]) -> str:
        self.calls.append(messages)
        if self.generate_error:
            raise self.generate_error
        return self.answer

    def stream_response(self, messages: list[dict], sink) -> None:
        self.calls.append(messages)
        for fragment in self.fragments:
            sink.on_fragment(fragment)
        if self.stream_error:
            sink.on_error(self.stream_error)
            return
        sink.on_complete(None)


class RecordingSink:
    """Output sink that records what it receives.

    Args:
        reject_after: Number of successful sends before raising SinkClosedError
    """

    def __init__(self, reject_after: int | None = None):
        self.events: list[tuple[str, str]] = []
        self.failures: list[BaseException] = []
        self.close_calls = 0
        self.reject_after = reject_after

    def send(self, event: str, data: str) -> None:
        if self.reject_after is not None and len(self.events) >= self.reject_after:
            raise SinkClosedError("client went away")
        self.events.append((event, data))

    def fail(self, cause: BaseException) -> None:
        self.failures.append(cause)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def tokens(self) -> list[str]:
        return [data for event, data in self.events if event == "token"]


# Service fixtures with skip markers
@pytest.fixture
def ollama_service():
    """Provide OllamaService instance, skip if Ollama not available.

    Raises:
        pytest.skip: If Ollama server is not running
    """
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from docchat.llm import OllamaService

    return OllamaService(host="http://localhost:11434", model="llama3")


@pytest.fixture
def fake_llm() -> FakeLLMService:
    """Provide a fake LLM service with default behaviour."""
    return FakeLLMService()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def pipeline(fake_llm):
    """Provide a pipeline wired to the fake LLM service and empty stores."""
    from docchat.service.pipeline import build_pipeline

    return build_pipeline(llm_service=fake_llm)


# Document factories
@pytest.fixture
def make_pdf():
    """Factory fixture writing a one-page PDF containing ``text``."""
    import fitz

    def _make_pdf(path: Path, text: str) -> Path:
        doc = fitz.open()
        page = doc.new_page()
        page.insert_text((72, 72), text)
        doc.save(str(path))
        doc.close()
        return path

    return _make_pdf


@pytest.fixture
def make_docx():
    """Factory fixture writing a .docx file with one paragraph per item."""
    from docx import Document

    def _make_docx(path: Path, paragraphs: list[str]) -> Path:
        document = Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        document.save(str(path))
        return path

    return _make_docx


@pytest.fixture
def docs_dir(tmp_path) -> Path:
    """A small document directory: two good files, one corrupt, one unsupported."""
    root = tmp_path / "docs"
    (root / "nested").mkdir(parents=True)
    (root / "revenue.txt").write_text(
        "Quarterly revenue grew by ten percent.\n\nProfit margins improved as well.",
        encoding="utf-8",
    )
    (root / "nested" / "weather.md").write_text(
        "The river flooded after a week of heavy weather.", encoding="utf-8"
    )
    (root / "broken.pdf").write_bytes(b"this is not a pdf")
    (root / "image.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return root
