"""
Pytest configuration and shared fixtures for Layout Translator tests.
"""
import json
import sys
import pytest
import tempfile
import shutil
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import httpx

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from ai_providers.base import AIConfig, AIMessage, AIProviderType, AIResponse, BaseAIProvider
from config.settings import Settings
from core.errors import ExtractionError
from core.layout_preserve.document_renderer import DocumentRenderer


SAMPLE_MARKUP = """<!DOCTYPE html>
<html>
<head><title>Quarterly report</title><style>.t{font-size:12px}</style></head>
<body>
<div class="pf" data-page-no="1">
  <div class="t"><span class="ff1">Hello</span> world</div>
  <div class="t">   </div>
  <p>Revenue grew by <b>twelve</b> percent.</p>
</div>
<div class="pf" data-page-no="2">
  <div class="t">Thank you</div>
</div>
</body>
</html>
"""


# ============================================================================
# Fakes for external collaborators
# ============================================================================

class FakeProvider(BaseAIProvider):
    """
    Translation backend double.

    Answers each batch with the same items, ``text`` passed through
    ``translate``. ``fail_when(items)`` makes a request raise.
    """

    def __init__(
        self,
        translate: Callable[[str], str] = str.upper,
        fail_when: Optional[Callable[[List[dict]], bool]] = None,
        raw_response: Optional[str] = None,
    ):
        super().__init__(AIConfig(api_key="test", model="fake-model"))
        self.translate = translate
        self.fail_when = fail_when
        self.raw_response = raw_response
        self.calls: List[List[dict]] = []
        self.system_prompts: List[Optional[str]] = []

    @property
    def provider_type(self) -> AIProviderType:
        return AIProviderType.OPENAI

    def _create_client(self):
        return None

    async def _send(self, messages: List[AIMessage], system_prompt: Optional[str], model, max_tokens, temperature) -> AIResponse:
        items = json.loads(messages[-1].content)
        self.calls.append(items)
        self.system_prompts.append(system_prompt)

        if self.fail_when and self.fail_when(items):
            raise RuntimeError("backend unavailable")

        if self.raw_response is not None:
            content = self.raw_response
        else:
            content = json.dumps([
                {**item, "text": self.translate(item["text"])} for item in items
            ])
        return AIResponse(content=content, model="fake-model", provider=self.provider_type)


class FakeConverter:
    """Conversion tool double returning fixed markup per file name."""

    def __init__(self, markup: str = SAMPLE_MARKUP, by_name: Optional[Dict[str, str]] = None, error: Optional[str] = None):
        self.markup = markup
        self.by_name = by_name or {}
        self.error = error
        self.calls: List[tuple] = []

    async def convert(self, source, dest_dir) -> str:
        self.calls.append((Path(source), Path(dest_dir)))
        if self.error:
            raise ExtractionError(self.error, path=str(source))
        return self.by_name.get(Path(source).name, self.markup)


def make_renderer(status_code: int = 200, content: bytes = b"%PDF-1.4 rendered", requests: Optional[list] = None) -> DocumentRenderer:
    """DocumentRenderer wired to an in-memory transport."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status_code, content=content)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DocumentRenderer(
        api_url="https://renderer.test/api/v1/generate/pdf",
        api_key="render-key",
        page_format="A4",
        client=client,
    )


# ============================================================================
# Fixtures: Configuration & Settings
# ============================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Settings pointing at a temporary data directory, with fake keys."""
    return Settings(
        openai_api_key="test_openai_key",
        renderer_api_key="test_renderer_key",
        provider="openai",
        upload_dir=temp_dir / "uploads",
        db_path=temp_dir / "jobs.db",
        max_batch_chars=4000,
        max_parallel_jobs=2,
        log_file="",
    )


# ============================================================================
# Fixtures: Sample Data
# ============================================================================

@pytest.fixture
def sample_markup() -> str:
    return SAMPLE_MARKUP


@pytest.fixture
def sample_pdf(temp_dir: Path) -> Path:
    """A file standing in for an uploaded PDF."""
    path = temp_dir / "report.pdf"
    path.write_bytes(b"%PDF-1.4\n% sample\n")
    return path


# ============================================================================
# Fixtures: Collaborators
# ============================================================================

@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fake_converter() -> FakeConverter:
    return FakeConverter()


@pytest.fixture
def renderer() -> DocumentRenderer:
    return make_renderer()


@pytest.fixture
def provider_factory():
    """FakeProvider class, for tests that configure their own backend."""
    return FakeProvider


@pytest.fixture
def converter_factory():
    """FakeConverter class."""
    return FakeConverter


@pytest.fixture
def renderer_factory():
    """make_renderer(status_code, content, requests)."""
    return make_renderer
