"""
Document Renderer
Layout Translator

Sends final markup to the rendering backend and stores the binary
artifact (PDF) it returns.
"""

from pathlib import Path
from typing import Optional, Union

import httpx

from config.constants import (
    DEFAULT_PAGE_FORMAT,
    RENDERER_API_URL,
    RENDERER_TIMEOUT_SECONDS,
)
from config.logging_config import get_logger
from core.errors import GenerationError

logger = get_logger(__name__)


class DocumentRenderer:
    """
    Client for the rendering backend.

    POSTs ``{"source": markup, "format": page_format}`` with a bearer token
    and expects the artifact bytes back. Non-success responses and transport
    failures raise GenerationError.

    Usage:
        renderer = DocumentRenderer(api_key="...")
        await renderer.render_to_file(html, output_path)
        await renderer.close()
    """

    def __init__(
        self,
        api_url: str = RENDERER_API_URL,
        api_key: str = "",
        page_format: str = DEFAULT_PAGE_FORMAT,
        timeout: float = RENDERER_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_url: Rendering endpoint
            api_key: Bearer token (omitted from the request when empty)
            page_format: Page format passed to the backend
            timeout: Request timeout in seconds
            client: Pre-built client (tests inject one with a mock transport)
        """
        self.api_url = api_url
        self.api_key = api_key
        self.page_format = page_format
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def render(self, markup: str, path: Optional[str] = None) -> bytes:
        """
        Render markup to artifact bytes.

        Args:
            markup: Final markup
            path: Artifact path, only used for error context

        Raises:
            GenerationError: On transport failure, non-2xx status or empty body
        """
        try:
            response = await self._get_client().post(
                self.api_url,
                json={"source": markup, "format": self.page_format},
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise GenerationError(f"rendering backend unreachable: {e}", path=path)

        if not response.is_success:
            raise GenerationError(
                f"rendering backend returned {response.status_code}: {response.text[:200]}",
                path=path,
                status_code=response.status_code,
            )

        if not response.content:
            raise GenerationError("rendering backend returned an empty body", path=path)

        return response.content

    async def render_to_file(self, markup: str, output_path: Union[str, Path]) -> Path:
        """
        Render markup and write the artifact.

        Returns:
            Path to created file
        """
        output_path = Path(output_path)
        content = await self.render(markup, path=str(output_path))

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(content)

        logger.info(f"Rendered {output_path.name} ({len(content):,} bytes)")
        return output_path

    async def close(self) -> None:
        """Release the HTTP client if this renderer created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
