"""
Mermaid source -> image URL rendering.

The render service takes base64-encoded Mermaid source in the URL path and
returns a PNG, so "rendering" is building that URL. `verify` fetches it once
to surface syntax errors before the CDN is asked to import the image.
"""

import base64
import logging
from typing import Optional

import httpx

from repobook.config import settings
from repobook.exceptions import DiagramGenerationError

logger = logging.getLogger(__name__)


def mermaid_image_url(source: str, base_url: Optional[str] = None) -> str:
    """Build the render URL for Mermaid source (white background)."""
    encoded = base64.b64encode(source.encode("utf-8")).decode("ascii")
    root = (base_url or settings.mermaid_render_url).rstrip("/")
    return f"{root}/{encoded}?bgColor=FFFFFF"


class MermaidRenderer:
    """
    Render Mermaid diagrams through the configured HTTP service.

    Args:
        base_url: Render service root (defaults to settings)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url or settings.mermaid_render_url
        self.timeout = timeout
        self.transport = transport

    def image_url(self, source: str) -> str:
        return mermaid_image_url(source, self.base_url)

    def verify(self, url: str) -> None:
        """
        Fetch a render URL and fail if the service rejects the diagram.

        Raises:
            DiagramGenerationError: On HTTP error status or transport failure
        """
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(url)
        except httpx.RequestError as e:
            raise DiagramGenerationError(f"Diagram render request failed: {e}") from e

        if response.status_code >= 400:
            logger.warning(f"Render service returned {response.status_code} for diagram")
            raise DiagramGenerationError(
                f"Diagram render failed with status {response.status_code}"
            )

    def render(self, source: str, verify: bool = True) -> str:
        """Return the image URL for `source`, optionally checking it renders."""
        url = self.image_url(source)
        if verify:
            self.verify(url)
        return url
