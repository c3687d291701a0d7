"""
Diagram generator.

Asks the LLM for Mermaid source for one diagram type, renders it through the
Mermaid image service and stores the image on the CDN.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional

from repobook.config import settings
from repobook.diagrams.renderer import MermaidRenderer
from repobook.diagrams.uploader import CloudinaryUploader
from repobook.exceptions import (
    DiagramGenerationError,
    InvalidInputError,
    LLMPayloadError,
    UpstreamError,
)
from repobook.llm.payload import FirstObjectValue, KnownKey, extract_payload
from repobook.llm.service import CompletionService

logger = logging.getLogger(__name__)

DIAGRAM_SYSTEM_PROMPT = "You are a Mermaid.js expert. Generate ONLY valid mermaid code."

_UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9\-_]")
_LEADING_MERMAID_FENCE = re.compile(r"^```mermaid\s*")
_LEADING_FENCE = re.compile(r"^```\s*")
_TRAILING_FENCE = re.compile(r"```$")


@dataclass
class GeneratedDiagram:
    """A rendered and uploaded diagram."""

    diagram_type: str
    url: str
    source_code: str


def safe_name(value: Optional[str], default: str) -> str:
    """Make a value usable inside a CDN public id."""
    return _UNSAFE_NAME_CHARS.sub("_", value or default)


def clean_mermaid(code: str) -> str:
    """Strip code fences around Mermaid source."""
    code = _LEADING_MERMAID_FENCE.sub("", code)
    code = _LEADING_FENCE.sub("", code)
    return _TRAILING_FENCE.sub("", code).strip()


def build_diagram_prompt(diagram_type: str, context: str) -> str:
    return f"""Context:
{context}

Analyze the codebase context and generate a valid Mermaid.js diagram code for: **{diagram_type}**.

Return ONLY a JSON object:
{{
  "code": "graph TD..."
}}
"""


class DiagramGenerator:
    """
    Generate a single diagram end to end.

    Args:
        completions: LLM completion service
        renderer: Mermaid render service client
        uploader: CDN uploader
        folder: CDN folder for generated diagrams
        clock_ms: Returns the current time in milliseconds (for public ids)
    """

    def __init__(
        self,
        completions: CompletionService,
        renderer: Optional[MermaidRenderer] = None,
        uploader: Optional[CloudinaryUploader] = None,
        folder: Optional[str] = None,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
    ):
        self.completions = completions
        self.renderer = renderer or MermaidRenderer()
        self.uploader = uploader or CloudinaryUploader()
        self.folder = folder or settings.cloudinary_diagram_folder
        self.clock_ms = clock_ms

    def generate(
        self, diagram_type: str, context: str, repo_name: Optional[str] = None
    ) -> GeneratedDiagram:
        """
        Produce one diagram.

        Raises:
            InvalidInputError: If the diagram type or context is empty
            DiagramGenerationError: If any step (LLM, payload, render, upload) fails
        """
        if not diagram_type or not context:
            raise InvalidInputError("Missing required fields")

        logger.info(f"Generating diagram: {diagram_type}")
        try:
            raw = self.completions.complete(
                DIAGRAM_SYSTEM_PROMPT,
                build_diagram_prompt(diagram_type, context),
                json_mode=True,
                purpose="diagram",
            )
            code = extract_payload(raw, (KnownKey("code"), FirstObjectValue()))
        except (UpstreamError, LLMPayloadError) as e:
            raise DiagramGenerationError(str(e)) from e

        source = clean_mermaid(code)
        if not source:
            raise DiagramGenerationError("No code returned")

        image_url = self.renderer.render(source)
        public_id = (
            f"{safe_name(repo_name, 'unknown_repo')}_"
            f"{safe_name(diagram_type, 'diagram')}_{self.clock_ms()}"
        )
        url = self.uploader.upload(image_url, public_id=public_id, folder=self.folder)

        return GeneratedDiagram(diagram_type=diagram_type, url=url, source_code=source)
