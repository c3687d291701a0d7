"""
Pipeline data models.

Plain dataclasses passed between the file analysis step, the document
pipeline and the API layer, before anything is stored in the database.
"""

import json
from dataclasses import dataclass
from typing import Iterable, List, Optional

DEFAULT_TAG = "General"


@dataclass
class FileAnalysis:
    """LLM-written analysis of one repository file."""

    path: str
    analysis: str

    def to_dict(self) -> dict:
        return {"path": self.path, "analysis": self.analysis}


def file_analyses_to_json(analyses: Iterable[FileAnalysis]) -> str:
    """Serialize analyses for `Analysis.file_context`."""
    return json.dumps([item.to_dict() for item in analyses])


def file_analyses_from_json(raw: Optional[str]) -> List[FileAnalysis]:
    """Parse `Analysis.file_context`, skipping malformed entries."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(data, list):
        return []
    return [
        FileAnalysis(path=str(item.get("path", "")), analysis=str(item.get("analysis", "")))
        for item in data
        if isinstance(item, dict)
    ]


@dataclass
class ImageAsset:
    """A user-uploaded image placed under a section tag."""

    url: str
    tag: str = DEFAULT_TAG


@dataclass
class DiagramAsset:
    """An AI-generated diagram placed under a section tag."""

    diagram_type: str
    url: str
    code: str = ""
    tag: str = DEFAULT_TAG
