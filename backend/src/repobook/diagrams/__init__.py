"""Diagram generation: Mermaid via LLM, rendering, CDN upload and fan-out."""

from repobook.diagrams.batch import DiagramBatch, DiagramOutcome
from repobook.diagrams.generator import DiagramGenerator, GeneratedDiagram

__all__ = ["DiagramBatch", "DiagramGenerator", "DiagramOutcome", "GeneratedDiagram"]
