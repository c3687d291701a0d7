"""
Prompt builders for the document pipeline.

Each stage writes one chapter of the book: "The Vision", "The Structure" and
"The Blueprint"; the final stage acts as the editor that binds them.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Sequence

from repobook.models.pipeline import DiagramAsset, ImageAsset
from repobook.pipeline.state import ArchitectureContext, Stage

CHAPTER_TITLES = ("The Vision", "The Structure", "The Blueprint")


@dataclass(frozen=True)
class StagePrompt:
    """System and user messages for one stage call."""

    system: str
    user: str
    json_mode: bool = False


def vision_prompt(repo_name: str, aggregated_context: str) -> StagePrompt:
    return StagePrompt(
        system=(
            "You are a technical author writing a best-selling book on "
            "software architecture."
        ),
        user=f"""
Repository Name: {repo_name}

Analyze the provided code context and write "Chapter 1: The Vision".
This chapter must be written in a broad, engaging, and narrative style, suitable for a technical book.

**Content Requirements:**
1.  **Introduction**: A compelling introduction to the project. What is it? Why does it exist?
2.  **Executive Summary**: High-level overview of the problem and solution.
3.  **Key Features**: A detailed, narrative breakdown of the core capabilities.
4.  **Tech Stack**: A discussion on the chosen technologies and why they might have been selected.
5.  **Conclusion**: A wrapping thought on the project's potential.

**Format**: Markdown. Do not include a main title (the reader supplies it). Use standard headers.

Context:
{aggregated_context}
""",
    )


def structure_prompt(repo_name: str, aggregated_context: str) -> StagePrompt:
    return StagePrompt(
        system="You are a software architect explaining the system internals.",
        user=f"""
Repository Name: {repo_name}

Write "Chapter 2: The Structure".
This chapter focuses on the internal organization and architectural decisions.

**Content Requirements:**
1.  **Project Structure**: Generate a clean file tree structure using a markdown code block.
2.  **Architecture Deep Dive**: Explain how the components interact. Is it MVC? Serverless? Monolith?
3.  **Data Flow**: Describe how data moves through the application.
4.  **Component Analysis**: Pick the most critical 3-4 files and explain their specific role in depth.

**Format**: STRICT MARKDOWN. Use headers (##, ###), bullet points, and code blocks for readability. Do not output raw text blocks without formatting.

Context:
{aggregated_context}
""",
    )


def diagram_inventory(
    images: Sequence[ImageAsset], diagrams: Sequence[DiagramAsset]
) -> str:
    """
    Group supplied images and diagrams by section tag as markdown.

    Tags keep the order in which they first appear.
    """
    sections: "OrderedDict[str, list[str]]" = OrderedDict()
    for image in images:
        sections.setdefault(image.tag, []).append(f"- ![User Image]({image.url})")
    for diagram in diagrams:
        sections.setdefault(diagram.tag, []).append(
            f"- **{diagram.diagram_type}**: ![{diagram.diagram_type}]({diagram.url})"
        )

    return "\n\n".join(
        f"#### Section: {tag}\n" + "\n".join(lines) for tag, lines in sections.items()
    )


def blueprint_prompt(
    repo_name: str,
    aggregated_context: str,
    images: Sequence[ImageAsset],
    diagrams: Sequence[DiagramAsset],
) -> StagePrompt:
    inventory = diagram_inventory(images, diagrams)
    if inventory:
        requirements = f"""
1. **Visual Inventory**: The images below were prepared for this chapter, grouped by section.
   - Create one "##" section per group, in the order given, and embed every image of that group.
   - Explain what each image shows and how it relates to the code.
   - **DO NOT** invent, suggest or describe any diagram or image that is not listed below.
   - **DO NOT** write Mermaid code.

**Available Images**:
{inventory}
"""
    else:
        requirements = """
1. **No Images Available**: No diagrams or images were supplied.
   - Describe the system architecture and data flow textually.
   - **DO NOT** invent image links or write Mermaid code.
"""

    return StagePrompt(
        system="You are a visual thinker and systems designer.",
        user=f"""
Repository Name: {repo_name}

Write "Chapter 3: The Blueprint".
This chapter visualizes the system.

**Requirements**:
{requirements}

**Analysis Context**:
{aggregated_context}

**CRITICAL FORMATTING RULES**:
- **ALWAYS** use Markdown Headers (##) for section titles.
- **Images**: Always use `![Alt](url)`, and only with the URLs listed above.
- **Lists**: Use proper markdown lists.
""",
    )


def book_title(repo_name: str) -> str:
    return f"The Semantic Architecture of {repo_name}"


def bind_prompt(repo_name: str, context: ArchitectureContext) -> StagePrompt:
    """Editor prompt; only the three chapters are sent, never the file context."""
    return StagePrompt(
        system="You are a book editor compiling the final manuscript.",
        user=f"""
Repository Name: {repo_name}

Your task is to compile the previous chapters into a final JSON structure for our Book Reader application.

**Inputs:**
- Chapter 1 Data: ```{context.textual}```
- Chapter 2 Data: ```{context.structure}```
- Chapter 3 Data: ```{context.visuals}```

**Output Requirement:**
Return ONLY a valid JSON object. Do not include markdown formatting around the JSON.
Keep exactly these three chapters, in this order.
Structure:
{{
  "title": "{book_title(repo_name)}",
  "chapters": [
    {{ "title": "{CHAPTER_TITLES[0]}", "content": "...content from Chapter 1..." }},
    {{ "title": "{CHAPTER_TITLES[1]}", "content": "...content from Chapter 2..." }},
    {{ "title": "{CHAPTER_TITLES[2]}", "content": "...content from Chapter 3..." }}
  ]
}}
""",
        json_mode=True,
    )


def stage_purpose(stage: Stage) -> str:
    """Log label for a stage call."""
    return f"stage-{int(stage)}-{stage.name.lower()}"
