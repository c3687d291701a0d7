"""
Pure state model of the document pipeline.

An Analysis moves through four stages. Stages 1-3 each own one field of the
architecture context; stage 4 only reads them. Advancing replaces exactly
one field, so earlier stage output is never lost.
"""

import enum
import json
from dataclasses import asdict, dataclass, field, replace
from typing import Optional

from repobook.exceptions import InvalidStageTransitionError


class Stage(enum.IntEnum):
    """Pipeline stages, numbered as clients send them."""

    VISION = 1
    STRUCTURE = 2
    VISUALS = 3
    BIND = 4

    @property
    def context_field(self) -> Optional[str]:
        """Architecture context field written by this stage (None for BIND)."""
        return _STAGE_FIELDS.get(self)


_STAGE_FIELDS = {
    Stage.VISION: "textual",
    Stage.STRUCTURE: "structure",
    Stage.VISUALS: "visuals",
}


@dataclass(frozen=True)
class ArchitectureContext:
    """Accumulated narrative output of stages 1-3."""

    textual: str = ""
    structure: str = ""
    visuals: str = ""

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "ArchitectureContext":
        """
        Parse a persisted context blob.

        Blank or malformed input and missing or non-string fields all
        degrade to empty strings.
        """
        if not raw or not raw.strip():
            return cls()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ArchitectureContext":
        data = data or {}

        def text(name: str) -> str:
            value = data.get(name)
            return value if isinstance(value, str) else ""

        return cls(
            textual=text("textual"),
            structure=text("structure"),
            visuals=text("visuals"),
        )

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    def merged(self, other: Optional["ArchitectureContext"]) -> "ArchitectureContext":
        """Overlay the non-empty fields of `other` on this context."""
        if other is None:
            return self
        return ArchitectureContext(
            textual=other.textual or self.textual,
            structure=other.structure or self.structure,
            visuals=other.visuals or self.visuals,
        )


@dataclass(frozen=True)
class PipelineState:
    """Current stage and context of one Analysis."""

    stage: Stage
    context: ArchitectureContext = field(default_factory=ArchitectureContext)


@dataclass(frozen=True)
class StageInput:
    """Output produced by running a stage."""

    stage: Stage
    output: str


def check_transition(current: int, requested: int) -> Stage:
    """
    Validate a move from `current` to `requested`.

    Retrying the current stage and moving to the next one are allowed;
    going backwards or skipping ahead is not.

    Returns:
        The requested Stage

    Raises:
        InvalidStageTransitionError: For any other move or an unknown stage
    """
    if requested not in (current, current + 1):
        raise InvalidStageTransitionError(current, requested)
    try:
        return Stage(requested)
    except ValueError:
        raise InvalidStageTransitionError(current, requested) from None


def advance(state: PipelineState, stage_input: StageInput) -> PipelineState:
    """
    Apply a stage's output to the state.

    Only the field owned by the input's stage is replaced. BIND owns no
    field, so it only moves the stage forward.
    """
    context = state.context
    field_name = stage_input.stage.context_field
    if field_name is not None:
        context = replace(context, **{field_name: stage_input.output})
    return PipelineState(stage=stage_input.stage, context=context)
