"""Step-by-step submission workflow as an explicit state machine.

States are immutable. Every transition returns the next state together with
the side effects the driver must carry out (ask for edge validation, run the
analysis, submit, discard captured input). Failures of the asynchronous steps
roll the machine back to capture with the captured input cleared, so nothing
past capture is ever reachable with stale or unvalidated input.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from unitydesk.errors import WorkflowError
from unitydesk.models import ComplaintData, LocationData
from unitydesk.pipeline.common.schemas import EdgeValidation, VisionAnalysis
from unitydesk.pipeline.text_analysis import TOO_SHORT_MESSAGE


class Variant(str, Enum):
    IMAGE = "image"
    TEXT = "text"


class Step(str, Enum):
    CAPTURE = "capture"
    EDGE_VALIDATE = "edge_validate"
    ANALYZE = "analyze"
    LOCATE = "locate"
    EDIT = "edit"
    PREVIEW = "preview"
    COMPLETE = "complete"


class Action(str, Enum):
    CLEAR_CAPTURED = "clear_captured"
    REQUEST_EDGE_VALIDATION = "request_edge_validation"
    REQUEST_ANALYSIS = "request_analysis"
    REQUEST_SUBMISSION = "request_submission"
    DISCARD = "discard"


STEPS: dict[Variant, tuple[Step, ...]] = {
    Variant.IMAGE: (
        Step.CAPTURE,
        Step.EDGE_VALIDATE,
        Step.ANALYZE,
        Step.LOCATE,
        Step.EDIT,
        Step.PREVIEW,
        Step.COMPLETE,
    ),
    Variant.TEXT: (
        Step.CAPTURE,
        Step.ANALYZE,
        Step.LOCATE,
        Step.EDIT,
        Step.PREVIEW,
        Step.COMPLETE,
    ),
}

EDITABLE_FIELDS = frozenset(
    {"type", "description", "department", "severity", "priority", "additional_notes"}
)


@dataclass(frozen=True)
class WorkflowState:
    variant: Variant
    step: Step = Step.CAPTURE
    images: tuple[str, ...] = ()
    text: str = ""
    min_chars: int = 10
    analysis: Optional[VisionAnalysis] = None
    location: Optional[LocationData] = None
    complaint: Optional[ComplaintData] = None
    edited_fields: frozenset[str] = frozenset()
    error: Optional[str] = None
    result: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class Transition:
    state: WorkflowState
    actions: tuple[Action, ...] = field(default_factory=tuple)


def step_number(state: WorkflowState) -> int:
    """1-based position of the current step within its variant."""
    return STEPS[state.variant].index(state.step) + 1


def _require(state: WorkflowState, *steps: Step) -> None:
    if state.step not in steps:
        allowed = ", ".join(step.value for step in steps)
        raise WorkflowError(f"Not allowed at step {state.step.value} (expected {allowed})")


def _rollback(state: WorkflowState, error: str) -> Transition:
    fresh = WorkflowState(variant=state.variant, min_chars=state.min_chars, error=error)
    return Transition(fresh, (Action.CLEAR_CAPTURED,))


def begin(variant: Variant, min_chars: int = 10) -> WorkflowState:
    return WorkflowState(variant=variant, min_chars=min_chars)


def capture_images(state: WorkflowState, images: list[str]) -> Transition:
    """Replace the captured photos; the machine stays on capture."""
    _require(state, Step.CAPTURE)
    if state.variant is not Variant.IMAGE:
        raise WorkflowError("Photos are captured in the image workflow only")
    return Transition(replace(state, images=tuple(images), error=None))


def enter_text(state: WorkflowState, text: str) -> Transition:
    _require(state, Step.CAPTURE)
    if state.variant is not Variant.TEXT:
        raise WorkflowError("Text is entered in the text workflow only")
    return Transition(replace(state, text=text, error=None))


def advance_from_capture(state: WorkflowState) -> Transition:
    """Leave capture once there is something to analyze. No network call here."""
    _require(state, Step.CAPTURE)
    if state.variant is Variant.IMAGE:
        if not state.images:
            raise WorkflowError("Please upload at least 1 image")
        return Transition(
            replace(state, step=Step.EDGE_VALIDATE, error=None),
            (Action.REQUEST_EDGE_VALIDATION,),
        )

    if len(state.text.strip()) < state.min_chars:
        raise WorkflowError(TOO_SHORT_MESSAGE)
    return Transition(replace(state, step=Step.ANALYZE, error=None), (Action.REQUEST_ANALYSIS,))


def apply_edge_validation(state: WorkflowState, verdict: EdgeValidation) -> Transition:
    _require(state, Step.EDGE_VALIDATE)
    if not verdict.is_valid:
        return _rollback(state, verdict.message)
    return Transition(replace(state, step=Step.ANALYZE), (Action.REQUEST_ANALYSIS,))


def _initial_complaint(analysis: VisionAnalysis) -> ComplaintData:
    return ComplaintData(
        type=analysis.type_of_complaint,
        description=analysis.brief_description,
        department=analysis.govt_dept_of_concern,
        severity=analysis.severity,
        priority=analysis.suggested_priority,
    )


def apply_analysis(
    state: WorkflowState,
    analysis: Optional[VisionAnalysis],
    error: Optional[str] = None,
) -> Transition:
    """Record the analysis, or roll back to capture when there is none."""
    _require(state, Step.ANALYZE)
    if analysis is None:
        return _rollback(state, error or "Analysis failed")
    return Transition(
        replace(
            state,
            step=Step.LOCATE,
            analysis=analysis,
            complaint=_initial_complaint(analysis),
        )
    )


def set_location(state: WorkflowState, location: Optional[LocationData]) -> Transition:
    _require(state, Step.LOCATE)
    return Transition(replace(state, location=location))


def continue_to_edit(state: WorkflowState) -> Transition:
    """Location is optional; only the analysis has to be there."""
    _require(state, Step.LOCATE)
    if state.analysis is None:
        raise WorkflowError("Please wait for AI analysis to complete")
    return Transition(replace(state, step=Step.EDIT))


def edit_field(state: WorkflowState, name: str, value: Any) -> Transition:
    _require(state, Step.EDIT)
    if name not in EDITABLE_FIELDS:
        raise WorkflowError(f"Field cannot be edited: {name}")
    if state.complaint is None:
        raise WorkflowError("Nothing to edit yet")
    try:
        complaint = ComplaintData.model_validate(
            {**state.complaint.model_dump(), name: value}
        )
    except ValidationError as exc:
        raise WorkflowError(f"Invalid value for {name}") from exc
    return Transition(
        replace(state, complaint=complaint, edited_fields=state.edited_fields | {name})
    )


def continue_to_preview(state: WorkflowState) -> Transition:
    _require(state, Step.EDIT)
    if state.complaint is None or not state.complaint.description.strip():
        raise WorkflowError("Please describe the issue before continuing")
    return Transition(replace(state, step=Step.PREVIEW))


def back_to_edit(state: WorkflowState) -> Transition:
    _require(state, Step.PREVIEW)
    return Transition(replace(state, step=Step.EDIT, error=None))


def request_submission(state: WorkflowState) -> Transition:
    _require(state, Step.PREVIEW)
    return Transition(replace(state, error=None), (Action.REQUEST_SUBMISSION,))


def apply_submission(state: WorkflowState, result: dict[str, Any]) -> Transition:
    """Finish on success; a failed submission stays on preview for another try."""
    _require(state, Step.PREVIEW)
    if not result.get("success"):
        return Transition(
            replace(state, error=result.get("message") or "Failed to submit complaint")
        )
    return Transition(replace(state, step=Step.COMPLETE, result=result), (Action.DISCARD,))


def restart(state: WorkflowState) -> WorkflowState:
    """Start over for another complaint; nothing is carried over."""
    _require(state, Step.COMPLETE)
    return begin(state.variant, state.min_chars)
