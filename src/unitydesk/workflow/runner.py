"""Drives a WorkflowState, carrying out the actions each transition asks for."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from unitydesk.complaints.service import AppServices, WorkflowSubmission, submit_from_workflow
from unitydesk.errors import WorkflowError
from unitydesk.models import AuthUser, LocationData
from unitydesk.pipeline.common.schemas import EdgeValidation, VisionAnalysis
from unitydesk.pipeline.text_analysis import analyze_text_complaint
from unitydesk.pipeline.vision import analyze_images, merge_analyses, validate_civic_image
from unitydesk.utils.logging import get_logger
from unitydesk.utils.text import strip_data_uri
from unitydesk.workflow import machine
from unitydesk.workflow.machine import Action, Transition, Variant, WorkflowState


logger = get_logger(__name__)

EdgeValidator = Callable[[str], Awaitable[EdgeValidation]]
Analyzer = Callable[[WorkflowState], Awaitable[VisionAnalysis]]
Submitter = Callable[[WorkflowSubmission], Awaitable[dict[str, Any]]]


def build_submission(state: WorkflowState, is_anonymous: bool = True) -> WorkflowSubmission:
    if state.complaint is None or state.analysis is None:
        raise WorkflowError("Nothing to submit yet")
    return WorkflowSubmission(
        images=list(state.images),
        complaint_data=state.complaint,
        location=state.location,
        ai_analysis=state.analysis,
        is_anonymous=is_anonymous,
    )


class WorkflowRunner:
    """Holds the current state and performs requested side effects in order."""

    def __init__(
        self,
        variant: Variant,
        edge_validate: EdgeValidator,
        analyze: Analyzer,
        submit: Submitter,
        min_chars: int = 10,
        is_anonymous: bool = True,
    ) -> None:
        self.state = machine.begin(variant, min_chars)
        self._edge_validate = edge_validate
        self._analyze = analyze
        self._submit = submit
        self.is_anonymous = is_anonymous

    @classmethod
    def from_services(
        cls,
        services: AppServices,
        variant: Variant,
        user: Optional[AuthUser] = None,
    ) -> "WorkflowRunner":
        settings = services.settings
        version = settings.prompt_version

        async def edge_validate(image: str) -> EdgeValidation:
            return await validate_civic_image(services.llm, strip_data_uri(image), version)

        async def analyze(state: WorkflowState) -> VisionAnalysis:
            if state.variant is Variant.IMAGE:
                analyses = await analyze_images(
                    services.llm, [strip_data_uri(image) for image in state.images], version
                )
                return merge_analyses(analyses)
            return await analyze_text_complaint(
                services.llm, state.text, settings.min_text_chars, version
            )

        async def submit(payload: WorkflowSubmission) -> dict[str, Any]:
            return await submit_from_workflow(services, payload, user)

        return cls(
            variant,
            edge_validate,
            analyze,
            submit,
            min_chars=settings.min_text_chars,
            is_anonymous=user is None,
        )

    async def _validate_images(self, state: WorkflowState) -> EdgeValidation:
        verdict = EdgeValidation(is_valid=True)
        for image in state.images:
            verdict = await self._edge_validate(image)
            if not verdict.is_valid:
                break
        return verdict

    async def _perform(self, transition: Transition) -> WorkflowState:
        state = transition.state
        pending = list(transition.actions)
        while pending:
            action = pending.pop(0)
            if action is Action.REQUEST_EDGE_VALIDATION:
                step = machine.apply_edge_validation(state, await self._validate_images(state))
            elif action is Action.REQUEST_ANALYSIS:
                try:
                    analysis = await self._analyze(state)
                except Exception as exc:
                    logger.exception("workflow.analysis.failed variant=%s", state.variant.value)
                    step = machine.apply_analysis(state, None, str(exc) or "Analysis failed")
                else:
                    step = machine.apply_analysis(state, analysis)
            elif action is Action.REQUEST_SUBMISSION:
                result = await self._submit(build_submission(state, self.is_anonymous))
                step = machine.apply_submission(state, result)
            else:
                logger.debug("workflow.action action=%s step=%s", action.value, state.step.value)
                continue
            state = step.state
            pending.extend(step.actions)

        self.state = state
        return state

    async def capture_images(self, images: list[str]) -> WorkflowState:
        return await self._perform(machine.capture_images(self.state, images))

    async def enter_text(self, text: str) -> WorkflowState:
        return await self._perform(machine.enter_text(self.state, text))

    async def advance(self) -> WorkflowState:
        """Leave capture and run validation and analysis as far as they go."""
        return await self._perform(machine.advance_from_capture(self.state))

    async def set_location(self, location: Optional[LocationData]) -> WorkflowState:
        return await self._perform(machine.set_location(self.state, location))

    async def continue_to_edit(self) -> WorkflowState:
        return await self._perform(machine.continue_to_edit(self.state))

    async def edit(self, name: str, value: Any) -> WorkflowState:
        return await self._perform(machine.edit_field(self.state, name, value))

    async def continue_to_preview(self) -> WorkflowState:
        return await self._perform(machine.continue_to_preview(self.state))

    async def back_to_edit(self) -> WorkflowState:
        return await self._perform(machine.back_to_edit(self.state))

    async def submit(self) -> WorkflowState:
        return await self._perform(machine.request_submission(self.state))

    def restart(self) -> WorkflowState:
        self.state = machine.restart(self.state)
        return self.state
