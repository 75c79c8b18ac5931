"""Linear wizard driver.

Identity -> StylePreferences -> Moodboard -> Generating -> Preview.

Only the Generating step must call out; it does so exactly once per pass and
always lands in Preview, with either tokens or an error message. Moodboard
analysis is best effort and never blocks the flow. Going back and forward
again is the only way to retry.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from ..core.structured_logging import LoggerFactory, log_business_event
from ..models.exceptions import (
    AnalysisError,
    ExtractionFailed,
    StepIncompleteError,
    StepTransitionError,
    TokenGenerationError,
)
from ..models.schemas import MoodboardAnalysis, TokenSet
from ..services.palette import extract_palette, to_data_url
from .client import Boundary
from .state import STEP_ORDER, WizardState, WizardStep, WizardStore
from .tasks import CancellationToken, settle

logger = logging.getLogger(__name__)
slog = LoggerFactory.get_logger(__name__)

ANALYSIS_FAILED_NOTICE = "AI analysis failed. Please try again."
EXTRACTION_FAILED_NOTICE = "Could not analyze image colors."

Extractor = Callable[[bytes], List[str]]


@dataclass
class MoodboardOutcome:
    palette: List[str] = field(default_factory=list)
    analysis: Optional[MoodboardAnalysis] = None
    notice: Optional[str] = None
    stale: bool = False


@dataclass(frozen=True)
class PreviewResult:
    tokens: Optional[TokenSet] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.tokens is not None


@dataclass(frozen=True)
class PreviewSummary:
    brand_name: str
    style: str
    typography: str
    industry: str
    moodboard_count: int


class WizardPipeline:
    def __init__(self, boundary: Boundary, store: Optional[WizardStore] = None,
                 extractor: Extractor = extract_palette) -> None:
        self.boundary = boundary
        self.store = store or WizardStore()
        self.session_id = uuid.uuid4().hex[:12]
        self._extract = extractor
        self._step = WizardStep.IDENTITY
        self._analysis_token: Optional[CancellationToken] = None
        self._generation_token: Optional[CancellationToken] = None
        self.moodboard: Optional[MoodboardOutcome] = None
        self.preview: Optional[PreviewResult] = None

    @property
    def current_step(self) -> WizardStep:
        return self._step

    @property
    def state(self) -> WizardState:
        return self.store.snapshot()

    def missing_fields(self) -> List[str]:
        return self.store.missing_fields(self._step)

    def can_advance(self) -> bool:
        if self._step in (WizardStep.GENERATING, WizardStep.PREVIEW):
            return False
        return not self.missing_fields()

    # Field entry

    def set_identity(self, *, brand_name: Optional[str] = None, purpose: Optional[str] = None,
                     values: Optional[str] = None, niche: Optional[Union[str, Sequence[str]]] = None) -> None:
        self._require_step(WizardStep.IDENTITY, "edit identity")
        fields = {"brand_name": brand_name, "purpose": purpose, "values": values, "niche": niche}
        self.store.set(WizardStep.IDENTITY, {k: v for k, v in fields.items() if v is not None})

    def set_style(self, *, theme: Optional[str] = None, warmth: Optional[int] = None,
                  brightness: Optional[int] = None, typography: Optional[str] = None) -> None:
        self._require_step(WizardStep.STYLE_PREFERENCES, "edit style preferences")
        fields = {"theme": theme, "warmth": warmth, "brightness": brightness, "typography": typography}
        self.store.set(WizardStep.STYLE_PREFERENCES, {k: v for k, v in fields.items() if v is not None})

    async def attach_moodboard(self, image: bytes, mime: str = "image/png") -> MoodboardOutcome:
        """Extract a palette and ask for an analysis; failures only set a notice."""
        self._require_step(WizardStep.MOODBOARD, "attach a moodboard")
        self._cancel(self._analysis_token)

        outcome = MoodboardOutcome()
        self.moodboard = outcome

        # Registered before extraction so leaving the step also drops the palette
        token = CancellationToken("moodboard")
        self._analysis_token = token

        try:
            palette = list(await asyncio.to_thread(self._extract, image))
        except ExtractionFailed as e:
            if token.cancelled:
                outcome.stale = True
                return outcome
            self._analysis_token = None
            logger.warning(f"Palette extraction failed: {e.message}", extra={"session_id": self.session_id})
            outcome.notice = EXTRACTION_FAILED_NOTICE
            return outcome

        if token.cancelled:
            logger.info("Dropping stale moodboard palette", extra={"session_id": self.session_id})
            outcome.stale = True
            return outcome

        outcome.palette = palette
        data_url = to_data_url(image, mime)
        self.store.set(WizardStep.MOODBOARD, {"moodboard_image": data_url})

        settled = await settle(token, self.boundary.analyze_moodboard(data_url, outcome.palette), AnalysisError)
        if settled.stale:
            logger.info("Dropping stale moodboard analysis", extra={"session_id": self.session_id})
            outcome.stale = True
            return outcome

        self._analysis_token = None
        if settled.error is not None:
            outcome.notice = ANALYSIS_FAILED_NOTICE
        else:
            outcome.analysis = settled.value
        return outcome

    def remove_moodboard(self) -> None:
        self._require_step(WizardStep.MOODBOARD, "remove the moodboard")
        self._cancel(self._analysis_token)
        self._analysis_token = None
        self.store.set(WizardStep.MOODBOARD, {"moodboard_image": None})
        self.moodboard = None

    # Navigation

    async def advance(self) -> WizardStep:
        step = self._step
        if step in (WizardStep.GENERATING, WizardStep.PREVIEW):
            raise StepTransitionError(step.value, "advance")
        missing = self.store.missing_fields(step)
        if missing:
            raise StepIncompleteError(step.value, missing)

        if step is WizardStep.MOODBOARD:
            return await self._generate()

        self._step = STEP_ORDER[STEP_ORDER.index(step) + 1]
        log_business_event(slog, "wizard_step", session_id=self.session_id, step=self._step.value)
        return self._step

    def back(self) -> WizardStep:
        step = self._step
        if step is WizardStep.IDENTITY:
            raise StepTransitionError(step.value, "go back")

        if step in (WizardStep.GENERATING, WizardStep.PREVIEW):
            self._cancel(self._generation_token)
            self._generation_token = None
            self.preview = None
            self._step = WizardStep.MOODBOARD
        else:
            if step is WizardStep.MOODBOARD:
                self._cancel(self._analysis_token)
                self._analysis_token = None
            self._step = STEP_ORDER[STEP_ORDER.index(step) - 1]

        log_business_event(slog, "wizard_step", session_id=self.session_id, step=self._step.value)
        return self._step

    def reset(self) -> None:
        self._cancel(self._analysis_token)
        self._cancel(self._generation_token)
        self._analysis_token = None
        self._generation_token = None
        self.store.reset()
        self.moodboard = None
        self.preview = None
        self._step = WizardStep.IDENTITY

    def summary(self) -> PreviewSummary:
        state = self.store.snapshot()
        return PreviewSummary(
            brand_name=state.brand_name,
            style=state.theme or "Not set",
            typography=state.typography or "Not set",
            industry=", ".join(state.niche) or "General",
            moodboard_count=1 if state.moodboard_image else 0,
        )

    # Internals

    async def _generate(self) -> WizardStep:
        self._cancel(self._analysis_token)
        self._analysis_token = None

        token = CancellationToken("generate")
        self._generation_token = token
        self.preview = None
        self._step = WizardStep.GENERATING
        log_business_event(slog, "wizard_step", session_id=self.session_id, step=self._step.value)

        settled = await settle(token, self._request_tokens(), TokenGenerationError)
        if settled.stale:
            logger.info("Dropping stale token generation result", extra={"session_id": self.session_id})
            return self._step

        self._generation_token = None
        if settled.error is not None:
            self.preview = PreviewResult(error=settled.error.message)
        else:
            self.preview = PreviewResult(tokens=settled.value)
        self._step = WizardStep.PREVIEW
        log_business_event(slog, "wizard_step", session_id=self.session_id, step=self._step.value,
                           ok=self.preview.ok)
        return self._step

    async def _request_tokens(self) -> TokenSet:
        try:
            request = self.store.to_request()
        except PydanticValidationError as e:
            logger.warning(f"Could not assemble token request: {e}", extra={"session_id": self.session_id})
            raise TokenGenerationError("Wizard answers could not be turned into a token request") from e
        return await self.boundary.generate_tokens(request)

    def _require_step(self, step: WizardStep, action: str) -> None:
        if self._step is not step:
            raise StepTransitionError(self._step.value, action)

    @staticmethod
    def _cancel(token: Optional[CancellationToken]) -> None:
        if token is not None:
            token.cancel()
