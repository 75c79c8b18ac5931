"""Unit tests for the wizard pipeline."""

import asyncio
import threading

import pytest

from tokenforge.models.exceptions import (
    AnalysisError,
    ExtractionFailed,
    StepIncompleteError,
    StepTransitionError,
    TokenGenerationError,
)
from tokenforge.models.schemas import MainColor, MoodboardAnalysis, TokenGenerationRequest, TokenSet
from tokenforge.wizard.pipeline import (
    ANALYSIS_FAILED_NOTICE,
    EXTRACTION_FAILED_NOTICE,
    WizardPipeline,
)
from tokenforge.wizard.state import WizardStep, WizardStore

PALETTE = ["#112233", "#445566", "#778899", "#aabbcc", "#ddeeff"]


class FakeBoundary:
    """Records calls; optionally blocks until released."""

    def __init__(self, tokens=None, analysis=None, token_error=None, analysis_error=None):
        self.tokens = tokens
        self.analysis = analysis or MoodboardAnalysis(
            main_color=MainColor(name="Navy", hex="#112233"), style="Minimal", colors=PALETTE,
        )
        self.token_error = token_error
        self.analysis_error = analysis_error
        self.token_requests = []
        self.analysis_calls = []
        self.gate = None

    async def _wait(self):
        if self.gate is not None:
            await self.gate.wait()

    async def analyze_moodboard(self, image_base64, palette):
        self.analysis_calls.append((image_base64, list(palette)))
        await self._wait()
        if self.analysis_error:
            raise self.analysis_error
        return self.analysis

    async def generate_tokens(self, request):
        self.token_requests.append(request)
        await self._wait()
        if self.token_error:
            raise self.token_error
        return self.tokens


def _extract(image):
    return list(PALETTE)


def _fail_extract(image):
    raise ExtractionFailed("unreadable image")


class UnbuildableStore(WizardStore):
    def to_request(self):
        return TokenGenerationRequest(brand_name="", purpose="", values="")


def _blocking_extractor():
    started = threading.Event()
    release = threading.Event()

    def extract(image):
        started.set()
        release.wait(5)
        return list(PALETTE)

    return extract, started, release


async def _until(event):
    while not event.is_set():
        await asyncio.sleep(0.01)


@pytest.fixture
def tokens(acme_tokens):
    return TokenSet.model_validate(acme_tokens)


@pytest.fixture
def boundary(tokens):
    return FakeBoundary(tokens=tokens)


@pytest.fixture
def pipeline(boundary):
    return WizardPipeline(boundary, extractor=_extract)


async def _to_moodboard(pipeline):
    pipeline.set_identity(brand_name="Acme", purpose="Sell widgets", values="Trust", niche=["tech"])
    await pipeline.advance()
    pipeline.set_style(theme="minimal", warmth=50, brightness=50, typography="modern")
    await pipeline.advance()
    assert pipeline.current_step is WizardStep.MOODBOARD


class TestStepGating:

    async def test_identity_requires_fields(self, pipeline, boundary):
        with pytest.raises(StepIncompleteError) as exc_info:
            await pipeline.advance()
        assert exc_info.value.missing == ["brand_name", "purpose", "values"]
        assert pipeline.current_step is WizardStep.IDENTITY
        assert not pipeline.can_advance()
        assert boundary.token_requests == []

    async def test_style_requires_theme_and_typography(self, pipeline):
        pipeline.set_identity(brand_name="Acme", purpose="p", values="v")
        await pipeline.advance()
        pipeline.set_style(theme="bold")
        with pytest.raises(StepIncompleteError) as exc_info:
            await pipeline.advance()
        assert exc_info.value.missing == ["typography"]

    async def test_fields_only_editable_on_their_step(self, pipeline):
        with pytest.raises(StepTransitionError):
            pipeline.set_style(theme="bold")
        with pytest.raises(StepTransitionError):
            await pipeline.attach_moodboard(b"img")

    async def test_cannot_go_back_from_identity(self, pipeline):
        with pytest.raises(StepTransitionError):
            pipeline.back()

    async def test_moodboard_is_optional(self, pipeline):
        await _to_moodboard(pipeline)
        assert pipeline.can_advance()


class TestGeneration:

    async def test_happy_path(self, pipeline, boundary, tokens):
        await _to_moodboard(pipeline)
        assert await pipeline.advance() is WizardStep.PREVIEW
        assert pipeline.preview.ok
        assert pipeline.preview.tokens == tokens
        assert len(boundary.token_requests) == 1
        request = boundary.token_requests[0]
        assert request.brand_name == "Acme"
        assert request.niche == "tech"
        assert request.warmth == "50"
        assert request.moodboard_image_base64 is None

    async def test_failure_lands_in_preview_with_error(self, pipeline, boundary):
        boundary.token_error = TokenGenerationError()
        await _to_moodboard(pipeline)
        assert await pipeline.advance() is WizardStep.PREVIEW
        assert not pipeline.preview.ok
        assert pipeline.preview.error == "Token generation error"
        assert len(boundary.token_requests) == 1

    async def test_no_advance_from_preview(self, pipeline):
        await _to_moodboard(pipeline)
        await pipeline.advance()
        with pytest.raises(StepTransitionError):
            await pipeline.advance()

    async def test_back_and_forward_is_the_retry(self, pipeline, boundary, tokens):
        boundary.token_error = TokenGenerationError()
        await _to_moodboard(pipeline)
        await pipeline.advance()
        assert pipeline.back() is WizardStep.MOODBOARD
        assert pipeline.preview is None

        boundary.token_error = None
        await pipeline.advance()
        assert pipeline.preview.tokens == tokens
        assert len(boundary.token_requests) == 2

    async def test_abandoned_generation_is_dropped(self, pipeline, boundary):
        await _to_moodboard(pipeline)
        boundary.gate = asyncio.Event()

        task = asyncio.create_task(pipeline.advance())
        await asyncio.sleep(0)
        assert pipeline.current_step is WizardStep.GENERATING
        assert not pipeline.can_advance()

        assert pipeline.back() is WizardStep.MOODBOARD
        boundary.gate.set()
        await task

        assert pipeline.current_step is WizardStep.MOODBOARD
        assert pipeline.preview is None

    async def test_long_answers_reach_the_model(self, pipeline, boundary, tokens):
        pipeline.set_identity(brand_name="A" * 201, purpose="p" * 3000, values="Trust")
        await pipeline.advance()
        pipeline.set_style(theme="minimal", typography="modern")
        await pipeline.advance()
        assert await pipeline.advance() is WizardStep.PREVIEW
        assert pipeline.preview.tokens == tokens
        assert boundary.token_requests[0].brand_name == "A" * 201

    async def test_unbuildable_request_lands_in_preview_with_error(self, boundary):
        pipeline = WizardPipeline(boundary, store=UnbuildableStore(), extractor=_extract)
        await _to_moodboard(pipeline)
        assert await pipeline.advance() is WizardStep.PREVIEW
        assert not pipeline.preview.ok
        assert "token request" in pipeline.preview.error
        assert boundary.token_requests == []

    async def test_summary(self, pipeline):
        await _to_moodboard(pipeline)
        await pipeline.advance()
        summary = pipeline.summary()
        assert summary.brand_name == "Acme"
        assert summary.style == "minimal"
        assert summary.typography == "modern"
        assert summary.industry == "tech"
        assert summary.moodboard_count == 0

    async def test_reset(self, pipeline):
        await _to_moodboard(pipeline)
        await pipeline.advance()
        pipeline.reset()
        assert pipeline.current_step is WizardStep.IDENTITY
        assert pipeline.preview is None
        assert pipeline.state.brand_name == ""


class TestMoodboard:

    async def test_analysis(self, pipeline, boundary):
        await _to_moodboard(pipeline)
        outcome = await pipeline.attach_moodboard(b"image-bytes", "image/jpeg")
        assert outcome.palette == PALETTE
        assert outcome.analysis.style == "Minimal"
        assert outcome.notice is None
        image, palette = boundary.analysis_calls[0]
        assert image.startswith("data:image/jpeg;base64,")
        assert palette == PALETTE

    async def test_image_goes_with_the_token_request(self, pipeline, boundary):
        await _to_moodboard(pipeline)
        await pipeline.attach_moodboard(b"image-bytes")
        await pipeline.advance()
        assert boundary.token_requests[0].moodboard_image_base64.startswith("data:image/png;base64,")
        assert pipeline.summary().moodboard_count == 1

    async def test_analysis_failure_sets_notice_only(self, pipeline, boundary):
        boundary.analysis_error = AnalysisError()
        await _to_moodboard(pipeline)
        outcome = await pipeline.attach_moodboard(b"image-bytes")
        assert outcome.notice == ANALYSIS_FAILED_NOTICE
        assert outcome.analysis is None
        assert outcome.palette == PALETTE
        assert await pipeline.advance() is WizardStep.PREVIEW

    async def test_extraction_failure_skips_analysis(self, boundary):
        pipeline = WizardPipeline(boundary, extractor=_fail_extract)
        await _to_moodboard(pipeline)
        outcome = await pipeline.attach_moodboard(b"not an image")
        assert outcome.notice == EXTRACTION_FAILED_NOTICE
        assert boundary.analysis_calls == []
        assert pipeline.state.moodboard_image is None
        assert pipeline.can_advance()

    async def test_removed_moodboard_drops_late_analysis(self, pipeline, boundary):
        await _to_moodboard(pipeline)
        boundary.gate = asyncio.Event()

        task = asyncio.create_task(pipeline.attach_moodboard(b"image-bytes"))
        while not boundary.analysis_calls:
            await asyncio.sleep(0)
        pipeline.remove_moodboard()
        boundary.gate.set()
        outcome = await task

        assert outcome.stale
        assert outcome.analysis is None
        assert pipeline.moodboard is None
        assert pipeline.state.moodboard_image is None

    async def test_leaving_the_step_drops_late_analysis(self, pipeline, boundary):
        await _to_moodboard(pipeline)
        boundary.gate = asyncio.Event()

        task = asyncio.create_task(pipeline.attach_moodboard(b"image-bytes"))
        while not boundary.analysis_calls:
            await asyncio.sleep(0)
        assert pipeline.back() is WizardStep.STYLE_PREFERENCES
        boundary.gate.set()
        outcome = await task

        assert outcome.stale
        assert outcome.analysis is None

    async def test_reset_during_extraction_drops_palette(self, boundary):
        extract, started, release = _blocking_extractor()
        pipeline = WizardPipeline(boundary, extractor=extract)
        await _to_moodboard(pipeline)

        task = asyncio.create_task(pipeline.attach_moodboard(b"img"))
        await _until(started)
        pipeline.reset()
        release.set()
        outcome = await task

        assert outcome.stale
        assert outcome.palette == []
        assert boundary.analysis_calls == []
        assert pipeline.state.moodboard_image is None
        assert pipeline.current_step is WizardStep.IDENTITY

    async def test_generating_during_extraction_keeps_image_out(self, boundary):
        extract, started, release = _blocking_extractor()
        pipeline = WizardPipeline(boundary, extractor=extract)
        await _to_moodboard(pipeline)

        task = asyncio.create_task(pipeline.attach_moodboard(b"img"))
        await _until(started)
        assert await pipeline.advance() is WizardStep.PREVIEW
        release.set()
        outcome = await task

        assert outcome.stale
        assert boundary.analysis_calls == []
        assert boundary.token_requests[0].moodboard_image_base64 is None
        assert pipeline.state.moodboard_image is None
