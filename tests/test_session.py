"""
Tests for the capture-and-restyle view state.
"""

import asyncio

import pytest

from ai_hairstylist.capture import StillImageCamera
from ai_hairstylist.errors import InvalidCredentials, ProviderError
from ai_hairstylist.session import DEFAULT_PROMPT, GenerationStatus, HairstyleSession, ViewMode
from ai_hairstylist.tasks.variations import VariationBatchRunner
from ai_hairstylist.types import EncodedImage


class StubEditor:
    def __init__(self, error: Exception | None = None, fail_number: int | None = None):
        self.error = error
        self.fail_number = fail_number
        self.calls = 0

    async def edit_once(self, image: EncodedImage, instruction: str) -> EncodedImage:
        self.calls += 1
        number = int(instruction.rsplit(" ", 1)[1].rstrip("."))
        if self.error is not None and (self.fail_number is None or self.fail_number == number):
            raise self.error
        return EncodedImage(data=f"out-{number}".encode(), media_type="image/png")


def _session(editor: StubEditor, **kwargs) -> HairstyleSession:
    return HairstyleSession(runner=VariationBatchRunner(editor), **kwargs)


class TestSessionTransitions:
    def test_defaults(self):
        session = _session(StubEditor())

        assert session.view is ViewMode.CAPTURE
        assert session.prompt == DEFAULT_PROMPT
        assert session.variation_count == 5
        assert session.status is GenerationStatus.IDLE
        assert not session.is_loading

    def test_capture_switches_to_edit(self, base_data_url):
        session = _session(StubEditor())
        session.error = "old error"
        session.generated_images = ["data:image/png;base64,AAAA"]

        session.capture(base_data_url)

        assert session.view is ViewMode.EDIT
        assert session.image_src == base_data_url
        assert session.generated_images == []
        assert session.error is None

    def test_retake_resets(self, base_data_url):
        session = _session(StubEditor())
        session.capture(base_data_url)
        session.error = "something"

        session.retake()

        assert session.view is ViewMode.CAPTURE
        assert session.image_src is None
        assert session.error is None
        assert session.status is GenerationStatus.IDLE

    @pytest.mark.parametrize("requested, expected", [(0, 1), (3, 3), (10, 10), (25, 10)])
    def test_variation_count_is_clamped(self, requested, expected):
        session = _session(StubEditor())
        assert session.set_variation_count(requested) == expected
        assert session.variation_count == expected

    def test_capture_from_camera(self, tmp_path, jpeg_bytes):
        path = tmp_path / "me.jpg"
        path.write_bytes(jpeg_bytes)
        session = _session(StubEditor())

        with StillImageCamera(path) as camera:
            session.capture_from(camera)

        assert session.view is ViewMode.EDIT
        assert session.image_src.startswith("data:image/jpeg;base64,")


class TestSessionGenerate:
    @pytest.mark.asyncio
    async def test_success_stores_results(self, base_data_url):
        editor = StubEditor()
        session = _session(editor, variation_count=3)
        session.capture(base_data_url)

        await session.generate()

        assert session.status is GenerationStatus.SUCCEEDED
        assert session.error is None
        assert not session.is_loading
        assert len(session.generated_images) == 3
        assert session.generated_images[0] == EncodedImage(b"out-1", "image/png").to_data_url()

    @pytest.mark.asyncio
    async def test_requires_image_and_prompt(self, base_data_url):
        editor = StubEditor()
        session = _session(editor)

        await session.generate()
        assert session.error == "Please ensure you have a captured image and a prompt."

        session.capture(base_data_url)
        session.prompt = ""
        await session.generate()
        assert session.error == "Please ensure you have a captured image and a prompt."
        assert editor.calls == 0

    @pytest.mark.asyncio
    async def test_unparsable_image(self):
        editor = StubEditor()
        session = _session(editor)
        session.capture("not-a-data-url")

        await session.generate()

        assert session.error == "Could not process the captured image format."
        assert session.status is GenerationStatus.FAILED
        assert editor.calls == 0

    @pytest.mark.asyncio
    async def test_failure_clears_results_and_loading(self, base_data_url):
        session = _session(StubEditor(error=ProviderError("overloaded"), fail_number=2), variation_count=4)
        session.capture(base_data_url)
        session.generated_images = ["data:image/png;base64,AAAA"]

        await session.generate()

        assert session.status is GenerationStatus.FAILED
        assert session.generated_images == []
        assert not session.is_loading
        assert session.error == (
            "Generation failed: An error occurred while communicating with the AI model: overloaded"
        )

    @pytest.mark.asyncio
    async def test_credential_error_message(self, base_data_url):
        session = _session(StubEditor(error=InvalidCredentials()))
        session.capture(base_data_url)

        await session.generate()

        assert session.error == (
            "Generation failed: The provided API key is not valid. Please check your configuration."
        )

    @pytest.mark.asyncio
    async def test_partial_results_keep_successes(self, base_data_url):
        session = _session(
            StubEditor(error=ProviderError("overloaded"), fail_number=2),
            variation_count=3,
            partial_results=True,
        )
        session.capture(base_data_url)

        await session.generate()

        assert len(session.generated_images) == 2
        assert session.status is GenerationStatus.FAILED
        assert session.error.startswith("1 of 3 styles failed")


class TestSessionGuards:
    @pytest.mark.asyncio
    async def test_overlapping_generate_runs_one_batch(self, base_data_url):
        editor = StubEditor()
        session = _session(editor, variation_count=3)
        session.capture(base_data_url)

        await asyncio.gather(session.generate(), session.generate())

        assert editor.calls == 3
        assert len(session.generated_images) == 3
        assert session.status is GenerationStatus.SUCCEEDED
        assert session.error is None
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_generate_ignored_while_loading(self, base_data_url):
        editor = StubEditor()
        session = _session(editor)
        session.capture(base_data_url)
        session.is_loading = True

        await session.generate()

        assert editor.calls == 0
        assert session.status is GenerationStatus.IDLE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("assigned, expected", [(0, 1), (-4, 1), (42, 10)])
    async def test_directly_assigned_count_is_clamped(self, base_data_url, assigned, expected):
        editor = StubEditor()
        session = _session(editor)
        session.capture(base_data_url)
        session.variation_count = assigned

        await session.generate()

        assert editor.calls == expected
        assert session.variation_count == expected
        assert session.status is GenerationStatus.SUCCEEDED
        assert session.error is None
