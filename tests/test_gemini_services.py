from __future__ import annotations

import asyncio
import base64
from types import SimpleNamespace

import pytest

from services.errors import AnalysisFailed, GenerationFailed
from services.gemini.avatar_generator import AvatarGenerator
from services.gemini.face_analyzer import FaceScriptAnalyzer
from services.gemini.prompts import AVATAR_PROMPT_SUFFIX, FALLBACK_SCRIPT

JPEG_B64 = base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg")


class DummyModels:
    def __init__(self, response=None, error: Exception | None = None, delay: float = 0.0):
        self.response = response
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):  # noqa: ANN003
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


class DummyClient:
    def __init__(self, models: DummyModels):
        self.aio = SimpleNamespace(models=models)


def _run(coro):  # noqa: ANN001
    return asyncio.run(coro)


def _image_response(*parts):  # noqa: ANN002
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def test_analyze_returns_response_text() -> None:
    models = DummyModels(response=SimpleNamespace(text="A round face with freckles."))
    analyzer = FaceScriptAnalyzer(DummyClient(models))

    script = _run(analyzer.analyze(JPEG_B64))

    assert script == "A round face with freckles."
    call = models.calls[0]
    assert call["model"] == "gemini-2.5-flash"
    image_part, instruction = call["contents"]
    assert image_part.inline_data.mime_type == "image/jpeg"
    assert image_part.inline_data.data == base64.b64decode(JPEG_B64)
    assert "facial structure" in instruction


@pytest.mark.parametrize("text", [None, "", "   "])
def test_analyze_falls_back_when_text_is_empty(text) -> None:  # noqa: ANN001
    analyzer = FaceScriptAnalyzer(DummyClient(DummyModels(response=SimpleNamespace(text=text))))

    assert _run(analyzer.analyze(JPEG_B64)) == FALLBACK_SCRIPT


def test_analyze_wraps_transport_errors() -> None:
    error = ConnectionError("network down")
    analyzer = FaceScriptAnalyzer(DummyClient(DummyModels(error=error)))

    with pytest.raises(AnalysisFailed) as excinfo:
        _run(analyzer.analyze(JPEG_B64))
    assert excinfo.value.__cause__ is error


def test_analyze_rejects_invalid_base64() -> None:
    models = DummyModels(response=SimpleNamespace(text="unused"))
    analyzer = FaceScriptAnalyzer(DummyClient(models))

    with pytest.raises(AnalysisFailed):
        _run(analyzer.analyze(b"\xff\xd8 not base64"))
    assert models.calls == []


def test_analyze_times_out() -> None:
    models = DummyModels(response=SimpleNamespace(text="late"), delay=1.0)
    analyzer = FaceScriptAnalyzer(DummyClient(models), timeout=0.01)

    with pytest.raises(AnalysisFailed):
        _run(analyzer.analyze(JPEG_B64))


def test_analyzer_requires_client() -> None:
    with pytest.raises(ValueError):
        FaceScriptAnalyzer(None)


def test_generate_returns_first_inline_image_base64() -> None:
    response = _image_response(
        SimpleNamespace(text="Here is your avatar", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=b"\x89PNG-first", mime_type="image/png")),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=b"\x89PNG-second", mime_type="image/png")),
    )
    models = DummyModels(response=response)
    generator = AvatarGenerator(DummyClient(models))

    image_b64 = _run(generator.generate("A round face"))

    assert base64.b64decode(image_b64) == b"\x89PNG-first"
    call = models.calls[0]
    assert call["model"] == "gemini-2.5-flash-image"
    assert call["contents"] == ["A round face" + AVATAR_PROMPT_SUFFIX]


def test_generate_passes_through_base64_text_payloads() -> None:
    response = _image_response(SimpleNamespace(inline_data=SimpleNamespace(data="iVBORw0KGgo=")))
    generator = AvatarGenerator(DummyClient(DummyModels(response=response)))

    assert _run(generator.generate("script")) == b"iVBORw0KGgo="


@pytest.mark.parametrize(
    "response",
    [
        SimpleNamespace(candidates=None),
        SimpleNamespace(candidates=[]),
        SimpleNamespace(candidates=[SimpleNamespace(content=None)]),
        SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[]))]),
    ],
)
def test_generate_reports_missing_content(response) -> None:  # noqa: ANN001
    generator = AvatarGenerator(DummyClient(DummyModels(response=response)))

    with pytest.raises(GenerationFailed) as excinfo:
        _run(generator.generate("script"))
    assert excinfo.value.reason == GenerationFailed.NO_CONTENT


def test_generate_reports_missing_image_data() -> None:
    response = _image_response(
        SimpleNamespace(text="I cannot draw that.", inline_data=None),
        SimpleNamespace(text=None, inline_data=SimpleNamespace(data=b"")),
    )
    generator = AvatarGenerator(DummyClient(DummyModels(response=response)))

    with pytest.raises(GenerationFailed) as excinfo:
        _run(generator.generate("script"))
    assert excinfo.value.reason == GenerationFailed.NO_IMAGE


def test_generate_wraps_transport_errors() -> None:
    generator = AvatarGenerator(DummyClient(DummyModels(error=RuntimeError("503 overloaded"))))

    with pytest.raises(GenerationFailed) as excinfo:
        _run(generator.generate("script"))
    assert excinfo.value.reason == GenerationFailed.TRANSPORT
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_generate_times_out_as_transport_failure() -> None:
    generator = AvatarGenerator(DummyClient(DummyModels(response=None, delay=1.0)), timeout=0.01)

    with pytest.raises(GenerationFailed) as excinfo:
        _run(generator.generate("script"))
    assert excinfo.value.reason == GenerationFailed.TRANSPORT
