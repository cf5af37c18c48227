"""
Gemini Transform Service Tests
==============================

Response parsing and failure classification against a stubbed client.
"""

from types import SimpleNamespace

import pytest

pytest.importorskip("google.genai")

from google.genai import errors as genai_errors  # noqa: E402

from frame_studio.errors import (  # noqa: E402
    TransformAuthError,
    TransformBlocked,
    TransformEmptyResult,
    TransformError,
    TransformRateLimited,
)
from style_transfer.base import closest_aspect_ratio  # noqa: E402
from style_transfer.gemini_client import GeminiTransformService, classify_api_error  # noqa: E402
from style_transfer.styles import ArtStyle, RegenerationEngine  # noqa: E402


def _image_response(data=b"jpeg-bytes"):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[part]), finish_reason=None)
    return SimpleNamespace(candidates=[candidate], prompt_feedback=None)


def _empty_response(finish_reason=None, block_reason=None):
    candidate = SimpleNamespace(content=SimpleNamespace(parts=[]), finish_reason=finish_reason)
    feedback = SimpleNamespace(block_reason=block_reason) if block_reason else None
    return SimpleNamespace(candidates=[candidate], prompt_feedback=feedback, text=None)


class StubModels:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, kwargs):
        self.calls.append(kwargs)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def generate_content(self, **kwargs):
        return self._next(kwargs)

    def generate_images(self, **kwargs):
        return self._next(kwargs)


def _service(*responses, **kwargs):
    models = StubModels(*responses)
    client = SimpleNamespace(models=models)
    return GeminiTransformService(api_key="test", client=client, **kwargs), models


class FakeApiError(Exception):
    def __init__(self, code, message, status=""):
        super().__init__(message)
        self.code = code
        self.status = status


class TestClassification:
    def test_invalid_key(self):
        err = classify_api_error(FakeApiError(400, "API key not valid. Please pass a valid API key."))
        assert isinstance(err, TransformAuthError)

    def test_forbidden(self):
        assert isinstance(classify_api_error(FakeApiError(403, "denied")), TransformAuthError)

    def test_rate_limited(self):
        assert isinstance(classify_api_error(FakeApiError(429, "quota")), TransformRateLimited)
        err = classify_api_error(FakeApiError(None, "x", status="RESOURCE_EXHAUSTED"))
        assert isinstance(err, TransformRateLimited)

    def test_other(self):
        err = classify_api_error(FakeApiError(500, "boom"))
        assert type(err) is TransformError

    def test_sdk_error_is_classified(self):
        api_error = genai_errors.ClientError(
            429, {"error": {"code": 429, "message": "Resource has been exhausted", "status": "RESOURCE_EXHAUSTED"}}
        )
        service, _ = _service(api_error)
        with pytest.raises(TransformRateLimited):
            service.transform(b"img", ArtStyle.ANIME, 1.0)


class TestStyleTransfer:
    def test_returns_inline_image(self):
        service, models = _service(_image_response(b"out"))
        assert service.transform(b"img", ArtStyle.CARTOON, 16 / 9) == b"out"
        call = models.calls[0]
        assert call["model"] == service.image_model
        assert call["config"].image_config.aspect_ratio == "16:9"
        assert "Vibrant Cartoon" in call["contents"][-1]

    def test_style_reference_is_sent(self):
        service, models = _service(_image_response())
        service.transform(b"img", ArtStyle.ANIME, 1.0, style_reference=b"ref")
        assert len(models.calls[0]["contents"]) == 3
        assert "style reference" in models.calls[0]["contents"][-1]

    def test_blocked_by_finish_reason(self):
        service, _ = _service(_empty_response(finish_reason="SAFETY"))
        with pytest.raises(TransformBlocked) as excinfo:
            service.transform(b"img", ArtStyle.ANIME, 1.0)
        assert excinfo.value.reason == "SAFETY"

    def test_blocked_by_prompt_feedback(self):
        service, _ = _service(_empty_response(block_reason="OTHER"))
        with pytest.raises(TransformBlocked):
            service.edit(b"img", "make it dark")

    def test_no_output(self):
        service, _ = _service(_empty_response(finish_reason="STOP"))
        with pytest.raises(TransformEmptyResult):
            service.transform(b"img", ArtStyle.ANIME, 1.0)

    def test_transport_error_is_generic_failure(self):
        service, _ = _service(TimeoutError("read timed out"))
        with pytest.raises(TransformError) as excinfo:
            service.transform(b"img", ArtStyle.ANIME, 1.0)
        assert type(excinfo.value) is TransformError
        assert isinstance(excinfo.value.__cause__, TimeoutError)

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
        service = GeminiTransformService()
        with pytest.raises(TransformAuthError):
            service.transform(b"img", ArtStyle.ANIME, 1.0)


class TestReimagine:
    def test_describes_then_generates(self):
        described = SimpleNamespace(text="A dog on a beach", candidates=[], prompt_feedback=None)
        generated = SimpleNamespace(
            generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=b"imagen"))]
        )
        service, models = _service(described, generated, engine=RegenerationEngine.REIMAGINE)

        assert service.transform(b"img", ArtStyle.FANTASY_ART, 0.5) == b"imagen"
        assert "A dog on a beach" in models.calls[1]["prompt"]
        assert models.calls[1]["config"].aspect_ratio == "9:16"

    def test_imagen_empty(self):
        described = SimpleNamespace(text="scene", candidates=[], prompt_feedback=None)
        service, _ = _service(described, SimpleNamespace(generated_images=[]), engine=RegenerationEngine.REIMAGINE)
        with pytest.raises(TransformEmptyResult):
            service.transform(b"img", ArtStyle.ANIME, 1.0)


class TestText:
    def test_describe_and_translate(self):
        service, models = _service(
            SimpleNamespace(text=" a quiet street ", candidates=[], prompt_feedback=None),
            SimpleNamespace(text="una calle tranquila", candidates=[], prompt_feedback=None),
        )
        assert service.describe(b"img") == "a quiet street"
        assert service.translate("a quiet street", "Spanish") == "una calle tranquila"
        assert "Spanish" in models.calls[1]["contents"][0]


@pytest.mark.parametrize(
    "ratio, expected",
    [(16 / 9, "16:9"), (1.7, "16:9"), (0.56, "9:16"), (1.3, "4:3"), (0.74, "3:4"), (1.05, "1:1"), (None, "1:1")],
)
def test_closest_aspect_ratio(ratio, expected):
    assert closest_aspect_ratio(ratio) == expected
