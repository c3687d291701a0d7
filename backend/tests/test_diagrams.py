"""Tests for diagram rendering, upload and generation."""

import base64
from unittest.mock import patch

import httpx
import pytest

from conftest import FakeProvider, FakeUploader
from repobook.diagrams.generator import (
    DiagramGenerator,
    build_diagram_prompt,
    clean_mermaid,
    safe_name,
)
from repobook.diagrams.renderer import MermaidRenderer, mermaid_image_url
from repobook.diagrams.uploader import CloudinaryUploader
from repobook.exceptions import DiagramGenerationError, InvalidInputError
from repobook.llm.service import CompletionService


def ok_transport():
    return httpx.MockTransport(lambda request: httpx.Response(200, content=b"PNG"))


@pytest.fixture
def generator(completions, fake_uploader):
    return DiagramGenerator(
        completions,
        renderer=MermaidRenderer(transport=ok_transport()),
        uploader=fake_uploader,
        folder="diagrams",
        clock_ms=lambda: 1234,
    )


class TestRenderer:
    def test_url_encodes_source(self):
        url = mermaid_image_url("graph TD\n  A-->B", "https://mermaid.ink/img/")

        encoded = base64.b64encode(b"graph TD\n  A-->B").decode()
        assert url == f"https://mermaid.ink/img/{encoded}?bgColor=FFFFFF"

    def test_verify_rejects_bad_diagram(self):
        renderer = MermaidRenderer(
            transport=httpx.MockTransport(lambda request: httpx.Response(400))
        )

        with pytest.raises(DiagramGenerationError):
            renderer.render("graph ???")

    def test_transport_failure(self):
        def explode(request):
            raise httpx.ConnectError("refused", request=request)

        renderer = MermaidRenderer(transport=httpx.MockTransport(explode))

        with pytest.raises(DiagramGenerationError):
            renderer.verify("https://mermaid.ink/img/x")

    def test_render_without_verify_makes_no_request(self):
        def explode(request):
            raise AssertionError("should not be called")

        renderer = MermaidRenderer(transport=httpx.MockTransport(explode))
        assert renderer.render("graph TD", verify=False).endswith("?bgColor=FFFFFF")


class TestGenerator:
    def test_generates_and_uploads(self, generator, fake_uploader, fake_provider):
        diagram = generator.generate("Sequence Diagram", "ctx", "octo/demo")

        assert diagram.diagram_type == "Sequence Diagram"
        assert diagram.source_code == "graph TD\n  A-->B"
        assert diagram.url.endswith("octo_demo_Sequence_Diagram_1234.png")

        source, public_id = fake_uploader.uploads[0]
        assert public_id == "octo_demo_Sequence_Diagram_1234"
        assert source.startswith("https://mermaid.ink/img/")
        assert fake_provider.calls[0]["json_mode"] is True

    def test_missing_fields(self, generator, fake_provider):
        with pytest.raises(InvalidInputError):
            generator.generate("", "ctx")
        with pytest.raises(InvalidInputError):
            generator.generate("Flow", "")
        assert fake_provider.calls == []

    def test_falls_back_to_any_key(self, fake_uploader):
        provider = FakeProvider(lambda s, u, j: '{"diagram": "graph LR\\n  X-->Y"}')
        generator = DiagramGenerator(
            CompletionService(provider),
            renderer=MermaidRenderer(transport=ok_transport()),
            uploader=fake_uploader,
        )

        assert generator.generate("Flow", "ctx").source_code == "graph LR\n  X-->Y"

    @pytest.mark.parametrize("reply", ["not json", '{"code": ""}', '{"code": "```\\n```"}'])
    def test_unusable_reply(self, reply, fake_uploader):
        generator = DiagramGenerator(
            CompletionService(FakeProvider(lambda s, u, j: reply)),
            renderer=MermaidRenderer(transport=ok_transport()),
            uploader=fake_uploader,
        )

        with pytest.raises(DiagramGenerationError):
            generator.generate("Flow", "ctx")
        assert fake_uploader.uploads == []

    def test_llm_failure(self):
        def fail(system, prompt, json_mode):
            raise RuntimeError("down")

        generator = DiagramGenerator(
            CompletionService(FakeProvider(fail)),
            renderer=MermaidRenderer(transport=ok_transport()),
            uploader=FakeUploader(),
        )

        with pytest.raises(DiagramGenerationError):
            generator.generate("Flow", "ctx")


class TestCloudinaryUploader:
    def test_upload_passes_credentials(self):
        uploader = CloudinaryUploader("demo", "key", "secret")

        with patch("cloudinary.uploader.upload") as upload:
            upload.return_value = {"secure_url": "https://res.cloudinary.com/x.png"}
            url = uploader.upload("https://mermaid.ink/img/abc", "pid", folder="f")

        assert url == "https://res.cloudinary.com/x.png"
        _, kwargs = upload.call_args
        assert kwargs["folder"] == "f"
        assert kwargs["public_id"] == "pid"
        assert kwargs["cloud_name"] == "demo"
        assert kwargs["api_secret"] == "secret"

    def test_upload_failure(self):
        uploader = CloudinaryUploader("demo", "key", "secret")

        with patch("cloudinary.uploader.upload", side_effect=Exception("denied")):
            with pytest.raises(DiagramGenerationError):
                uploader.upload("https://mermaid.ink/img/abc", "pid")

    def test_missing_secure_url(self):
        uploader = CloudinaryUploader("demo", "key", "secret")

        with patch("cloudinary.uploader.upload", return_value={}):
            with pytest.raises(DiagramGenerationError):
                uploader.upload("https://mermaid.ink/img/abc", "pid")

    def test_sign_upload(self):
        uploader = CloudinaryUploader("demo", "key", "secret")

        with patch("cloudinary.utils.api_sign_request", return_value="sig") as sign:
            params = uploader.sign_upload(folder="uploads")

        assert params["signature"] == "sig"
        assert params["folder"] == "uploads"
        assert params["api_key"] == "key"
        assert params["cloud_name"] == "demo"
        signed, secret = sign.call_args[0]
        assert signed == {"timestamp": params["timestamp"], "folder": "uploads"}
        assert secret == "secret"


def test_helpers():
    assert safe_name("octo/demo repo", "x") == "octo_demo_repo"
    assert safe_name(None, "unknown_repo") == "unknown_repo"
    assert clean_mermaid("```mermaid\ngraph TD\n```") == "graph TD"
    assert "**Flow**" in build_diagram_prompt("Flow", "ctx")
