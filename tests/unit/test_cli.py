"""Tests for dreampie.client.cli — the ``dreampie-generate`` command."""

from __future__ import annotations

import io
import random

import httpx
import pytest

from dreampie.client import cli
from dreampie.client.generator import PROMPT_REQUIRED_MESSAGE
from dreampie.client.view import ConsoleView


@pytest.fixture
def view() -> ConsoleView:
    return ConsoleView(io.StringIO())


class TestParser:
    """Argument parsing."""

    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.prompt == ""
        assert not args.random
        assert args.output is None
        assert args.attempts == 3

    def test_all_options(self, tmp_path):
        args = cli.build_parser().parse_args(
            [
                "a red fox",
                "--url",
                "http://proxy.test/x",
                "--output",
                str(tmp_path / "fox.png"),
                "--attempts",
                "5",
                "--timeout",
                "10",
            ]
        )
        assert args.prompt == "a red fox"
        assert args.url == "http://proxy.test/x"
        assert args.output == tmp_path / "fox.png"
        assert args.attempts == 5
        assert args.timeout == 10.0

    @pytest.mark.parametrize("value", ["0", "-1", "many"])
    def test_attempts_must_be_positive(self, value, capsys):
        with pytest.raises(SystemExit) as excinfo:
            cli.build_parser().parse_args(["a red fox", "--attempts", value])
        assert excinfo.value.code == 2
        assert "--attempts" in capsys.readouterr().err


class TestRandomPrompt:
    def test_picks_from_list(self):
        assert cli.random_prompt(random.Random(7)) in cli.RANDOM_PROMPTS

    def test_list_is_not_empty(self):
        assert len(cli.RANDOM_PROMPTS) == 7


class TestRun:
    """End-to-end CLI runs against a stubbed proxy."""

    @pytest.mark.asyncio
    async def test_success_saves_image(self, tmp_path, view, provider_stub):
        stub = provider_stub(httpx.Response(200, json={"base64Image": "Zm9v"}))
        output = tmp_path / "fox.png"
        args = cli.build_parser().parse_args(["a red fox", "--output", str(output)])

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 0
        assert output.read_bytes() == b"foo"
        assert stub.last_json() == {"prompt": "a red fox"}
        assert f"Saved {output}" in view.stream.getvalue()

    @pytest.mark.asyncio
    async def test_empty_prompt_exits_2(self, view, provider_stub):
        stub = provider_stub()
        args = cli.build_parser().parse_args(["   "])

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 2
        assert stub.calls == 0
        assert PROMPT_REQUIRED_MESSAGE in view.stream.getvalue()

    @pytest.mark.asyncio
    async def test_failure_exits_1(self, tmp_path, view, provider_stub):
        stub = provider_stub(
            httpx.Response(500, json={"error": "boom", "kind": "upstream_error"})
        )
        args = cli.build_parser().parse_args(
            ["a red fox", "--attempts", "1", "--output", str(tmp_path / "fox.png")]
        )

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 1
        assert stub.calls == 1
        assert not (tmp_path / "fox.png").exists()

    @pytest.mark.asyncio
    async def test_random_prompt_is_sent(self, tmp_path, view, provider_stub):
        stub = provider_stub(httpx.Response(200, json={"base64Image": "Zm9v"}))
        args = cli.build_parser().parse_args(["--random", "--output", str(tmp_path / "r.png")])

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 0
        assert stub.last_json()["prompt"] in cli.RANDOM_PROMPTS
        assert "inspiration from Poco Pie" in view.stream.getvalue()

    @pytest.mark.asyncio
    async def test_invalid_image_payload_exits_1(self, tmp_path, view, provider_stub):
        stub = provider_stub(httpx.Response(200, json={"base64Image": "not base64!!"}))
        output = tmp_path / "fox.png"
        args = cli.build_parser().parse_args(["a red fox", "--output", str(output)])

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 1
        assert not output.exists()
        assert "Could not save image" in view.stream.getvalue()

    @pytest.mark.asyncio
    async def test_unwritable_output_exits_1(self, tmp_path, view, provider_stub):
        stub = provider_stub(httpx.Response(200, json={"base64Image": "Zm9v"}))
        output = tmp_path / "missing-dir" / "fox.png"
        args = cli.build_parser().parse_args(["a red fox", "--output", str(output)])

        code = await cli.run(args, view, transport=httpx.MockTransport(stub))

        assert code == 1
        assert f"Could not save image to {output}" in view.stream.getvalue()

    @pytest.mark.asyncio
    async def test_settings_supply_backoff_and_overrides(self, test_config, view, provider_stub):
        """--url and --attempts override the settings the client is built from."""
        stub = provider_stub(
            httpx.Response(500, json={"error": "boom", "kind": "upstream_error"})
        )
        settings = test_config.model_copy(update={"backoff_base": 0.0, "backoff_jitter": 0.0})
        args = cli.build_parser().parse_args(
            ["a red fox", "--attempts", "2", "--url", "http://proxy.test/custom"]
        )

        code = await cli.run(args, view, transport=httpx.MockTransport(stub), settings=settings)

        assert code == 1
        assert stub.calls == 2
        assert str(stub.requests[0].url) == "http://proxy.test/custom"


def test_main_exits_with_run_status(monkeypatch):
    async def fake_run(args, view):
        return 2

    monkeypatch.setattr(cli, "run", fake_run)
    with pytest.raises(SystemExit) as excinfo:
        cli.main([""])
    assert excinfo.value.code == 2
