"""Tests for dreampie.client.view — rendered images and the console view."""

from __future__ import annotations

import binascii
import io

import pytest

from dreampie.client.view import ConsoleView, GenerationView, RenderedImage

PNG_HEADER_B64 = "iVBORw0KGgo="  # b"\x89PNG\r\n\x1a\n"


class TestRenderedImage:
    """Test the display/download model."""

    def test_src_is_png_data_uri(self):
        image = RenderedImage(base64_data="Zm9v", alt="a red fox")
        assert image.src == "data:image/png;base64,Zm9v"

    def test_to_bytes(self):
        assert RenderedImage("Zm9v", "x").to_bytes() == b"foo"

    def test_to_bytes_rejects_invalid_base64(self):
        with pytest.raises(binascii.Error):
            RenderedImage("not base64!!", "x").to_bytes()

    def test_default_filename_pattern(self):
        assert RenderedImage.default_filename(1700000000123) == "dream_pie_1700000000123.png"

    def test_default_filename_uses_current_time(self):
        name = RenderedImage.default_filename()
        assert name.startswith("dream_pie_")
        assert name.endswith(".png")
        assert name[len("dream_pie_"):-len(".png")].isdigit()

    def test_save(self, tmp_path):
        target = tmp_path / "fox.png"
        saved = RenderedImage(PNG_HEADER_B64, "fox").save(target)
        assert saved == target
        assert target.read_bytes() == b"\x89PNG\r\n\x1a\n"


class TestConsoleView:
    """Test terminal rendering."""

    @pytest.fixture
    def stream(self):
        return io.StringIO()

    def test_busy_prints_baking(self, stream):
        view = ConsoleView(stream)
        view.set_busy(True)
        view.set_busy(False)
        assert stream.getvalue() == "Baking Dream...\n"

    def test_download_enabled_only_after_image(self, stream):
        view = ConsoleView(stream)
        view.show_loading()
        assert not view.download_enabled

        image = RenderedImage("Zm9v", "fox")
        view.show_image(image)
        assert view.download_enabled
        assert view.image is image

    def test_loading_resets_previous_image(self, stream):
        view = ConsoleView(stream)
        view.show_image(RenderedImage("Zm9v", "fox"))
        view.show_loading()
        assert view.image is None
        assert not view.download_enabled

    def test_retry_line(self, stream):
        ConsoleView(stream).show_retry(2, "Generation Error (500): boom", 2.3)
        assert "Attempt 2 failed: Generation Error (500): boom (retrying in 2.3s)" in stream.getvalue()

    def test_error_clears_image(self, stream):
        view = ConsoleView(stream)
        view.show_image(RenderedImage("Zm9v", "fox"))
        view.show_error("nope")
        assert view.image is None
        assert stream.getvalue().endswith("nope\n")


def test_base_view_hooks_are_noops():
    view = GenerationView()
    view.set_busy(True)
    view.show_loading()
    view.show_message("m")
    view.show_retry(1, "m", 1.0)
    view.show_image(RenderedImage("Zm9v", "x"))
    view.show_error("e")
