"""Rendering hooks the generation client calls while it runs.

The client owns the retry loop; a :class:`GenerationView` owns whatever the
user looks at (a browser result area, a terminal, a test recorder).  The
client only calls the view at well-defined points:

- ``set_busy(True)`` / ``show_loading()`` when a call starts
- ``show_retry(...)`` after each failed attempt that will be retried
- ``show_image(...)`` once, on success
- ``show_error(...)`` once, on final failure
- ``set_busy(False)`` whenever the call ends, however it ends
"""

from __future__ import annotations

import base64
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO


@dataclass(frozen=True)
class RenderedImage:
    """A generated image ready for display or download.

    Attributes:
        base64_data: Image bytes as returned by the proxy.
        alt: Alternative text, the prompt that produced the image.
        mime_type: Media type used in the data URI.
    """

    base64_data: str
    alt: str
    mime_type: str = "image/png"

    @property
    def src(self) -> str:
        """Data URI suitable for an ``<img src>`` attribute."""
        return f"data:{self.mime_type};base64,{self.base64_data}"

    def to_bytes(self) -> bytes:
        """Decode the image payload.

        Raises:
            binascii.Error: If the payload is not valid base64.
        """
        return base64.b64decode(self.base64_data, validate=True)

    @staticmethod
    def default_filename(timestamp_ms: int | None = None) -> str:
        """Download name in the ``dream_pie_<unix-ms>.png`` pattern."""
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        return f"dream_pie_{timestamp_ms}.png"

    def save(self, path: Path) -> Path:
        """Write the decoded image to ``path`` and return it."""
        path.write_bytes(self.to_bytes())
        return path


class GenerationView:
    """No-op view; subclasses override the hooks they care about."""

    def set_busy(self, busy: bool) -> None:
        pass

    def show_loading(self) -> None:
        pass

    def show_message(self, message: str) -> None:
        pass

    def show_retry(self, attempt: int, message: str, delay: float) -> None:
        pass

    def show_image(self, image: RenderedImage) -> None:
        pass

    def show_error(self, message: str) -> None:
        pass


class ConsoleView(GenerationView):
    """Terminal rendering used by the ``dreampie-generate`` command.

    Attributes:
        image: Last rendered image, ``None`` until a call succeeds.
        download_enabled: Mirrors the download button of the web front-end.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream or sys.stderr
        self.image: RenderedImage | None = None
        self.download_enabled = False

    def _write(self, text: str) -> None:
        print(text, file=self.stream)

    def set_busy(self, busy: bool) -> None:
        if busy:
            self._write("Baking Dream...")

    def show_loading(self) -> None:
        self.image = None
        self.download_enabled = False

    def show_message(self, message: str) -> None:
        self._write(message)

    def show_retry(self, attempt: int, message: str, delay: float) -> None:
        self._write(f"Attempt {attempt} failed: {message} (retrying in {delay:.1f}s)")

    def show_image(self, image: RenderedImage) -> None:
        self.image = image
        self.download_enabled = True

    def show_error(self, message: str) -> None:
        self.image = None
        self._write(message)
