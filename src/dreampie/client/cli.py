"""Command-line front-end for the generation client.

Usage::

    dreampie-generate "a hyper-realistic fox wearing a crown"
    dreampie-generate --random --output fox.png
    dreampie-generate --url http://localhost:8888/api/generate-image "a red fox"

Exit status is 0 on success, 1 when generation fails, and 2 when no prompt
was given.
"""

from __future__ import annotations

import argparse
import asyncio
import binascii
import logging
import random
import sys
from pathlib import Path

import httpx

from dreampie.core.config import DreamPieConfig, config

from .generator import GenerationClient, GenerationState
from .view import ConsoleView, RenderedImage


# Poco Pie's random inspirations.
RANDOM_PROMPTS = [
    "A hyper-realistic fox wearing a crown, lit by neon streetlights, cinematic",
    "A 1950s retro-futuristic robot bartender serving a martini, digital art",
    "A floating bonsai tree enclosed in a glass bubble, detailed photorealistic render",
    "An ancient library built inside a massive hollowed-out tree trunk, fantasy art",
    "A synthwave-style landscape with pink and blue gradients, a lone surfer on a neon wave",
    "A detailed oil painting of a cup of coffee that looks like a galaxy",
    "A minimalist, black and white sketch of a majestic lion wearing reading glasses",
]


def random_prompt(rng: random.Random | None = None) -> str:
    """Pick one of the built-in inspiration prompts."""
    return (rng or random).choice(RANDOM_PROMPTS)


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dreampie-generate",
        description="Generate an image through the Dream Pie proxy.",
    )
    parser.add_argument("prompt", nargs="?", default="", help="Text prompt for the image")
    parser.add_argument(
        "--random",
        action="store_true",
        help="Use a random inspiration prompt instead of PROMPT",
    )
    parser.add_argument("--url", default=config.proxy_url, help="Proxy endpoint URL")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Where to save the image (default: dream_pie_<timestamp>.png)",
    )
    parser.add_argument(
        "--attempts",
        type=positive_int,
        default=config.max_attempts,
        help="Maximum number of attempts",
    )
    parser.add_argument("--timeout", type=float, default=config.request_timeout)
    return parser


async def run(
    args: argparse.Namespace,
    view: ConsoleView,
    transport: httpx.AsyncBaseTransport | None = None,
    settings: DreamPieConfig | None = None,
) -> int:
    """Run one generation call for parsed CLI arguments.

    The client is built from ``settings`` (the global config by default)
    with ``--url`` and ``--attempts`` applied on top.

    Returns:
        Process exit status.
    """
    prompt = random_prompt() if args.random else args.prompt
    if args.random:
        view.show_message(f"A little spark of inspiration from Poco Pie: {prompt}")

    settings = (settings or config).model_copy(
        update={"proxy_url": args.url, "max_attempts": args.attempts}
    )
    async with httpx.AsyncClient(transport=transport, timeout=args.timeout) as http:
        client = GenerationClient.from_config(settings, http, view=view)
        outcome = await client.generate(prompt)

    if outcome.state is GenerationState.IDLE:
        return 2
    if not outcome.succeeded or outcome.image is None:
        return 1

    output = args.output or Path(RenderedImage.default_filename())
    try:
        outcome.image.save(output)
    except (binascii.Error, OSError) as exc:
        view.show_error(f"Could not save image to {output}: {exc}")
        return 1
    view.show_message(f"Saved {output}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point registered as the ``dreampie-generate`` console script."""
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)
    sys.exit(asyncio.run(run(args, ConsoleView())))


if __name__ == "__main__":
    main()
