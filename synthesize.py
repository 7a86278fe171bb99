#!/usr/bin/env python3
"""
Tonic TTS command line entry point.

Converts text into a WAV (or MP3) file with the diffusion TTS models.

Usage::

    python synthesize.py "Hello there." hello.wav
    python synthesize.py --file chapter.txt chapter.mp3 --voice F2 --steps 10
    python synthesize.py "Quick test." out.wav --speed 1.2 --seed 7 -v 2
    python synthesize.py --list-voices

Verbosity levels::

    -v 0   Quiet: warnings and errors only.
    -v 1   Normal: phase summaries and progress bars (default).
    -v 2   Debug: per-chunk and per-step detail.
"""

import argparse
import logging
import sys
from pathlib import Path

from tonic.errors import SynthesisError
from tonic.pipeline import SynthesisConfig, SynthesisPipeline
from tonic.text.chunker import DEFAULT_MAX_CHUNK_LENGTH
from tonic.tts.model_manager import DEFAULT_VOICE
from tonic.tts.text_to_speech import DEFAULT_SILENCE, DEFAULT_SPEED, DEFAULT_TOTAL_STEPS

logger = logging.getLogger("tonic")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _positive_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'")
    if f <= 0:
        raise argparse.ArgumentTypeError(f"Value must be > 0, got {value}")
    return f


def _non_negative_float(value: str) -> float:
    try:
        f = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid number '{value}'")
    if f < 0:
        raise argparse.ArgumentTypeError(f"Value must be >= 0, got {value}")
    return f


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all pipeline options."""
    p = argparse.ArgumentParser(
        description="Convert text into speech with diffusion TTS.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            '  python synthesize.py "Hello there." hello.wav\n'
            "  python synthesize.py --file chapter.txt chapter.mp3 --voice F2\n"
            "  python synthesize.py --list-voices\n"
        ),
    )

    # -- Input / output ----------------------------------------------------
    p.add_argument("text", nargs="?", default=None, help="Text to speak")
    p.add_argument(
        "output",
        nargs="?",
        default="output.wav",
        help="Output audio file (.wav or .mp3, default: output.wav)",
    )
    p.add_argument(
        "--file",
        default=None,
        metavar="PATH",
        help="Read the text from a UTF-8 file instead of the command line",
    )

    # -- Voice -------------------------------------------------------------
    voice = p.add_argument_group("voice")
    voice.add_argument(
        "--voice",
        default=DEFAULT_VOICE,
        help=f"Voice style name or path to a style JSON (default: {DEFAULT_VOICE})",
    )
    voice.add_argument(
        "--list-voices",
        action="store_true",
        help="List known and cached voices, then exit",
    )

    # -- Generation --------------------------------------------------------
    gen = p.add_argument_group("generation")
    gen.add_argument(
        "--steps",
        type=int,
        default=DEFAULT_TOTAL_STEPS,
        metavar="N",
        help=f"Denoising steps per chunk (default: {DEFAULT_TOTAL_STEPS})",
    )
    gen.add_argument(
        "--speed",
        type=_positive_float,
        default=DEFAULT_SPEED,
        metavar="FLOAT",
        help=f"Speaking speed multiplier (default: {DEFAULT_SPEED})",
    )
    gen.add_argument(
        "--silence",
        type=_non_negative_float,
        default=DEFAULT_SILENCE,
        metavar="SEC",
        help=f"Silence between chunks in seconds (default: {DEFAULT_SILENCE})",
    )
    gen.add_argument(
        "--max-chunk",
        type=int,
        default=DEFAULT_MAX_CHUNK_LENGTH,
        metavar="N",
        help=f"Maximum chunk length in characters (default: {DEFAULT_MAX_CHUNK_LENGTH})",
    )
    gen.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the latent noise (default: random)",
    )

    # -- Assets ------------------------------------------------------------
    assets = p.add_argument_group("assets")
    assets.add_argument(
        "--assets",
        default=None,
        metavar="DIR",
        help="Asset directory (default: ~/.local/share/tonic/assets)",
    )
    assets.add_argument(
        "--no-download",
        action="store_true",
        help="Never download missing assets",
    )
    assets.add_argument(
        "--provider",
        action="append",
        default=None,
        metavar="NAME",
        help="onnxruntime execution provider (repeatable, default: CPU)",
    )

    # -- Output control ----------------------------------------------------
    out = p.add_argument_group("output control")
    out.add_argument(
        "--bitrate",
        default="192k",
        help="MP3 bitrate (default: 192k)",
    )
    out.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    out.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``tonic`` logger.

    At verbosity 0 (WARNING), uses a minimal format. At 2 (DEBUG),
    includes timestamps and the module name for traceability.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("tonic")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("onnxruntime", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_list_voices(asset_dir) -> None:
    """Print known and cached voices, then exit."""
    from tonic.tts.model_manager import ModelManager

    mgr = ModelManager(asset_dir=asset_dir)
    cached = set(mgr.list_available_voices())

    logger.info("Voices (auto-download on first use):")
    logger.info("")
    for name in mgr.list_known_voices():
        logger.info("  %-6s %s", name, "cached" if name in cached else "")
    for name in sorted(cached - set(mgr.list_known_voices())):
        logger.info("  %-6s cached (custom)", name)
    logger.info("")
    logger.info("Use --voice NAME or --voice path/to/style.json. Default: %s", DEFAULT_VOICE)


def _read_text(args: argparse.Namespace, parser: argparse.ArgumentParser) -> str:
    if args.file:
        path = Path(args.file)
        if not path.exists():
            parser.error(f"Input file not found: {path}")
        if args.text is not None:
            # With --file the first positional is the output path
            args.output = args.text
        return path.read_text(encoding="utf-8")
    if args.text is None:
        parser.error("Provide TEXT or --file PATH")
    return args.text


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main(argv=None):
    """Parse arguments, configure logging, and run the pipeline."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)
    asset_dir = Path(args.assets) if args.assets else None

    if args.list_voices:
        _cmd_list_voices(asset_dir)
        return 0

    text = _read_text(args, parser)

    if args.steps < 0:
        parser.error(f"--steps must be >= 0, got {args.steps}")
    if args.max_chunk < 1:
        parser.error(f"--max-chunk must be >= 1, got {args.max_chunk}")

    config = SynthesisConfig(
        asset_dir=asset_dir,
        voice=args.voice,
        total_steps=args.steps,
        speed=args.speed,
        silence_duration=args.silence,
        max_chunk_length=args.max_chunk,
        providers=args.provider,
        seed=args.seed,
        download=not args.no_download,
        mp3_bitrate=args.bitrate,
        disable_tqdm=args.no_progress or args.verbose == 0,
    )

    # Log run header
    logger.info("Tonic TTS")
    logger.info("  Output: %s", args.output)
    logger.info("  Voice:  %s", config.voice)
    logger.info("  Steps:  %d", config.total_steps)
    if config.speed != DEFAULT_SPEED:
        logger.info("  Speed:  %.2fx", config.speed)

    pipeline = SynthesisPipeline(config)
    try:
        pipeline.synthesize(text, args.output)
    except SynthesisError as e:
        logger.error("%s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
