"""
Command line entry point.

    tokenforge serve                     run the API under uvicorn
    tokenforge wizard [--local]          answer the wizard in the terminal
    tokenforge palette IMAGE             print the dominant colors of an image
    tokenforge export TOKENS --format F  convert a saved token set
"""

from __future__ import annotations

import argparse
import asyncio
import json
import mimetypes
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

import uvicorn
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console
from rich.prompt import IntPrompt, InvalidResponse, Prompt
from rich.rule import Rule
from rich.table import Table

from .core.config import settings
from .core.structured_logging import LoggerFactory, setup_logging
from .models.exceptions import ExtractionFailed, StepIncompleteError
from .models.schemas import SCALAR_CATEGORIES, TokenSet
from .services.brand_sheet import render_brand_sheet
from .services.export import flatten_nested_format, to_nested_format, to_raw_json, to_stylesheet
from .services.palette import extract_palette
from .wizard.client import LocalBoundary, TokenForgeClient
from .wizard.pipeline import WizardPipeline
from .wizard.state import NICHES, THEMES, TYPOGRAPHY_STYLES, WizardStep

DEFAULT_OUTPUTS = {
    "json": "design-tokens.json",
    "css": "design-tokens.css",
    "pdf": "brand-sheet.pdf",
}

PREVIEW_ACTIONS = ("e", "b", "r", "q")

default_console = Console()
err_console = Console(stderr=True)
slog = LoggerFactory.get_logger(__name__)


def _report(console: Console, message: str) -> None:
    console.print(message, markup=False, highlight=False, emoji=False, soft_wrap=True)


# Token files

def load_token_file(path: Path) -> TokenSet:
    """Read a token set saved as raw JSON, an API response, or the nested export."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "tokens" in data:
        data = data["tokens"]
    if isinstance(data, dict) and _is_nested(data):
        data = flatten_nested_format(data)
    return TokenSet.model_validate(data)


def _is_nested(data: Dict[str, Any]) -> bool:
    for category in SCALAR_CATEGORIES:
        entries = data.get(category)
        if isinstance(entries, dict) and entries:
            return all(isinstance(v, dict) and "value" in v for v in entries.values())
    return False


def render_export(tokens: TokenSet, fmt: str, brand_name: str = "") -> bytes:
    if fmt == "json":
        return (json.dumps(to_nested_format(tokens), indent=2) + "\n").encode("utf-8")
    if fmt == "css":
        return to_stylesheet(tokens).encode("utf-8")
    if fmt == "raw":
        return (to_raw_json(tokens) + "\n").encode("utf-8")
    if fmt == "pdf":
        return render_brand_sheet(tokens, brand_name)
    raise ValueError(f"Unknown export format: {fmt}")


def write_exports(tokens: TokenSet, directory: Path, brand_name: str = "") -> List[Path]:
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for fmt, filename in DEFAULT_OUTPUTS.items():
        target = directory / filename
        target.write_bytes(render_export(tokens, fmt, brand_name))
        written.append(target)
    return written


# Interactive wizard

class PercentPrompt(IntPrompt):
    """Whole number between 0 and 100."""

    validate_error_message = "[prompt.invalid]Please enter a whole number between 0 and 100"

    def process_response(self, value: str) -> int:
        number = super().process_response(value)
        if not 0 <= number <= 100:
            raise InvalidResponse(self.validate_error_message)
        return number


class WizardPrompts:
    """Rich prompts bound to one console. `stream` replaces stdin when given."""

    def __init__(self, console: Console, stream: Optional[TextIO] = None) -> None:
        self.console = console
        self.stream = stream

    def say(self, message: str) -> None:
        _report(self.console, message)

    def heading(self, title: str) -> None:
        self.console.print(Rule(f"[bold]{title}[/bold]"))

    def text(self, label: str, current: str = "") -> str:
        answer = Prompt.ask(label, console=self.console, default=current,
                            show_default=bool(current), stream=self.stream)
        return answer.strip()

    def choice(self, label: str, options: Sequence[str], current: str = "") -> str:
        default = {"default": current} if current else {}
        return Prompt.ask(label, console=self.console, choices=list(options), stream=self.stream, **default)

    def percent(self, label: str, current: int) -> int:
        return PercentPrompt.ask(f"{label} (0-100)", console=self.console, default=current, stream=self.stream)


def _identity(pipeline: WizardPipeline, prompts: WizardPrompts) -> None:
    current = pipeline.store.get(WizardStep.IDENTITY)
    prompts.heading("Step 1 of 3: Brand identity")
    pipeline.set_identity(
        brand_name=prompts.text("Brand name", current["brand_name"]),
        purpose=prompts.text("What does the brand do?", current["purpose"]),
        values=prompts.text("Core values", current["values"]),
        niche=prompts.text(f"Industries, comma separated ({', '.join(NICHES)})", ", ".join(current["niche"])),
    )


def _style(pipeline: WizardPipeline, prompts: WizardPrompts) -> None:
    current = pipeline.store.get(WizardStep.STYLE_PREFERENCES)
    prompts.heading("Step 2 of 3: Style preferences")
    pipeline.set_style(
        theme=prompts.choice("Theme", THEMES, current["theme"]),
        warmth=prompts.percent("Warmth", current["warmth"]),
        brightness=prompts.percent("Brightness", current["brightness"]),
        typography=prompts.choice("Typography", TYPOGRAPHY_STYLES, current["typography"]),
    )


async def _moodboard(pipeline: WizardPipeline, prompts: WizardPrompts) -> None:
    prompts.heading("Step 3 of 3: Moodboard (optional)")
    answer = prompts.text("Path to a moodboard image, blank to skip, '-' to remove")
    if answer == "-":
        pipeline.remove_moodboard()
        prompts.say("Moodboard removed")
        return
    if not answer:
        return

    path = Path(answer).expanduser()
    try:
        content = path.read_bytes()
    except OSError as e:
        prompts.say(f"Could not read {path}: {e.strerror}")
        return

    mime = mimetypes.guess_type(path.name)[0] or "image/png"
    prompts.say("Analyzing moodboard...")
    outcome = await pipeline.attach_moodboard(content, mime)
    if outcome.palette:
        prompts.say(f"Palette: {' '.join(outcome.palette)}")
    if outcome.analysis is not None:
        main = outcome.analysis.main_color
        prompts.say(f"Main color: {main.name} ({main.hex})  Style: {outcome.analysis.style}")
    if outcome.notice:
        prompts.say(outcome.notice)


def _preview(pipeline: WizardPipeline, prompts: WizardPrompts) -> None:
    summary = pipeline.summary()
    prompts.heading("Preview")
    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Brand", summary.brand_name)
    table.add_row("Style", summary.style)
    table.add_row("Typography", summary.typography)
    table.add_row("Industry", summary.industry)
    table.add_row("Moodboards", str(summary.moodboard_count))
    prompts.console.print(table)

    result = pipeline.preview
    if result is None or not result.ok:
        prompts.say(result.error if result and result.error else "No tokens were generated")
        return
    prompts.say(to_raw_json(result.tokens))


async def run_wizard(pipeline: WizardPipeline, console: Optional[Console] = None,
                     stream: Optional[TextIO] = None, out_dir: Path = Path(".")) -> Optional[TokenSet]:
    """Drive the pipeline from terminal prompts until the user quits.

    Returns the last generated token set, if any.
    """
    prompts = WizardPrompts(console or default_console, stream)
    slog.with_context(session_id=pipeline.session_id)

    while True:
        step = pipeline.current_step
        if step is WizardStep.IDENTITY:
            _identity(pipeline, prompts)
        elif step is WizardStep.STYLE_PREFERENCES:
            _style(pipeline, prompts)
        elif step is WizardStep.MOODBOARD:
            await _moodboard(pipeline, prompts)
            prompts.say("Generating your design system...")
        elif step is WizardStep.PREVIEW:
            _preview(pipeline, prompts)
            tokens = pipeline.preview.tokens if pipeline.preview else None
            choice = prompts.choice("Export, back, restart or quit", PREVIEW_ACTIONS)
            if choice == "e" and tokens is not None:
                for target in write_exports(tokens, out_dir, pipeline.state.brand_name):
                    prompts.say(f"Wrote {target}")
            elif choice == "b":
                pipeline.back()
            elif choice == "r":
                pipeline.reset()
            elif choice == "q":
                return tokens
            continue

        try:
            await pipeline.advance()
        except StepIncompleteError as e:
            prompts.say(f"Please fill in: {', '.join(e.missing)}")


# Argument handling

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tokenforge", description="Generate design tokens from brand answers.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the TokenForge API via uvicorn.")
    serve.add_argument("--host", default=os.environ.get("TOKENFORGE_HOST", "0.0.0.0"))
    serve.add_argument("--port", type=int, default=int(os.environ.get("TOKENFORGE_PORT", 8000)))
    serve.add_argument(
        "--log-level",
        default=settings.log_level.lower(),
        choices=["critical", "error", "warning", "info", "debug", "trace"],
    )
    serve.add_argument("--reload", action="store_true", help="Enable uvicorn reload (development only).")

    wizard = sub.add_parser("wizard", help="Answer the brand wizard in the terminal.")
    target = wizard.add_mutually_exclusive_group()
    target.add_argument("--api-url", default=None, help=f"TokenForge API base URL (default {settings.api_url}).")
    target.add_argument("--local", action="store_true", help="Call the model directly instead of a running API.")
    wizard.add_argument("--out-dir", type=Path, default=Path("."), help="Where exports are written.")

    palette = sub.add_parser("palette", help="Print the dominant colors of an image.")
    palette.add_argument("image", type=Path)
    palette.add_argument("--count", type=int, default=settings.palette_size)

    export = sub.add_parser("export", help="Convert a saved token set.")
    export.add_argument("tokens", type=Path, help="Token JSON: raw, API response or nested export.")
    export.add_argument("--format", choices=["json", "css", "raw", "pdf"], default="json")
    export.add_argument("-o", "--output", type=Path, default=None,
                        help="Output file; raw goes to stdout and the others to their default file names.")
    export.add_argument("--brand-name", default="", help="Title for the PDF brand sheet.")
    return parser


def _cmd_palette(args: argparse.Namespace) -> int:
    try:
        colors = extract_palette(args.image.read_bytes(), args.count)
    except OSError as e:
        _report(err_console, f"Could not read {args.image}: {e.strerror}")
        return 1
    except ExtractionFailed as e:
        _report(err_console, e.public_message)
        return 1
    for color in colors:
        _report(default_console, color)
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    try:
        tokens = load_token_file(args.tokens)
    except OSError as e:
        _report(err_console, f"Could not read {args.tokens}: {e.strerror}")
        return 1
    except (ValueError, PydanticValidationError) as e:
        _report(err_console, f"{args.tokens} is not a token set: {e}")
        return 1

    content = render_export(tokens, args.format, args.brand_name)
    output = args.output or (Path(DEFAULT_OUTPUTS[args.format]) if args.format in DEFAULT_OUTPUTS else None)
    if output is None:
        sys.stdout.write(content.decode("utf-8"))
        return 0
    output.write_bytes(content)
    _report(default_console, f"Wrote {output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        uvicorn.run(
            "tokenforge.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level,
            reload=args.reload,
        )
        return 0

    setup_logging("WARNING", "text")
    if args.command == "palette":
        return _cmd_palette(args)
    if args.command == "export":
        return _cmd_export(args)

    boundary = LocalBoundary() if args.local else TokenForgeClient(args.api_url)
    try:
        asyncio.run(run_wizard(WizardPipeline(boundary), out_dir=args.out_dir))
    except (KeyboardInterrupt, EOFError):
        default_console.print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
