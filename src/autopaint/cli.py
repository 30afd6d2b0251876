from __future__ import annotations

import argparse
import logging
import sys

from .config import load_config
from .credentials.resolver import CredentialResolver, mask_secret
from .errors import AutopaintError
from .host.base import Rect
from .host.image_document import ImageFileDocument, RecordingScriptEngine
from .llm.providers import default_providers
from .pipeline import run_autopaint, summary_to_json


def _parse_selection(value: str) -> Rect:
    try:
        x, y, w, h = (int(v) for v in value.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError("selection must be x,y,width,height") from None
    if w <= 0 or h <= 0:
        raise argparse.ArgumentTypeError("selection width and height must be positive")
    return Rect(x, y, w, h)


def _list_providers(env_file: str) -> None:
    config = load_config(env_file=env_file)
    resolver = CredentialResolver(env_file=str(config.env_file))
    print("Providers (in fallback order):")
    for spec in default_providers(config):
        key = resolver.resolve(spec.credential_name) if spec.credential_name else ""
        source = resolver.source_of(spec.credential_name) if spec.credential_name else None
        state = f"{mask_secret(key)} ({source})" if key else "not configured"
        image = "image+text" if spec.accepts_image else "text only"
        print(f"  - {spec.display_name} [{spec.model}, {image}]: {spec.credential_name} {state}")


def main():
    p = argparse.ArgumentParser(prog="autopaint")
    p.add_argument("--list-providers", action="store_true", help="List providers and key status")
    p.add_argument("--env-file", default=None, help="Path to the .env file with API keys")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="cmd", required=False)

    run = sub.add_parser("run", help="Generate a Lua script for an image")
    run.add_argument("--image", required=True, help="Path to the input image (the canvas)")
    run.add_argument("--prompt", required=True, help="What to draw")
    run.add_argument("--out", default=None, help="Output directory for artifacts")
    run.add_argument("--llm", default="auto", choices=["auto", "mock"], help="LLM backend")
    run.add_argument("--selection", type=_parse_selection, default=None, help="x,y,width,height")

    args = p.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.list_providers:
        try:
            _list_providers(args.env_file)
        except AutopaintError as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    if not args.cmd:
        p.print_help()
        sys.exit(0)

    if args.cmd == "run":
        try:
            config = load_config(env_file=args.env_file)
            document = ImageFileDocument(args.image, selection=args.selection)
            engine = RecordingScriptEngine()
            summary = run_autopaint(
                document=document,
                prompt=args.prompt,
                engine=engine,
                llm_backend=args.llm,
                out_dir=args.out,
                config=config,
            )
        except (AutopaintError, FileNotFoundError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        if engine.scripts and not args.out:
            summary["script"] = engine.scripts[-1]
        print(summary_to_json(summary))


if __name__ == "__main__":
    main()
