"""CLI entrypoints for sketchgen commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .config import ConfigError, load_config
from .logging import configure_logging
from .pipeline import Pipeline


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_output_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        help="Write the result to this file instead of stdout.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sketchgen",
        description="Analyze creative-coding sketches and generate NFT collection contracts.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Print the collections, traits and token bindings a sketch uses as JSON.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    analyze_parser.add_argument("file", help="Path to the sketch source.")

    preview_parser = subparsers.add_parser(
        "preview",
        help="Prefix a sketch with live collection metadata for local preview.",
    )
    _add_verbose_option(preview_parser, suppress_default=True)
    _add_output_option(preview_parser)
    preview_parser.add_argument("file", help="Path to the sketch source.")

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate the Solidity contract that embeds a sketch.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_output_option(generate_parser)
    generate_parser.add_argument("file", help="Path to the sketch source.")
    generate_parser.add_argument(
        "--template",
        help="Custom base contract template (defaults to the bundled NFTCollection.sol).",
    )
    generate_parser.add_argument(
        "--contract-name",
        help="Name of the generated contract.",
    )
    generate_parser.add_argument(
        "--chunk-size",
        type=int,
        help="Maximum length of each embedded source chunk.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="0.0.0.0", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for sketchgen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        source = Path(args.file).read_text(encoding="utf-8")
    except OSError as exc:
        parser.exit(1, f"Unable to read {args.file}: {exc}\n")

    try:
        config = load_config(Path.cwd())
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")
    pipeline = Pipeline(config)

    if args.command == "analyze":
        analysis = pipeline.analyze(source)
        print(json.dumps(analysis.to_dict(), indent=2))
        if analysis.has_errors:
            parser.exit(1)
    elif args.command == "preview":
        outcome = pipeline.preview(source)
        if outcome.warning:
            sys.stderr.write(outcome.warning)
        _emit(outcome.code, args.output)
    elif args.command == "generate":
        if args.chunk_size is not None and args.chunk_size <= 0:
            parser.error("--chunk-size must be a positive integer")
        try:
            template = Path(args.template).read_text(encoding="utf-8") if args.template else None
            outcome = pipeline.generate(
                source,
                template=template,
                contract_name=args.contract_name,
                chunk_size=args.chunk_size,
            )
        except OSError as exc:
            parser.exit(1, f"Unable to read template: {exc}\n")
        except (ValueError, RuntimeError) as exc:
            parser.exit(1, f"sketchgen generate failed: {exc}\nRun with --verbose for more details.\n")
        _emit(outcome.contract, args.output)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _emit(text: str, output: str | None) -> None:
    if output is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    path = Path(output)
    path.write_text(text, encoding="utf-8")
    print(f"Wrote {_relativize(path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
