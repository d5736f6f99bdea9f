"""CLI entrypoints for repodoc commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List

from .config import ConfigError, RepoDocConfig, ScanRule
from .deadline import DeadlineExceeded
from .logging import configure_logging
from .orchestrator import Orchestrator, PipelineResult
from .repo_scanner import ScanError
from .writer import MarkdownWriter


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS if suppress_default else False,
        help="Increase log verbosity for troubleshooting.",
    )


def _add_path_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )


def _add_run_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-abstractions",
        type=int,
        default=None,
        help="Upper bound on documented components (defaults to the configured value).",
    )
    parser.add_argument(
        "--auto-repair",
        action="store_true",
        default=None,
        help="Retarget dangling cross-references to the most similar page instead of dropping them.",
    )
    parser.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Abort the run after this many seconds.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repodoc",
        description="Generate technical and tutorial documentation from repository analysis.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Analyse a repository and write its documentation tree.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_path_argument(generate_parser)
    _add_run_options(generate_parser)
    generate_parser.add_argument(
        "--output",
        default=None,
        help="Directory to write pages into (defaults to output.directory under the repository).",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the pages that would be written without touching the filesystem.",
    )

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Print the analysis report as JSON without writing pages.",
    )
    _add_verbose_option(inspect_parser, suppress_default=True)
    _add_path_argument(inspect_parser)
    _add_run_options(inspect_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repodoc commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service.app import run_service

        run_service(host=args.host, port=args.port)
        return

    orchestrator = Orchestrator()
    try:
        config = orchestrator.load_config(args.path)
        output_dir = _output_directory(args, config)
        result = orchestrator.run(
            args.path,
            rules=_output_exclusions(Path(args.path), output_dir),
            deadline_seconds=args.deadline,
            max_abstractions=args.max_abstractions,
            auto_repair=args.auto_repair,
            config=config,
        )
    except (ScanError, ConfigError) as exc:
        parser.exit(1, f"{exc}\n")
    except DeadlineExceeded as exc:
        parser.exit(
            2,
            f"repodoc {args.command} aborted: {exc} ({len(exc.findings)} finding(s) recorded)\n",
        )

    if args.command == "inspect":
        print(json.dumps(result.to_dict(), indent=2))
        return

    writer = MarkdownWriter()
    dry_run = bool(getattr(args, "dry_run", False))
    written = writer.write(result, output_dir, dry_run=dry_run)
    if dry_run:
        print("Pages that would be written (dry-run):")
        for path in written:
            print(f"  {_relativize(path)}")
    else:
        print(f"Wrote {len(written)} page(s) to {_relativize(output_dir)}")
    _print_summary(result)


def _output_directory(args: argparse.Namespace, config: RepoDocConfig) -> Path:
    output = getattr(args, "output", None)
    if output:
        return Path(output).expanduser().resolve()
    return (Path(args.path).expanduser().resolve() / config.output.directory).resolve()


def _output_exclusions(repo_path: Path, output_dir: Path) -> List[ScanRule]:
    """Keep previously generated pages out of the scan."""
    try:
        relative = output_dir.relative_to(repo_path.expanduser().resolve())
    except ValueError:
        return []
    if not relative.parts:
        return []
    return [ScanRule(pattern=f"/{relative.as_posix()}/", effect="exclude")]


def _print_summary(result: PipelineResult) -> None:
    print(f"Status: {result.status}")
    print(f"Components documented: {len(result.graph.abstractions)} of {result.candidates} candidate(s)")
    if result.findings:
        print(f"Findings ({len(result.findings)}):")
        for finding in result.findings:
            print(f"  [{finding.kind.value}] {finding.subject}: {finding.message}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
