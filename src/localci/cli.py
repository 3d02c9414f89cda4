# cli.py
from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import click

from localci.config import RunConfig
from localci.errors import ModeConflictError, PipelineLoadError
from localci.runner import load_pipeline, run_pipeline
from localci.ui.console import Console

DEFAULT_PIPELINE = "ci_pipeline.py"


def find_pipeline_files(directory: Path) -> list[Path]:
    """
    Find all pipeline files in a directory.

    Returns:
        ci_pipeline.py (if present) followed by any other *_pipeline.py
    """
    pipeline_files = []

    default_pipeline = directory / DEFAULT_PIPELINE
    if default_pipeline.exists():
        pipeline_files.append(default_pipeline)

    for path in sorted(directory.glob("*_pipeline.py")):
        if path != default_pipeline:
            pipeline_files.append(path)

    return pipeline_files


def discover_pipeline(console: Console, pipeline_arg: str | None, directory: Path) -> Path:
    """
    Resolve the pipeline file from the --pipeline argument or by looking
    around the working directory.

    Raises:
        SystemExit: If no pipeline, or more than one candidate, is found
    """
    if pipeline_arg:
        pipeline_path = Path(pipeline_arg)
        if not pipeline_path.exists() and pipeline_path.suffix != ".py":
            pipeline_path = Path(str(pipeline_path) + ".py")
        if not pipeline_path.exists():
            console.print_error(
                "Pipeline file not found",
                f"Could not find pipeline file: {pipeline_arg}",
                suggestion="Create a pipeline file or specify a different path:\n  localci run --pipeline my_pipeline.py",
            )
            sys.exit(1)
        return pipeline_path

    candidates = find_pipeline_files(directory)
    if DEFAULT_PIPELINE in [p.name for p in candidates]:
        return directory / DEFAULT_PIPELINE

    if not candidates:
        console.print_error(
            "No pipeline file found",
            "Could not find any pipeline files.",
            details=["Looked for:", f"  {DEFAULT_PIPELINE}", "  *_pipeline.py"],
            suggestion=f"Create a pipeline file:\n  {DEFAULT_PIPELINE}\n\nOr specify one explicitly:\n  localci run --pipeline my_pipeline.py",
        )
        sys.exit(1)

    if len(candidates) > 1:
        console.print_error(
            "Multiple pipeline files found",
            "Found multiple pipeline files. Please specify which one to use:",
            details=[str(p.name) for p in candidates],
            suggestion="Specify a pipeline explicitly:\n  localci run --pipeline lint_pipeline.py",
        )
        sys.exit(1)

    return candidates[0]


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """localci: run your CI checks locally, one by one or all at once."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command(
    epilog="Compatibility: --parallel cannot be combined with --fail-fast or --continue.",
)
@click.option("--pipeline", default=None, help=f"Pipeline file path (defaults to {DEFAULT_PIPELINE} if present)")
@click.option("-f", "--fail-fast", is_flag=True, default=False, help="Stop immediately when a step fails")
@click.option("-c", "--continue", "continue_mode", is_flag=True, default=False, help="Resume from the last failed step")
@click.option("-p", "--parallel", is_flag=True, default=False, help="Run all steps concurrently")
@click.option("--plain", is_flag=True, default=False, help="Disable ANSI cursor updates/colors (also used for non-TTY)")
@click.option("--title", default=None, help="Title of the top-level report")
@click.option("--subtitle", default=None, help="Subtitle printed under the title")
@click.pass_context
def run(ctx, pipeline, fail_fast, continue_mode, parallel, plain, title, subtitle):
    """Run a localci pipeline. Short flags combine, e.g. -fc."""
    debug = ctx.obj.get("debug", False)

    try:
        config = RunConfig.from_environment(
            fail_fast=fail_fast,
            continue_mode=continue_mode,
            parallel=parallel,
            plain=plain,
            debug=debug,
        )
        config.validate()
    except ModeConflictError as e:
        Console(plain=True).print_error("Incompatible options", str(e))
        sys.exit(1)

    console = Console(plain=config.plain, debug=debug)
    pipeline_path = discover_pipeline(console, pipeline, config.cwd)

    try:
        loaded = load_pipeline(pipeline_path)
    except PipelineLoadError as e:
        console.print_error(
            "Failed to load pipeline",
            f"{e.message}: {e.path}",
            details=e.details or None,
        )
        sys.exit(1)
    except Exception as e:
        console.print_error(
            "Failed to load pipeline",
            f"Could not load pipeline from {pipeline_path}",
            details=[str(e)],
        )
        if debug:
            console.print_exception(e)
        sys.exit(1)

    config = replace(
        config,
        title=title or loaded.title or config.title,
        subtitle=subtitle or loaded.subtitle or config.subtitle,
    )

    try:
        ok = run_pipeline(config, loaded.run, console=console)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)

    sys.exit(0 if ok else 1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
