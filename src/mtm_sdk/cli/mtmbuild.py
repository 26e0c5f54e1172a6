"""
mtmbuild - MTM Project Build Tool
=================================

This module implements the build tool that compiles every MTM file of a
project in one pass. Files are ordered by their imports, compiled in
parallel, and share a single route registry so that two pages claiming
the same route are reported as a conflict.

A failing file does not stop the build: every error and warning of the
project is reported at the end, and the exit status is non-zero if any
file failed.

Usage Examples
--------------
Build the default source directory (src/pages, or $MTM_SOURCE_DIR):
    $ mtmbuild

Build specific files or directories:
    $ mtmbuild src/pages src/legacy/home.mtm -o public

Production build with four worker threads:
    $ mtmbuild --production -j 4

Machine-readable summary:
    $ mtmbuild --json

Environment
-----------
MTM_SOURCE_DIR, MTM_OUTPUT_DIR, MTM_BUILD_MODE and MTM_MAX_WORKERS supply
defaults; command-line options take precedence.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from mtm_sdk import __version__
from mtm_sdk.cli.errors import ExitCode, handle_cli_exception, setup_logging
from mtm_sdk.compiler.build import build_project, discover_sources
from mtm_sdk.config import BuildConfig


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "-o", "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: dist, or $MTM_OUTPUT_DIR)",
)
@click.option(
    "--production/--development",
    default=None,
    help="Build mode (default: development, or $MTM_BUILD_MODE)",
)
@click.option(
    "-j", "--jobs",
    type=click.IntRange(min=1),
    default=None,
    help="Worker threads used for compilation",
)
@click.option(
    "--resolve-imports",
    is_flag=True,
    help="Look up imported components on disk and read their props",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Compile everything but write nothing",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print the build summary as JSON",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mtmbuild")
def main(
    paths: tuple[Path, ...],
    output_dir: Optional[Path],
    production: Optional[bool],
    jobs: Optional[int],
    resolve_imports: bool,
    dry_run: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """
    Build every MTM page of a project.

    PATHS are MTM files or directories searched recursively for .mtm
    files. Without PATHS the configured source directory is built.

    \b
    Examples:
        mtmbuild                       # Build src/pages into dist/
        mtmbuild pages -o public       # Specify source and output
        mtmbuild --production -j 4     # Production build, 4 threads
        mtmbuild --dry-run -v          # Check the project only
    """
    setup_logging(verbose)

    try:
        config = BuildConfig.from_env()
        if output_dir is not None:
            config.output_dir = output_dir
        if production is not None:
            config.production = production
        if jobs is not None:
            config.max_workers = jobs
        config.resolve_imports = resolve_imports

        roots = list(paths) or [config.source_dir]
        for root in roots:
            if not root.exists():
                raise FileNotFoundError(f"Source path not found: {root}")

        files = discover_sources(roots, config.extensions)
        if not files:
            raise click.BadParameter(
                f"no MTM files found in {', '.join(str(r) for r in roots)}",
                param_hint="PATHS",
            )

        if verbose:
            click.echo(f"Building {len(files)} files "
                       f"({'production' if config.production else 'development'})")
            click.echo(f"Output directory: {config.output_dir}")

        build = build_project(files, config, write=not dry_run)

        if as_json:
            click.echo(json.dumps(build.summary(), indent=2))
        else:
            if build.collector.errors or build.collector.warnings:
                click.echo(build.collector.report(), err=True)
            if verbose:
                for path in build.written:
                    click.echo(f"Wrote {path}")

        if not build.success:
            click.echo(
                f"Build failed: {len(build.failed)} of {len(build.results)} files failed",
                err=True,
            )
            sys.exit(ExitCode.BUILD_ERROR)

        if not as_json:
            click.echo(f"Built {len(build.succeeded)} pages -> {config.output_dir}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Build")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
