"""
mtmc - MTM Compiler Command-Line Interface
==========================================

This module implements the command-line interface for compiling one MTM
file into an HTML page (plus an external script, depending on the
compilation mode).

Usage Examples
--------------
Basic compilation (writes dist/index.html or dist/<route>.html):
    $ mtmc pages/index.mtm

Into another directory:
    $ mtmc pages/index.mtm -o public

Production build (external js/<name>.js unless compileJsMode says otherwise):
    $ mtmc --production pages/index.mtm

Debugging:
    $ mtmc --tokens pages/index.mtm
    $ mtmc --ast pages/index.mtm
"""

from pathlib import Path
from typing import Optional

import click

from mtm_sdk import __version__
from mtm_sdk.cli.errors import handle_cli_exception, setup_logging
from mtm_sdk.compiler import CompilerOptions, MTMCompiler, write_result


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("dist"),
    show_default=True,
    help="Directory the HTML page and script are written to",
)
@click.option(
    "--production/--development",
    default=False,
    help="Build mode; selects the script mode when compileJsMode is not set",
)
@click.option(
    "--resolve-imports",
    is_flag=True,
    help="Look up imported components on disk and read their props",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream and exit (for debugging)",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the AST and exit (for debugging)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mtmc")
def main(
    input_file: Path,
    output_dir: Path,
    production: bool,
    resolve_imports: bool,
    tokens: bool,
    ast: bool,
    verbose: bool,
) -> None:
    """
    Compile an MTM single-file component into an HTML page.

    INPUT_FILE is the MTM source file (.mtm) to compile.

    \b
    Examples:
        mtmc index.mtm               # Outputs dist/index.html
        mtmc about.mtm -o public     # Specify output directory
        mtmc --production app.mtm    # External script in dist/js/
        mtmc --ast app.mtm           # Dump the parsed component
    """
    setup_logging(verbose)

    options = CompilerOptions(
        development=not production,
        production=production,
        resolve_imports=resolve_imports,
        base_dir=str(Path.cwd()),
    )

    try:
        if verbose:
            click.echo(f"Compiling {input_file}...")
            click.echo(f"Build mode: {'production' if production else 'development'}")

        result = MTMCompiler(options).compile_file(str(input_file))

        if tokens:
            for token in result.tokens:
                click.echo(repr(token))
            return

        if ast:
            from mtm_sdk.compiler.ast import ASTPrinter
            click.echo(ASTPrinter().print(result.component))
            return

        written = write_result(result, output_dir)

        for warning in result.warnings:
            click.echo(str(warning), err=True)

        if verbose:
            click.echo(f"Route: {result.route or '(none)'}")
            click.echo(f"Script mode: {result.mode.label}")
            click.echo(f"Tokenized: {len(result.tokens)} tokens")
            for path in written:
                click.echo(f"Wrote {path}")

        click.echo(f"Compiled {input_file} -> {written[0]}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Compilation")


if __name__ == "__main__":
    main()
