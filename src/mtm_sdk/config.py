"""
MTM Build Configuration
=======================

Project-level build settings. Configuration can come from:
- Default values (defined here)
- Environment variables (BuildConfig.from_env)
- Command-line options (the mtmbuild CLI overrides individual fields)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import os

from mtm_sdk.compiler.compiler import CompilerOptions


@dataclass
class BuildConfig:
    """
    Configuration for one multi-file build.

    Attributes:
        source_dir: Directory scanned for MTM files
        output_dir: Directory the HTML and script files are written to
        production: Production build (external scripts by default);
            otherwise a development build (inline scripts)
        max_workers: Worker threads for compilation (None = executor default)
        resolve_imports: Look up imported component files on disk
        base_dir: Project root for aliased and absolute imports
        aliases: Extra import aliases, e.g. {"@ui/*": ["src/ui/*"]}
        extensions: Source file extensions picked up when scanning
    """

    # ═══════════════════════════════════════════════════════════════════════════
    # PATHS
    # ═══════════════════════════════════════════════════════════════════════════

    source_dir: Path = field(default_factory=lambda: Path("src/pages"))
    output_dir: Path = field(default_factory=lambda: Path("dist"))

    # ═══════════════════════════════════════════════════════════════════════════
    # BUILD MODE
    # ═══════════════════════════════════════════════════════════════════════════

    production: bool = False
    max_workers: Optional[int] = None

    # ═══════════════════════════════════════════════════════════════════════════
    # IMPORTS
    # ═══════════════════════════════════════════════════════════════════════════

    resolve_imports: bool = False
    base_dir: Path = field(default_factory=lambda: Path("."))
    aliases: dict = field(default_factory=dict)
    extensions: tuple[str, ...] = (".mtm",)

    @classmethod
    def from_env(cls) -> "BuildConfig":
        """
        Create BuildConfig from environment variables.

        Environment variables (all optional):
            MTM_SOURCE_DIR: Directory scanned for MTM files
            MTM_OUTPUT_DIR: Output directory
            MTM_BUILD_MODE: "development" or "production"
            MTM_MAX_WORKERS: Worker thread count (positive integer)

        Returns:
            BuildConfig with values from environment variables
        """
        config = cls()

        if source_dir := os.environ.get("MTM_SOURCE_DIR"):
            config.source_dir = Path(source_dir)

        if output_dir := os.environ.get("MTM_OUTPUT_DIR"):
            config.output_dir = Path(output_dir)

        if build_mode := os.environ.get("MTM_BUILD_MODE"):
            if build_mode in ("development", "production"):
                config.production = build_mode == "production"

        if max_workers := os.environ.get("MTM_MAX_WORKERS"):
            try:
                workers = int(max_workers)
            except ValueError:
                pass  # Ignore invalid values
            else:
                if workers > 0:
                    config.max_workers = workers

        return config

    @property
    def development(self) -> bool:
        return not self.production

    def to_compiler_options(self) -> CompilerOptions:
        """Derive the per-file compiler options."""
        return CompilerOptions(
            development=self.development,
            production=self.production,
            resolve_imports=self.resolve_imports,
            base_dir=str(self.base_dir),
            aliases=dict(self.aliases),
        )
