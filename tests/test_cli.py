# =============================================================================
# test_cli.py - Command-Line Tool Tests
# =============================================================================
# Tests for mtmc and mtmbuild using click's CliRunner in an isolated
# filesystem.
# =============================================================================

from pathlib import Path

import pytest
from click.testing import CliRunner

from mtm_sdk.cli.errors import ExitCode
from mtm_sdk.cli.mtmbuild import main as mtmbuild
from mtm_sdk.cli.mtmc import main as mtmc


PAGE = """---
title: Home
route: /
---
export default function Home() {
$count! = 0
$inc = () => { $count = $count + 1 }
<template><button click={$inc}>{$count}</button></template>
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MTM_SOURCE_DIR", "MTM_OUTPUT_DIR", "MTM_BUILD_MODE", "MTM_MAX_WORKERS"):
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# mtmc Tests
# =============================================================================

class TestMtmc:
    """Tests for the single-file compiler CLI."""

    def test_compile(self, runner):
        with runner.isolated_filesystem():
            Path("home.mtm").write_text(PAGE)
            result = runner.invoke(mtmc, ["home.mtm"])
            assert result.exit_code == 0, result.output
            assert "Compiled home.mtm" in result.output
            assert Path("dist/index.html").is_file()

    def test_production_writes_script(self, runner):
        with runner.isolated_filesystem():
            Path("home.mtm").write_text(PAGE)
            result = runner.invoke(mtmc, ["--production", "home.mtm", "-o", "out"])
            assert result.exit_code == 0, result.output
            assert Path("out/js/home.js").is_file()

    def test_ast_dump(self, runner):
        with runner.isolated_filesystem():
            Path("home.mtm").write_text(PAGE)
            result = runner.invoke(mtmc, ["--ast", "home.mtm"])
            assert result.exit_code == 0
            assert "Component: Home" in result.output
            assert not Path("dist").exists()

    def test_token_dump(self, runner):
        with runner.isolated_filesystem():
            Path("home.mtm").write_text(PAGE)
            result = runner.invoke(mtmc, ["--tokens", "home.mtm"])
            assert result.exit_code == 0
            assert "Token(REACTIVE_VARIABLE, 'count', 6)" in result.output

    def test_compilation_error(self, runner):
        with runner.isolated_filesystem():
            Path("bad.mtm").write_text("---\nroute: home\n---\n")
            result = runner.invoke(mtmc, ["bad.mtm"])
            assert result.exit_code == ExitCode.BUILD_ERROR
            assert 'invalid frontmatter field "route"' in result.output

    def test_missing_input(self, runner):
        result = runner.invoke(mtmc, ["nope.mtm"])
        assert result.exit_code == 2

    def test_version(self, runner):
        result = runner.invoke(mtmc, ["--version"])
        assert result.exit_code == 0
        assert "1.0.0" in result.output


# =============================================================================
# mtmbuild Tests
# =============================================================================

class TestMtmbuild:
    """Tests for the project build CLI."""

    def test_default_source_dir(self, runner):
        with runner.isolated_filesystem():
            Path("src/pages").mkdir(parents=True)
            Path("src/pages/home.mtm").write_text(PAGE)
            result = runner.invoke(mtmbuild, [])
            assert result.exit_code == 0, result.output
            assert "Built 1 pages" in result.output
            assert Path("dist/index.html").is_file()

    def test_explicit_paths_and_output(self, runner):
        with runner.isolated_filesystem():
            Path("pages").mkdir()
            Path("pages/home.mtm").write_text(PAGE)
            Path("pages/about.mtm").write_text("---\nroute: /about\n---\n")
            result = runner.invoke(mtmbuild, ["pages", "-o", "public", "-j", "2"])
            assert result.exit_code == 0, result.output
            assert Path("public/about.html").is_file()

    def test_conflict_fails_build(self, runner):
        with runner.isolated_filesystem():
            Path("pages").mkdir()
            Path("pages/a.mtm").write_text(PAGE)
            Path("pages/b.mtm").write_text(PAGE)
            result = runner.invoke(mtmbuild, ["pages"])
            assert result.exit_code == ExitCode.BUILD_ERROR
            assert "already registered" in result.output
            assert "Build failed: 1 of 2 files failed" in result.output

    def test_dry_run(self, runner):
        with runner.isolated_filesystem():
            Path("pages").mkdir()
            Path("pages/home.mtm").write_text(PAGE)
            result = runner.invoke(mtmbuild, ["pages", "--dry-run"])
            assert result.exit_code == 0
            assert not Path("dist").exists()

    def test_json_summary(self, runner):
        with runner.isolated_filesystem():
            Path("pages").mkdir()
            Path("pages/home.mtm").write_text(PAGE)
            result = runner.invoke(mtmbuild, ["pages", "--json"])
            assert result.exit_code == 0
            assert '"files": 1' in result.output
            assert '"/": "pages/home.mtm"' in result.output

    def test_no_sources(self, runner):
        with runner.isolated_filesystem():
            Path("empty").mkdir()
            result = runner.invoke(mtmbuild, ["empty"])
            assert result.exit_code == ExitCode.INVALID_ARGS
            assert "no MTM files found" in result.output

    def test_missing_default_dir(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(mtmbuild, [])
            assert result.exit_code == ExitCode.INVALID_ARGS

    def test_env_output_dir(self, runner, monkeypatch):
        with runner.isolated_filesystem():
            monkeypatch.setenv("MTM_OUTPUT_DIR", "site")
            Path("pages").mkdir()
            Path("pages/home.mtm").write_text(PAGE)
            result = runner.invoke(mtmbuild, ["pages"])
            assert result.exit_code == 0, result.output
            assert Path("site/index.html").is_file()
