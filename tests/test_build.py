# =============================================================================
# test_build.py - Multi-File Build Tests
# =============================================================================
# Tests for discovering sources, ordering by imports, parallel
# compilation with a shared route registry, and error collection.
# =============================================================================

from pathlib import Path

import pytest

from mtm_sdk.compiler.build import (
    build_project,
    dependency_graph,
    discover_sources,
    scan_imports,
)
from mtm_sdk.compiler.resolver import PathResolver
from mtm_sdk.config import BuildConfig
from mtm_sdk.errors import FrontmatterValidationError, RouteConflictError


def page(route: str, body: str = "<template><p>page</p></template>") -> str:
    return f"---\nroute: {route}\n---\n{body}\n"


@pytest.fixture
def config(tmp_path: Path) -> BuildConfig:
    return BuildConfig(output_dir=tmp_path / "dist", max_workers=4)


# =============================================================================
# Discovery Tests
# =============================================================================

class TestDiscovery:
    """Test expanding paths into source files."""

    def test_directory_scanned_recursively(self, tmp_path):
        (tmp_path / "blog").mkdir()
        (tmp_path / "b.mtm").write_text("")
        (tmp_path / "a.mtm").write_text("")
        (tmp_path / "blog" / "post.mtm").write_text("")
        (tmp_path / "notes.txt").write_text("")
        found = discover_sources([tmp_path])
        assert found == [tmp_path / "a.mtm", tmp_path / "b.mtm", tmp_path / "blog" / "post.mtm"]

    def test_files_taken_as_given(self, tmp_path):
        target = tmp_path / "x.mtm"
        assert discover_sources([target, target]) == [target]


# =============================================================================
# Dependency Tests
# =============================================================================

class TestDependencies:
    """Test import scanning and the dependency graph."""

    def test_scan_imports(self):
        source = '---\nroute: /\n---\nimport A from "./A.mtm"\nimport B from "./B.tsx"'
        assert scan_imports(source, "x.mtm") == [("./A.mtm", 4), ("./B.tsx", 5)]

    def test_graph_only_build_files(self, tmp_path):
        index = tmp_path / "index.mtm"
        widget = tmp_path / "widget.mtm"
        (tmp_path / "Button.tsx").write_text("")
        widget.write_text("")
        sources = {
            str(index): 'import Widget from "./widget.mtm"\nimport Button from "./Button.tsx"',
            str(widget): "",
        }
        graph = dependency_graph(sources, PathResolver(tmp_path))
        assert graph == {str(index): {str(widget)}, str(widget): set()}


# =============================================================================
# Build Tests
# =============================================================================

class TestBuild:
    """Test complete builds."""

    def test_builds_every_page(self, tmp_path, config):
        (tmp_path / "index.mtm").write_text(page("/"))
        (tmp_path / "about.mtm").write_text(page("/about"))
        (tmp_path / "user.mtm").write_text(page("/user/[id]"))

        build = build_project(discover_sources([tmp_path]), config)

        assert build.success
        assert len(build.succeeded) == 3
        dist = tmp_path / "dist"
        assert (dist / "index.html").is_file()
        assert (dist / "about.html").is_file()
        assert (dist / "user-[id].html").is_file()
        assert len(build.registry) == 3

    def test_dependencies_compiled_first(self, tmp_path, config):
        index = tmp_path / "index.mtm"
        widget = tmp_path / "widget.mtm"
        index.write_text(page("/", 'import Widget from "./widget.mtm"'))
        widget.write_text(page("/widget"))

        build = build_project([index, widget], config)

        assert build.order == [str(widget), str(index)]
        assert build.success

    def test_cycle_is_warning(self, tmp_path, config):
        a = tmp_path / "a.mtm"
        b = tmp_path / "b.mtm"
        a.write_text(page("/a", 'import B from "./b.mtm"'))
        b.write_text(page("/b", 'import A from "./a.mtm"'))

        build = build_project([a, b], config)

        assert build.success
        assert any("import cycle" in w.message for w in build.collector.warnings)
        assert sorted(build.order) == sorted([str(a), str(b)])

    def test_route_conflict_reported(self, tmp_path, config):
        (tmp_path / "one.mtm").write_text(page("/same"))
        (tmp_path / "two.mtm").write_text(page("/same"))

        build = build_project(discover_sources([tmp_path]), config)

        assert not build.success
        assert len(build.failed) == 1
        assert len(build.succeeded) == 1
        assert isinstance(build.collector.errors[0], RouteConflictError)
        assert (tmp_path / "dist" / "same.html").is_file()

    def test_failure_does_not_stop_build(self, tmp_path, config):
        (tmp_path / "bad.mtm").write_text(page("no-slash"))
        (tmp_path / "good.mtm").write_text(page("/good"))

        build = build_project(discover_sources([tmp_path]), config)

        assert build.failed == [str(tmp_path / "bad.mtm")]
        assert isinstance(build.collector.errors[0], FrontmatterValidationError)
        assert (tmp_path / "dist" / "good.html").is_file()

    def test_unreadable_file(self, tmp_path, config):
        missing = tmp_path / "missing.mtm"
        build = build_project([missing], config)
        assert build.failed == [str(missing)]
        assert "cannot read source file" in build.collector.errors[0].message

    def test_no_write(self, tmp_path, config):
        (tmp_path / "index.mtm").write_text(page("/"))
        build = build_project(discover_sources([tmp_path]), config, write=False)
        assert build.success
        assert build.written == []
        assert not (tmp_path / "dist").exists()

    def test_production_build_writes_scripts(self, tmp_path, config):
        config.production = True
        (tmp_path / "index.mtm").write_text(
            page("/", "export default function Home() {\n<template></template>")
        )
        build = build_project(discover_sources([tmp_path]), config)
        assert (tmp_path / "dist" / "js" / "home.js").is_file()
        assert len(build.written) == 2

    def test_pages_without_route_share_index(self, tmp_path, config):
        (tmp_path / "a.mtm").write_text("<template><p>a</p></template>")
        (tmp_path / "b.mtm").write_text("<template><p>b</p></template>")

        build = build_project(discover_sources([tmp_path]), config)

        assert not build.success
        assert len(build.succeeded) == 1
        assert len(build.failed) == 1
        winner, loser = build.succeeded[0], build.failed[0]
        assert "output file 'index.html' is already produced by" in build.collector.errors[0].message
        assert build.collector.errors[0].file == loser
        assert build.outputs == {"index.html": winner}
        html = (tmp_path / "dist" / "index.html").read_text()
        assert ("<p>a</p>" in html) == winner.endswith("a.mtm")

    def test_production_scripts_with_default_name(self, tmp_path, config):
        config.production = True
        (tmp_path / "a.mtm").write_text(page("/a"))
        (tmp_path / "b.mtm").write_text(page("/b"))

        build = build_project(discover_sources([tmp_path]), config)

        assert len(build.failed) == 1
        assert "output file 'js/component.js'" in build.collector.errors[0].message
        loser = build.failed[0]
        loser_page = "a.html" if loser.endswith("a.mtm") else "b.html"
        assert not (tmp_path / "dist" / loser_page).exists()
        assert loser_page not in build.outputs

    def test_named_production_scripts_do_not_clash(self, tmp_path, config):
        config.production = True
        (tmp_path / "a.mtm").write_text(page("/a", "export default function A() {\n<template></template>"))
        (tmp_path / "b.mtm").write_text(page("/b", "export default function B() {\n<template></template>"))

        build = build_project(discover_sources([tmp_path]), config)

        assert build.success
        assert sorted(build.outputs) == ["a.html", "b.html", "js/a.js", "js/b.js"]

    def test_clash_reported_on_dry_run(self, tmp_path, config):
        (tmp_path / "a.mtm").write_text("")
        (tmp_path / "b.mtm").write_text("")
        build = build_project(discover_sources([tmp_path]), config, write=False)
        assert len(build.failed) == 1
        assert build.written == []

    def test_summary(self, tmp_path, config):
        (tmp_path / "index.mtm").write_text(page("/"))
        summary = build_project(discover_sources([tmp_path]), config).summary()
        assert summary["files"] == 1
        assert summary["failed"] == 0
        assert summary["routes"] == {"/": str(tmp_path / "index.mtm")}
        assert summary["error_count"] == 0
