# =============================================================================
# test_compiler.py - Single-File Compiler Tests
# =============================================================================
# End-to-end tests for MTMCompiler: frontmatter validation, route
# registration, compilation modes, import resolution and artifact output.
# =============================================================================

from pathlib import Path

import pytest

from mtm_sdk.compiler import (
    CompilerOptions,
    MTMCompiler,
    RouteRegistry,
    compile_file,
    compile_mtm,
    write_result,
)
from mtm_sdk.compiler.modes import ModeKind
from mtm_sdk.errors import (
    CompilationError,
    FrontmatterValidationError,
    ImportResolutionError,
    RouteConflictError,
)


HOME = """---
title: Home
route: /
---
$name! = 'World'
<template><h1>Hello {$name}</h1></template>
"""


# =============================================================================
# Pipeline Tests
# =============================================================================

class TestCompileSource:
    """Test compiling source text."""

    def test_success(self):
        result = compile_mtm(HOME, "home.mtm")
        assert result.success
        assert result.route == "/"
        assert result.output_name == "index.html"
        assert result.mode.kind is ModeKind.INLINE
        assert "<title>Home</title>" in result.html
        assert result.javascript in result.html
        assert result.tokens
        assert result.warnings == []

    def test_output_name_from_route(self):
        result = compile_mtm("---\nroute: /about\n---\n<template></template>", "about.mtm")
        assert result.output_name == "about.html"

    def test_no_route_not_registered(self):
        registry = RouteRegistry()
        compile_mtm("<template></template>", "partial.mtm", registry=registry)
        assert len(registry) == 0

    def test_invalid_route_raises(self):
        with pytest.raises(FrontmatterValidationError):
            compile_mtm("---\nroute: about\n---\n", "about.mtm")

    def test_invalid_mode_raises(self):
        with pytest.raises(FrontmatterValidationError):
            compile_mtm("---\ncompileJsMode: bundle\n---\n", "x.mtm")

    def test_route_conflict_across_files(self):
        registry = RouteRegistry()
        compile_mtm(HOME, "home.mtm", registry=registry)
        with pytest.raises(RouteConflictError):
            compile_mtm(HOME, "other.mtm", registry=registry)

    def test_recompile_same_file(self):
        compiler = MTMCompiler()
        compiler.compile_source(HOME, "home.mtm")
        assert compiler.compile_source(HOME, "home.mtm").success

    def test_warnings_collected(self):
        source = "<template>{#if $ghost}x{/if}<button click={$nope}>b</button></template>"
        result = compile_mtm(source, "w.mtm")
        assert result.success
        assert len(result.warnings) == 2
        assert all(w.is_warning for w in result.warnings)

    def test_production_mode(self):
        source = "---\nroute: /\n---\nexport default function Home() {\n<template></template>"
        result = compile_mtm(source, "home.mtm", CompilerOptions(production=True))
        assert result.mode.kind is ModeKind.EXTERNAL
        assert result.external_file == ("js/home.js", result.javascript)
        assert '<script src="js/home.js"></script>' in result.html
        assert result.javascript not in result.html

    def test_frontmatter_mode_wins(self):
        source = "---\ncompileJsMode: app.js\n---\n"
        result = compile_mtm(source, "x.mtm", CompilerOptions(development=True))
        assert result.mode.kind is ModeKind.CUSTOM
        assert result.external_file[0] == "app.js"

    def test_skip_runtime(self):
        result = compile_mtm(HOME, "home.mtm", CompilerOptions(skip_runtime=True))
        assert "const MTMRouter = {" not in result.javascript


# =============================================================================
# End-to-End Tests
# =============================================================================

COUNTER = """$count! = signal('count', 0)
$increment = () => { $count = $count + 1 }
<template><button click={$increment}>{$count}</button></template>
"""


class TestCounterPage:
    """Test the three-line counter page from source to document."""

    @pytest.fixture
    def result(self):
        return compile_mtm(COUNTER, "counter.mtm")

    def test_store_created(self, result):
        assert "const count = MTMRouter.create('count', 0);" in result.javascript

    def test_function_body_rewritten(self, result):
        expected = "\n".join([
            "  const increment = () => {",
            "    count.value = count.value + 1",
            "  };",
        ])
        assert expected in result.javascript
        assert "$count" not in result.javascript.split("const increment", 1)[1].split("};", 1)[0]

    def test_template_markers(self, result):
        assert result.template.html == (
            '<button data-click="$increment"><span data-bind="$count"></span></button>'
        )
        assert result.template.html in result.html

    @pytest.mark.parametrize("options", [
        CompilerOptions(development=True),
        CompilerOptions(production=True),
    ])
    def test_same_body_in_every_mode(self, options):
        result = compile_mtm(COUNTER, "counter.mtm", options)
        assert "    count.value = count.value + 1" in result.javascript


# =============================================================================
# Import Resolution Tests
# =============================================================================

class TestImports:
    """Test compiling with import resolution enabled."""

    @pytest.fixture
    def project(self, tmp_path: Path) -> Path:
        (tmp_path / "components").mkdir()
        (tmp_path / "components" / "Greeting.svelte").write_text(
            "<script>\nexport let who = 'you';\n</script>"
        )
        return tmp_path

    def test_props_from_resolved_file(self, project):
        page = project / "page.mtm"
        page.write_text('import Greeting from "./components/Greeting"\n<template><Greeting /></template>')
        options = CompilerOptions(resolve_imports=True, base_dir=str(project))
        result = MTMCompiler(options).compile_file(str(page))
        imp = result.component.imports[0]
        assert imp.resolved_path.endswith("Greeting.svelte")
        assert 'data-framework="svelte"' in result.html
        assert 'props: ["who"]' in result.javascript

    def test_strict_missing_import(self, project):
        page = project / "page.mtm"
        page.write_text('import Ghost from "./components/Ghost"')
        options = CompilerOptions(resolve_imports=True, base_dir=str(project))
        with pytest.raises(ImportResolutionError):
            MTMCompiler(options).compile_file(str(page))

    def test_lenient_missing_import(self, project):
        page = project / "page.mtm"
        page.write_text('import Ghost from "./components/Ghost.tsx"')
        options = CompilerOptions(resolve_imports=True, base_dir=str(project), strict_imports=False)
        result = MTMCompiler(options).compile_file(str(page))
        assert result.success
        assert isinstance(result.warnings[0], ImportResolutionError)
        assert result.component.imports[0].resolved_path is None


# =============================================================================
# File Output Tests
# =============================================================================

class TestFiles:
    """Test compile_file and write_result."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            compile_file(str(tmp_path / "missing.mtm"))

    def test_write_inline(self, tmp_path):
        source = tmp_path / "home.mtm"
        source.write_text(HOME)
        result = compile_file(str(source), output_dir=str(tmp_path / "dist"))
        html = (tmp_path / "dist" / "index.html").read_text()
        assert html == result.html
        assert not (tmp_path / "dist" / "js").exists()

    def test_write_external(self, tmp_path):
        result = compile_mtm(
            "export default function Shop() {\n<template></template>",
            "shop.mtm",
            CompilerOptions(production=True),
        )
        written = write_result(result, tmp_path)
        assert written == [tmp_path / "index.html", tmp_path / "js" / "shop.js"]
        assert (tmp_path / "js" / "shop.js").read_text() == result.javascript

    def test_write_failed_result(self, tmp_path):
        result = compile_mtm(HOME, "home.mtm")
        result.success = False
        with pytest.raises(CompilationError):
            write_result(result, tmp_path)
