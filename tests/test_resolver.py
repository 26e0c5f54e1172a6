# =============================================================================
# test_resolver.py - Import Path Resolution Tests
# =============================================================================
# Tests for resolving relative, aliased, absolute and package imports
# against a temporary project tree.
# =============================================================================

from pathlib import Path

import pytest

from mtm_sdk.compiler.resolver import PathResolver
from mtm_sdk.errors import ImportResolutionError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A small project tree with components and pages."""
    (tmp_path / "src" / "components" / "Modal").mkdir(parents=True)
    (tmp_path / "src" / "pages").mkdir(parents=True)
    (tmp_path / "src" / "components" / "Counter.tsx").write_text("export default () => null")
    (tmp_path / "src" / "components" / "Card.vue").write_text("<template></template>")
    (tmp_path / "src" / "components" / "Modal" / "index.svelte").write_text("")
    (tmp_path / "src" / "pages" / "index.mtm").write_text("")
    return tmp_path


class TestRelativeImports:
    """Test ./ and ../ imports."""

    def test_with_extension(self, project):
        page = project / "src" / "pages" / "index.mtm"
        resolution = PathResolver(project).resolve("../components/Card.vue", str(page))
        assert resolution.found
        assert Path(resolution.resolved_path).name == "Card.vue"

    def test_extension_added(self, project):
        page = project / "src" / "pages" / "index.mtm"
        resolution = PathResolver(project).resolve("../components/Counter", str(page))
        assert resolution.resolved_path.endswith("Counter.tsx")

    def test_directory_index(self, project):
        page = project / "src" / "pages" / "index.mtm"
        resolution = PathResolver(project).resolve("../components/Modal", str(page))
        assert resolution.resolved_path.endswith("index.svelte")

    def test_missing_records_search_paths(self, project):
        page = project / "src" / "pages" / "index.mtm"
        resolution = PathResolver(project).resolve("./Nope", str(page))
        assert not resolution.found
        assert resolution.resolved_path is None
        assert any(p.endswith("Nope.tsx") for p in resolution.search_paths)
        assert any(p.endswith("index.vue") for p in resolution.search_paths)


class TestAliasedImports:
    """Test alias expansion."""

    def test_default_components_alias(self, project):
        resolution = PathResolver(project).resolve("@components/Counter")
        assert resolution.found
        assert resolution.resolved_path.endswith("Counter.tsx")

    def test_root_alias(self, project):
        resolution = PathResolver(project).resolve("@/components/Card.vue")
        assert resolution.found

    def test_custom_alias_wins(self, project):
        (project / "ui").mkdir()
        (project / "ui" / "Counter.jsx").write_text("")
        resolver = PathResolver(project, {"@components/*": ["ui/*"]})
        assert resolver.resolve("@components/Counter").resolved_path.endswith("Counter.jsx")


class TestOtherImports:
    """Test absolute and package imports and strict mode."""

    def test_absolute_relative_to_base(self, project):
        resolution = PathResolver(project).resolve("/src/components/Counter")
        assert resolution.found

    def test_package_is_virtual(self, project):
        resolution = PathResolver(project).resolve("react-widgets")
        assert resolution.found
        assert resolution.is_package
        assert resolution.resolved_path == "react-widgets"

    def test_scoped_package(self, project):
        assert PathResolver(project).resolve("@scope/widget").is_package

    def test_strict_raises(self, project):
        resolver = PathResolver(project, strict=True)
        with pytest.raises(ImportResolutionError) as exc_info:
            resolver.resolve("@components/Ghost", "page.mtm", 3)
        error = exc_info.value
        assert error.import_path == "@components/Ghost"
        assert error.line == 3
        assert error.search_paths
        assert "Ensure the component exists in src/components/" in error.suggestions

    def test_is_relative(self):
        assert PathResolver.is_relative("./a")
        assert PathResolver.is_relative("../a")
        assert not PathResolver.is_relative("a")
