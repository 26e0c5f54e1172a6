# =============================================================================
# test_routes.py - Route Registry Tests
# =============================================================================
# Tests for route registration, conflict detection and URL resolution.
#
# Test coverage includes:
#   - Static and dynamic registration
#   - Same-file re-registration
#   - Exact and structural conflicts
#   - Bracket syntax validation
#   - Resolving URLs with parameters and query strings
#   - Concurrent registration
# =============================================================================

from concurrent.futures import ThreadPoolExecutor

import pytest

from mtm_sdk.compiler.routes import (
    RouteRegistry,
    is_dynamic,
    split_segments,
    structural_pattern,
    validate_pattern,
)
from mtm_sdk.errors import (
    DynamicRouteConflictError,
    FrontmatterValidationError,
    RouteConflictError,
)


# =============================================================================
# Helper Function Tests
# =============================================================================

class TestHelpers:
    """Test route string helpers."""

    def test_split_segments(self):
        assert split_segments("/") == ()
        assert split_segments("/user/[id]/") == ("user", "[id]")

    def test_is_dynamic(self):
        assert is_dynamic("/user/[id]")
        assert not is_dynamic("/about")

    def test_structural_pattern(self):
        assert structural_pattern("/user/[id]") == "/user/*"
        assert structural_pattern("/blog/[year]/[slug]") == "/blog/*/*"
        assert structural_pattern("/") == "/"

    @pytest.mark.parametrize("path", ["/", "/about", "/user/[id]", "/a/[b]/c/[d]"])
    def test_valid_patterns(self, path):
        assert validate_pattern(path) == []

    @pytest.mark.parametrize("path,problem", [
        ("/user/[id", "unclosed"),
        ("/user/id]", "unmatched"),
        ("/user/[]", "empty parameter"),
        ("/user/[[id]]", "nested"),
    ])
    def test_invalid_patterns(self, path, problem):
        problems = validate_pattern(path)
        assert any(problem in p for p in problems)


# =============================================================================
# Registration Tests
# =============================================================================

class TestRegistration:
    """Test registering routes and detecting conflicts."""

    def test_register_static(self):
        registry = RouteRegistry()
        entry = registry.register("/about", "about.mtm")
        assert entry.source_file == "about.mtm"
        assert not entry.is_dynamic
        assert "/about" in registry
        assert len(registry) == 1

    def test_register_dynamic(self):
        entry = RouteRegistry().register("/user/[id]", "user.mtm")
        assert entry.is_dynamic
        assert entry.param_names == ("id",)

    def test_same_file_is_noop(self):
        registry = RouteRegistry()
        first = registry.register("/about", "about.mtm")
        second = registry.register("/about", "about.mtm")
        assert first is second
        assert len(registry) == 1

    def test_static_conflict(self):
        registry = RouteRegistry()
        registry.register("/about", "a.mtm")
        with pytest.raises(RouteConflictError) as exc_info:
            registry.register("/about", "b.mtm")
        error = exc_info.value
        assert error.existing_file == "a.mtm"
        assert error.file == "b.mtm"
        assert 'route "/about" is already registered by "a.mtm"' in str(error)

    def test_dynamic_structure_conflict(self):
        registry = RouteRegistry()
        registry.register("/user/[id]", "user.mtm")
        with pytest.raises(DynamicRouteConflictError) as exc_info:
            registry.register("/user/[name]", "profile.mtm")
        assert exc_info.value.existing_route == "/user/[id]"
        assert "same structure" in str(exc_info.value)

    def test_identical_dynamic_path_reports_structure(self):
        registry = RouteRegistry()
        registry.register("/user/[id]", "a.mtm")
        with pytest.raises(DynamicRouteConflictError):
            registry.register("/user/[id]", "b.mtm")

    def test_different_structures_coexist(self):
        registry = RouteRegistry()
        registry.register("/user/[id]", "user.mtm")
        registry.register("/admin/[id]", "admin.mtm")
        registry.register("/user/[id]/posts", "posts.mtm")
        assert len(registry) == 3

    def test_static_and_dynamic_coexist(self):
        registry = RouteRegistry()
        registry.register("/user/me", "me.mtm")
        registry.register("/user/[id]", "user.mtm")
        assert len(registry) == 2

    def test_invalid_pattern_rejected(self):
        with pytest.raises(FrontmatterValidationError):
            RouteRegistry().register("/user/[id", "user.mtm")

    def test_conflict_leaves_registry_unchanged(self):
        registry = RouteRegistry()
        registry.register("/about", "a.mtm")
        with pytest.raises(RouteConflictError):
            registry.register("/about", "b.mtm")
        assert registry.get("/about").source_file == "a.mtm"

    def test_entries_in_registration_order(self):
        registry = RouteRegistry()
        for path in ("/c", "/a", "/b"):
            registry.register(path, f"{path[1:]}.mtm")
        assert [e.path for e in registry] == ["/c", "/a", "/b"]

    def test_concurrent_registration(self):
        """Only one of many threads claiming the same route succeeds."""
        registry = RouteRegistry()

        def claim(index):
            try:
                registry.register("/shared", f"file{index}.mtm")
                return True
            except RouteConflictError:
                return False

        with ThreadPoolExecutor(max_workers=8) as executor:
            outcomes = list(executor.map(claim, range(32)))

        assert outcomes.count(True) == 1
        assert len(registry) == 1


# =============================================================================
# Resolution Tests
# =============================================================================

class TestResolution:
    """Test matching URLs against registered routes."""

    @pytest.fixture
    def registry(self):
        registry = RouteRegistry()
        registry.register("/", "index.mtm")
        registry.register("/user/me", "me.mtm")
        registry.register("/user/[id]", "user.mtm")
        registry.register("/blog/[year]/[slug]", "post.mtm")
        return registry

    def test_static(self, registry):
        match = registry.resolve("/")
        assert match.entry.source_file == "index.mtm"
        assert match.params == {}

    def test_static_wins_over_dynamic(self, registry):
        assert registry.resolve("/user/me").entry.source_file == "me.mtm"

    def test_dynamic_params(self, registry):
        match = registry.resolve("/blog/2024/hello")
        assert match.entry.source_file == "post.mtm"
        assert match.params == {"year": "2024", "slug": "hello"}

    def test_query_string(self, registry):
        match = registry.resolve("/user/42?tab=posts")
        assert match.params == {"id": "42"}
        assert match.query == {"tab": "posts"}

    def test_no_match(self, registry):
        assert registry.resolve("/nowhere/at/all/really") is None
