# =============================================================================
# test_frameworks.py - Framework Detection and Adapter Tests
# =============================================================================
# Tests for detecting an import's framework, extracting props from
# component sources and generating mount wrappers.
# =============================================================================

import pytest

from mtm_sdk.compiler.frameworks import (
    ComponentDefinition,
    Framework,
    Prop,
    ReactAdapter,
    SvelteAdapter,
    VueAdapter,
    adapter_for,
    detect_framework,
)


# =============================================================================
# Detection Tests
# =============================================================================

class TestDetection:
    """Test framework detection from paths."""

    @pytest.mark.parametrize("path,framework", [
        ("./Button.tsx", Framework.REACT),
        ("./Button.jsx", Framework.REACT),
        ("./Card.vue", Framework.VUE),
        ("./Counter.svelte", Framework.SVELTE),
        ("./Counter.solid.tsx", Framework.SOLID),
        ("@components/solid/Toggle.tsx", Framework.SOLID),
        ("components/solid/Card.vue", Framework.VUE),
        ("./widget.js", Framework.UNKNOWN),
        ("some-package", Framework.UNKNOWN),
    ])
    def test_detect(self, path, framework):
        assert detect_framework(path) is framework

    def test_adapter_detect(self):
        assert adapter_for(Framework.VUE).detect("x/Card.vue")
        assert not adapter_for(Framework.VUE).detect("x/Card.tsx")

    def test_every_framework_has_adapter(self):
        for framework in Framework:
            assert adapter_for(framework).framework is framework

    def test_str(self):
        assert str(Framework.SVELTE) == "svelte"


# =============================================================================
# Prop Extraction Tests
# =============================================================================

class TestPropExtraction:
    """Test reading props out of component sources."""

    def test_react_interface(self):
        source = "interface ButtonProps { label: string; disabled?: boolean }"
        props = ReactAdapter().extract_props(source)
        assert props == [
            Prop("label", "string", True),
            Prop("disabled", "boolean", False),
        ]

    def test_react_prop_types(self):
        source = "Button.propTypes = { label: PropTypes.string.isRequired, size: PropTypes.number }"
        props = ReactAdapter().extract_props(source)
        assert props == [Prop("label", "string", True), Prop("size", "number", False)]

    def test_vue_array_props(self):
        props = VueAdapter().extract_props("export default { props: ['title', 'count'] }")
        assert [p.name for p in props] == ["title", "count"]
        assert not any(p.required for p in props)

    def test_vue_object_props(self):
        source = "props: { title: String, count: { type: Number, default: 0, required: true } }"
        props = VueAdapter().extract_props(source)
        assert props[0] == Prop("title", "String", False)
        assert props[1] == Prop("count", "Number", True, "0")

    def test_vue_define_props(self):
        source = "const props = defineProps<{ msg: string; n?: number }>()"
        props = VueAdapter().extract_props(source)
        assert [(p.name, p.required) for p in props] == [("msg", True), ("n", False)]

    def test_svelte_export_let(self):
        source = "<script>\nexport let name: string = 'World';\nexport let count;\n</script>"
        props = SvelteAdapter().extract_props(source)
        assert props[0] == Prop("name", "string", False, "'World'")
        assert props[1] == Prop("count", "any", True, None)

    def test_duplicates_removed(self):
        source = "export let a;\nexport let a = 1;"
        assert len(SvelteAdapter().extract_props(source)) == 1

    def test_no_props(self):
        assert ReactAdapter().extract_props("export default () => null") == []


# =============================================================================
# Wrapper Generation Tests
# =============================================================================

class TestWrappers:
    """Test the generated registration code."""

    def test_react_wrapper(self):
        definition = ComponentDefinition(
            "Button", Framework.REACT, "./Button.tsx", props=(Prop("label"),)
        )
        js = definition.adapter.generate_wrapper(definition)
        assert "MTMComponents.register('Button', 'react'" in js
        assert 'props: ["label"]' in js
        assert "window['Button']" in js
        assert "ReactDOM.createRoot(el)" in js

    @pytest.mark.parametrize("framework,needle", [
        (Framework.VUE, "Vue.createApp(Component, props)"),
        (Framework.SVELTE, "new Component({ target: el, props })"),
        (Framework.SOLID, "SolidWeb.render"),
        (Framework.UNKNOWN, "el.innerHTML"),
    ])
    def test_mount_expressions(self, framework, needle):
        definition = ComponentDefinition("W", framework, "./W")
        assert needle in definition.adapter.generate_wrapper(definition)
