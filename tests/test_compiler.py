"""
Tests for the dynamic compiler.

Tests cover:
- Element lowering of intrinsic tag calls
- Component resolution order
- Placeholders for compile, execution and missing-export failures
- The restricted plugin scope
- The typed dialect
"""

import ast

import pytest

from skadi.compiler import (
    Dialect,
    DynamicCompiler,
    FailureStage,
    SCOPE_PARAMETERS,
    compile_to_component,
    detect_dialect,
    is_plugin_file,
    placeholder_component,
)
from skadi.compiler.scope import SAFE_BUILTINS, PluginModule, ScopePrimitives
from skadi.compiler.transform import ElementTransformer, bound_names
from skadi.models import ErrorCode
from skadi.ui import Element, Root, render_to_string


def render(component, props=None) -> str:
    root = Root(component, props or {})
    root.render()
    return render_to_string(root.tree)


class TestDialect:
    """Tests for dialect detection."""

    def test_plain_extension(self):
        assert detect_dialect("clock.py") is Dialect.PLAIN

    def test_typed_extension(self):
        assert detect_dialect("clock.pyt") is Dialect.TYPED

    def test_unknown_extension_defaults_to_plain(self):
        assert detect_dialect("clock.txt") is Dialect.PLAIN

    def test_plugin_files(self):
        assert is_plugin_file("a.py")
        assert is_plugin_file("dir/b.PYT")
        assert not is_plugin_file("c.pyi")
        assert not is_plugin_file("README.md")


class TestElementLowering:
    """Tests for rewriting tag calls into create_element calls."""

    def test_tag_call_is_lowered(self):
        result = compile_to_component(
            "def Component(props):\n    return div(span('hi'), class_='x')\n",
            "hello.py",
        )

        assert result.ok
        assert render(result.component) == '<div class="x"><span>hi</span></div>'

    def test_keyword_spread_becomes_props(self):
        result = compile_to_component(
            "def Component(props):\n    return div('x', **{'id': 'main'})\n",
            "spread.py",
        )

        assert render(result.component) == '<div id="main">x</div>'

    def test_bound_tag_names_are_not_lowered(self):
        source = (
            "def label(text):\n"
            "    return span(text)\n"
            "\n"
            "def Component(props):\n"
            "    return div(label('x'))\n"
        )
        result = compile_to_component(source, "shadow.py")

        assert result.ok
        assert render(result.component) == "<div><span>x</span></div>"

    def test_rewrite_count(self):
        tree = ast.parse("div(p('a'), p('b'), other('c'))")
        transformer = ElementTransformer(bound_names(tree))
        transformer.visit(tree)

        assert transformer.rewritten == 3

    def test_bound_names_are_per_scope(self):
        tree = ast.parse("x = 1\ndef f(a, *rest):\n    y = 2\nclass C:\n    z = 3\n")
        function, cls = tree.body[1], tree.body[2]

        assert bound_names(tree) == {"x", "f", "C"}
        assert bound_names(function) == {"a", "rest", "y"}
        assert bound_names(cls) == {"z"}

    def test_parameter_named_like_tag_only_shadows_its_function(self):
        source = (
            "def fmt(p):\n"
            "    return str(p)\n"
            "\n"
            "def Component(props):\n"
            "    return div(p(fmt(1)))\n"
        )
        result = compile_to_component(source, "param.py")

        assert result.ok
        assert render(result.component) == "<div><p>1</p></div>"

    def test_loop_variable_named_like_tag(self):
        source = (
            "def total(items):\n"
            "    n = 0\n"
            "    for i in items:\n"
            "        n += i\n"
            "    return n\n"
            "\n"
            "def Component(props):\n"
            "    return i(str(total([1, 2])), *[b(str(i)) for i in range(2)])\n"
        )
        result = compile_to_component(source, "loop.py")

        assert render(result.component) == "<i>3<b>0</b><b>1</b></i>"

    def test_binding_is_visible_in_nested_functions(self):
        source = (
            "def Component(props):\n"
            "    def p(text):\n"
            "        return span(text)\n"
            "\n"
            "    def inner():\n"
            "        return p('x')\n"
            "\n"
            "    return div(inner())\n"
        )
        result = compile_to_component(source, "nested_shadow.py")

        assert render(result.component) == "<div><span>x</span></div>"

    def test_components_can_use_other_components(self):
        source = (
            "def Badge(props):\n"
            "    return span(props['text'])\n"
            "\n"
            "def Component(props):\n"
            "    return div(create_element(Badge, {'text': 'ok'}))\n"
        )
        result = compile_to_component(source, "nested.py")

        assert render(result.component) == "<div><span>ok</span></div>"


class TestComponentResolution:
    """Tests for finding the exported component."""

    def test_exports_default(self):
        result = compile_to_component(
            "exports['default'] = lambda props: p('default')\n", "default.py"
        )

        assert result.ok
        assert render(result.component) == "<p>default</p>"

    def test_module_exports_callable(self):
        source = "def Widget(props):\n    return p('widget')\n\nmodule.exports = Widget\n"
        result = compile_to_component(source, "widget.py")

        assert result.ok
        assert result.component.__name__ == "Widget"

    def test_component_binding_wins(self):
        source = (
            "def Component(props):\n    return p('component')\n"
            "exports['default'] = lambda props: p('default')\n"
        )
        result = compile_to_component(source, "both.py")

        assert render(result.component) == "<p>component</p>"

    def test_props_are_passed(self):
        source = "def Component(props):\n    return p(props['bridge'])\n"
        result = compile_to_component(source, "props.py")

        assert render(result.component, {"bridge": "ready"}) == "<p>ready</p>"


class TestFailures:
    """Tests for placeholders produced on failure."""

    def test_syntax_error_is_compile_placeholder(self):
        result = compile_to_component("def Component(:\n    pass\n", "bad.py")

        assert not result.ok
        assert result.stage is FailureStage.COMPILE
        assert result.error.error.code == ErrorCode.COMPILE_ERROR
        assert "SyntaxError" in result.message
        assert "Compile Error: bad.py" in render(result.component)

    def test_module_body_raises(self):
        result = compile_to_component("raise ValueError('boom')\n", "boom.py")

        assert result.stage is FailureStage.EXECUTION
        assert result.error.error.code == ErrorCode.EXECUTION_ERROR
        assert "boom" in result.message
        assert "Execution Error: boom.py" in render(result.component)

    def test_nothing_exported(self):
        result = compile_to_component("x = 1\n", "empty.py")

        assert result.stage is FailureStage.MISSING_EXPORT
        assert result.message == "No component exported from empty.py"
        assert "No component exported from empty.py" in render(result.component)

    def test_non_callable_export(self):
        result = compile_to_component("Component = 42\n", "number.py")

        assert result.stage is FailureStage.EXECUTION
        assert "did not export a valid component" in result.message

    @pytest.mark.parametrize(
        "source",
        ["Component = None\n", "exports['default'] = None\n"],
    )
    def test_none_export_is_execution_error(self, source):
        result = compile_to_component(source, "none.py")

        assert result.stage is FailureStage.EXECUTION
        assert "did not export a valid component" in result.message
        assert "Execution Error: none.py" in render(result.component)

    def test_placeholder_never_raises(self):
        component = placeholder_component(FailureStage.FETCH, "gone.py", "HTTP 404")
        root = Root(component)
        tree = root.render()

        assert isinstance(tree, Element)
        assert tree.props["title"] == "HTTP 404"
        assert tree.props["data-error"] == "fetch"
        assert tree.text_content() == "Failed: gone.py"

    def test_placeholder_stage_attribute(self):
        component = placeholder_component(FailureStage.COMPILE, "x.py")
        assert component.failure_stage is FailureStage.COMPILE


class TestScope:
    """Tests for the restricted plugin scope."""

    def test_scope_parameters(self):
        assert SCOPE_PARAMETERS == (
            "create_element",
            "use_state",
            "use_effect",
            "use_callback",
            "use_memo",
            "use_ref",
        )

    def test_namespace_contents(self):
        module = PluginModule()
        namespace = ScopePrimitives().namespace(module, "plugins/clock.py")

        for name in SCOPE_PARAMETERS:
            assert callable(namespace[name])
        assert namespace["module"] is module
        assert namespace["exports"] is module.exports
        assert namespace["__name__"] == "skadi_plugin_clock"

    def test_dangerous_builtins_are_absent(self):
        for name in ("__import__", "open", "eval", "exec", "compile", "globals", "input"):
            assert name not in SAFE_BUILTINS

    @pytest.mark.parametrize(
        "source",
        [
            "import os\n",
            "open('/etc/passwd')\n",
            "eval('1 + 1')\n",
        ],
    )
    def test_escape_attempts_fail_execution(self, source):
        result = compile_to_component(source, "escape.py")
        assert result.stage is FailureStage.EXECUTION

    def test_classes_can_be_defined(self):
        source = (
            "class Counter:\n"
            "    start = 3\n"
            "\n"
            "def Component(props):\n"
            "    return p(str(Counter.start))\n"
        )
        result = compile_to_component(source, "cls.py")

        assert render(result.component) == "<p>3</p>"

    def test_custom_primitives(self):
        calls = []

        def recording_create_element(type, props=None, *children):
            calls.append(type)
            return f"<{type}>"

        compiler = DynamicCompiler(ScopePrimitives(create_element=recording_create_element))
        result = compiler.compile("def Component(props):\n    return div()\n", "rec.py")

        assert result.component({}) == "<div>"
        assert calls == ["div"]


class TestTypedDialect:
    """Tests for typed-dialect sources."""

    TYPED_SOURCE = (
        "from typing import TYPE_CHECKING, Any\n"
        "\n"
        "if TYPE_CHECKING:\n"
        "    from somewhere import Bridge\n"
        "\n"
        "count: int = 3\n"
        "label_text: str\n"
        "\n"
        "def Component(props: dict[str, Any], *rest: Any, **extra: Any) -> Any:\n"
        "    value: int = count\n"
        "    return div(str(value))\n"
    )

    def test_annotations_are_stripped(self):
        result = compile_to_component(self.TYPED_SOURCE, "counter.pyt")

        assert result.ok, result.message
        assert render(result.component) == "<div>3</div>"

    def test_plain_dialect_keeps_imports(self):
        result = compile_to_component(self.TYPED_SOURCE, "counter.py")
        assert result.stage is FailureStage.EXECUTION

    def test_dialect_override(self):
        result = compile_to_component(self.TYPED_SOURCE, "counter.py", dialect=Dialect.TYPED)
        assert result.ok

    def test_type_checking_else_branch_is_kept(self):
        source = (
            "from typing import TYPE_CHECKING\n"
            "if TYPE_CHECKING:\n"
            "    from x import y\n"
            "else:\n"
            "    greeting = 'hi'\n"
            "def Component(props) -> object:\n"
            "    return p(greeting)\n"
        )
        result = compile_to_component(source, "else.pyt")

        assert render(result.component) == "<p>hi</p>"
