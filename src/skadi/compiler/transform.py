"""Source-to-code transformation for plugin files.

Plugins write intrinsic elements as plain calls::

    div(span("now: "), time, class_="clock")

:class:`ElementTransformer` lowers such calls into
``create_element("div", {"class": "clock"}, create_element("span", {}, "now: "), time)``
so the module runs against the injected UI runtime instead of undefined
tag names.
"""

import ast
from collections.abc import Iterator
from contextlib import contextmanager
from types import CodeType

from skadi.compiler.dialect import Dialect

INTRINSIC_TAGS = frozenset(
    {
        "a", "article", "aside", "b", "br", "button", "code", "div", "em",
        "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6", "header", "hr",
        "i", "img", "input", "label", "li", "main", "nav", "ol", "option",
        "p", "pre", "section", "select", "small", "span", "strong", "table",
        "tbody", "td", "textarea", "th", "thead", "tr", "ul",
    }
)

TYPING_MODULES = frozenset({"typing", "typing_extensions", "__future__", "collections.abc"})

ELEMENT_FACTORY = "create_element"

FUNCTION_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda)
COMPREHENSION_SCOPES = (ast.ListComp, ast.SetComp, ast.DictComp, ast.GeneratorExp)
NESTED_SCOPES = (*FUNCTION_SCOPES, ast.ClassDef, *COMPREHENSION_SCOPES)


def _scope_body(scope: ast.AST) -> list[ast.AST]:
    """Child nodes evaluated inside ``scope`` itself."""
    if isinstance(scope, ast.Lambda):
        return [scope.body]
    if isinstance(scope, COMPREHENSION_SCOPES):
        first, *rest = scope.generators
        parts: list[ast.AST] = [first.target, *first.ifs, *rest]
        if isinstance(scope, ast.DictComp):
            return [*parts, scope.key, scope.value]
        return [*parts, scope.elt]
    return list(scope.body)


def _enclosing_parts(scope: ast.AST) -> list[ast.AST]:
    """Child nodes of a nested scope that run in the scope around it."""
    if isinstance(scope, COMPREHENSION_SCOPES):
        return [scope.generators[0].iter]
    parts: list[ast.AST] = list(getattr(scope, "decorator_list", []))
    if isinstance(scope, ast.ClassDef):
        return [*parts, *scope.bases, *(k.value for k in scope.keywords)]
    defaults = [d for d in scope.args.kw_defaults if d is not None]
    return [*parts, *scope.args.defaults, *defaults]


def bound_names(scope: ast.AST) -> set[str]:
    """Collect the names bound directly in one scope.

    ``scope`` is a module, function, lambda, class or comprehension node.
    Nested scopes keep their own bindings; only the names of nested
    functions and classes count here.
    """
    names: set[str] = set()
    if isinstance(scope, FUNCTION_SCOPES):
        args = scope.args
        for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs, args.vararg, args.kwarg):
            if arg is not None:
                names.add(arg.arg)

    pending = _scope_body(scope)
    while pending:
        node = pending.pop()
        if isinstance(node, NESTED_SCOPES):
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                names.add(node.name)
            pending.extend(_enclosing_parts(node))
            continue

        if isinstance(node, ast.Name) and isinstance(node.ctx, (ast.Store, ast.Del)):
            names.add(node.id)
        elif isinstance(node, (ast.Import, ast.ImportFrom)):
            for alias in node.names:
                names.add((alias.asname or alias.name).split(".")[0])
        elif isinstance(node, (ast.ExceptHandler, ast.MatchAs, ast.MatchStar)) and node.name:
            names.add(node.name)
        elif isinstance(node, ast.MatchMapping) and node.rest:
            names.add(node.rest)
        pending.extend(ast.iter_child_nodes(node))
    return names


class ElementTransformer(ast.NodeTransformer):
    """Rewrite intrinsic tag calls into element factory calls.

    A tag name bound by the plugin is left alone wherever that binding is
    visible: in the scope that binds it and in nested functions, but not
    from methods of a class whose body binds it.
    """

    def __init__(self, shadowed: set[str] | None = None) -> None:
        # (names, is_class) per open scope, module first
        self._scopes: list[tuple[set[str], bool]] = [(set(shadowed or ()), False)]
        self.rewritten = 0

    def is_shadowed(self, name: str) -> bool:
        innermost = len(self._scopes) - 1
        for depth, (names, is_class) in enumerate(self._scopes):
            if is_class and depth != innermost:
                continue
            if name in names:
                return True
        return False

    @contextmanager
    def _scope(self, node: ast.AST) -> Iterator[None]:
        self._scopes.append((bound_names(node), isinstance(node, ast.ClassDef)))
        try:
            yield
        finally:
            self._scopes.pop()

    def _visit_all(self, nodes: list) -> list:
        return [self.visit(node) for node in nodes]

    def _visit_defaults(self, args: ast.arguments) -> None:
        args.defaults = self._visit_all(args.defaults)
        args.kw_defaults = [None if d is None else self.visit(d) for d in args.kw_defaults]

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        node.decorator_list = self._visit_all(node.decorator_list)
        self._visit_defaults(node.args)
        with self._scope(node):
            node.body = self._visit_all(node.body)
        return node

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AST:
        node.decorator_list = self._visit_all(node.decorator_list)
        self._visit_defaults(node.args)
        with self._scope(node):
            node.body = self._visit_all(node.body)
        return node

    def visit_Lambda(self, node: ast.Lambda) -> ast.AST:
        self._visit_defaults(node.args)
        with self._scope(node):
            node.body = self.visit(node.body)
        return node

    def visit_ClassDef(self, node: ast.ClassDef) -> ast.AST:
        node.decorator_list = self._visit_all(node.decorator_list)
        node.bases = self._visit_all(node.bases)
        for keyword in node.keywords:
            keyword.value = self.visit(keyword.value)
        with self._scope(node):
            node.body = self._visit_all(node.body)
        return node

    def _visit_comprehension(self, node: ast.AST) -> ast.AST:
        first = node.generators[0]
        first.iter = self.visit(first.iter)
        with self._scope(node):
            first.target = self.visit(first.target)
            first.ifs = self._visit_all(first.ifs)
            node.generators = [first, *self._visit_all(node.generators[1:])]
            if isinstance(node, ast.DictComp):
                node.key = self.visit(node.key)
                node.value = self.visit(node.value)
            else:
                node.elt = self.visit(node.elt)
        return node

    visit_ListComp = visit_SetComp = visit_DictComp = visit_GeneratorExp = _visit_comprehension

    def visit_Call(self, node: ast.Call) -> ast.AST:
        self.generic_visit(node)

        func = node.func
        if not isinstance(func, ast.Name) or func.id not in INTRINSIC_TAGS:
            return node
        if self.is_shadowed(func.id):
            return node

        keys: list[ast.expr | None] = []
        values: list[ast.expr] = []
        for keyword in node.keywords:
            if keyword.arg is None:
                keys.append(None)
            else:
                keys.append(ast.Constant(value=_prop_name(keyword.arg)))
            values.append(keyword.value)

        self.rewritten += 1
        call = ast.Call(
            func=ast.Name(id=ELEMENT_FACTORY, ctx=ast.Load()),
            args=[ast.Constant(value=func.id), ast.Dict(keys=keys, values=values), *node.args],
            keywords=[],
        )
        return ast.copy_location(call, node)


def _prop_name(name: str) -> str:
    # class_ -> class, for_ -> for
    if name.endswith("_") and not name.endswith("__"):
        return name[:-1]
    return name


class AnnotationStripper(ast.NodeTransformer):
    """Remove typing-only syntax from typed-dialect sources."""

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        node.returns = None
        _strip_arguments(node.args)
        self.generic_visit(node)
        return node

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AST:
        node.returns = None
        _strip_arguments(node.args)
        self.generic_visit(node)
        return node

    def visit_AnnAssign(self, node: ast.AnnAssign) -> ast.AST:
        if node.value is None:
            return ast.copy_location(ast.Pass(), node)
        assign = ast.Assign(targets=[node.target], value=self.visit(node.value))
        return ast.copy_location(assign, node)

    def visit_Import(self, node: ast.Import) -> ast.AST:
        kept = [alias for alias in node.names if alias.name not in TYPING_MODULES]
        if not kept:
            return ast.copy_location(ast.Pass(), node)
        node.names = kept
        return node

    def visit_ImportFrom(self, node: ast.ImportFrom) -> ast.AST:
        if node.module in TYPING_MODULES:
            return ast.copy_location(ast.Pass(), node)
        return node

    def visit_If(self, node: ast.If) -> ast.AST | list[ast.stmt]:
        if _is_type_checking(node.test):
            kept: list[ast.stmt] = []
            for stmt in node.orelse:
                new = self.visit(stmt)
                kept.extend(new if isinstance(new, list) else [new])
            return kept or ast.copy_location(ast.Pass(), node)
        self.generic_visit(node)
        return node

    def visit_TypeAlias(self, node: ast.AST) -> ast.AST:
        return ast.copy_location(ast.Pass(), node)


def _strip_arguments(args: ast.arguments) -> None:
    for arg in (*args.posonlyargs, *args.args, *args.kwonlyargs):
        arg.annotation = None
    if args.vararg is not None:
        args.vararg.annotation = None
    if args.kwarg is not None:
        args.kwarg.annotation = None


def _is_type_checking(test: ast.expr) -> bool:
    if isinstance(test, ast.Name):
        return test.id == "TYPE_CHECKING"
    if isinstance(test, ast.Attribute):
        return test.attr == "TYPE_CHECKING"
    return False


def transform_source(source: str, filename: str, dialect: Dialect) -> CodeType:
    """Parse, lower and compile plugin source.

    Args:
        source: Raw plugin source text
        filename: File name used in tracebacks
        dialect: Source dialect

    Returns:
        Code object ready to execute in a plugin scope

    Raises:
        SyntaxError: If the source does not parse
    """
    tree = ast.parse(source, filename=filename, mode="exec")

    if dialect is Dialect.TYPED:
        tree = AnnotationStripper().visit(tree)

    tree = ElementTransformer(bound_names(tree)).visit(tree)
    ast.fix_missing_locations(tree)

    return compile(tree, filename, "exec", dont_inherit=True)
