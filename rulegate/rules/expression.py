# rulegate/rules/expression.py
from __future__ import annotations

import ast
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

log = logging.getLogger("rules.expression")


class EvaluationError(ValueError):
    """Выражение не разобралось или упало при вычислении."""

    def __init__(self, message: str, expression: Optional[str] = None) -> None:
        super().__init__(message)
        self.expression = expression


# Литералы в стиле JSON/YAML, чтобы в правилах можно было писать true/false/null
CONSTANTS: Dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
}

ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.BinOp,
    ast.UnaryOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Subscript,
    ast.Slice,
    ast.Attribute,
    ast.List,
    ast.Tuple,
    ast.Dict,
    ast.Set,
    ast.And,
    ast.Or,
    ast.Not,
    ast.USub,
    ast.UAdd,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.Eq,
    ast.NotEq,
    ast.Gt,
    ast.GtE,
    ast.Lt,
    ast.LtE,
    ast.In,
    ast.NotIn,
    ast.Is,
    ast.IsNot,
)


# имя таблицы функций в globals; в выражении такое имя не пройдёт проверку
FUNCTION_TABLE = "__fn__"


class _CallTargetRewriter(ast.NodeTransformer):
    """Вызов по имени f(...) превращает в __fn__['f'](...)."""

    def visit_Call(self, node: ast.Call) -> ast.Call:
        self.generic_visit(node)
        if isinstance(node.func, ast.Name):
            node.func = ast.copy_location(
                ast.Subscript(
                    value=ast.Name(id=FUNCTION_TABLE, ctx=ast.Load()),
                    slice=ast.Constant(value=node.func.id),
                    ctx=ast.Load(),
                ),
                node.func,
            )
        return node


@dataclass(frozen=True)
class CompiledExpression:
    source: str
    code: Any
    variables: Tuple[str, ...]   # в порядке появления в выражении
    functions: Tuple[str, ...]


class ExpressionEvaluator:
    """
    Вычисляет одно выражение на наборе переменных.

    Синтаксис: подмножество выражений Python. Дерево разбирается через ast
    и проверяется по белому списку узлов ДО компиляции, вызывать можно
    только функции, которые дали зарегистрированные провайдеры.

    Провайдер: объект с get_functions() -> {name: callable}.
    При совпадении имён выигрывает провайдер, зарегистрированный позже.
    """

    def __init__(self, providers: Iterable[Any] = ()) -> None:
        self._functions: Dict[str, Callable[..., Any]] = {}
        self._cache: Dict[str, CompiledExpression] = {}
        for provider in providers:
            self.register_provider(provider)

    # ------------------------------------------------------------------
    # Функции
    # ------------------------------------------------------------------
    def register_provider(self, provider: Any) -> None:
        """
        provider может быть экземпляром или классом.
        Классу, который принимает evaluator в конструкторе, передаём себя.
        """
        if inspect.isclass(provider):
            provider = self._instantiate(provider)

        functions = provider.get_functions()
        for name, func in functions.items():
            if not callable(func):
                raise TypeError(f"Expression function {name!r} is not callable")
            self._functions[name] = func

        # список функций влияет на проверку при компиляции
        self._cache.clear()
        log.debug("expression provider %s: %s", type(provider).__name__, sorted(functions))

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def _instantiate(self, provider_cls: type) -> Any:
        try:
            params = inspect.signature(provider_cls).parameters
        except (TypeError, ValueError):
            params = {}
        if "evaluator" in params:
            return provider_cls(evaluator=self)
        return provider_cls()

    # ------------------------------------------------------------------
    # Разбор
    # ------------------------------------------------------------------
    def compile(self, expression: str) -> CompiledExpression:
        cached = self._cache.get(expression)
        if cached is not None:
            return cached

        if not isinstance(expression, str) or not expression.strip():
            raise EvaluationError("Expression is empty.", expression)

        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as exc:
            raise EvaluationError(
                f'Syntax error in expression "{expression}": {exc.msg}', expression
            ) from exc

        variables, functions = self._validate(tree, expression)
        # после проверки: f(...) → __fn__['f'](...), переменные не перекрывают функции
        tree = ast.fix_missing_locations(_CallTargetRewriter().visit(tree))
        program = CompiledExpression(
            source=expression,
            code=compile(tree, "<rule>", "eval"),
            variables=variables,
            functions=functions,
        )
        self._cache[expression] = program
        return program

    def _validate(self, tree: ast.AST, expression: str) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
        call_targets = {
            id(node.func)
            for node in ast.walk(tree)
            if isinstance(node, ast.Call)
        }

        seen: List[Tuple[int, int, str]] = []
        functions: List[str] = []

        for node in ast.walk(tree):
            if not isinstance(node, ALLOWED_NODES):
                raise EvaluationError(
                    f"Unsupported expression element: {type(node).__name__}", expression
                )

            if isinstance(node, ast.Call):
                if not isinstance(node.func, ast.Name):
                    raise EvaluationError("Only named functions can be called.", expression)
                name = node.func.id
                if name not in self._functions:
                    raise EvaluationError(f'The function "{name}" does not exist.', expression)
                if name not in functions:
                    functions.append(name)

            elif isinstance(node, ast.Attribute):
                if node.attr.startswith("_"):
                    raise EvaluationError(
                        f'Access to attribute "{node.attr}" is not allowed.', expression
                    )

            elif isinstance(node, ast.Name):
                if node.id.startswith("__"):
                    raise EvaluationError(f'Name "{node.id}" is not allowed.', expression)
                if id(node) in call_targets:
                    continue
                seen.append((node.lineno, node.col_offset, node.id))

        # ast.walk идёт в ширину; переменные нужны в порядке текста
        variables: List[str] = []
        for _, _, name in sorted(seen):
            if name not in variables:
                variables.append(name)
        return tuple(variables), tuple(functions)

    # ------------------------------------------------------------------
    # Вычисление
    # ------------------------------------------------------------------
    def evaluate(self, expression: str, variables: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Вернёт значение выражения (bool приводит вызывающий).
        Бросает EvaluationError на любую проблему, включая отсутствующую переменную.
        """
        program = self.compile(expression)
        values: Dict[str, Any] = dict(variables or {})

        for name in program.variables:
            if name not in values and name not in CONSTANTS:
                raise EvaluationError(f'Variable "{name}" is not valid.', expression)

        scope: Dict[str, Any] = {"__builtins__": {}, FUNCTION_TABLE: dict(self._functions)}
        scope.update(CONSTANTS)

        try:
            return eval(program.code, scope, values)  # noqa: S307
        except EvaluationError:
            raise
        except Exception as exc:  # noqa: BLE001
            message = str(exc) or type(exc).__name__
            raise EvaluationError(message, expression) from exc
