from __future__ import annotations

import importlib
import importlib.util
import logging
import os
from pathlib import Path
from types import ModuleType
from typing import Iterable, Optional

from shard import Value
from shard.compiler.backend import Compiler, Reference
from shard.compiler.cfront.backend import CFrontCompiler
from shard.compiler.pipeline import CompilationPipeline, FragmentKind
from shard.config import declare_mode_default, show_code_default
from shard.console import CONTINUATION_PROMPT, PROMPT, BufferConsole, Console
from shard.errors import ShardCommandError, ShardCompileError, ShardError
from shard.evaluation.executor import Executor
from shard.evaluation.output import OutputWriter
from shard.interpreter.commands import CommandProcessor
from shard.introspection.meta import MetaService
from shard.introspection.reflection import Reflector
from shard.reader.accumulator import FeedKind, LineAccumulator
from shard.rewrite.preprocessor import MacroPreprocessor
from shard.rewrite.symbols import SymbolRewriter
from shard.types.environment import RESULT_SLOT, SESSION_SLOT, FallbackResolver, VariableEnvironment
from shard.types.naming import TypeNamer
from shard.types.resolver import TypeResolver

logger = logging.getLogger(__name__)


class Interpreter:
    """
    An interactive session: reads fragment lines, compiles and runs them.

    Lines are accumulated until their braces balance, then the fragment is
    expanded, rewritten, compiled and executed against a variable environment
    that lives as long as the session. Errors of any fragment are written to
    the console and never end the session.
    """

    # Class-level defaults to avoid env-variable coupling in tests
    DefaultNamespaces: tuple[str, ...] = ("builtins", "collections")
    DefaultReferences: tuple[str, ...] = ("shard.evaluation.chunk",)
    DefaultMustDeclare: bool | None = None
    DefaultShowCode: bool | None = None

    def __init__(
        self,
        console: Console | None = None,
        compiler: Compiler | None = None,
        *,
        must_declare: bool | None = None,
        show_code: bool | None = None,
        unknown_value: FallbackResolver | None = None,
    ):
        self.console: Console = console or BufferConsole()
        self.output = OutputWriter(self.console)

        # both lists are shared with the resolver, namer and pipeline
        self.namespaces: list[str] = []
        self.references: list[Reference] = []

        self.reflector = Reflector()
        self.resolver = TypeResolver(self.namespaces, self.reflector)
        self.namer = TypeNamer(self.namespaces, self.reflector)
        self.env = VariableEnvironment(unknown_value)

        if must_declare is None:
            must_declare = self.DefaultMustDeclare
        if must_declare is None:
            must_declare = declare_mode_default()
        if show_code is None:
            show_code = self.DefaultShowCode
        if show_code is None:
            show_code = show_code_default()

        self.preprocessor = MacroPreprocessor()
        self.accumulator = LineAccumulator()
        self.rewriter = SymbolRewriter(self.env, self.namer.public_runtime_type_name, must_declare)
        self.compiler: Compiler = compiler or CFrontCompiler(self.resolver.resolve)
        self.pipeline = CompilationPipeline(
            self.compiler, self.preprocessor, self.rewriter, self.namespaces, self.references,
            resolve_type=self.resolver.resolve, echo=self.output.write,
        )
        self.pipeline.show_code = show_code
        self.executor = Executor(self)
        self.meta = MetaService(self.reflector, self.resolver)
        self.commands = CommandProcessor(self)

        for ns in self.DefaultNamespaces:
            self.add_namespace(ns)
        for ref in self.DefaultReferences:
            self.add_reference(ref)
        self.env.define(RESULT_SLOT, None)
        self.env.define(SESSION_SLOT, self)

    # --- settings ---

    @property
    def must_declare(self) -> bool:
        return self.rewriter.must_declare

    @must_declare.setter
    def must_declare(self, value: bool) -> None:
        self.rewriter.must_declare = value

    @property
    def show_code(self) -> bool:
        return self.pipeline.show_code

    @show_code.setter
    def show_code(self, value: bool) -> None:
        self.pipeline.show_code = value

    @property
    def block_level(self) -> int:
        return self.accumulator.depth

    @property
    def prompt(self) -> str:
        return CONTINUATION_PROMPT if self.accumulator.depth != 0 else PROMPT

    # --- input ---

    def start(self) -> None:
        """Ask the console for the first line; each line asks for the next."""
        self.console.read_line_async(self._on_input, self.prompt)

    def _on_input(self, line: Optional[str]) -> bool:
        if line is None:
            return False
        keep_going = self.process_line(line)
        if keep_going:
            self.console.read_line_async(self._on_input, self.prompt)
        return keep_going

    def process_line(self, line: Optional[str]) -> bool:
        """Feed one line of input; False only at end of input (None)."""
        if line is None:
            return False
        for physical in line.splitlines() or [""]:
            self._feed(physical)
        return True

    def _feed(self, line: str) -> None:
        result = self.accumulator.feed(line)
        try:
            if result.kind is FeedKind.COMMAND:
                self.commands.execute(result.text)
            elif result.kind is FeedKind.USING:
                self.add_namespace(result.text)
            elif result.kind is FeedKind.READY:
                self.execute_fragment(result.text)
        except ShardCompileError as exc:
            self.show_errors(exc)
        except ShardError as exc:
            self.output.print(str(exc))

    def execute_fragment(self, code: str) -> None:
        """Compile and run one complete fragment; compile errors propagate."""
        self.executor.returns_value = False
        compiled = self.pipeline.compile_fragment(code)
        if compiled is None:
            return
        if compiled.kind is FragmentKind.FUNCTION:
            self.reflector.register_unit(compiled.unit)
            self.add_reference(compiled.unit)
            self.executor.instantiate_function(compiled)
            self.pipeline.register_function(compiled)
            logger.debug("persisted %s as %s", compiled.function_name, compiled.class_name)
        else:
            self.executor.run_chunk(compiled)

    def show_errors(self, exc: ShardCompileError) -> None:
        text = f"Compiling string: '{exc.source}'\n\n"
        text += "".join(f"{d}\n" for d in exc.diagnostics)
        self.output.print(text)

    # --- include ---

    def include_file(self, path: str | os.PathLike) -> bool:
        file = Path(path).expanduser()
        if not file.is_file():
            return False
        logger.debug("including %s", file)
        self._include(file.read_text(encoding="utf-8").splitlines())
        return True

    def include_code(self, code: str | None) -> bool:
        if not code:
            return False
        self._include(code.splitlines())
        return True

    def _include(self, lines: Iterable[str]) -> None:
        saved = self.executor.dumping_value
        self.executor.dumping_value = False
        try:
            for line in lines:
                self.process_line(line)
        finally:
            self.executor.dumping_value = saved

    # --- variables ---

    def set_value(self, name: str, value: Value) -> None:
        self.env.define(name, value)

    def has_value(self, name: str) -> bool:
        return self.env.is_bound(name)

    def remove_value(self, name: str) -> bool:
        return self.env.remove(name)

    def last_result(self) -> Value:
        """The result slot when the last fragment produced a value, else None."""
        if not self.executor.returns_value:
            return None
        return self.env.lookup(RESULT_SLOT)

    # --- namespaces and references ---

    def add_namespace(self, ns: str) -> bool:
        ns = ns.strip()
        if not ns:
            raise ShardCommandError("a namespace name is required")
        if ns in self.namespaces:
            return False
        try:
            importlib.import_module(ns)
        except ImportError as exc:
            raise ShardCommandError(f"namespace '{ns}' could not be found: {exc}") from exc
        self.namespaces.append(ns)
        logger.debug("added namespace %s", ns)
        return True

    def add_reference(self, ref: Reference) -> bool:
        """Make a module's public names visible to later fragments."""
        if isinstance(ref, str):
            ref = ref.strip()
            if not ref:
                raise ShardCommandError("a module name or .py file is required")
            if ref.endswith(".py"):
                ref = _load_source_module(Path(ref).expanduser())
            else:
                try:
                    importlib.import_module(ref)
                except ImportError as exc:
                    raise ShardCommandError(f"reference '{ref}' could not be loaded: {exc}") from exc
        if ref in self.references:
            return False
        self.references.append(ref)
        logger.debug("added reference %s", ref.__name__ if isinstance(ref, ModuleType) else ref)
        return True

    # --- completion ---

    def complete(self, text: str) -> str:
        """
        Complete the trailing identifier of `text` against the last result's members.

        One match completes to that member and describes it. Several matches
        complete to their longest common prefix and are listed on the console.
        Returns the (possibly unchanged) input text.
        """
        subject = self.env.lookup(RESULT_SLOT)
        if subject is None:
            return text
        typed = text.strip()
        start = len(typed)
        while start > 0 and (typed[start - 1].isalnum() or typed[start - 1] == "_"):
            start -= 1
        names = self.meta.list_members(subject, typed[start:] or None)
        if not names:
            return text

        separator = "-" * min(35, 1 + self.console.line_width() // 2) + "\n"
        detail = None
        if len(names) == 1:
            detail = names[0]
            typed = typed[:start] + detail
        else:
            common = os.path.commonprefix(names)
            if len(common) > len(typed) - start:
                typed = typed[:start] + common
                if common in names:
                    detail = common
            self.output.write(separator)
            self.output.write(" ".join(names) + "\n")

        if detail is not None:
            self.output.write(separator)
            owner = subject if isinstance(subject, (type, ModuleType)) else type(subject)
            for signature in self.meta.describe_member(owner, detail):
                self.output.print(signature)
        return typed


def _load_source_module(path: Path) -> ModuleType:
    if not path.is_file():
        raise ShardCommandError(f"reference '{path}' could not be found")
    spec = importlib.util.spec_from_file_location(path.stem, path)
    if spec is None or spec.loader is None:
        raise ShardCommandError(f"reference '{path}' is not a Python module")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise ShardCommandError(f"reference '{path}' failed to load: {exc}") from exc
    return module
