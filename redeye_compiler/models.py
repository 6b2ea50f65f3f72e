"""Data models for the compiler pipeline."""

import json
from dataclasses import asdict, dataclass, field
from typing import NamedTuple

from redeye_compiler.config import CompilerConfig


class Parameter(NamedTuple):
    """A declared parameter."""

    name: str
    type: str


@dataclass
class FunctionSignature:
    """A declaration matching `func name(params) (T, error) {`."""

    name: str
    parameters: list[Parameter]
    return_type: str
    declaration: str  # raw declaration line
    line_number: int  # 1-based, for error reports

    @property
    def parameter_names(self) -> list[str]:
        return [p.name for p in self.parameters]


@dataclass
class FunctionBody:
    """The lines a declaration owned in the source buffer."""

    declaration: str  # text up to and including the opening brace
    lines: list[str]  # inner lines, verbatim
    closing: str  # the closing brace
    start: int  # 0-based buffer index of the declaration line
    stop: int  # 0-based buffer index of the closing line (inclusive)
    remainder: str = ""  # text after the closing brace on its line


@dataclass
class FunctionEntry:
    """A registry entry: a signature and the body it owns."""

    signature: FunctionSignature
    body: FunctionBody

    @property
    def name(self) -> str:
        return self.signature.name

    @property
    def parameters(self) -> list[Parameter]:
        return self.signature.parameters

    @property
    def return_type(self) -> str:
        return self.signature.return_type


class FunctionRegistry:
    """Ordered map of function name to FunctionEntry.

    Insertion order is declaration order and fixes the order of the
    generated declarations. Built once during extraction, then frozen.
    """

    def __init__(self):
        self._entries: dict[str, FunctionEntry] = {}
        self._frozen = False

    def register(self, entry: FunctionEntry) -> None:
        if self._frozen:
            raise RuntimeError("Function registry is frozen")
        if entry.name in self._entries:
            raise KeyError(entry.name)
        self._entries[entry.name] = entry

    def freeze(self) -> None:
        self._frozen = True

    def __getitem__(self, name: str) -> FunctionEntry:
        return self._entries[name]

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


@dataclass
class CallSite:
    """A call to a registered function found inside another body."""

    caller: str
    callee: str
    arguments: list[str]  # as written in the source
    forwarded: list[str]  # as emitted after the routing arguments
    line_index: int  # index into the caller's inner body lines
    pass_through: bool
    propagates_error: bool = False


@dataclass
class GeneratedDeclaration:
    """A top-level declaration appended to the output."""

    name: str
    kind: str  # "registration" or "wrapper"
    text: str
    imports: frozenset[str] = frozenset()


@dataclass
class CompileResult:
    """Everything produced by compiling one source file."""

    text: str
    registry: FunctionRegistry
    declarations: list[GeneratedDeclaration]
    call_sites: list[CallSite]
    config: CompilerConfig
    imports_added: list[str] = field(default_factory=list)
    source: str | None = None
    output: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "source": self.source,
            "output": self.output,
            "marshaling": self.config.marshaling,
            "functions": [self._entry_to_dict(e) for e in self.registry],
            "declarations": [
                {"name": d.name, "kind": d.kind} for d in self.declarations
            ],
            "imports_added": self.imports_added,
        }

    def _entry_to_dict(self, entry: FunctionEntry) -> dict:
        calls = [c for c in self.call_sites if c.caller == entry.name]
        return {
            "name": entry.name,
            "line": entry.signature.line_number,
            "parameters": [p._asdict() for p in entry.parameters],
            "return_type": entry.return_type,
            "calls": [
                {k: v for k, v in asdict(c).items() if k != "caller"}
                for c in calls
            ],
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)
