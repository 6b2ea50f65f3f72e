"""Rewrite calls between registered functions into routed calls."""

import logging
import re

from redeye_compiler.config import CompilerConfig
from redeye_compiler.lexer import (
    LiteralMasker,
    brace_delta,
    find_closing,
    split_arguments,
)
from redeye_compiler.models import CallSite, FunctionEntry, FunctionRegistry

logger = logging.getLogger(__name__)

ROUTER_NAME = "__router"
CONTEXT_NAME = "__args"
ZERO_VALUE_NAME = "__zv"

# identifier followed by an opening parenthesis
CALL_PATTERN = re.compile(r"(?<!\w)([A-Za-z_]\w*)\s*\(")

# `name :=` ending a statement prefix
ASSIGNMENT_PATTERN = re.compile(r"(?:^|(?<=[;{]))(\s*)([A-Za-z_]\w*)\s*:=\s*$")

# What may follow a call for it to be the whole right-hand side
STATEMENT_END_PATTERN = re.compile(r"^\s*(?:;|\}|$)")

SHORT_DECL_PATTERN = re.compile(r"([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)\s*:=")
VAR_DECL_PATTERN = re.compile(
    r"\b(?:var|const)\s+([A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)"
)
FUNC_LITERAL_PATTERN = re.compile(r"\bfunc\s*\(([^()]*)\)")
BLOCK_HEADER_PATTERN = re.compile(r"^\s*(?:\}\s*else\s+)?(?:if|for|switch|select)\b")


class LocalScope:
    """Names bound inside one function body, with the block depth they live at.

    Block scoping is approximated from brace depth: a binding is dropped
    once the body closes the block it was declared in.
    """

    def __init__(self, parameters: list[str]):
        self._bindings: dict[str, int] = {name: 0 for name in parameters}
        self._depth = 0

    def __contains__(self, name: str) -> bool:
        return name in self._bindings

    def bind_line(self, masked: str) -> None:
        """Record the bindings a line introduces, then apply its braces."""
        # if/for/switch headers scope their bindings to the block they open
        depth = self._depth
        if BLOCK_HEADER_PATTERN.match(masked):
            depth += 1

        for match in SHORT_DECL_PATTERN.finditer(masked):
            for name in match.group(1).split(","):
                self._bind(name.strip(), depth)
        for match in VAR_DECL_PATTERN.finditer(masked):
            for name in match.group(1).split(","):
                self._bind(name.strip(), depth)
        for match in FUNC_LITERAL_PATTERN.finditer(masked):
            for part in match.group(1).split(","):
                words = part.split()
                if words:
                    self._bind(words[0], self._depth + 1)

        self._depth = max(0, self._depth + brace_delta(masked))
        self._bindings = {
            name: level
            for name, level in self._bindings.items()
            if level <= self._depth
        }

    def _bind(self, name: str, depth: int) -> None:
        if name and name != "_" and name not in self._bindings:
            self._bindings[name] = depth


def rewrite_body(
    entry: FunctionEntry, registry: FunctionRegistry, config: CompilerConfig
) -> tuple[list[str], list[CallSite]]:
    """Rewrite the calls in one body into routed calls.

    The registry and the entry are left untouched.

    Args:
        entry: The calling function
        registry: All registered functions
        config: Compiler options

    Returns:
        Tuple of (rewritten inner body lines, call sites rewritten)
    """
    masker = LiteralMasker()
    scope = LocalScope(entry.signature.parameter_names)
    new_lines = []
    call_sites: list[CallSite] = []

    for index, line in enumerate(entry.body.lines):
        masked = masker.mask(line)
        new_line, sites = rewrite_line(
            line, masked, index, entry, registry, scope, config
        )
        new_lines.append(new_line)
        call_sites.extend(sites)
        if config.scope_check:
            scope.bind_line(masked)

    if call_sites:
        logger.info(f"Rewrote {len(call_sites)} call sites in {entry.name}")
    return new_lines, call_sites


def rewrite_line(
    line: str,
    masked: str,
    index: int,
    entry: FunctionEntry,
    registry: FunctionRegistry,
    scope: LocalScope,
    config: CompilerConfig,
) -> tuple[str, list[CallSite]]:
    """Rewrite the routed calls on one line, left to right, in a single pass."""
    out = ""
    position = 0
    sites = []

    for match in CALL_PATTERN.finditer(masked):
        name = match.group(1)
        start = match.start(1)
        if start < position or name not in registry:
            continue
        if config.scope_check and _is_shadowed(name, masked, start, scope):
            logger.debug(f"Skipping {name}( in {entry.name}: name is bound locally")
            continue

        open_index = match.end() - 1
        close_index = find_closing(masked, open_index)
        if close_index is None:
            logger.warning(
                f"Skipping call to {name} in {entry.name}: "
                "argument list continues on the next line"
            )
            continue

        callee = registry[name]
        arguments = split_arguments(line[open_index + 1 : close_index])
        forwarded, pass_through = forward_arguments(arguments, entry, callee)
        call = routed_call(name, entry.name, forwarded)

        prefix = out + line[position:start]
        propagates = False
        if config.propagate_errors:
            assignment = ASSIGNMENT_PATTERN.search(prefix)
            if assignment and STATEMENT_END_PATTERN.match(masked[close_index + 1 :]):
                prefix = prefix[: assignment.end(2)] + ", err := "
                call += f"; if err != nil {{ return {ZERO_VALUE_NAME}, err }}"
                propagates = True

        out = prefix + call
        position = close_index + 1
        sites.append(
            CallSite(
                caller=entry.name,
                callee=name,
                arguments=arguments,
                forwarded=forwarded,
                line_index=index,
                pass_through=pass_through,
                propagates_error=propagates,
            )
        )
        logger.debug(f"Routed {entry.name} -> {name}({', '.join(forwarded)})")

    return out + line[position:], sites


def forward_arguments(
    arguments: list[str], caller: FunctionEntry, callee: FunctionEntry
) -> tuple[list[str], bool]:
    """Decide which argument expressions a routed call forwards.

    When every argument is a bare parameter name (of the caller or the
    callee) and the count matches, the callee's declared parameter names
    are forwarded in declaration order. Otherwise the expressions are
    forwarded unchanged.

    Returns:
        Tuple of (forwarded arguments, whether the pass-through form was used)
    """
    callee_params = callee.signature.parameter_names
    known = set(callee_params) | set(caller.signature.parameter_names)
    if (
        arguments
        and len(arguments) == len(callee_params)
        and all(arg in known for arg in arguments)
    ):
        declared = caller.signature.parameter_names
        unbound = [name for name in callee_params if name not in declared]
        if unbound:
            logger.warning(
                f"{caller.name} forwards {', '.join(unbound)} to {callee.name} "
                "but does not declare them"
            )
        return list(callee_params), True
    return list(arguments), False


def routed_call(callee: str, caller: str, arguments: list[str]) -> str:
    """Build `callee(__router, "caller", __args, args...)`."""
    routing = [ROUTER_NAME, f'"{caller}"', CONTEXT_NAME]
    return f"{callee}({', '.join(routing + arguments)})"


def _is_shadowed(name: str, masked: str, start: int, scope: LocalScope) -> bool:
    """True if `name(` at `start` does not refer to the registered function."""
    if name in scope:
        return True
    # Method call or package selector: x.name(
    before = masked[:start].rstrip()
    return before.endswith(".")
