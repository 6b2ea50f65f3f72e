"""Generate registration functions and public wrappers."""

import logging

from redeye_compiler.config import CompilerConfig
from redeye_compiler.marshaling import PAYLOAD_NAME, MarshalingStrategy
from redeye_compiler.models import (
    FunctionEntry,
    FunctionRegistry,
    GeneratedDeclaration,
)
from redeye_compiler.rewriter import CONTEXT_NAME, ROUTER_NAME, ZERO_VALUE_NAME

logger = logging.getLogger(__name__)

CALLER_NAME = "__caller"
CALLER_CONTEXT_NAME = "__context"
VALUE_NAME = "__value"
ERROR_NAME = "__err"


def registration_name(name: str) -> str:
    """`double` -> `defineDouble`."""
    return f"define{name[:1].upper()}{name[1:]}"


def _indent(lines: list[str], depth: int) -> list[str]:
    prefix = "\t" * depth
    return [f"{prefix}{line}" if line else line for line in lines]


def generate_registration(
    entry: FunctionEntry,
    body_lines: list[str],
    strategy: MarshalingStrategy,
    config: CompilerConfig,
) -> GeneratedDeclaration:
    """Generate the function that registers the original body as a handler.

    The handler binds each parameter from the payload, then runs the
    rewritten body as a closure returning (T, error).

    Args:
        entry: The registered function
        body_lines: Its inner body lines, after call-site rewriting
        strategy: Marshaling strategy for this run
        config: Compiler options

    Returns:
        The registration declaration
    """
    return_type = entry.return_type
    handler = f"func({CONTEXT_NAME} {strategy.context_type}) (interface{{}}, error)"

    signature = f"{registration_name(entry.name)}({ROUTER_NAME} {config.router_type})"

    lines = [
        f"func {signature} {{",
        f'\t{ROUTER_NAME}.Define("{entry.name}", {handler} {{',
        f"\t\tvar {ZERO_VALUE_NAME} {return_type}",
        f"\t\t_ = {ZERO_VALUE_NAME}",
    ]
    lines.extend(_indent(strategy.unpack(entry), 2))
    if entry.parameters:
        # Go rejects unused locals; the body may not use every parameter
        blanks = ", ".join("_" for _ in entry.parameters)
        names = ", ".join(p.name for p in entry.parameters)
        lines.append(f"\t\t{blanks} = {names}")
    lines.append(f"\t\treturn func() ({return_type}, error) {{")
    lines.extend(body_lines)
    lines.extend(["\t\t}()", "\t})", "}"])

    return GeneratedDeclaration(
        name=registration_name(entry.name),
        kind="registration",
        text="\n".join(lines),
        imports=frozenset(strategy.handler_imports(entry)),
    )


def generate_wrapper(
    entry: FunctionEntry, strategy: MarshalingStrategy, config: CompilerConfig
) -> GeneratedDeclaration:
    """Generate the public function that dispatches through the Router.

    A failed type assertion on the returned value panics.
    """
    return_type = entry.return_type
    params = [
        f"{ROUTER_NAME} {config.router_type}",
        f"{CALLER_NAME} string",
        f"{CALLER_CONTEXT_NAME} {strategy.context_type}",
    ]
    params.extend(f"{p.name} {p.type}" for p in entry.parameters)

    lines = [f"func {entry.name}({', '.join(params)}) ({return_type}, error) {{"]
    lines.extend(_indent(strategy.pack(entry), 1))
    lines.extend(
        [
            f'\t{VALUE_NAME}, {ERROR_NAME} := {ROUTER_NAME}.Get("{entry.name}", '
            f"{PAYLOAD_NAME}, {CALLER_NAME}, {CALLER_CONTEXT_NAME})",
            f"\tif {ERROR_NAME} != nil {{",
            f"\t\tvar {ZERO_VALUE_NAME} {return_type}",
            f"\t\treturn {ZERO_VALUE_NAME}, {ERROR_NAME}",
            "\t}",
            f"\treturn {VALUE_NAME}.({return_type}), nil",
            "}",
        ]
    )

    return GeneratedDeclaration(
        name=entry.name,
        kind="wrapper",
        text="\n".join(lines),
        imports=frozenset(strategy.wrapper_imports(entry)),
    )


def generate_declarations(
    registry: FunctionRegistry,
    bodies: dict[str, list[str]],
    strategy: MarshalingStrategy,
    config: CompilerConfig,
) -> list[GeneratedDeclaration]:
    """Generate two declarations per registered function, in registry order.

    Args:
        registry: All registered functions
        bodies: Rewritten inner body lines, by function name
        strategy: Marshaling strategy for this run
        config: Compiler options

    Returns:
        Registration then wrapper, for each function

    Raises:
        CompileError: If a function cannot use the chosen strategy
    """
    declarations = []
    for entry in registry:
        strategy.check(entry)
        declarations.append(
            generate_registration(entry, bodies[entry.name], strategy, config)
        )
        declarations.append(generate_wrapper(entry, strategy, config))

    logger.info(f"Generated {len(declarations)} declarations")
    return declarations
