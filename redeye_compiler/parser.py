"""Discover routable function declarations and parse their parameters."""

import logging
import re

from redeye_compiler.errors import CompileError
from redeye_compiler.models import FunctionSignature, Parameter

logger = logging.getLogger(__name__)

# Regex to match: func name(a, b int, c string) (returnType, error) {
DECLARATION_PATTERN = re.compile(
    r"^(?i:func)\s+"
    r"([a-z]\w*)"  # function name, lowercase first letter
    r"\s*\(([^()]*)\)"  # parameters
    r"\s*\(\s*([^(),]+?)\s*,\s*error\s*\)"  # (returnType, error)
    r"\s*\{(.*)$"  # opening brace and anything after it
)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_]\w*$")


def parse_parameters(params_str: str) -> list[Parameter]:
    """Parse a parameter list, including the compressed `a, b int` form.

    Untyped names take the type of the nearest typed parameter to their
    right, so the list is resolved right-to-left.

    Args:
        params_str: Text between the declaration's parentheses

    Returns:
        Parameters in declaration order

    Raises:
        CompileError: If the last parameter has no type or a name is invalid
    """
    if not params_str.strip():
        return []

    params = []
    current_type = None
    for part in reversed(params_str.split(",")):
        part = part.strip()
        if " " in part or "\t" in part:
            name, current_type = part.split(None, 1)
            current_type = current_type.strip()
        else:
            name = part
        if not IDENTIFIER_PATTERN.match(name):
            raise CompileError(f"Invalid parameter name {name!r}")
        if current_type is None:
            raise CompileError(f"Parameter {name!r} has no type")
        params.append(Parameter(name, current_type))

    params.reverse()
    return params


def parse_declaration(line: str, line_number: int = 0) -> FunctionSignature | None:
    """Parse a declaration line.

    Args:
        line: A single source line
        line_number: 1-based line number, for error reports

    Returns:
        The signature, or None if the line is not a supported declaration
    """
    match = DECLARATION_PATTERN.match(line)
    if not match:
        return None

    name = match.group(1)
    try:
        parameters = parse_parameters(match.group(2))
    except CompileError as e:
        raise CompileError(
            e.message, declaration=line, line_number=line_number, phase="discovery"
        ) from e

    return FunctionSignature(
        name=name,
        parameters=parameters,
        return_type=match.group(3),
        declaration=line,
        line_number=line_number,
    )


def find_declarations(
    lines: list[str], body_scan: str = "depth"
) -> list[FunctionSignature]:
    """Find all supported declarations in source order.

    In "line" body-scan mode only declarations whose line ends with the
    opening brace are recognised, since the body must start on the next line.

    Args:
        lines: Source lines
        body_scan: "depth" or "line"

    Returns:
        List of FunctionSignature objects
    """
    signatures = []

    for index, line in enumerate(lines):
        sig = parse_declaration(line, line_number=index + 1)
        if sig is None:
            continue
        if body_scan == "line" and DECLARATION_PATTERN.match(line).group(4).strip():
            logger.warning(
                f"Skipping {sig.name} at line {index + 1}: "
                "body starts on the declaration line"
            )
            continue
        signatures.append(sig)
        params = ", ".join(f"{p.name} {p.type}" for p in sig.parameters)
        logger.debug(f"Parsed function: {sig.name}({params}) -> {sig.return_type}")

    logger.info(f"Found {len(signatures)} routable functions")
    return signatures
