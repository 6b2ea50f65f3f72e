"""Argument marshaling across the Router boundary.

Two strategies are available, chosen once per run:

* bundle: arguments travel as a fixed-size `[N]interface{}`.
* string-encoded: arguments are formatted into one delimited string with
  `fmt.Sprintf` and parsed back with `fmt.Sscan`.

This module also carries a Python rendition of the string encoding so
payloads can be produced and inspected outside Go.
"""

import logging
import math
from decimal import Decimal

from redeye_compiler.config import CompilerConfig
from redeye_compiler.errors import CompileError
from redeye_compiler.models import FunctionEntry, Parameter
from redeye_compiler.rewriter import CONTEXT_NAME

logger = logging.getLogger(__name__)

PAYLOAD_NAME = "__payload"
BUNDLE_NAME = "__bundle"
FIELDS_NAME = "__fields"
OK_NAME = "__ok"

# Go scalar type -> value kind understood by fmt's %v and Sscan
SCALAR_KINDS = {
    "bool": "bool",
    "string": "string",
    "int": "int",
    "int8": "int",
    "int16": "int",
    "int32": "int",
    "int64": "int",
    "rune": "int",
    "uint": "uint",
    "uint8": "uint",
    "uint16": "uint",
    "uint32": "uint",
    "uint64": "uint",
    "uintptr": "uint",
    "byte": "uint",
    "float32": "float",
    "float64": "float",
    "complex64": "complex",
    "complex128": "complex",
}

INT_BITS = {
    "int8": 8,
    "int16": 16,
    "int32": 32,
    "rune": 32,
    "int64": 64,
    "int": 64,
    "uint8": 8,
    "byte": 8,
    "uint16": 16,
    "uint32": 32,
    "uint64": 64,
    "uint": 64,
    "uintptr": 64,
}

ZERO_VALUES = {
    "bool": False,
    "string": "",
    "int": 0,
    "uint": 0,
    "float": 0.0,
    "complex": 0j,
}

TRUE_WORDS = {"1", "t", "T", "true", "TRUE", "True"}
FALSE_WORDS = {"0", "f", "F", "false", "FALSE", "False"}


def is_scalar(type_name: str) -> bool:
    """True if values of this Go type survive `%v` formatting and Sscan."""
    return type_name in SCALAR_KINDS


class MarshalingStrategy:
    """How a wrapper packs its arguments and a handler unpacks them."""

    name = ""
    context_type = "interface{}"

    def __init__(self, config: CompilerConfig):
        self.config = config

    def check(self, entry: FunctionEntry) -> None:
        """Raise CompileError if the entry cannot use this strategy."""

    def pack(self, entry: FunctionEntry) -> list[str]:
        """Wrapper statements that assign the dispatch payload."""
        raise NotImplementedError

    def unpack(self, entry: FunctionEntry) -> list[str]:
        """Handler statements that bind each parameter from the payload."""
        raise NotImplementedError

    def wrapper_imports(self, entry: FunctionEntry) -> set[str]:
        return set()

    def handler_imports(self, entry: FunctionEntry) -> set[str]:
        return set()


class BundleStrategy(MarshalingStrategy):
    """Arguments travel as a fixed-size [N]interface{}."""

    name = "bundle"
    context_type = "interface{}"

    def pack(self, entry: FunctionEntry) -> list[str]:
        names = ", ".join(p.name for p in entry.parameters)
        return [f"{PAYLOAD_NAME} := {_bundle_type(entry)}{{{names}}}"]

    def unpack(self, entry: FunctionEntry) -> list[str]:
        if not entry.parameters:
            return []

        bundle_type = _bundle_type(entry)
        if not self.config.strict:
            # A failed assertion leaves the zero value
            lines = [f"{BUNDLE_NAME}, _ := {CONTEXT_NAME}.({bundle_type})"]
            for i, param in enumerate(entry.parameters):
                lines.append(f"{param.name}, _ := {BUNDLE_NAME}[{i}].({param.type})")
            return lines

        lines = [
            f"{BUNDLE_NAME}, {OK_NAME} := {CONTEXT_NAME}.({bundle_type})",
            f"if !{OK_NAME} {{",
            f'\treturn nil, fmt.Errorf("{entry.name}: expected {bundle_type} '
            f'payload, got %T", {CONTEXT_NAME})',
            "}",
        ]
        for i, param in enumerate(entry.parameters):
            lines.extend(
                [
                    f"{param.name}, {OK_NAME} := {BUNDLE_NAME}[{i}].({param.type})",
                    f"if !{OK_NAME} {{",
                    f'\treturn nil, fmt.Errorf("{entry.name}: argument {param.name}: '
                    f'expected {param.type}, got %T", {BUNDLE_NAME}[{i}])',
                    "}",
                ]
            )
        return lines

    def handler_imports(self, entry: FunctionEntry) -> set[str]:
        return {"fmt"} if self.config.strict and entry.parameters else set()


class StringEncodedStrategy(MarshalingStrategy):
    """Arguments travel as one delimited string."""

    name = "string-encoded"
    context_type = "string"

    def check(self, entry: FunctionEntry) -> None:
        for param in entry.parameters:
            if not is_scalar(param.type):
                raise CompileError(
                    f"Parameter {param.name} of type {param.type} cannot be "
                    "string-encoded",
                    declaration=entry.signature.declaration,
                    line_number=entry.signature.line_number,
                    phase="generation",
                )

    def pack(self, entry: FunctionEntry) -> list[str]:
        if not entry.parameters:
            return [f'{PAYLOAD_NAME} := ""']
        template = payload_template(len(entry.parameters), self.config.separator)
        names = ", ".join(p.name for p in entry.parameters)
        return [f'{PAYLOAD_NAME} := fmt.Sprintf("{template}", {names})']

    def unpack(self, entry: FunctionEntry) -> list[str]:
        if not entry.parameters:
            return []

        count = len(entry.parameters)
        lines = [
            f'{FIELDS_NAME} := strings.SplitN({CONTEXT_NAME}, '
            f'"{self.config.separator}", {count})'
        ]
        if self.config.strict:
            lines.extend(
                [
                    f"if len({FIELDS_NAME}) != {count} {{",
                    f'\treturn nil, fmt.Errorf("{entry.name}: expected {count} '
                    f'fields, got %d", len({FIELDS_NAME}))',
                    "}",
                ]
            )
        for i, param in enumerate(entry.parameters):
            lines.extend(self._bind(entry, i, param))
        return lines

    def _bind(self, entry: FunctionEntry, i: int, param: Parameter) -> list[str]:
        field = f"{FIELDS_NAME}[{i}]"
        if self.config.strict:
            if param.type == "string":
                return [f"{param.name} := {field}"]
            return [
                f"var {param.name} {param.type}",
                f"if _, err := fmt.Sscan({field}, &{param.name}); err != nil {{",
                f'\treturn nil, fmt.Errorf("{entry.name}: argument {param.name}: '
                '%v", err)',
                "}",
            ]

        # A missing or unparsable field leaves the zero value
        if param.type == "string":
            assign = f"\t{param.name} = {field}"
        else:
            assign = f"\tfmt.Sscan({field}, &{param.name})"
        return [
            f"var {param.name} {param.type}",
            f"if len({FIELDS_NAME}) > {i} {{",
            assign,
            "}",
        ]

    def wrapper_imports(self, entry: FunctionEntry) -> set[str]:
        return {"fmt"} if entry.parameters else set()

    def handler_imports(self, entry: FunctionEntry) -> set[str]:
        if not entry.parameters:
            return set()
        imports = {"strings"}
        if self.config.strict or any(p.type != "string" for p in entry.parameters):
            imports.add("fmt")
        return imports


STRATEGIES = {
    BundleStrategy.name: BundleStrategy,
    StringEncodedStrategy.name: StringEncodedStrategy,
}


def get_strategy(config: CompilerConfig) -> MarshalingStrategy:
    """Instantiate the strategy named by the config."""
    strategy = STRATEGIES[config.marshaling](config)
    logger.info(f"Using {strategy.name} marshaling ({config.coercion} coercion)")
    return strategy


def _bundle_type(entry: FunctionEntry) -> str:
    return f"[{len(entry.parameters)}]interface{{}}"


# String encoding, Python side


def payload_template(count: int, separator: str = ":") -> str:
    """Formatting template with one %v placeholder per argument."""
    return separator.join(["%v"] * count)


def format_value(value) -> str:
    """Format a scalar the way Go's %v does."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, complex):
        imag = _format_float(value.imag)
        sign = "" if imag.startswith(("-", "+")) else "+"
        return f"({_format_float(value.real)}{sign}{imag}i)"
    if isinstance(value, str):
        return value
    raise TypeError(f"Cannot string-encode value of type {type(value).__name__}")


def _format_float(value: float) -> str:
    """Shortest %g formatting, as strconv.FormatFloat(v, 'g', -1, 64)."""
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    # repr gives the shortest digits that round-trip, as Go does
    negative, digit_tuple, exponent = Decimal(repr(value)).normalize().as_tuple()
    digits = "".join(map(str, digit_tuple))
    point = len(digits) + exponent  # digits before the decimal point
    sign = "-" if negative else ""

    # Exponent form below 1e-4 and from 1e6 up
    exp = point - 1
    if exp < -4 or exp >= 6:
        mantissa = digits[0] + (f".{digits[1:]}" if len(digits) > 1 else "")
        return f"{sign}{mantissa}e{'-' if exp < 0 else '+'}{abs(exp):02d}"
    if point <= 0:
        return f"{sign}0.{'0' * -point}{digits}"
    if point >= len(digits):
        return f"{sign}{digits}{'0' * (point - len(digits))}"
    return f"{sign}{digits[:point]}.{digits[point:]}"


def encode_payload(values: list, separator: str = ":") -> str:
    """Format argument values into one payload string.

    Equivalent to fmt.Sprintf(payload_template(len(values)), values...).
    """
    return separator.join(format_value(v) for v in values)


def decode_payload(
    payload: str,
    parameters: list[Parameter],
    separator: str = ":",
    strict: bool = False,
) -> list:
    """Parse a payload back into typed values, as a generated handler does.

    Args:
        payload: The encoded argument string
        parameters: Declared parameters, in order
        separator: Field separator
        strict: Raise on missing or unparsable fields instead of zero-filling

    Returns:
        One value per parameter

    Raises:
        ValueError: In strict mode, if the payload does not parse
        TypeError: If a parameter type is not scalar
    """
    for param in parameters:
        if not is_scalar(param.type):
            raise TypeError(
                f"Parameter {param.name} of type {param.type} is not scalar"
            )

    fields = payload.split(separator, len(parameters) - 1) if parameters else []
    if strict and len(fields) != len(parameters):
        raise ValueError(f"Expected {len(parameters)} fields, got {len(fields)}")

    values = []
    for i, param in enumerate(parameters):
        kind = SCALAR_KINDS[param.type]
        if i >= len(fields):
            values.append(ZERO_VALUES[kind])
            continue
        try:
            values.append(parse_field(fields[i], param.type))
        except ValueError:
            if strict:
                raise
            logger.debug(f"Zero-filling {param.name}: cannot parse {fields[i]!r}")
            values.append(ZERO_VALUES[kind])
    return values


def parse_field(text: str, type_name: str):
    """Parse one field the way fmt.Sscan would for the given Go type."""
    kind = SCALAR_KINDS[type_name]
    if kind == "string":
        return text

    tokens = text.split()
    if not tokens:
        raise ValueError(f"Empty field for {type_name}")
    token = tokens[0]

    if kind == "bool":
        if token in TRUE_WORDS:
            return True
        if token in FALSE_WORDS:
            return False
        raise ValueError(f"Invalid bool {token!r}")
    if kind in ("int", "uint"):
        return _parse_int(token, type_name)
    if kind == "float":
        return float(token)
    return complex(token.strip("()").replace("i", "j"))


def _parse_int(token: str, type_name: str) -> int:
    sign = -1 if token.startswith("-") else 1
    digits = token.lstrip("+-")
    if digits[:2].lower() in ("0x", "0b", "0o"):
        value = int(digits, 0)
    elif len(digits) > 1 and digits.startswith("0"):
        value = int(digits, 8)
    else:
        value = int(digits)
    value *= sign

    bits = INT_BITS[type_name]
    if SCALAR_KINDS[type_name] == "uint":
        low, high = 0, 2**bits - 1
    else:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1) - 1
    if not low <= value <= high:
        raise ValueError(f"{token} out of range for {type_name}")
    return value
