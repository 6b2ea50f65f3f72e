"""Locate and extract function bodies."""

import logging

from redeye_compiler.errors import CompileError
from redeye_compiler.lexer import LiteralMasker
from redeye_compiler.models import FunctionBody, FunctionSignature
from redeye_compiler.parser import DECLARATION_PATTERN

logger = logging.getLogger(__name__)

CLOSING_LINE = "}"


def extract_bodies(
    lines: list[str], signatures: list[FunctionSignature], body_scan: str = "depth"
) -> list[FunctionBody]:
    """Find the body of every declaration.

    Spans are computed against the unmodified lines; the caller removes
    them afterwards.

    Args:
        lines: Source lines
        signatures: Declarations in source order
        body_scan: "depth" (brace counting) or "line" (first "}" line)

    Returns:
        One FunctionBody per signature, in the same order

    Raises:
        CompileError: If a body has no end or two bodies overlap
    """
    extract = extract_body_by_depth if body_scan == "depth" else extract_body_by_line
    bodies = [extract(lines, sig) for sig in signatures]

    previous = None
    for sig, body in sorted(zip(signatures, bodies), key=lambda pair: pair[1].start):
        if previous is not None and body.start <= previous[1].stop:
            raise CompileError(
                f"Body of {previous[0].name} runs into the declaration of {sig.name}",
                declaration=previous[0].declaration,
                line_number=previous[0].line_number,
                phase="extraction",
            )
        previous = (sig, body)

    logger.info(f"Extracted {len(bodies)} function bodies")
    return bodies


def extract_body_by_line(lines: list[str], sig: FunctionSignature) -> FunctionBody:
    """Scan forward for the first line that is exactly a closing brace.

    There is no depth counting: a nested block whose closing brace sits
    alone at the start of a line ends the body early.
    """
    start = sig.line_number - 1
    for stop in range(start + 1, len(lines)):
        if lines[stop].rstrip() == CLOSING_LINE:
            logger.debug(f"Body of {sig.name} spans lines {start + 1}-{stop + 1}")
            return FunctionBody(
                declaration=lines[start],
                lines=lines[start + 1 : stop],
                closing=lines[stop],
                start=start,
                stop=stop,
            )
    raise _unterminated(sig)


def extract_body_by_depth(lines: list[str], sig: FunctionSignature) -> FunctionBody:
    """Count braces from the declaration's opening brace to its match.

    Braces inside strings, runes and comments are ignored. The body may
    share lines with the declaration or the closing brace.
    """
    start = sig.line_number - 1
    decl_line = lines[start]
    open_index = DECLARATION_PATTERN.match(decl_line).start(4) - 1

    masker = LiteralMasker()
    depth = 0
    for stop in range(start, len(lines)):
        line = lines[stop]
        masked = masker.mask(line)
        offset = open_index if stop == start else 0
        for col in range(offset, len(masked)):
            if masked[col] == "{":
                depth += 1
            elif masked[col] == "}":
                depth -= 1
                if depth == 0:
                    logger.debug(
                        f"Body of {sig.name} spans lines {start + 1}-{stop + 1}"
                    )
                    return _split_body(lines, start, open_index, stop, col)
    raise _unterminated(sig)


def _split_body(
    lines: list[str], start: int, open_index: int, stop: int, close_index: int
) -> FunctionBody:
    decl_line = lines[start]
    declaration = decl_line[: open_index + 1].rstrip()
    remainder = lines[stop][close_index + 1 :]

    if start == stop:
        inner = decl_line[open_index + 1 : close_index].strip()
        body_lines = [f"\t{inner}"] if inner else []
    else:
        body_lines = []
        head = decl_line[open_index + 1 :]
        if head.strip():
            body_lines.append(f"\t{head.strip()}")
        body_lines.extend(lines[start + 1 : stop])
        tail = lines[stop][:close_index]
        if tail.strip():
            body_lines.append(tail.rstrip())

    return FunctionBody(
        declaration=declaration,
        lines=body_lines,
        closing=CLOSING_LINE,
        start=start,
        stop=stop,
        remainder=remainder.strip(),
    )


def _unterminated(sig: FunctionSignature) -> CompileError:
    return CompileError(
        f"No closing brace for {sig.name} before end of file",
        declaration=sig.declaration,
        line_number=sig.line_number,
        phase="extraction",
    )
