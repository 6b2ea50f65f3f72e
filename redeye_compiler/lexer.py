"""Minimal Go tokenizer: enough to find brackets that are really code.

Only the lexical elements that can hide a bracket are tracked: line and
block comments, interpreted strings, rune literals and raw strings.
"""

OPENING = "([{"
CLOSING = ")]}"


class LiteralMasker:
    """Blank out comments and literal contents, one line at a time.

    The masked line has the same length as the input, so indices found in
    it can be used to slice the original. Block comments and raw strings
    may span lines; that state is carried between calls.
    """

    def __init__(self):
        self._state: str | None = None  # "block_comment", "raw_string"

    def mask(self, line: str) -> str:
        out = []
        i = 0
        n = len(line)
        while i < n:
            ch = line[i]
            if self._state == "block_comment":
                if line.startswith("*/", i):
                    self._state = None
                    out.append("  ")
                    i += 2
                else:
                    out.append(" ")
                    i += 1
                continue
            if self._state == "raw_string":
                if ch == "`":
                    self._state = None
                    out.append(ch)
                else:
                    out.append(" ")
                i += 1
                continue

            if line.startswith("//", i):
                out.append(" " * (n - i))
                break
            if line.startswith("/*", i):
                self._state = "block_comment"
                out.append("  ")
                i += 2
            elif ch == "`":
                self._state = "raw_string"
                out.append(ch)
                i += 1
            elif ch in "\"'":
                end = _quoted_end(line, i)
                if end >= n:
                    # Unterminated; let the Go compiler complain about it
                    out.append(ch + " " * (n - i - 1))
                    break
                out.append(ch + " " * (end - i - 1) + ch)
                i = end + 1
            else:
                out.append(ch)
                i += 1
        return "".join(out)


def _quoted_end(line: str, start: int) -> int:
    """Index of the quote closing the literal opened at `start`."""
    quote = line[start]
    i = start + 1
    while i < len(line):
        if line[i] == "\\":
            i += 2
            continue
        if line[i] == quote:
            return i
        i += 1
    return len(line)


def find_closing(masked: str, open_index: int) -> int | None:
    """Find the bracket closing the one at `open_index` on the same line.

    Args:
        masked: A line already passed through LiteralMasker
        open_index: Index of an opening bracket

    Returns:
        Index of the matching closing bracket, or None if the line ends first
    """
    depth = 0
    for i in range(open_index, len(masked)):
        ch = masked[i]
        if ch in OPENING:
            depth += 1
        elif ch in CLOSING:
            depth -= 1
            if depth == 0:
                return i
    return None


def brace_delta(masked: str) -> int:
    """Net change in brace depth across a masked line."""
    return masked.count("{") - masked.count("}")


def split_arguments(args_str: str) -> list[str]:
    """Split an argument list on top-level commas.

    Handles nested calls, composite literals and string literals.
    """
    if not args_str.strip():
        return []

    arguments = []
    current = ""
    depth = 0
    in_string = False
    string_char = None
    escaped = False

    for char in args_str:
        if in_string:
            current += char
            if escaped:
                escaped = False
            elif char == "\\" and string_char != "`":
                escaped = True
            elif char == string_char:
                in_string = False
        elif char in "\"'`":
            in_string = True
            string_char = char
            current += char
        elif char in OPENING:
            depth += 1
            current += char
        elif char in CLOSING:
            depth -= 1
            current += char
        elif char == "," and depth == 0:
            arguments.append(current.strip())
            current = ""
        else:
            current += char

    arguments.append(current.strip())
    return arguments
