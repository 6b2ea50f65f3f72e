"""The working buffer: one source file's lines, mutated in place."""

import logging
import re

from redeye_compiler.models import FunctionBody

logger = logging.getLogger(__name__)

PACKAGE_PATTERN = re.compile(r"^\s*package\s+\w+")
IMPORT_BLOCK_PATTERN = re.compile(r"^\s*import\s*\(\s*$")
SINGLE_IMPORT_PATTERN = re.compile(r'^\s*import\s+(?:[\w.]+\s+)?"')


class SourceFile:
    """Ordered lines of one source file.

    Lines are stored without their trailing newline.
    """

    def __init__(self, lines: list[str]):
        self.lines = lines

    @classmethod
    def from_text(cls, text: str) -> "SourceFile":
        return cls(text.splitlines())

    def remove_spans(self, bodies: list[FunctionBody]) -> None:
        """Remove each body's span from the buffer.

        Spans must not overlap. Text that followed a closing brace on its
        line stays in the buffer.
        """
        for body in sorted(bodies, key=lambda b: b.start, reverse=True):
            kept = [body.remainder] if body.remainder.strip() else []
            self.lines[body.start : body.stop + 1] = kept
        logger.info(f"Removed {len(bodies)} declarations from the buffer")

    def has_import(self, path: str) -> bool:
        """True if the package is imported under its own name.

        Blank, dot and renamed imports do not count: generated code refers
        to the package by the last segment of its path.
        """
        name = re.escape(path.rsplit("/", 1)[-1])
        pattern = re.compile(rf'^\s*(?:import\s+)?(?:{name}\s+)?"{re.escape(path)}"')
        return any(pattern.match(line) for line in self.lines)

    def ensure_import(self, path: str) -> bool:
        """Import a package unless the file already does.

        Returns:
            True if an import line was inserted
        """
        if self.has_import(path):
            return False

        for index, line in enumerate(self.lines):
            if IMPORT_BLOCK_PATTERN.match(line):
                self.lines.insert(index + 1, f'\t"{path}"')
                logger.info(f"Added {path} to import block at line {index + 1}")
                return True

        for index, line in enumerate(self.lines):
            if SINGLE_IMPORT_PATTERN.match(line):
                self.lines.insert(index, f'import "{path}"')
                logger.info(f"Added import {path} at line {index + 1}")
                return True

        position = 0
        for index, line in enumerate(self.lines):
            if PACKAGE_PATTERN.match(line):
                position = index + 1
                break
        self.lines[position:position] = ["", f'import "{path}"']
        logger.info(f"Added import {path} after the package clause")
        return True

    def append_block(self, text: str) -> None:
        """Append a block of text, separated from what precedes it by a blank line."""
        if self.lines and self.lines[-1].strip():
            self.lines.append("")
        self.lines.extend(text.rstrip("\n").split("\n"))

    def render(self) -> str:
        return "\n".join(self.lines) + "\n"
