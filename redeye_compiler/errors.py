"""Errors raised while compiling a source file."""


class CompileError(Exception):
    """A source file could not be compiled.

    Any CompileError aborts the whole file: no output is written.
    """

    def __init__(
        self,
        message: str,
        declaration: str | None = None,
        line_number: int | None = None,
        phase: str = "discovery",
    ):
        super().__init__(message)
        self.message = message
        self.declaration = declaration
        self.line_number = line_number
        self.phase = phase  # "discovery", "extraction", "generation", "output"

    def __str__(self) -> str:
        location = f"line {self.line_number}: " if self.line_number else ""
        if self.declaration:
            return f"{location}{self.message} (in `{self.declaration.strip()}`)"
        return f"{location}{self.message}"
