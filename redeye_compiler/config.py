"""Compiler configuration."""

from dataclasses import dataclass

MARSHALING_CHOICES = ("bundle", "string-encoded")
COERCION_CHOICES = ("permissive", "strict")
BODY_SCAN_CHOICES = ("depth", "line")


@dataclass
class CompilerConfig:
    """Options chosen once per run.

    Attributes:
        marshaling: How arguments cross the Router boundary.
            "bundle" packs them into a fixed-size [N]interface{};
            "string-encoded" formats them into one delimited string.
        coercion: What generated handlers do when a payload slot cannot be
            converted to its parameter type. "permissive" leaves the zero
            value, "strict" returns an error from the handler.
        body_scan: How a function body's end is found. "depth" counts braces
            outside literals and comments; "line" stops at the first line
            that is exactly "}" (no nesting support).
        propagate_errors: Rewrite `v := call(...)` into the two-result form
            that returns early on a non-nil error.
        scope_check: Skip call sites whose callee name is bound locally or
            used as a method/selector.
        separator: Field separator for the string encoding.
        router_type: Go type of the router parameter in generated code.
    """

    marshaling: str = "bundle"
    coercion: str = "permissive"
    body_scan: str = "depth"
    propagate_errors: bool = True
    scope_check: bool = True
    separator: str = ":"
    router_type: str = "*Router"

    def __post_init__(self):
        if self.marshaling not in MARSHALING_CHOICES:
            raise ValueError(
                f"Unknown marshaling strategy {self.marshaling!r}, "
                f"expected one of {', '.join(MARSHALING_CHOICES)}"
            )
        if self.coercion not in COERCION_CHOICES:
            raise ValueError(
                f"Unknown coercion mode {self.coercion!r}, "
                f"expected one of {', '.join(COERCION_CHOICES)}"
            )
        if self.body_scan not in BODY_SCAN_CHOICES:
            raise ValueError(
                f"Unknown body scan mode {self.body_scan!r}, "
                f"expected one of {', '.join(BODY_SCAN_CHOICES)}"
            )
        if not self.separator:
            raise ValueError("Separator must not be empty")
        if '"' in self.separator or "\\" in self.separator or "%" in self.separator:
            # It is embedded in a Go string literal and a format template
            raise ValueError(f"Separator {self.separator!r} is not supported")

    @property
    def strict(self) -> bool:
        return self.coercion == "strict"
