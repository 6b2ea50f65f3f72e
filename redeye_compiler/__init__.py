"""Compile (T, error) functions into workers dispatched through a Router."""

from redeye_compiler.compiler import build_registry, compile_file, compile_source
from redeye_compiler.config import CompilerConfig
from redeye_compiler.errors import CompileError
from redeye_compiler.extractor import extract_bodies
from redeye_compiler.generator import generate_declarations
from redeye_compiler.marshaling import (
    BundleStrategy,
    StringEncodedStrategy,
    decode_payload,
    encode_payload,
    get_strategy,
    payload_template,
)
from redeye_compiler.models import (
    CallSite,
    CompileResult,
    FunctionBody,
    FunctionEntry,
    FunctionRegistry,
    FunctionSignature,
    GeneratedDeclaration,
    Parameter,
)
from redeye_compiler.parser import find_declarations, parse_parameters
from redeye_compiler.rewriter import rewrite_body

__all__ = [
    # Models
    "Parameter",
    "FunctionSignature",
    "FunctionBody",
    "FunctionEntry",
    "FunctionRegistry",
    "CallSite",
    "GeneratedDeclaration",
    "CompileResult",
    # Configuration and errors
    "CompilerConfig",
    "CompileError",
    # Discovery and extraction
    "find_declarations",
    "parse_parameters",
    "extract_bodies",
    "build_registry",
    # Rewriting
    "rewrite_body",
    # Marshaling
    "BundleStrategy",
    "StringEncodedStrategy",
    "get_strategy",
    "payload_template",
    "encode_payload",
    "decode_payload",
    # Generation
    "generate_declarations",
    # Pipeline
    "compile_source",
    "compile_file",
]
