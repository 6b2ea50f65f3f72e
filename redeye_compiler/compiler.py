"""Compiler pipeline: discovery, extraction, rewriting, generation, output."""

import logging
from pathlib import Path

from redeye_compiler.config import CompilerConfig
from redeye_compiler.errors import CompileError
from redeye_compiler.extractor import extract_bodies
from redeye_compiler.generator import generate_declarations
from redeye_compiler.marshaling import get_strategy
from redeye_compiler.models import (
    CallSite,
    CompileResult,
    FunctionBody,
    FunctionEntry,
    FunctionRegistry,
    FunctionSignature,
)
from redeye_compiler.parser import find_declarations
from redeye_compiler.rewriter import rewrite_body
from redeye_compiler.source_file import SourceFile

logger = logging.getLogger(__name__)


def build_registry(
    signatures: list[FunctionSignature], bodies: list[FunctionBody]
) -> FunctionRegistry:
    """Pair each signature with its body, in declaration order.

    Raises:
        CompileError: If a name is declared twice
    """
    registry = FunctionRegistry()
    for sig, body in zip(signatures, bodies):
        if sig.name in registry:
            first = registry[sig.name].signature
            raise CompileError(
                f"Function {sig.name} is already declared at line {first.line_number}",
                declaration=sig.declaration,
                line_number=sig.line_number,
                phase="discovery",
            )
        registry.register(FunctionEntry(signature=sig, body=body))
    registry.freeze()
    return registry


def compile_source(text: str, config: CompilerConfig | None = None) -> CompileResult:
    """Compile one file's text.

    Args:
        text: Source text
        config: Compiler options (defaults if omitted)

    Returns:
        CompileResult with the output text and everything that produced it

    Raises:
        CompileError: On any input the pipeline cannot handle; nothing is
            produced in that case
    """
    config = config or CompilerConfig()
    source = SourceFile.from_text(text)

    signatures = find_declarations(source.lines, config.body_scan)
    bodies = extract_bodies(source.lines, signatures, config.body_scan)
    registry = build_registry(signatures, bodies)
    source.remove_spans(bodies)

    rewritten: dict[str, list[str]] = {}
    call_sites: list[CallSite] = []
    for entry in registry:
        rewritten[entry.name], sites = rewrite_body(entry, registry, config)
        call_sites.extend(sites)

    strategy = get_strategy(config)
    declarations = generate_declarations(registry, rewritten, strategy, config)

    needed = sorted(set().union(*(d.imports for d in declarations)))
    imports_added = [path for path in needed if source.ensure_import(path)]

    for declaration in declarations:
        source.append_block(declaration.text)

    logger.info(
        f"Compiled {len(registry)} functions, {len(call_sites)} routed calls"
    )
    return CompileResult(
        text=source.render(),
        registry=registry,
        declarations=declarations,
        call_sites=call_sites,
        config=config,
        imports_added=imports_added,
    )


def compile_file(
    source_path: Path, target_dir: Path, config: CompilerConfig | None = None
) -> CompileResult:
    """Compile a file into the target directory under the same base name.

    The output is written only after the whole file compiled.

    Args:
        source_path: File to compile
        target_dir: Directory for the output (created if missing)
        config: Compiler options

    Returns:
        CompileResult, with source and output paths set

    Raises:
        CompileError: If the file is not UTF-8 or cannot be compiled
        OSError: If the source cannot be read or the output written
    """
    output_path = target_dir / source_path.name
    if output_path.exists() and output_path.resolve() == source_path.resolve():
        raise CompileError(
            f"Output {output_path} would overwrite the source file", phase="output"
        )

    logger.info(f"Compiling {source_path} into {target_dir}")
    try:
        text = source_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise CompileError(
            f"{source_path} is not valid UTF-8 (byte {e.start})", phase="discovery"
        ) from e
    result = compile_source(text, config)

    target_dir.mkdir(parents=True, exist_ok=True)
    output_path.write_text(result.text, encoding="utf-8")
    logger.info(f"Wrote {output_path}")

    result.source = str(source_path)
    result.output = str(output_path)
    return result
