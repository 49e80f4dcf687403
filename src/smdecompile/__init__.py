"""Ollama-backed decompilation of smdis listings."""

from smdecompile.decompile_client import OllamaDecompiler
from smdecompile.decompile_error import APIError, NetworkError, ResponseError, ServiceError
from smdecompile.decompile_prompt import build_prompt, strip_markdown_fences, truncate_disassembly
from smdecompile.decompile_response import DecompileError, DecompileResponse
from smdecompile.decompile_settings import DecompileSettings


__all__ = [
    "OllamaDecompiler",
    "APIError", "NetworkError", "ResponseError", "ServiceError",
    "build_prompt", "strip_markdown_fences", "truncate_disassembly",
    "DecompileError", "DecompileResponse",
    "DecompileSettings",
]
