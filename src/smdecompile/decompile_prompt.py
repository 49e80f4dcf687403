"""Prompt construction and response clean-up for bytecode decompilation."""

import logging
import re


# Rough characters-per-token estimate for disassembly text.
CHARS_PER_TOKEN = 4

# Share of the context window kept free for the preamble and the model's output.
HEADROOM_RATIO = 0.20

_FENCE_RE = re.compile(r"^```[^\n]*(?:\n|$)", re.MULTILINE)

logger = logging.getLogger(__name__)


def max_disassembly_chars(num_ctx: int) -> int:
    """Return how many characters of disassembly fit a context window of num_ctx tokens."""
    return int(num_ctx * CHARS_PER_TOKEN * (1.0 - HEADROOM_RATIO))


def truncate_disassembly(disassembly: str, limit: int) -> str:
    """
    Shorten a listing to fit a character budget.

    Keeps the first and last limit // 2 characters and puts a marker noting the
    number of characters actually dropped between them (one more than
    len(disassembly) - limit when limit is odd).

    Args:
        disassembly: Listing text
        limit: Character budget

    Returns:
        The listing unchanged if it fits, else the truncated form
    """
    if len(disassembly) <= limit:
        return disassembly

    half = limit // 2
    omitted = len(disassembly) - 2 * half
    tail = disassembly[len(disassembly) - half:] if half else ""
    return f"{disassembly[:half]}\n... [TRUNCATED {omitted} chars for token budget] ...\n{tail}"


def build_prompt(disassembly: str, function_name: str, num_ctx: int) -> str:
    """
    Build the generation prompt for one function tree listing.

    Args:
        disassembly: Listing text
        function_name: Name used in the requested output skeleton
        num_ctx: Model context window in tokens

    Returns:
        Prompt text
    """
    preamble = (
        "Decompile this SpiderMonkey bytecode into valid JavaScript.\n\n"
        "OUTPUT FORMAT - respond with ONLY this structure:\n"
        "/*\n"
        f" * Function: {function_name}\n"
        " * Behavior: [brief description]\n"
        " */\n"
        f"function {function_name}() {{\n"
        "    // JavaScript code here\n"
        "}\n\n"
        "CRITICAL RULES:\n"
        "- Output ONLY the comment block + function\n"
        "- NO explanations, prose, or markdown outside the code\n"
        "- Convert all bytecode operations to equivalent JavaScript\n"
        "- Use descriptive variable names when possible\n\n"
        "Bytecode:\n"
    )

    limit = max_disassembly_chars(num_ctx)
    logger.debug(
        "Prompt budget: ctx=%d tokens, disassembly ~%d tokens (limit %d chars)",
        num_ctx, len(disassembly) // CHARS_PER_TOKEN, limit
    )
    if len(disassembly) > limit:
        logger.warning(
            "Disassembly truncated for %d-token context: %d chars -> %d chars", num_ctx, len(disassembly), limit
        )

    return f"{preamble}{truncate_disassembly(disassembly, limit)}\n"


def strip_markdown_fences(text: str) -> str:
    """Remove markdown code fence lines (``` plus any language tag), keeping everything else verbatim."""
    return _FENCE_RE.sub("", text)
