"""Disassembly configuration."""

from dataclasses import dataclass, replace


@dataclass
class DisassemblyConfig:
    """
    Options controlling a disassembly run.

    Attributes:
        recurse_nested: Disassemble nested function units found in object tables
        annotate: Attach idiom comments to instructions
        show_lines: Print source line numbers next to addresses
        extended_hints: Console-only extras (inferred parameters, switch case summaries)
        max_depth: Nesting levels below the root that may be disassembled
        max_function_refs: Maximum number of lambda property names captured per unit
    """
    recurse_nested: bool = True
    annotate: bool = True
    show_lines: bool = False
    extended_hints: bool = True
    max_depth: int = 3
    max_function_refs: int = 32

    def for_listing_file(self, annotate: bool | None = None) -> 'DisassemblyConfig':
        """
        Derive the configuration used for the .dis listing file.

        The file never carries source lines or extended hints.

        Args:
            annotate: Override for idiom comments; None keeps the current setting

        Returns:
            New configuration
        """
        return replace(
            self,
            show_lines=False,
            extended_hints=False,
            annotate=self.annotate if annotate is None else annotate
        )

    def validate(self) -> None:
        """
        Check option ranges.

        Raises:
            ValueError: If a limit is negative
        """
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")

        if self.max_function_refs < 0:
            raise ValueError(f"max_function_refs must be >= 0, got {self.max_function_refs}")
