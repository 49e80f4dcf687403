"""Output file helpers."""

import os


def sibling_path(path: str, extension: str) -> str:
    """
    Return the path next to an input file with its extension replaced.

    Args:
        path: Input file path
        extension: New extension including the leading dot, e.g. ".dis"

    Returns:
        Sibling path
    """
    return os.path.splitext(path)[0] + extension


def redact_path(path: str, debug: bool = False) -> str:
    """Reduce a path to its file name unless debugging."""
    if debug:
        return path

    return os.path.basename(path)


def write_file_atomic(path: str, content: str) -> None:
    """
    Write a text file so readers never see a partial file.

    Content goes to a temporary file in the same directory which then replaces
    the target.

    Args:
        path: Target path
        content: Text to write

    Raises:
        OSError: If the file cannot be written
    """
    temp_file = f"{path}.tmp"
    try:
        with open(temp_file, 'w', encoding='utf-8') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        # Atomic replace
        os.replace(temp_file, path)

    except OSError:
        if os.path.exists(temp_file):
            os.remove(temp_file)

        raise
