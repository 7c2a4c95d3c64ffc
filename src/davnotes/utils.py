"""Utility functions for DavNotes."""

# Characters that are invalid in filenames on at least one common platform
_UNSAFE_FILENAME_CHARS = str.maketrans({c: "_" for c in '/\\:*?"<>|'})


def sanitize_filename(title: str) -> str:
    """Convert a note title into the stem of its markdown mirror file.

    Each of ``/ \\ : * ? " < > |`` is replaced with an underscore and the
    result is stripped of surrounding whitespace. Saving and deleting a
    note must both go through this function so they address the same
    resource.

    Examples:
        "With/Slash" -> "With_Slash"
        "Multi<>Special" -> "Multi__Special"
        "  Trimmed  " -> "Trimmed"

    Args:
        title: The note title.

    Returns:
        Filesystem-safe filename stem (may be empty).
    """
    return title.translate(_UNSAFE_FILENAME_CHARS).strip()
