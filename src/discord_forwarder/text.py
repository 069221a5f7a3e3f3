"""Size bounding for Discord embed text.

Discord measures embed limits in characters. Python strings index by code
point, so slicing here never splits a multi-byte character.
"""

ELLIPSIS = "…"


def truncate(text: str, limit: int) -> str:
    """Bound text to at most ``limit`` characters.

    If the text is too long, it is cut and the final kept character is
    replaced by a single ellipsis, so the result is exactly ``limit`` long.

    Raises:
        ValueError: If limit < 1.

    Example:
        >>> truncate("abcdef", 4)
        'abc…'
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")
    if len(text) <= limit:
        return text
    return text[: limit - 1] + ELLIPSIS


def chunk(text: str, size: int) -> list[str]:
    """Split text into consecutive pieces of at most ``size`` characters.

    Joining the pieces yields the original text. An empty string yields no
    pieces.

    Raises:
        ValueError: If size < 1.
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return [text[start : start + size] for start in range(0, len(text), size)]
