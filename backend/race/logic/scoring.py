"""Race scoring: how far into the round text a player has typed correctly."""


def split_words(text: str) -> list[str]:
    """Split text on any run of whitespace, ignoring leading/trailing space."""
    return text.split()


def count_matching_words(round_text: str, typed_text: str) -> int:
    """
    Count the leading words of typed_text that exactly match round_text.

    Words are compared position by position from the start and counting stops at
    the first mismatch or when either side runs out of words. A correct word after
    an earlier mistake does not count, and extra words typed past the end of the
    round text neither add nor subtract.
    """
    score = 0
    for expected, typed in zip(split_words(round_text), split_words(typed_text), strict=False):
        if expected != typed:
            break
        score += 1
    return score
