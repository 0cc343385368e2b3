# utils/text_utils.py

import re
from itertools import product


def slugify(text: str) -> str:
    """Lowercase, spaces to dashes, then drop anything that is not a word char or dash."""
    return re.sub(r"[^\w-]+", "", text.lower().replace(" ", "-"), flags=re.ASCII)


def cartesian_product(option_lists: list[list]) -> list[list]:
    # [] -> [[]], same as reducing from a single empty combination
    return [list(combination) for combination in product(*option_lists)]


def sanitize_filename(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", name)
