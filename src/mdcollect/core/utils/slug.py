"""Heading anchor generation"""

import re


def slugify(text: str) -> str:
    """Convert heading text to a lowercase, hyphen-separated anchor id."""
    text = text.lower()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-')


def unique_anchor(text: str, seen: set[str]) -> str:
    """slugify(text), suffixed -1, -2, ... when an earlier heading already took it."""
    base = slugify(text) or "section"
    anchor, n = base, 0
    while anchor in seen:
        n += 1
        anchor = f"{base}-{n}"
    seen.add(anchor)
    return anchor
