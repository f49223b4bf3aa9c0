"""
Hide embedded image markup behind compact tokens while text transforms run.

A token is OPEN + "IMG_" + index + CLOSE. The sentinels sit in the Specials block,
outside anything a user types and outside the characters HTML escaping touches.
"""

import logging
import re
from typing import List, Tuple

logger = logging.getLogger(__name__)

PLACEHOLDER_OPEN = '\uFFF0'
PLACEHOLDER_CLOSE = '\uFFF1'
PLACEHOLDER_PREFIX = 'IMG_'

PLACEHOLDER_RE = re.compile(
    f'{PLACEHOLDER_OPEN}{PLACEHOLDER_PREFIX}(\\d+){PLACEHOLDER_CLOSE}'
)

CONTAINER_START_RE = re.compile(
    r'<div[^>]*class="[^"]*image-container[^"]*"[^>]*>', re.IGNORECASE
)
IMG_TAG_RE = re.compile(r'<img[^>]*>', re.IGNORECASE)

_DIV_OPEN = '<div'
_DIV_CLOSE = '</div>'


def make_token(index: int) -> str:
    return f'{PLACEHOLDER_OPEN}{PLACEHOLDER_PREFIX}{index}{PLACEHOLDER_CLOSE}'


def _find_container_end(text: str, body_start: int) -> int:
    """
    Return the index just past the </div> closing a container whose opening tag
    ends at body_start, or -1 when the markup never balances.
    """
    depth = 1
    pos = body_start
    lowered = text.lower()
    while pos < len(text):
        if lowered.startswith(_DIV_OPEN, pos):
            next_char = text[pos + len(_DIV_OPEN):pos + len(_DIV_OPEN) + 1]
            if next_char in (' ', '>'):
                depth += 1
            pos += len(_DIV_OPEN)
            continue
        if lowered.startswith(_DIV_CLOSE, pos):
            depth -= 1
            pos += len(_DIV_CLOSE)
            if depth == 0:
                return pos
            continue
        pos += 1
    return -1


def _find_containers(text: str) -> List[Tuple[int, int]]:
    spans = []
    search_from = 0
    while True:
        match = CONTAINER_START_RE.search(text, search_from)
        if match is None:
            break
        end = _find_container_end(text, match.end())
        if end < 0:
            # Unbalanced: leave it in place and keep looking after the opening tag
            logger.debug(f"Unbalanced image container at offset {match.start()}, not protected")
            search_from = match.end()
            continue
        spans.append((match.start(), end))
        search_from = end
    return spans


def protect(text: str) -> Tuple[str, List[str]]:
    """
    Replace every image container and standalone <img> with a placeholder token.

    Containers get indices 0..k-1 in document order, standalone images continue
    from k. Returns the protected text and the list of original fragments, where
    images[i] is the fragment behind token i.
    """
    spans = _find_containers(text)
    images = [text[start:end] for start, end in spans]

    protected = text
    # Rightmost first so earlier offsets stay valid
    for index in range(len(spans) - 1, -1, -1):
        start, end = spans[index]
        protected = protected[:start] + make_token(index) + protected[end:]

    def replace_img(match):
        images.append(match.group(0))
        return make_token(len(images) - 1)

    protected = IMG_TAG_RE.sub(replace_img, protected)

    if images:
        logger.debug(f"Protected {len(images)} image fragment(s) ({len(spans)} container(s))")
    return protected, images


def restore(protected_text: str, images: List[str]) -> str:
    """Put the original fragments back. Unknown indices restore to an empty string."""
    def replace_token(match):
        index = int(match.group(1))
        if 0 <= index < len(images):
            return images[index]
        logger.warning(f"Placeholder index {index} has no recorded fragment, dropping it")
        return ''

    return PLACEHOLDER_RE.sub(replace_token, protected_text)


def is_placeholder(text: str) -> bool:
    """True when text is exactly one placeholder token."""
    return PLACEHOLDER_RE.fullmatch(text) is not None
