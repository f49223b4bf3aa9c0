"""
Turn NoteText into surface markup, wrapping bare URLs in anchors.

Image fragments are hidden behind placeholder tokens for the whole pass, so
neither escaping nor URL matching can reach into them.
"""

import html as html_module
import logging
import re

from bs4 import BeautifulSoup

from memopad.content.placeholders import (
    PLACEHOLDER_OPEN,
    PLACEHOLDER_CLOSE,
    PLACEHOLDER_RE,
    is_placeholder,
    protect,
    restore,
)
from memopad.core.dom import parse_fragment

logger = logging.getLogger(__name__)

LINE_BREAK = '<br>'

# http://, https:// or www. up to the next whitespace. Matches never run into a
# placeholder token and never end on sentence punctuation.
_URL_BODY = f'[^\\s{PLACEHOLDER_OPEN}{PLACEHOLDER_CLOSE}]'
_URL_END = f'[^\\s{PLACEHOLDER_OPEN}{PLACEHOLDER_CLOSE}.,;:!?]'
URL_RE = re.compile(f'(?:https?://|www\\.){_URL_BODY}*{_URL_END}')

# A token wrapped in angle brackets comes out of escaping as &lt;TOKEN&gt;;
# the brackets are dropped and the bare token kept.
BRACKETED_TOKEN_RE = re.compile(f'<({PLACEHOLDER_RE.pattern})>')

ANCHOR_TEMPLATE = '<a href="{href}" target="_blank" rel="noopener noreferrer">{text}</a>'


def escape_html(text: str) -> str:
    """Escape the five reserved characters (& < > " ')."""
    return html_module.escape(text, quote=True)


def _anchor(url: str) -> str:
    href = f'https://{url}' if url.startswith('www.') else url
    return ANCHOR_TEMPLATE.format(href=escape_html(href), text=escape_html(url))


def _linkify_line(line: str) -> str:
    # An image on its own line is emitted as-is
    if is_placeholder(line.strip()):
        return line

    line = BRACKETED_TOKEN_RE.sub(lambda m: m.group(1), line)

    parts = []
    last = 0
    for match in URL_RE.finditer(line):
        parts.append(escape_html(line[last:match.start()]))
        parts.append(_anchor(match.group(0)))
        last = match.end()
    parts.append(escape_html(line[last:]))
    return ''.join(parts)


def linkify(text: str) -> str:
    """
    Convert NoteText into HTML for the editable surface.

    - Image containers and <img> tags are passed through verbatim
    - Everything else is HTML-escaped
    - Bare URLs become anchors opening in a new tab
    - Newlines become <br>
    """
    if not text:
        return ''

    protected, images = protect(text)
    lines = protected.split('\n')
    result = LINE_BREAK.join(_linkify_line(line) for line in lines)
    result = restore(result, images)

    logger.debug(f"Linkified {len(lines)} line(s), {len(images)} image fragment(s)")
    return result


def contains_url(text: str) -> bool:
    """True when the text outside any image markup holds something linkify would wrap."""
    protected, _ = protect(text or '')
    return URL_RE.search(protected) is not None


def render(text: str) -> BeautifulSoup:
    """Parse linkify(text) into a tree, as the surface would after an innerHTML write."""
    return parse_fragment(linkify(text))
