"""
HTML → Markdown converter.

Turns fetched pages into compact markdown for the model:
- Parses with the html5lib → lxml → html.parser fallback chain
- Tidies inert elements (scripts, media, form controls, ...) away
- Rewrites the tree with markdownify, resolving and escaping link targets
- Optionally strips page boilerplate (nav, footers, ads, ...) first

Design principle: NEVER FAIL on bad HTML. Every failure path falls back to a
less ambitious conversion instead of raising.

Pipeline position: before the LLM call.
Input:  HTML string, ConversionOptions, optional source URL
Output: markdown string (possibly empty)
"""

import re
from typing import Any, Mapping, Optional, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment
from lxml import etree
from lxml import html as lxml_html
from markdownify import UNDERLINED, MarkdownConverter, chomp

from .exceptions import ConversionError
from .logger import get_module_logger
from .patterns import (
    BOILERPLATE_PATTERNS,
    BOILERPLATE_TAGS,
    IMAGE_TAGS,
    MAIN_CONTENT_LANDMARKS,
    PATTERNS_VERSION,
    TIDY_TAGS,
    URL_CLEANING_RULES,
    BoilerplatePattern,
)
from .schemas import ConversionOptions

logger = get_module_logger("converter")

# Main-content output is discarded when it is BOTH this short in absolute
# terms and this small relative to the full-document conversion
MIN_MAIN_CONTENT_LENGTH = 500
MIN_MAIN_CONTENT_RATIO = 0.2

# "https:", "mailto:", "data:", "invalid:" ... anything with a scheme is left alone
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")

_BLANK_LINES = re.compile(r"\n(?:[ \t]*\n)+")

_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"


# --- URL handling ---

def resolve_url(url: str, source_url: Optional[str] = None) -> str:
    """Resolve a relative URL against source_url; absolute URLs pass through."""
    if not source_url or _SCHEME.match(url):
        return url
    return urljoin(source_url, url)


def clean_url(url: str) -> str:
    """Apply every matching tracking-suffix rule."""
    for rule in URL_CLEANING_RULES:
        url = rule.clean(url)
    return url


def _collapse_whitespace(text: str) -> str:
    return " ".join(text.split())


class ExtractorMarkdownConverter(MarkdownConverter):
    """
    markdownify rules tuned for LLM input.

    Headings are underlined (setext) for h1/h2, link and image targets are
    resolved against the page URL, and literal brackets and parentheses are
    escaped so the model sees unambiguous link syntax.
    """

    def __init__(self, conversion_options: ConversionOptions,
                 source_url: Optional[str] = None, **options):
        options.setdefault("heading_style", UNDERLINED)
        options.setdefault("escape_misc", False)
        options.setdefault("escape_asterisks", True)
        options.setdefault("escape_underscores", True)
        super().__init__(**options)
        self.conversion_options = conversion_options
        self.source_url = source_url

    def escape(self, text, *args, **kwargs):
        text = super().escape(text, *args, **kwargs)
        return text.replace("[", r"\[").replace("]", r"\]")

    def prepare_url(self, url: str) -> str:
        """Resolve, clean (if enabled) and escape a link or image target."""
        url = resolve_url(_collapse_whitespace(url), self.source_url)
        if self.conversion_options.clean_urls:
            url = clean_url(url)
        # Parentheses would end the markdown link target early
        return url.replace("(", r"\(").replace(")", r"\)")

    def convert_a(self, el, text, *args, **kwargs):
        prefix, suffix, text = chomp(text or "")
        text = _collapse_whitespace(text)
        href = el.get("href")

        if not href:
            return f"{prefix}{text}{suffix}"
        if not text:
            return ""

        url = self.prepare_url(href)
        title = _collapse_whitespace(el.get("title") or "")
        if title:
            title = title.replace('"', r"\"")
            return f'{prefix}[{text}]({url} "{title}"){suffix}'
        return f"{prefix}[{text}]({url}){suffix}"

    def convert_img(self, el, text, *args, **kwargs):
        src = el.get("src")
        if not src:
            return ""

        alt = _collapse_whitespace(el.get("alt") or "")
        alt = alt.replace("[", r"\[").replace("]", r"\]")
        url = self.prepare_url(src)
        title = _collapse_whitespace(el.get("title") or "")
        if title:
            title = title.replace('"', r"\"")
            return f'![{alt}]({url} "{title}")'
        return f"![{alt}]({url})"

    def convert_title(self, el, text, *args, **kwargs):
        text = _collapse_whitespace(text or "")
        if not text:
            return ""
        return f"\n\n{text}\n{'=' * len(text)}\n\n"

    def _remove(self, el, text, *args, **kwargs):
        return ""

    # Removal rules; the tidy pass normally catches these first
    convert_meta = _remove
    convert_style = _remove
    convert_script = _remove
    convert_noscript = _remove
    convert_link = _remove
    convert_textarea = _remove
    convert_svg = _remove


# --- Parsing and tidying ---

def _parse_html(html: str) -> BeautifulSoup:
    # Parser fallback chain: html5lib → lxml → html.parser
    try:
        soup = BeautifulSoup(html, "html5lib")
    except Exception as e:
        logger.debug(f"html5lib parsing failed, trying lxml: {e}")
        try:
            soup = BeautifulSoup(html, "lxml")
        except Exception as e2:
            logger.debug(f"lxml parsing also failed: {e2}")
            soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    return soup


def _tidy(soup: BeautifulSoup, options: ConversionOptions) -> None:
    """Drop inert elements in place."""
    tags = TIDY_TAGS if options.include_images else TIDY_TAGS | IMAGE_TAGS

    removed = 0
    for el in soup.find_all(list(tags)):
        # Descendants of an already dropped element
        if el.decomposed:
            continue
        el.decompose()
        removed += 1

    # Quote characters in attribute names mean broken source markup
    for el in soup.find_all(True):
        if el.decomposed:
            continue
        if any('"' in name or "'" in name for name in el.attrs):
            el.decompose()
            removed += 1

    logger.debug(f"Tidy pass removed {removed} elements")


def _soup_to_markdown(soup: BeautifulSoup, options: ConversionOptions,
                      source_url: Optional[str]) -> str:
    markdown = ExtractorMarkdownConverter(options, source_url).convert_soup(soup)
    return _BLANK_LINES.sub("\n\n", markdown).strip()


# --- Main-content extraction ---

def _pattern_condition(pattern: BoilerplatePattern) -> str:
    attribute = f"@{pattern.attribute}"
    if pattern.match == "present":
        return attribute
    folded = f'translate({attribute}, "{_UPPER}", "{_UPPER.lower()}")'
    return f'{pattern.match}({folded}, "{pattern.value.lower()}")'


def _boilerplate_xpath() -> str:
    landmarks = " or ".join(f"self::{tag}" for tag in MAIN_CONTENT_LANDMARKS)
    containers = " or ".join(f"self::{tag}" for tag in BOILERPLATE_TAGS)
    conditions = " or ".join(_pattern_condition(p) for p in BOILERPLATE_PATTERNS)
    return f"//*[{landmarks}] | //*[{containers}][{conditions}]"


# Expression text only; each call evaluates it on its own tree
BOILERPLATE_XPATH = _boilerplate_xpath()


def extract_main_html(html: str) -> str:
    """
    Remove boilerplate regions from an HTML document.

    Raises:
        ConversionError: if lxml cannot build a tree from the input
    """
    if not html.strip():
        return ""

    try:
        document = lxml_html.document_fromstring(html)
    except (etree.ParserError, ValueError) as e:
        raise ConversionError(f"Could not parse HTML for main-content extraction: {e}") from e

    matches = document.xpath(BOILERPLATE_XPATH)
    for element in matches:
        # drop_tree keeps the element's tail text in the parent
        element.drop_tree()

    logger.debug(f"Main-content filter dropped {len(matches)} elements (patterns v{PATTERNS_VERSION})")
    return lxml_html.tostring(document, encoding="unicode")


def _main_content_is_usable(main_markdown: str, full_markdown: str) -> bool:
    if not main_markdown:
        return False
    too_small = len(main_markdown) < MIN_MAIN_CONTENT_RATIO * len(full_markdown)
    too_short = len(main_markdown) < MIN_MAIN_CONTENT_LENGTH
    return not (too_small and too_short)


def _main_content_markdown(tidied_html: str, full_markdown: str,
                           options: ConversionOptions, source_url: Optional[str]) -> str:
    try:
        main_html = extract_main_html(tidied_html)
    except ConversionError as e:
        logger.warning(f"{e.message}; using full document")
        return full_markdown

    main_markdown = _soup_to_markdown(_parse_html(main_html), options, source_url) if main_html else ""

    if not _main_content_is_usable(main_markdown, full_markdown):
        logger.debug(
            f"Main content too small ({len(main_markdown)} of {len(full_markdown)} chars), "
            f"using full document"
        )
        return full_markdown

    return main_markdown


def _plain_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for el in soup.find_all(["script", "style", "noscript"]):
        el.decompose()
    lines = (_collapse_whitespace(line) for line in soup.get_text("\n").splitlines())
    return "\n".join(line for line in lines if line)


def html_to_markdown(
    html: str,
    options: Union[ConversionOptions, Mapping[str, Any], None] = None,
    source_url: Optional[str] = None
) -> str:
    """
    Convert HTML to Markdown.

    Args:
        html: HTML document or fragment
        options: ConversionOptions, a dict of the same fields, or None
        source_url: Page URL used to resolve relative links and images (never fetched)

    Returns:
        Markdown string; empty when the document has no convertible content
    """
    options = ConversionOptions.coerce(options)

    try:
        soup = _parse_html(html)
        _tidy(soup, options)
        full_markdown = _soup_to_markdown(soup, options, source_url)

        if not options.extract_main_html:
            return full_markdown

        return _main_content_markdown(str(soup), full_markdown, options, source_url)

    except RecursionError:
        # markdownify recurses once per nesting level
        logger.warning("HTML nested too deeply for markdown conversion, falling back to plain text")
        return _plain_text(html)
