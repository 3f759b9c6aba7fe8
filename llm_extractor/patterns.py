"""
Data tables used by the markdown converter.

Kept apart from the traversal code so the lists can be tuned without touching
the conversion logic. Bump PATTERNS_VERSION whenever an entry changes; the
converter logs it alongside main-content decisions.

The boilerplate list follows trafilatura's discard expressions
(trafilatura/xpaths.py, OVERALL_DISCARD_XPATH), minus the entries for tags,
authors, ratings, attachments, timestamps, user info and comments, which
callers often want to extract.
"""

import re
from dataclasses import dataclass
from typing import NamedTuple
from urllib.parse import urlsplit

PATTERNS_VERSION = "3"


# --- Tidy pass ---

# Dropped before any conversion: no extractable text, or interactive chrome
TIDY_TAGS = frozenset({
    # code and metadata
    "script", "style", "noscript", "template", "link", "meta", "base",
    # embedded documents and media
    "iframe", "frame", "frameset", "embed", "object", "applet", "param",
    "audio", "video", "source", "track", "canvas", "map", "area", "svg", "use", "math",
    # form controls
    "button", "input", "select", "option", "optgroup", "datalist", "textarea",
    "label", "legend", "output", "progress",
    # widgets and legacy tags
    "dialog", "marquee", "blink", "menuitem",
    # ruby annotations
    "rp", "rt", "rtc",
    # navigation landmark
    "nav",
})

# Dropped as well unless images were asked for
IMAGE_TAGS = frozenset({"img", "picture", "image"})


# --- Main-content filter ---

# Landmark elements removed outright
MAIN_CONTENT_LANDMARKS = ("header", "footer", "nav", "aside")

# Only these containers are tested against BOILERPLATE_PATTERNS
BOILERPLATE_TAGS = ("div", "item", "list", "p", "section", "span")


class BoilerplatePattern(NamedTuple):
    """
    One attribute test. Values are compared case-insensitively.

    match is "contains", "starts-with" or "present" (value ignored).
    """
    attribute: str
    match: str
    value: str = ""


def _both(match: str, value: str) -> list[BoilerplatePattern]:
    return [BoilerplatePattern("id", match, value), BoilerplatePattern("class", match, value)]


BOILERPLATE_PATTERNS: tuple[BoilerplatePattern, ...] = tuple([
    # footers and related posts
    *_both("contains", "footer"),
    *_both("contains", "related"),
    *_both("contains", "viral"),
    BoilerplatePattern("id", "contains", "filter"),

    # sharing and syndication
    *_both("starts-with", "shar"),
    BoilerplatePattern("class", "contains", "share-"),
    BoilerplatePattern("id", "contains", "share"),
    *_both("contains", "social"),
    BoilerplatePattern("class", "contains", "sociable"),
    *_both("contains", "syndication"),
    BoilerplatePattern("id", "starts-with", "jp-"),
    BoilerplatePattern("id", "starts-with", "dpsp-content"),
    BoilerplatePattern("class", "contains", "embed"),

    # page chrome
    *_both("contains", "newsletter"),
    BoilerplatePattern("class", "contains", "subnav"),
    *_both("contains", "cookie"),
    *_both("contains", "sidebar"),
    *_both("contains", "banner"),
    BoilerplatePattern("class", "contains", "meta"),
    *_both("contains", "menu"),

    # navigation
    BoilerplatePattern("id", "contains", "nav"),
    BoilerplatePattern("role", "contains", "nav"),
    BoilerplatePattern("class", "starts-with", "nav"),
    BoilerplatePattern("class", "contains", "navigation"),
    BoilerplatePattern("class", "contains", "navbar"),
    BoilerplatePattern("class", "contains", "navbox"),
    BoilerplatePattern("class", "starts-with", "post-nav"),
    *_both("contains", "breadcrumb"),
    *_both("contains", "bread-crumb"),
    *_both("contains", "button"),
    BoilerplatePattern("class", "contains", "byline"),
    BoilerplatePattern("class", "starts-with", "widget"),
    BoilerplatePattern("class", "contains", "-icon"),
    BoilerplatePattern("class", "contains", "article-infos"),
    BoilerplatePattern("class", "contains", "infoline"),

    # ads and recommendation networks
    BoilerplatePattern("class", "contains", "-ad-"),
    BoilerplatePattern("class", "contains", " ad "),
    BoilerplatePattern("data-component", "contains", "MostPopularStories"),
    BoilerplatePattern("class", "contains", "outbrain"),
    BoilerplatePattern("class", "contains", "taboola"),
    BoilerplatePattern("class", "contains", "criteo"),
    BoilerplatePattern("class", "contains", "options"),
    BoilerplatePattern("class", "contains", "next-post"),
    BoilerplatePattern("class", "contains", "side-stories"),
    BoilerplatePattern("class", "contains", "related-stories"),
    BoilerplatePattern("class", "contains", "most-popular"),
    BoilerplatePattern("class", "contains", "mol-factbox"),

    # consent dialogs and paywalls
    BoilerplatePattern("class", "contains", "consent"),
    BoilerplatePattern("class", "contains", "modal-content"),
    BoilerplatePattern("class", "contains", "paid-content"),
    BoilerplatePattern("class", "contains", "paidcontent"),
    BoilerplatePattern("id", "contains", "premium-"),
    BoilerplatePattern("id", "contains", "paywall"),
    BoilerplatePattern("class", "contains", "obfuscated"),
    BoilerplatePattern("class", "contains", "blurred"),
    BoilerplatePattern("data-lp-replacement-content", "present"),

    # support widgets and site-specific leftovers
    BoilerplatePattern("class", "starts-with", "ZendeskForm"),
    BoilerplatePattern("class", "contains", "message-container"),
    BoilerplatePattern("id", "contains", "message_container"),
    BoilerplatePattern("class", "contains", "yin"),
    BoilerplatePattern("class", "contains", "zlylin"),
    BoilerplatePattern("class", "contains", "xg1"),
    BoilerplatePattern("id", "contains", "bmdh"),
])


# --- URL cleaning ---

@dataclass(frozen=True)
class UrlCleaningRule:
    """Truncate URLs on matching hosts at the first occurrence of marker."""
    host_pattern: str
    marker: str

    def matches(self, url: str) -> bool:
        host = urlsplit(url).hostname or ""
        return re.search(self.host_pattern, host, re.IGNORECASE) is not None

    def clean(self, url: str) -> str:
        if not self.matches(url):
            return url
        index = url.find(self.marker)
        return url if index == -1 else url[:index]


URL_CLEANING_RULES: tuple[UrlCleaningRule, ...] = (
    # amazon.com, amazon.ca, amazon.co.uk, amazon.com.au, ...
    # /dp/<ASIN>/ref=sr_1_47?... → /dp/<ASIN>
    UrlCleaningRule(host_pattern=r"(^|\.)amazon\.[a-z]{2,3}(\.[a-z]{2})?$", marker="/ref="),
)
