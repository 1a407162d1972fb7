"""Static page-weight estimation from HTML markup.

The estimator never downloads sub-resources. It finds the tags that would
trigger a request, buckets each one into a :class:`ResourceCategory` and
assigns a synthetic byte size from the lookup tables below. The tables are
ordered: for substring rules the first matching rule wins, so a script named
``jquery.min.js`` is sized as jQuery, not as a generic minified bundle.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Mapping, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from ..utils.logger import get_logger

logger = get_logger(__name__)


class ResourceCategory(str, Enum):
    """Buckets a page sub-resource can be counted in."""
    DOCUMENT = "document"
    STYLESHEET = "stylesheet"
    SCRIPT = "script"
    IMAGE = "image"
    FONT = "font"
    OTHER = "other"


@dataclass(frozen=True)
class SizeRule:
    """Size assigned to identifiers containing any of ``needles``."""
    needles: Tuple[str, ...]
    size: int

    def matches(self, identifier: str) -> bool:
        return any(needle in identifier for needle in self.needles)


# Size tables, in priority order
STYLESHEET_SIZE_RULES: Tuple[SizeRule, ...] = (
    SizeRule(("bootstrap", "tailwind"), 150000),
    SizeRule(("font-awesome", "material-icons"), 75000),
    SizeRule((".min.css",), 25000),
)
STYLESHEET_DEFAULT_SIZE = 40000

SCRIPT_SIZE_RULES: Tuple[SizeRule, ...] = (
    SizeRule(("react", "vue", "angular"), 200000),
    SizeRule(("jquery",), 85000),
    SizeRule(("lodash", "moment"), 70000),
    SizeRule((".min.js",), 30000),
)
SCRIPT_DEFAULT_SIZE = 50000

OTHER_SIZE_RULES: Tuple[SizeRule, ...] = (
    SizeRule(("favicon",), 5000),
    SizeRule(("manifest",), 2000),
)
OTHER_DEFAULT_SIZE = 20000

IMAGE_EXTENSION_SIZES: Mapping[str, int] = {
    "svg": 5000,
    "png": 80000,
    "jpg": 60000,
    "jpeg": 60000,
    "webp": 40000,
    "gif": 100000,
}
IMAGE_DEFAULT_SIZE = 75000

FONT_EXTENSION_SIZES: Mapping[str, int] = {
    "woff2": 25000,
    "woff": 35000,
    "ttf": 60000,
}
FONT_DEFAULT_SIZE = 30000

# A hosted web-font stylesheet pulls in several font files we cannot see
WEB_FONT_HOSTS: Tuple[str, ...] = ("fonts.googleapis.com", "fonts.google.com", "typekit.net")
WEB_FONT_FILES_PER_STYLESHEET = 2
WEB_FONT_FILE_SIZE = 60000

# CSS selectors for each rule
STYLESHEET_LINK_SELECTOR = 'link[rel="stylesheet"], link[rel="preload"][as="style"]'
SCRIPT_SRC_SELECTOR = 'script[src]'
INLINE_SCRIPT_SELECTOR = 'script:not([src])'
IMAGE_SELECTOR = 'img, picture source, [style*="background-image"]'
FONT_LINK_SELECTOR = 'link[rel="preload"][as="font"], link[href*="font"]'
WEB_FONT_SELECTOR = ", ".join(f'link[href*="{host}"]' for host in WEB_FONT_HOSTS)
OTHER_SELECTOR = 'link[rel="icon"], link[rel="manifest"], embed, object, audio, video'

BACKGROUND_IMAGE_PATTERN = re.compile(r"""background-image:\s*url\(['"]?([^'"]+)['"]?\)""", re.IGNORECASE)


@dataclass
class CategoryTally:
    """Request count and estimated bytes for one category."""
    count: int = 0
    size: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"count": self.count, "size": self.size}


def _empty_tallies() -> Dict[ResourceCategory, CategoryTally]:
    tallies = {category: CategoryTally() for category in ResourceCategory}
    # The HTML document itself is always one request
    tallies[ResourceCategory.DOCUMENT].count = 1
    return tallies


@dataclass
class ResourceBreakdown:
    """Per-category tallies covering every :class:`ResourceCategory`."""
    tallies: Dict[ResourceCategory, CategoryTally] = field(default_factory=_empty_tallies)

    def __getitem__(self, category: ResourceCategory) -> CategoryTally:
        return self.tallies[category]

    def record(self, category: ResourceCategory, size: int, count: int = 1) -> None:
        tally = self.tallies[category]
        tally.count += count
        tally.size += size

    @property
    def request_count(self) -> int:
        return sum(tally.count for tally in self.tallies.values())

    @property
    def total_size(self) -> int:
        return sum(tally.size for tally in self.tallies.values())

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {category.value: self.tallies[category].to_dict() for category in ResourceCategory}


def estimate_by_substring(identifier: str, rules: Iterable[SizeRule], default: int) -> int:
    """Return the size of the first rule matching ``identifier``."""
    lowered = identifier.lower()
    for rule in rules:
        if rule.matches(lowered):
            return rule.size
    return default


def file_extension(identifier: str) -> str:
    """
    Everything after the last dot, lower-cased.

    Query strings and fragments are kept, so ``style.css?v=2`` gives
    ``"css?v=2"``. Identifiers without a dot come back whole.
    """
    return identifier.rsplit(".", 1)[-1].lower()


def estimate_by_extension(identifier: str, sizes: Mapping[str, int], default: int) -> int:
    return sizes.get(file_extension(identifier), default)


def estimate_stylesheet_size(href: str) -> int:
    return estimate_by_substring(href, STYLESHEET_SIZE_RULES, STYLESHEET_DEFAULT_SIZE)


def estimate_script_size(src: str) -> int:
    return estimate_by_substring(src, SCRIPT_SIZE_RULES, SCRIPT_DEFAULT_SIZE)


def estimate_image_size(src: str) -> int:
    return estimate_by_extension(src, IMAGE_EXTENSION_SIZES, IMAGE_DEFAULT_SIZE)


def estimate_font_size(href: str) -> int:
    return estimate_by_extension(href, FONT_EXTENSION_SIZES, FONT_DEFAULT_SIZE)


def estimate_other_size(href: str) -> int:
    return estimate_by_substring(href, OTHER_SIZE_RULES, OTHER_DEFAULT_SIZE)


def extract_background_image(style: Optional[str]) -> Optional[str]:
    """Pull the first ``background-image: url(...)`` target out of an inline style."""
    if not style:
        return None
    match = BACKGROUND_IMAGE_PATTERN.search(style)
    return match.group(1) if match else None


def utf8_length(text: str) -> int:
    return len(text.encode("utf-8"))


class ResourceEstimator:
    """
    Estimates the sub-resource weight of a page from its HTML.

    Stateless: one instance can serve concurrent requests.
    """

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser

    def estimate(self, html: str, base_url: str) -> Tuple[ResourceBreakdown, int]:
        """
        Classify and size every sub-resource referenced by ``html``.

        Args:
            html: Raw page markup
            base_url: Page the markup came from, used for logging only

        Returns:
            The breakdown and the sum of all estimated sizes. The byte
            length of ``html`` itself is not included.
        """
        return self.estimate_document(self.parse(html, base_url), base_url)

    def estimate_document(self, soup: Optional[BeautifulSoup], base_url: str) -> Tuple[ResourceBreakdown, int]:
        """Same as :meth:`estimate` for markup that is already parsed."""
        breakdown = ResourceBreakdown()
        if soup is None:
            return breakdown, breakdown.total_size

        self._tally_stylesheets(soup, breakdown)
        self._tally_scripts(soup, breakdown)
        self._tally_images(soup, breakdown)
        self._tally_fonts(soup, breakdown)
        self._tally_other(soup, breakdown)

        total_estimated_size = breakdown.total_size
        logger.debug(
            f"Estimated {breakdown.request_count} requests, {total_estimated_size} bytes for {base_url}"
        )
        return breakdown, total_estimated_size

    def parse(self, html: str, base_url: str = "") -> Optional[BeautifulSoup]:
        """Parse markup, returning None when the parser gives up on it."""
        try:
            return BeautifulSoup(html or "", self.parser)
        except ParserRejectedMarkup as e:
            logger.warning(f"Parser rejected markup from {base_url}: {e}")
            return None

    def _tally_stylesheets(self, soup: BeautifulSoup, breakdown: ResourceBreakdown) -> None:
        for link in soup.select(STYLESHEET_LINK_SELECTOR):
            href = link.get("href")
            if href:
                breakdown.record(ResourceCategory.STYLESHEET, estimate_stylesheet_size(href))

        for style in soup.find_all("style"):
            content = style.decode_contents()
            if content:
                breakdown.record(ResourceCategory.STYLESHEET, utf8_length(content))

    def _tally_scripts(self, soup: BeautifulSoup, breakdown: ResourceBreakdown) -> None:
        for script in soup.select(SCRIPT_SRC_SELECTOR):
            src = script.get("src")
            if src:
                breakdown.record(ResourceCategory.SCRIPT, estimate_script_size(src))

        for script in soup.select(INLINE_SCRIPT_SELECTOR):
            content = script.decode_contents()
            if content.strip():
                breakdown.record(ResourceCategory.SCRIPT, utf8_length(content))

    def _tally_images(self, soup: BeautifulSoup, breakdown: ResourceBreakdown) -> None:
        for element in soup.select(IMAGE_SELECTOR):
            src = (
                element.get("src")
                or element.get("srcset")
                or extract_background_image(element.get("style"))
            )
            if src:
                breakdown.record(ResourceCategory.IMAGE, estimate_image_size(src))

    def _tally_fonts(self, soup: BeautifulSoup, breakdown: ResourceBreakdown) -> None:
        for link in soup.select(FONT_LINK_SELECTOR):
            href = link.get("href")
            if href:
                breakdown.record(ResourceCategory.FONT, estimate_font_size(href))

        for _ in soup.select(WEB_FONT_SELECTOR):
            breakdown.record(
                ResourceCategory.FONT,
                WEB_FONT_FILES_PER_STYLESHEET * WEB_FONT_FILE_SIZE,
                count=WEB_FONT_FILES_PER_STYLESHEET,
            )

    def _tally_other(self, soup: BeautifulSoup, breakdown: ResourceBreakdown) -> None:
        for element in soup.select(OTHER_SELECTOR):
            href = element.get("href") or element.get("src")
            if href:
                breakdown.record(ResourceCategory.OTHER, estimate_other_size(href))


# Singleton instance for global use
resource_estimator = ResourceEstimator()


def estimate(html: str, base_url: str) -> Tuple[ResourceBreakdown, int]:
    """Module-level shortcut for :meth:`ResourceEstimator.estimate`."""
    return resource_estimator.estimate(html, base_url)
