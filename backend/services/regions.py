"""
Page region segmentation.

Each structural region of a listing page (header, footer, navigation, sidebar,
main content) is found by a region locator: an ordered list of strategies, each
of which looks for candidate elements in the parsed document. The first strategy
that matches anything wins. Strategies are plain callables so they can be
swapped per region in tests or for sites with unusual markup.
"""
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from bs4 import BeautifulSoup
from bs4.element import Tag

from services.postcodes import NON_VISIBLE_TAGS, collapse_whitespace

Strategy = Callable[[BeautifulSoup], List[Tag]]


class Region(str, Enum):
    MAIN_CONTENT = "MAIN_CONTENT"
    SIDEBAR = "SIDEBAR"
    NAVIGATION = "NAVIGATION"
    HEADER = "HEADER"
    FOOTER = "FOOTER"
    BODY = "BODY"


# Priority used when a postcode appears in more than one region
LOCATION_PRIORITY = (
    Region.FOOTER,
    Region.HEADER,
    Region.NAVIGATION,
    Region.SIDEBAR,
    Region.MAIN_CONTENT,
)


def first_tag(name: str) -> Strategy:
    """Match the first element with the given tag name."""
    def strategy(soup: BeautifulSoup) -> List[Tag]:
        tag = soup.find(name)
        return [tag] if tag else []
    strategy.__name__ = f"first_{name}"
    return strategy


def all_tags(name: str) -> Strategy:
    """Match every element with the given tag name."""
    def strategy(soup: BeautifulSoup) -> List[Tag]:
        return soup.find_all(name)
    strategy.__name__ = f"all_{name}"
    return strategy


def _hint_matches(tag: Tag, pattern: "re.Pattern") -> bool:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = [classes]
    if any(pattern.search(c) for c in classes):
        return True
    tag_id = tag.get("id")
    return bool(tag_id and pattern.search(tag_id))


def hinted(name: Optional[str], hint: str, first_only: bool = False) -> Strategy:
    """
    Match elements whose class or id contains one of the hint words.
    `hint` is a regex alternation such as "property|listing|detail".
    """
    pattern = re.compile(hint, re.IGNORECASE)

    def strategy(soup: BeautifulSoup) -> List[Tag]:
        def predicate(tag: Tag) -> bool:
            if name and tag.name != name:
                return False
            return _hint_matches(tag, pattern)
        if first_only:
            tag = soup.find(predicate)
            return [tag] if tag else []
        return soup.find_all(predicate)
    strategy.__name__ = f"hinted_{name or 'any'}_{hint}"
    return strategy


def combined(*strategies: Strategy) -> Strategy:
    """Concatenate the matches of several strategies into one."""
    def strategy(soup: BeautifulSoup) -> List[Tag]:
        found: List[Tag] = []
        for s in strategies:
            for tag in s(soup):
                if not any(tag is f for f in found):
                    found.append(tag)
        return found
    strategy.__name__ = "+".join(s.__name__ for s in strategies)
    return strategy


@dataclass
class RegionLocator:
    region: Region
    strategies: Sequence[Strategy]

    def locate(self, soup: BeautifulSoup) -> str:
        """Return the visible text of the first strategy that matches, else ""."""
        for strategy in self.strategies:
            tags = strategy(soup)
            if tags:
                return collapse_whitespace(" ".join(t.get_text(" ") for t in tags))
        return ""


DEFAULT_LOCATORS: Dict[Region, RegionLocator] = {
    Region.HEADER: RegionLocator(Region.HEADER, [first_tag("header")]),
    Region.FOOTER: RegionLocator(Region.FOOTER, [first_tag("footer")]),
    Region.NAVIGATION: RegionLocator(Region.NAVIGATION, [all_tags("nav")]),
    Region.SIDEBAR: RegionLocator(
        Region.SIDEBAR,
        [combined(all_tags("aside"), hinted(None, "sidebar"))],
    ),
    Region.MAIN_CONTENT: RegionLocator(
        Region.MAIN_CONTENT,
        [
            first_tag("main"),
            first_tag("article"),
            hinted("div", "property|listing|detail", first_only=True),
        ],
    ),
}


def _compact(text: str) -> str:
    return re.sub(r"\s+", "", text or "").lower()


@dataclass
class PageRegions:
    header: str = ""
    footer: str = ""
    navigation: str = ""
    sidebar: str = ""
    main_content: str = ""
    _compacted: Dict[Region, str] = field(default_factory=dict, repr=False)

    def text_for(self, region: Region) -> str:
        return {
            Region.HEADER: self.header,
            Region.FOOTER: self.footer,
            Region.NAVIGATION: self.navigation,
            Region.SIDEBAR: self.sidebar,
            Region.MAIN_CONTENT: self.main_content,
        }.get(region, "")

    def contains(self, region: Region, postcode: str) -> bool:
        """Case- and whitespace-insensitive containment of a postcode in a region."""
        if region not in self._compacted:
            self._compacted[region] = _compact(self.text_for(region))
        needle = _compact(postcode)
        return bool(needle) and needle in self._compacted[region]

    def locate(self, postcode: str) -> Region:
        """Footer → header → navigation → sidebar → main content, else BODY."""
        for region in LOCATION_PRIORITY:
            if self.contains(region, postcode):
                return region
        return Region.BODY


def parse_visible(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html or "", "html.parser")
    for tag in soup.find_all(NON_VISIBLE_TAGS):
        tag.decompose()
    return soup


def segment_page(
    html: str,
    locators: Optional[Dict[Region, RegionLocator]] = None,
) -> PageRegions:
    """
    Split a raw HTML document into its structural regions.
    Missing regions come back as empty strings; that only weakens classification.
    """
    chosen = dict(DEFAULT_LOCATORS)
    if locators:
        chosen.update(locators)
    soup = parse_visible(html)
    return PageRegions(
        header=chosen[Region.HEADER].locate(soup),
        footer=chosen[Region.FOOTER].locate(soup),
        navigation=chosen[Region.NAVIGATION].locate(soup),
        sidebar=chosen[Region.SIDEBAR].locate(soup),
        main_content=chosen[Region.MAIN_CONTENT].locate(soup),
    )
