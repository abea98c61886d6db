"""Contact-signal heuristics over a rendered page snapshot.

Coordinates and address are each resolved by an ordered cascade of strategies.
A strategy takes a :class:`ParsedPage` and returns a value or ``None``; the first
non-empty value wins. Phones and social links are collected from the whole page.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Callable
from urllib.parse import parse_qs, unquote, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup, Tag

from contact_indexer.mappers.geo import parse_coords
from contact_indexer.mappers.text_heuristics import (
    DEFAULT_REGION,
    canonicalize_phone,
    extract_address_from_text,
    extract_phone_numbers,
    looks_like_address,
    scan_phones,
)
from contact_indexer.schemas.contact import Coords, PageSignals, PageSnapshot, SocialLinks

logger = logging.getLogger(__name__)

_GOOGLE_MAPS_MARKERS = ("google.com/maps", "maps.google.")
_OSM_MARKER = "openstreetmap.org"

_NUM = r"(-?\d+(?:\.\d+)?)"
_PLACE_PIN_RE = re.compile(rf"!3d{_NUM}!4d{_NUM}")  # lat, lng
_EMBED_CENTER_RE = re.compile(rf"!2d{_NUM}!3d{_NUM}")  # lng, lat
_AT_PAIR_RE = re.compile(rf"[@!]{_NUM},{_NUM}")
_COORD_PAIR_RE = re.compile(rf"^\s*{_NUM}\s*,\s*{_NUM}\s*$")

ADDRESS_TEXT_MIN = 16
ADDRESS_TEXT_MAX = 299

ADDRESS_SELECTORS = (
    '[class*="address" i]',
    '[class*="location" i]',
    '[id*="address" i]',
    '[id*="location" i]',
    "[data-location]",
    '[itemprop="address"]',
)

FOOTER_WINDOW = 3

SOCIAL_DOMAINS = {
    "facebook": ("facebook.com",),
    "instagram": ("instagram.com",),
    "linkedin": ("linkedin.com",),
    "twitter": ("twitter.com", "x.com"),
    "tiktok": ("tiktok.com",),
}

FALLBACK_KEYWORDS = (
    "contact",
    "location",
    "find us",
    "where",
    "directions",
    "about",
    "terms",
    "legal",
    "imprint",
    "impressum",
)


@dataclass
class ParsedPage:
    url: str
    soup: BeautifulSoup
    text: str = ""
    _hrefs: list[str] | None = field(default=None, repr=False)

    @classmethod
    def from_snapshot(cls, snapshot: PageSnapshot) -> "ParsedPage":
        return cls(
            url=snapshot.url,
            soup=BeautifulSoup(snapshot.html or "", "html.parser"),
            text=snapshot.text or "",
        )

    def absolute(self, href: str) -> str:
        return urljoin(self.url, href.strip())

    def hrefs(self) -> list[str]:
        """Absolute hrefs of every anchor, in document order."""
        if self._hrefs is None:
            self._hrefs = [self.absolute(a["href"]) for a in self.soup.find_all("a", href=True)]
        return self._hrefs

    def iframe_srcs(self) -> list[str]:
        return [self.absolute(f["src"]) for f in self.soup.find_all("iframe", src=True)]

    @cached_property
    def json_ld(self) -> list[Any]:
        blocks: list[Any] = []
        for script in self.soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                blocks.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.debug("Skipping malformed JSON-LD block on %s", self.url)
        return blocks


Strategy = Callable[[ParsedPage], Any]


def first_match(strategies: tuple[Strategy, ...], page: ParsedPage) -> Any:
    """Run strategies in order and return the first non-empty result."""
    for strategy in strategies:
        try:
            value = strategy(page)
        except Exception:
            logger.warning("%s failed on %s", strategy.__name__, page.url, exc_info=True)
            continue
        if value:
            logger.debug("%s matched on %s", strategy.__name__, page.url)
            return value
    return None


def find_first(value: Any, finder: Callable[[Any], Any]) -> Any:
    """Depth-first walk over a JSON-like tree; first non-None ``finder`` result."""
    found = finder(value)
    if found is not None:
        return found
    if isinstance(value, dict):
        children = value.values()
    elif isinstance(value, list):
        children = value
    else:
        return None
    for child in children:
        found = find_first(child, finder)
        if found is not None:
            return found
    return None


# --- JSON-LD finders ---


def geo_in_node(node: Any) -> Coords | None:
    if not isinstance(node, dict):
        return None
    geo = node.get("geo")
    if isinstance(geo, dict) and geo.get("latitude") and geo.get("longitude"):
        return parse_coords(geo["latitude"], geo["longitude"])
    if node.get("latitude") and node.get("longitude"):
        return parse_coords(node["latitude"], node["longitude"])
    return None


def _address_part(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("name")
    if isinstance(value, list):
        value = " ".join(str(v) for v in value if v)
    return str(value).strip() if value else ""


def address_in_node(node: Any) -> str | None:
    if not isinstance(node, dict):
        return None
    types = node.get("@type")
    if isinstance(types, str):
        types = [types]
    if isinstance(types, list) and "PostalAddress" in types:
        parts = [
            _address_part(node.get(key))
            for key in ("streetAddress", "addressLocality", "addressRegion", "postalCode", "addressCountry")
        ]
        parts = [p for p in parts if p]
        if parts:
            return ", ".join(parts)
    address = node.get("address")
    if isinstance(address, str) and address.strip():
        return address.strip()
    return None


# --- Map URL helpers ---


def _is_google_maps(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in _GOOGLE_MAPS_MARKERS)


def coords_from_map_url(url: str) -> Coords | None:
    for pattern, lat_first in (
        (_PLACE_PIN_RE, True),
        (_EMBED_CENTER_RE, False),
        (_AT_PAIR_RE, True),
    ):
        match = pattern.search(url)
        if match:
            first, second = match.groups()
            coords = parse_coords(first, second) if lat_first else parse_coords(second, first)
            if coords:
                return coords
    return None


def place_query_from_map_url(url: str) -> str | None:
    values = parse_qs(urlsplit(url).query).get("q")
    if not values:
        return None
    place = values[0].strip()
    if not place or _COORD_PAIR_RE.match(place):
        return None
    return place


def _google_map_urls(page: ParsedPage) -> list[str]:
    iframes = [src for src in page.iframe_srcs() if _is_google_maps(src)]
    links = [href for href in page.hrefs() if _is_google_maps(href)]
    return iframes + links


# --- Coordinate strategies ---


def coords_from_map_iframes(page: ParsedPage) -> Coords | None:
    for src in page.iframe_srcs():
        if _is_google_maps(src):
            coords = coords_from_map_url(src)
            if coords:
                return coords
    return None


def coords_from_map_links(page: ParsedPage) -> Coords | None:
    for href in page.hrefs():
        if _is_google_maps(href):
            coords = coords_from_map_url(href)
            if coords:
                return coords
    return None


def coords_from_json_ld(page: ParsedPage) -> Coords | None:
    for block in page.json_ld:
        coords = find_first(block, geo_in_node)
        if coords:
            return coords
    return None


def coords_from_geo_meta(page: ParsedPage) -> Coords | None:
    meta = page.soup.find("meta", attrs={"name": "geo.position"})
    if meta is None:
        return None
    content = (meta.get("content") or "").split(";")
    if len(content) < 2:
        return None
    return parse_coords(content[0].strip(), content[1].strip())


def coords_from_osm_iframe(page: ParsedPage) -> Coords | None:
    for src in page.iframe_srcs():
        if _OSM_MARKER not in src.lower():
            continue
        params = parse_qs(urlsplit(src).query)
        if "mlat" in params and "mlon" in params:
            coords = parse_coords(params["mlat"][0], params["mlon"][0])
            if coords:
                return coords
    return None


COORDS_STRATEGIES: tuple[Strategy, ...] = (
    coords_from_map_iframes,
    coords_from_map_links,
    coords_from_json_ld,
    coords_from_geo_meta,
    coords_from_osm_iframe,
)


# --- Address strategies ---


def _element_lines(el: Tag) -> list[str]:
    return [line.strip() for line in el.get_text("\n").splitlines() if line.strip()]


def _within_bounds(text: str) -> bool:
    return ADDRESS_TEXT_MIN <= len(text) <= ADDRESS_TEXT_MAX


def address_from_json_ld(page: ParsedPage) -> str | None:
    for block in page.json_ld:
        address = find_first(block, address_in_node)
        if address:
            return address
    return None


def address_from_address_tags(page: ParsedPage) -> str | None:
    for tag in page.soup.find_all("address"):
        lines = _element_lines(tag)
        if lines and _within_bounds("\n".join(lines)):
            return ", ".join(lines)
    return None


def address_from_selectors(page: ParsedPage) -> str | None:
    for selector in ADDRESS_SELECTORS:
        for el in page.soup.select(selector):
            text = "\n".join(_element_lines(el))
            if _within_bounds(text) and looks_like_address(text):
                return extract_address_from_text(text) or " ".join(text.split())
    return None


def address_from_footer(page: ParsedPage) -> str | None:
    footer = page.soup.find("footer")
    if footer is None:
        return None
    lines = _element_lines(footer)
    for i in range(len(lines)):
        window = " ".join(lines[i : i + FOOTER_WINDOW])
        if looks_like_address(window):
            return window
    return None


def address_from_map_query(page: ParsedPage) -> str | None:
    for url in _google_map_urls(page):
        place = place_query_from_map_url(url)
        if place:
            return place
    return None


ADDRESS_STRATEGIES: tuple[Strategy, ...] = (
    address_from_json_ld,
    address_from_address_tags,
    address_from_selectors,
    address_from_footer,
    address_from_map_query,
)


# --- Phones, socials, fallback links ---


def extract_page_phones(page: ParsedPage, address: str | None, region: str = DEFAULT_REGION) -> list[str]:
    """tel: targets first, then body-text matches, then address and full-text phones."""
    candidates: list[str] = []
    for a in page.soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith("tel:"):
            phone = canonicalize_phone(unquote(href[4:]), region)
            if phone:
                candidates.append(phone)

    candidates.extend(scan_phones(" ".join(page.text.split()), region))

    candidates.extend(extract_phone_numbers(address, region))
    candidates.extend(extract_phone_numbers(page.text, region))
    return list(dict.fromkeys(candidates))


def _host(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()


def extract_socials(page: ParsedPage) -> SocialLinks:
    found: dict[str, str] = {}
    for href in page.hrefs():
        host = _host(href)
        if not host:
            continue
        for platform, domains in SOCIAL_DOMAINS.items():
            if platform in found:
                continue
            if any(host == d or host.endswith("." + d) for d in domains):
                found[platform] = href
                break
    return SocialLinks(**found)


def _bare_host(url: str) -> str:
    host = _host(url)
    return host[4:] if host.startswith("www.") else host


def find_fallback_links(page: ParsedPage, limit: int = 7) -> list[str]:
    """Same-host contact/location-like links, in document order."""
    base_host = _bare_host(page.url)
    current = urlunsplit(urlsplit(page.url)._replace(fragment="")).rstrip("/")
    links: list[str] = []
    for a in page.soup.find_all("a", href=True):
        parts = urlsplit(page.absolute(a["href"]))
        if parts.scheme not in ("http", "https") or _bare_host(parts.geturl()) != base_host:
            continue
        tail = urlunsplit(("", "", parts.path, parts.query, "")).lower()
        text = a.get_text(" ", strip=True).lower()
        if not any(k in tail or k in text for k in FALLBACK_KEYWORDS):
            continue
        target = urlunsplit(parts._replace(fragment=""))
        if target.rstrip("/") == current or target in links:
            continue
        links.append(target)
        if len(links) >= limit:
            break
    return links


def _attempt(func: Callable[..., Any], default: Any, *args: Any) -> Any:
    try:
        return func(*args)
    except Exception:
        logger.warning("%s failed", func.__name__, exc_info=True)
        return default


def extract_page_signals(snapshot: PageSnapshot, region: str = DEFAULT_REGION) -> PageSignals:
    page = ParsedPage.from_snapshot(snapshot)

    coords = first_match(COORDS_STRATEGIES, page)
    address = first_match(ADDRESS_STRATEGIES, page) or extract_address_from_text(page.text)
    phones = _attempt(extract_page_phones, [], page, address, region)
    socials = _attempt(extract_socials, SocialLinks(), page)

    return PageSignals(phones=phones, socials=socials, address=address, coords=coords)
