"""Defensive extraction helpers shared by source scrapers.

Source payloads are untrusted, loosely-typed documents: every lookup has a
default and nothing assumes a key is present.
"""

import json
import logging
from collections.abc import Iterator
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from jobscout.core.schemas import RawPosting

logger = logging.getLogger(__name__)


def dig(data: Any, *path: str | int, default: Any = None) -> Any:
    """Walk nested dicts/lists, returning default on any missing step."""
    current = data
    for key in path:
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        else:
            if not isinstance(current, dict) or key not in current:
                return default
            current = current[key]
    return default if current is None else current


def first_str(*values: Any) -> str | None:
    """Return the first value that is a non-blank string (or number), stripped."""
    for value in values:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def strip_html(html: str | None) -> str | None:
    """Plain text from an HTML fragment, whitespace collapsed."""
    if not html:
        return None
    text = BeautifulSoup(html, "html.parser").get_text(" ")
    text = " ".join(text.split())
    return text or None


def absolute_url(href: str | None, base: str) -> str | None:
    """Resolve a possibly relative href against base."""
    if not href or not href.strip():
        return None
    return urljoin(base, href.strip())


def load_json_script(soup: BeautifulSoup, selector: str) -> Any:
    """Parse the JSON body of the first <script> matching selector, or None."""
    el = soup.select_one(selector)
    if el is None:
        return None
    body = el.string or el.get_text()
    if not body or not body.strip():
        return None
    return json.loads(body)


def extract_js_object(html: str, marker: str) -> Any:
    """Decode the JSON object literal assigned right after ``marker``.

    e.g. ``window.__INITIAL_STATE__ = {...};``. Returns None when the marker
    is absent; raises ValueError when the payload is not valid JSON.
    """
    idx = html.find(marker)
    if idx == -1:
        return None
    start = html.find("{", idx + len(marker))
    if start == -1:
        return None
    obj, _ = json.JSONDecoder().raw_decode(html, start)
    return obj


def iter_json_ld(soup: BeautifulSoup) -> Iterator[dict[str, Any]]:
    """Yield every JSON-LD node on the page, flattening @graph and ItemList."""
    for el in soup.select('script[type="application/ld+json"]'):
        body = el.string or el.get_text()
        if not body:
            continue
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            logger.debug("Ignoring invalid JSON-LD block")
            continue
        yield from _flatten_json_ld(data)


def _flatten_json_ld(data: Any) -> Iterator[dict[str, Any]]:
    if isinstance(data, list):
        for item in data:
            yield from _flatten_json_ld(item)
        return
    if not isinstance(data, dict):
        return
    if "@graph" in data:
        yield from _flatten_json_ld(data["@graph"])
        return
    if data.get("@type") == "ItemList":
        for element in data.get("itemListElement") or []:
            yield from _flatten_json_ld(dig(element, "item", default=element))
        return
    yield data


def json_ld_postings(soup: BeautifulSoup, base_url: str) -> list[RawPosting]:
    """Decode all schema.org JobPosting nodes on the page."""
    results: list[RawPosting] = []
    for node in iter_json_ld(soup):
        if node.get("@type") != "JobPosting":
            continue
        raw = json_ld_to_raw(node, base_url)
        if raw is not None:
            results.append(raw)
    return results


def json_ld_to_raw(node: dict[str, Any], base_url: str) -> RawPosting | None:
    """Map one JobPosting node to a RawPosting. Needs at least title + org."""
    title = first_str(node.get("title"))
    org = node.get("hiringOrganization")
    company = first_str(dig(org, "name")) if isinstance(org, dict) else first_str(org)
    if not title or not company:
        return None

    remote = str(node.get("jobLocationType", "")).upper() == "TELECOMMUTE"
    location = _json_ld_location(node.get("jobLocation")) or ("Remote" if remote else None)

    description_html = first_str(node.get("description"))
    employment = node.get("employmentType")
    if isinstance(employment, list):
        employment = employment[0] if employment else None
    url = absolute_url(first_str(node.get("url")), base_url)
    identifier = node.get("identifier")

    return RawPosting(
        external_id=first_str(dig(identifier, "value"), identifier if not isinstance(identifier, dict) else None),
        title=title,
        company=company,
        location=location,
        is_remote=remote,
        salary_text=_json_ld_salary(node.get("baseSalary")),
        employment_type=first_str(employment).lower() if first_str(employment) else None,
        description=strip_html(description_html),
        description_html=description_html,
        posted_at_raw=first_str(node.get("datePosted")),
        apply_url=url,
        source_url=url,
    )


def _json_ld_location(job_location: Any) -> str | None:
    if isinstance(job_location, list):
        job_location = job_location[0] if job_location else None
    address = dig(job_location, "address")
    if isinstance(address, str):
        return first_str(address)
    locality = first_str(dig(address, "addressLocality"))
    region = first_str(dig(address, "addressRegion"))
    country = first_str(dig(address, "addressCountry"), dig(address, "addressCountry", "name"))
    parts = [p for p in (locality, region) if p]
    if parts:
        return ", ".join(parts)
    return country


def _json_ld_salary(base_salary: Any) -> str | None:
    value = dig(base_salary, "value")
    if isinstance(value, (int, float)):
        low = high = value
        unit = dig(base_salary, "unitText", default="")
    else:
        low = dig(value, "minValue", default=dig(value, "value"))
        high = dig(value, "maxValue", default=low)
        unit = dig(value, "unitText", default=dig(base_salary, "unitText", default=""))
    if low is None:
        return None
    suffix = "/hr" if str(unit).upper() == "HOUR" else "/yr"
    if high is None or high == low:
        return f"${low}{suffix}"
    return f"${low}-${high}{suffix}"


def find_cards(soup: BeautifulSoup | Tag, selectors: tuple[str, ...]) -> list[Tag]:
    """Return elements for the first selector that matches anything."""
    for selector in selectors:
        cards = soup.select(selector)
        if cards:
            logger.debug("Found %d cards with selector '%s'", len(cards), selector)
            return cards
    return []


def text_of(el: Tag, selectors: tuple[str, ...]) -> str:
    """Try selectors in order, return first non-empty text or ""."""
    for selector in selectors:
        found = el.select_one(selector)
        if found is not None:
            text = " ".join(found.get_text(" ").split())
            if text:
                return text
    return ""


def attr_of(el: Tag, selectors: tuple[str, ...], attr: str) -> str:
    """Try selectors in order, return the first non-empty attribute value or ""."""
    for selector in selectors:
        found = el.select_one(selector)
        if found is not None:
            value = found.get(attr)
            if isinstance(value, list):
                value = " ".join(value)
            if value and value.strip():
                return value.strip()
    return ""
