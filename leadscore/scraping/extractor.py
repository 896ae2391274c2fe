"""Content, metadata and company-field extraction from page markup.

Everything here is best-effort: a field that cannot be found comes back
empty or None, never as an error.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from leadscore.models import ContactInfo, PageMetadata, StructuredData

logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 10_000
MIN_CONTENT_CHARS = 100
MAX_SERVICES = 10

_CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    ".main-content",
    "#content",
    "#main",
    "body",
)

_COMPANY_NAME_SELECTORS = (
    ".company-name",
    ".brand",
    ".logo-text",
    "h1",
    ".site-title",
)

_SERVICE_SELECTORS = (
    ".services",
    ".what-we-do",
    ".offerings",
    ".products",
    ".solutions",
)

_ADDRESS_SELECTORS = ("address", "[itemprop=address]")

# Technology keywords by industry
TECH_KEYWORDS: dict[str, tuple[str, ...]] = {
    "dental": ("cbct", "scanner", "laser", "implant", "restorative", "intraoral"),
    "construction": ("crane", "excavator", "bulldozer", "loader", "backhoe"),
    "manufacturing": ("automation", "robotics", "cnc", "plc", "scada"),
    "retail": ("pos", "ecommerce", "inventory", "crm", "analytics"),
    "warehouse": ("wms", "automation", "conveyor", "racking", "forklift"),
}

_CERTIFICATION_PATTERNS = (
    re.compile(r"iso\s*\d{4}"),
    re.compile(r"certified"),
    re.compile(r"licensed"),
    re.compile(r"accredited"),
    re.compile(r"approved"),
)

_EMAIL = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PHONE = re.compile(r"(\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")
_WHITESPACE = re.compile(r"\s+")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def strip_non_content(soup: BeautifulSoup) -> None:
    """Remove script, style, and noscript tags in place."""
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()


def clean_text(text: str, limit: Optional[int] = MAX_CONTENT_CHARS) -> str:
    """Collapse whitespace runs to single spaces and truncate."""
    collapsed = _WHITESPACE.sub(" ", text).strip()
    return collapsed if limit is None else collapsed[:limit]


def _select_text(soup: BeautifulSoup, selector: str) -> str:
    return " ".join(el.get_text(" ") for el in soup.select(selector))


def _body_text(soup: BeautifulSoup) -> str:
    body = soup.body or soup
    return body.get_text(" ")


def extract_content(soup: BeautifulSoup) -> str:
    """Main readable text of the page.

    Walks the content selectors in priority order and stops at the first
    candidate with more than 100 characters. When none is that long, the
    last non-empty candidate (normally ``body``) is used.
    """
    content = ""
    for selector in _CONTENT_SELECTORS:
        candidate = clean_text(_select_text(soup, selector), limit=None)
        if not candidate:
            continue
        content = candidate
        if len(content) > MIN_CONTENT_CHARS:
            break
    return content[:MAX_CONTENT_CHARS]


def extract_metadata(soup: BeautifulSoup) -> PageMetadata:
    title = soup.title.get_text(strip=True) if soup.title else ""
    if not title:
        h1 = soup.find("h1")
        title = h1.get_text(" ", strip=True) if h1 else ""

    description = _meta_content(soup, name="description") or ""
    keywords_raw = _meta_content(soup, name="keywords") or ""
    keywords = [k.strip() for k in keywords_raw.split(",") if k.strip()]

    html_tag = soup.find("html")
    language = (html_tag.get("lang") if html_tag else None) or "en"

    last_modified = _meta_content(soup, http_equiv="last-modified")

    return PageMetadata(
        title=clean_text(title),
        description=description.strip(),
        keywords=keywords,
        language=language.strip() or "en",
        last_modified=last_modified,
    )


def _meta_content(
    soup: BeautifulSoup,
    name: Optional[str] = None,
    http_equiv: Optional[str] = None,
) -> Optional[str]:
    if name:
        attr, wanted = "name", name
    else:
        attr, wanted = "http-equiv", http_equiv
    tag = soup.find(
        "meta",
        attrs={attr: lambda v: v is not None and v.lower() == wanted},
    )
    if tag is None:
        return None
    return tag.get("content")


def extract_company_name(soup: BeautifulSoup) -> Optional[str]:
    for selector in _COMPANY_NAME_SELECTORS:
        for element in soup.select(selector):
            name = clean_text(element.get_text(" "))
            if name:
                return name
    return None


def extract_contact_info(soup: BeautifulSoup) -> ContactInfo:
    """First email and first phone number in the body, plus any address."""
    text = _body_text(soup)
    info = ContactInfo()

    email = _EMAIL.search(text)
    if email:
        info.email = email.group(0)

    phone = _PHONE.search(text)
    if phone:
        info.phone = phone.group(0).strip()

    for selector in _ADDRESS_SELECTORS:
        element = soup.select_one(selector)
        if element:
            address = clean_text(element.get_text(" "))
            if address:
                info.address = address
                break

    return info


def extract_services(soup: BeautifulSoup) -> list[str]:
    """Up to 10 unique lowercase words (longer than 3 chars) from service sections."""
    services: list[str] = []
    for selector in _SERVICE_SELECTORS:
        text = _select_text(soup, selector).lower()
        for word in text.split():
            if len(word) > 3 and word not in services:
                services.append(word)
    return services[:MAX_SERVICES]


def extract_technologies(soup: BeautifulSoup, industry: str) -> list[str]:
    keywords = TECH_KEYWORDS.get(industry.strip().lower(), ())
    text = _body_text(soup).lower()
    return [tech for tech in keywords if tech in text]


def extract_certifications(soup: BeautifulSoup) -> list[str]:
    text = _body_text(soup).lower()
    found: list[str] = []
    for pattern in _CERTIFICATION_PATTERNS:
        for match in pattern.findall(text):
            if match not in found:
                found.append(match)
    return found


def extract_structured_data(
    soup: BeautifulSoup, industry: Optional[str] = None
) -> StructuredData:
    """Company fields. Industry-specific fields only when a hint is given."""
    data = StructuredData(
        company_name=extract_company_name(soup),
        contact_info=extract_contact_info(soup),
    )
    if industry:
        data.industry = industry
        data.services = extract_services(soup)
        data.technologies = extract_technologies(soup, industry)
        data.certifications = extract_certifications(soup)
    return data


def extract_page(
    html: str, industry: Optional[str] = None
) -> tuple[str, PageMetadata, StructuredData]:
    """Parse markup once and run every extractor over it.

    Returns:
        Tuple of (content, metadata, structured data).
    """
    soup = parse_html(html)
    strip_non_content(soup)
    content = extract_content(soup)
    metadata = extract_metadata(soup)
    structured = extract_structured_data(soup, industry)
    logger.debug(
        "Extracted %d chars, title=%r, company=%r",
        len(content), metadata.title, structured.company_name,
    )
    return content, metadata, structured
