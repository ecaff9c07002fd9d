"""
Job posting pages.
Finds the posting inside a job board page and fetches postings by URL.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from .exceptions import ServiceUnavailable
from .extractor import extract_keywords
from .models import JobDescription


# URL fragments of pages worth offering the extraction button on
JOB_SITES = [
    "linkedin.com",
    "indeed.com",
    "naukri.com",
    "monster.com",
    "glassdoor.com",
    "dice.com",
    "ziprecruiter.com",
    "builtin.com",
    "greenhouse.io",
    "lever.co",
    "careers",
]

# (site, title selector, company selector, description selector), tried in order
SITE_SELECTORS = [
    ("linkedin", "h2.show-more-less-html__title, h1.top-card-layout__title",
     'a[href*="company"]', ".show-more-less-html__markup"),
    ("indeed", "h1.jobsearch-JobInfoHeader-title",
     "[data-testid='company-name'], [data-testid='inlineHeader-companyName']", "#jobDescriptionText"),
    ("naukri", ".jd-header .naukri-text, h1.jd-header-title", None, ".job-desc"),
    ("glassdoor", '[data-test="jobTitle"]', '[data-test="companyName"]', '[data-test="JobDescription"]'),
]

# Posting body on sites whose layout is known from the URL
SITE_CONTENT_SELECTORS = {
    "linkedin.com": ".description__text",
    "greenhouse.io": "#content",
    "lever.co": ".section-wrapper",
}

# Generic containers for the posting body, most specific first
CONTENT_SELECTORS = [
    ".job-description",
    "#job-description",
    "main",
    "article",
    '[role="main"]',
]

MAX_TEXT_LENGTH = 15000
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


@dataclass
class JobPosting:
    """A fetched posting: readable page text plus the structured job when recognised."""
    url: str
    text: str
    job: Optional[JobDescription] = None


def is_job_site(url: Optional[str]) -> bool:
    """Whether a URL looks like a job board or careers page."""
    if not url:
        return False
    url = url.lower()
    return any(site in url for site in JOB_SITES)


def _text(soup: BeautifulSoup, selector: Optional[str]) -> str:
    if not selector:
        return ""
    element = soup.select_one(selector)
    return element.get_text(separator="\n", strip=True) if element else ""


def extract_job_from_html(html: str, url: Optional[str] = None) -> Optional[JobDescription]:
    """Structured job from a known job board page, or None when no layout matches."""
    soup = BeautifulSoup(html, "html.parser")

    for site, title_sel, company_sel, desc_sel in SITE_SELECTORS:
        title = _text(soup, title_sel)
        description = _text(soup, desc_sel)
        if not (title and description):
            continue

        logger.debug(f"Matched {site} page layout")
        keywords = extract_keywords(description)
        return JobDescription(
            title=title,
            company=_text(soup, company_sel) or "Unknown",
            description=description,
            requirements=keywords.requirements,
            skills=keywords.skills,
            url=url,
            extracted_at=datetime.utcnow(),
        )

    return None


def page_text(html: str, url: Optional[str] = None) -> str:
    """Readable text of a page, preferring the posting body over navigation."""
    soup = BeautifulSoup(html, "html.parser")

    for element in soup(["script", "style", "nav", "footer", "header", "noscript"]):
        element.decompose()

    selectors = [sel for site, sel in SITE_CONTENT_SELECTORS.items() if url and site in url]

    job_text = ""
    for selector in selectors + CONTENT_SELECTORS:
        content = soup.select_one(selector)
        if content:
            job_text = content.get_text(separator="\n", strip=True)
            if job_text:
                break

    if not job_text:
        body = soup.find("body") or soup
        job_text = body.get_text(separator="\n", strip=True)

    lines: List[str] = [line.strip() for line in job_text.split("\n") if line.strip()]
    job_text = "\n".join(lines)

    if len(job_text) > MAX_TEXT_LENGTH:
        job_text = job_text[:MAX_TEXT_LENGTH] + "\n\n[Truncated...]"

    return job_text


async def fetch_job_posting(url: str, timeout: float = 30.0) -> JobPosting:
    """Download a posting page. Network and HTTP errors raise ServiceUnavailable."""
    try:
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
            response = await client.get(url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Failed to fetch {url}: {e}")
        raise ServiceUnavailable(f"Failed to fetch URL: {e}", cause=e) from e

    html = response.text
    return JobPosting(url=url, text=page_text(html, url), job=extract_job_from_html(html, url))
