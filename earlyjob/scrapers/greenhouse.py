"""Greenhouse embedded job-board RSS feeds.

Feeds are parsed with a handful of tag regexes rather than an XML parser:
they are frequently malformed and every optional tag may be missing.
"""

import html
import logging
import re
from datetime import datetime
from email.utils import parsedate_to_datetime
from typing import Optional

import httpx
from pydantic import BaseModel

from earlyjob.errors import FetchError
from earlyjob.models import JobPost
from earlyjob.scrapers.base import BaseScraper, html_to_text

logger = logging.getLogger(__name__)

ITEM_RE = re.compile(r"<item\b[^>]*>(.*?)</item>", re.DOTALL | re.IGNORECASE)


def _tag_re(tag: str) -> re.Pattern:
    return re.compile(
        rf"<{tag}\b[^>]*>\s*(?:<!\[CDATA\[(.*?)\]\]>|(.*?))\s*</{tag}>",
        re.DOTALL | re.IGNORECASE,
    )


TAG_RES = {
    tag: _tag_re(tag)
    for tag in ("title", "link", "description", "pubDate", "location", "department")
}


class GreenhouseFeed(BaseModel):
    url: str
    company: str


class GreenhouseItem(BaseModel):
    title: str
    link: str
    description: str = ""
    pub_date: Optional[str] = None
    location: Optional[str] = None
    department: Optional[str] = None


def _tag(item_xml: str, tag: str) -> str:
    match = TAG_RES[tag].search(item_xml)
    if not match:
        return ""
    value = match.group(1) if match.group(1) is not None else match.group(2)
    return html.unescape(value or "").strip()


def parse_rss(xml: str) -> list[GreenhouseItem]:
    """Extract <item> entries; items without a title or link are dropped"""
    items = []
    for match in ITEM_RE.finditer(xml or ""):
        item_xml = match.group(1)
        title = _tag(item_xml, "title")
        link = _tag(item_xml, "link")
        if not title or not link:
            continue
        items.append(
            GreenhouseItem(
                title=title,
                link=link,
                description=_tag(item_xml, "description"),
                pub_date=_tag(item_xml, "pubDate") or None,
                location=_tag(item_xml, "location") or None,
                department=_tag(item_xml, "department") or None,
            )
        )
    return items


def job_id_from_link(link: str) -> Optional[str]:
    """Greenhouse job id: `gh_jid` on custom careers pages, else the last path segment"""
    try:
        url = httpx.URL(link)
    except httpx.InvalidURL:
        return None
    gh_jid = url.params.get("gh_jid")
    if gh_jid:
        return gh_jid
    return url.path.rstrip("/").split("/")[-1] or None


def parse_pub_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug("Could not parse pubDate: %r", value)
        return None


class GreenhouseScraper(BaseScraper):
    name = "greenhouse"

    def __init__(
        self,
        feeds: list[GreenhouseFeed],
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.feeds = feeds

    def _to_job(self, item: GreenhouseItem, feed: GreenhouseFeed) -> JobPost:
        location = item.location or "Remote"
        description = html_to_text(item.description)
        external_id = job_id_from_link(item.link)
        return self._make_job(
            title=item.title,
            company_name=feed.company,
            location=location,
            description=f"{feed.company} - {description}",
            source_url=item.link,
            department=item.department,
            external_id=external_id,
            posted_date=parse_pub_date(item.pub_date),
        )

    def scrape(self) -> list[JobPost]:
        jobs = []
        errors = []
        for feed in self.feeds:
            try:
                response = self._get(feed.url)
            except FetchError as e:
                logger.warning("Greenhouse feed %s failed: %s", feed.company, e.message)
                errors.append(f"{feed.company}: {e.message}")
                continue

            items = parse_rss(response.text)
            logger.info("Fetched %d jobs from Greenhouse (%s)", len(items), feed.company)
            jobs.extend(self._to_job(item, feed) for item in items)

        if self.feeds and len(errors) == len(self.feeds):
            raise FetchError(self.name, "; ".join(errors))
        return jobs
