import logging
from typing import Optional

from pydantic import BaseModel, ValidationError

from earlyjob.errors import FetchError
from earlyjob.models import JobPost
from earlyjob.scrapers.base import BaseScraper, extract_tech_stack, html_to_text

logger = logging.getLogger(__name__)


class HNHit(BaseModel):
    objectID: str
    title: str = ""


class HNSearchResponse(BaseModel):
    hits: list[HNHit] = []


class HNComment(BaseModel):
    id: int
    text: Optional[str] = None
    author: Optional[str] = None


class HNThread(BaseModel):
    id: int
    children: list[HNComment] = []


class HNHiringScraper(BaseScraper):
    """Monthly "Ask HN: Who is hiring?" thread via the Algolia API (no auth)"""

    name = "hn_hiring"
    ALGOLIA_SEARCH = "https://hn.algolia.com/api/v1/search_by_date"
    ALGOLIA_ITEM = "https://hn.algolia.com/api/v1/items"

    def get_latest_thread_id(self) -> str:
        """Find the most recent 'Who is hiring' thread posted by whoishiring bot"""
        params = {"tags": "story,ask_hn,author_whoishiring", "hitsPerPage": 5}
        response = self._get(self.ALGOLIA_SEARCH, params=params)
        try:
            hits = HNSearchResponse.model_validate(self._json(response)).hits
        except ValidationError as e:
            raise FetchError(self.name, f"unexpected search response: {e}") from e
        # Skip "Who wants to be hired?" threads
        for hit in hits:
            if "Who is hiring?" in hit.title:
                return hit.objectID
        raise FetchError(self.name, "no hiring thread found")

    def _segments(self, text: str) -> list[str]:
        first_line = text.strip().split("\n")[0]
        return [part.strip() for part in first_line.split("|")]

    def parse_company_name(self, text: str) -> str:
        """Extract company name (first segment before |)"""
        name = self._segments(text)[0]
        if len(name) > 100:
            name = name[:100].rsplit(" ", 1)[0]  # Don't cut mid-word
        return name or "Unknown"

    def parse_job_title(self, text: str) -> str:
        """Extract job title (second segment)"""
        segments = self._segments(text)
        title = segments[1] if len(segments) >= 2 else ""
        if len(title) > 100:
            title = title[:100].rsplit(" ", 1)[0]
        return title or "Software Engineer"

    def parse_location(self, text: str) -> str:
        segments = self._segments(text)
        return segments[2] if len(segments) >= 3 else ""

    def parse_comment(self, comment: HNComment) -> Optional[JobPost]:
        """Parse a single HN comment into a JobPost"""
        if not comment.text or len(comment.text) < 50:
            return None

        # the header line before the first paragraph holds "Company | Role | Location"
        header_html, _, body_html = comment.text.partition("<p>")
        header = html_to_text(header_html)
        description = f"{header}\n{html_to_text(body_html)}".strip()

        return self._make_job(
            title=self.parse_job_title(header),
            company_name=self.parse_company_name(header),
            location=self.parse_location(header),
            description=description,
            source_url=f"https://news.ycombinator.com/item?id={comment.id}",
            external_id=f"hn-{comment.id}",
            tech_stack=extract_tech_stack(description) or None,
        )

    def scrape(self) -> list[JobPost]:
        """Fetch and parse all jobs from latest hiring thread"""
        thread_id = self.get_latest_thread_id()

        response = self._get(f"{self.ALGOLIA_ITEM}/{thread_id}")
        try:
            thread = HNThread.model_validate(self._json(response))
        except ValidationError as e:
            raise FetchError(self.name, f"unexpected thread response: {e}") from e

        jobs = []
        for comment in thread.children:
            job = self.parse_comment(comment)
            if job:
                jobs.append(job)

        logger.info("Parsed %d jobs from HN thread %s", len(jobs), thread_id)
        return jobs
