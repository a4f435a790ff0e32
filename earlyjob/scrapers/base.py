import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from earlyjob.errors import FetchError
from earlyjob.hashing import classify_location, extract_country, fingerprint
from earlyjob.models import JobPost

logger = logging.getLogger(__name__)

# Common tech keywords to extract from descriptions
TECH_KEYWORDS = [
    "python", "javascript", "typescript", "java", "c++", "c#", "go", "golang",
    "rust", "ruby", "php", "swift", "kotlin", "scala",
    "react", "angular", "vue", "next.js", "node.js", "nodejs",
    "django", "flask", "fastapi", "spring", "rails",
    "aws", "azure", "gcp", "kubernetes", "k8s", "docker", "terraform",
    "postgresql", "postgres", "mysql", "mongodb", "redis", "elasticsearch",
    "graphql", "machine learning", "llm", "pytorch", "tensorflow",
]


def html_to_text(html: Optional[str]) -> str:
    if not html:
        return ""
    soup = BeautifulSoup(html, "html.parser")
    return soup.get_text(separator=" ", strip=True)


def extract_tech_stack(text: str) -> list[str]:
    text_lower = text.lower()
    found = []
    for tech in TECH_KEYWORDS:
        # Use word boundary matching for short terms
        if len(tech) <= 3:
            if re.search(rf"(?<![\w]){re.escape(tech)}(?![\w])", text_lower):
                found.append(tech)
        elif tech in text_lower:
            found.append(tech)
    return found


class BaseScraper(ABC):
    """One upstream provider.

    `name` doubles as the job's source_type and the rotation api_name.
    Scrapers return in-memory records and never write to the store.
    """

    name: str = ""

    def __init__(self, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    @abstractmethod
    def scrape(self) -> list[JobPost]:
        """Fetch and normalize job posts, raising FetchError on failure"""
        pass

    def _get(self, url: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.get(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(self.name, f"HTTP {e.response.status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise FetchError(self.name, f"request to {url} failed: {e}") from e
        return response

    def _json(self, response: httpx.Response):
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(self.name, f"invalid JSON: {e}") from e

    def _make_job(
        self,
        title: str,
        company_name: str,
        location: str,
        description: str,
        source_url: str,
        **fields,
    ) -> JobPost:
        """Build a canonical record, deriving remote/country info and the dedup hash"""
        remote = classify_location(location, description)
        return JobPost(
            title=title,
            company_name=company_name,
            location=location,
            description=description,
            source_type=self.name,
            source_url=source_url,
            country=extract_country(location),
            is_remote=remote.is_remote,
            remote_type=remote.remote_type,
            dedup_hash=fingerprint(title, company_name, location),
            **fields,
        )
