import logging
from datetime import datetime
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from earlyjob.errors import FetchError
from earlyjob.models import JobPost
from earlyjob.scrapers.base import BaseScraper, extract_tech_stack

logger = logging.getLogger(__name__)


class JSearchJob(BaseModel):
    job_id: str
    job_title: str = "Unknown"
    employer_name: str = "Unknown"
    employer_website: Optional[str] = None
    job_city: Optional[str] = None
    job_state: Optional[str] = None
    job_country: Optional[str] = None
    job_description: Optional[str] = ""
    job_is_remote: Optional[bool] = False
    job_apply_link: Optional[str] = ""
    job_employment_type: Optional[str] = None
    job_min_salary: Optional[float] = None
    job_max_salary: Optional[float] = None
    job_salary_currency: Optional[str] = None
    job_posted_at_datetime_utc: Optional[datetime] = None


class JSearchResponse(BaseModel):
    status: str = "OK"
    data: list[dict[str, Any]] = []


class JSearchScraper(BaseScraper):
    """
    JSearch API (via RapidAPI), which aggregates Indeed, Glassdoor, LinkedIn
    and other job boards. The key goes in request headers.
    """

    name = "jsearch"
    API_URL = "https://jsearch.p.rapidapi.com/search"

    def __init__(
        self,
        api_key: str = "",
        query: str = "software engineer",
        remote: bool = False,
        page: int = 1,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.api_key = api_key
        self.query = query
        self.remote = remote
        self.page = page

    def _build_request(self, query: str = None, remote: bool = None) -> tuple[str, dict]:
        """Build API URL and params for JSearch"""
        query = query or self.query
        remote = remote if remote is not None else self.remote

        params = {
            "query": query,
            "page": str(self.page),
            "num_pages": "1",
        }
        if remote:
            params["remote_jobs_only"] = "true"

        return self.API_URL, params

    def _get_headers(self) -> dict:
        return {
            "X-RapidAPI-Key": self.api_key,
            "X-RapidAPI-Host": "jsearch.p.rapidapi.com",
        }

    def _location(self, item: JSearchJob) -> str:
        parts = [p for p in (item.job_city, item.job_state) if p]
        if parts:
            return ", ".join(parts)
        if item.job_is_remote:
            return "Remote"
        return item.job_country or "Remote"

    def _to_job(self, item: JSearchJob) -> JobPost:
        location = self._location(item)
        job = self._make_job(
            title=item.job_title,
            company_name=item.employer_name,
            location=location,
            description=item.job_description or "",
            source_url=item.job_apply_link or "",
            salary_min=item.job_min_salary,
            salary_max=item.job_max_salary,
            salary_currency=item.job_salary_currency,
            job_type=item.job_employment_type,
            external_id=item.job_id,
            posted_date=item.job_posted_at_datetime_utc,
            tech_stack=extract_tech_stack(item.job_description or "") or None,
        )
        # the API flag is authoritative when the text says nothing
        if item.job_is_remote and not job.is_remote:
            job.is_remote = True
            job.remote_type = "fully_remote"
        return job

    def _parse_response(self, payload) -> list[JobPost]:
        try:
            data = JSearchResponse.model_validate(payload)
        except ValidationError as e:
            raise FetchError(self.name, f"unexpected response shape: {e}") from e
        jobs = []
        for raw in data.data:
            try:
                item = JSearchJob.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping malformed JSearch result %s: %s", raw.get("job_id"), e)
                continue
            jobs.append(self._to_job(item))
        return jobs

    def scrape(self) -> list[JobPost]:
        if not self.api_key:
            raise FetchError(self.name, "RAPIDAPI_KEY not set in config/.env")

        url, params = self._build_request()
        try:
            response = self.client.get(url, params=params, headers=self._get_headers())
        except httpx.HTTPError as e:
            raise FetchError(self.name, f"request to {url} failed: {e}") from e

        if response.status_code in (401, 403):
            if "not subscribed" in response.text.lower():
                raise FetchError(self.name, "not subscribed to the JSearch API")
            raise FetchError(
                self.name, f"API authentication failed (HTTP {response.status_code})"
            )
        if response.status_code != 200:
            raise FetchError(self.name, f"HTTP {response.status_code} from {url}")

        jobs = self._parse_response(self._json(response))
        logger.info("Fetched %d jobs from JSearch", len(jobs))
        return jobs
