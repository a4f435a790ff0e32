import logging
from datetime import datetime
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ValidationError

from earlyjob.errors import FetchError
from earlyjob.models import JobPost
from earlyjob.scrapers.base import BaseScraper

logger = logging.getLogger(__name__)

CURRENCY_BY_COUNTRY = {
    "us": "USD",
    "gb": "GBP",
    "ca": "CAD",
    "au": "AUD",
    "de": "EUR",
    "fr": "EUR",
    "nl": "EUR",
    "in": "INR",
}


class AdzunaLocation(BaseModel):
    display_name: str = ""
    area: list[str] = []


class AdzunaCompany(BaseModel):
    display_name: str = "Unknown"


class AdzunaCategory(BaseModel):
    label: Optional[str] = None


class AdzunaJob(BaseModel):
    id: Union[str, int]
    title: str
    description: str = ""
    location: AdzunaLocation = AdzunaLocation()
    company: AdzunaCompany = AdzunaCompany()
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    category: Optional[AdzunaCategory] = None
    contract_time: Optional[str] = None
    redirect_url: str
    created: Optional[datetime] = None


class AdzunaResponse(BaseModel):
    results: list[dict[str, Any]] = []
    count: int = 0


class AdzunaScraper(BaseScraper):
    """Adzuna job search API; credentials go in the query string"""

    name = "adzuna"
    API_URL = "https://api.adzuna.com/v1/api/jobs/{country}/search/{page}"

    def __init__(
        self,
        app_id: str = "",
        app_key: str = "",
        country: str = "us",
        results_per_page: int = 50,
        what: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.app_id = app_id
        self.app_key = app_key
        self.country = country.lower()
        self.results_per_page = results_per_page
        self.what = what

    def _build_request(self, page: int = 1) -> tuple[str, dict]:
        params = {
            "app_id": self.app_id,
            "app_key": self.app_key,
            "results_per_page": self.results_per_page,
            "content-type": "application/json",
        }
        if self.what:
            params["what"] = self.what
        return self.API_URL.format(country=self.country, page=page), params

    def _to_job(self, item: AdzunaJob) -> JobPost:
        has_salary = item.salary_min is not None or item.salary_max is not None
        return self._make_job(
            title=item.title,
            company_name=item.company.display_name,
            location=item.location.display_name,
            description=item.description,
            source_url=item.redirect_url,
            department=item.category.label if item.category else None,
            salary_min=item.salary_min,
            salary_max=item.salary_max,
            salary_currency=CURRENCY_BY_COUNTRY.get(self.country) if has_salary else None,
            job_type=item.contract_time,
            external_id=str(item.id),
            posted_date=item.created,
        )

    def scrape(self) -> list[JobPost]:
        if not self.app_id or not self.app_key:
            raise FetchError(self.name, "ADZUNA_APP_ID / ADZUNA_APP_KEY not configured")

        url, params = self._build_request()
        response = self._get(url, params=params)
        try:
            data = AdzunaResponse.model_validate(self._json(response))
        except ValidationError as e:
            raise FetchError(self.name, f"unexpected response shape: {e}") from e

        jobs = []
        for raw in data.results:
            try:
                item = AdzunaJob.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping malformed Adzuna result %s: %s", raw.get("id"), e)
                continue
            jobs.append(self._to_job(item))

        logger.info("Fetched %d jobs from Adzuna", len(jobs))
        return jobs
