import pytest
import respx
from httpx import Response

API_URL = "https://api.adzuna.com/v1/api/jobs/us/search/1"

SAMPLE_ADZUNA_RESPONSE = {
    "count": 2,
    "mean": 100000,
    "results": [
        {
            "id": "4123",
            "title": "Senior Python Developer",
            "description": "Hybrid role in our Austin office",
            "location": {"display_name": "Austin, Travis County", "area": ["US", "Texas"]},
            "company": {"display_name": "Acme Corp"},
            "salary_min": 120000,
            "salary_max": 150000,
            "category": {"label": "IT Jobs", "tag": "it-jobs"},
            "contract_time": "full_time",
            "redirect_url": "https://www.adzuna.com/details/4123",
            "created": "2024-02-20T10:00:00Z",
            "adref": "ignored",
        },
        {
            "id": 4124,
            "title": "Support Engineer",
            "location": {"display_name": "Remote, USA"},
            "company": {"display_name": "Globex"},
            "redirect_url": "https://www.adzuna.com/details/4124",
        },
    ],
}


@pytest.fixture
def scraper():
    from earlyjob.scrapers.adzuna import AdzunaScraper

    return AdzunaScraper(app_id="id", app_key="key")


class TestAdzunaScraper:
    def test_builds_request_with_credentials(self, scraper):
        url, params = scraper._build_request()
        assert url == API_URL
        assert params["app_id"] == "id"
        assert params["app_key"] == "key"
        assert params["results_per_page"] == 50

    @respx.mock
    def test_maps_results_to_canonical_records(self, scraper):
        from earlyjob.hashing import fingerprint

        route = respx.get(API_URL).mock(return_value=Response(200, json=SAMPLE_ADZUNA_RESPONSE))

        jobs = scraper.scrape()

        assert route.called
        assert route.calls[0].request.url.params["app_key"] == "key"
        assert len(jobs) == 2

        first = jobs[0]
        assert first.source_type == "adzuna"
        assert first.external_id == "4123"
        assert first.department == "IT Jobs"
        assert first.job_type == "full_time"
        assert first.salary_currency == "USD"
        assert first.remote_type == "hybrid"
        assert first.country is None
        assert first.posted_date.year == 2024
        assert first.dedup_hash == fingerprint("Senior Python Developer", "Acme Corp", "Austin, Travis County")

        second = jobs[1]
        assert second.external_id == "4124"
        assert second.salary_currency is None
        assert second.is_remote == True
        assert second.country == "United States"

    def test_missing_credentials_is_fetch_error(self):
        from earlyjob.errors import FetchError
        from earlyjob.scrapers.adzuna import AdzunaScraper

        with pytest.raises(FetchError):
            AdzunaScraper().scrape()

    @respx.mock
    def test_http_error_is_fetch_error(self, scraper):
        from earlyjob.errors import FetchError

        respx.get(API_URL).mock(return_value=Response(401, json={"exception": "AUTH_FAIL"}))
        with pytest.raises(FetchError) as exc:
            scraper.scrape()
        assert exc.value.source == "adzuna"

    @respx.mock
    def test_unexpected_shape_is_fetch_error(self, scraper):
        from earlyjob.errors import FetchError

        respx.get(API_URL).mock(return_value=Response(200, json={"results": "unavailable"}))
        with pytest.raises(FetchError):
            scraper.scrape()

    @respx.mock
    def test_malformed_result_is_skipped(self, scraper):
        good = SAMPLE_ADZUNA_RESPONSE["results"][0]
        bad = {"id": "4125", "title": "No redirect url"}
        respx.get(API_URL).mock(return_value=Response(200, json={"results": [good, bad]}))

        jobs = scraper.scrape()

        assert [job.external_id for job in jobs] == ["4123"]
