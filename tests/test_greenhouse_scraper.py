import pytest
import respx
from httpx import Response

FEED_URL = "https://boards.greenhouse.io/embed/job_board/rss/acme"

SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Acme Jobs</title>
    <item>
      <title><![CDATA[Backend Engineer]]></title>
      <link>https://boards.greenhouse.io/acme/jobs/4455667</link>
      <description><![CDATA[<p>Build <b>APIs</b> in Python.</p>]]></description>
      <pubDate>Mon, 19 Feb 2024 12:00:00 +0000</pubDate>
      <location><![CDATA[New York, NY, United States]]></location>
      <department><![CDATA[Engineering]]></department>
    </item>
    <item>
      <title>Designer &amp; Researcher</title>
      <link>https://boards.greenhouse.io/acme/jobs/4455668</link>
    </item>
    <item>
      <title><![CDATA[No link, dropped]]></title>
    </item>
  </channel>
</rss>
"""


@pytest.fixture
def feed():
    from earlyjob.scrapers.greenhouse import GreenhouseFeed

    return GreenhouseFeed(url=FEED_URL, company="Acme")


class TestParseRss:
    def test_extracts_items(self):
        from earlyjob.scrapers.greenhouse import parse_rss

        items = parse_rss(SAMPLE_RSS)
        assert len(items) == 2
        assert items[0].title == "Backend Engineer"
        assert items[0].department == "Engineering"
        assert items[0].location == "New York, NY, United States"
        assert items[0].pub_date == "Mon, 19 Feb 2024 12:00:00 +0000"

    def test_tolerates_missing_optional_tags(self):
        from earlyjob.scrapers.greenhouse import parse_rss

        item = parse_rss(SAMPLE_RSS)[1]
        assert item.title == "Designer & Researcher"
        assert item.description == ""
        assert item.location is None
        assert item.pub_date is None

    def test_garbage_input(self):
        from earlyjob.scrapers.greenhouse import parse_rss

        assert parse_rss("<html>not a feed") == []
        assert parse_rss("") == []

    def test_bad_pub_date(self):
        from earlyjob.scrapers.greenhouse import parse_pub_date

        assert parse_pub_date("yesterday-ish") is None
        assert parse_pub_date(None) is None


class TestGreenhouseScraper:
    @respx.mock
    def test_scrape_maps_items(self, feed):
        from earlyjob.scrapers.greenhouse import GreenhouseScraper

        respx.get(FEED_URL).mock(return_value=Response(200, text=SAMPLE_RSS))
        jobs = GreenhouseScraper([feed]).scrape()

        assert len(jobs) == 2
        first = jobs[0]
        assert first.source_type == "greenhouse"
        assert first.company_name == "Acme"
        assert first.external_id == "4455667"
        assert first.description == "Acme - Build APIs in Python."
        assert first.country == "United States"
        assert first.is_remote == False
        assert first.posted_date.day == 19

        # location defaults to Remote when the feed omits it
        assert jobs[1].location == "Remote"
        assert jobs[1].remote_type == "fully_remote"

    @respx.mock
    def test_one_failing_feed_is_skipped(self, feed):
        from earlyjob.scrapers.greenhouse import GreenhouseFeed, GreenhouseScraper

        broken = GreenhouseFeed(url="https://boards.greenhouse.io/embed/job_board/rss/broken", company="Broken")
        respx.get(broken.url).mock(return_value=Response(500))
        respx.get(FEED_URL).mock(return_value=Response(200, text=SAMPLE_RSS))

        jobs = GreenhouseScraper([broken, feed]).scrape()
        assert len(jobs) == 2

    @respx.mock
    def test_all_feeds_failing_is_fetch_error(self, feed):
        from earlyjob.errors import FetchError
        from earlyjob.scrapers.greenhouse import GreenhouseScraper

        respx.get(FEED_URL).mock(return_value=Response(503))
        with pytest.raises(FetchError):
            GreenhouseScraper([feed]).scrape()


CAREERS_PAGE_RSS = """<rss><channel>
<item><title>Backend Engineer</title><link>https://stripe.com/jobs/search?gh_jid=111</link></item>
<item><title>Frontend Engineer</title><link>https://stripe.com/jobs/search?gh_jid=222</link></item>
</channel></rss>
"""


class TestJobIdFromLink:
    def test_board_link_uses_last_segment(self):
        from earlyjob.scrapers.greenhouse import job_id_from_link

        assert job_id_from_link("https://boards.greenhouse.io/acme/jobs/4455667") == "4455667"
        assert job_id_from_link("https://boards.greenhouse.io/acme/jobs/4455667/?src=rss") == "4455667"

    def test_careers_page_link_uses_gh_jid(self):
        from earlyjob.scrapers.greenhouse import job_id_from_link

        assert job_id_from_link("https://stripe.com/jobs/search?gh_jid=111") == "111"

    @respx.mock
    def test_careers_page_listings_are_all_inserted(self, store):
        from earlyjob.dedup import insert_jobs
        from earlyjob.scrapers.greenhouse import GreenhouseFeed, GreenhouseScraper

        feed = GreenhouseFeed(url="https://stripe.com/jobs/feed.rss", company="Stripe")
        respx.get(feed.url).mock(return_value=Response(200, text=CAREERS_PAGE_RSS))

        jobs = GreenhouseScraper([feed]).scrape()
        assert [job.external_id for job in jobs] == ["111", "222"]

        result = insert_jobs(store, jobs)
        assert result.inserted == 2
        assert result.skipped == 0
