import pytest


@pytest.fixture
def pref():
    from earlyjob.models import UserPreference

    def _make(**fields):
        return UserPreference(user_id=fields.pop("user_id", "u1"), **fields)

    return _make


class TestKeywordFilter:
    def test_empty_keywords_pass(self, make_job, pref):
        from earlyjob.matcher import passes_keyword_filter

        assert passes_keyword_filter(make_job(), pref()) == True

    def test_case_insensitive_substring_in_title_or_description(self, make_job, pref):
        from earlyjob.matcher import passes_keyword_filter

        assert passes_keyword_filter(make_job(), pref(keywords=["BACKEND"])) == True
        assert passes_keyword_filter(make_job(), pref(keywords=["postgres"])) == True
        assert passes_keyword_filter(make_job(), pref(keywords=["rust", "golang"])) == False


class TestRemoteFilter:
    def test_remote_only(self, make_job, pref):
        from earlyjob.matcher import passes_remote_filter

        onsite = make_job(is_remote=False, remote_type=None)
        assert passes_remote_filter(onsite, pref(remote_only=True)) == False
        assert passes_remote_filter(make_job(), pref(remote_only=True)) == True
        assert passes_remote_filter(onsite, pref()) == True


class TestSalaryFilter:
    def test_low_salary_excluded(self, make_job, pref):
        from earlyjob.matcher import matches

        job = make_job(salary_max=40000)
        assert matches(job, pref(salary_min=60000)) == False

    def test_missing_salary_still_eligible(self, make_job, pref):
        from earlyjob.matcher import matches

        assert matches(make_job(), pref(salary_min=60000)) == True

    def test_salary_at_minimum_passes(self, make_job, pref):
        from earlyjob.matcher import passes_salary_filter

        assert passes_salary_filter(make_job(salary_max=60000), pref(salary_min=60000)) == True


class TestAllFiltersRequired:
    def test_conjunction(self, make_job, pref):
        from earlyjob.matcher import matches

        job = make_job(salary_max=150000)
        assert matches(job, pref(keywords=["python"], remote_only=True, salary_min=100000)) == True
        assert matches(job, pref(keywords=["java "], remote_only=True, salary_min=100000)) == False


class TestPreferenceMatcher:
    def test_creates_alerts_for_matches(self, store, make_job, clock, fixed_now):
        from earlyjob.dedup import insert_jobs
        from earlyjob.matcher import PreferenceMatcher
        from earlyjob.models import UserPreference

        store.save_preferences(UserPreference(user_id="python-fan", keywords=["python"]))
        store.save_preferences(UserPreference(user_id="rich", salary_min=200000))
        store.save_preferences(UserPreference(user_id="rustacean", keywords=["rust"]))

        result = insert_jobs(
            store,
            [
                make_job(salary_max=120000),
                make_job(title="Data Engineer", external_id="2", description="Spark", salary_max=250000),
            ],
        )

        alerts = PreferenceMatcher(store, clock=clock).match(result.inserted_ids)

        by_user = {}
        for alert in alerts:
            by_user.setdefault(alert.user_id, []).append(alert)
        assert len(by_user["python-fan"]) == 1
        assert len(by_user["rich"]) == 1
        assert "rustacean" not in by_user

        alert = by_user["python-fan"][0]
        assert alert.alert_type == "job_opportunity"
        assert alert.company_id is not None
        assert "Backend Engineer" in alert.message
        assert "Remote" in alert.message
        assert alert.sent_at == fixed_now
        assert len(store.find_alerts_for_user("python-fan")) == 1

    def test_alerts_inserted_in_one_batch(self, store, make_job):
        from unittest.mock import patch
        from earlyjob.dedup import insert_jobs
        from earlyjob.matcher import PreferenceMatcher
        from earlyjob.models import UserPreference

        store.save_preferences(UserPreference(user_id="u1", remote_only=True))
        store.save_preferences(UserPreference(user_id="u2", remote_only=True))
        ids = insert_jobs(store, [make_job(), make_job(title="SRE", external_id="2")]).inserted_ids

        with patch.object(store, "insert_alerts", wraps=store.insert_alerts) as spy:
            alerts = PreferenceMatcher(store).match(ids)

        assert len(alerts) == 4
        spy.assert_called_once()

    def test_no_jobs_no_alerts(self, store):
        from earlyjob.matcher import PreferenceMatcher

        assert PreferenceMatcher(store).match([]) == []
