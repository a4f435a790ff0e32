from earlyjob.hashing import (
    classify_location,
    extract_country,
    fingerprint,
    normalize_company_name,
)


class TestFingerprint:
    def test_is_deterministic(self):
        assert fingerprint("Engineer", "Acme", "NYC") == fingerprint("Engineer", "Acme", "NYC")

    def test_ignores_case_and_whitespace(self):
        assert fingerprint("Engineer", "Acme", "NYC") == fingerprint(" engineer ", "ACME", "nyc")
        assert fingerprint("Senior Engineer", "Acme", "New York") == fingerprint(
            "senior  engineer", "acme", "NewYork"
        )

    def test_different_listings_differ(self):
        assert fingerprint("Engineer", "Acme", "NYC") != fingerprint("Engineer", "Acme", "SF")
        assert fingerprint("Engineer", "Acme", "NYC") != fingerprint("Designer", "Acme", "NYC")

    def test_fixed_length_hex(self):
        value = fingerprint("Engineer", "Acme", "")
        assert len(value) == 32
        int(value, 16)


class TestClassifyLocation:
    def test_hybrid_wins_over_remote(self):
        result = classify_location("Hybrid - Remote OK", "")
        assert result.is_remote == True
        assert result.remote_type == "hybrid"

    def test_onsite(self):
        result = classify_location("Austin, TX", "in-office role")
        assert result.is_remote == False
        assert result.remote_type is None

    def test_remote_keywords(self):
        assert classify_location("Anywhere", "").remote_type == "fully_remote"
        assert classify_location("Berlin", "Work from home possible").remote_type == "fully_remote"
        assert classify_location("", "WFH friendly").is_remote == True

    def test_handles_missing_values(self):
        assert classify_location(None, None) == (False, None)


class TestExtractCountry:
    def test_matches_names_and_abbreviations(self):
        assert extract_country("New York, NY, USA") == "United States"
        assert extract_country("Remote - US") == "United States"
        assert extract_country("London, UK") == "United Kingdom"
        assert extract_country("Toronto, Canada") == "Canada"
        assert extract_country("Berlin, germany") == "Germany"

    def test_none_when_unknown(self):
        assert extract_country("Austin, TX") is None
        assert extract_country("") is None
        assert extract_country(None) is None

    def test_lowercase_us_is_not_a_country(self):
        assert extract_country("Come work with us") is None

    def test_lowercase_abbreviations(self):
        assert extract_country("Remote, usa") == "United States"
        assert extract_country("Remote (u.s. only)") == "United States"
        assert extract_country("Manchester, uk") == "United Kingdom"


class TestNormalizeCompanyName:
    def test_collapses_case_and_suffixes(self):
        assert normalize_company_name("Acme") == "acme"
        assert normalize_company_name("ACME") == "acme"
        assert normalize_company_name("acme Inc") == "acme"
        assert normalize_company_name("Acme, Inc.") == "acme"
        assert normalize_company_name("Acme Widgets LLC") == "acme widgets"

    def test_keeps_name_made_of_suffix(self):
        assert normalize_company_name("Company") == "company"
