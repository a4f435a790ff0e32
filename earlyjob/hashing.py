"""Content fingerprinting and free-text normalization for job records."""

import hashlib
import re
from typing import NamedTuple, Optional


REMOTE_PATTERN = re.compile(r"remote|work from home|wfh|anywhere")
HYBRID_PATTERN = re.compile(r"hybrid")

# First match wins. Only the bare "US" is case-sensitive, "us" being an
# ordinary word.
COUNTRY_PATTERNS = [
    (re.compile(r"\bUS\b|\b(?i:usa|united states)\b|\b(?i:u\.s\.)"), "United States"),
    (re.compile(r"\b(?i:uk|united kingdom|england|scotland)\b"), "United Kingdom"),
    (re.compile(r"\bCanada\b", re.IGNORECASE), "Canada"),
    (re.compile(r"\bAustralia\b", re.IGNORECASE), "Australia"),
    (re.compile(r"\bGermany\b|\bDeutschland\b", re.IGNORECASE), "Germany"),
    (re.compile(r"\bFrance\b", re.IGNORECASE), "France"),
    (re.compile(r"\bIreland\b", re.IGNORECASE), "Ireland"),
    (re.compile(r"\bNetherlands\b", re.IGNORECASE), "Netherlands"),
    (re.compile(r"\bIndia\b", re.IGNORECASE), "India"),
]

COMPANY_SUFFIXES = {
    "inc",
    "incorporated",
    "llc",
    "ltd",
    "limited",
    "corp",
    "corporation",
    "co",
    "company",
    "gmbh",
    "plc",
}


class RemoteClassification(NamedTuple):
    is_remote: bool
    remote_type: Optional[str]


def _squash(value: Optional[str]) -> str:
    return re.sub(r"\s+", "", (value or "").lower())


def fingerprint(title: str, company_name: str, location: str) -> str:
    """Stable content hash of (title, company, location).

    Case and whitespace are ignored, so the same listing seen through two
    providers collapses to one hash.
    """
    key = "||".join(_squash(part) for part in (title, company_name, location))
    return hashlib.md5(key.encode("utf-8")).hexdigest()


def classify_location(location: Optional[str], description: Optional[str]) -> RemoteClassification:
    text = f"{location or ''} {description or ''}".lower()

    # hybrid wins over generic remote keywords
    if HYBRID_PATTERN.search(text):
        return RemoteClassification(True, "hybrid")
    if REMOTE_PATTERN.search(text):
        return RemoteClassification(True, "fully_remote")
    return RemoteClassification(False, None)


def extract_country(location: Optional[str]) -> Optional[str]:
    if not location:
        return None
    for pattern, country in COUNTRY_PATTERNS:
        if pattern.search(location):
            return country
    return None


def normalize_company_name(name: str) -> str:
    """Key used to treat "ACME", "acme Inc" and "Acme, Inc." as one company"""
    cleaned = re.sub(r"[^\w\s]", " ", (name or "").lower())
    words = cleaned.split()
    while len(words) > 1 and words[-1] in COMPANY_SUFFIXES:
        words.pop()
    return " ".join(words) or (name or "").strip().lower()
