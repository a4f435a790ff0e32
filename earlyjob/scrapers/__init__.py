from .adzuna import AdzunaScraper
from .greenhouse import GreenhouseScraper
from .jsearch import JSearchScraper
from .hn_hiring import HNHiringScraper

__all__ = [
    "AdzunaScraper",
    "GreenhouseScraper",
    "JSearchScraper",
    "HNHiringScraper",
]
