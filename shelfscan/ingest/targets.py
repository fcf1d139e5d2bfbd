"""Static scrape target catalog: brand x retailer, per product category."""

from typing import Dict, List, Optional
from urllib.parse import quote_plus

from shelfscan.ingest.base import ScrapeTarget

# Search URL template per retailer; {query} is URL-encoded
SOURCE_URL_TEMPLATES: Dict[str, str] = {
    "bestbuy": "https://www.bestbuy.com/site/searchpage.jsp?st={query}",
    "newegg": "https://www.newegg.com/p/pl?d={query}",
}

# category -> (search keyword, brands)
CATALOG: Dict[str, tuple] = {
    "phones": ("smartphone", ["Samsung", "Apple", "Google"]),
    "laptops": ("laptop", ["ASUS", "Lenovo"]),
    "GPUs": ("graphics card", ["Intel", "AMD"]),
}

CATEGORIES = list(CATALOG)


def build_targets(
    catalog: Optional[Dict[str, tuple]] = None,
    sources: Optional[Dict[str, str]] = None,
) -> List[ScrapeTarget]:
    """
    Enumerate every (category, brand, source) combination.

    Args:
        catalog: category -> (keyword, brands); defaults to CATALOG
        sources: source -> URL template; defaults to SOURCE_URL_TEMPLATES

    Returns:
        Targets in declaration order (category, then brand, then source)
    """
    catalog = catalog if catalog is not None else CATALOG
    sources = sources if sources is not None else SOURCE_URL_TEMPLATES

    targets = []
    for category, (keyword, brands) in catalog.items():
        for brand in brands:
            query = quote_plus(f"{brand} {keyword}")
            for source, template in sources.items():
                targets.append(ScrapeTarget(
                    url=template.format(query=query),
                    brand=brand,
                    source=source,
                    category=category,
                ))
    return targets
