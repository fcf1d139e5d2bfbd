"""Per-source selector profiles and generic lazy-load selector lists."""

from dataclasses import dataclass
from typing import Dict, List, Optional


# Markers checked by the pattern detector, in precedence order
INFINITE_SCROLL_MARKERS = [
    "[data-infinite-scroll]",
    "[infinite-scroll]",
    ".infinite-scroll",
    "[class*='infinite-scroll']",
    "[class*='InfiniteScroll']",
    "[data-testid*='infinite']",
]

LOAD_MORE_SELECTORS = [
    "button[data-testid*='load-more']",
    "button[class*='load-more']",
    "button[class*='loadMore']",
    "button[class*='show-more']",
    "a[class*='load-more']",
    ".load-more-button",
    ".show-more-button",
    "button:has-text('Load More')",
    "button:has-text('Show More')",
    "button:has-text('View More')",
]

# :has-text() is Playwright-only; the DOM script sees the CSS subset
LOAD_MORE_MARKERS = [s for s in LOAD_MORE_SELECTORS if ":has-text" not in s]

PAGINATION_MARKERS = [
    "nav[aria-label*='agination']",
    ".pagination",
    "[class*='pagination']",
    ".btn-group-cell a[title='Next']",
    "a[rel='next']",
]

LOADING_INDICATORS = [
    ".loading",
    ".spinner",
    ".loader",
    "[class*='skeleton']",
    "[class*='spinner']",
    "[aria-busy='true']",
]

# Attributes tried, in order, when an image's src is missing or a placeholder
LAZY_IMAGE_ATTRIBUTES = [
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-srcset",
    "srcset",
]

PLACEHOLDER_IMAGE_MARKERS = [
    "placeholder",
    "blank.gif",
    "spacer.gif",
    "transparent.gif",
    "loading.gif",
    "lazy-load",
]


@dataclass(frozen=True)
class SelectorProfile:
    """CSS selectors describing one retailer's listing markup."""

    source: str
    container: str
    card: str
    title: str
    price: str
    image: Optional[str] = "img"
    link: Optional[str] = "a[href]"

    def card_script_arg(self) -> Dict[str, object]:
        """Argument object for the EXTRACT_CARDS script."""
        return {
            "card": self.card,
            "title": self.title,
            "price": self.price,
            "image": self.image,
            "link": self.link,
            "imageAttributes": list(LAZY_IMAGE_ATTRIBUTES),
        }


GENERIC_PROFILE = SelectorProfile(
    source="generic",
    container="[class*='product-list'], [class*='search-results'], main",
    card="[data-product-id], [class*='product-card'], [class*='product-item']",
    title="[class*='title'], h2, h3",
    price="[class*='price']",
)

_PROFILES: Dict[str, SelectorProfile] = {
    "bestbuy": SelectorProfile(
        source="bestbuy",
        container=".sku-item-list, .sku-list, main",
        card=".sku-item, [data-sku-id]",
        title=".sku-title a, .sku-header a",
        price=".priceView-customer-price span, .pricing-price__regular-price",
        image="img.product-image, img",
        link=".sku-title a, .sku-header a",
    ),
    "newegg": SelectorProfile(
        source="newegg",
        container=".item-cells-wrap, .list-wrap",
        card=".item-cell, .item-container",
        title="a.item-title",
        price=".price-current",
        image="img.item-img, img.lazy-img",
        link="a.item-title",
    ),
}


def get_profile(source: str) -> SelectorProfile:
    """Return the selector profile for a source, or the generic one."""
    return _PROFILES.get(source, GENERIC_PROFILE)


def list_sources() -> List[str]:
    """Sources with a dedicated profile."""
    return sorted(_PROFILES)
