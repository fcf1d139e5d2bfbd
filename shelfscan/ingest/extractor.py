"""Product record extraction from a converged listing page."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from shelfscan import metrics
from shelfscan.ingest import probes
from shelfscan.ingest.base import ExtractionError, ProductRecord, RenderSurface
from shelfscan.ingest.profiles import (
    LAZY_IMAGE_ATTRIBUTES,
    PLACEHOLDER_IMAGE_MARKERS,
    SelectorProfile,
)

logger = logging.getLogger(__name__)

MIN_TITLE_LENGTH = 5  # Titles must be strictly longer than this
MISSING_PRICE = "N/A"


class Extractor:
    """Scans every listing card once and builds deduplicated records."""

    def __init__(self, min_title_length: int = MIN_TITLE_LENGTH):
        self.min_title_length = min_title_length

    async def extract(
        self,
        surface: RenderSurface,
        brand: str,
        profile: SelectorProfile,
    ) -> List[ProductRecord]:
        """
        Extract records from all cards currently in the DOM.

        Dedup is by exact title and only within this call; the first card
        with a given title wins. A card that fails to parse is skipped.

        Args:
            surface: Render surface holding the converged page
            brand: Brand label stamped on every record
            profile: Selectors for the page's card markup

        Returns:
            Records with 1-based sequence ids in DOM order
        """
        cards = await surface.evaluate(probes.EXTRACT_CARDS, profile.card_script_arg())
        if not isinstance(cards, list):
            logger.warning(f"Card script returned {type(cards).__name__}, expected list")
            return []

        captured_at = datetime.now(timezone.utc)
        records: List[ProductRecord] = []
        seen_titles: Set[str] = set()

        for index, card in enumerate(cards):
            try:
                title = self._read_title(card)
                if len(title) <= self.min_title_length:
                    metrics.cards_skipped_total.labels(reason="short_title").inc()
                    continue
                if title in seen_titles:
                    metrics.cards_skipped_total.labels(reason="duplicate").inc()
                    continue

                record = ProductRecord(
                    sequence_id=len(records) + 1,
                    brand=brand,
                    title=title,
                    price=self._read_price(card),
                    image_url=self.resolve_image(card.get("image")),
                    product_url=card.get("href") or None,
                    captured_at=captured_at,
                )
            except ExtractionError as e:
                metrics.cards_skipped_total.labels(reason="error").inc()
                logger.debug(f"Skipping card {index}: {e}")
                continue

            seen_titles.add(title)
            records.append(record)

        metrics.records_extracted_total.labels(source=profile.source).inc(len(records))
        logger.debug(f"Extracted {len(records)} records from {len(cards)} cards")
        return records

    @staticmethod
    def _read_title(card: Any) -> str:
        if not isinstance(card, dict):
            raise ExtractionError(f"card is {type(card).__name__}, not an object")
        title = card.get("title")
        if title is None:
            return ""
        if not isinstance(title, str):
            raise ExtractionError(f"title is {type(title).__name__}")
        return " ".join(title.split())

    @staticmethod
    def _read_price(card: Dict[str, Any]) -> str:
        price = card.get("price")
        if price is None:
            return MISSING_PRICE
        if not isinstance(price, str):
            raise ExtractionError(f"price is {type(price).__name__}")
        price = " ".join(price.split())
        return price or MISSING_PRICE

    @staticmethod
    def resolve_image(image: Optional[Dict[str, Any]]) -> Optional[str]:
        """
        Pick a usable image URL for a card.

        The direct src is used unless it is missing, a data: URI or a known
        placeholder; then the lazy-load attributes are tried in order.
        srcset-style values contribute their first URL.
        """
        if not image:
            return None
        if not isinstance(image, dict):
            raise ExtractionError(f"image is {type(image).__name__}")

        candidates = [image.get("src")] + [image.get(name) for name in LAZY_IMAGE_ATTRIBUTES]
        for value in candidates:
            url = _first_srcset_url(value)
            if url and not _is_placeholder(url):
                return url
        return None


def _first_srcset_url(value: Any) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    first = value.split(",")[0].strip()
    return first.split()[0] if first else None


def _is_placeholder(url: str) -> bool:
    lowered = url.lower()
    if lowered.startswith("data:"):
        return True
    return any(marker in lowered for marker in PLACEHOLDER_IMAGE_MARKERS)
