"""
Product Reconciler.

Resolves each NormalizedItem to a catalog product through three tiers:

1. exact  - name equals the canonical name (score 100)
2. alias  - name equals an alias, or is contained in the canonical name or
            an alias (score MATCH_ALIAS_SCORE)
3. fuzzy  - best similarity across names and aliases, kept only at or above
            MATCH_FUZZY_THRESHOLD

Within a tier the highest score wins, then the smaller edit distance, then
the lexically smaller matched name, then the lower product id. Identical
catalog snapshot and query give an identical result.
"""
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional, Sequence, Set, Tuple, TypeVar

from src.catalog.schemas import CatalogProduct, FuzzyCandidate
from src.catalog.services import CatalogService
from src.config import settings
from src.extraction.schemas import NormalizedItem
from src.matching.schemas import MatchResult, MatchType
from src.matching.similarity import RatioScorer, SimilarityScorer, fold
from src.voice.exceptions import ErrorKind, ReconciliationDataError

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

PRICE_LOOKUP_FAILED = "price_lookup_failed"


class _Hit(NamedTuple):
    product: CatalogProduct
    match_type: MatchType
    score: int
    matched_name: str


async def _batched_or_per_key(
    keys: Sequence[K],
    batch: Callable[[Sequence[K]], Awaitable[Dict[K, V]]],
    single: Callable[[K], Awaitable[V]],
    operation: str,
) -> Tuple[Dict[K, V], Set[K]]:
    """
    Runs one batched catalog call; if it fails, retries key by key so a bad
    read only affects the key it belongs to.

    Returns the values found and the keys whose read failed.
    """
    if not keys:
        return {}, set()
    try:
        return await batch(keys), set()
    except ReconciliationDataError as e:
        logger.warning(f"Batched {operation} failed, retrying per item: {e}")

    found: Dict[K, V] = {}
    failed: Set[K] = set()
    for key in keys:
        try:
            found[key] = await single(key)
        except ReconciliationDataError as e:
            logger.error(f"{operation} failed for {key!r}: {e}")
            failed.add(key)
    return found, failed


class ProductReconciler:
    def __init__(
        self,
        catalog: CatalogService,
        scorer: Optional[SimilarityScorer] = None,
        alias_score: int = settings.MATCH_ALIAS_SCORE,
        fuzzy_threshold: int = settings.MATCH_FUZZY_THRESHOLD,
        fuzzy_limit: int = settings.MATCH_FUZZY_LIMIT,
    ):
        self.catalog = catalog
        self.scorer = scorer or RatioScorer()
        self.alias_score = alias_score
        self.fuzzy_threshold = fuzzy_threshold
        self.fuzzy_limit = fuzzy_limit

    async def reconcile(self, items: Sequence[NormalizedItem]) -> List[MatchResult]:
        """
        Reconciles a batch of items; the result list is aligned with `items`.

        Catalog reads: one exact/alias lookup, one fuzzy lookup for the names
        still unresolved, one current-price lookup for matched products.
        """
        if not items:
            return []

        names = list(dict.fromkeys(item.name for item in items))

        direct, direct_failed = await _batched_or_per_key(
            names,
            self.catalog.find_exact_or_alias_many,
            self.catalog.find_exact_or_alias,
            "exact/alias lookup",
        )

        matches: Dict[str, _Hit] = {}
        for name in names:
            if name in direct_failed:
                continue
            match = self._direct_match(name, direct.get(name, []))
            if match is not None:
                matches[name] = match

        unresolved = [name for name in names if name not in matches and name not in direct_failed]
        fuzzy, fuzzy_failed = await _batched_or_per_key(
            unresolved,
            lambda keys: self.catalog.find_fuzzy_many(keys, self.fuzzy_limit),
            lambda key: self.catalog.find_fuzzy(key, self.fuzzy_limit),
            "fuzzy lookup",
        )
        for name in unresolved:
            if name in fuzzy_failed:
                continue
            match = self._fuzzy_match(fuzzy.get(name, []))
            if match is not None:
                matches[name] = match

        product_ids = sorted({hit.product.id for hit in matches.values()})
        prices, price_failed = await self._current_prices(product_ids)

        failed_names = direct_failed | fuzzy_failed
        results = [
            self._resolve(item, matches.get(item.name), prices, price_failed, item.name in failed_names)
            for item in items
        ]

        tiers = ", ".join(f"{kind.value}={sum(1 for r in results if r.match_type == kind)}" for kind in MatchType)
        logger.info(f"Reconciled {len(results)} items: {tiers}")
        return results

    async def _current_prices(self, product_ids: List[int]) -> Tuple[Dict[int, Decimal], Set[int]]:
        if not product_ids:
            return {}, set()
        try:
            return await self.catalog.get_current_prices(product_ids), set()
        except ReconciliationDataError as e:
            logger.warning(f"Batched price lookup failed, retrying per product: {e}")

        prices: Dict[int, Decimal] = {}
        failed: Set[int] = set()
        for product_id in product_ids:
            try:
                price = await self.catalog.get_current_price(product_id)
            except ReconciliationDataError as e:
                logger.error(f"Price lookup failed for product_id={product_id}: {e}")
                failed.add(product_id)
                continue
            if price is not None:
                prices[product_id] = price
        return prices, failed

    def _direct_match(self, name: str, products: List[CatalogProduct]) -> Optional[_Hit]:
        query = fold(name)
        if not query:
            return None

        exact = [product for product in products if fold(product.name) == query]
        if exact:
            # Equal canonical names: lowest id wins
            product = min(exact, key=lambda p: p.id)
            return _Hit(product, MatchType.EXACT, 100, product.name)

        best: Optional[Tuple[Tuple[int, str, int], CatalogProduct, str]] = None
        for product in products:
            for candidate_name in (product.name, *product.aliases):
                folded = fold(candidate_name)
                if query not in folded:
                    continue
                key = (self.scorer.distance(query, folded), folded, product.id)
                if best is None or key < best[0]:
                    best = (key, product, candidate_name)
        if best is None:
            return None
        _, product, matched_name = best
        return _Hit(product, MatchType.ALIAS, self.alias_score, matched_name)

    def _fuzzy_match(self, candidates: List[FuzzyCandidate]) -> Optional[_Hit]:
        eligible = [candidate for candidate in candidates if candidate.score >= self.fuzzy_threshold]
        if not eligible:
            return None
        best = min(
            eligible,
            key=lambda c: (-c.score, c.distance, fold(c.matched_name), c.product.id),
        )
        return _Hit(best.product, MatchType.FUZZY, best.score, best.matched_name)

    @staticmethod
    def _resolve(
        item: NormalizedItem,
        hit: Optional[_Hit],
        prices: Dict[int, Decimal],
        price_failed: Set[int],
        lookup_failed: bool,
    ) -> MatchResult:
        if hit is None:
            return MatchResult(
                item=item,
                match_type=MatchType.NONE,
                match_score=0,
                resolved_rate=None,
                needs_price=item.rate is None,
                error=ErrorKind.RECONCILIATION_DATA.value if lookup_failed else None,
            )

        product = hit.product
        price = prices.get(product.id)
        resolved_rate = price if price is not None else item.rate
        return MatchResult(
            item=item,
            product_id=product.id,
            product_name=product.name,
            default_unit=product.default_unit,
            match_type=hit.match_type,
            match_score=max(0, min(100, hit.score)),
            matched_name=hit.matched_name,
            resolved_rate=resolved_rate,
            needs_price=resolved_rate is None,
            error=PRICE_LOOKUP_FAILED if product.id in price_failed else None,
        )
