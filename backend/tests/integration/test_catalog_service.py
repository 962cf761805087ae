"""
Integration tests for CatalogService against an in-memory SQLite database.
"""
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from src.catalog.models import PriceRecord
from src.catalog.services import CatalogService
from src.extraction.schemas import NormalizedItem
from src.extraction.units import CanonicalUnit
from src.matching.schemas import MatchType
from src.matching.services import ProductReconciler
from src.voice.exceptions import ReconciliationDataError

pytestmark = pytest.mark.integration


@pytest.fixture
def catalog(test_db_session) -> CatalogService:
    return CatalogService(test_db_session)


class TestExactOrAlias:

    @pytest.mark.parametrize(
        "query,expected",
        [
            ("Aloo", ["Aloo"]),
            ("ALOO", ["Aloo"]),
            ("आलू", ["Aloo"]),
            ("batata", ["Aloo"]),
            ("प्याज", ["Pyaz"]),
            ("oo", ["Aloo", "Doodh"]),
            ("sabun", []),
        ],
    )
    async def test_find_exact_or_alias(self, catalog, seeded_catalog, query, expected):
        products = await catalog.find_exact_or_alias(query)

        assert [p.name for p in products] == expected

    async def test_aliases_are_loaded(self, catalog, seeded_catalog):
        [aloo] = await catalog.find_exact_or_alias("aloo")

        assert aloo.id == seeded_catalog["aloo"].id
        assert aloo.aliases == sorted(["आलू", "batata"])
        assert aloo.default_unit == "kg"

    async def test_batched_lookup(self, catalog, seeded_catalog):
        found = await catalog.find_exact_or_alias_many(["aloo", "Pyaz", "sabun", "   "])

        assert [p.name for p in found["aloo"]] == ["Aloo"]
        assert [p.name for p in found["Pyaz"]] == ["Pyaz"]
        assert found["sabun"] == []
        assert found["   "] == []

    async def test_like_wildcards_are_literal(self, catalog, seeded_catalog):
        assert await catalog.find_exact_or_alias("%") == []
        assert await catalog.find_exact_or_alias("_") == []


class TestFuzzy:

    async def test_ranked_best_first(self, catalog, seeded_catalog):
        candidates = await catalog.find_fuzzy("Alu", limit=3)

        assert len(candidates) == 3
        best = candidates[0]
        assert best.product.name == "Aloo"
        assert best.score == 67
        assert best.matched_name == "Aloo"
        scores = [c.score for c in candidates]
        assert scores == sorted(scores, reverse=True)

    async def test_batched_fuzzy(self, catalog, seeded_catalog):
        found = await catalog.find_fuzzy_many(["Alu", "Doodh"], limit=1)

        assert found["Alu"][0].product.name == "Aloo"
        assert found["Doodh"][0].product.name == "Doodh"
        assert found["Doodh"][0].score == 100


class TestPrices:

    async def test_latest_effective_date_wins(self, catalog, seeded_catalog):
        assert await catalog.get_current_price(seeded_catalog["aloo"].id) == Decimal("25.00")

    async def test_same_date_latest_write_wins(self, catalog, seeded_catalog, test_db_session):
        pyaz = seeded_catalog["pyaz"]
        test_db_session.add(PriceRecord(product_id=pyaz.id, price=Decimal("32.00"), effective_date=date(2025, 1, 15)))
        await test_db_session.commit()

        assert await catalog.get_current_price(pyaz.id) == Decimal("32.00")

    async def test_batched_prices(self, catalog, seeded_catalog):
        ids = [seeded_catalog[name].id for name in ("aloo", "pyaz", "chawal", "doodh")]

        prices = await catalog.get_current_prices(ids)

        assert prices == {
            seeded_catalog["aloo"].id: Decimal("25.00"),
            seeded_catalog["pyaz"].id: Decimal("30.00"),
            seeded_catalog["doodh"].id: Decimal("60.00"),
        }

    async def test_product_without_price(self, catalog, seeded_catalog):
        assert await catalog.get_current_price(seeded_catalog["chawal"].id) is None


class TestReadFailures:

    async def test_database_error_becomes_reconciliation_error(self):
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("connection lost")))
        session.rollback = AsyncMock()
        catalog = CatalogService(session)

        with pytest.raises(ReconciliationDataError):
            await catalog.find_exact_or_alias("aloo")
        with pytest.raises(ReconciliationDataError):
            await catalog.get_current_prices([1])
        assert session.rollback.await_count == 2


class TestReconcilerAgainstDatabase:

    async def test_hindi_alias_resolves_with_current_price(self, catalog, seeded_catalog):
        reconciler = ProductReconciler(catalog)
        item = NormalizedItem(name="आलू", quantity=Decimal("2"), unit=CanonicalUnit.KG)

        [result] = await reconciler.reconcile([item])

        assert result.match_type == MatchType.ALIAS
        assert result.match_score == 90
        assert result.product_id == seeded_catalog["aloo"].id
        assert result.resolved_rate == Decimal("25.00")

    async def test_mixed_batch(self, catalog, seeded_catalog):
        reconciler = ProductReconciler(catalog)
        items = [
            NormalizedItem(name="Aloo", quantity=Decimal("5"), unit=CanonicalUnit.KG, rate=Decimal("40")),
            NormalizedItem(name="Alu", quantity=Decimal("1"), unit=CanonicalUnit.KG),
            NormalizedItem(name="Sabun", quantity=Decimal("3")),
            NormalizedItem(name="Chawal", quantity=Decimal("10"), unit=CanonicalUnit.KG),
        ]

        results = await reconciler.reconcile(items)

        assert [r.match_type for r in results] == [
            MatchType.EXACT,
            MatchType.FUZZY,
            MatchType.NONE,
            MatchType.EXACT,
        ]
        assert results[0].resolved_rate == Decimal("25.00")
        assert results[2].needs_price
        assert results[3].needs_price
