"""Tests for recipe and manual usage deduction."""

import pytest
from decimal import Decimal

from sqlalchemy import select

from cafestock.core.exceptions import InsufficientStockError, NotFoundError, ValidationError
from cafestock.models.transaction import Transaction, TransactionType
from cafestock.services.recipe_deduction import RecipeDeductionService
from cafestock.services.recipe_service import RecipeService
from cafestock.services.stock_ledger import StockLedger


@pytest.fixture
def latte_setup(db_session, manager, make_item):
    """Latte = 0.018 kg beans + 0.2 L milk per serving."""
    beans = make_item(name="Espresso Beans", current="10", minimum="1", maximum="20")
    milk = make_item(name="Whole Milk", current="5", minimum="1", maximum="10")
    recipe = RecipeService(db_session).create_recipe(
        "Latte",
        [
            {"item_id": beans.id, "quantity_required": Decimal("0.018")},
            {"item_id": milk.id, "quantity_required": Decimal("0.2")},
        ],
        manager,
    )
    return {"beans": beans, "milk": milk, "recipe": recipe}


def _usage_rows(db_session):
    stmt = select(Transaction).where(Transaction.transaction_type == TransactionType.USAGE.value)
    return list(db_session.scalars(stmt))


def _stock(db_session, item):
    return StockLedger(db_session).get_item(item.id).current_stock


@pytest.fixture
def two_part_recipe(db_session, manager, make_item):
    """Recipe needing 2 of A and 1 of B per serving."""
    def _make(a_stock, b_stock):
        a = make_item(name="A", current=a_stock, minimum="0", maximum="20")
        b = make_item(name="B", current=b_stock, minimum="0", maximum="20")
        recipe = RecipeService(db_session).create_recipe(
            "R",
            [{"item_id": a.id, "quantity_required": 2}, {"item_id": b.id, "quantity_required": 1}],
            manager,
        )
        return recipe, a, b
    return _make


class TestRecipeUsage:

    def test_two_shortfalls_leave_both_untouched(self, db_session, barista, two_part_recipe):
        recipe, a, b = two_part_recipe("5", "0")

        with pytest.raises(InsufficientStockError) as exc:
            RecipeDeductionService(db_session).log_recipe_usage(recipe.id, 3, barista)

        by_item = {s.item: (s.required, s.available) for s in exc.value.shortfalls}
        assert by_item == {"A": (Decimal("6"), Decimal("5")), "B": (Decimal("3"), Decimal("0"))}
        assert _stock(db_session, a) == Decimal("5")
        assert _stock(db_session, b) == Decimal("0")

    def test_fractional_servings_drain_to_zero(self, db_session, manager, barista, make_item):
        syrup = make_item(name="Caramel Syrup", current="0.3", minimum="0", maximum="1")
        recipe = RecipeService(db_session).create_recipe(
            "Caramel Shot", [{"item_id": syrup.id, "quantity_required": Decimal("0.1")}], manager
        )
        deduction = RecipeDeductionService(db_session)
        for _ in range(3):
            deduction.log_recipe_usage(recipe.id, 1, barista)

        assert _stock(db_session, syrup) == Decimal("0")
        assert len(_usage_rows(db_session)) == 3
        with pytest.raises(InsufficientStockError):
            deduction.log_recipe_usage(recipe.id, 1, barista)

    def test_two_ingredients_deducted(self, db_session, barista, two_part_recipe):
        recipe, a, b = two_part_recipe("10", "10")

        result = RecipeDeductionService(db_session).log_recipe_usage(recipe.id, 3, barista)

        assert result.items_updated == 2
        assert _stock(db_session, a) == Decimal("4")
        assert _stock(db_session, b) == Decimal("7")
        assert len(_usage_rows(db_session)) == 2

    def test_deducts_every_ingredient(self, db_session, barista, latte_setup):
        result = RecipeDeductionService(db_session).log_recipe_usage(
            latte_setup["recipe"].id, 2, barista
        )

        assert result.items_updated == 2
        assert _stock(db_session, latte_setup["beans"]) == Decimal("9.964")
        assert _stock(db_session, latte_setup["milk"]) == Decimal("4.6")

        rows = _usage_rows(db_session)
        assert len(rows) == 2
        assert {r.recipe_id for r in rows} == {latte_setup["recipe"].id}
        assert {r.user_id for r in rows} == {barista.user_id}
        assert all(r.notes == "Recipe usage: 2 serving(s)" for r in rows)

    def test_shortfall_rejects_whole_call(self, db_session, barista, latte_setup):
        with pytest.raises(InsufficientStockError) as exc:
            RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, 30, barista)

        assert [s.item for s in exc.value.shortfalls] == ["Whole Milk"]
        assert exc.value.shortfalls[0].required == Decimal("6")
        assert _stock(db_session, latte_setup["beans"]) == Decimal("10")
        assert _stock(db_session, latte_setup["milk"]) == Decimal("5")
        assert _usage_rows(db_session) == []

    def test_all_shortfalls_reported(self, db_session, barista, latte_setup):
        with pytest.raises(InsufficientStockError) as exc:
            RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, 1000, barista)
        assert {s.item for s in exc.value.shortfalls} == {"Espresso Beans", "Whole Milk"}

    @pytest.mark.parametrize("servings", [0, -1, None])
    def test_non_positive_servings_rejected(self, db_session, barista, latte_setup, servings):
        with pytest.raises(ValidationError):
            RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, servings, barista)

    def test_archived_recipe_not_found(self, db_session, manager, barista, latte_setup):
        RecipeService(db_session).archive_recipe(latte_setup["recipe"].id, manager)
        with pytest.raises(NotFoundError):
            RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, 1, barista)

    def test_archived_ingredient_skipped(self, db_session, manager, barista, latte_setup):
        StockLedger(db_session).archive_item(latte_setup["milk"].id, manager)

        result = RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, 1, barista)

        assert result.items_updated == 1
        assert _stock(db_session, latte_setup["beans"]) == Decimal("9.982")

    def test_apply_phase_failure_rolls_back_everything(self, db_session, barista, latte_setup, monkeypatch):
        """A shortfall only caught by the conditional write undoes earlier deductions."""
        monkeypatch.setattr(RecipeDeductionService, "_check_stock", lambda self, required: None)

        with pytest.raises(InsufficientStockError):
            RecipeDeductionService(db_session).log_recipe_usage(latte_setup["recipe"].id, 30, barista)

        assert _stock(db_session, latte_setup["beans"]) == Decimal("10")
        assert _stock(db_session, latte_setup["milk"]) == Decimal("5")
        assert _usage_rows(db_session) == []


class TestManualUsage:

    def test_one_transaction_per_entry(self, db_session, barista, item):
        result = RecipeDeductionService(db_session).log_manual_usage(
            [
                {"item_id": item.id, "quantity": 1},
                {"item_id": item.id, "quantity": 2, "notes": "Dropped a bag"},
            ],
            barista,
        )

        assert result.items_updated == 1
        assert _stock(db_session, item) == Decimal("7")
        notes = sorted(r.notes for r in _usage_rows(db_session))
        assert notes == ["Dropped a bag", "Manual usage entry"]

    def test_duplicate_entries_summed_for_pre_check(self, db_session, barista, item):
        with pytest.raises(InsufficientStockError) as exc:
            RecipeDeductionService(db_session).log_manual_usage(
                [{"item_id": item.id, "quantity": 6}, {"item_id": item.id, "quantity": 6}],
                barista,
            )
        assert exc.value.shortfalls[0].required == Decimal("12")
        assert _stock(db_session, item) == Decimal("10")

    def test_missing_item_reported_before_stock(self, db_session, barista, item):
        with pytest.raises(NotFoundError):
            RecipeDeductionService(db_session).log_manual_usage(
                [{"item_id": item.id, "quantity": 1000}, {"item_id": 9999, "quantity": 1}],
                barista,
            )

    def test_archived_item_not_found(self, db_session, manager, barista, item):
        StockLedger(db_session).archive_item(item.id, manager)
        with pytest.raises(NotFoundError):
            RecipeDeductionService(db_session).log_manual_usage([{"item_id": item.id, "quantity": 1}], barista)

    @pytest.mark.parametrize(
        "entries",
        [
            [],
            [{"quantity": 1}],
            [{"item_id": 1, "quantity": 0}],
            [{"item_id": 1, "quantity": -2}],
        ],
    )
    def test_invalid_entries_rejected(self, db_session, barista, item, entries):
        with pytest.raises(ValidationError):
            RecipeDeductionService(db_session).log_manual_usage(entries, barista)
