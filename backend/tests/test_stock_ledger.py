"""Tests for the stock ledger: status bands, item CRUD and stock adjustments."""

import pytest
from decimal import Decimal

from cafestock.core.exceptions import (
    DuplicateNameError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from cafestock.models.transaction import TransactionType
from cafestock.models.item import Item, StockStatus, stock_status
from cafestock.services.stock_ledger import StockLedger
from cafestock.services.transaction_log import TransactionLog


class TestStockStatus:
    """Band boundaries fall into the more urgent band."""

    @pytest.mark.parametrize(
        "current,minimum,maximum,expected",
        [
            ("0", "2", "20", StockStatus.OUT),
            ("0", "0", "0", StockStatus.OUT),
            ("1", "2", "20", StockStatus.LOW),
            ("2", "2", "20", StockStatus.LOW),
            ("2.001", "2", "20", StockStatus.MEDIUM),
            ("11", "2", "20", StockStatus.MEDIUM),
            ("11.001", "2", "20", StockStatus.HEALTHY),
            ("25", "2", "20", StockStatus.HEALTHY),
            ("0", "10", "50", StockStatus.OUT),
            ("10", "10", "50", StockStatus.LOW),
            ("30", "10", "50", StockStatus.MEDIUM),
            ("31", "10", "50", StockStatus.HEALTHY),
            ("50", "10", "50", StockStatus.HEALTHY),
        ],
    )
    def test_bands(self, current, minimum, maximum, expected):
        assert stock_status(Decimal(current), Decimal(minimum), Decimal(maximum)) == expected

    def test_item_status_property(self, item):
        assert item.status == "medium"

    def test_status_derived_on_unsaved_item(self):
        draft = Item(current_stock=Decimal("2"), minimum_stock=Decimal("2"), maximum_stock=Decimal("20"))
        assert draft.status == StockStatus.LOW.value


class TestCreateItem:

    def test_create_records_added_transaction(self, db_session, item):
        assert item.current_stock == Decimal("10")
        assert item.ordered is False

        entries = TransactionLog(db_session).for_item(item.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.ADDED.value
        assert entries[0].quantity == Decimal("10")
        assert entries[0].notes == 'New item "Espresso Beans" added to inventory'

    def test_name_is_trimmed(self, make_item):
        created = make_item(name="  Oat Milk  ")
        assert created.name == "Oat Milk"

    def test_duplicate_name_case_and_whitespace_insensitive(self, make_item, item):
        with pytest.raises(DuplicateNameError):
            make_item(name="  espresso BEANS ")

    def test_archived_name_can_be_reused(self, db_session, manager, make_item, item):
        StockLedger(db_session).archive_item(item.id, manager)
        again = make_item(name="Espresso Beans")
        assert again.id != item.id

    def test_padded_name_blocked_only_by_active_row(self, db_session, manager, make_item):
        milk = make_item(name="milk")
        with pytest.raises(DuplicateNameError):
            make_item(name=" Milk ")

        StockLedger(db_session).archive_item(milk.id, manager)
        assert make_item(name=" Milk ").name == "Milk"

    def test_missing_fields_rejected(self, db_session, manager):
        with pytest.raises(ValidationError) as exc:
            StockLedger(db_session).create_item(manager, name="Sugar")
        assert "category_id" in exc.value.detail["missing"]

    def test_blank_name_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(name="   ")

    def test_negative_quantity_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(current="-1")

    def test_minimum_above_maximum_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(minimum="30", maximum="20")

    def test_unknown_category_rejected(self, db_session, manager, unit):
        with pytest.raises(ValidationError):
            StockLedger(db_session).create_item(
                manager,
                name="Sugar",
                category_id=999,
                unit_id=unit.id,
                current_stock=1,
                minimum_stock=0,
                maximum_stock=5,
            )

    def test_barista_cannot_create(self, db_session, barista, category, unit):
        with pytest.raises(ForbiddenError):
            StockLedger(db_session).create_item(
                barista,
                name="Sugar",
                category_id=category.id,
                unit_id=unit.id,
                current_stock=1,
                minimum_stock=0,
                maximum_stock=5,
            )


class TestUpdateItem:

    def _fields(self, item, **overrides):
        fields = {
            "name": item.name,
            "category_id": item.category_id,
            "unit_id": item.unit_id,
            "current_stock": item.current_stock,
            "minimum_stock": item.minimum_stock,
            "maximum_stock": item.maximum_stock,
        }
        fields.update(overrides)
        return fields

    def test_update_records_old_and_new_stock(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        updated = ledger.update_item(item.id, manager, **self._fields(item, current_stock=15))

        assert updated.current_stock == Decimal("15")
        latest = TransactionLog(db_session).for_item(item.id)[0]
        assert latest.transaction_type == TransactionType.UPDATE.value
        assert latest.quantity == Decimal("15")
        assert latest.notes == "Item updated. Old stock: 10, New stock: 15"

    def test_keeping_own_name_is_allowed(self, db_session, manager, item):
        updated = StockLedger(db_session).update_item(
            item.id, manager, **self._fields(item, name="espresso beans")
        )
        assert updated.name == "espresso beans"

    def test_rename_onto_other_item_rejected(self, db_session, manager, make_item, item):
        other = make_item(name="Whole Milk")
        with pytest.raises(DuplicateNameError):
            StockLedger(db_session).update_item(other.id, manager, **self._fields(other, name="Espresso Beans"))

    def test_archived_item_not_found(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        fields = self._fields(item)
        ledger.archive_item(item.id, manager)
        with pytest.raises(NotFoundError):
            ledger.update_item(item.id, manager, **fields)

    def test_missing_item_not_found(self, db_session, manager, item):
        with pytest.raises(NotFoundError):
            StockLedger(db_session).update_item(9999, manager, **self._fields(item))


class TestAdjustStock:

    def test_decrement_and_increment(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        assert ledger.adjust_stock(item.id, Decimal("-4"), TransactionType.USAGE, "spill", manager) == Decimal("6")
        assert ledger.adjust_stock(item.id, Decimal("2.5"), TransactionType.RESTOCK, None, manager) == Decimal("8.5")

        latest = TransactionLog(db_session).for_item(item.id)[0]
        assert latest.transaction_type == TransactionType.RESTOCK.value
        assert latest.quantity == Decimal("2.5")

    def test_can_reach_exactly_zero(self, db_session, barista, item):
        ledger = StockLedger(db_session)
        assert ledger.adjust_stock(item.id, Decimal("-10"), TransactionType.USAGE, None, barista) == Decimal("0")
        assert ledger.get_item(item.id).status == "out"

    def test_fractional_steps_reach_exactly_zero(self, db_session, barista, make_item):
        syrup = make_item(name="Vanilla Syrup", current="0.3", minimum="0", maximum="1")
        ledger = StockLedger(db_session)
        for expected in ("0.2", "0.1", "0"):
            new_quantity = ledger.adjust_stock(syrup.id, Decimal("-0.1"), TransactionType.USAGE, None, barista)
            assert new_quantity == Decimal(expected)

        with pytest.raises(InsufficientStockError):
            ledger.adjust_stock(syrup.id, Decimal("-0.001"), TransactionType.USAGE, None, barista)
        assert ledger.get_item(syrup.id).current_stock == Decimal("0")

    def test_overdraw_rejected_and_stock_unchanged(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        with pytest.raises(InsufficientStockError) as exc:
            ledger.adjust_stock(item.id, Decimal("-10.5"), TransactionType.USAGE, None, manager)

        shortfall = exc.value.shortfalls[0]
        assert shortfall.item == "Espresso Beans"
        assert shortfall.required == Decimal("10.5")
        assert shortfall.available == Decimal("10")
        assert shortfall.unit == "kg"

        assert ledger.get_item(item.id).current_stock == Decimal("10")
        assert len(TransactionLog(db_session).for_item(item.id)) == 1

    def test_sequence_never_goes_negative(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        expected = Decimal("10")
        for delta in ("-3", "-8", "4", "-11", "-11", "0.5", "-0.5"):
            delta = Decimal(delta)
            if expected + delta < 0:
                with pytest.raises(InsufficientStockError):
                    ledger.adjust_stock(item.id, delta, TransactionType.USAGE, None, manager)
            else:
                expected += delta
                txn_type = TransactionType.USAGE if delta < 0 else TransactionType.RESTOCK
                ledger.adjust_stock(item.id, delta, txn_type, None, manager)
            assert ledger.get_item(item.id).current_stock == expected
            assert expected >= 0

    def test_zero_delta_rejected(self, db_session, manager, item):
        with pytest.raises(ValidationError):
            StockLedger(db_session).adjust_stock(item.id, 0, TransactionType.UPDATE, None, manager)

    def test_lifecycle_type_rejected(self, db_session, manager, item):
        with pytest.raises(ValidationError):
            StockLedger(db_session).adjust_stock(item.id, 1, TransactionType.PURGE, None, manager)

    def test_barista_may_only_post_usage(self, db_session, barista, item):
        with pytest.raises(ForbiddenError):
            StockLedger(db_session).adjust_stock(item.id, 5, TransactionType.RESTOCK, None, barista)

    def test_archived_item_not_found(self, db_session, manager, item):
        ledger = StockLedger(db_session)
        ledger.archive_item(item.id, manager)
        with pytest.raises(NotFoundError):
            ledger.adjust_stock(item.id, -1, TransactionType.USAGE, None, manager)


class TestReads:

    def test_list_items_excludes_archived_and_sorts_by_name(self, db_session, manager, make_item):
        milk = make_item(name="Whole Milk")
        beans = make_item(name="Arabica Beans")
        cups = make_item(name="Cups")
        ledger = StockLedger(db_session)
        ledger.archive_item(cups.id, manager)

        assert [i.id for i in ledger.list_items()] == [beans.id, milk.id]

    def test_low_stock(self, db_session, make_item):
        make_item(name="Plenty", current="15")
        low = make_item(name="Scarce", current="2", minimum="2")
        assert [i.id for i in StockLedger(db_session).list_low_stock()] == [low.id]
