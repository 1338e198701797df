"""
Tests for Item
"""

import pytest
from decimal import Decimal

from carty import InvalidItem, Item


class TestItemCreate:
    """Tests for Item.create."""

    @pytest.mark.parametrize("attr", [{}, None, {"foo": "bar"}, {"id": None}, {"id": ""}, True, ["id"]])
    def test_rejects_invalid_attributes(self, attr):
        """Test that anything without an id is rejected."""
        with pytest.raises(InvalidItem, match="at least an id property"):
            Item.create(attr)

    def test_rejects_invalid_field_types(self):
        """Test that pydantic errors surface as InvalidItem."""
        with pytest.raises(InvalidItem):
            Item.create({"id": "a", "currency": 42})

    def test_string_shorthand(self):
        """Test that a string is used as id."""
        item = Item.create("sku-1")

        assert item.id == "sku-1"
        assert item.quantity == 1

    def test_number_shorthand(self):
        """Test that a number is used as id."""
        assert Item.create(42).id == 42

    def test_item_passes_through(self):
        """Test that an Item is returned unchanged."""
        item = Item.create("sku-1")
        assert Item.create(item) is item

    def test_default_attributes(self):
        """Test default attribute values."""
        item = Item.create({"id": "id"})

        assert item.price == 0
        assert item.currency is None
        assert item.shipping == 0
        assert item.tax == 0
        assert item.quantity == 1
        assert item.variant is None

        snapshot = item()
        assert snapshot["price"] == 0
        assert snapshot["currency"] is None
        assert snapshot["shipping"] == 0
        assert snapshot["tax"] == 0

    def test_all_attributes(self, sample_item):
        """Test that known and pass-through attributes are kept."""
        item = Item.create(sample_item)

        assert item.id == "sku-123"
        assert item.label == "Coffee beans"
        assert item.currency == "USD"
        assert item.price == Decimal("12.5")
        assert item.shipping == Decimal("2")
        assert item.tax == Decimal("1")
        assert item.quantity == 2
        assert item.variant == {"size": "1kg", "roast": "dark"}
        assert item.origin == "Ethiopia"
        assert item.extra == {"origin": "Ethiopia"}

        snapshot = item()
        assert snapshot["origin"] == "Ethiopia"
        assert snapshot["variant"] == {"size": "1kg", "roast": "dark"}

    def test_label_defaults_to_id(self):
        """Test that id is used as label if label is missing."""
        assert Item.create({"id": "id"}).label == "id"

    def test_monetary_fields_are_decimal(self):
        """Test that prices are normalized to Decimal."""
        item = Item.create({"id": "a", "price": "19.99", "tax": 0.1, "shipping": None})

        assert item.price == Decimal("19.99")
        assert item.tax == Decimal("0.1")
        assert item.shipping == Decimal("0")

    def test_is_immutable(self):
        """Test that items cannot be changed after construction."""
        item = Item.create({"id": "a", "price": 1})

        with pytest.raises(Exception):
            item.price = Decimal("2")

    def test_snapshot_is_read_only(self):
        """Test that the snapshot cannot be written to."""
        snapshot = Item.create("a")()

        with pytest.raises(TypeError):
            snapshot["id"] = "b"

    def test_to_dict_json_mode(self):
        """Test JSON-mode serialization used by stores."""
        data = Item.create({"id": "a", "price": 10, "foo": "bar"}).to_dict(mode="json")

        assert data["id"] == "a"
        assert data["price"] == "10"
        assert data["foo"] == "bar"
        assert Item.create(data).price == 10

    def test_line_total(self):
        """Test price x quantity."""
        assert Item.create({"id": "a", "price": 2.5, "quantity": 4}).line_total == 10


class TestItemEquals:
    """Tests for item identity."""

    def test_compares_ids(self):
        """Test that only id matters without variants."""
        item = Item.create({"id": "label", "foo": "bar"})

        assert item.equals({"id": "label", "foo": "bar"})
        assert item.equals({"id": "label"})
        assert item.equals({"id": "label", "label": "bar"})
        assert item.equals("label")
        assert item.equals(item)

        assert not item.equals({"label": "foo"})
        assert not item.equals({"foo": "bar"})
        assert not item.equals({})
        assert not item.equals(None)

    def test_ids_compare_strictly(self):
        """Test that a numeric id never matches its string form."""
        assert not Item.create(1).equals("1")
        assert not Item.create("1").equals(1)

    def test_numeric_ids_compare_by_value(self):
        """Test that int and float ids with the same value match."""
        assert Item.create({"id": 1}).equals({"id": 1.0})
        assert Item.create(1.0).equals(1)
        assert not Item.create(1).equals(1.5)
        assert hash(Item.create(1)) == hash(Item.create(1.0))

    def test_accepts_producers(self):
        """Test that callables are evaluated before comparing."""
        attr = {"id": "id", "label": "label"}
        item = Item.create(attr)

        assert item.equals(lambda: attr)
        assert not item.equals(lambda: "foo")
        assert not item.equals(lambda: None)

    def test_string_variant(self):
        """Test comparing items with a string variant."""
        item = Item.create({"id": "label", "variant": "variant"})

        assert item.equals({"id": "label", "variant": "variant"})
        assert item.equals({"id": "label", "label": "bar", "variant": "variant"})
        assert item.equals(item)

        assert not item.equals({"id": "label"})
        assert not item.equals({"variant": "variant"})
        assert not item.equals({"id": "label", "variant": ["variant"]})

    def test_mapping_variant(self):
        """Test comparing items with a mapping variant."""
        item = Item.create({"id": "label", "variant": {"variant1": "variant1", "variant2": "variant2"}})

        assert item.equals({"id": "label", "variant": {"variant2": "variant2", "variant1": "variant1"}})
        assert item.equals({"id": "label", "label": "bar", "variant": {"variant1": "variant1", "variant2": "variant2"}})

        assert not item.equals({"id": "label", "variant": {"variant1": "variant1", "variant3": "variant3"}})
        assert not item.equals({"id": "label", "variant": {"variant1": "variant1"}})
        assert not item.equals({"variant": {"variant1": "variant1", "variant2": "variant2"}})

    def test_variant_values_compare_strictly(self):
        """Test that variant values of different types do not match."""
        item = Item.create({"id": "a", "variant": {"size": 1}})

        assert not item.equals({"id": "a", "variant": {"size": "1"}})
        assert not item.equals({"id": "a", "variant": {"size": True}})

    def test_numeric_variant_values_compare_by_value(self):
        """Test that nested numbers match across int and float."""
        item = Item.create({"id": "a", "variant": {"size": 1, "dims": [2, 3]}})

        assert item.equals({"id": "a", "variant": {"size": 1.0, "dims": [2.0, 3]}})
        assert not item.equals({"id": "a", "variant": {"size": True, "dims": [2, 3]}})

    def test_equality_is_symmetric(self, sample_item):
        """Test that equality is reflexive and symmetric."""
        a = Item.create(sample_item)
        b = Item.create({**sample_item, "price": 99, "label": "other"})

        assert a.equals(a)
        assert a.equals(b) and b.equals(a)
        assert a == b
        assert hash(a) == hash(b)


class TestItemMerge:
    """Tests for additive merging."""

    def test_sums_quantities_and_overrides_attributes(self):
        """Test that the newer item wins except for quantity."""
        first = Item.create({"id": "a", "price": 10, "quantity": 2, "note": "first"})
        second = Item.create({"id": "a", "price": 12, "quantity": 3})

        merged = first.merge(second)

        assert merged.quantity == 5
        assert merged.price == 12
        assert merged.note == "first"
        assert first.quantity == 2
