from __future__ import annotations

import pytest

from candleshop.errors import InternalError, NotFoundError, ValidationError
from candleshop.models.shop_models import ColorSelection
from candleshop.services import cart_service


def test_same_variant_merges_into_one_line(customer, candle, lavender):
    first = cart_service.add_line(customer.id, candle.id, 1, lavender.id)
    second = cart_service.add_line(customer.id, candle.id, 2, lavender.id)

    assert second.id == first.id
    assert second.quantity == 3
    assert len(cart_service.list_lines(customer.id)) == 1


def test_different_scent_creates_new_line(customer, candle, lavender):
    cart_service.add_line(customer.id, candle.id, 1, lavender.id)
    cart_service.add_line(customer.id, candle.id, 1, None)

    assert len(cart_service.list_lines(customer.id)) == 2


def test_multi_color_sets_match_regardless_of_order(customer, candle, colors):
    red, blue, green = colors
    first = cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.many([red.id, blue.id]))
    second = cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.many([blue.id, red.id]))
    third = cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.many([red.id, green.id]))

    assert second.id == first.id
    assert second.quantity == 2
    assert third.id != first.id


def test_single_and_multi_color_lines_are_kept_apart(customer, candle, colors):
    red = colors[0]
    single = cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.single(red.id))
    multi = cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.many([red.id]))

    assert single.id != multi.id


def test_multi_color_line_lists_resolved_colors(customer, candle, colors):
    red, blue, _ = colors
    cart_service.add_line(customer.id, candle.id, 2, None, ColorSelection.many([blue.id, red.id, 999]))

    (view,) = cart_service.list_lines(customer.id)
    assert [color.name for color in view.colors] == ["Red", "Blue", "Unknown color"]
    assert view.line.color_ids == f"[{red.id}, {blue.id}, 999]"
    assert view.line_total == 20.0


def test_multi_color_without_colors_is_rejected(customer, candle):
    with pytest.raises(ValidationError):
        cart_service.add_line(customer.id, candle.id, 1, None, ColorSelection.many([]))


def test_unknown_product_is_rejected(customer):
    with pytest.raises(NotFoundError):
        cart_service.add_line(customer.id, 12345, 1)


@pytest.mark.parametrize("quantity", [0, -2])
def test_add_rejects_quantity_below_one(customer, candle, quantity):
    with pytest.raises(ValidationError):
        cart_service.add_line(customer.id, candle.id, quantity)


def test_update_quantity(customer, candle):
    line = cart_service.add_line(customer.id, candle.id, 1)

    updated = cart_service.update_quantity(line.id, customer.id, 4)

    assert updated.quantity == 4


def test_update_quantity_below_one_is_rejected(customer, candle):
    line = cart_service.add_line(customer.id, candle.id, 1)

    with pytest.raises(ValidationError):
        cart_service.update_quantity(line.id, customer.id, 0)


def test_update_quantity_of_foreign_line_is_not_found(customer, admin, candle):
    line = cart_service.add_line(customer.id, candle.id, 1)

    with pytest.raises(NotFoundError):
        cart_service.update_quantity(line.id, admin.id, 2)


def test_remove_missing_line_is_silent(customer):
    assert cart_service.remove_line(999, customer.id) is False


def test_clear_only_touches_own_cart(customer, admin, candle):
    cart_service.add_line(customer.id, candle.id, 1)
    cart_service.add_line(admin.id, candle.id, 1)

    cart_service.clear(customer.id)

    assert cart_service.list_lines(customer.id) == []
    assert len(cart_service.list_lines(admin.id)) == 1


def test_concurrent_identical_adds_can_duplicate_lines(customer, candle, monkeypatch):
    # Both requests finish their lookup before either inserts.
    monkeypatch.setattr(cart_service.cart_repository, "find_candidate_lines", lambda *args: [])

    first = cart_service.add_line(customer.id, candle.id, 1)
    second = cart_service.add_line(customer.id, candle.id, 1)

    assert first.id != second.id
    assert len(cart_service.list_lines(customer.id)) == 2


def test_line_vanishing_during_merge_raises_internal_error(customer, candle, monkeypatch):
    cart_service.add_line(customer.id, candle.id, 1)
    monkeypatch.setattr(cart_service.cart_repository, "increment_quantity", lambda line_id, quantity: None)

    with pytest.raises(InternalError):
        cart_service.add_line(customer.id, candle.id, 1)
