from __future__ import annotations

import logging
from typing import List, Optional

from ..data import cart_repository, catalog_repository
from ..errors import InternalError, NotFoundError, ValidationError
from ..models.shop_models import (
    CartLine,
    CartLineView,
    Color,
    ColorSelection,
    parse_color_ids,
    serialize_color_ids,
)

logger = logging.getLogger(__name__)

UNKNOWN_COLOR_NAME = "Unknown color"


def add_line(
    user_id: int,
    product_id: int,
    quantity: int,
    scent_id: Optional[int] = None,
    color_selection: Optional[ColorSelection] = None,
) -> CartLine:
    """Add a product variant to the cart, merging into an identical existing line.

    Lookup and insert are separate statements, so two concurrent identical adds can
    still produce two lines.
    """
    quantity = _validate_quantity(quantity)
    product = catalog_repository.get_product(product_id)
    if product is None:
        raise NotFoundError("Product not found")

    selection = color_selection or ColorSelection()
    multiple = bool(selection.multiple)
    if multiple and not selection.color_ids:
        raise ValidationError("Select at least one color", {"colorIds": "Select at least one color"})

    for candidate in cart_repository.find_candidate_lines(user_id, product.id, scent_id, multiple):
        if _same_colors(candidate, selection):
            updated = cart_repository.increment_quantity(candidate.id, quantity)
            if updated is None:
                raise InternalError("Cart item disappeared while updating")
            return updated

    color_name = _describe_selection(selection)
    return cart_repository.insert_line(
        CartLine(
            id=0,
            user_id=int(user_id),
            product_id=product.id,
            quantity=quantity,
            scent_id=scent_id,
            color_id=selection.color_id,
            color_ids=serialize_color_ids(selection.color_ids) if multiple else None,
            color_name=color_name,
            has_multiple_colors=multiple,
        )
    )


def remove_line(line_id: int, user_id: int) -> bool:
    return cart_repository.delete_line(line_id, user_id)


def update_quantity(line_id: int, user_id: int, quantity: int) -> CartLine:
    quantity = _validate_quantity(quantity)
    updated = cart_repository.update_quantity(line_id, user_id, quantity)
    if updated is None:
        raise NotFoundError("Cart item not found")
    return updated


def clear(user_id: int) -> None:
    removed = cart_repository.clear(user_id)
    logger.debug("Cleared %s cart lines for user %s", removed, user_id)


def list_lines(user_id: int) -> List[CartLineView]:
    views: List[CartLineView] = []
    for line in cart_repository.list_lines(user_id):
        product = catalog_repository.get_product(line.product_id)
        if product is None:
            continue
        scent = catalog_repository.get_scent(line.scent_id) if line.scent_id is not None else None

        view = CartLineView(line=line, product=product, scent=scent)
        if line.has_multiple_colors:
            view.colors = _resolve_colors(parse_color_ids(line.color_ids))
        elif line.color_id is not None:
            view.color = _resolve_colors([line.color_id])[0]
        views.append(view)
    return views


def _resolve_colors(color_ids) -> List[Color]:
    ids = list(color_ids)
    known = {color.id: color for color in catalog_repository.get_colors(ids)}
    return [known.get(color_id) or Color(id=color_id, name=UNKNOWN_COLOR_NAME) for color_id in ids]


def _same_colors(line: CartLine, selection: ColorSelection) -> bool:
    if selection.multiple:
        return parse_color_ids(line.color_ids) == selection.normalized_ids
    return line.color_id == selection.color_id


def _describe_selection(selection: ColorSelection) -> Optional[str]:
    if not selection.color_ids:
        return None
    colors = _resolve_colors(selection.normalized_ids if selection.multiple else selection.color_ids[:1])
    return ", ".join(color.name for color in colors)


def _validate_quantity(quantity: int) -> int:
    try:
        value = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError("Quantity must be a whole number", {"quantity": "Quantity must be a whole number"})
    if value != quantity or value < 1:
        raise ValidationError("Quantity must be at least 1", {"quantity": "Quantity must be at least 1"})
    return value
