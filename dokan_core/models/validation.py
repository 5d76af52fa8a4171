# =============================================================================
# dokan_core/models/validation.py
# Payload validation for entity create/update calls
# =============================================================================
"""
Each validator takes the raw payload a form (or API client) produced and
returns a cleaned dict holding only the entity's domain fields. Identity,
ownership, timestamps and sync status are added by the hybrid layer.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional

from dokan_core.errors import DataValidationError
from dokan_core.models.entities import (
    Entity,
    PaymentMethod,
    PAYMENT_METHOD_LABELS,
)


def _require_text(payload: Mapping[str, Any], field: str, entity: str) -> str:
    value = payload.get(field)
    if value is None or not str(value).strip():
        raise DataValidationError(
            f"'{field}' is required",
            entity=entity,
            field=field,
            expected="non-empty text",
            actual=repr(value),
        )
    return str(value).strip()


def _optional_text(payload: Mapping[str, Any], field: str) -> Optional[str]:
    value = payload.get(field)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_number(value: Any, field: str, entity: str, minimum: Optional[float] = 0.0) -> float:
    if isinstance(value, bool):
        raise DataValidationError(
            f"'{field}' must be a number",
            entity=entity, field=field, expected="number", actual=repr(value),
        )
    try:
        number = float(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, TypeError):
        raise DataValidationError(
            f"'{field}' must be a number",
            entity=entity, field=field, expected="number", actual=repr(value),
        )
    if minimum is not None and number < minimum:
        raise DataValidationError(
            f"'{field}' must be at least {minimum:g}",
            entity=entity, field=field, expected=f">= {minimum:g}", actual=repr(value),
        )
    return number


def _require_number(payload: Mapping[str, Any], field: str, entity: str, minimum: Optional[float] = 0.0) -> float:
    if payload.get(field) is None or payload.get(field) == "":
        raise DataValidationError(
            f"'{field}' is required",
            entity=entity, field=field, expected="number",
        )
    return _to_number(payload[field], field, entity, minimum)


def _optional_int(payload: Mapping[str, Any], field: str, entity: str, default: int) -> int:
    value = payload.get(field)
    if value is None or value == "":
        return default
    number = _to_number(value, field, entity)
    if number != int(number):
        raise DataValidationError(
            f"'{field}' must be a whole number",
            entity=entity, field=field, expected="integer", actual=repr(value),
        )
    return int(number)


def normalize_payment_method(value: Any) -> str:
    """Map English or Bengali payment labels onto a PaymentMethod value."""
    if isinstance(value, PaymentMethod):
        return value.value
    text = str(value or "").strip()
    if text in PAYMENT_METHOD_LABELS:
        return PAYMENT_METHOD_LABELS[text].value
    try:
        return PaymentMethod(text.lower()).value
    except ValueError:
        raise DataValidationError(
            "Unknown payment method",
            entity=Entity.SALES.value,
            field="payment_method",
            expected="cash | credit | mixed",
            actual=repr(value),
        )


# =============================================================================
# ENTITY VALIDATORS
# =============================================================================

def validate_customer(payload: Mapping[str, Any]) -> Dict[str, Any]:
    entity = Entity.CUSTOMERS.value
    return {
        "name": _require_text(payload, "name", entity),
        "phone_number": _optional_text(payload, "phone_number"),
        "address": _optional_text(payload, "address"),
        "total_credit": _to_number(payload.get("total_credit") or 0, "total_credit", entity),
    }


def validate_product(payload: Mapping[str, Any]) -> Dict[str, Any]:
    entity = Entity.PRODUCTS.value
    return {
        "name": _require_text(payload, "name", entity),
        "category": _optional_text(payload, "category"),
        "unit": _require_text(payload, "unit", entity),
        "buying_price": _require_number(payload, "buying_price", entity),
        "selling_price": _require_number(payload, "selling_price", entity),
        "current_stock": _optional_int(payload, "current_stock", entity, default=0),
        "min_stock_level": _optional_int(payload, "min_stock_level", entity, default=5),
    }


def _validate_items(items: Any) -> List[Dict[str, Any]]:
    entity = Entity.SALES.value
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise DataValidationError(
            "'items' must be a list",
            entity=entity, field="items", expected="list", actual=type(items).__name__,
        )

    cleaned = []
    for item in items:
        if not isinstance(item, Mapping):
            raise DataValidationError(
                "Each sale item must be an object",
                entity=entity, field="items", expected="mapping", actual=type(item).__name__,
            )
        quantity = _require_number(item, "quantity", entity)
        unit_price = _require_number(item, "unit_price", entity)
        total_price = item.get("total_price")
        cleaned.append({
            "product_id": item.get("product_id"),
            "product_name": _require_text(item, "product_name", entity),
            "quantity": quantity,
            "unit_price": unit_price,
            "total_price": (
                _to_number(total_price, "total_price", entity)
                if total_price is not None else round(quantity * unit_price, 2)
            ),
        })
    return cleaned


def validate_sale(payload: Mapping[str, Any]) -> Dict[str, Any]:
    entity = Entity.SALES.value
    total = _require_number(payload, "total_amount", entity)

    paid = payload.get("paid_amount")
    due = payload.get("due_amount")
    if paid is None and due is None:
        raise DataValidationError(
            "Either 'paid_amount' or 'due_amount' is required",
            entity=entity, field="paid_amount", expected="number",
        )
    paid = _to_number(paid, "paid_amount", entity) if paid is not None else None
    due = _to_number(due, "due_amount", entity) if due is not None else None
    if paid is None:
        paid = max(total - due, 0.0)
    if due is None:
        due = max(total - paid, 0.0)

    return {
        "customer_id": _optional_text(payload, "customer_id"),
        "customer_name": _require_text(payload, "customer_name", entity),
        "items": _validate_items(payload.get("items")),
        "total_amount": total,
        "paid_amount": paid,
        "due_amount": due,
        "payment_method": normalize_payment_method(payload.get("payment_method")),
        "sale_date": payload.get("sale_date"),
    }


def validate_expense(payload: Mapping[str, Any]) -> Dict[str, Any]:
    entity = Entity.EXPENSES.value
    return {
        "description": _require_text(payload, "description", entity),
        "amount": _require_number(payload, "amount", entity),
        "category": _require_text(payload, "category", entity),
        "expense_date": payload.get("expense_date"),
    }


def validate_collection(payload: Mapping[str, Any]) -> Dict[str, Any]:
    entity = Entity.COLLECTIONS.value
    amount = _require_number(payload, "amount", entity)
    if amount <= 0:
        raise DataValidationError(
            "'amount' must be greater than zero",
            entity=entity, field="amount", expected="> 0", actual=repr(payload.get("amount")),
        )
    return {
        "customer_id": _require_text(payload, "customer_id", entity),
        "sale_id": _optional_text(payload, "sale_id"),
        "amount": amount,
        "collection_date": payload.get("collection_date"),
    }


VALIDATORS: Dict[str, Callable[[Mapping[str, Any]], Dict[str, Any]]] = {
    Entity.CUSTOMERS.value: validate_customer,
    Entity.PRODUCTS.value: validate_product,
    Entity.SALES.value: validate_sale,
    Entity.EXPENSES.value: validate_expense,
    Entity.COLLECTIONS.value: validate_collection,
}

# Fields a partial update may touch, with their numeric lower bound (None = text)
UPDATABLE_FIELDS: Dict[str, Dict[str, Optional[float]]] = {
    Entity.CUSTOMERS.value: {
        "name": None, "phone_number": None, "address": None, "total_credit": 0.0,
    },
    Entity.PRODUCTS.value: {
        "name": None, "category": None, "unit": None,
        "buying_price": 0.0, "selling_price": 0.0,
        "current_stock": 0.0, "min_stock_level": 0.0,
    },
}


def validate_payload(entity: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a create payload for the given entity collection."""
    if entity not in VALIDATORS:
        raise DataValidationError(f"Unknown entity '{entity}'", entity=entity)
    if not isinstance(payload, Mapping):
        raise DataValidationError(
            "Payload must be an object",
            entity=entity, expected="mapping", actual=type(payload).__name__,
        )
    return VALIDATORS[entity](payload)


def validate_partial(entity: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate the fields of a partial update; unknown fields are rejected."""
    allowed = UPDATABLE_FIELDS.get(entity)
    if allowed is None:
        raise DataValidationError(f"Entity '{entity}' does not support updates", entity=entity)
    if not fields:
        raise DataValidationError("No fields to update", entity=entity)

    cleaned = {}
    for name, value in fields.items():
        if name not in allowed:
            raise DataValidationError(
                f"Field '{name}' cannot be updated",
                entity=entity, field=name,
            )
        minimum = allowed[name]
        if minimum is None:
            if name in ("name", "unit"):
                cleaned[name] = _require_text(fields, name, entity)
            else:
                cleaned[name] = _optional_text(fields, name)
        elif name in ("current_stock", "min_stock_level"):
            cleaned[name] = _optional_int(fields, name, entity, default=0)
        else:
            cleaned[name] = _to_number(value, name, entity, minimum)
    return cleaned
