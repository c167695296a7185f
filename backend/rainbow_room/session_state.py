# Overview: Client-session state objects (cart, notifications, checkout workflow); no globals, no persistence.

"""
Session-scoped state for the checkout flow.

One Cart, one Notifications queue and one CheckoutWorkflow are created per
client session and passed explicitly to whatever needs them.

Workflow states:
    CART_BUILDING -> FORM_CAPTURE -> SUBMITTED -> COMMITTED | REJECTED

- The cart holds no stock; sufficiency is only checked at commit time.
- The cart is cleared only on COMMITTED. On REJECTED it is left untouched
  so the user can fix the form or quantities and retry after reset().
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

from .errors import ConflictError, ValidationError
from .validation import CheckoutForm, validate_checkout_form


@dataclass
class CartItem:
    item_id: int
    size_id: int | None
    name: str
    size_label: str
    quantity: int
    location_id: int

    @property
    def key(self) -> tuple[int, int | None]:
        return (self.item_id, self.size_id)

    def to_checkout_line(self) -> dict:
        return {"item_id": self.item_id, "size_id": self.size_id, "quantity": self.quantity}


class Cart:
    """Staging area for checkout lines, merged by (item_id, size_id)."""

    def __init__(self):
        self._items: dict[tuple[int, int | None], CartItem] = {}

    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def location_id(self) -> int | None:
        for item in self._items.values():
            return item.location_id
        return None

    def add(self, item: CartItem) -> CartItem:
        if item.quantity <= 0:
            raise ValidationError("quantity must be > 0")
        if self._items and item.location_id != self.location_id:
            raise ValidationError("Cart already holds items from another location")

        existing = self._items.get(item.key)
        if existing is not None:
            existing.quantity += item.quantity
            return existing
        stored = replace(item)
        self._items[stored.key] = stored
        return stored

    def remove(self, item_id: int, size_id: int | None = None) -> None:
        self._items.pop((item_id, size_id), None)

    def update_quantity(self, item_id: int, size_id: int | None, quantity: int) -> None:
        """Set a line's quantity; zero or less removes the line."""
        key = (item_id, size_id)
        if key not in self._items:
            return
        if quantity <= 0:
            del self._items[key]
        else:
            self._items[key].quantity = quantity

    def clear(self) -> None:
        self._items.clear()

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self._items.values())

    @property
    def item_count(self) -> int:
        return len(self._items)

    def is_empty(self) -> bool:
        return not self._items

    def to_checkout_lines(self) -> list[dict]:
        return [i.to_checkout_line() for i in self._items.values()]


@dataclass
class Toast:
    id: int
    kind: str
    title: str
    message: str = ""


class Notifications:
    """Toast queue shown to the user."""

    KINDS = ("success", "error", "warning", "info")

    def __init__(self):
        self._toasts: list[Toast] = []
        self._ids = itertools.count(1)

    @property
    def toasts(self) -> list[Toast]:
        return list(self._toasts)

    def push(self, kind: str, title: str, message: str = "") -> Toast:
        if kind not in self.KINDS:
            raise ValidationError(f"kind must be one of: {', '.join(self.KINDS)}")
        toast = Toast(id=next(self._ids), kind=kind, title=title, message=message)
        self._toasts.append(toast)
        return toast

    def dismiss(self, toast_id: int) -> None:
        self._toasts = [t for t in self._toasts if t.id != toast_id]

    def clear(self) -> None:
        self._toasts.clear()


class WorkflowState(str, Enum):
    CART_BUILDING = "CART_BUILDING"
    FORM_CAPTURE = "FORM_CAPTURE"
    SUBMITTED = "SUBMITTED"
    COMMITTED = "COMMITTED"
    REJECTED = "REJECTED"


class WorkflowError(ConflictError):
    """Operation not allowed in the workflow's current state."""


# submitter(form, lines, location_id) -> committed checkout (or its JSON)
Submitter = Callable[[CheckoutForm, list, int], Any]


@dataclass
class CheckoutWorkflow:
    cart: Cart
    submitter: Submitter
    notifications: Notifications
    state: WorkflowState = WorkflowState.CART_BUILDING
    result: Any = None
    last_error: str | None = None
    _history: list[WorkflowState] = field(default_factory=list, repr=False)

    def _move(self, new_state: WorkflowState) -> None:
        self._history.append(self.state)
        self.state = new_state

    def begin(self) -> None:
        """CART_BUILDING -> FORM_CAPTURE. The cart must not be empty."""
        if self.state != WorkflowState.CART_BUILDING:
            raise WorkflowError(f"Cannot start checkout from {self.state.value}")
        if self.cart.is_empty():
            raise ValidationError("Cart is empty")
        self._move(WorkflowState.FORM_CAPTURE)

    def submit(self, form_data: dict):
        """
        Validate the case file and hand it to the submitter with the cart lines.

        Returns the submitter's result on COMMITTED, None on REJECTED. A
        form that fails validation is rejected without calling the submitter.
        """
        if self.state != WorkflowState.FORM_CAPTURE:
            raise WorkflowError(f"Cannot submit from {self.state.value}")

        try:
            form = validate_checkout_form(form_data)
        except ValidationError as e:
            self._reject(str(e))
            return None

        self._move(WorkflowState.SUBMITTED)
        try:
            result = self.submitter(form, self.cart.to_checkout_lines(), self.cart.location_id)
        except (ValueError, RuntimeError) as e:
            self._reject(str(e))
            return None

        self.result = result
        self.last_error = None
        self._move(WorkflowState.COMMITTED)
        self.cart.clear()
        self.notifications.push("success", "Checkout complete", f"{len(form.allegations)} allegation(s) recorded")
        return result

    def _reject(self, message: str) -> None:
        self.last_error = message
        self._move(WorkflowState.REJECTED)
        self.notifications.push("error", "Checkout failed", message)

    def reset(self) -> None:
        """Back to CART_BUILDING (after COMMITTED/REJECTED, or to leave the form)."""
        if self.state == WorkflowState.SUBMITTED:
            raise WorkflowError("Cannot reset while a submission is in flight")
        self.result = None
        self.last_error = None
        self._move(WorkflowState.CART_BUILDING)


def service_submitter(form: CheckoutForm, lines: list, location_id: int):
    """Submitter that commits in-process through checkout_service."""
    from .services.checkout_service import create_checkout
    return create_checkout(location_id=location_id, form=form, items=lines)
