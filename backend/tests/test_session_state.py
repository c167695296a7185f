import unittest

from rainbow_room.errors import ValidationError, InsufficientStockError
from rainbow_room.services import inventory_service
from rainbow_room.session_state import (
    Cart,
    CartItem,
    Notifications,
    CheckoutWorkflow,
    WorkflowState,
    WorkflowError,
    service_submitter,
)


VALID_FORM = {
    "worker_first_name": "Dana",
    "worker_last_name": "Reyes",
    "department": "Family Compass",
    "case_number": "FC-9",
    "allegations": ["Emotional Abuse"],
    "parent_guardian_first_name": "Jordan",
    "parent_guardian_last_name": "Lee",
    "zip_code": "75024",
    "number_of_children": 3,
}


def _pants(qty=2, size_id=11, location_id=1):
    return CartItem(item_id=7, size_id=size_id, name="Boys Pants", size_label="4T", quantity=qty, location_id=location_id)


class CartTests(unittest.TestCase):
    def test_add_merges_same_item_and_size(self):
        cart = Cart()
        cart.add(_pants(2))
        cart.add(_pants(3))
        cart.add(_pants(1, size_id=12))

        self.assertEqual(cart.item_count, 2)
        self.assertEqual(cart.total_items, 6)
        self.assertEqual(
            cart.to_checkout_lines(),
            [
                {"item_id": 7, "size_id": 11, "quantity": 5},
                {"item_id": 7, "size_id": 12, "quantity": 1},
            ],
        )

    def test_merge_leaves_callers_item_untouched(self):
        cart = Cart()
        first = _pants(2)
        cart.add(first)
        cart.add(_pants(3))

        self.assertEqual(first.quantity, 2)
        self.assertEqual(cart.total_items, 5)

    def test_update_quantity_to_zero_removes_line(self):
        cart = Cart()
        cart.add(_pants(2))
        cart.update_quantity(7, 11, 4)
        self.assertEqual(cart.total_items, 4)
        cart.update_quantity(7, 11, 0)
        self.assertTrue(cart.is_empty())

    def test_remove_and_clear(self):
        cart = Cart()
        cart.add(_pants(2))
        cart.add(_pants(1, size_id=12))
        cart.remove(7, 11)
        self.assertEqual(cart.item_count, 1)
        cart.clear()
        self.assertEqual(cart.total_items, 0)

    def test_rejects_non_positive_and_mixed_locations(self):
        cart = Cart()
        with self.assertRaises(ValidationError):
            cart.add(_pants(0))
        cart.add(_pants(1))
        with self.assertRaises(ValidationError):
            cart.add(_pants(1, size_id=12, location_id=2))


class NotificationsTests(unittest.TestCase):
    def test_push_dismiss_clear(self):
        notes = Notifications()
        first = notes.push("success", "Saved")
        notes.push("error", "Failed", "boom")
        self.assertEqual([t.kind for t in notes.toasts], ["success", "error"])

        notes.dismiss(first.id)
        self.assertEqual([t.title for t in notes.toasts], ["Failed"])
        notes.clear()
        self.assertEqual(notes.toasts, [])

    def test_unknown_kind(self):
        with self.assertRaises(ValidationError):
            Notifications().push("fatal", "x")


class CheckoutWorkflowTests(unittest.TestCase):
    def setUp(self):
        self.cart = Cart()
        self.notes = Notifications()
        self.calls = []

    def _workflow(self, submitter=None):
        def ok(form, lines, location_id):
            self.calls.append((form, lines, location_id))
            return {"id": 1}
        return CheckoutWorkflow(cart=self.cart, submitter=submitter or ok, notifications=self.notes)

    def test_begin_requires_items(self):
        wf = self._workflow()
        with self.assertRaises(ValidationError):
            wf.begin()
        self.assertEqual(wf.state, WorkflowState.CART_BUILDING)

    def test_successful_submit_commits_and_clears_cart(self):
        self.cart.add(_pants(2))
        wf = self._workflow()
        wf.begin()
        result = wf.submit(VALID_FORM)

        self.assertEqual(result, {"id": 1})
        self.assertEqual(wf.state, WorkflowState.COMMITTED)
        self.assertTrue(self.cart.is_empty())
        form, lines, location_id = self.calls[0]
        self.assertEqual(form.case_number, "FC-9")
        self.assertEqual(lines, [{"item_id": 7, "size_id": 11, "quantity": 2}])
        self.assertEqual(location_id, 1)
        self.assertEqual(self.notes.toasts[-1].kind, "success")

    def test_invalid_form_never_reaches_submitter(self):
        self.cart.add(_pants(2))
        wf = self._workflow()
        wf.begin()
        result = wf.submit(dict(VALID_FORM, zip_code="1234"))

        self.assertIsNone(result)
        self.assertEqual(self.calls, [])
        self.assertEqual(wf.state, WorkflowState.REJECTED)
        self.assertEqual(wf.last_error, "Invalid ZIP code format")
        self.assertEqual(self.cart.total_items, 2)

    def test_submitter_failure_keeps_cart_and_allows_retry(self):
        def short(form, lines, location_id):
            raise InsufficientStockError("Insufficient stock", available=1, requested=2)

        self.cart.add(_pants(2))
        wf = self._workflow(short)
        wf.begin()
        self.assertIsNone(wf.submit(VALID_FORM))
        self.assertEqual(wf.state, WorkflowState.REJECTED)
        self.assertEqual(self.cart.total_items, 2)
        self.assertEqual(self.notes.toasts[-1].kind, "error")

        wf.reset()
        self.assertEqual(wf.state, WorkflowState.CART_BUILDING)
        self.assertIsNone(wf.last_error)

    def test_submit_outside_form_capture_is_refused(self):
        wf = self._workflow()
        with self.assertRaises(WorkflowError):
            wf.submit(VALID_FORM)


def test_workflow_through_checkout_service(pants_4t, mckinney):
    cart = Cart()
    cart.add(CartItem(
        item_id=pants_4t.item_id,
        size_id=pants_4t.id,
        name="Boys Pants",
        size_label="4T",
        quantity=2,
        location_id=mckinney.id,
    ))
    wf = CheckoutWorkflow(cart=cart, submitter=service_submitter, notifications=Notifications())
    wf.begin()
    checkout = wf.submit(VALID_FORM)

    assert wf.state == WorkflowState.COMMITTED
    assert checkout.total_items == 2
    assert cart.is_empty()
    assert inventory_service.get_size_row(pants_4t.id).current_quantity == 8
