"""Tests for order status transitions."""
import pytest

from app.core.exceptions import InvalidStateError
from app.services import order_state_machine as sm


class TestTransitions:

    @pytest.mark.parametrize("current,new", [
        ("pending", "confirmed"),
        ("pending", "cancelled"),
        ("confirmed", "processing"),
        ("confirmed", "cancelled"),
        ("processing", "shipped"),
        ("processing", "cancelled"),
        ("shipped", "delivered"),
    ])
    def test_allowed(self, current, new):
        assert sm.can_transition(current, new)
        sm.validate_transition(current, new)

    @pytest.mark.parametrize("current,new", [
        ("pending", "shipped"),
        ("pending", "delivered"),
        ("confirmed", "pending"),
        ("shipped", "cancelled"),
        ("shipped", "processing"),
    ])
    def test_rejected(self, current, new):
        assert not sm.can_transition(current, new)
        with pytest.raises(InvalidStateError) as exc_info:
            sm.validate_transition(current, new)
        assert "Allowed transitions" in exc_info.value.message

    @pytest.mark.parametrize("terminal", ["delivered", "cancelled"])
    def test_terminal_states(self, terminal):
        assert sm.is_terminal(terminal)
        assert sm.get_allowed_transitions(terminal) == []
        with pytest.raises(InvalidStateError) as exc_info:
            sm.validate_transition(terminal, "pending")
        assert "terminal state" in exc_info.value.message

    def test_same_status_is_noop(self):
        sm.validate_transition("delivered", "delivered")

    def test_unknown_status(self):
        with pytest.raises(InvalidStateError):
            sm.validate_transition("pending", "teleported")


class TestStatusChecks:

    def test_items_editable_only_when_pending(self):
        assert sm.can_edit_items("pending")
        assert not sm.can_edit_items("confirmed")

    def test_delete_blocked_once_shipped(self):
        assert sm.can_delete("pending")
        assert sm.can_delete("processing")
        assert sm.can_delete("cancelled")
        assert not sm.can_delete("shipped")
        assert not sm.can_delete("delivered")

    def test_force_delivered(self):
        assert sm.can_force_delivered("processing")
        assert not sm.can_force_delivered("cancelled")
