"""
Order state machine.

PLACED -> ACCEPTED -> SHIPPED -> COMPLETED, and PLACED -> CANCELLED.
Farmers advance one step at a time; buyers may only cancel a PLACED order.
"""
import enum
from typing import Dict, Optional, Tuple, Union

from models.order import OrderStatus


class Role(str, enum.Enum):
    BUYER = "buyer"
    FARMER = "farmer"
    ADMIN = "admin"


TRANSITIONS: Dict[Tuple[OrderStatus, OrderStatus], Role] = {
    (OrderStatus.PLACED, OrderStatus.ACCEPTED): Role.FARMER,
    (OrderStatus.ACCEPTED, OrderStatus.SHIPPED): Role.FARMER,
    (OrderStatus.SHIPPED, OrderStatus.COMPLETED): Role.FARMER,
    (OrderStatus.PLACED, OrderStatus.CANCELLED): Role.BUYER,
}

TERMINAL_STATES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    # Raises ValueError for unknown names
    if isinstance(value, OrderStatus):
        return value
    return OrderStatus(str(value or "").strip().upper())


def parse_role(value: Union[str, Role, None]) -> Optional[Role]:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value or "").strip().lower())
    except ValueError:
        return None


def can_transition(current, target, role) -> bool:
    try:
        current, target = parse_status(current), parse_status(target)
    except ValueError:
        return False
    owner = TRANSITIONS.get((current, target))
    return owner is not None and owner == parse_role(role)


def next_status(current) -> Optional[OrderStatus]:
    """The farmer's only legal move from `current`, if any."""
    current = parse_status(current)
    for (src, dst), owner in TRANSITIONS.items():
        if src == current and owner == Role.FARMER:
            return dst
    return None


def is_terminal(status) -> bool:
    return parse_status(status) in TERMINAL_STATES
