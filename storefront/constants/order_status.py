"""
Order status table shared by ordinary orders and special (custom size) orders.

Ordinary orders start at NEW, move to PENDING when the payment webhook
confirms the checkout and are then advanced one step at a time by an admin.
Special orders start at NEW, enter AWAITING_PAYMENT when an admin sets the
price and leave it only through the payment webhook.
"""
from enum import Enum
from typing import Optional, Union

from fastapi import HTTPException


class OrderStatus(str, Enum):
    NEW = "pending"
    AWAITING_PAYMENT = "รอชำระเงิน"
    PENDING = "รอดำเนินการ"
    PREPARING = "กำลังดำเนินการจัดเตรียมสินค้า"
    SHIPPING = "กำลังดำเนินการจัดส่งสินค้า"
    DELIVERED = "จัดส่งสินค้าสำเร็จเเล้ว"
    CANCELLED = "ยกเลิก"


FULFILMENT_FLOW = [
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.SHIPPING,
    OrderStatus.DELIVERED,
]

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Entered only by checkout, price approval or cancellation, never by an admin "next status"
RESTRICTED_TARGETS = {
    OrderStatus.NEW,
    OrderStatus.AWAITING_PAYMENT,
    OrderStatus.CANCELLED,
}

# Left only when the payment webhook fires
PRE_PAYMENT_STATUSES = {OrderStatus.NEW, OrderStatus.AWAITING_PAYMENT}


class TransitionError(HTTPException):
    """A requested status change the table does not allow."""

    def __init__(self, status_code: int, detail: str):
        super().__init__(status_code=status_code, detail=detail)


def parse_status(value: Union[str, OrderStatus, None]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise TransitionError(400, f"status must be one of: {allowed}")


def next_status(current: OrderStatus) -> Optional[OrderStatus]:
    if current not in FULFILMENT_FLOW:
        return None
    index = FULFILMENT_FLOW.index(current)
    if index + 1 >= len(FULFILMENT_FLOW):
        return None
    return FULFILMENT_FLOW[index + 1]


def check_transition(current, requested, *, paid: bool) -> OrderStatus:
    """
    Validate an admin forward progression and return the new status.

    Rules, in order: the requested value must be a known status that an
    admin may set, must differ from the current one, the current status must
    not be terminal, the order must be paid and the requested status must be
    the immediate successor in FULFILMENT_FLOW.
    """
    current = OrderStatus(current)
    requested = parse_status(requested)

    if requested == OrderStatus.CANCELLED:
        raise TransitionError(400, "Use the cancellation flow to cancel an order")
    if requested in RESTRICTED_TARGETS:
        raise TransitionError(400, f'Status "{requested.value}" cannot be set directly')

    if requested == current:
        raise TransitionError(400, f'Order is already in status "{current.value}"')

    if current in TERMINAL_STATUSES:
        raise TransitionError(400, f'Cannot change status from "{current.value}"')

    if not paid:
        raise TransitionError(403, "Order has not been paid")

    if current in PRE_PAYMENT_STATUSES:
        raise TransitionError(400, "Order is waiting for payment confirmation")

    expected = next_status(current)
    if requested != expected:
        raise TransitionError(
            400,
            f'Status must follow the sequence {" -> ".join(s.value for s in FULFILMENT_FLOW)}; '
            f'next allowed status is "{expected.value}"',
        )

    return requested


def check_cancellation(current) -> OrderStatus:
    current = OrderStatus(current)

    if current == OrderStatus.CANCELLED:
        raise TransitionError(409, "Order has already been cancelled")
    if current in (OrderStatus.SHIPPING, OrderStatus.DELIVERED):
        raise TransitionError(
            400,
            f'Order cannot be cancelled once it is "{current.value}"',
        )

    return OrderStatus.CANCELLED
