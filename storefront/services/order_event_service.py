from typing import Optional

from sqlmodel import Session

from storefront.models.order_event import OrderEvent
from storefront.utils.timeutils import utcnow


def log_order_event(
    session: Session,
    order_id: int,
    event_type: str,
    label: str,
    order_kind: str = "order",
    created_by: str = "system",
    meta: Optional[dict] = None,
):
    """
    Append-only event log for the order timeline.
    Added to the caller's session, committed with the status change.
    """

    event = OrderEvent(
        order_kind=order_kind,
        order_id=order_id,
        event_type=event_type,
        label=label,
        meta=meta,
        created_by=created_by,
        created_at=utcnow(),
    )

    session.add(event)
