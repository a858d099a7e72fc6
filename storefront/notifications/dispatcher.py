import logging
from typing import List, Optional, Tuple

from storefront.config import settings
from storefront.notifications.rules import NOTIFICATION_RULES
from storefront.notifications.channels import Channel
from storefront.notifications.email_handlers import send_user_email, send_admin_email
from storefront.notifications.events import NotificationEvent

logger = logging.getLogger(__name__)


def dispatch_order_event(
    event: NotificationEvent,
    *,
    to: Optional[str],
    attachments: Optional[List[Tuple[str, bytes, str]]] = None,
    notify_admin: bool = True,
    **context,
) -> bool:
    """
    Central notification dispatcher.

    Fire-and-forget: called after the state change has been committed, never
    raises, logs every failure. Returns True when the customer email went out.
    """

    rules = NOTIFICATION_RULES.get(event, {})
    context.setdefault("store_name", settings.STORE_NAME)

    try:
        subject = rules["subject"].format(**context)
    except (KeyError, IndexError):
        logger.exception(f"Cannot build subject for {event.value}")
        return False

    sent = False

    # -------------------------
    # USER EMAIL
    # -------------------------
    if rules.get(Channel.EMAIL_USER):
        if not to:
            logger.warning(f"No recipient for {event.value} email, skipping")
        else:
            try:
                sent = send_user_email(
                    template=rules["template"],
                    subject=subject,
                    to=to,
                    attachments=attachments,
                    **context,
                )
            except Exception:
                logger.exception(f"User email failed for {event.value} to {to}")
                sent = False

    # -------------------------
    # ADMIN EMAIL
    # -------------------------
    if notify_admin and rules.get(Channel.EMAIL_ADMIN):
        try:
            send_admin_email(
                template=rules["template"],
                subject=f"[admin] {subject}",
                **context,
            )
        except Exception:
            logger.exception(f"Admin email failed for {event.value}")

    return sent
