from storefront.services.email_service import send_email
from storefront.utils.template import render_template
from storefront.config import settings


def send_user_email(template, subject, to, attachments=None, **ctx) -> bool:
    html = render_template(f"emails/{template}", **ctx)
    return send_email(to=to, subject=subject, html=html, attachments=attachments)


def send_admin_email(template, subject, **ctx) -> bool:
    if not settings.ADMIN_EMAILS:
        return False
    html = render_template(f"emails/{template}", **ctx)
    return send_email(to=settings.ADMIN_EMAILS, subject=subject, html=html)
