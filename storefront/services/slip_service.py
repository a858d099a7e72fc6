import io

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from storefront.config import settings
from storefront.models.order import Order
from storefront.utils.timeutils import utcnow


def build_payment_slip(order: Order) -> bytes:
    """Render the payment slip PDF for a paid order and return its bytes."""
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    y = height - 72
    c.setFont("Helvetica-Bold", 18)
    c.drawCentredString(width / 2, y, f"{settings.STORE_NAME} - Payment Slip")

    c.setFont("Helvetica", 11)
    y -= 40
    for line in (
        f"Order: {order.id}",
        f"Tracking ID: {order.tracking_id}",
        f"Customer: {order.name or '-'}",
        f"Email: {order.email or '-'}",
        f"Ordered: {order.created_at:%Y-%m-%d %H:%M}",
        f"Paid: {(order.paid_at or utcnow()):%Y-%m-%d %H:%M}",
        f"Payment reference: {order.payment_intent_id or '-'}",
    ):
        c.drawString(72, y, line)
        y -= 18

    y -= 12
    c.setFont("Helvetica-Bold", 12)
    c.drawString(72, y, "Items")
    c.setFont("Helvetica", 11)
    y -= 20

    for index, item in enumerate(order.items, start=1):
        c.drawString(
            72,
            y,
            f"{index}. {item.product_name} ({item.size}) x {item.quantity}",
        )
        c.drawRightString(width - 72, y, f"{item.total_price:,.2f}")
        y -= 18
        if y < 96:
            c.showPage()
            c.setFont("Helvetica", 11)
            y = height - 72

    y -= 12
    c.setFont("Helvetica-Bold", 12)
    c.drawRightString(
        width - 72, y, f"Total: {order.total_amount:,.2f} {settings.CURRENCY}"
    )

    c.save()
    return buffer.getvalue()
