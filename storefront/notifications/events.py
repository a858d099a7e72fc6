from enum import Enum


class NotificationEvent(str, Enum):
    REGISTRATION_OTP = "registration_otp"
    PASSWORD_RESET = "password_reset"
    EMAIL_CHANGE = "email_change"

    ORDER_PLACED = "order_placed"
    PAYMENT_SUCCESS = "payment_success"
    STATUS_CHANGED = "status_changed"
    ORDER_CANCELLED = "order_cancelled"
    RETURN_REQUESTED = "return_requested"
    RETURN_PROCESSED = "return_processed"

    SPECIAL_ORDER_PLACED = "special_order_placed"
    SPECIAL_ORDER_PRICED = "special_order_priced"
