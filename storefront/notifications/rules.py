from storefront.notifications.events import NotificationEvent
from storefront.notifications.channels import Channel


# event -> template under templates/emails, subject (str.format over the context), channels
NOTIFICATION_RULES = {

    NotificationEvent.REGISTRATION_OTP: {
        "template": "registration_otp.html",
        "subject": "{store_name}: your verification code",
        Channel.EMAIL_USER: True,
    },

    NotificationEvent.PASSWORD_RESET: {
        "template": "password_reset.html",
        "subject": "{store_name}: reset your password",
        Channel.EMAIL_USER: True,
    },

    NotificationEvent.EMAIL_CHANGE: {
        "template": "email_change.html",
        "subject": "{store_name}: confirm your new email address",
        Channel.EMAIL_USER: True,
    },

    NotificationEvent.ORDER_PLACED: {
        "template": "order_placed.html",
        "subject": "{store_name}: order received #{tracking_id}",
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },

    NotificationEvent.PAYMENT_SUCCESS: {
        "template": "payment_success.html",
        "subject": "{store_name}: payment received #{tracking_id}",
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },

    NotificationEvent.STATUS_CHANGED: {
        "template": "status_changed.html",
        "subject": "{store_name}: order #{tracking_id} status updated",
        Channel.EMAIL_USER: True,
    },

    NotificationEvent.ORDER_CANCELLED: {
        "template": "order_cancelled.html",
        "subject": "{store_name}: order #{tracking_id} cancelled",
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },

    NotificationEvent.RETURN_REQUESTED: {
        "template": "return_requested.html",
        "subject": "{store_name}: return request for #{tracking_id}",
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },

    NotificationEvent.RETURN_PROCESSED: {
        "template": "return_processed.html",
        "subject": "{store_name}: return request result #{tracking_id}",
        Channel.EMAIL_USER: True,
    },

    NotificationEvent.SPECIAL_ORDER_PLACED: {
        "template": "special_order_placed.html",
        "subject": "{store_name}: special size order received #{tracking_id}",
        Channel.EMAIL_USER: True,
        Channel.EMAIL_ADMIN: True,
    },

    NotificationEvent.SPECIAL_ORDER_PRICED: {
        "template": "special_order_priced.html",
        "subject": "{store_name}: price for special order #{tracking_id}",
        Channel.EMAIL_USER: True,
    },

}
