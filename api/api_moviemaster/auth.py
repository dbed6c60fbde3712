from functools import wraps

from flask import g, request

from .errors import MissingCredential

USER_EMAIL_HEADER = "x-user-email"


def get_user_email():
    """
    Read the caller email from the request headers.

    The header is trusted as-is: there is no signature, expiry or session
    check behind it.

    Returns:
        str: Trimmed header value, empty when absent.
    """
    return (request.headers.get(USER_EMAIL_HEADER) or "").strip()


def require_user_email(view):
    """
    Reject requests without a caller email and expose it on ``g.user_email``.

    Args:
        view (Callable): Flask view function to protect.

    Returns:
        Callable: Wrapped view.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        user_email = get_user_email()
        if not user_email:
            raise MissingCredential()
        g.user_email = user_email
        return view(*args, **kwargs)

    return wrapper
