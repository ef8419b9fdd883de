import hmac

from django.conf import settings
from rest_framework import authentication, exceptions


class CronSecretAuthentication(authentication.BaseAuthentication):
    """
    Authenticates scheduler calls with ``Authorization: Bearer <COMMISSION_CRON_SECRET>``.

    When no secret is configured the cron endpoints are open. A missing or
    wrong token answers 401 with a ``WWW-Authenticate: Bearer`` header.
    """

    keyword = "Bearer"

    def authenticate(self, request):
        secret = getattr(settings, "COMMISSION_CRON_SECRET", "")
        if not secret:
            return None

        header = authentication.get_authorization_header(request).decode("latin-1")
        expected = f"{self.keyword} {secret}"
        if not hmac.compare_digest(header.encode(), expected.encode()):
            raise exceptions.AuthenticationFailed("Unauthorized")

        return (None, secret)

    def authenticate_header(self, request):
        return self.keyword
