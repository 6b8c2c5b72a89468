# apps/accounts/authentication.py
import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken

logger = logging.getLogger(__name__)


class MarketplaceJWTAuthentication(JWTAuthentication):
    """
    Authenticate requests using Authorization: Bearer <token>.

    Same as SimpleJWT's JWTAuthentication (the token subject must still exist
    and be active) but logs rejected credentials.
    """

    def get_validated_token(self, raw_token):
        try:
            return super().get_validated_token(raw_token)
        except InvalidToken:
            logger.warning("Token verification failed")
            raise

    def get_user(self, validated_token):
        try:
            return super().get_user(validated_token)
        except AuthenticationFailed:
            logger.warning("Invalid token - user not found user=%s", validated_token.get("userId"))
            raise
