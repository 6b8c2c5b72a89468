from rest_framework_simplejwt.tokens import AccessToken


def issue_token_for_user(user) -> str:
    """Access token carrying {userId, email, userType}; lifetime from SIMPLE_JWT."""
    token = AccessToken.for_user(user)
    token["email"] = user.email
    token["userType"] = user.role
    return str(token)
