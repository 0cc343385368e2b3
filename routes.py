"""Route lists used by the route guard middleware.

Paths are matched exactly, apart from the API auth prefix which matches
everything beneath it.
"""

# Reachable without a session.
PUBLIC_ROUTES = [
    "/",
    "/categories",
]

# Sign-in related pages; signed-in users are sent to DEFAULT_LOGIN_REDIRECT.
AUTH_ROUTES = [
    "/auth/login",
    "/auth/register",
    "/auth/error",
    "/auth/new-verification",
    "/auth/reset",
    "/auth/new-password",
]

# OAuth callbacks, session lookup and sign-out always pass through.
API_AUTH_PREFIX = "/api/auth"

DEFAULT_LOGIN_REDIRECT = "/dashboard"

LOGIN_ROUTE = "/auth/login"

# Auth routes that also serve signed-in users, e.g. confirming a changed email.
OPEN_AUTH_ROUTES = [
    "/auth/new-verification",
]
