"""Security headers added to every API response."""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds nosniff, frame, referrer and cache headers to responses.

    The GraphiQL page served from `graphql_path` loads scripts, so it is
    not given the locked-down Content-Security-Policy.
    """

    def __init__(self, app, graphql_path: str = "/graphql", hsts: bool = False):
        super().__init__(app)
        self.graphql_path = graphql_path
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not request.url.path.startswith(self.graphql_path):
            response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        # Authenticated responses must not be cached by intermediaries.
        if request.headers.get("Authorization"):
            response.headers["Cache-Control"] = "no-store"
        return response
