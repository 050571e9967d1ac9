"""Exceptions raised outside the Result flow."""


class ConfigurationError(Exception):
    """Startup configuration is missing or insecure. Never caught at runtime."""


class TokenError(Exception):
    code = "TOKEN_INVALID"


class TokenExpired(TokenError):
    code = "TOKEN_EXPIRED"


class TokenInvalid(TokenError):
    code = "TOKEN_INVALID"
