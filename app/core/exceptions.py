class BlogPlatformException(Exception):
    """Base exception for the blog platform identity core"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IdentificationError(BlogPlatformException):
    """Raised when no tenant identifier can be derived from the request"""

    status_code = 400


class ValidationError(BlogPlatformException):
    """Raised for malformed input and business validation errors"""

    status_code = 400


class PolicyError(ValidationError):
    """Raised when a password violates the tenant's password policy"""

    pass


class UnauthenticatedError(BlogPlatformException):
    """Raised when a credential is missing, invalid or expired"""

    status_code = 401


class InvalidTokenError(UnauthenticatedError):
    """Raised when a token is malformed or its signature/claims don't verify"""

    pass


class ExpiredTokenError(UnauthenticatedError):
    """Raised when a token is past its expiry"""

    pass


class ForbiddenError(BlogPlatformException):
    """Raised for inactive tenants, role gates and admin-protection violations"""

    status_code = 403


class TenantMismatchError(ForbiddenError):
    """Raised when a valid token carries another tenant's id"""

    pass


class NotFoundError(BlogPlatformException):
    """Raised when a tenant, user or resource is absent"""

    status_code = 404


class ConfigurationError(BlogPlatformException):
    """Raised when server-side key material or settings are missing"""

    status_code = 500
