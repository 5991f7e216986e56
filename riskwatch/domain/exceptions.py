"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ProviderAPIError(DomainException):
    """Payment provider returned an error or is unavailable"""

    pass


class InvalidPaymentRequest(DomainException):
    """Payment creation input is missing or out of range"""

    pass


class UnsupportedPaymentMethod(DomainException):
    """Payment method has no provider counterpart"""

    pass


class PaymentCreationFailed(DomainException):
    """Provider refused or failed to create the payment"""

    pass


class InvalidRequest(DomainException):
    """Payment id is missing or malformed"""

    pass


class StatusUnavailable(DomainException):
    """Provider could not report the payment status"""

    pass


class OfferNotFound(DomainException):
    """Offer referenced by a payment does not exist"""

    pass


class InvalidCoordinates(DomainException):
    """Latitude or longitude outside the valid range"""

    pass


class RadiusTooLarge(DomainException):
    """Search radius exceeds the configured ceiling"""

    pass


class InvalidQueryParameter(DomainException):
    """Radius or limit outside the accepted range"""

    pass
