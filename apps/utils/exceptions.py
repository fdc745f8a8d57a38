from rest_framework.views import exception_handler
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Product not found').
    The message is safe to show to the shopper.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "business_error"

    def __init__(self, message, code=None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class ProductNotFound(BusinessLogicException):
    default_code = "product_not_found"

    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class PriceMismatch(BusinessLogicException):
    default_code = "price_mismatch"

    def __init__(self, message="Cart total mismatch. Please refresh your cart."):
        super().__init__(message)


class PaymentVerificationFailed(BusinessLogicException):
    default_code = "payment_verification_failed"

    def __init__(self, message="Payment verification failed"):
        super().__init__(message)


class DuplicateCheckout(BusinessLogicException):
    status_code = status.HTTP_409_CONFLICT
    default_code = "duplicate_checkout"


class UpstreamServiceError(BusinessLogicException):
    """
    A third party (database, FTP host, mail) failed. Detail stays in the logs;
    the caller only ever sees the generic message.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "upstream_error"


def _first_error_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_error_message(value)
    if isinstance(detail, list) and detail:
        return _first_error_message(detail[0])
    return str(detail)


def custom_exception_handler(exc, context):
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, BusinessLogicException):
        if exc.status_code >= 500:
            logger.error(f"Upstream failure in {context.get('view').__class__.__name__}: {exc.__cause__ or exc}")
        return Response(
            {"error": exc.message, "code": exc.code},
            status=exc.status_code
        )

    if isinstance(exc, ValidationError) and response is not None:
        response.data = {
            "error": _first_error_message(exc.detail),
            "details": response.data,
        }
        return response

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    if isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"error": str(response.data["detail"])}

    return response
