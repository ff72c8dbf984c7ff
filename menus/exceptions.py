# exceptions.py
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
from django.core.exceptions import ValidationError
from django.db import IntegrityError
import logging
from django.conf import settings

logger = logging.getLogger(__name__)


# =============== DOMAIN ERRORS ===============

class MenuBuilderError(Exception):
    """Base class for failures surfaced to API callers with a stable code"""
    code = 'menu_builder_error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Menu operation failed'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class MenuNotFound(MenuBuilderError):
    code = 'menu_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Menu not found'


class ItemNotFound(MenuBuilderError):
    code = 'item_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Menu item not found'


class LocaleRequired(MenuBuilderError):
    code = 'locale_required'
    default_message = 'Locale is required but missing'


class InvalidLocale(MenuBuilderError):
    code = 'invalid_locale'
    default_message = 'Locale is not configured'


class InvalidParent(MenuBuilderError):
    code = 'invalid_parent'
    default_message = 'Invalid parent for menu item'


class ConcurrencyConflict(MenuBuilderError):
    code = 'concurrency_conflict'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Menu is being modified by another request, try again'


class StoreError(MenuBuilderError):
    code = 'store_error'
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = 'Menu changes could not be saved'


def error_payload(code, message, details=None, status_code=400):
    return {
        'success': False,
        'error': code,
        'message': message,
        'details': details or {},
        'status_code': status_code,
    }


def menu_exception_handler(exc, context):
    """
    Exception handler for the menu builder API.

    Every failure leaves as ``{"success": false, "error": <code>, ...}``.
    """
    if isinstance(exc, MenuBuilderError):
        logger.info(f"Menu builder error {exc.code}: {exc.message}")
        return Response(
            error_payload(exc.code, exc.message, exc.details, exc.status_code),
            status=exc.status_code,
        )

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        code = 'error'
        message = 'An error occurred'

        # Handle specific error types
        if response.status_code == 400:
            code, message = 'validation_error', 'Validation error'
        elif response.status_code == 401:
            code, message = 'not_authenticated', 'Authentication required'
        elif response.status_code == 403:
            code, message = 'permission_denied', 'Permission denied'
        elif response.status_code == 404:
            code, message = 'not_found', 'Resource not found'
        elif response.status_code == 405:
            code, message = 'method_not_allowed', 'Method not allowed'

        response.data = error_payload(code, message, response.data, response.status_code)

    # Handle Django ValidationError
    elif isinstance(exc, ValidationError):
        logger.error(f"Validation Error: {exc}")
        response = Response(
            error_payload('validation_error', 'Validation error', {'non_field_errors': exc.messages}),
            status=status.HTTP_400_BAD_REQUEST,
        )

    # Handle Django IntegrityError
    elif isinstance(exc, IntegrityError):
        logger.error(f"Integrity Error: {exc}")
        response = Response(
            error_payload(
                'integrity_error',
                'Database integrity error',
                {'error': 'This operation violates database constraints'},
            ),
            status=status.HTTP_400_BAD_REQUEST,
        )

    # Handle unexpected errors
    else:
        logger.exception(f"Unexpected Error: {exc}")
        response = Response(
            error_payload(
                'server_error',
                'An unexpected error occurred',
                {'error': str(exc)} if settings.DEBUG else {},
                status.HTTP_500_INTERNAL_SERVER_ERROR,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return response
