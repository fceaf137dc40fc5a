"""
Error taxonomy shared by the exam catalog and the assessment engine.

Services raise these; the HTTP layer never catches them itself; the
``exception_handler`` below is wired into REST_FRAMEWORK["EXCEPTION_HANDLER"]
and turns them into JSON responses.
"""
import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class EngineError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Exam engine error."
    default_code = "engine_error"

    @property
    def kind(self):
        return self.default_code

    @property
    def message(self):
        return str(self.detail)


class NotFound(EngineError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"


class ValidationError(EngineError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input."
    default_code = "validation_error"


class InvalidState(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Operation not allowed in the current state."
    default_code = "invalid_state"


class Conflict(EngineError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


def exception_handler(exc, context):
    response = drf_exception_handler(exc, context)
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else "unknown view"

    if isinstance(exc, EngineError):
        logger.warning("%s rejected in %s: %s", exc.kind, view_name, exc.message)
        response.data = {"status": "fail", "kind": exc.kind, "message": exc.message}
    elif response is None:
        # Django turns this into a 500 once it propagates.
        logger.error("Unhandled error in %s", view_name, exc_info=exc)

    return response
