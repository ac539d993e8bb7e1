from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    status_code: int,
    message: Optional[str] = None,
    data: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Create a standardized JSON response for successful requests.

    Args:
        status_code (int): HTTP status code to return (e.g. 200, 201).
        message (Optional[str]): Human-readable description of the result.
        data (Optional[dict]): Payload fields merged into the top level of the body.

    Returns:
        JSONResponse: Contains:
            - success: True
            - status_code: same as HTTP status code
            - message: same message passed (omitted when None)
            - every key of data
    """

    response_data: Dict[str, Any] = {"success": True, "status_code": status_code}
    if message is not None:
        response_data["message"] = message
    response_data.update(data or {})

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response_data))


def auth_response(
    authenticated: bool,
    user: Optional[Any] = None,
    message: Optional[str] = None,
    status_code: int = 200,
) -> JSONResponse:
    """
    Create the session-check response.

    Args:
        authenticated (bool): Whether the request carried a valid session for a known entrant.
        user (Optional[Any]): Entrant payload, only set when authenticated.
        message (Optional[str]): Why the request is not authenticated.
        status_code (int): HTTP status code, 200 unless the check itself failed.

    Returns:
        JSONResponse: {"authenticated": bool, "user"?: {...}, "message"?: str}
    """

    response_data: Dict[str, Any] = {"authenticated": authenticated}
    if user is not None:
        response_data["user"] = user
    if message is not None:
        response_data["message"] = message

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response_data))


def error_response(
    *,
    status_code: int,
    message: str,
    error: str = "ERROR",
    errors: Optional[Dict[str, List[str]]] = None,
    data: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """
    Create a standardized JSON response for failed requests.

    Args:
        status_code (int): HTTP status code representing the error (e.g. 400, 404, 422, 429).
        message (str): High-level human-readable error description.
        error (str): Machine-readable error code (e.g. "VALIDATION_ERROR", "RATE_LIMIT_EXCEEDED").
            Defaults to "ERROR".
        errors (Optional[Dict[str, List[str]]]): Optional field-level validation errors
            in the form:
                {
                    "field_name": ["error message 1", "error message 2"],
                    ...
                }
        data (Optional[dict]): Extra fields merged into the body (e.g. retry information).

    Returns:
        JSONResponse: Standard error structure:
            {
                "success": false,
                "error": "<ERROR_CODE>",
                "message": "<message>",
                "status_code": <status_code>,
                "errors": {...}
            }
    """

    response_data: Dict[str, Any] = {
        "success": False,
        "error": error,
        "message": message,
        "status_code": status_code,
        "errors": errors or {},
    }
    response_data.update(data or {})

    return JSONResponse(status_code=status_code, content=jsonable_encoder(response_data))
