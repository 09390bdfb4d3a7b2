# app/core/response.py
import math
from typing import Any, Dict, Literal, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    field: Optional[str] = None
    message: str
    code: Optional[str] = None


class ResponseModel(BaseModel):
    status: Literal["success", "error"]
    msg: str
    data: Optional[Any] = None


class ErrorResponseModel(ResponseModel):
    status: Literal["error"] = "error"
    error_code: Optional[str] = None
    details: Optional[list[ErrorDetail]] = None


def success_response(
    msg: str = "OK", data: Any = None, status_code: int = 200
) -> JSONResponse:
    payload = ResponseModel(status="success", msg=msg, data=jsonable_encoder(data))
    return JSONResponse(
        status_code=status_code, content=payload.model_dump(exclude_none=True)
    )


def error_response(
    msg: str,
    data: Any = None,
    status_code: int = 400,
    error_code: Optional[str] = None,
    details: Optional[list[ErrorDetail]] = None,
) -> JSONResponse:
    payload = ErrorResponseModel(
        msg=msg,
        error_code=error_code,
        details=details,
        data=jsonable_encoder(data),
    )
    return JSONResponse(
        status_code=status_code, content=payload.model_dump(exclude_none=True)
    )


def validation_error_response(
    errors: list[Dict[str, Any]], status_code: int = 422
) -> JSONResponse:
    """Flatten pydantic errors into per-field details."""
    details = []
    for err in errors:
        loc = err.get("loc", [])
        field = ".".join(str(x) for x in loc if x != "body")
        details.append(
            ErrorDetail(
                field=field or None,
                message=err.get("msg", "Validation error"),
                code="VALIDATION_ERROR",
            )
        )
    return error_response(
        msg="Invalid request parameters",
        details=details,
        status_code=status_code,
        error_code="VALIDATION_ERROR",
    )


def paginated(results: list, *, page: int, page_size: int, total: int) -> Dict[str, Any]:
    return {
        "results": results,
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if page_size else 0,
        },
    }
