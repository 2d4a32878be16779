from __future__ import annotations

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from src.application.results import Result


# PUBLIC_INTERFACE
def envelope(result: Result[Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """
    Render a handler Result as the standard envelope.

    Failed results (expected business failures) are sent as 400.
    """
    code = status_code if result.succeeded else status.HTTP_400_BAD_REQUEST
    return JSONResponse(status_code=code, content=result.model_dump(mode="json"))
