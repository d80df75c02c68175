from typing import Any, Dict, List, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(data: Any = None, status_code: int = status.HTTP_200_OK,
                     headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    resp_obj = {"status": "success", "data": jsonable_encoder(data), "errors": []}
    return JSONResponse(status_code=status_code, content=resp_obj, headers=headers)


def failure_response(status_code: int, errors: List[Any], data: Any = None,
                     headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    resp_obj = {"status": "failure", "data": jsonable_encoder(data), "errors": errors}
    return JSONResponse(status_code=status_code, content=resp_obj, headers=headers)
