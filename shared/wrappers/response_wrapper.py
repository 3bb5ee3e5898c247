import json
import logging
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse
from fastapi import Request

from shared.core.schemas import JsonOutResult
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = {"status", "status_code", "message"}


def is_wrapped(data) -> bool:
    return isinstance(data, dict) and ENVELOPE_KEYS.issubset(data.keys())


class JsonResponseMiddleware(BaseHTTPMiddleware):
    """Wraps every JSON body into the JsonOutResult envelope."""

    async def dispatch(self, request: Request, call_next: Callable):
        # Skip docs/openapi endpoints
        if request.url.path.startswith(("/openapi", "/docs", "/redoc")):
            return await call_next(request)

        response = await call_next(request)

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            return response

        # Read the full body
        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk

        headers = {k: v for k, v in response.headers.items()
                   if k.lower() != "content-length"}

        try:
            data = json.loads(body_bytes.decode("utf-8"))
        except ValueError:
            logger.warning("Non JSON body declared as JSON on %s",
                           request.url.path)
            return JSONResponse(content=None, status_code=response.status_code,
                                headers=headers)

        if is_wrapped(data):
            return JSONResponse(content=data, status_code=response.status_code,
                                headers=headers)

        if 200 <= response.status_code < 400:
            wrapped = JsonOutResult(
                data=data,
                status="Success",
                status_code=AppStatusCode.DATA_RETRIEVED_SUCCESSFULLY,
                message="Data retrieved successfully"
            )
        else:
            message = "An unexpected error occurred"
            if isinstance(data, dict):
                message = str(data.get("detail") or data.get("message") or message)
            wrapped = JsonOutResult(
                data=None,
                status="Failure",
                status_code=str(response.status_code),
                message=message
            )

        return JSONResponse(
            content=wrapped.model_dump(),
            status_code=response.status_code,
            headers=headers,
        )
