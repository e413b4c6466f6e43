"""
JSON envelope shared by every endpoint: ``{success, data | error, count?, timestamp?}``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


def _dump(value: Any) -> Any:
	if hasattr(value, "to_dict"):
		return value.to_dict()
	if isinstance(value, list):
		return [_dump(v) for v in value]
	return value


def ok(data: Any = None, count: Optional[int] = None, timestamp: bool = False, **extra: Any) -> Dict[str, Any]:
	body: Dict[str, Any] = {"success": True}
	if data is not None:
		body["data"] = _dump(data)
	if count is not None:
		body["count"] = count
	if timestamp:
		body["timestamp"] = datetime.now(timezone.utc).isoformat()
	body.update(extra)
	return body


def listing(items: list, **extra: Any) -> Dict[str, Any]:
	return ok(items, count=len(items), **extra)


def register_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(HTTPException)
	async def http_error(request: Request, exc: HTTPException) -> JSONResponse:
		return JSONResponse(status_code=exc.status_code, content={"success": False, "error": str(exc.detail)})

	@app.exception_handler(RequestValidationError)
	async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
		errors = exc.errors()
		first = errors[0] if errors else {}
		where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
		message = f"Invalid request: {where} {first.get('msg', '')}".strip()
		logger.info(f"{request.method} {request.url.path} rejected: {message}")
		return JSONResponse(status_code=400, content={"success": False, "error": message})
