import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .api import router as api_router
from .config import LOG_FORMAT, LOG_LEVEL
from .database import init_db
from .errors import DiscoveryError, ValidationError

logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Ensure tables exist at startup (safe for SQLite)
init_db()

app = FastAPI(title="Business Discovery API", version="0.1.0")
app.include_router(api_router)


@app.exception_handler(DiscoveryError)
async def discovery_error_handler(request: Request, exc: DiscoveryError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Malformed requests share the VALIDATION_ERROR contract of the core.
    fields = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        fields[".".join(loc) or "request"] = err.get("msg", "invalid")
    error = ValidationError("Request failed validation", fields=fields)
    return JSONResponse(status_code=error.status_code, content={"error": error.to_dict()})
