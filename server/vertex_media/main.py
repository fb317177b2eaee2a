from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api.routes.detect import router as detect_router
from .api.routes.generate import router as generate_router
from .logging_utils import emit_stderr, utc_now_iso
from .models import ErrorResponse

# The kiosk frontend is served from another origin; every response carries
# the same fixed CORS headers, and preflights never reach the handlers.
CORS_HEADERS = {
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

app = FastAPI(title="vertex-media-proxy")


@app.middleware("http")
async def fixed_cors_headers(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = exc.detail
    if exc.status_code == 405:
        detail = "Method not allowed"
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=str(detail)).model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(error="Invalid request body").model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    emit_stderr(
        {
            "ts": utc_now_iso(),
            "event": "unhandled_error",
            "path": request.url.path,
            "type": type(exc).__name__,
            "msg": str(exc),
        }
    )
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(error=str(exc) or "Internal Server Error").model_dump(),
        headers=CORS_HEADERS,
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(generate_router, prefix="/api")
app.include_router(detect_router, prefix="/api")
