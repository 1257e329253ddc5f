import logging

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ngotes import config
from ngotes.api import auth, notes
from ngotes.errors import NotesError, Unauthorized, UnsupportedOperation
from ngotes.storage.notes_store import StoreError
from ngotes.utils.jwt_auth import bearer, get_current_claims

logging.basicConfig(
    level=config.log_level(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ngotes Notes API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(auth.router)
app.include_router(notes.router)


def _is_notes_path(request: Request) -> bool:
    path = request.url.path.rstrip("/")
    return path == notes.router.prefix or path.startswith(notes.router.prefix + "/")


@app.middleware("http")
async def notes_error_guard(request: Request, call_next):
    if not _is_notes_path(request):
        return await call_next(request)
    try:
        return await call_next(request)
    except Exception:
        # anything unhandled under /notes still answers with the envelope
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return notes.error_envelope(request, 400, "Note request failed")


@app.exception_handler(NotesError)
async def notes_error_handler(request: Request, exc: NotesError):
    if not _is_notes_path(request):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
    return notes.notes_error_envelope(request, exc)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    # storage details stay in the log
    logger.error("store failure on %s %s", request.method, request.url.path, exc_info=exc)
    return notes.error_envelope(request, 400, "Note store operation failed")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    if not _is_notes_path(request):
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    if errors and errors[0].get("type") == "json_invalid":
        message = "Invalid JSON body"
    elif errors:
        first = errors[0]
        # loc starts with the source: body, query or path
        field = ".".join(str(p) for p in first.get("loc", ())[1:])
        message = f"Invalid {field}: {first.get('msg', 'invalid value')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    return notes.error_envelope(request, 400, message)


@app.exception_handler(StarletteHTTPException)
async def method_not_allowed_handler(request: Request, exc: StarletteHTTPException):
    if not _is_notes_path(request):
        return await http_exception_handler(request, exc)
    if exc.status_code == 405:
        # the caller is checked before the verb
        try:
            get_current_claims(await bearer(request))
        except Unauthorized as unauthorized:
            return notes.notes_error_envelope(request, unauthorized)
        return notes.notes_error_envelope(request, UnsupportedOperation(request.method))
    return notes.error_envelope(request, exc.status_code, str(exc.detail))


@app.get("/health")
def health():
    return {"ok": True}
