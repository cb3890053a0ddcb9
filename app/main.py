from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.errors import (
    AuthError,
    AuthUnavailableError,
    NotFoundError,
    StoreReadError,
    StoreWriteError,
)
from app.core.firebase import init_firebase
from app.api.routes import auth, patients
from app.services.logger import log_debug

app = FastAPI(title="Patient Records Backend")


@app.on_event("startup")
def startup():
    """Initialize Firebase Admin (reads credentials path from settings)."""
    init_firebase()


@app.get("/")
async def root():
    return {"message": "Patient Records Backend is running"}


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.exception_handler(StoreReadError)
@app.exception_handler(StoreWriteError)
async def store_error_handler(request: Request, exc):
    log_debug("store_error", {"path": request.url.path, "error": exc.message})
    return JSONResponse(
        status_code=503,
        content={"detail": f"{exc.message}. Please try again."},
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    return JSONResponse(status_code=401, content={"detail": exc.message})


@app.exception_handler(AuthUnavailableError)
async def auth_unavailable_handler(request: Request, exc: AuthUnavailableError):
    log_debug("auth_unavailable", {"path": request.url.path, "error": exc.message})
    return JSONResponse(
        status_code=503,
        content={"detail": "Sign-in service unavailable. Please try again."},
    )


# Include API routers
app.include_router(auth.router)
app.include_router(patients.router)
