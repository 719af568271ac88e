"""
Accounts Service
Handles: login, registration, password resets, user CRUD, token verification
Port: 8001
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from accounts.config import CORS_ORIGINS, configure_logging
from accounts.database import init_db
from accounts.dependencies import get_service
from accounts.models import (
    AuthResponse,
    CreateUserRequest,
    ForgotPasswordRequest,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResetPasswordRequest,
    TokenVerifyRequest,
    TokenVerifyResponse,
    UpdateUserRequest,
    UserOut,
)
from accounts.service import UserAccountService

logger = logging.getLogger(__name__)

REQUEST_ERROR_MESSAGES = {
    "missing": "The {attr} field is required.",
    "string_type": "The {attr} must be a string.",
    "json_invalid": "The request body must be valid JSON.",
    "model_attributes_type": "The request body must be a JSON object.",
}


# ── App ───────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("Accounts service started")
    yield


app = FastAPI(title="Accounts Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error envelopes ───────────────────────────────────────────────────────────

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"message": exc.detail}
    errors = getattr(exc, "errors", None)
    if errors:
        content["errors"] = errors
    return JSONResponse(content=content, status_code=exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Fold FastAPI's parsing errors into the same envelope the rule tables use."""
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = loc[1] if len(loc) > 1 and loc[0] == "body" and error["type"] != "json_invalid" else "body"
        template = REQUEST_ERROR_MESSAGES.get(error["type"])
        message = template.format(attr=field.replace("_", " ")) if template else error.get("msg", "Invalid value")
        errors.setdefault(field, []).append(message)
    return JSONResponse(content={"message": "Validation failed", "errors": errors}, status_code=422)


# ── Authentication ────────────────────────────────────────────────────────────

@app.post("/login", response_model=AuthResponse, response_model_exclude_none=True)
async def login(
    payload: Optional[LoginRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return service.login((payload or LoginRequest()).model_dump(exclude_unset=True))


@app.post("/register", response_model=AuthResponse, response_model_exclude_none=True)
async def register(
    payload: Optional[RegisterRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return service.register((payload or RegisterRequest()).model_dump(exclude_unset=True))


@app.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: Optional[ForgotPasswordRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return await service.forgot_password((payload or ForgotPasswordRequest()).model_dump(exclude_unset=True))


@app.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: Optional[ResetPasswordRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return service.reset_password((payload or ResetPasswordRequest()).model_dump(exclude_unset=True))


@app.post("/verify", response_model=TokenVerifyResponse)
async def verify_token(body: TokenVerifyRequest, service: UserAccountService = Depends(get_service)):
    """Called by other services to resolve a bearer token to its user."""
    return service.verify(body.token)


# ── Users ─────────────────────────────────────────────────────────────────────

@app.get("/users", response_model=List[UserOut])
async def list_users(service: UserAccountService = Depends(get_service)):
    return service.list_users()


@app.post("/users", response_model=UserOut, status_code=201)
async def create_user(
    payload: Optional[CreateUserRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return service.create_user((payload or CreateUserRequest()).model_dump(exclude_unset=True))


@app.put("/users/{user_id}", response_model=UserOut)
async def update_user(
    user_id: str,
    payload: Optional[UpdateUserRequest] = None,
    service: UserAccountService = Depends(get_service),
):
    return service.update_user(user_id, (payload or UpdateUserRequest()).model_dump(exclude_unset=True))


@app.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, service: UserAccountService = Depends(get_service)):
    return service.delete_user(user_id)


@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "ok", "service": "accounts"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("accounts.main:app", host="0.0.0.0", port=8001, reload=True)
