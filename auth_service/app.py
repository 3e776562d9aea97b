# auth_service/app.py
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import AuthConfig

from .admin import AdminService, seed_admin
from .auth import AuthService
from .database import Base, SessionLocal, engine, ensure_sqlite_directory, get_db
from .errors import AuthError, InvalidToken
from .profile import ProfileService
from .schemas import (
    AdminCreateData,
    AdminUpdateData,
    AuthResponse,
    ForgotPasswordData,
    LoginData,
    PaginatedAccounts,
    PasswordChange,
    PasswordReset,
    ProfileUpdate,
    PublicAccount,
    RegisterData,
    SessionClaims,
    SuccessResponse,
)
from .tokens import decode_access_token

logging.basicConfig(
    level=AuthConfig.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("auth_service.app")


# --- Dependencies ---
def get_current_claims(authorization: Optional[str] = Header(None)) -> SessionClaims:
    """Verify the bearer token once per request and hand the claims on."""
    if not authorization:
        raise InvalidToken("Authorization header missing")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise InvalidToken("Authorization header must be 'Bearer <token>'")
    return decode_access_token(token.strip())


# ------------------------------------------------------------------
# --- APPLICATION SETUP ---
# ------------------------------------------------------------------
app = FastAPI(title="FastAPI Auth Service")

app.add_middleware(
    CORSMiddleware,
    allow_origins=AuthConfig.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthError)
async def handle_auth_error(request: Request, exc: AuthError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, InvalidToken) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
        headers=headers,
    )


# Routers
auth_router = APIRouter(prefix="/auth", tags=["Authentication"])
profile_router = APIRouter(prefix="/users", tags=["Profile"])
admin_router = APIRouter(prefix="/admin", tags=["Admin Management"])


# ------------------------------------------------------------------
# --- ROUTES DEFINITIONS ---
# ------------------------------------------------------------------
@auth_router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
def register_user(data: RegisterData, db: Session = Depends(get_db)):
    return AuthService(db).register(data)


@auth_router.post("/login", response_model=AuthResponse)
def login_for_access_token(data: LoginData, db: Session = Depends(get_db)):
    return AuthService(db).login(data)


@auth_router.post("/forgot-password", response_model=SuccessResponse)
def request_password_reset(data: ForgotPasswordData, db: Session = Depends(get_db)):
    return AuthService(db).request_password_reset(data.email)


@auth_router.post("/reset-password", response_model=SuccessResponse)
def reset_password(data: PasswordReset, db: Session = Depends(get_db)):
    return AuthService(db).reset_password(data.token, data.new_password)


# --- PROFILE ROUTES ---
@profile_router.get("/me", response_model=PublicAccount)
def read_current_user(
    claims: SessionClaims = Depends(get_current_claims), db: Session = Depends(get_db)
):
    return ProfileService(db).get_current_user(claims)


@profile_router.patch("/me", response_model=PublicAccount)
def update_profile(
    patch: ProfileUpdate,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return ProfileService(db).update_self(claims, patch)


@profile_router.post("/me/password", response_model=SuccessResponse)
def change_password(
    data: PasswordChange,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return ProfileService(db).change_own_password(claims, data)


# --- ADMIN ROUTES ---
@admin_router.get("/users", response_model=PaginatedAccounts)
def list_users(
    page: int = Query(1),
    limit: int = Query(AuthConfig.DEFAULT_PAGE_SIZE),
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return AdminService(db).list_users(claims, page, limit)


@admin_router.get("/users/{account_id}", response_model=PublicAccount)
def get_user(
    account_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return AdminService(db).get_user(claims, account_id)


@admin_router.post(
    "/users", response_model=PublicAccount, status_code=status.HTTP_201_CREATED
)
def create_user(
    data: AdminCreateData,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return AdminService(db).create_user(claims, data)


@admin_router.patch("/users/{account_id}", response_model=PublicAccount)
def update_user(
    account_id: int,
    patch: AdminUpdateData,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return AdminService(db).update_user(claims, account_id, patch)


@admin_router.delete("/users/{account_id}", response_model=SuccessResponse)
def delete_user(
    account_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    db: Session = Depends(get_db),
):
    return AdminService(db).delete_user(claims, account_id)


@app.get("/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


# ------------------------------------------------------------------
# --- INCLUDE ROUTERS (must be at the END) ---
# ------------------------------------------------------------------
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(admin_router)


# --- CREATE TABLES ON STARTUP ---
@app.on_event("startup")
def startup_event():
    AuthConfig.require_secret()
    ensure_sqlite_directory(str(engine.url))
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables checked/created.")

    if AuthConfig.ADMIN_EMAIL and AuthConfig.ADMIN_PASSWORD:
        db = SessionLocal()
        try:
            seed_admin(
                db,
                AuthConfig.ADMIN_EMAIL,
                AuthConfig.ADMIN_USERNAME,
                AuthConfig.ADMIN_PASSWORD,
            )
        finally:
            db.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("auth_service.app:app", host="127.0.0.1", port=8000, reload=True)
