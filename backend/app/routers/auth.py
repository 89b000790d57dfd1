from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from app.deps import CurrentUser
from app.models import User
from app.rate_limit import auth_limit, limiter
from app.schemas import LoginIn, RefreshIn, RegisterIn
from app.services import auth_service
from app.utils.serializers import user_out

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(auth_limit)
async def register(request: Request, payload: RegisterIn):
    """Self-registration for patients and doctors; doctors start pending approval."""
    tokens, user = await auth_service.register_user(payload)
    return {"message": "User registered successfully", "user": user_out(user), **tokens}


@router.post("/login")
@limiter.limit(auth_limit)
async def login(request: Request, payload: LoginIn):
    tokens, user = await auth_service.login(login=payload.email, password=payload.password)
    return {"message": "Login successful", "user": user_out(user), **tokens}


@router.post("/token")
@limiter.limit(auth_limit)
async def token(request: Request, form_data: OAuth2PasswordRequestForm = Depends()):
    """OAuth2 password form (Swagger "Authorize"); ``username`` may be an email."""
    tokens, _ = await auth_service.login(login=form_data.username, password=form_data.password)
    return tokens


@router.post("/refresh")
@limiter.limit(auth_limit)
async def refresh(request: Request, payload: RefreshIn):
    tokens = await auth_service.refresh_tokens(payload.refresh_token)
    return {"message": "Token refreshed", **tokens}


@router.get("/me")
async def me(current: User = CurrentUser):
    return {"message": "Current user", "user": user_out(current)}
