import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentUser
from app.schemas.auth import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from app.schemas.common import DataResponse
from app.services.auth_service import AuthService


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Authentication"])


def _token_response(service: AuthService, user) -> DataResponse[TokenResponse]:
    access_token, expires_in = service.create_token(user)
    return DataResponse[TokenResponse](
        data=TokenResponse(
            access_token=access_token,
            expires_in=expires_in,
            user=UserResponse.model_validate(user),
        )
    )


@router.post(
    "/register",
    response_model=DataResponse[TokenResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(data: RegisterRequest, db: DB):
    """Create a `user`-role account and return an access token."""
    service = AuthService(db)
    user = await service.create_user(name=data.name, email=data.email, password=data.password)
    return _token_response(service, user)


@router.post(
    "/login",
    response_model=DataResponse[TokenResponse],
)
async def login(data: LoginRequest, db: DB):
    """Authenticate with email and password."""
    service = AuthService(db)
    user = await service.authenticate_user(data.email, data.password)

    if not user:
        logger.warning(f"Failed login attempt for {data.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return _token_response(service, user)


@router.get(
    "/me",
    response_model=DataResponse[UserResponse],
)
async def get_me(current_user: CurrentUser):
    return DataResponse[UserResponse](data=UserResponse.model_validate(current_user))
