"""
API依赖项 - 认证与服务装配
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from application.ports.payment_gateway import PaymentGateway
from application.services.payment_service import PaymentApplicationService
from application.services.token_service import TokenService
from core.settings import payment_settings
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

# HTTP Bearer for direct API calls
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication",
    auto_error=False,
)


async def get_token(
    bearer_token: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer)
) -> str:
    """从Bearer token中提取token"""
    if bearer_token and bearer_token.credentials:
        return bearer_token.credentials

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_service() -> TokenService:
    return TokenService()


async def get_current_user_id(
    token: str = Depends(get_token),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    """获取当前登录用户ID"""
    return tokens.verify_access_token(token)


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()


async def get_payment_service(
    gateway: PaymentGateway = Depends(get_gateway),
) -> PaymentApplicationService:
    return PaymentApplicationService(
        uow_factory=SQLAlchemyUnitOfWork,
        gateway=gateway,
        settings=payment_settings,
    )
