"""
访问令牌校验服务

令牌由认证服务签发（HS256，共享 SECRET_KEY），本服务只负责校验并解析出用户ID。
"""
from typing import Optional

import jwt

from core.config import settings
from core.exceptions import UnauthorizedException, TokenExpiredException
from core.logging_config import get_logger


logger = get_logger(__name__)


class TokenService:
    """访问令牌校验"""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self._secret_key = secret_key or settings.SECRET_KEY
        self._algorithm = algorithm or settings.ALGORITHM

    def verify_access_token(self, token: str) -> int:
        """
        校验访问令牌并返回用户ID

        Raises:
            TokenExpiredException: 令牌已过期
            UnauthorizedException: 签名无效、类型错误或缺少 sub
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.PyJWTError as e:
            logger.warning("invalid_access_token", error=str(e))
            raise UnauthorizedException("Invalid authentication credentials")

        # 未声明 type 的令牌按访问令牌处理
        token_type = payload.get("type", "access")
        if token_type != "access":
            raise UnauthorizedException("Invalid token type")

        sub = payload.get("sub")
        try:
            return int(sub)
        except (TypeError, ValueError):
            raise UnauthorizedException("Token subject is missing or invalid")
