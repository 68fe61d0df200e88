"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        http_status: Optional[int] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        # 业务码无法推断HTTP状态时（如支付专用码段），由子类显式给出
        self.http_status = http_status
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    """参数/枚举/金额等校验失败（HTTP 400）"""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_ERROR,
            message=message,
            error_type="ValidationError",
            details=details,
            field=field,
        )


class NotFoundException(BusinessException):
    def __init__(self, message: str = "Resource not found", *, details: dict | None = None, code: int = BusinessCode.NOT_FOUND, error_type: str = "NotFoundError"):
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=details,
            http_status=404,
        )


class PersistenceException(BusinessException):
    """存储层失败，对外只暴露通用信息"""

    def __init__(self, operation: str, *, details: dict | None = None):
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message=f"Persistence failure during {operation}",
            error_type="PersistenceError",
            details=details,
        )
