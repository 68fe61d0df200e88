"""
统一响应格式定义

所有接口返回 {code, message, data, error}；data 可直接传入 pydantic 模型，
这里统一转成 JSON 兼容结构。
"""
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_serializer

from shared.codes import BusinessCode


T = TypeVar("T")


def isoformat_utc(value: datetime) -> str:
    """UTC ISO8601，统一使用 Z 结尾；无时区视为 UTC"""
    ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_jsonable(item) for item in data]
    return data


class ErrorDetail(BaseModel):
    type: str
    details: Optional[dict] = None
    field: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def _serialize_timestamp(self, timestamp: datetime) -> str:
        return isoformat_utc(timestamp)


class Response(BaseModel, Generic[T]):
    """统一响应模型"""
    code: int
    message: str
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None


class OffsetPagination(BaseModel):
    limit: int
    offset: int
    total: int


class OffsetPage(BaseModel, Generic[T]):
    items: list[T]
    pagination: OffsetPagination


def success_response(data: Any = None, message: str = "Success") -> Response:
    return Response(code=BusinessCode.SUCCESS, message=message, data=_jsonable(data))


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Response:
    """
    创建错误响应

    Args:
        code: 业务状态码（BusinessCode 或 PaymentCode）
        message: 对外错误消息
        error_type: 错误类型，如 ValidationError / IllegalStatusTransition
        details: 错误详情（5xx 时由调用方置空）
        field: 出错字段
        request_id: 请求ID，便于与日志关联
    """
    return Response(
        code=code,
        message=message,
        error=ErrorDetail(type=error_type, details=details, field=field, request_id=request_id),
    )


def offset_paginated_response(
    items: list,
    total: int,
    limit: int,
    offset: int,
    message: str = "Success",
) -> Response[OffsetPage]:
    """limit/offset 分页响应，total 为过滤后的总条数"""
    return Response(
        code=BusinessCode.SUCCESS,
        message=message,
        data=OffsetPage(
            items=_jsonable(items),
            pagination=OffsetPagination(limit=limit, offset=offset, total=total),
        ),
    )
