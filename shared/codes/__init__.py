"""
Shared business codes used across layers (Domain/Core/API).

`BusinessCode` covers the generic ranges; payment lifecycle codes live in
`shared.codes.payment_codes`. `HTTP_STATUS_BY_CODE` is the default HTTP
status per generic code; exceptions may override it explicitly.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    SUCCESS = 0

    # Request validation (1xxxx)
    PARAM_ERROR = 10000
    PARAM_VALIDATION_ERROR = 10003

    # Business rules (2xxxx); payment specifics use 201xx
    BUSINESS_ERROR = 20000
    TOKEN_EXPIRED = 20005
    NOT_FOUND = 20006
    CONFLICT = 20007

    # Authentication / authorization (3xxxx)
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # Infrastructure (4xxxx)
    SYSTEM_ERROR = 40000
    DATABASE_ERROR = 40001
    SERVICE_UNAVAILABLE = 40003


HTTP_STATUS_BY_CODE = {
    BusinessCode.PARAM_ERROR: 400,
    BusinessCode.PARAM_VALIDATION_ERROR: 400,
    BusinessCode.BUSINESS_ERROR: 400,
    BusinessCode.TOKEN_EXPIRED: 401,
    BusinessCode.NOT_FOUND: 404,
    BusinessCode.CONFLICT: 409,
    BusinessCode.UNAUTHORIZED: 401,
    BusinessCode.FORBIDDEN: 403,
    BusinessCode.SYSTEM_ERROR: 500,
    BusinessCode.DATABASE_ERROR: 500,
    BusinessCode.SERVICE_UNAVAILABLE: 503,
}


__all__ = ["BusinessCode", "HTTP_STATUS_BY_CODE"]
