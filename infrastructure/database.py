"""
数据库引擎与会话工厂

支付交易与关联对象（预订/订单/报名）共用同一个异步引擎；
事务边界由 UnitOfWork 控制，这里不提供自动提交的会话依赖。
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker

from core.config import DatabaseSettings, settings
from infrastructure.models import Base


_ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> str:
    """补全异步驱动：postgresql:// -> postgresql+asyncpg://"""
    url = make_url(database_url)
    if "+" in url.drivername:
        return database_url
    try:
        async_driver = _ASYNC_DRIVERS[url.drivername]
    except KeyError:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}. 请使用 async 驱动或更新 DATABASE__URL") from None
    return url.set(drivername=async_driver).render_as_string(hide_password=False)


def build_engine(config: DatabaseSettings) -> AsyncEngine:
    url = _build_async_url(config.url)
    options = {"echo": config.echo}
    if not make_url(url).drivername.startswith("sqlite"):
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_pre_ping=config.pool_pre_ping,
        )
    return create_async_engine(url, **options)


engine = build_engine(settings.database)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables(bind: AsyncEngine | None = None):
    """
    创建所有表（仅开发环境启动时调用，生产环境使用 alembic 迁移）
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
