import asyncpg
import logging

from paybridge.db.schema import SCHEMA_SQL

logger = logging.getLogger(__name__)


async def init_pool(database_url: str, max_size: int = 10) -> asyncpg.Pool:
    """Создает пул соединений с PostgreSQL и проверяет схему"""
    pool = await asyncpg.create_pool(
        database_url,
        min_size=1,
        max_size=max_size,
        command_timeout=60
    )
    logger.info("✅ Подключение к базе данных установлено")
    
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("📦 Схема базы данных проверена")
    
    return pool


async def close_pool(pool: asyncpg.Pool) -> None:
    """Закрывает пул соединений"""
    await pool.close()
    logger.info("🔒 Соединение с базой данных закрыто")
