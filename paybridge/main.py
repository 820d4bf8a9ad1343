import asyncio

import aiohttp
from aiohttp import web

from paybridge.config import Config, setup_logging
from paybridge.db.pool import init_pool, close_pool
from paybridge.db.repositories.transactions import TransactionRepository
from paybridge.clients.daraja_client import DarajaClient
from paybridge.services.payments import PaymentService
from paybridge.services.reconciliation import CallbackReconciler
from paybridge.web.routes import create_web_app
from paybridge.background.pending_sweeper import pending_sweeper_task


async def main():
    """Главная функция запуска сервиса"""
    config = Config.from_env()
    logger = setup_logging(config.log_level)
    logger.info("🚀 Запуск сервиса M-Pesa платежей...")
    
    # Инициализация базы данных
    pool = await init_pool(config.database_url)
    
    session = aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=config.http_timeout_seconds)
    )
    daraja = DarajaClient(config, session)
    payments = PaymentService(daraja, pool)
    reconciler = CallbackReconciler(pool)
    
    app = create_web_app(payments, reconciler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host="0.0.0.0", port=config.port)
    
    # Запуск фоновой сверки транзакций без callback
    sweeper_task = asyncio.create_task(pending_sweeper_task(
        TransactionRepository(pool),
        daraja,
        reconciler,
        interval_seconds=config.pending_sweep_interval_seconds,
        max_age_seconds=config.pending_sweep_age_seconds
    ))
    
    try:
        await site.start()
        logger.info(f"✅ Сервер запущен на порту {config.port} ({config.environment})")
        await asyncio.Event().wait()
    finally:
        # Очистка ресурсов
        sweeper_task.cancel()
        try:
            await sweeper_task
        except asyncio.CancelledError:
            pass
        await runner.cleanup()
        await session.close()
        await close_pool(pool)
        logger.info("👋 Сервер остановлен")


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
