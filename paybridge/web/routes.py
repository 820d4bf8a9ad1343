"""HTTP сервер: инициация платежей и приём callback от Daraja"""
import logging
from aiohttp import web

from paybridge.errors import PaymentServiceError
from paybridge.services.payments import PaymentService
from paybridge.services.reconciliation import CallbackReconciler

logger = logging.getLogger(__name__)


def _error(message: str, status: int) -> web.Response:
    return web.json_response({"success": False, "message": message}, status=status)


async def handle_create_payment(request: web.Request) -> web.Response:
    """
    POST /payments - отправить STK Push на телефон плательщика
    
    Тело: phone, amount, organizationId, packageName, subscriptionType,
    accountReference (опционально), transactionDesc (опционально)
    """
    try:
        body = await request.json()
    except ValueError:
        return _error("Тело запроса должно быть JSON", 400)
    
    payments: PaymentService = request.app['payments']
    
    try:
        result = await payments.initiate(body)
    except PaymentServiceError as e:
        logger.error(f"Ошибка инициации платежа ({type(e).__name__}): {e.message}")
        return _error(e.message, e.status)
    except Exception as e:
        logger.error(f"Непредвиденная ошибка инициации платежа: {e!r}")
        return _error("Внутренняя ошибка сервера", 500)
    
    return web.json_response({
        "success": True,
        "message": "STK Push отправлен",
        "acceptedId": result.accepted_id,
        "merchantRequestId": result.merchant_request_id,
        "customerMessage": result.customer_message,
    })


async def handle_get_payment(request: web.Request) -> web.Response:
    """GET /payments/{checkout_request_id} - статус транзакции"""
    checkout_request_id = request.match_info['checkout_request_id']
    payments: PaymentService = request.app['payments']
    
    try:
        record = await payments.get_transaction(checkout_request_id)
    except Exception as e:
        logger.error(f"Ошибка получения транзакции {checkout_request_id}: {e!r}")
        return _error("Внутренняя ошибка сервера", 500)
    
    if not record:
        return _error("Транзакция не найдена", 404)
    
    def iso(value):
        return value.isoformat() if value is not None else None
    
    def num(value):
        return str(value) if value is not None else None
    
    return web.json_response({
        "success": True,
        "checkoutRequestId": record['checkout_request_id'],
        "status": record['status'],
        "organizationId": record['organization_id'],
        "packageName": record['package_name'],
        "subscriptionType": record['subscription_type'],
        "amount": num(record['amount']),
        "paidAmount": num(record['paid_amount']),
        "receiptNumber": record['mpesa_receipt_number'],
        "transactionDate": iso(record['transaction_date']),
        "resultCode": record['result_code'],
        "resultDesc": record['result_desc'],
        "createdAt": iso(record['created_at']),
        "updatedAt": iso(record['updated_at']),
    })


async def handle_callback(request: web.Request) -> web.Response:
    """
    POST /payments/callback - результат STK Push от Daraja
    
    Всегда отвечает 200, иначе Daraja будет повторять доставку.
    Исключение - callback с некорректной структурой (400).
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    
    reconciler: CallbackReconciler = request.app['reconciler']
    ack = await reconciler.reconcile(payload)
    return web.json_response({"message": ack.message}, status=ack.status)


async def handle_health(request: web.Request) -> web.Response:
    """GET /health - проверка живости"""
    return web.Response(text="M-Pesa API is live 🚀")


def create_web_app(payments: PaymentService, reconciler: CallbackReconciler) -> web.Application:
    """Создает aiohttp приложение"""
    app = web.Application()
    app['payments'] = payments
    app['reconciler'] = reconciler
    
    app.router.add_post('/payments', handle_create_payment)
    app.router.add_post('/payments/callback', handle_callback)
    app.router.add_get('/payments/{checkout_request_id}', handle_get_payment)
    app.router.add_get('/health', handle_health)
    
    return app
