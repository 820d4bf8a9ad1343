from datetime import timezone, timedelta

# Время Найроби (EAT, UTC+3) - в нём Daraja присылает TransactionDate
NAIROBI_TZ = timezone(timedelta(hours=3))

# Базовые URL Daraja
DARAJA_BASE_URLS = {
    "sandbox": "https://sandbox.safaricom.co.ke",
    "production": "https://api.safaricom.co.ke",
}

# Эндпоинты Daraja
DARAJA_AUTH_PATH = "/oauth/v1/generate"
DARAJA_STK_PUSH_PATH = "/mpesa/stkpush/v1/processrequest"
DARAJA_STK_QUERY_PATH = "/mpesa/stkpushquery/v1/query"

# Коды ответа Daraja
STK_ACCEPTED_CODE = "0"  # ResponseCode при принятии запроса
STK_SUCCESS_RESULT_CODE = 0  # ResultCode в callback при успешной оплате

# Статусы транзакций
STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})

# Длительности подписок
SUBSCRIPTION_DURATIONS = {
    "Monthly": timedelta(days=30),
    "Quarterly": timedelta(days=90),
    "Annually": timedelta(days=365),
}
DEFAULT_SUBSCRIPTION_DURATION = timedelta(days=30)

# Значения по умолчанию для STK запроса
DEFAULT_TRANSACTION_DESC = "Payment"

# Формат Timestamp для Daraja
DARAJA_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
