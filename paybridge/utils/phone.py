import re
from typing import Optional

_MSISDN_RE = re.compile(r"^254[17]\d{8}$")


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Приводит номер телефона к формату Safaricom (2547XXXXXXXX или 2541XXXXXXXX)
    
    Принимает: +254712345678, 0712345678, 254712345678, 712345678
    и серию 01xx: 0110123456 -> 254110123456
    
    Returns:
        Нормализованный номер или None, если номер некорректный
    """
    if phone is None:
        return None
    
    phone = str(phone).strip().replace(" ", "").replace("-", "")
    if phone.startswith("+"):
        phone = phone[1:]
    if phone.startswith("0"):
        phone = "254" + phone[1:]
    elif len(phone) == 9:
        phone = "254" + phone
    
    if not _MSISDN_RE.match(phone):
        return None
    return phone
