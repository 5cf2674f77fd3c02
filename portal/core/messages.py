"""
Localized user-facing messages for core error kinds.

Turkish is the portal's primary language; English is the fallback
for clients that ask for it via Accept-Language.
"""

MESSAGES: dict[str, dict[str, str]] = {
    "tr": {
        "validation_error": "Gönderilen bilgiler geçersiz. Lütfen kontrol edip tekrar deneyin.",
        "empty_cart": "Sepetiniz boş.",
        "not_found": "Kayıt bulunamadı.",
        "forbidden": "Bu işlem için yetkiniz yok.",
        "invalid_transition": "Sipariş durumu bu şekilde değiştirilemez.",
        "persistence_error": "İşlem kaydedilemedi. Lütfen biraz sonra tekrar deneyin.",
        "identity_error": "Hesap işlemi başarısız oldu.",
        "duplicate_email": "Bu e-posta adresi zaten kayıtlı. Giriş yapmayı deneyin.",
        "weak_password": "Şifre en az 6 karakter olmalıdır.",
        "invalid_credentials": "E-posta veya şifre hatalı.",
        "reconciliation_timeout": "Profil henüz hazır değil.",
        "portal_error": "Beklenmeyen bir hata oluştu.",
    },
    "en": {
        "validation_error": "The submitted data is invalid. Please check and try again.",
        "empty_cart": "Your cart is empty.",
        "not_found": "Record not found.",
        "forbidden": "You are not allowed to perform this action.",
        "invalid_transition": "The order status cannot be changed this way.",
        "persistence_error": "The operation could not be saved. Please try again shortly.",
        "identity_error": "The account operation failed.",
        "duplicate_email": "This email is already registered. Try signing in.",
        "weak_password": "Password must be at least 6 characters.",
        "invalid_credentials": "Invalid email or password.",
        "reconciliation_timeout": "The profile is not ready yet.",
        "portal_error": "An unexpected error occurred.",
    },
}


def pick_locale(accept_language: str | None, default: str) -> str:
    """
    Choose a supported locale from an Accept-Language header.

    Only the primary subtag is considered ("en-US" -> "en"); quality
    weights are ignored and the first supported entry wins.
    """
    if accept_language:
        for part in accept_language.split(","):
            tag = part.split(";", 1)[0].strip().lower()
            primary = tag.split("-", 1)[0]
            if primary in MESSAGES:
                return primary
    return default if default in MESSAGES else "en"


def translate(key: str, locale: str) -> str:
    catalog = MESSAGES.get(locale, MESSAGES["en"])
    return catalog.get(key) or catalog["portal_error"]
