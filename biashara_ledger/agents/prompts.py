"""
Locale prompts for the extraction engine and the category suggester.

Only English and Swahili instructions exist. Any other locale tag is
answered with English instructions; the caller's tag is still kept on
the result for display.
"""

SUPPORTED_LOCALES = ("en", "sw")
DEFAULT_INSTRUCTION_LOCALE = "en"


def resolve_instruction_locale(locale: str) -> str:
    """Pick the prompt language for a locale tag ("sw-KE" reads as "sw")."""
    primary = (locale or "").strip().lower().replace("_", "-").split("-")[0]
    if primary in SUPPORTED_LOCALES:
        return primary
    return DEFAULT_INSTRUCTION_LOCALE


TRANSACTION_SYSTEM_PROMPTS = {
    "en": (
        "You are a financial assistant helping small business owners extract "
        "transaction details from voice descriptions.\n"
        "Identify the transaction type (income or expense), amount, description, "
        "and other relevant details.\n"
        "If no amount is explicitly mentioned, try to estimate from context.\n"
        "Set confidence between 0 and 1: low when the description is unclear "
        "or the amount had to be guessed."
    ),
    "sw": (
        "Wewe ni msaidizi wa kifedha unayesaidia wafanyabiashara wadogo kutambua "
        "maelezo ya miamala kutoka kwa maelezo ya sauti.\n"
        "Tambua aina ya muamala (mapato au matumizi), kiasi, maelezo, na maelezo "
        "mengine muhimu.\n"
        "Kama hakuna kiasi kilichotajwa wazi, jaribu kukadiria kutoka kwa muktadha.\n"
        "Weka confidence kati ya 0 na 1: chini kama maelezo hayaeleweki "
        "au kiasi kimekadiriwa."
    ),
}

TRANSACTION_USER_PROMPTS = {
    "en": 'Extract transaction details from this voice description: "{text}"',
    "sw": 'Tambua maelezo ya muamala kutoka kwa maelezo haya ya sauti: "{text}"',
}

RECEIPT_SYSTEM_PROMPTS = {
    "en": (
        "You are a receipt analysis assistant. Extract business name, date, total, "
        "and items from receipt text.\n"
        "Suggest an appropriate category for this type of purchase.\n"
        "Set confidence between 0 and 1 for how well the text could be read."
    ),
    "sw": (
        "Wewe ni msaidizi wa kutambua maelezo ya risiti. Tambua jina la biashara, "
        "tarehe, jumla, na bidhaa kutoka kwa maandishi ya risiti.\n"
        "Pendekeza kategoria inayofaa kwa aina hii ya ununuzi.\n"
        "Weka confidence kati ya 0 na 1 kulingana na jinsi maandishi yalivyosomeka."
    ),
}

RECEIPT_USER_PROMPTS = {
    "en": 'Extract receipt details from this OCR text: "{text}"',
    "sw": 'Tambua maelezo ya risiti kutoka kwa maandishi haya: "{text}"',
}

CATEGORY_SYSTEM_PROMPTS = {
    "en": (
        "Suggest the best category for this transaction from the provided list. "
        "Return only the category name."
    ),
    "sw": (
        "Pendekeza kategoria bora kwa muamala huu kutoka kwa orodha iliyotolewa. "
        "Rudisha jina la kategoria tu."
    ),
}

CATEGORY_USER_PROMPT = """Transaction: "{description}"
Type: {type}
Available categories: {categories}

Suggest the most appropriate category:"""
