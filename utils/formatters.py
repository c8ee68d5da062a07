from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """
    將數值統一轉為兩位小數的 Decimal

    Args:
        value: int / float / str / Decimal

    Returns:
        Decimal: 四捨五入到 0.01
    """
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(value):
    """
    格式化金額

    Args:
        value: 數值或字串

    Returns:
        str: 格式化後的金額字串 (例: ฿10,000.00)
    """
    if value is None:
        return "฿0.00"
    try:
        return f"฿{to_money(value):,}"
    except (ArithmeticError, ValueError, TypeError):
        return str(value)


def format_period(month: int, year: int) -> str:
    """帳期顯示字串，例: 2026/01"""
    return f"{year}/{month:02d}"
