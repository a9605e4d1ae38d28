from .money import MAX_MONEY, ZERO, exceeds_money_limit, format_money, parse_money, quantize_money

__all__ = ["MAX_MONEY", "ZERO", "exceeds_money_limit", "format_money", "parse_money", "quantize_money"]
