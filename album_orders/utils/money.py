"""
Montants: conversion Decimal <-> centimes entiers.
Tous les calculs de prix se font en centimes (int) pour éviter la dérive des flottants.
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

CENT = Decimal("0.01")

CURRENCY_SYMBOLS = {"usd": "$", "cad": "$", "aud": "$", "eur": "€", "gbp": "£"}

def to_decimal(value: Any) -> Decimal:
    """
    Convertit str|int|float|Decimal en Decimal arrondi au centime.
    - Passe par str() pour ne pas hériter de l'imprécision d'un float.
    - Retourne Decimal("0.00") si la valeur est vide ou illisible.
    """
    if value is None or value == "":
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return Decimal("0.00")

def to_cents(value: Any) -> int:
    return int(to_decimal(value) * 100)

def from_cents(cents: int) -> Decimal:
    return (Decimal(int(cents)) / 100).quantize(CENT)

def format_price(value: Any, currency: str = "usd") -> str:
    amount = to_decimal(value)
    symbol = CURRENCY_SYMBOLS.get((currency or "").lower())
    if symbol == "€":
        return f"{amount:,.2f} €"
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{amount:,.2f} {(currency or '').upper()}"
