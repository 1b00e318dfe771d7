"""
Utilidades comunes para el scraper de MercadoLibre.

Este módulo contiene funciones auxiliares de parseo compartidas entre el
extractor DOM y el normalizador de registros.
"""

import re


def parse_price(price_str):
    """
    Convierte una cadena de precio a un valor numérico float.

    Elimina todo lo que no sea dígito o separador y decide cuál separador es
    el decimal: si aparecen ambos, el último es el decimal; si aparece uno
    solo seguido de exactamente tres dígitos, es separador de miles.

    Args:
        price_str (str): Cadena de precio (ej: "$1.234,56 MXN", "USD 1,234.56")

    Returns:
        float | None: Valor numérico del precio, o None si no contiene dígitos
        o no se puede parsear.

    Examples:
        >>> parse_price("$1.234,56 MXN")
        1234.56
        >>> parse_price("USD 1,234.56")
        1234.56
        >>> parse_price("Gratis") is None
        True
    """
    if not price_str or not isinstance(price_str, str):
        return None

    # Conservar solo dígitos y separadores
    cleaned = re.sub(r"[^\d.,]", "", price_str)
    if not re.search(r"\d", cleaned):
        return None

    last_sep_pos = max(cleaned.rfind(","), cleaned.rfind("."))
    if last_sep_pos == -1:
        try:
            return float(cleaned)
        except ValueError:
            return None

    before_sep = cleaned[:last_sep_pos]
    after_sep = cleaned[last_sep_pos + 1:]
    has_both = "," in cleaned and "." in cleaned

    if has_both or len(after_sep) != 3:
        # El último separador es el decimal: "1.234,56" -> "1234.56"
        integer_part = re.sub(r"[.,]", "", before_sep)
        normalized = f"{integer_part}.{after_sep}" if after_sep else integer_part
    else:
        # Un único tipo de separador con grupos de tres: "1.234" -> "1234"
        normalized = re.sub(r"[.,]", "", cleaned)

    try:
        return float(normalized)
    except ValueError:
        return None


def parse_first_int(text):
    """
    Extrae el primer entero de un texto legible ("+50 disponibles" -> 50).

    Los separadores de miles se ignoran ("1.234 vendidos" -> 1234).
    Devuelve None si el texto no contiene dígitos.
    """
    if text is None:
        return None
    match = re.search(r"\d[\d.,]*", str(text))
    if not match:
        return None
    digits = re.sub(r"[.,]", "", match.group(0))
    return int(digits)
