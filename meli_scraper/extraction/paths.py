"""
Acceso seguro a árboles JSON de forma desconocida.

El estado embebido de MercadoLibre cambia de forma según la variante de la
página, así que toda lectura anidada pasa por `get_path`, que nunca lanza
excepciones ante un eslabón ausente: devuelve el centinela `MISSING`.
"""

import json
from collections.abc import Mapping, Sequence


class _Missing:
    """Centinela de ausencia; distinto de None, que puede ser un valor real."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "MISSING"

    def __bool__(self):
        return False


MISSING = _Missing()


def split_path(path):
    """Convierte 'a.b.0.c' en ('a', 'b', '0', 'c'); las tuplas pasan tal cual."""
    if isinstance(path, str):
        return tuple(segment for segment in path.split(".") if segment)
    return tuple(path)


def get_path(tree, path, default=MISSING):
    """
    Obtiene el valor anidado en `path` dentro de `tree`.

    Los segmentos numéricos indexan listas. Cualquier eslabón ausente o de
    tipo inesperado devuelve `default` en lugar de lanzar una excepción.

    Args:
        tree: Diccionario/lista raíz.
        path: Ruta con puntos ('a.b.c') o tupla de segmentos.
        default: Valor a devolver si la ruta no resuelve.

    Example:
        >>> get_path({"a": {"b": [10, 20]}}, "a.b.1")
        20
    """
    node = tree
    for segment in split_path(path):
        if isinstance(node, Mapping):
            if segment not in node:
                return default
            node = node[segment]
        elif isinstance(node, Sequence) and not isinstance(node, (str, bytes)):
            try:
                node = node[int(segment)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return node


def is_empty(value):
    """True para MISSING, None, cadenas en blanco y colecciones vacías."""
    if value is MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple)):
        return len(value) == 0
    return False


def extract_balanced(text, start):
    """
    Devuelve la subcadena JSON balanceada que empieza en `text[start]`.

    Respeta cadenas entre comillas y escapes, de modo que las llaves dentro
    de strings no alteran la profundidad. Devuelve None si el bloque no
    cierra o si `text[start]` no abre un objeto o lista.
    """
    if start < 0 or start >= len(text) or text[start] not in "{[":
        return None

    closers = {"{": "}", "[": "]"}
    stack = []
    in_string = False
    quote = ""
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                in_string = False
            continue

        if char in ('"', "'"):
            in_string = True
            quote = char
        elif char in closers:
            stack.append(closers[char])
        elif char in "}]":
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return text[start:index + 1]
    return None


def parse_json_block(text, start=None):
    """
    Parsea el bloque balanceado que empieza en `start` (o en la primera llave).

    Lanza ValueError si no hay bloque balanceado o si el JSON es inválido.
    """
    if start is None:
        start = text.find("{")
    block = extract_balanced(text, start)
    if block is None:
        raise ValueError("No se encontró un bloque JSON balanceado")
    return json.loads(block)
