"""
Localizador del estado embebido (`__PRELOADED_STATE__`) en páginas de producto.

MercadoLibre inyecta el estado de renderizado de distintas maneras según la
variante de la página, por lo que se prueban varias estrategias en un orden
de prioridad fijo y se devuelve la primera que produce un diccionario.
Cada estrategia es de solo lectura y sus fallas se tratan como "esta
estrategia no encontró nada", nunca como una falla del pipeline.
"""

import json
import logging
import re
from collections.abc import Mapping

from playwright.async_api import Error as PlaywrightError

from meli_scraper.exceptions import StrategyFailed
from meli_scraper.extraction.paths import extract_balanced, parse_json_block
from meli_scraper.items import StatePayload

logger = logging.getLogger(__name__)

STATE_MARKER = "__PRELOADED_STATE__"
STATE_ELEMENT_SELECTOR = "#__PRELOADED_STATE__"
STATE_ELEMENT_TIMEOUT_MS = 3000

# Asignaciones conocidas dentro de <script>, de más a menos específica
STATE_ASSIGNMENT_PATTERNS = (
    re.compile(r"window\.__PRELOADED_STATE__\s*=\s*"),
    re.compile(r"__PRELOADED_STATE__\s*=\s*"),
    re.compile(r"[\"']__PRELOADED_STATE__[\"']\s*:\s*"),
)

WINDOW_STATE_NAMES = ("__PRELOADED_STATE__", "__INITIAL_STATE__", "__NEXT_DATA__")

LD_JSON_SELECTOR = 'script[type="application/ld+json"]'
LD_JSON_HINTS = ('"@type":"Product"', '"@type": "Product"', '"offers"', '"sku"', '"productID"')

STATE_DATA_ATTRIBUTES = ("data-preloaded-state", "data-initial-state", "data-state")

SCRIPT_TEXTS_JS = "(nodes) => nodes.map((node) => node.textContent || '')"
WINDOW_BINDING_JS = "(name) => (window[name] === undefined ? null : window[name])"

# Errores que significan "esta estrategia falló"
PROBE_ERRORS = (PlaywrightError, StrategyFailed, ValueError, TypeError)


def _as_state(value, strategy):
    if not isinstance(value, Mapping) or not value:
        raise StrategyFailed(strategy, "el valor no es un objeto JSON")
    return dict(value)


def parse_state_script(content):
    """
    Extrae el estado de un <script> que menciona `__PRELOADED_STATE__`.

    Primero prueba las asignaciones conocidas con búsqueda de llaves
    balanceadas; luego el primer bloque balanceado del contenido; por último
    el tramo entre la primera '{' y la última '}'.

    Raises:
        ValueError: Si ninguna forma produce JSON válido.
    """
    for pattern in STATE_ASSIGNMENT_PATTERNS:
        match = pattern.search(content)
        if not match:
            continue
        start = content.find("{", match.end())
        if start == -1:
            continue
        block = extract_balanced(content, start)
        if block is None:
            continue
        try:
            return json.loads(block)
        except ValueError:
            continue

    try:
        return parse_json_block(content)
    except ValueError:
        pass

    json_start = content.find("{")
    json_end = content.rfind("}") + 1
    if json_start == -1 or json_end <= json_start:
        raise ValueError("El script no contiene un objeto JSON")
    return json.loads(content[json_start:json_end])


def is_product_node(node):
    node_type = node.get("@type")
    return node_type == "Product" or (isinstance(node_type, list) and "Product" in node_type)


def pick_product_node(data):
    """
    Dado JSON-LD parseado (dict o lista), devuelve el nodo que parece un
    schema.org Product, o el primer diccionario si ninguno lo declara.
    """
    candidates = []
    if isinstance(data, Mapping):
        graph = data.get("@graph")
        if isinstance(graph, list):
            candidates.extend(node for node in graph if isinstance(node, Mapping))
        candidates.append(data)
    elif isinstance(data, list):
        candidates.extend(node for node in data if isinstance(node, Mapping))

    for node in candidates:
        if is_product_node(node):
            return node
    return candidates[0] if candidates else None


async def probe_state_element(page):
    """Método 1: elemento con id `__PRELOADED_STATE__`."""
    element = await page.wait_for_selector(
        STATE_ELEMENT_SELECTOR, state="attached", timeout=STATE_ELEMENT_TIMEOUT_MS
    )
    if element is None:
        return None
    content = await element.text_content()
    if not content:
        return None
    return _as_state(json.loads(content), "state_element")


async def probe_state_scripts(page):
    """Método 2: scripts cuyo contenido menciona `__PRELOADED_STATE__`."""
    contents = await page.eval_on_selector_all("script", SCRIPT_TEXTS_JS)
    for content in contents or []:
        if not content or STATE_MARKER not in content:
            continue
        try:
            return _as_state(parse_state_script(content), "state_script")
        except (ValueError, StrategyFailed) as e:
            logger.debug("Script con %s no parseable: %s", STATE_MARKER, e)
    return None


async def probe_window_globals(page):
    """Método 3: variables globales expuestas por los scripts de la página."""
    for name in WINDOW_STATE_NAMES:
        try:
            value = await page.evaluate(WINDOW_BINDING_JS, name)
        except PlaywrightError as e:
            logger.debug("Global %s no legible: %s", name, e)
            continue
        if isinstance(value, Mapping) and value:
            return dict(value)
    return None


async def probe_ld_json(page):
    """Método 4: datos estructurados JSON-LD con pistas de producto."""
    # Un nodo Product explícito en cualquier script gana sobre el primer nodo con pistas
    fallback = None
    contents = await page.eval_on_selector_all(LD_JSON_SELECTOR, SCRIPT_TEXTS_JS)
    for content in contents or []:
        if not content or not any(hint in content for hint in LD_JSON_HINTS):
            continue
        try:
            node = pick_product_node(json.loads(content))
        except (ValueError, TypeError) as e:
            logger.debug("JSON-LD inválido: %s", e)
            continue
        if node and is_product_node(node):
            return dict(node)
        if node and fallback is None:
            fallback = node
    return dict(fallback) if fallback else None


async def probe_data_attributes(page):
    """Método 5: atributos data-* con el estado serializado."""
    for attribute in STATE_DATA_ATTRIBUTES:
        values = await page.eval_on_selector_all(
            f"[{attribute}]",
            f"(nodes) => nodes.map((node) => node.getAttribute('{attribute}'))",
        )
        for value in values or []:
            if not value:
                continue
            try:
                return _as_state(json.loads(value), "data_attribute")
            except (ValueError, StrategyFailed) as e:
                logger.debug("Atributo %s no parseable: %s", attribute, e)
    return None


LOCATOR_STRATEGIES = (
    ("state_element", probe_state_element),
    ("state_script", probe_state_scripts),
    ("window_global", probe_window_globals),
    ("ld_json", probe_ld_json),
    ("data_attribute", probe_data_attributes),
)


async def find_preloaded_state(page, strategies=LOCATOR_STRATEGIES):
    """
    Busca el estado embebido probando las estrategias en orden de prioridad.

    Se detiene en la primera estrategia que devuelve un diccionario; las
    siguientes no se invocan. Una estrategia que lanza un error conocido
    (timeout, JSON mal formado, evaluación fallida) se registra y se salta.

    Args:
        page: Página de Playwright ya cargada.
        strategies: Secuencia de pares (nombre, corrutina de sondeo).

    Returns:
        StatePayload con el estado y el nombre de la estrategia, o None si
        ninguna estrategia encontró el estado.
    """
    for index, (name, probe) in enumerate(strategies, start=1):
        try:
            state = await probe(page)
        except PROBE_ERRORS as e:
            logger.info("Método %d (%s) falló: %s", index, name, e)
            continue
        if state:
            logger.info("Estado embebido encontrado con el método %d (%s)", index, name)
            return StatePayload(state=state, source=name)
        logger.debug("Método %d (%s) no encontró estado", index, name)
    return None
