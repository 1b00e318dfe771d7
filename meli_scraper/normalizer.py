"""
Normalizador del payload crudo al registro canónico de producto.

Un mismo dato lógico aparece en distintas profundidades del estado embebido
según la variante o experimento de la página. Para cada campo se evalúa una
lista ordenada de rutas candidatas y se toma la primera que resuelve a un
valor no vacío; si ninguna resuelve, se usa el valor por defecto del campo.

Las rutas que empiezan con '@' se resuelven contra el sub-árbol
`initialState`; el resto contra la raíz del payload (donde también viven los
datos JSON-LD como `offers.url`).
"""

import copy
import logging
import re
from collections.abc import Mapping

from itemadapter import ItemAdapter

from config import (
    DEFAULT_CONDITION,
    DEFAULT_CURRENCY,
    DEFAULT_ITEM_STATUS,
    FREE_SHIPPING_TEXT,
    NOT_AVAILABLE,
    UNAVAILABLE_TEXT,
)
from meli_scraper.exceptions import PayloadMalformed
from meli_scraper.extraction.paths import MISSING, get_path, is_empty
from meli_scraper.items import DegradedPayload, ManualPayload, ProductItem, StatePayload
from meli_scraper.utils import parse_first_int, parse_price

logger = logging.getLogger(__name__)

INITIAL_STATE_PATHS = (
    "pageState.initialState",
    "data.pageState.initialState",
    "initialState",
)

CONDITION_NAMES = {
    "new": "Nuevo",
    "newcondition": "Nuevo",
    "used": "Usado",
    "usedcondition": "Usado",
    "refurbished": "Reacondicionado",
    "refurbishedcondition": "Reacondicionado",
}

IMAGE_ID_PATTERN = re.compile(r"(\d+-ML[A-Z]\d+_\d+)")


# --- Conversores: reciben un valor no vacío, devuelven el valor final o None
# para pasar al siguiente candidato. Lanzan PayloadMalformed ante tipos
# incompatibles.

def _text(value):
    if isinstance(value, Mapping):
        value = value.get("text", value.get("label"))
    if value is None:
        return None
    if isinstance(value, (Mapping, list)):
        raise PayloadMalformed(f"Se esperaba texto, se obtuvo {type(value).__name__}")
    return str(value).strip() or None


def _identifier(value):
    if isinstance(value, (Mapping, list, bool)):
        raise PayloadMalformed(f"Identificador inválido: {value!r}")
    return str(value)


def _amount(value):
    if isinstance(value, bool):
        raise PayloadMalformed("El precio no puede ser booleano")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        return parse_price(value)
    raise PayloadMalformed(f"Precio inválido: {value!r}")


def _count(value):
    if isinstance(value, bool) or isinstance(value, (Mapping, list)):
        raise PayloadMalformed(f"Cantidad inválida: {value!r}")
    if isinstance(value, (int, float)):
        return max(int(value), 0)
    parsed = parse_first_int(value)
    return None if parsed is None else max(parsed, 0)


def _sold_from_subtitle(value):
    text = _text(value)
    if not text or "vendido" not in text.lower():
        return None
    parsed = parse_first_int(text.split("|")[-1])
    if parsed is None:
        return None
    if re.search(r"\d\s*mil\b", text.lower()):
        parsed *= 1000
    return parsed


def _condition(value):
    text = _text(value)
    if not text:
        return None
    text = text.split("|")[0].strip()
    key = text.rsplit("/", 1)[-1].lower()
    return CONDITION_NAMES.get(key, text)


def _flag(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise PayloadMalformed(f"Se esperaba booleano: {value!r}")


def _sequence(value):
    if not isinstance(value, list):
        raise PayloadMalformed(f"Se esperaba una lista, se obtuvo {type(value).__name__}")
    return value


FIELD_CANDIDATES = {
    "id": (
        ("@id", _identifier),
        ("@track.melidata_event.event_data.item_id", _identifier),
        ("@item_id", _identifier),
        ("productID", _identifier),
        ("sku", _identifier),
    ),
    "title": (
        ("@share.title", _text),
        ("@components.header.title", _text),
        ("@title", _text),
        ("name", _text),
    ),
    "price": (
        ("@components.price.price.value", _amount),
        ("@track.melidata_event.event_data.price", _amount),
        ("offers.price", _amount),
        ("offers.0.price", _amount),
        ("offers.lowPrice", _amount),
    ),
    "currency": (
        ("@components.price.price.currency_id", _text),
        ("@track.melidata_event.event_data.currency_id", _text),
        ("offers.priceCurrency", _text),
        ("offers.0.priceCurrency", _text),
    ),
    "item_status": (
        ("data.pageState.initialState.track.melidata_event.event_data.item_status", _text),
        ("data.pageState.initialState.track.analytics_event.custom_dimensions.itemStatus", _text),
        ("@track.melidata_event.event_data.item_status", _text),
        ("@track.analytics_event.custom_dimensions.itemStatus", _text),
        ("pageState.initialState.track.melidata_event.event_data.item_status", _text),
        ("@item_status", _text),
        ("@status", _text),
    ),
    "condition": (
        ("@components.header.subtitle", _condition),
        ("@track.melidata_event.event_data.item_condition", _condition),
        ("itemCondition", _condition),
        ("offers.itemCondition", _condition),
    ),
    "available_quantity": (
        ("@components.available_quantity.quantity_selector.available_quantity", _count),
        ("@components.available_quantity.available_quantity", _count),
        ("@track.melidata_event.event_data.available_quantity", _count),
        ("@components.available_quantity.picker.description", lambda v: _count(_text(v))),
        ("@components.available_quantity.quantity_selector.label", lambda v: _count(_text(v))),
        ("@components.stock_information.title", lambda v: _count(_text(v))),
    ),
    "sold_quantity": (
        ("@track.melidata_event.event_data.sold_quantity", _count),
        ("@components.header.subtitle", _sold_from_subtitle),
    ),
    "permalink": (
        ("offers.url", _text),
        ("offers.0.url", _text),
        ("@share.permalink", _text),
        ("@permalink", _text),
        ("url", _text),
    ),
    "seller_id": (
        ("@track.melidata_event.event_data.seller_id", _identifier),
        ("@components.seller_data.seller_id", _identifier),
        ("@components.seller_experiment.seller_id", _identifier),
    ),
    "seller_name": (
        ("@components.seller_experiment.title_value", _text),
        ("@components.seller_data.title_value", _text),
        ("@components.seller_data.seller_name", _text),
        ("offers.seller.name", _text),
        ("offers.0.seller.name", _text),
    ),
    "seller_reputation": (
        ("@components.seller_experiment.reputation.level", _text),
        ("@components.seller_data.seller_reputation.level", _text),
        ("@track.melidata_event.event_data.reputation_level", _text),
    ),
    "shipping_promise": (
        ("@components.shipping_summary.title.values.promise.text", _text),
        ("@components.shipping_summary.title.text", _text),
        ("@components.shipping_summary.title", _text),
    ),
    "free_shipping": (
        ("@track.melidata_event.event_data.free_shipping", _flag),
    ),
    "payment_methods": (
        ("@components.payment_methods.payment_methods", _sequence),
        ("@components.payment_summary.payment_methods", _sequence),
    ),
    "pictures": (
        ("@components.gallery.pictures", _sequence),
        ("image", lambda v: [v] if isinstance(v, str) else _sequence(v)),
    ),
    "specifications": (
        ("@components.highlighted_specs_attrs.components", _sequence),
        ("@components.technical_specifications.specs", _sequence),
        ("additionalProperty", _sequence),
    ),
}


def locate_initial_state(payload):
    """
    Devuelve el sub-árbol `initialState` del payload, o el payload mismo si
    no lo contiene.

    Raises:
        PayloadMalformed: Si `initialState` existe pero no es un objeto.
    """
    for path in INITIAL_STATE_PATHS:
        node = get_path(payload, path)
        if node is MISSING or node is None:
            continue
        if not isinstance(node, Mapping):
            raise PayloadMalformed(f"{path} no es un objeto")
        return node
    return payload


def resolve_field(payload, initial_state, candidates, default):
    """
    Evalúa las rutas candidatas en orden y devuelve el primer valor no vacío.

    Args:
        payload: Raíz del payload.
        initial_state: Sub-árbol `initialState` (rutas con prefijo '@').
        candidates: Secuencia de pares (ruta, conversor).
        default: Valor si ninguna ruta resuelve.
    """
    for path, convert in candidates:
        if path.startswith("@"):
            value = get_path(initial_state, path[1:])
        else:
            value = get_path(payload, path)
        if is_empty(value):
            continue
        value = convert(value)
        if not is_empty(value):
            return value
    return default


def image_id_from_url(url):
    match = IMAGE_ID_PATTERN.search(url or "")
    return match.group(1) if match else ""


def _payment_method(entry):
    if not isinstance(entry, Mapping):
        raise PayloadMalformed(f"Medio de pago inválido: {entry!r}")
    icons = []
    for icon in entry.get("icons") or []:
        if isinstance(icon, Mapping):
            icon = icon.get("id") or icon.get("url")
        if icon:
            icons.append(str(icon))
    return {
        "title": _text(entry.get("title")) or "",
        "subtitle": _text(entry.get("subtitle")) or "",
        "icons": icons,
    }


def _image(entry, template, title):
    if isinstance(entry, str):
        return {"id": image_id_from_url(entry), "url": entry, "alt": title}
    if not isinstance(entry, Mapping):
        raise PayloadMalformed(f"Imagen inválida: {entry!r}")

    picture_id = str(entry.get("id") or "")
    url = entry.get("url") or entry.get("src") or entry.get("contentUrl")
    if not url and template and picture_id:
        url = template.replace("{id}", picture_id).replace("{sanitizedTitle}", "")
    return {
        "id": picture_id or image_id_from_url(url),
        "url": url or "",
        "alt": _text(entry.get("alt")) or title,
    }


def normalize_state(payload):
    """
    Proyecta un estado embebido (o JSON-LD) al ProductItem canónico.

    Raises:
        PayloadMalformed: Si la estructura anidada no permite la proyección.
    """
    if not isinstance(payload, Mapping):
        raise PayloadMalformed("El estado no es un objeto")

    initial_state = locate_initial_state(payload)
    components = get_path(initial_state, "components")
    if components is not MISSING and components is not None and not isinstance(components, Mapping):
        raise PayloadMalformed("components no es un objeto")

    def resolve(name, default):
        return resolve_field(payload, initial_state, FIELD_CANDIDATES[name], default)

    title = resolve("title", UNAVAILABLE_TEXT)
    promise = resolve("shipping_promise", UNAVAILABLE_TEXT)
    free_shipping = resolve("free_shipping", MISSING)
    if free_shipping is MISSING:
        free_shipping = FREE_SHIPPING_TEXT.lower() in promise.lower()

    template = get_path(initial_state, "components.gallery.picture_config.template", None)
    if template is not None and not isinstance(template, str):
        raise PayloadMalformed("picture_config.template no es texto")

    product = ProductItem()
    product['id'] = resolve("id", NOT_AVAILABLE)
    product['title'] = title
    product['price'] = resolve("price", 0)
    product['currency'] = resolve("currency", DEFAULT_CURRENCY)
    product['item_status'] = resolve("item_status", DEFAULT_ITEM_STATUS)
    product['condition'] = resolve("condition", DEFAULT_CONDITION)
    product['available_quantity'] = resolve("available_quantity", 0)
    product['sold_quantity'] = resolve("sold_quantity", 0)
    product['permalink'] = resolve("permalink", "")
    product['seller'] = {
        "id": resolve("seller_id", NOT_AVAILABLE),
        "name": resolve("seller_name", UNAVAILABLE_TEXT),
        "reputation": resolve("seller_reputation", NOT_AVAILABLE),
    }
    product['shipping'] = {
        "free_shipping": free_shipping,
        "promise": promise,
    }
    product['payment_methods'] = [_payment_method(entry) for entry in resolve("payment_methods", [])]
    product['images'] = [_image(entry, template, title) for entry in resolve("pictures", [])]
    product['specifications'] = copy.deepcopy(resolve("specifications", []))
    return product


def normalize_manual(product_data):
    """
    Traslada campo por campo un registro extraído del DOM al ProductItem,
    completando los valores por defecto.
    """
    if not isinstance(product_data, Mapping):
        raise PayloadMalformed("productData no es un objeto")

    title = product_data.get("title") or UNAVAILABLE_TEXT
    price = product_data.get("price")
    images = product_data.get("images") or []

    product = ProductItem()
    product['id'] = product_data.get("id") or NOT_AVAILABLE
    product['title'] = title
    product['price'] = price if price is not None else 0
    product['currency'] = product_data.get("currency") or DEFAULT_CURRENCY
    product['item_status'] = DEFAULT_ITEM_STATUS
    product['condition'] = product_data.get("condition") or DEFAULT_CONDITION
    product['available_quantity'] = 1 if product_data.get("available") else 0
    product['sold_quantity'] = 0
    product['permalink'] = product_data.get("permalink") or ""
    product['seller'] = {
        "id": NOT_AVAILABLE,
        "name": product_data.get("seller") or UNAVAILABLE_TEXT,
        "reputation": NOT_AVAILABLE,
    }
    product['shipping'] = {
        "free_shipping": False,
        "promise": UNAVAILABLE_TEXT,
    }
    product['payment_methods'] = []
    product['images'] = [_image(url, None, title) for url in _sequence(images)]
    product['specifications'] = []
    return product


def _is_manual(payload):
    if isinstance(payload, ManualPayload):
        return True
    return isinstance(payload, Mapping) and bool(
        payload.get("manual_extraction") or payload.get("manualExtraction")
    )


def _raw(payload):
    if ItemAdapter.is_item(payload):
        return ItemAdapter(payload).asdict()
    return payload


def normalize_product(payload):
    """
    Convierte un payload crudo (estado embebido o extracción del DOM) en un
    ProductItem.

    Si la proyección falla por cualquier motivo, se devuelve el payload
    original sin modificar envuelto en un DegradedPayload, de modo que el
    llamador pueda distinguir un registro normalizado de un resultado
    degradado.

    Args:
        payload: StatePayload, ManualPayload o un diccionario equivalente.

    Returns:
        ProductItem o DegradedPayload.
    """
    try:
        if _is_manual(payload):
            if isinstance(payload, ManualPayload):
                return normalize_manual(payload.product_data)
            return normalize_manual(payload.get("product_data", payload.get("productData")))
        if isinstance(payload, StatePayload):
            return normalize_state(payload.state)
        return normalize_state(payload)
    except Exception as e:
        logger.warning("Error extrayendo información del producto: %s", e)
        return DegradedPayload(raw=_raw(payload), reason=str(e))
