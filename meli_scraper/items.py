from dataclasses import dataclass, field

import scrapy


MANUAL_EXTRACTION_ID = "manual-extraction"


class ProductItem(scrapy.Item):
    """
    Item de Scrapy con la forma canónica del registro de producto.

    Todos los campos se completan siempre: la ausencia de datos en la página
    produce el valor por defecto del campo, nunca un campo faltante.
    """
    id = scrapy.Field()
    title = scrapy.Field()
    price = scrapy.Field()
    currency = scrapy.Field()
    item_status = scrapy.Field()
    condition = scrapy.Field()
    available_quantity = scrapy.Field()
    sold_quantity = scrapy.Field()
    permalink = scrapy.Field()

    # {id, name, reputation}
    seller = scrapy.Field()
    # {free_shipping, promise}
    shipping = scrapy.Field()

    payment_methods = scrapy.Field()
    images = scrapy.Field()
    specifications = scrapy.Field()


@dataclass
class StatePayload:
    """Estado embebido tal como se encontró en la página."""
    state: dict
    source: str = "unknown"


@dataclass
class ManualPayload:
    """
    Campos leídos del DOM cuando la página no trae estado embebido.

    `synthetic_state` replica la forma mínima del estado real para que los
    consumidores que esperan `pageState.initialState` sigan funcionando.
    """
    product_data: dict
    synthetic_state: dict = field(default_factory=dict)
    manual_extraction: bool = True


@dataclass
class DegradedPayload:
    """Payload original devuelto sin cambios porque la normalización falló."""
    raw: dict
    reason: str = ""
    degraded: bool = True


def build_manual_payload(product_data):
    """
    Envuelve los campos extraídos del DOM en un ManualPayload.

    Args:
        product_data: Registro parcial producido por el extractor DOM.

    Returns:
        ManualPayload con el estado sintético mínimo.
    """
    synthetic_state = {
        "pageState": {
            "initialState": {
                "id": MANUAL_EXTRACTION_ID,
                "components": {
                    "price": {
                        "price": {
                            "value": product_data.get("price"),
                            "currency_id": product_data.get("currency"),
                        }
                    }
                },
                "share": {
                    "title": product_data.get("title"),
                    "permalink": product_data.get("permalink"),
                },
            }
        }
    }
    return ManualPayload(product_data=dict(product_data), synthetic_state=synthetic_state)
