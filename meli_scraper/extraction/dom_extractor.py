"""
Extractor de campos directamente desde el DOM renderizado.

Se usa solo cuando la página no trae estado embebido. Cada campo tiene una
lista ordenada de alternativas (selector CSS y, opcionalmente, el atributo a
leer); gana la primera alternativa con contenido no vacío. Cada lectura es
independiente: un selector que falla no afecta al resto de los campos.
"""

import logging
import re

from playwright.async_api import Error as PlaywrightError

from config import DEFAULT_CONDITION, DEFAULT_CURRENCY
from meli_scraper.utils import parse_price

logger = logging.getLogger(__name__)

# (selector, atributo); atributo None significa textContent
TITLE_SELECTORS = (
    ("h1.ui-pdp-title", None),
    (".ui-pdp-title", None),
    ("h1", None),
)

PRICE_SELECTORS = (
    (".ui-pdp-price__second-line .andes-money-amount__fraction", None),
    (".andes-money-amount__fraction", None),
    (".ui-pdp-price__part", None),
    (".price-tag-fraction", None),
    ('meta[itemprop="price"]', "content"),
    ('[itemprop="price"]', None),
)

CURRENCY_SELECTORS = (
    ('meta[itemprop="priceCurrency"]', "content"),
    (".andes-money-amount__currency-symbol", None),
)

DESCRIPTION_SELECTORS = (
    (".ui-pdp-description__content", None),
    ('[itemprop="description"]', None),
    (".item-description", None),
)

SELLER_SELECTORS = (
    (".ui-pdp-seller__header__title", None),
    (".seller-info__name", None),
    ('[data-testid="seller-name"]', None),
)

CONDITION_SELECTORS = (
    (".ui-pdp-subtitle", None),
    (".item-condition", None),
)

LOCATION_SELECTORS = (
    (".ui-pdp-seller__location", None),
    (".ui-seller-info__status-info__subtitle", None),
)

PERMALINK_SELECTORS = (
    ('link[rel="canonical"]', "href"),
    ('meta[property="og:url"]', "content"),
)

IMAGE_SELECTOR = ".ui-pdp-gallery__figure img, .gallery-image"
IMAGE_ATTRIBUTES = ("src", "data-src", "data-zoom")

AVAILABLE_SELECTORS = (
    ".ui-pdp-buybox__quantity__available",
    ".ui-pdp-buybox__quantity",
    '[data-testid="quantity-selector"]',
)

SITE_TITLE_SUFFIX = re.compile(r"\s*[-|]\s*Mercado\s*Li[bv]re.*$", re.IGNORECASE)

READ_ERRORS = (PlaywrightError, ValueError, TypeError)


async def read_selector(page, selector, attribute=None):
    """
    Lee el texto (o un atributo) del primer elemento que coincide con `selector`.

    Devuelve None si no hay elemento, si el contenido está vacío o si la
    lectura falla.
    """
    try:
        element = await page.query_selector(selector)
        if element is None:
            return None
        if attribute:
            value = await element.get_attribute(attribute)
        else:
            value = await element.text_content()
    except READ_ERRORS as e:
        logger.debug("Lectura de %s falló: %s", selector, e)
        return None
    if value is None:
        return None
    value = value.strip()
    return value or None


async def first_text(page, alternatives):
    """Primera alternativa (selector, atributo) con contenido no vacío."""
    for selector, attribute in alternatives:
        value = await read_selector(page, selector, attribute)
        if value:
            return value
    return None


async def first_price(page, alternatives=PRICE_SELECTORS):
    """Primera alternativa cuyo texto se puede parsear como precio."""
    for selector, attribute in alternatives:
        value = await read_selector(page, selector, attribute)
        price = parse_price(value)
        if price is not None:
            return price
    return None


def strip_site_suffix(title):
    """'Widget X - Mercado Libre' -> 'Widget X'."""
    if not title:
        return None
    return SITE_TITLE_SUFFIX.sub("", title).strip() or None


async def extract_title(page):
    title = await first_text(page, TITLE_SELECTORS)
    if title:
        return title
    try:
        return strip_site_suffix(await page.title())
    except READ_ERRORS as e:
        logger.debug("No se pudo leer document.title: %s", e)
        return None


async def extract_images(page):
    """URLs de las imágenes de la galería, sin data URIs ni duplicados."""
    try:
        elements = await page.query_selector_all(IMAGE_SELECTOR)
    except READ_ERRORS as e:
        logger.debug("No se pudieron listar imágenes: %s", e)
        return []

    images = []
    for element in elements:
        for attribute in IMAGE_ATTRIBUTES:
            try:
                src = await element.get_attribute(attribute)
            except READ_ERRORS:
                continue
            if src and not src.startswith("data:") and "data:image" not in src:
                if src not in images:
                    images.append(src)
                break
    return images


async def is_available(page):
    for selector in AVAILABLE_SELECTORS:
        try:
            if await page.query_selector(selector) is not None:
                return True
        except READ_ERRORS as e:
            logger.debug("Chequeo de stock %s falló: %s", selector, e)
    return False


async def extract_data_from_page(page):
    """
    Extrae un registro parcial del producto leyendo el DOM.

    Args:
        page: Página de Playwright ya cargada.

    Returns:
        dict con title, price, currency, description, seller, condition,
        location, permalink, images y available. Los campos sin coincidencia
        quedan en None o en su valor por defecto.
    """
    logger.info("Extrayendo datos directamente del DOM")
    return {
        "title": await extract_title(page),
        "price": await first_price(page),
        "currency": await first_text(page, CURRENCY_SELECTORS) or DEFAULT_CURRENCY,
        "description": await first_text(page, DESCRIPTION_SELECTORS),
        "seller": await first_text(page, SELLER_SELECTORS),
        "condition": await first_text(page, CONDITION_SELECTORS) or DEFAULT_CONDITION,
        "location": await first_text(page, LOCATION_SELECTORS),
        "permalink": await first_text(page, PERMALINK_SELECTORS),
        "images": await extract_images(page),
        "available": await is_available(page),
    }
