import logging

from meli_scraper.exceptions import ProductNotFound, UpstreamFailure
from meli_scraper.extraction.dom_extractor import extract_data_from_page
from meli_scraper.extraction.popups import dismiss_popups
from meli_scraper.extraction.state_locator import find_preloaded_state
from meli_scraper.items import build_manual_payload

logger = logging.getLogger(__name__)


def _has_usable_data(product_data):
    return bool(product_data.get("title")) or product_data.get("price") is not None


def _ensure_open(page):
    is_closed = getattr(page, "is_closed", None)
    if is_closed is not None and is_closed():
        raise UpstreamFailure("La página se cerró durante la extracción")


async def extract_raw_payload(page):
    """
    Obtiene el payload crudo del producto desde una página ya cargada.

    Cierra popups, busca el estado embebido y, si no existe, extrae los
    campos del DOM. No abre ni cierra el navegador: la página la provee el
    llamador.

    Args:
        page: Página de Playwright ya navegada y estabilizada.

    Returns:
        StatePayload si se encontró el estado embebido, o ManualPayload con
        los campos leídos del DOM.

    Raises:
        UpstreamFailure: Si la página se cerró.
        ProductNotFound: Si el DOM tampoco produjo datos utilizables.
    """
    _ensure_open(page)
    await dismiss_popups(page)

    state = await find_preloaded_state(page)
    if state is not None:
        return state

    _ensure_open(page)
    logger.warning("No se encontró JSON de estado, extrayendo del DOM")
    product_data = await extract_data_from_page(page)
    _ensure_open(page)

    if not _has_usable_data(product_data):
        raise ProductNotFound("La página no contiene datos de producto")
    return build_manual_payload(product_data)
