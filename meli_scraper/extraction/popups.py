import logging

logger = logging.getLogger(__name__)

# Orden fijo: banners de cookies, avisos de login y botones de cierre de modales
POPUP_SELECTORS = (
    'button[data-testid="action:understood-button"]',
    'button[data-testid="action:cookie-accept"]',
    '.cookie-consent-banner-opt-out__action--key-accept',
    '.andes-modal__close-button',
    '[aria-label="Cerrar"]',
    '.modal-close',
)

SETTLE_DELAY_MS = 1000
CLICK_DELAY_MS = 500


async def dismiss_popups(page, selectors=POPUP_SELECTORS):
    """
    Cierra los popups e intersticiales visibles antes de extraer datos.

    Para cada selector hace clic en todas las coincidencias, esperando un
    momento tras cada clic para que el DOM se estabilice. Es best-effort:
    cualquier error al buscar o clickear se registra y se pasa al siguiente
    selector, nunca se propaga.

    Args:
        page: Página de Playwright ya cargada.
        selectors: Secuencia ordenada de selectores CSS de popups.
    """
    try:
        await page.wait_for_timeout(SETTLE_DELAY_MS)
    except Exception as e:
        logger.debug("No se pudo esperar antes de cerrar popups: %s", e)

    for selector in selectors:
        try:
            elements = await page.query_selector_all(selector)
        except Exception as e:
            logger.debug("Selector de popup %s falló: %s", selector, e)
            continue

        for element in elements:
            try:
                await element.click()
                logger.info("Cerrado popup: %s", selector)
                await page.wait_for_timeout(CLICK_DELAY_MS)
            except Exception as e:
                logger.debug("No se pudo cerrar popup %s: %s", selector, e)
