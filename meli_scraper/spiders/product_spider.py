"""
Spider de página de producto de MercadoLibre.

Este spider carga una única URL de producto con Playwright, cierra popups y
extrae el estado embebido de la página (o, si no existe, los campos del DOM).
El payload resultante se exporta crudo o normalizado según el argumento
`output`.
"""

import scrapy
from scrapy.exceptions import CloseSpider
from scrapy_playwright.page import PageMethod

from config import BODY_TIMEOUT_MS, PAGE_SETTLE_MS
from meli_scraper.exceptions import UPSTREAM_CLOSE_REASON, ProductNotFound, UpstreamFailure
from meli_scraper.extraction.orchestrator import extract_raw_payload
from meli_scraper.pipelines import OUTPUT_PRODUCT, OUTPUT_RAW


class MercadoLibreProductSpider(scrapy.Spider):
    """
    Spider de Scrapy para una página de producto de MercadoLibre.

    Un solo intento por URL: sin reintentos ni paginación. La página de
    Playwright se entrega al pipeline de extracción y se cierra siempre al
    terminar, haya o no resultado.
    """

    name = "meli_product"

    def __init__(self, url="", output=OUTPUT_RAW, **kwargs):
        """
        Inicializa el spider con la URL del producto.

        Args:
            url: URL de la página de producto (requerida).
            output: 'raw' para exportar el payload crudo, 'product' para el
                registro normalizado.

        Raises:
            ValueError: Si no se proporciona la URL o el output es inválido.
        """
        super().__init__(**kwargs)
        if not url:
            raise ValueError("URL es requerida")
        if output not in (OUTPUT_RAW, OUTPUT_PRODUCT):
            raise ValueError(f"output inválido: {output!r}")

        self.start_urls = [url]
        self.output = output

        self.logger.info(f"Iniciando scraping para: {url} (output={output})")

    def start_requests(self):
        """
        Genera la solicitud inicial con configuración de Playwright.

        Espera el estado de red inactiva, luego el <body> y una pausa fija
        para el contenido dinámico antes de entregar la página al callback.
        """
        for url in self.start_urls:
            yield scrapy.Request(
                url,
                meta={
                    'playwright': True,
                    'playwright_include_page': True,
                    'playwright_page_goto_kwargs': {'wait_until': 'networkidle'},
                    'playwright_page_methods': [
                        PageMethod('wait_for_selector', 'body', timeout=BODY_TIMEOUT_MS),
                        PageMethod('wait_for_timeout', PAGE_SETTLE_MS),
                    ],
                },
                callback=self.parse,
                errback=self.errback_close_page,
                dont_filter=True,
            )

    async def errback_close_page(self, failure):
        """
        Callback de error para cerrar la página de Playwright ante una falla.

        Args:
            failure: Objeto failure de Scrapy con los detalles del error.

        Raises:
            CloseSpider: Siempre; la navegación fallida es una falla del navegador.
        """
        page = failure.request.meta.get("playwright_page")
        if page is not None:
            await page.close()
        self.logger.error(f"Error cargando la página: {failure.value}")
        raise CloseSpider(UPSTREAM_CLOSE_REASON)

    async def parse(self, response):
        """
        Extrae el payload del producto desde la página renderizada.

        Args:
            response: Objeto response de Scrapy con la página de Playwright en meta.
        """
        page = response.meta["playwright_page"]
        try:
            payload = await extract_raw_payload(page)
        except ProductNotFound as e:
            self.logger.error(f"No se pudo obtener datos de la página: {e}")
            return
        except UpstreamFailure as e:
            self.logger.error(f"Falla del navegador durante la extracción: {e}")
            # run_product_spider lee este motivo de cierre en los logs del crawl
            raise CloseSpider(UPSTREAM_CLOSE_REASON) from e
        finally:
            await page.close()

        self.logger.info(f"Payload obtenido ({type(payload).__name__}) para {response.url}")
        yield payload
