# Scrapy settings for meli_scraper project
#
# For simplicity, this file contains only settings considered important or
# commonly used. You can find more settings consulting the documentation:
#
#     https://docs.scrapy.org/en/latest/topics/settings.html
#     https://github.com/scrapy-plugins/scrapy-playwright#supported-settings

from config import (
    BLOCKED_RESOURCE_TYPES,
    BROWSER_EXECUTABLE_PATH,
    NAVIGATION_TIMEOUT_MS,
    USER_AGENT as BROWSER_USER_AGENT,
    VIEWPORT,
)

BOT_NAME = "meli_scraper"

SPIDER_MODULES = ["meli_scraper.spiders"]
NEWSPIDER_MODULE = "meli_scraper.spiders"

# User agent realista simulando navegador Chrome moderno
USER_AGENT = BROWSER_USER_AGENT

# Una sola URL por ejecución, sin robots.txt ni reintentos
ROBOTSTXT_OBEY = False
RETRY_ENABLED = False

# Playwright maneja todas las descargas
DOWNLOAD_HANDLERS = {
    "http": "scrapy_playwright.handler.ScrapyPlaywrightDownloadHandler",
    "https": "scrapy_playwright.handler.ScrapyPlaywrightDownloadHandler",
}

# Reactor AsyncIO requerido por scrapy-playwright
TWISTED_REACTOR = "twisted.internet.asyncioreactor.AsyncioSelectorReactor"

PLAYWRIGHT_BROWSER_TYPE = "chromium"

# Flags de Chromium para contenedores de producción
PLAYWRIGHT_LAUNCH_OPTIONS = {
    'headless': True,
    'args': [
        '--no-sandbox',
        '--disable-setuid-sandbox',
        '--disable-dev-shm-usage',
        '--disable-accelerated-2d-canvas',
        '--no-first-run',
        '--no-zygote',
        '--disable-gpu',
    ],
}
if BROWSER_EXECUTABLE_PATH:
    PLAYWRIGHT_LAUNCH_OPTIONS['executable_path'] = BROWSER_EXECUTABLE_PATH

PLAYWRIGHT_CONTEXTS = {
    'default': {
        'user_agent': BROWSER_USER_AGENT,
        'viewport': VIEWPORT,
    },
}

PLAYWRIGHT_DEFAULT_NAVIGATION_TIMEOUT = NAVIGATION_TIMEOUT_MS

# Un navegador por scraping; la concurrencia la limita el servicio HTTP
CONCURRENT_REQUESTS = 1
PLAYWRIGHT_MAX_PAGES_PER_CONTEXT = 1


def should_abort_request(request):
    """Bloquea imágenes, hojas de estilo y fuentes para acelerar la carga."""
    return request.resource_type in BLOCKED_RESOURCE_TYPES


PLAYWRIGHT_ABORT_REQUEST = should_abort_request

# Item processing pipelines with execution order
ITEM_PIPELINES = {
    # Validation pipeline: Descarta payloads sin datos (90)
    'meli_scraper.pipelines.PayloadValidationPipeline': 90,

    # Normalization pipeline: Proyecta el payload al registro canónico (300)
    'meli_scraper.pipelines.ProductNormalizationPipeline': 300,
}

FEED_EXPORT_ENCODING = "utf-8"
LOG_LEVEL = "INFO"
