# meli-product-scraper/config.py

import os

# --- Servicio HTTP ---
PORT = int(os.environ.get("PORT", 3000))

# Máximo de navegadores simultáneos (uno por scraping en curso)
MAX_CONCURRENT_SCRAPES = int(os.environ.get("MAX_CONCURRENT_SCRAPES", 5))

# Tiempo máximo de un scraping completo, impuesto por el llamador
SCRAPE_TIMEOUT_SECONDS = int(os.environ.get("SCRAPE_TIMEOUT_SECONDS", 180))

# --- Navegador ---
# Chromium del sistema; si no se define se usa el que instala Playwright
BROWSER_EXECUTABLE_PATH = os.environ.get("BROWSER_EXECUTABLE_PATH") or None

USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

VIEWPORT = {'width': 1280, 'height': 800}

NAVIGATION_TIMEOUT_MS = 90000
BODY_TIMEOUT_MS = 10000
PAGE_SETTLE_MS = 2000

# Recursos que no aportan datos y solo demoran la carga
BLOCKED_RESOURCE_TYPES = ('image', 'stylesheet', 'font')

# --- Valores por defecto del registro de producto ---
DEFAULT_CURRENCY = 'MXN'
DEFAULT_CONDITION = 'Nuevo'
DEFAULT_ITEM_STATUS = 'unknown'
NOT_AVAILABLE = 'N/A'
UNAVAILABLE_TEXT = 'No disponible'
FREE_SHIPPING_TEXT = 'Envío gratis'
