"""
Módulo de spiders para el scraper de MercadoLibre.

Este paquete contiene el spider de página de producto que entrega la página
de Playwright al pipeline de extracción.
"""

from .product_spider import MercadoLibreProductSpider
