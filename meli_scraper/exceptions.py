"""
Excepciones del pipeline de extracción de productos.

Cada tipo indica en qué punto del pipeline se originó la falla y quién la
recupera: las estrategias fallidas y los payloads mal formados se recuperan
dentro del núcleo; `ProductNotFound` y `UpstreamFailure` llegan al llamador.
"""


class ExtractionError(Exception):
    """Clase base para todos los errores del pipeline de extracción."""


class StrategyFailed(ExtractionError):
    """
    Una estrategia de búsqueda (del localizador de estado o del extractor DOM)
    no pudo resolver su valor. Siempre se recupera probando la siguiente.
    """

    def __init__(self, strategy, reason=""):
        self.strategy = strategy
        self.reason = reason
        super().__init__(f"{strategy}: {reason}" if reason else strategy)


class PayloadMalformed(ExtractionError):
    """
    El payload se parseó pero su estructura no permite proyectarlo a un
    ProductItem. Se recupera devolviendo el payload original sin modificar.
    """


class ProductNotFound(ExtractionError):
    """Ni el estado embebido ni el DOM produjeron datos utilizables."""


class UpstreamFailure(ExtractionError):
    """La página misma falló (navegación, página cerrada). No es recuperable."""


# Motivo de cierre del spider cuando la extracción termina por UpstreamFailure
UPSTREAM_CLOSE_REASON = "upstream_failure"
