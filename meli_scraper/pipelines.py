from collections.abc import Mapping

from scrapy.exceptions import DropItem

from meli_scraper.items import DegradedPayload, ManualPayload, StatePayload
from meli_scraper.normalizer import normalize_product

OUTPUT_RAW = "raw"
OUTPUT_PRODUCT = "product"


class PayloadValidationPipeline:
    """
    Pipeline de validación para asegurar que el payload crudo tenga datos.

    Descarta estados vacíos o que no son objetos JSON y extracciones
    manuales sin registro de producto, para que el llamador reciba "sin
    resultados" en lugar de un registro armado solo con valores por defecto.
    """

    def process_item(self, item, spider):
        """
        Valida el contenido mínimo del payload.

        Args:
            item: StatePayload o ManualPayload producido por el spider.
            spider: Instancia del spider (utilizado para contexto de logging).

        Returns:
            El item si pasa validación.

        Raises:
            DropItem: Si el payload no contiene datos utilizables.
        """
        if isinstance(item, StatePayload):
            if not isinstance(item.state, Mapping) or not item.state:
                raise DropItem("Estado embebido vacío: descartado por PayloadValidationPipeline")
        elif isinstance(item, ManualPayload):
            if not isinstance(item.product_data, Mapping) or not item.product_data:
                raise DropItem("Extracción manual sin datos: descartada por PayloadValidationPipeline")
        else:
            raise DropItem(f"Tipo de item inesperado: {type(item).__name__}")
        return item


class ProductNormalizationPipeline:
    """
    Pipeline que proyecta el payload crudo al registro canónico.

    Solo actúa cuando el spider se ejecuta con `output=product`; con
    `output=raw` el payload se exporta tal como se encontró.
    """

    def process_item(self, item, spider):
        if getattr(spider, 'output', OUTPUT_RAW) != OUTPUT_PRODUCT:
            return item

        result = normalize_product(item)
        if isinstance(result, DegradedPayload):
            spider.logger.warning(f"Normalización degradada, se devuelve el payload crudo: {result.reason}")
        else:
            spider.logger.info(f"Producto normalizado: {result.get('id')} - {result.get('title')!r}")
        return result
