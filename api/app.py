import json
import logging
import re
import subprocess
import sys
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import MAX_CONCURRENT_SCRAPES, PORT, SCRAPE_TIMEOUT_SECONDS
from meli_scraper.exceptions import UPSTREAM_CLOSE_REASON

# Inicializar aplicación FastAPI con middleware CORS para solicitudes de origen cruzado
app = FastAPI(title="MercadoLibre Product Scraper API")
logger = logging.getLogger("meli.api")
logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Cada scraping lanza un navegador; el semáforo acota cuántos corren a la vez
scrape_slots = threading.BoundedSemaphore(MAX_CONCURRENT_SCRAPES)

# Scrapy registra el motivo de cierre del spider en stderr
FINISH_REASON_PATTERN = re.compile(r"Closing spider \((\w+)\)")

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


class ScrapeRequest(BaseModel):
    url: Optional[str] = None


class ScrapeError(Exception):
    """El spider terminó con error o excedió el tiempo máximo."""


def run_product_spider(url: str, output: str) -> Optional[dict]:
    """
    Ejecuta el spider de producto como subproceso y devuelve su primer item.

    El spider escribe los items como JSON lines en stdout; los logs de Scrapy
    van a stderr.

    Args:
        url: URL de la página de producto.
        output: 'raw' para el payload crudo, 'product' para el registro normalizado.

    Returns:
        El item exportado por el spider, o None si no produjo ninguno.

    Raises:
        ScrapeError: Si el subproceso falla, excede SCRAPE_TIMEOUT_SECONDS
            o el spider cerró por una falla del navegador.
    """
    command = [
        sys.executable, "-m", "scrapy", "crawl", "meli_product",
        "-a", f"url={url}",
        "-a", f"output={output}",
        "-o", "-:jsonlines",
    ]
    with scrape_slots:
        logger.info("Iniciando scraping para: %s", url)
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                check=True,
                encoding="utf-8",
                errors="ignore",
                cwd=PROJECT_ROOT,
                timeout=SCRAPE_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as e:
            logger.error("Error en el subproceso de Scrapy (exit %s): %s", e.returncode, e.stderr)
            raise ScrapeError(f"El scraper terminó con código {e.returncode}") from e
        except subprocess.TimeoutExpired as e:
            logger.error("Scraping excedió %s segundos: %s", SCRAPE_TIMEOUT_SECONDS, url)
            raise ScrapeError("Tiempo de scraping excedido") from e

    if finish_reason(result.stderr) == UPSTREAM_CLOSE_REASON:
        logger.error("El navegador falló durante la extracción: %s", url)
        raise ScrapeError("Falla del navegador durante la extracción")

    for line in result.stdout.splitlines():
        clean_line = line.strip()
        if clean_line.startswith("{") and clean_line.endswith("}"):
            try:
                return json.loads(clean_line)
            except json.JSONDecodeError:
                logger.warning("Línea JSON inválida ignorada: %.200s", clean_line)
    return None


def finish_reason(log_text):
    match = FINISH_REASON_PATTERN.search(log_text or "")
    return match.group(1) if match else None


def unwrap_payload(payload):
    """
    Devuelve `(data, source)` con la forma pública del payload crudo.

    Un estado embebido se expone como el árbol de estado tal cual. Una
    extracción del DOM se expone como el estado sintético con las claves
    `manualExtraction` y `productData`.
    """
    if "state" in payload:
        return payload["state"], payload.get("source")
    if payload.get("manual_extraction"):
        data = dict(payload.get("synthetic_state") or {})
        data["manualExtraction"] = True
        data["productData"] = payload.get("product_data")
        return data, "dom"
    return payload, None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.post("/scrape")
def scrape(body: ScrapeRequest):
    """
    Devuelve el payload crudo de la página: el estado embebido o los campos
    extraídos del DOM.
    """
    if not body.url:
        return _error(400, "URL es requerida")

    try:
        data = run_product_spider(body.url, "raw")
    except ScrapeError as e:
        logger.error("Error en scraping: %s", e)
        return _error(500, str(e))

    if not data:
        return _error(500, "No se pudo obtener datos de la página")

    data, source = unwrap_payload(data)
    return {"success": True, "data": data, "source": source, "message": "Scraping completado exitosamente"}


@app.post("/scrape/product-info")
def scrape_product_info(body: ScrapeRequest):
    """
    Devuelve el registro normalizado del producto.

    Si la normalización no pudo completarse, `data` es el payload crudo y
    `normalized` es False.
    """
    if not body.url:
        return _error(400, "URL es requerida")

    try:
        data = run_product_spider(body.url, "product")
    except ScrapeError as e:
        logger.error("Error obteniendo información del producto: %s", e)
        return _error(500, str(e))

    if not data:
        return _error(500, "No se pudo obtener datos de la página")

    if data.get("degraded"):
        raw, source = unwrap_payload(data.get("raw") or {})
        return {
            "success": True,
            "data": raw,
            "source": source,
            "normalized": False,
            "message": "No se pudo normalizar el producto; se devuelven los datos crudos",
        }
    return {
        "success": True,
        "data": data,
        "normalized": True,
        "message": "Información del producto obtenida exitosamente",
    }


@app.get("/health")
def health():
    return {
        "status": "OK",
        "message": "Servidor de scraping funcionando",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=PORT)
