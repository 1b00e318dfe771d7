# Tests de los endpoints HTTP con el runner del spider reemplazado
import subprocess
import sys

import pytest
from fastapi.testclient import TestClient

from api import app as api_module

URL = "https://articulo.mercadolibre.com.mx/MLM-1234567-widget"


@pytest.fixture
def client():
    return TestClient(api_module.app)


@pytest.fixture
def fake_runner(monkeypatch):
    calls = []
    results = {}

    def runner(url, output):
        calls.append((url, output))
        result = results.get(output)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(api_module, "run_product_spider", runner)
    runner.calls = calls
    runner.results = results
    return runner


def test_health(client):
    response = client.get("/health")
    body = response.json()

    assert response.status_code == 200
    assert body["status"] == "OK"
    assert body["message"] == "Servidor de scraping funcionando"
    assert body["timestamp"]


@pytest.mark.parametrize("path", ["/scrape", "/scrape/product-info"])
def test_missing_url_is_bad_request(client, fake_runner, path):
    response = client.post(path, json={})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "URL es requerida"}
    assert fake_runner.calls == []


def test_scrape_returns_raw_payload(client, fake_runner):
    fake_runner.results["raw"] = {"state": {"pageState": {}}, "source": "state_element"}
    response = client.post("/scrape", json={"url": URL})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"] == {"pageState": {}}
    assert body["source"] == "state_element"
    assert fake_runner.calls == [(URL, "raw")]


def test_scrape_without_data_is_server_error(client, fake_runner):
    response = client.post("/scrape", json={"url": URL})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "No se pudo obtener datos de la página"}


def test_scrape_failure_is_server_error(client, fake_runner):
    fake_runner.results["raw"] = api_module.ScrapeError("Tiempo de scraping excedido")
    response = client.post("/scrape", json={"url": URL})

    assert response.status_code == 500
    assert response.json()["error"] == "Tiempo de scraping excedido"


def test_product_info_normalized(client, fake_runner):
    fake_runner.results["product"] = {"id": "MLM1", "title": "Widget"}
    response = client.post("/scrape/product-info", json={"url": URL})
    body = response.json()

    assert response.status_code == 200
    assert body["normalized"] is True
    assert body["data"] == {"id": "MLM1", "title": "Widget"}
    assert fake_runner.calls == [(URL, "product")]


def test_product_info_degraded_returns_raw_payload(client, fake_runner):
    raw = {"state": {"pageState": {"initialState": "roto"}}, "source": "state_element"}
    fake_runner.results["product"] = {"raw": raw, "reason": "roto", "degraded": True}
    response = client.post("/scrape/product-info", json={"url": URL})
    body = response.json()

    assert response.status_code == 200
    assert body["normalized"] is False
    assert body["data"] == raw["state"]
    assert body["source"] == "state_element"


def test_run_product_spider_reads_first_json_line(monkeypatch):
    captured = {}

    def fake_run(command, **kwargs):
        captured["command"] = command
        captured["kwargs"] = kwargs
        stdout = 'ruido\n{"id": "MLM1"}\n{"id": "MLM2"}\n'
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    monkeypatch.setattr(api_module.subprocess, "run", fake_run)
    result = api_module.run_product_spider(URL, "product")

    assert result == {"id": "MLM1"}
    assert captured["command"][:5] == [sys.executable, "-m", "scrapy", "crawl", "meli_product"]
    assert f"url={URL}" in captured["command"]
    assert "output=product" in captured["command"]
    assert captured["kwargs"]["timeout"] == api_module.SCRAPE_TIMEOUT_SECONDS


def test_run_product_spider_wraps_subprocess_errors(monkeypatch):
    def failing_run(command, **kwargs):
        raise subprocess.CalledProcessError(1, command, stderr="boom")

    monkeypatch.setattr(api_module.subprocess, "run", failing_run)
    with pytest.raises(api_module.ScrapeError):
        api_module.run_product_spider(URL, "raw")

    def slow_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, 1)

    monkeypatch.setattr(api_module.subprocess, "run", slow_run)
    with pytest.raises(api_module.ScrapeError):
        api_module.run_product_spider(URL, "raw")


def test_scrape_dom_extraction_keeps_manual_shape(client, fake_runner):
    fake_runner.results["raw"] = {
        "product_data": {"title": "Widget"},
        "synthetic_state": {"pageState": {"initialState": {"id": "manual-extraction"}}},
        "manual_extraction": True,
    }
    body = client.post("/scrape", json={"url": URL}).json()

    assert body["source"] == "dom"
    assert body["data"] == {
        "pageState": {"initialState": {"id": "manual-extraction"}},
        "manualExtraction": True,
        "productData": {"title": "Widget"},
    }


def test_run_product_spider_reports_browser_failure(monkeypatch):
    stderr = (
        "[meli_product] ERROR: Falla del navegador durante la extracción: La página se cerró\n"
        "[scrapy.core.engine] INFO: Closing spider (upstream_failure)\n"
    )

    def fake_run(command, **kwargs):
        return subprocess.CompletedProcess(command, 0, stdout="", stderr=stderr)

    monkeypatch.setattr(api_module.subprocess, "run", fake_run)
    with pytest.raises(api_module.ScrapeError, match="Falla del navegador"):
        api_module.run_product_spider(URL, "raw")


def test_run_product_spider_without_items_returns_none(monkeypatch):
    def fake_run(command, **kwargs):
        stderr = "[scrapy.core.engine] INFO: Closing spider (finished)\n"
        return subprocess.CompletedProcess(command, 0, stdout="", stderr=stderr)

    monkeypatch.setattr(api_module.subprocess, "run", fake_run)
    assert api_module.run_product_spider(URL, "raw") is None


def test_browser_failure_is_not_reported_as_missing_data(client, monkeypatch):
    def fake_run(command, **kwargs):
        stderr = "[scrapy.core.engine] INFO: Closing spider (upstream_failure)\n"
        return subprocess.CompletedProcess(command, 0, stdout="", stderr=stderr)

    monkeypatch.setattr(api_module.subprocess, "run", fake_run)
    response = client.post("/scrape", json={"url": URL})

    assert response.status_code == 500
    assert response.json()["error"] == "Falla del navegador durante la extracción"
