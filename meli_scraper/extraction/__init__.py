"""
Pipeline de extracción sobre una página de Playwright ya cargada.

El orquestador cierra popups, busca el estado embebido y recurre al DOM
cuando no lo encuentra.
"""

from .orchestrator import extract_raw_payload
