"""
Página de Playwright en memoria para probar el pipeline sin navegador.

Solo implementa los métodos que usa el pipeline de extracción. Los valores
que devolvería `eval_on_selector_all` se cargan por selector, sin evaluar
JavaScript.
"""

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:

    def __init__(self, text=None, attrs=None, fail_click=False):
        self.text = text
        self.attrs = attrs or {}
        self.fail_click = fail_click
        self.clicks = 0

    async def text_content(self):
        return self.text

    async def get_attribute(self, name):
        return self.attrs.get(name)

    async def click(self):
        if self.fail_click:
            raise PlaywrightError("Element is not attached to the DOM")
        self.clicks += 1


class FakePage:

    def __init__(self, elements=None, selector_values=None, globals_=None,
                 title="", failing_selectors=(), failing_globals=(), closed=False):
        self.elements = elements or {}
        self.selector_values = selector_values or {}
        self.globals = globals_ or {}
        self._title = title
        self.failing_selectors = set(failing_selectors)
        self.failing_globals = set(failing_globals)
        self.closed = closed
        self.calls = []
        self.waits = []

    def _check(self, selector):
        if selector in self.failing_selectors:
            raise PlaywrightError(f"Evaluation failed for {selector}")

    async def wait_for_timeout(self, timeout):
        self.waits.append(timeout)

    async def wait_for_selector(self, selector, state=None, timeout=None):
        self.calls.append(("wait_for_selector", selector))
        self._check(selector)
        matches = self.elements.get(selector)
        if not matches:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {selector}")
        return matches[0]

    async def query_selector(self, selector):
        self.calls.append(("query_selector", selector))
        self._check(selector)
        matches = self.elements.get(selector)
        return matches[0] if matches else None

    async def query_selector_all(self, selector):
        self.calls.append(("query_selector_all", selector))
        self._check(selector)
        return list(self.elements.get(selector, []))

    async def eval_on_selector_all(self, selector, expression):
        self.calls.append(("eval_on_selector_all", selector))
        self._check(selector)
        return list(self.selector_values.get(selector, []))

    async def evaluate(self, expression, arg=None):
        self.calls.append(("evaluate", arg))
        if arg in self.failing_globals:
            raise PlaywrightError(f"Could not serialize {arg}")
        return self.globals.get(arg)

    async def title(self):
        return self._title

    async def close(self):
        self.closed = True

    def is_closed(self):
        return self.closed

    def called(self, method):
        return [arg for name, arg in self.calls if name == method]
