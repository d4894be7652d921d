"""Shared fixtures: fake Gemini clients and a Flask test client."""

from types import SimpleNamespace

import pytest

import app as app_module
from wizard import WizardStore


class FakeModels:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


class FakeClient:
    def __init__(self, response=None, error=None):
        self.models = FakeModels(response, error)


def text_response(text):
    return SimpleNamespace(text=text)


def grounded_response(parts, chunks=()):
    return SimpleNamespace(candidates=[
        SimpleNamespace(
            content=SimpleNamespace(parts=[SimpleNamespace(text=p) for p in parts]),
            grounding_metadata=SimpleNamespace(grounding_chunks=list(chunks)),
        )
    ])


def web_chunk(uri, title):
    return SimpleNamespace(web=SimpleNamespace(uri=uri, title=title), maps=None)


SAMPLE_REPORT = """# Conditions
* **Time:** 6:45 AM EDT
* **Weather:** Overcast, light drizzle
* **Temp:** 58°F
* **Wind:** 8 mph SW
* **Pressure:** 29.92 inHg (falling)

# Recommended Rigs

## 1. Ned Rig
* **Hook:** 1/10 oz mushroom jighead
* **Components:** 6 lb fluorocarbon leader
* **Bait/Lure:** Green pumpkin 2.75 in TRD
* **Retrieve:** Slow drag with pauses

## 2. Drop Shot
* **Hook:** #1 drop shot hook
* **Components:** 1/4 oz weight, 18 in tag
* **Bait/Lure:** Morning dawn finesse worm
* **Retrieve:** Shake in place
"""


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(app_module, "wizards", WizardStore())
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as test_client:
        yield test_client
