import json
from types import SimpleNamespace

import pytest

import gemini_service
from config import settings
from models import Location, Preferences, WaterType
from tests.conftest import FakeClient, grounded_response, text_response, web_chunk


LOCATION = Location(latitude=34.21, longitude=-77.8)
PREFS = Preferences(water_type=WaterType.SALTWATER, fish_type="Red drum")


def test_get_local_species_parses_schema_response():
    payload = {"freshwater": ["Largemouth bass", "Bluegill"], "saltwater": ["Red drum"]}
    client = FakeClient(response=text_response(json.dumps(payload)))

    species = gemini_service.get_local_species(LOCATION, client=client)

    assert species.freshwater == ["Largemouth bass", "Bluegill"]
    assert species.saltwater == ["Red drum"]
    call = client.models.calls[0]
    assert call["model"] == settings.SPECIES_MODEL
    assert "34.21" in call["contents"] and "-77.8" in call["contents"]
    assert call["config"].response_mime_type == "application/json"
    assert call["config"].response_schema.required == ["freshwater", "saltwater"]


@pytest.mark.parametrize("text", ["not json", "{}", '{"freshwater": ["Bass"]}', None])
def test_get_local_species_falls_back_on_bad_payload(text):
    client = FakeClient(response=text_response(text))

    species = gemini_service.get_local_species(LOCATION, client=client)

    assert species == gemini_service.FALLBACK_SPECIES


def test_get_local_species_falls_back_on_api_error():
    client = FakeClient(error=RuntimeError("quota exceeded"))

    species = gemini_service.get_local_species(LOCATION, client=client)

    assert species.saltwater == ["Redfish", "Snook", "Tuna", "Snapper", "Flounder"]


def test_get_local_species_falls_back_without_api_key(monkeypatch):
    monkeypatch.setattr(gemini_service.settings, "GEMINI_API_KEY", "")

    species = gemini_service.get_local_species(LOCATION)

    assert species.freshwater == ["Bass", "Trout", "Catfish", "Panfish", "Pike"]


def test_fallback_list_is_not_shared():
    species = gemini_service.get_local_species(LOCATION, client=FakeClient(error=RuntimeError()))
    species.freshwater.append("Muskie")

    assert "Muskie" not in gemini_service.FALLBACK_SPECIES.freshwater


def test_get_gemini_client_requires_key(monkeypatch):
    monkeypatch.setattr(gemini_service.settings, "GEMINI_API_KEY", "")

    with pytest.raises(gemini_service.GeminiConfigError):
        gemini_service.get_gemini_client()


def test_recommendation_prompt_includes_context_and_format():
    prompt = gemini_service.build_recommendation_prompt(LOCATION, PREFS)

    assert "Target Water: saltwater" in prompt
    assert "Target Species: Red drum" in prompt
    assert "# Conditions" in prompt
    assert "* **Pressure:**" in prompt
    assert "## 3. [Rig Name]" in prompt


def test_get_fishing_recommendation_joins_text_and_citations():
    response = grounded_response(
        ["# Conditions\n", None, "* **Wind:** 5 mph"],
        chunks=[
            web_chunk("https://weather.example/today", "Local forecast"),
            SimpleNamespace(web=None, maps=SimpleNamespace(uri="https://maps.example/p", title="Pier", place_id="abc")),
        ],
    )
    client = FakeClient(response=response)

    result = gemini_service.get_fishing_recommendation(LOCATION, PREFS, client=client)

    assert result.markdown == "# Conditions\n* **Wind:** 5 mph"
    assert result.grounding_chunks[0].web.uri == "https://weather.example/today"
    assert result.grounding_chunks[1].web is None
    assert result.grounding_chunks[1].maps.place_id == "abc"

    config = client.models.calls[0]["config"]
    assert client.models.calls[0]["model"] == settings.RECOMMENDATION_MODEL
    assert config.tools[0].google_search is not None
    assert config.thinking_config.thinking_budget == settings.THINKING_BUDGET


def test_get_fishing_recommendation_without_candidates():
    client = FakeClient(response=SimpleNamespace(candidates=None))

    result = gemini_service.get_fishing_recommendation(LOCATION, PREFS, client=client)

    assert result.markdown == gemini_service.NO_ADVICE_TEXT
    assert result.grounding_chunks == []


def test_get_fishing_recommendation_without_grounding_metadata():
    response = SimpleNamespace(candidates=[
        SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text="Advice")]), grounding_metadata=None)
    ])

    result = gemini_service.get_fishing_recommendation(LOCATION, PREFS, client=FakeClient(response=response))

    assert result.markdown == "Advice"
    assert result.grounding_chunks == []


def test_get_fishing_recommendation_propagates_errors():
    client = FakeClient(error=ConnectionError("network down"))

    with pytest.raises(ConnectionError):
        gemini_service.get_fishing_recommendation(LOCATION, PREFS, client=client)


def test_get_fishing_recommendation_logs_missing_key(monkeypatch, caplog):
    monkeypatch.setattr(gemini_service.settings, "GEMINI_API_KEY", "")

    with pytest.raises(gemini_service.GeminiConfigError):
        gemini_service.get_fishing_recommendation(LOCATION, PREFS)

    assert "Gemini API error while generating recommendation" in caplog.text
