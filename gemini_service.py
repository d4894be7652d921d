"""
Gemini client for species lookup and rig recommendations
--------------------------------------------------------

Two sequential requests are made per wizard run:

1. ``get_local_species`` asks a fast model for the five most popular sport
   fish near the user, once for freshwater and once for saltwater.  The
   response is constrained to JSON by ``SPECIES_SCHEMA``.  Any failure falls
   back to ``FALLBACK_SPECIES`` so the wizard can always continue.
2. ``get_fishing_recommendation`` asks a reasoning model, with the Google
   Search tool enabled, to look up live weather and water conditions and
   suggest three rigs.  The answer is free-form markdown in a fixed layout
   (see ``build_recommendation_prompt``) together with the search citations.
   Failures are re-raised so the caller can show the error screen.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from google import genai
from google.genai import types

from config import settings
from models import (
    GroundingChunk,
    LocalSpecies,
    Location,
    MapsSource,
    Preferences,
    RecommendationResult,
    WebSource,
)


logger = logging.getLogger(__name__)

NO_ADVICE_TEXT = "No advice generated."

FALLBACK_SPECIES = LocalSpecies(
    freshwater=["Bass", "Trout", "Catfish", "Panfish", "Pike"],
    saltwater=["Redfish", "Snook", "Tuna", "Snapper", "Flounder"],
)

SPECIES_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "freshwater": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
        "saltwater": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
    },
    required=["freshwater", "saltwater"],
)


class GeminiConfigError(RuntimeError):
    """Raised when the Gemini client cannot be configured."""


def get_gemini_client() -> genai.Client:
    """Initialize and return a Gemini client."""
    if not settings.GEMINI_API_KEY:
        raise GeminiConfigError("API Key not found in environment variables")
    return genai.Client(api_key=settings.GEMINI_API_KEY)


# ---------------------------------------------------------------------------
# Species lookup
# ---------------------------------------------------------------------------

def build_species_prompt(location: Location) -> str:
    return f"""
Identify the top 5 most popular sport fishing species for fresh water and salt water
near Latitude: {location.latitude}, Longitude: {location.longitude}.
Return the results in a strictly formatted JSON object with keys "freshwater" and "saltwater".
Each key should be an array of strings (species names).
"""


def get_local_species(location: Location, client: Optional[Any] = None) -> LocalSpecies:
    """Fetch popular local species, falling back to a generic list on failure."""
    try:
        client = client or get_gemini_client()
        response = client.models.generate_content(
            model=settings.SPECIES_MODEL,
            contents=build_species_prompt(location),
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=SPECIES_SCHEMA,
            ),
        )
        data = json.loads(response.text or "{}")
        return LocalSpecies.model_validate(data)
    except Exception as exc:
        logger.warning("Error fetching species, using fallback list: %s", exc)
        return FALLBACK_SPECIES.model_copy(deep=True)


# ---------------------------------------------------------------------------
# Rig recommendation
# ---------------------------------------------------------------------------

_RIG_SECTION = """
## {n}. [Rig Name]
* **Hook:** [Size & Type]
* **Components:** [Weight, Leader, Line details]
* **Bait/Lure:** [Specific color, size, type]
* **Retrieve:** [Optimal retrieve method]
"""


def build_recommendation_prompt(location: Location, prefs: Preferences) -> str:
    """Build the expert-guide prompt.

    The ``# Conditions`` bullet list is what the results dashboard scrapes,
    so its ``* **Key:** value`` shape must stay stable.
    """
    rigs = "".join(_RIG_SECTION.format(n=n) for n in (1, 2, 3))
    return f"""
You are an expert fishing guide with deep knowledge of advanced techniques.

User Context:
- Location: Latitude {location.latitude}, Longitude {location.longitude}
- Target Water: {prefs.water_type.value}
- Target Species: {prefs.fish_type}

Task:
1. Use Google Search to find the current live weather, wind, time, and water conditions for this location.
2. Based on these SPECIFIC conditions (e.g., is it overcast? is the pressure dropping? water clarity?), provide 3 distinct rig setups.
3. CRITICAL: Think deeply about the optimal presentation. Do not just default to basic rigs. Consider advanced or niche techniques (e.g., Neko rig, Wacky rig, Drop shot, Ned rig, Tokyo rig, Carolina rig, specific fly patterns) if they are scientifically more likely to produce strikes in the current specific weather/water conditions. Explain WHY this specific rig works for these current conditions in your thinking, then output the result.

Output Format (Markdown):

# Conditions
* **Time:** [Local Time]
* **Weather:** [Brief Condition]
* **Temp:** [Air Temp]
* **Wind:** [Speed & Direction]
* **Pressure:** [Barometric Pressure, e.g. 30.12 inHg]

# Recommended Rigs
{rigs}
Keep the descriptions concise and professional. Do not identify specific bodies of water or map locations.
"""


def _convert_chunk(chunk: Any) -> GroundingChunk:
    web = getattr(chunk, "web", None)
    maps = getattr(chunk, "maps", None)
    return GroundingChunk(
        web=WebSource(uri=web.uri or "", title=web.title or "") if web else None,
        maps=MapsSource(
            uri=maps.uri or "",
            title=maps.title or "",
            place_id=getattr(maps, "place_id", None) or "",
        ) if maps else None,
    )


def parse_recommendation_response(response: Any) -> RecommendationResult:
    """Shape a raw generate_content response into a ``RecommendationResult``."""
    candidates = getattr(response, "candidates", None) or []
    candidate = candidates[0] if candidates else None

    text = ""
    content = getattr(candidate, "content", None)
    if content is not None:
        parts: List[Any] = content.parts or []
        text = "".join(part.text for part in parts if getattr(part, "text", None))

    metadata = getattr(candidate, "grounding_metadata", None)
    chunks = (getattr(metadata, "grounding_chunks", None) or []) if metadata else []

    return RecommendationResult(
        markdown=text or NO_ADVICE_TEXT,
        grounding_chunks=[_convert_chunk(c) for c in chunks],
    )


def get_fishing_recommendation(
    location: Location,
    prefs: Preferences,
    client: Optional[Any] = None,
) -> RecommendationResult:
    """Request search-grounded rig advice for the user's location and target."""
    try:
        client = client or get_gemini_client()
        response = client.models.generate_content(
            model=settings.RECOMMENDATION_MODEL,
            contents=build_recommendation_prompt(location, prefs),
            config=types.GenerateContentConfig(
                tools=[types.Tool(google_search=types.GoogleSearch())],
                thinking_config=types.ThinkingConfig(
                    thinking_budget=settings.THINKING_BUDGET,
                ),
            ),
        )
    except Exception:
        logger.exception("Gemini API error while generating recommendation")
        raise
    return parse_recommendation_response(response)
