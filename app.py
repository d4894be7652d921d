"""
AnglerAI Fishing Wizard
-----------------------

This Flask application walks an angler through a short wizard and returns
AI-generated rig advice for their current spot.  The browser shares its
position, Gemini suggests the most popular local species, the angler picks
a water type and target fish, and a search-grounded Gemini request looks up
live weather before recommending three rigs.  The results page scrapes the
reported conditions into a small dashboard, renders the rig write-ups and
lists the web pages the answer was grounded on.

The application exposes these endpoints:

* ``/`` -- renders whichever wizard step the session is on.
* ``/location`` -- POST with browser coordinates (or a zip code fallback).
* ``/advance`` -- POST issued by the loading screen to run the pending
  Gemini request.
* ``/preferences`` -- POST with the water type and target species.
* ``/retry`` and ``/reset`` -- POST to leave the error screen or start over.
* ``/api/species`` and ``/api/recommendation`` -- JSON versions of the two
  Gemini requests.

Wizard state is held in memory for the lifetime of the process and keyed by
a session cookie; nothing is persisted.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from flask import (
    Flask,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from pydantic import ValidationError

import gemini_service
import locations
import results
from config import settings
from models import Preferences, Step, WaterType
from wizard import StepController, WizardStore


logger = logging.getLogger(__name__)

# Set up Flask app
app = Flask(__name__)
app.config["SECRET_KEY"] = settings.SECRET_KEY

wizards = WizardStore(max_size=settings.WIZARD_MAX_SESSIONS)

OTHER_SPECIES = "__other__"


def _controller() -> StepController:
    wizard_id = session.get("wizard_id")
    if not wizard_id:
        wizard_id = wizards.new_id()
        session["wizard_id"] = wizard_id
    return wizards.get(wizard_id)


def _parse_water_type(value: Optional[str]) -> WaterType:
    try:
        return WaterType(value or WaterType.FRESHWATER.value)
    except ValueError:
        return WaterType.FRESHWATER


def _render_location(controller: StepController, status: int = 200) -> Any:
    return render_template("location.html", error=controller.location_error), status


def _render_preferences(
    controller: StepController,
    water_type: WaterType = WaterType.FRESHWATER,
    error: Optional[str] = None,
    status: int = 200,
) -> Any:
    species = {wt.value: controller.species_options(wt) for wt in WaterType}
    return render_template(
        "preferences.html",
        species=species,
        water_type=water_type.value,
        other_value=OTHER_SPECIES,
        error=error,
    ), status


@app.route("/")
def index() -> Any:
    """Render the current wizard step."""
    controller = _controller()
    step = controller.step

    if step == Step.LOCATION:
        return _render_location(controller)
    if step == Step.PREFERENCES:
        return _render_preferences(controller)
    if step == Step.LOADING:
        return render_template(
            "loading.html",
            message=controller.loading_message,
            in_flight=controller.pending_job is None,
        )
    if step == Step.RESULTS and controller.result is not None:
        result = controller.result
        return render_template(
            "results.html",
            dashboard=results.build_dashboard(result.markdown),
            body=results.render_markdown(result.markdown),
            sources=results.web_sources(result.grounding_chunks),
            location=controller.location,
            preferences=controller.preferences,
        )
    if step == Step.ERROR:
        return render_template("error.html")

    # RESULTS without a result should not happen; start over.
    controller.reset()
    return redirect(url_for("index"))


@app.route("/location", methods=["POST"])
def submit_location() -> Any:
    """Accept browser geolocation output or a zip code typed by the user.

    The page script posts ``geo_error`` (``denied`` or ``unsupported``) when
    the platform geolocation call fails; the error is shown inline and the
    wizard stays on the location step.
    """
    controller = _controller()
    form = request.form

    geo_error = form.get("geo_error")
    if geo_error:
        message = (
            locations.GEOLOCATION_UNSUPPORTED_MESSAGE
            if geo_error == "unsupported"
            else locations.GEOLOCATION_DENIED_MESSAGE
        )
        controller.location_failed(message)
        return _render_location(controller, 400)

    zipcode = form.get("zipcode", "").strip()
    if zipcode:
        location = locations.geocode_zip(zipcode)
        if location is None:
            controller.location_failed(f"Could not find zip code {zipcode}.")
            return _render_location(controller, 400)
    else:
        try:
            location = locations.parse_coordinates(
                form.get("latitude"), form.get("longitude"), form.get("label"),
            )
        except locations.LocationError as exc:
            logger.info("Rejected location submission: %s", exc)
            controller.location_failed(locations.GEOLOCATION_DENIED_MESSAGE)
            return _render_location(controller, 400)

    controller.location_found(location)
    return redirect(url_for("index"))


@app.route("/advance", methods=["POST"])
def advance() -> Any:
    """Run the Gemini request the loading screen is waiting on."""
    controller = _controller()
    controller.run_pending(
        gemini_service.get_local_species,
        gemini_service.get_fishing_recommendation,
    )
    return redirect(url_for("index"))


@app.route("/preferences", methods=["POST"])
def submit_preferences() -> Any:
    """Capture the target water type and species and queue the recommendation."""
    controller = _controller()
    if controller.step != Step.PREFERENCES:
        return redirect(url_for("index"))

    water_type = _parse_water_type(request.form.get("water_type"))
    fish_type = request.form.get("fish_type", "")
    if fish_type == OTHER_SPECIES:
        fish_type = request.form.get("custom_fish", "")

    try:
        prefs = Preferences(water_type=water_type, fish_type=fish_type)
    except ValidationError:
        return _render_preferences(
            controller, water_type, error="Please choose or enter a species.", status=400,
        )

    controller.submit_preferences(prefs)
    return redirect(url_for("index"))


@app.route("/retry", methods=["POST"])
def retry() -> Any:
    _controller().retry()
    return redirect(url_for("index"))


@app.route("/reset", methods=["POST"])
def reset() -> Any:
    """Start over from the location step."""
    wizard_id = session.get("wizard_id")
    if wizard_id:
        wizards.discard(wizard_id)
    session["wizard_id"] = wizards.new_id()
    return redirect(url_for("index"))


@app.route("/api/species")
def api_species() -> Any:
    """Return popular local species for ``lat``/``lng`` as JSON."""
    try:
        location = locations.parse_coordinates(request.args.get("lat"), request.args.get("lng"))
    except locations.LocationError as exc:
        return jsonify({"error": str(exc)}), 400
    species = gemini_service.get_local_species(location)
    return jsonify(species.model_dump())


@app.route("/api/recommendation", methods=["POST"])
def api_recommendation() -> Any:
    """Return rig advice as JSON.

    Expects ``{"latitude": .., "longitude": .., "water_type": .., "fish_type": ..}``.
    Responds 400 for unusable input and 502 when the Gemini request fails.
    """
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    try:
        location = locations.parse_coordinates(
            payload.get("latitude"), payload.get("longitude"), payload.get("label"),
        )
        prefs = Preferences(
            water_type=payload.get("water_type", WaterType.FRESHWATER.value),
            fish_type=payload.get("fish_type", ""),
        )
    except (locations.LocationError, ValidationError) as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        result = gemini_service.get_fishing_recommendation(location, prefs)
    except Exception as exc:
        logger.error("Recommendation request failed: %s", exc)
        return jsonify({"error": "Could not generate the fishing report"}), 502

    return jsonify({
        "markdown": result.markdown,
        "grounding_chunks": [c.model_dump(exclude_none=True) for c in result.grounding_chunks],
        "dashboard": results.build_dashboard(result.markdown),
        "sources": results.web_sources(result.grounding_chunks),
    })


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host=settings.HOST, port=settings.PORT)
