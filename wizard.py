"""Step controller for the fishing wizard.

The controller owns the current ``Step`` and everything gathered so far.
Views never set the step directly; they call one of the transition methods
below.  Transitions follow the flow::

    LOCATION --location_found--> LOADING --species--> PREFERENCES
    PREFERENCES --submit_preferences--> LOADING --ok--> RESULTS
                                                --fail--> ERROR --retry--> PREFERENCES
    any --reset--> LOCATION

Work that the LOADING screen waits on is recorded as a pending job and
executed by ``run_pending`` so the page can render before the slow AI call.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Callable, List, Optional

from models import (
    LocalSpecies,
    Location,
    Preferences,
    RecommendationResult,
    Step,
    WaterType,
)


logger = logging.getLogger(__name__)

SPECIES_LOADING_MESSAGE = "Identifying local fish species..."
RECOMMENDATION_LOADING_MESSAGE = "Analyzing weather & water conditions..."

JOB_SPECIES = "species"
JOB_RECOMMENDATION = "recommendation"

SpeciesLookup = Callable[[Location], LocalSpecies]
Recommender = Callable[[Location, Preferences], RecommendationResult]


class StepController:
    def __init__(self) -> None:
        self._job_lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        """Full reset back to the location step."""
        self.step: Step = Step.LOCATION
        self.location: Optional[Location] = None
        self.local_species: Optional[LocalSpecies] = None
        self.preferences: Optional[Preferences] = None
        self.result: Optional[RecommendationResult] = None
        self.loading_message: str = ""
        self.location_error: Optional[str] = None
        self.pending_job: Optional[str] = None

    # -- location ---------------------------------------------------------

    def location_found(self, location: Location) -> None:
        self.location = location
        self.location_error = None
        self._start_loading(JOB_SPECIES, SPECIES_LOADING_MESSAGE)

    def location_failed(self, message: str) -> None:
        """Record a geolocation failure; the user stays on the location step."""
        self.step = Step.LOCATION
        self.location_error = message

    def species_loaded(self, species: Optional[LocalSpecies]) -> None:
        self.local_species = species
        self.pending_job = None
        self.step = Step.PREFERENCES

    # -- preferences / recommendation ----------------------------------

    def submit_preferences(self, prefs: Preferences) -> bool:
        """Queue a recommendation request.

        Returns False, leaving the state untouched, when no location has
        been captured yet.
        """
        if self.location is None:
            return False
        self.preferences = prefs
        self._start_loading(JOB_RECOMMENDATION, RECOMMENDATION_LOADING_MESSAGE)
        return True

    def recommendation_loaded(self, result: RecommendationResult) -> None:
        self.result = result
        self.pending_job = None
        self.step = Step.RESULTS

    def recommendation_failed(self) -> None:
        self.pending_job = None
        self.step = Step.ERROR

    def retry(self) -> None:
        if self.step == Step.ERROR:
            self.step = Step.PREFERENCES

    # -- async work ------------------------------------------------------

    def run_pending(self, species_lookup: SpeciesLookup, recommender: Recommender) -> None:
        """Execute the job the LOADING screen is waiting on.

        The job is claimed before the call starts, so a reloaded LOADING page
        that posts again while the request is in flight does not start a
        second one.
        """
        job = self.claim_pending()
        if job == JOB_SPECIES and self.location is not None:
            try:
                species = species_lookup(self.location)
            except Exception as exc:
                logger.error("Failed to load species: %s", exc)
                species = None
            self.species_loaded(species)
        elif job == JOB_RECOMMENDATION and self.location is not None and self.preferences is not None:
            try:
                result = recommender(self.location, self.preferences)
            except Exception as exc:
                logger.error("Failed to get recommendations: %s", exc)
                self.recommendation_failed()
            else:
                self.recommendation_loaded(result)

    def claim_pending(self) -> Optional[str]:
        """Take the pending job, leaving none behind."""
        with self._job_lock:
            job, self.pending_job = self.pending_job, None
            return job

    def species_options(self, water_type: WaterType) -> List[str]:
        if self.local_species is None:
            return []
        return self.local_species.for_water(water_type)

    def _start_loading(self, job: str, message: str) -> None:
        self.pending_job = job
        self.loading_message = message
        self.step = Step.LOADING


class WizardStore:
    """In-memory controllers keyed by browser session id.

    Nothing is written to disk; a process restart starts every user over.
    At most ``max_size`` controllers are kept and the least recently used
    one is evicted when a new session arrives past that limit.
    """

    def __init__(self, max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._controllers: "OrderedDict[str, StepController]" = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def get(self, wizard_id: str) -> StepController:
        with self._lock:
            controller = self._controllers.get(wizard_id)
            if controller is not None:
                self._controllers.move_to_end(wizard_id)
                return controller
            controller = StepController()
            self._controllers[wizard_id] = controller
            while len(self._controllers) > self.max_size:
                evicted, _ = self._controllers.popitem(last=False)
                logger.debug("Evicted idle wizard session %s", evicted)
            return controller

    def discard(self, wizard_id: str) -> None:
        with self._lock:
            self._controllers.pop(wizard_id, None)

    def __contains__(self, wizard_id: str) -> bool:
        return wizard_id in self._controllers

    def __len__(self) -> int:
        return len(self._controllers)
