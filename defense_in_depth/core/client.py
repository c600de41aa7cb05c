import logging
from typing import Any, List, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from defense_in_depth.core.models import (
    Layer,
    LayerDetail,
    QuizQuestion,
    ThreatScenario,
    VisualizationConfig,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class DataProviderError(Exception):
    """Raised when the data provider API cannot be reached or returns bad data."""


class DataProviderClient:
    """
    Read-only client for the data provider API.

    The simulation runner uses it once at start-up to fetch the layers,
    threats and quiz questions; failures are reported to the caller and
    never retried.
    """

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, allow_missing: bool = False) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
            if allow_missing and response.status_code == 404:
                logger.debug(f"{url} returned 404; treating as absent.")
                return None
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Request to {url} failed: {e}")
            raise DataProviderError(f"Could not load {path} from {self.base_url}: {e}") from e
        except ValueError as e:
            raise DataProviderError(f"{url} did not return JSON: {e}") from e

    def _get_many(self, path: str, model: Type[ModelT]) -> List[ModelT]:
        payload = self._get(path)
        if not isinstance(payload, list):
            raise DataProviderError(f"{path} did not return a list.")
        try:
            return [model.model_validate(item) for item in payload]
        except ValidationError as e:
            raise DataProviderError(f"{path} returned an invalid record: {e}") from e

    def _get_one(self, path: str, model: Type[ModelT], allow_missing: bool = False) -> Optional[ModelT]:
        payload = self._get(path, allow_missing=allow_missing)
        if payload is None and allow_missing:
            return None
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise DataProviderError(f"{path} returned an invalid record: {e}") from e

    def fetch_layers(self) -> List[Layer]:
        return self._get_many("/api/layers", Layer)

    def fetch_threats(self) -> List[ThreatScenario]:
        return self._get_many("/api/threats", ThreatScenario)

    def fetch_quiz(self, difficulty: Optional[str] = None) -> List[QuizQuestion]:
        path = f"/api/quiz/{difficulty}" if difficulty else "/api/quiz"
        return self._get_many(path, QuizQuestion)

    def fetch_layer_details(self, layer_id: int) -> Optional[LayerDetail]:
        """
        Drill-down details are optional per layer.
        :return: The details, or None when the API has none for this layer.
        """
        return self._get_one(f"/api/layers/{layer_id}/details", LayerDetail, allow_missing=True)

    def fetch_config(self) -> VisualizationConfig:
        return self._get_one("/api/config", VisualizationConfig)
