"""
Distance Service - Google Maps Distance Matrix API Integration

Provides driving distance and duration between address pairs for travel
pricing. Every quote issues ONE Distance Matrix request: the unique
origins and destinations of all requested legs form the matrix, and each
leg is read back from its (origin, destination) cell.

Usage:
    client = GoogleDistanceMatrixClient()
    results = await client.get_batch_distances([
        DistanceRequest("1 Smith St, Melbourne", "20 Jones Rd, Richmond"),
    ])
    # [DistanceResult(distance_km=Decimal("4.12"), duration_mins=11, status="OK")]

Mock data is only ever used when USE_MOCK_DISTANCE_API=true.
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

import httpx

from .core.config import get_settings
from .errors import DistanceProviderError

logger = logging.getLogger(__name__)

# Constants
GOOGLE_DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"
DEFAULT_DRIVING_SPEED_KMH = 40


class DistanceStatus(str, Enum):
    OK = "OK"
    NOT_FOUND = "NOT_FOUND"
    ZERO_RESULTS = "ZERO_RESULTS"
    MAX_ROUTE_LENGTH_EXCEEDED = "MAX_ROUTE_LENGTH_EXCEEDED"
    INVALID_REQUEST = "INVALID_REQUEST"
    OVER_DAILY_LIMIT = "OVER_DAILY_LIMIT"
    OVER_QUERY_LIMIT = "OVER_QUERY_LIMIT"
    REQUEST_DENIED = "REQUEST_DENIED"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True)
class DistanceRequest:
    origin: str
    destination: str
    units: str = "metric"


@dataclass
class DistanceResult:
    """Distance/duration for one requested leg."""
    distance_km: Decimal
    duration_mins: int
    status: str = DistanceStatus.OK.value
    error_message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == DistanceStatus.OK.value


def _error_result(status: str, message: Optional[str] = None) -> DistanceResult:
    return DistanceResult(
        distance_km=Decimal("0"),
        duration_mins=0,
        status=status,
        error_message=message,
    )


def _get_api_error_message(status: str) -> str:
    """Get message for API-level errors."""
    messages = {
        "INVALID_REQUEST": "Invalid request. Please check the addresses.",
        "MAX_ELEMENTS_EXCEEDED": "Too many locations requested.",
        "MAX_DIMENSIONS_EXCEEDED": "Too many locations requested.",
        "OVER_DAILY_LIMIT": "Distance calculation limit reached.",
        "OVER_QUERY_LIMIT": "Too many distance requests. Please wait a moment and try again.",
        "REQUEST_DENIED": "Distance calculation service is not available.",
        "UNKNOWN_ERROR": "An unknown error occurred while calculating distances.",
    }
    return messages.get(status, f"Distance calculation failed: {status}")


def _get_element_error_message(status: str) -> str:
    """Get message for element-level errors."""
    messages = {
        "NOT_FOUND": "One or both locations could not be found.",
        "ZERO_RESULTS": "No route found between the locations.",
        "MAX_ROUTE_LENGTH_EXCEEDED": "The route is too long to calculate.",
    }
    return messages.get(status, f"Route calculation failed: {status}")


def parse_element(element: Optional[dict]) -> DistanceResult:
    """
    Convert one Distance Matrix element into a DistanceResult.

    Meters -> km rounded to 2 dp, seconds -> minutes rounded half-up.
    """
    if not element:
        return _error_result(DistanceStatus.UNKNOWN_ERROR.value, "No route found")

    status = element.get("status", DistanceStatus.UNKNOWN_ERROR.value)
    if status != DistanceStatus.OK.value:
        return _error_result(status, _get_element_error_message(status))

    distance = element.get("distance")
    duration = element.get("duration")
    if not distance or not duration or "value" not in distance or "value" not in duration:
        return _error_result(DistanceStatus.UNKNOWN_ERROR.value, "Missing distance or duration data")

    distance_km = (Decimal(str(distance["value"])) / Decimal("1000")).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    duration_mins = int(
        (Decimal(str(duration["value"])) / Decimal("60")).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    )
    return DistanceResult(distance_km=distance_km, duration_mins=duration_mins)


def parse_matrix_response(data: dict, requests: list[DistanceRequest]) -> list[DistanceResult]:
    """Map a Distance Matrix response back onto the requested legs, in order."""
    if not isinstance(data, dict) or "status" not in data:
        raise DistanceProviderError("Invalid Distance Matrix response format", status="INVALID_RESPONSE")

    api_status = data["status"]
    if api_status != DistanceStatus.OK.value:
        logger.warning(f"Distance Matrix API error: {api_status}")
        message = data.get("error_message") or _get_api_error_message(api_status)
        return [_error_result(api_status, message) for _ in requests]

    origins = list(dict.fromkeys(r.origin for r in requests))
    destinations = list(dict.fromkeys(r.destination for r in requests))
    rows = data.get("rows") or []

    results = []
    for request in requests:
        row_index = origins.index(request.origin)
        col_index = destinations.index(request.destination)
        element = None
        if row_index < len(rows):
            elements = rows[row_index].get("elements") or []
            if col_index < len(elements):
                element = elements[col_index]
        results.append(parse_element(element))
    return results


# ============================================================================
# MOCK DISTANCES (USE_MOCK_DISTANCE_API=true only)
# ============================================================================

def _address_similarity(first: str, second: str) -> float:
    words1 = [w for w in re.split(r"\W+", first) if len(w) > 2]
    words2 = [w for w in re.split(r"\W+", second) if len(w) > 2]
    common = len([w for w in words1 if w in words2])
    return common / max(len(words1), len(words2), 1)


def mock_distance(request: DistanceRequest) -> DistanceResult:
    """
    Deterministic synthetic distance for a leg.

    Addresses sharing most of their words (same street/suburb) are 1-5 km
    apart, everything else 5-29 km. Duration assumes 40 km/h city driving.
    NOT FOR PRODUCTION USE.
    """
    origin = request.origin.lower().strip()
    destination = request.destination.lower().strip()

    hash_val = int(hashlib.md5(f"{origin}:{destination}".encode()).hexdigest()[:8], 16)
    if _address_similarity(origin, destination) > 0.7:
        distance_km = Decimal((hash_val % 5) + 1)
    else:
        distance_km = Decimal((hash_val % 25) + 5)

    duration_mins = int(
        (distance_km * Decimal(60) / Decimal(DEFAULT_DRIVING_SPEED_KMH)).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
    )
    return DistanceResult(distance_km=distance_km, duration_mins=duration_mins)


# ============================================================================
# CLIENT
# ============================================================================

class GoogleDistanceMatrixClient:
    """
    Batched Google Distance Matrix client.

    Collaborators are passed in explicitly; anything left as None is read
    from settings when the client is constructed.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        use_mock: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.use_mock = use_mock if use_mock is not None else settings.use_mock_distance_api
        self.timeout = timeout if timeout is not None else settings.distance_api_timeout_seconds

        if self.use_mock:
            logger.warning("Distance Matrix client is using MOCK distances (USE_MOCK_DISTANCE_API=true)")

    async def get_batch_distances(self, requests: list[DistanceRequest]) -> list[DistanceResult]:
        """
        Distances for every requested leg, in request order.

        Non-OK statuses are returned per leg; the caller decides which legs
        matter. Transport and configuration failures raise.

        Raises:
            DistanceProviderError: not configured, HTTP/connection failure,
                or an unparseable response
        """
        if not requests:
            return []

        if self.use_mock:
            return [mock_distance(r) for r in requests]

        if not self.api_key:
            logger.error("GOOGLE_MAPS_API_KEY not configured")
            raise DistanceProviderError(
                "Distance calculation service is not configured. Cannot calculate travel costs.",
                status="CONFIG_ERROR",
            )

        origins = list(dict.fromkeys(r.origin for r in requests))
        destinations = list(dict.fromkeys(r.destination for r in requests))
        params = {
            "origins": "|".join(origins),
            "destinations": "|".join(destinations),
            "mode": "driving",
            "units": requests[0].units,
            "key": self.api_key,
        }

        logger.info(
            f"Distance Matrix request: {len(requests)} legs, "
            f"{len(origins)} origins x {len(destinations)} destinations"
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(GOOGLE_DISTANCE_MATRIX_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from Distance Matrix API: {e}")
            raise DistanceProviderError(
                "Distance calculation service is temporarily unavailable",
                status="HTTP_ERROR",
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Request error to Distance Matrix API: {e}")
            raise DistanceProviderError(
                "Unable to connect to distance calculation service",
                status="CONNECTION_ERROR",
            ) from e
        except ValueError as e:
            logger.error(f"Invalid JSON from Distance Matrix API: {e}")
            raise DistanceProviderError(
                "Invalid Distance Matrix response format",
                status="INVALID_RESPONSE",
            ) from e

        return parse_matrix_response(data, requests)
