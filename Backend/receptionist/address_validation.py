"""
Address validation via the Google Address Validation API.

Used by the agent to check customer addresses before asking for a quote.
Not part of the pricing path: a failed lookup yields an unverified
result instead of an exception.

Usage:
    validator = AddressValidator()
    result = await validator.validate_address("1 Flinders Street, Melbourne VIC 3000")
    if result.is_valid:
        ...

Mock heuristics are used only when USE_MOCK_ADDRESS_VALIDATION=true.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

import httpx

from .core.config import get_settings

logger = logging.getLogger(__name__)

GOOGLE_ADDRESS_VALIDATION_URL = "https://addressvalidation.googleapis.com/v1:validateAddress"

# Granularity -> confidence
_CONFIDENCE = {
    "PREMISE": "HIGH",
    "SUB_PREMISE": "HIGH",
    "ROUTE": "MEDIUM",
    "NEIGHBORHOOD": "MEDIUM",
}

# Google component type -> our component key
_COMPONENT_KEYS = (
    ("locality", "suburb"),
    ("administrative_area_level_2", "city"),
    ("administrative_area_level_1", "state"),
    ("postal_code", "postcode"),
    ("country", "country"),
)

_KNOWN_VALID_PATTERNS = [
    re.compile(r"\d+.*street.*melbourne", re.IGNORECASE),
    re.compile(r"\d+.*road.*blackburn", re.IGNORECASE),
    re.compile(r"\d+.*avenue.*richmond", re.IGNORECASE),
    re.compile(r"flinders.*street.*melbourne", re.IGNORECASE),
    re.compile(r"collins.*street.*melbourne", re.IGNORECASE),
]


@dataclass
class AddressValidationResult:
    is_valid: bool
    formatted_address: Optional[str] = None
    confidence: str = "LOW"  # HIGH | MEDIUM | LOW
    issues: list[str] = field(default_factory=list)
    components: Optional[dict[str, str]] = None

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "formatted_address": self.formatted_address,
            "confidence": self.confidence,
            "issues": list(self.issues),
            "components": self.components,
        }


def map_confidence(granularity: Optional[str]) -> str:
    return _CONFIDENCE.get(granularity or "", "LOW")


def _extract_issues(verdict: dict) -> list[str]:
    issues = []
    if not verdict.get("addressComplete"):
        issues.append("Address appears incomplete")
    if verdict.get("hasUnconfirmedComponents"):
        issues.append("Some address components could not be confirmed")
    if verdict.get("hasInferredComponents"):
        issues.append("Some address components were inferred")
    return issues


def _extract_components(address: dict) -> Optional[dict[str, str]]:
    raw_components = address.get("addressComponents")
    if not raw_components:
        return None

    components: dict[str, str] = {}
    for component in raw_components:
        types = component.get("componentType") or []
        if isinstance(types, str):
            types = [types]
        value = (component.get("componentName") or {}).get("text") or ""

        if "street_number" in types or "route" in types:
            components["street"] = f"{components['street']} {value}" if components.get("street") else value
            continue
        for google_type, key in _COMPONENT_KEYS:
            if google_type in types:
                components[key] = value
                break
    return components


def parse_validation_response(data: dict, original_address: str) -> AddressValidationResult:
    result = data.get("result") if isinstance(data, dict) else None
    if not result:
        return AddressValidationResult(is_valid=False, issues=["No validation result returned"])

    verdict = result.get("verdict") or {}
    address = result.get("address") or {}

    return AddressValidationResult(
        is_valid=bool(verdict.get("addressComplete")) and verdict.get("hasReplacedComponents") is not True,
        formatted_address=address.get("formattedAddress") or original_address,
        confidence=map_confidence(verdict.get("geocodeGranularity")),
        issues=_extract_issues(verdict),
        components=_extract_components(address),
    )


def mock_validation(address: str, default_state: str = "VIC", default_country: str = "Australia") -> AddressValidationResult:
    """
    Heuristic validation for tests and demos.

    An address is valid when it has a comma and more than 10 characters,
    or matches a known Melbourne-area street pattern.
    NOT FOR PRODUCTION USE.
    """
    has_comma = "," in address
    has_min_length = len(address.strip()) > 10
    parts = [p.strip() for p in address.split(",")]
    is_known_valid = any(pattern.search(address) for pattern in _KNOWN_VALID_PATTERNS)

    if is_known_valid:
        confidence = "HIGH"
    elif has_comma:
        confidence = "MEDIUM"
    else:
        confidence = "LOW"

    return AddressValidationResult(
        is_valid=(has_comma and has_min_length) or is_known_valid,
        formatted_address=address,
        confidence=confidence,
        issues=[] if has_comma else ["Address should include street and suburb separated by comma"],
        components=(
            {"street": parts[0], "suburb": parts[1], "state": default_state, "country": default_country}
            if len(parts) >= 2
            else None
        ),
    )


class AddressValidator:
    def __init__(
        self,
        api_key: Optional[str] = None,
        use_mock: Optional[bool] = None,
        region_code: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.google_maps_api_key
        self.use_mock = use_mock if use_mock is not None else settings.use_mock_address_validation
        self.region_code = region_code or settings.default_region_code
        self.timeout = timeout if timeout is not None else settings.distance_api_timeout_seconds
        self.default_state = settings.default_address_state
        self.default_country = settings.default_address_country

    async def validate_address(self, address: str, region_code: Optional[str] = None) -> AddressValidationResult:
        if self.use_mock:
            return mock_validation(address, self.default_state, self.default_country)

        if not self.api_key:
            logger.error("GOOGLE_MAPS_API_KEY not configured, cannot validate addresses")
            return AddressValidationResult(
                is_valid=False,
                formatted_address=address,
                issues=["Address validation service is not configured"],
            )

        payload = {
            "address": {
                "addressLines": [address],
                "regionCode": region_code or self.region_code,
            }
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    GOOGLE_ADDRESS_VALIDATION_URL,
                    params={"key": self.api_key},
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Address Validation API request failed for '{address}': {e}")
            return AddressValidationResult(
                is_valid=False,
                formatted_address=address,
                issues=["Address could not be verified right now"],
            )

        return parse_validation_response(data, address)

    async def validate_addresses(self, addresses: list[str], region_code: Optional[str] = None) -> list[AddressValidationResult]:
        return list(await asyncio.gather(*(self.validate_address(a, region_code) for a in addresses)))
