"""
Tests for descriptive quote ids.

Run with: pytest tests/test_quote_ids.py -v
"""

from receptionist.pricing_models import PricingConfig
from receptionist.quote_ids import generate_quote_id, tier_name

from factories import component, tier


def config(combination: str, tiers=None) -> PricingConfig:
    return PricingConfig.from_dict({"components": [component("Main", combination, tiers or [tier(1, 10, 50, 60)])]})


class TestTierName:
    def test_per_person(self):
        assert tier_name(config("labor_per_hour_per_person"), 3) == "3person"

    def test_per_room(self):
        assert tier_name(config("service_per_room"), 4) == "4room"

    def test_team_rate(self):
        assert tier_name(config("labor_per_hour_team_rate"), 1) == "solo"
        assert tier_name(config("labor_per_hour_team_rate"), 2) == "team2"

    def test_multi_tier_service_uses_position_name(self):
        tiers = [tier(1, 1, 40), tier(2, 3, 60), tier(4, 6, 80)]
        assert tier_name(config("service_per_hour", tiers), 1) == "basic"
        assert tier_name(config("service_per_hour", tiers), 3) == "standard"
        assert tier_name(config("service_per_hour", tiers), 5) == "premium"

    def test_position_beyond_names(self):
        tiers = [tier(n, n, 10) for n in range(1, 6)]
        assert tier_name(config("service_fixed_per_service", tiers), 5) == "tier5"

    def test_single_tier_service(self):
        assert tier_name(config("service_fixed_per_service"), 1) == "single"

    def test_fallback(self):
        assert tier_name(config("labour_per_hour"), 1) == "single"
        assert tier_name(config("labour_per_hour"), 2) == "2x"
        assert tier_name(None, 3) == "3x"

    def test_travel_components_are_ignored(self):
        pricing = PricingConfig.from_dict({
            "components": [
                component("Travel", "travel_per_km_per_person", [tier(1, 10, 2)]),
                component("Labour", "labor_per_hour_team_rate", [tier(1, 10, 90, 60)]),
            ]
        })
        assert tier_name(pricing, 2) == "team2"


class TestGenerateQuoteId:
    def test_format(self):
        quote_id = generate_quote_id(1, "Deep Clean", config("labor_per_hour_team_rate"), 2)
        assert quote_id == "quote-1-deep-team2"

    def test_slug_strips_punctuation(self):
        quote_id = generate_quote_id(2, "Men's-Haircut", config("service_fixed_per_service"), 1)
        assert quote_id == "quote-2-mens-single"
