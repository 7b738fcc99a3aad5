# SPDX-License-Identifier: MPL-2.0
"""Example verification scenarios.

Each scenario is what a relying party would hard-code on its backend: the
provider, the action and the traits a user must meet.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping


class Provider(str, Enum):
    """Providers the verification authority can attest."""

    X = "x"
    COINBASE = "coinbase"
    INSTAGRAM = "instagram"
    TIKTOK = "tiktok"


@dataclass(frozen=True)
class Scenario:
    """A relying-party eligibility rule."""

    id: str  # noqa: A003
    name: str
    description: str
    provider: str
    action: str
    traits: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "provider": self.provider,
            "action": self.action,
            "traits": dict(self.traits),
        }


def _scenario(id: str, name: str, description: str, provider: Provider, action: str, traits: Dict[str, str]) -> Scenario:  # noqa: A002
    return Scenario(id, name, description, provider.value, action, MappingProxyType(dict(traits)))


EXAMPLE_SCENARIOS: List[Scenario] = [
    _scenario(
        "x-followers-100",
        "X Followers > 100",
        "Verify X account with more than 100 followers",
        Provider.X,
        "claim_demo_x_airdrop",
        {"followers": "gt:100"},
    ),
    _scenario(
        "coinbase-billed-active",
        "Coinbase One - Billed & Active",
        "Coinbase One subscriber who has been billed and is currently active",
        Provider.COINBASE,
        "claim_demo_coinbase_airdrop",
        {"coinbase_one_active": "true", "coinbase_one_billed": "true"},
    ),
    _scenario(
        "instagram-followers-100",
        "Instagram Followers > 100",
        "Verify Instagram account with more than 100 followers",
        Provider.INSTAGRAM,
        "claim_demo_instagram_airdrop",
        {"followers_count": "gt:100"},
    ),
    _scenario(
        "tiktok-followers-1000",
        "TikTok Followers > 1000",
        "Verify TikTok account with more than 1000 followers",
        Provider.TIKTOK,
        "claim_demo_tiktok_airdrop",
        {"follower_count": "gt:1000"},
    ),
    _scenario(
        "tiktok-likes-10000",
        "TikTok Likes > 10,000",
        "Verify TikTok account with more than 10,000 total likes",
        Provider.TIKTOK,
        "claim_demo_tiktok_airdrop",
        {"likes_count": "gt:10000"},
    ),
    _scenario(
        "tiktok-videos-50",
        "TikTok Videos > 50",
        "Verify TikTok account with more than 50 videos posted",
        Provider.TIKTOK,
        "claim_demo_tiktok_airdrop",
        {"video_count": "gt:50"},
    ),
    _scenario(
        "tiktok-creator",
        "TikTok Active Creator",
        "TikTok creator with 5K+ followers, 100K+ likes, and 100+ videos",
        Provider.TIKTOK,
        "claim_demo_tiktok_airdrop",
        {"follower_count": "gte:5000", "likes_count": "gte:100000", "video_count": "gte:100"},
    ),
]

_BY_ID = {scenario.id: scenario for scenario in EXAMPLE_SCENARIOS}


def get_scenario(scenario_id: str) -> Scenario:
    """Return the scenario with ``scenario_id``.

    Raises:
        KeyError: if no such scenario exists.
    """
    return _BY_ID[scenario_id]
