"""
Zone unlock rules.

A zone opens once the user reaches both its trust score and its level
threshold. The starting zone is always unlocked. Criteria come from the
``zones`` config section:

    zones:
      default: zone-1
      unlock_criteria:
        zone-2: {trust_score: 25, level: 3}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from questboard.core.exceptions import ConfigurationError
from questboard.modules.shared.constants import DEFAULT_ZONE, ZONE_UNLOCK_CRITERIA

if TYPE_CHECKING:
    from questboard.core.config.manager import ConfigManager


@dataclass(frozen=True)
class ZoneRequirement:
    trust_score: int
    level: int

    def is_met(self, trust_score: int, level: int) -> bool:
        return trust_score >= self.trust_score and level >= self.level


def _default_criteria() -> Mapping[str, ZoneRequirement]:
    return {
        zone_id: ZoneRequirement(trust_score=trust, level=level)
        for zone_id, (trust, level) in ZONE_UNLOCK_CRITERIA.items()
    }


@dataclass(frozen=True)
class ZoneRules:
    default_zone: str = DEFAULT_ZONE
    unlock_criteria: Mapping[str, ZoneRequirement] = field(default_factory=_default_criteria)

    @classmethod
    def from_config(cls, config: ConfigManager) -> ZoneRules:
        """
        Raises:
            ConfigurationError: If a zone entry is malformed
        """
        raw: Mapping[str, Any] = config.get("zones.unlock_criteria") or {}
        try:
            criteria = {
                str(zone_id): ZoneRequirement(
                    trust_score=int(entry.get("trust_score", 0)),
                    level=int(entry.get("level", 1)),
                )
                for zone_id, entry in raw.items()
            }
        except (AttributeError, TypeError, ValueError) as exc:
            raise ConfigurationError("zones.unlock_criteria", f"malformed zone criteria: {exc}") from exc

        return cls(
            default_zone=str(config.get("zones.default", DEFAULT_ZONE)),
            unlock_criteria=criteria or _default_criteria(),
        )


def evaluate_zone_unlocks(
    trust_score: int,
    level: int,
    unlocked_zones: Iterable[str],
    rules: ZoneRules,
) -> tuple[str, ...]:
    """
    Zones the user qualifies for but has not unlocked, in criteria order.

    Example:
        >>> evaluate_zone_unlocks(60, 5, ["zone-1"], ZoneRules())
        ('zone-2', 'zone-3')
    """
    unlocked = set(unlocked_zones)
    candidates = [] if rules.default_zone in unlocked else [rules.default_zone]
    candidates += [
        zone_id
        for zone_id, requirement in rules.unlock_criteria.items()
        if zone_id not in unlocked and requirement.is_met(trust_score, level)
    ]
    return tuple(candidates)
