"""Validator pipeline."""

from story_linter.config import LinterConfig
from story_linter.validators.base import Validator, make_diagnostic
from story_linter.validators.character import CharacterConsistencyValidator
from story_linter.validators.chronology import ChronologyValidator
from story_linter.validators.links import BidirectionalLinksValidator, LinkIntegrityValidator
from story_linter.validators.orphans import OrphanDetectionValidator, entry_ids

VALIDATORS: tuple[Validator, ...] = (
    CharacterConsistencyValidator(),
    LinkIntegrityValidator(),
    OrphanDetectionValidator(),
    ChronologyValidator(),
    BidirectionalLinksValidator(),
)

VALIDATOR_NAMES = frozenset(v.name for v in VALIDATORS)


def enabled_validators(config: LinterConfig) -> list[Validator]:
    """Registered validators enabled by the config, in registry order."""
    return [v for v in VALIDATORS if v.enabled(config)]


__all__ = [
    "Validator",
    "make_diagnostic",
    "CharacterConsistencyValidator",
    "LinkIntegrityValidator",
    "BidirectionalLinksValidator",
    "OrphanDetectionValidator",
    "ChronologyValidator",
    "VALIDATORS",
    "VALIDATOR_NAMES",
    "enabled_validators",
    "entry_ids",
]
