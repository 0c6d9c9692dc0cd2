"""
CPAP mask size and type recommendation engine.

Size
────
Four frontal measurements each score 1, 2 or 3 against two thresholds
(value < t1 → 1, value < t2 → 2, else 3):

  Measurement   │  t1 (mm)  │  t2 (mm)
  ──────────────┼───────────┼──────────
  Nose width    │    35     │    40
  Face length   │   180     │   200
  Face width    │   130     │   145
  Mouth width   │    45     │    52

The total (4–12) maps to  ≤ 6 → S,  ≤ 10 → M,  else L.

Type
────
Every mask type starts at a neutral baseline of 50.  A declarative rule
table, evaluated top to bottom, adds signed adjustments:

  condition  →  [(mask type, delta, message, is_warning), …]

Positive or negative adjustments of at least the materiality threshold
(10) record their message as a reason; warnings are always recorded.
Final scores are clamped to [0, 100] and sorted descending, ties broken by
the fixed type order nasal → pillow → full.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from maskfit.config import config
from maskfit.models.schemas import (
    AgeGroup,
    FrontalMeasurement,
    Level,
    MaskRecommendation,
    MaskSize,
    MaskType,
    ProfileMeasurement,
    TypeScore,
    UserProfile,
)

logger = logging.getLogger(__name__)

scfg = config.sizing
rcfg = config.recommendation

MASK_TYPES: tuple[MaskType, ...] = (MaskType.nasal, MaskType.pillow, MaskType.full)


# ── Size classification ────────────────────────────────────────────────

def _band_score(value: float, thresholds: tuple[float, float]) -> int:
    low, high = thresholds
    if value < low:
        return 1
    if value < high:
        return 2
    return 3


def size_score(frontal: FrontalMeasurement) -> int:
    """Additive 4–12 size score over the four size-driving measurements."""
    return (
        _band_score(frontal.nose_width_mm, scfg.nose_width_mm)
        + _band_score(frontal.face_length_mm, scfg.face_length_mm)
        + _band_score(frontal.face_width_mm, scfg.face_width_mm)
        + _band_score(frontal.mouth_width_mm, scfg.mouth_width_mm)
    )


def classify_size(total: int) -> MaskSize:
    if total <= scfg.small_max_score:
        return MaskSize.S
    if total <= scfg.medium_max_score:
        return MaskSize.M
    return MaskSize.L


# ── Rule table ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ScoringContext:
    frontal: FrontalMeasurement
    profile: ProfileMeasurement
    user: UserProfile


@dataclass(frozen=True)
class Effect:
    mask_type: MaskType
    delta: int
    message: str | None = None
    warning: bool = False


@dataclass(frozen=True)
class ScoringRule:
    name: str
    condition: Callable[[ScoringContext], bool]
    effects: tuple[Effect, ...]


# Per-type bonus by age group: (nasal, pillow, full)
AGE_BONUSES: dict[AgeGroup, tuple[int, int, int]] = {
    AgeGroup.twenties: (15, 15, 0),
    AgeGroup.thirties: (15, 10, 0),
    AgeGroup.forties: (10, 5, 5),
    AgeGroup.fifties: (5, 0, 15),
    AgeGroup.sixties_plus: (0, -5, 15),
}


def _age_rules() -> list[ScoringRule]:
    rules = []
    for age, bonuses in AGE_BONUSES.items():
        effects = tuple(
            Effect(mask_type, delta, f"Commonly a good fit for people in their {age.value}")
            for mask_type, delta in zip(MASK_TYPES, bonuses)
            if delta
        )
        rules.append(ScoringRule(
            name=f"age_{age.value}",
            condition=lambda ctx, age=age: ctx.user.age_group == age,
            effects=effects,
        ))
    return rules


def _preference_rules() -> list[ScoringRule]:
    return [
        ScoringRule(
            name=f"prefers_{mask_type.value}",
            condition=lambda ctx, mask_type=mask_type: mask_type in ctx.user.preferred_types,
            effects=(Effect(mask_type, rcfg.preference_bonus, "Matches your stated preference"),),
        )
        for mask_type in MASK_TYPES
    ]


def default_rules() -> list[ScoringRule]:
    """The built-in rule set, in evaluation order."""
    return [
        *_age_rules(),
        ScoringRule(
            name="mouth_breathing",
            condition=lambda ctx: ctx.user.mouth_breathing,
            effects=(
                Effect(MaskType.full, 30, "Covers nose and mouth for mouth breathing"),
                Effect(MaskType.nasal, 0, "Mouth breathing can cause air leaks; a chin strap may help", warning=True),
                Effect(MaskType.pillow, 0, "Mouth breathing can cause air leaks; a chin strap may help", warning=True),
            ),
        ),
        ScoringRule(
            name="pressure_high",
            condition=lambda ctx: ctx.user.pressure == Level.high,
            effects=(
                Effect(MaskType.pillow, -20, "Nasal pillows can be uncomfortable at high pressure", warning=True),
                Effect(MaskType.full, 10, "Spreads high pressure over a larger seal"),
            ),
        ),
        ScoringRule(
            name="pressure_low",
            condition=lambda ctx: ctx.user.pressure == Level.low,
            effects=(Effect(MaskType.pillow, 15, "Light and comfortable at low pressure"),),
        ),
        ScoringRule(
            name="tossing_high",
            condition=lambda ctx: ctx.user.tossing == Level.high,
            effects=(
                Effect(MaskType.pillow, 15, "Minimal contact stays sealed when you move in your sleep"),
                Effect(MaskType.full, -15, "Large cushions are easily dislodged by frequent movement", warning=True),
            ),
        ),
        ScoringRule(
            name="tall_nose",
            condition=lambda ctx: ctx.profile.nose_height_mm > rcfg.tall_nose_mm,
            effects=(Effect(MaskType.nasal, 10, "A prominent nose gives a nasal cushion a stable seal"),),
        ),
        ScoringRule(
            name="short_nose",
            condition=lambda ctx: ctx.profile.nose_height_mm < rcfg.short_nose_mm,
            effects=(Effect(MaskType.pillow, 10, "Nasal pillows suit a low nose profile"),),
        ),
        ScoringRule(
            name="short_philtrum",
            condition=lambda ctx: ctx.frontal.philtrum_length_mm < rcfg.short_philtrum_mm,
            effects=(
                Effect(MaskType.nasal, 0, "Short upper lip: the cushion may press on the lip", warning=True),
                Effect(MaskType.pillow, 10, "Nasal pillows leave a short upper lip free"),
            ),
        ),
        ScoringRule(
            name="wide_mouth",
            condition=lambda ctx: ctx.frontal.mouth_width_mm > rcfg.wide_mouth_mm,
            effects=(Effect(MaskType.full, 5, "Full-face cushion accommodates a wide mouth"),),
        ),
        ScoringRule(
            name="narrow_bridge",
            condition=lambda ctx: ctx.frontal.bridge_width_mm < rcfg.narrow_bridge_mm,
            effects=(
                Effect(MaskType.full, 0, "Narrow nasal bridge: check for leaks towards the eyes", warning=True),
                Effect(MaskType.pillow, 10, "Nasal pillows do not rest on the nasal bridge"),
            ),
        ),
        ScoringRule(
            name="recessed_jaw",
            condition=lambda ctx: ctx.profile.jaw_projection_mm < rcfg.recessed_jaw_mm,
            effects=(
                Effect(MaskType.full, 0, "Recessed chin: the lower cushion may slip under the jaw", warning=True),
            ),
        ),
        *_preference_rules(),
    ]


# ── Scoring ────────────────────────────────────────────────────────────

@dataclass
class _Tally:
    score: int
    reasons: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def score_types(
    ctx: ScoringContext,
    rules: list[ScoringRule] | None = None,
) -> list[TypeScore]:
    """Evaluate the rule table and return all mask types, best first."""
    rules = default_rules() if rules is None else rules
    tallies = {mask_type: _Tally(rcfg.baseline_score) for mask_type in MASK_TYPES}

    for rule in rules:
        if not rule.condition(ctx):
            continue
        logger.debug("Rule %s fired", rule.name)
        for effect in rule.effects:
            tally = tallies[effect.mask_type]
            tally.score += effect.delta
            if effect.message is None:
                continue
            if effect.warning:
                tally.warnings.append(effect.message)
            elif abs(effect.delta) >= rcfg.materiality:
                tally.reasons.append(effect.message)

    ranked = [
        TypeScore(
            mask_type=mask_type,
            score=max(0, min(100, tally.score)),
            reasons=tally.reasons,
            warnings=tally.warnings,
        )
        for mask_type, tally in tallies.items()
    ]
    order = {mask_type: i for i, mask_type in enumerate(MASK_TYPES)}
    ranked.sort(key=lambda t: (-t.score, order[t.mask_type]))
    return ranked


# ── Main recommendation function ──────────────────────────────────────

def recommend(
    frontal: FrontalMeasurement,
    profile: ProfileMeasurement,
    user_profile: UserProfile,
    rules: list[ScoringRule] | None = None,
) -> MaskRecommendation:
    """
    Recommend a mask size and rank the mask types.

    Algorithm:
      1. Score the four size-driving measurements and classify S/M/L.
      2. Run the rule table over measurements and questionnaire.
      3. Summarise the size and the dominant questionnaire factors.
    """
    total = size_score(frontal)
    size = classify_size(total)
    ranked = score_types(ScoringContext(frontal, profile, user_profile), rules)

    overall = [f"Size {size.value}: facial measurement score {total} of 12"]
    if user_profile.mouth_breathing:
        overall.append("Mouth breathing favours a mask that covers the mouth")
    if user_profile.pressure == Level.high:
        overall.append("High pressure setting calls for a secure, wide seal")
    if user_profile.tossing == Level.high:
        overall.append("Frequent movement in sleep favours a low-profile mask")

    logger.info(
        "Recommended size %s (score %d), top type %s (%d)",
        size.value, total, ranked[0].mask_type.value, ranked[0].score,
    )

    return MaskRecommendation(
        size=size,
        size_score=total,
        ranked_types=ranked,
        overall_reasons=overall,
    )
