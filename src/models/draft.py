"""Schema for proposal drafts produced by the external itinerary generator.

Drafts are validated here before the lifecycle controller turns them into a
``pending_review`` proposal. Structural violations raise
``pydantic.ValidationError``; unknown keys are ignored.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _DraftModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ItineraryItem(_DraftModel):
    time: str
    label: str
    details: str


class PriceRange(_DraftModel):
    min: float
    max: float

    @model_validator(mode="after")
    def _ordered(self) -> PriceRange:
        if self.min > self.max:
            raise ValueError("min must not exceed max")
        return self


class PriceEstimate(_DraftModel):
    essential: PriceRange
    complete: PriceRange


class Itinerary(_DraftModel):
    essential: list[ItineraryItem] = Field(default_factory=list)
    complete: list[ItineraryItem] = Field(default_factory=list)


class DraftStop(_DraftModel):
    name: str
    description: str | None = None
    lat: float | None = None
    lng: float | None = None


class OptionalAddOn(_DraftModel):
    name: str
    description: str | None = None
    price_suggestion: PriceRange | None = Field(default=None, alias="priceSuggestion")


class DraftViabilityRule(_DraftModel):
    min_interested: int = Field(ge=0)


class ProposalDraft(_DraftModel):
    title: str = Field(min_length=5)
    subtitle: str | None = None
    narrative_short: str = Field(min_length=10, alias="narrativeShort")
    start_city: str = Field(default="Coimbra", alias="startCity")
    stops: list[DraftStop] = Field(default_factory=list)
    duration_hours_est: int = Field(default=10, ge=1, le=24, alias="durationHoursEst")
    difficulty: Literal["leve", "moderada"] = "leve"
    price_estimated: PriceEstimate | None = Field(default=None, alias="priceEstimated")
    itinerary: Itinerary | None = None
    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)
    optional_add_ons: list[OptionalAddOn] = Field(default_factory=list, alias="optionalAddOns")
    tags: list[str] = Field(default_factory=list)
    capacity_suggestion: int = Field(default=8, ge=2, le=20, alias="capacitySuggestion")
    viability_rule: DraftViabilityRule | None = Field(default=None, alias="viabilityRule")
    cover_image_prompt: str | None = Field(default=None, alias="coverImagePrompt")


class DraftSubmission(BaseModel):
    draft: ProposalDraft
