"""Subject, fetch option, and variant models for remote evaluation."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ExperimentUser(BaseModel):
    """User context for experiment evaluation.

    All fields are optional. ``user_id`` and ``device_id`` identify the
    subject; the remaining fields are evaluation context sent to the
    service as-is.
    """

    model_config = ConfigDict(extra="forbid")

    user_id: str | None = None
    device_id: str | None = None
    country: str | None = None
    city: str | None = None
    region: str | None = None
    dma: str | None = None
    language: str | None = None
    platform: str | None = None
    version: str | None = None
    os: str | None = None
    device_manufacturer: str | None = None
    device_brand: str | None = None
    device_model: str | None = None
    carrier: str | None = None
    ip_address: str | None = None
    library: str | None = None
    user_properties: dict[str, Any] | None = None
    groups: dict[str, list[str]] | None = None
    group_properties: dict[str, dict[str, Any]] | None = None
    cohort_ids: list[str] | None = None
    group_cohort_ids: dict[str, list[str]] | None = None

    def to_context_json(self) -> str:
        """Serialize the user as evaluation context, omitting unset fields."""
        return self.model_dump_json(exclude_none=True)


class FetchOptions(BaseModel):
    """Options for a variant fetch."""

    model_config = ConfigDict(extra="forbid")

    flag_keys: list[str] | None = Field(
        default=None,
        description="Flag keys to evaluate; None or empty evaluates all flags",
    )
    tracks_exposure: bool = True
    tracks_assignment: bool = True

    @property
    def tracking_disabled(self) -> bool:
        """Whether both exposure and assignment tracking are turned off."""
        return not self.tracks_exposure and not self.tracks_assignment


class Variant(BaseModel):
    """A variant assigned to the subject for one flag."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    key: str | None = None
    value: str | None = None
    payload: Any = None
    exp_key: str | None = Field(default=None, alias="expKey")
    metadata: dict[str, Any] | None = None
