"""Pydantic models describing the package catalogue payloads."""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import cast

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class CatalogueBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PackagePayload(CatalogueBaseModel):
    id: str = Field(validation_alias=AliasChoices("id", "package_id"))
    name: str = Field(validation_alias=AliasChoices("name", "package_name"))
    total_servings: int = Field(
        ge=0, validation_alias=AliasChoices("total_servings", "granted_servings")
    )
    total_images: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("total_images", "granted_images"),
    )
    price: Decimal = Field(default=Decimal(0), ge=0)
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "active"))
    description: str | None = None
    max_edits_per_serving: int | None = Field(default=None, ge=1)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    _normalize_description = field_validator("description", mode="before")(_blank_to_none)


class PackageListResponse(CatalogueBaseModel):
    packages: list[PackagePayload]

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_list(cls, value: object) -> object:
        if isinstance(value, list):
            return {"packages": value}
        if isinstance(value, Mapping):
            mapping_value = cast(Mapping[str, object], value)
            if "packages" not in mapping_value and "data" in mapping_value:
                return {"packages": mapping_value["data"]}
        return value


class ErrorResponse(CatalogueBaseModel):
    error: str
    message: str | None = None
