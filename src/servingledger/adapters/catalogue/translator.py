"""Translate catalogue payloads into package templates."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from servingledger.domain.errors import ValidationError
from servingledger.domain.model import PackageTemplate

from .schema import PackagePayload

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

log = getLogger(__name__)


def parse_package(payload: PackagePayload | Mapping[str, object]) -> PackageTemplate:
    if not isinstance(payload, PackagePayload):
        payload = PackagePayload.model_validate(payload)
    return PackageTemplate(
        id=payload.id,
        name=payload.name,
        granted_servings=payload.total_servings,
        granted_images=payload.total_images,
        price=payload.price,
        active=payload.is_active,
        description=payload.description,
        max_edits_per_serving=payload.max_edits_per_serving,
    )


def parse_packages(payloads: Iterable[PackagePayload]) -> list[PackageTemplate]:
    """Translate a listing, skipping entries the domain rejects."""

    packages: list[PackageTemplate] = []
    for payload in payloads:
        try:
            packages.append(parse_package(payload))
        except ValidationError as exc:
            log.warning(f"Skipping catalogue package {payload.id!r}: {exc}")
    return packages
