"""Configuration endpoints.

Changes are runtime-only: a running follow engine is restarted with the new
values, but nothing is written back to the YAML file.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException
from pydantic import ValidationError

from follower.api.schemas.models import ConfigPatchSchema, ConfigSchema
from follower.api.services.state import get_settings, reload_settings
from follower.core.config.presets import list_presets, preset_patch
from follower.core.config.settings import FollowerSettings, settings_to_dict

router = APIRouter(prefix="/config", tags=["config"])


def _as_schema(settings: FollowerSettings) -> ConfigSchema:
    return ConfigSchema(**settings_to_dict(settings))


@router.get("", response_model=ConfigSchema)
def read_config() -> ConfigSchema:
    return _as_schema(get_settings())


@router.post("", response_model=ConfigSchema)
def update_config(patch: ConfigPatchSchema) -> ConfigSchema:
    """Apply the fields present in the body on top of the file configuration."""

    changes = patch.model_dump(exclude_unset=True)
    try:
        settings = reload_settings(changes)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    return _as_schema(settings)


@router.get("/presets")
def read_presets() -> dict[str, list[dict[str, object]]]:
    return {"presets": list_presets()}


@router.post("/presets/{preset_id}", response_model=ConfigSchema)
def apply_preset(preset_id: str) -> ConfigSchema:
    """Switch the steering gains and stop area to a named preset."""

    try:
        patch = preset_patch(preset_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown preset {preset_id!r}") from None
    return _as_schema(reload_settings(patch))
