"""Follower configuration.

Settings are loaded from YAML defaults and overridden by environment variables
prefixed with `FOLLOW_`.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from follower.core.arbitration import VOC_PERSON_LABEL, ArbitrationConfig
from follower.core.steering import SteeringConfig
from follower.core.trackers.base import TRACKER_KINDS
from follower.core.video_sources.base import SourceKind

SINK_KINDS = ("log", "memory", "zmq")


def _unit_interval(name: str, v: float, *, open_low: bool = False) -> float:
    v = float(v)
    low_ok = v > 0.0 if open_low else v >= 0.0
    if not (low_ok and v <= 1.0):
        bound = "(0, 1]" if open_low else "[0, 1]"
        raise ValueError(f"{name} must be in {bound}")
    return v


class FollowerSettings(BaseSettings):
    """Runtime configuration loaded from YAML defaults and `FOLLOW_` env overrides."""

    source_kind: str = Field("webcam", description="image|video|webcam|videos_folder|from_file")
    source_location: str = "0"

    model_name: str = Field("yolo11n.pt")
    model_task: str | None = Field(default="detect", description="auto|detect")

    # Arbitration
    confidence_threshold: float = 0.01
    good_confidence_threshold: float = 0.5
    existence_threshold: float = 0.3
    disagreement_threshold: float = 0.7
    person_label: int = VOC_PERSON_LABEL

    # Steering
    stop_area_threshold: float = 0.6
    tracking_gain: float = 2.0
    degraded_gain: float = 6.0

    tracker_kind: str = Field("mil", description="csrt|kcf|mil|hold")
    sink_kind: str = Field("log", description="log|memory|zmq")
    zmq_endpoint: str | None = None

    # Polled image source ("from_file")
    poll_interval: float = 0.05
    poll_max_backoff: float = 1.0
    # Seconds without a new image before the stream ends; None waits forever.
    poll_idle_timeout: float | None = 10.0

    record_video_path: str | None = None
    record_fps: float = 20.0

    model_config = SettingsConfigDict(
        env_prefix="FOLLOW_", validate_assignment=True, protected_namespaces=()
    )

    @field_validator("source_kind")
    @classmethod
    def _validate_source_kind(cls, v: str) -> str:
        try:
            return SourceKind(str(v).strip().lower()).value
        except ValueError:
            raise ValueError(
                "source_kind must be image|video|webcam|videos_folder|from_file"
            ) from None

    @field_validator("model_task")
    @classmethod
    def _validate_model_task(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v2 = str(v).strip().lower()
        if v2 in {"", "auto", "none"}:
            return None
        if v2 != "detect":
            raise ValueError("model_task must be auto|detect")
        return v2

    @field_validator("confidence_threshold", "existence_threshold", "good_confidence_threshold")
    @classmethod
    def _validate_scores(cls, v: float, info: Any) -> float:
        return _unit_interval(info.field_name, v)

    @field_validator("disagreement_threshold", "stop_area_threshold")
    @classmethod
    def _validate_fractions(cls, v: float, info: Any) -> float:
        return _unit_interval(info.field_name, v, open_low=True)

    @field_validator("tracking_gain", "degraded_gain")
    @classmethod
    def _validate_gain(cls, v: float, info: Any) -> float:
        if float(v) < 0:
            raise ValueError(f"{info.field_name} must be >= 0")
        return float(v)

    @field_validator("tracker_kind")
    @classmethod
    def _validate_tracker_kind(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in TRACKER_KINDS:
            raise ValueError("tracker_kind must be csrt|kcf|mil|hold")
        return v2

    @field_validator("sink_kind")
    @classmethod
    def _validate_sink_kind(cls, v: str) -> str:
        v2 = str(v).strip().lower()
        if v2 not in SINK_KINDS:
            raise ValueError("sink_kind must be log|memory|zmq")
        return v2

    @field_validator("poll_interval", "poll_max_backoff", "record_fps")
    @classmethod
    def _validate_positive(cls, v: float, info: Any) -> float:
        if float(v) <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return float(v)

    @field_validator("poll_idle_timeout")
    @classmethod
    def _validate_idle_timeout(cls, v: float | None) -> float | None:
        if v is None:
            return None
        if float(v) <= 0:
            raise ValueError("poll_idle_timeout must be > 0 (or null to wait forever)")
        return float(v)


def settings_to_dict(settings: FollowerSettings) -> dict[str, Any]:
    """Convert settings to a plain dict."""

    return settings.model_dump()


def arbitration_from_settings(settings: FollowerSettings) -> ArbitrationConfig:
    return ArbitrationConfig(
        confidence_threshold=settings.confidence_threshold,
        good_confidence_threshold=settings.good_confidence_threshold,
        existence_threshold=settings.existence_threshold,
        disagreement_threshold=settings.disagreement_threshold,
        person_label=settings.person_label,
    )


def steering_from_settings(settings: FollowerSettings) -> SteeringConfig:
    return SteeringConfig(
        stop_area_threshold=settings.stop_area_threshold,
        tracking_gain=settings.tracking_gain,
        degraded_gain=settings.degraded_gain,
    )


def _config_path() -> Path:
    """Return the YAML configuration path (defaults to config/follower.config.yml)."""

    return Path(os.getenv("FOLLOW_CONFIG", "config/follower.config.yml"))


def load_settings() -> FollowerSettings:
    """Load settings from YAML and environment variables.

    YAML provides defaults; environment variables override.
    """

    data: dict[str, Any] = {}
    path = _config_path()
    if path.exists():
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    env_settings = FollowerSettings()
    env_overrides: dict[str, Any] = {
        name: getattr(env_settings, name) for name in env_settings.model_fields_set
    }

    merged = {**data, **env_overrides}
    return FollowerSettings(**merged)
