"""Pydantic models for the HTTP API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CommandSchema(BaseModel):
    """Actuator command payload."""

    turn: float
    speed: float
    sit: bool
    stand: bool
    walk: bool


class StatusSchema(BaseModel):
    """Latest arbitration outcome."""

    running: bool
    frame_id: int | None = None
    regime: str | None = None
    primary_box: tuple[float, float, float, float] | None = None
    command: CommandSchema | None = None
    detections: int = 0
    fps: float = 0.0
    frame_size: tuple[int, int] | None = None
    frames_processed: int = 0
    error: str | None = None


class ConfigSchema(BaseModel):
    """Runtime configuration payload."""

    model_config = ConfigDict(protected_namespaces=())

    source_kind: str
    source_location: str
    model_name: str
    model_task: str | None = None
    confidence_threshold: float = Field(ge=0.0, le=1.0)
    good_confidence_threshold: float = Field(ge=0.0, le=1.0)
    existence_threshold: float = Field(ge=0.0, le=1.0)
    disagreement_threshold: float = Field(gt=0.0, le=1.0)
    person_label: int
    stop_area_threshold: float = Field(gt=0.0, le=1.0)
    tracking_gain: float = Field(ge=0.0)
    degraded_gain: float = Field(ge=0.0)
    tracker_kind: str
    sink_kind: str
    zmq_endpoint: str | None = None

    @field_validator("source_kind")
    @classmethod
    def _validate_source(cls, v: str) -> str:
        if v not in {"image", "video", "webcam", "videos_folder", "from_file"}:
            raise ValueError("source_kind must be image|video|webcam|videos_folder|from_file")
        return v

    @field_validator("tracker_kind")
    @classmethod
    def _validate_tracker(cls, v: str) -> str:
        if v not in {"csrt", "kcf", "mil", "hold"}:
            raise ValueError("tracker_kind must be csrt|kcf|mil|hold")
        return v

    @field_validator("sink_kind")
    @classmethod
    def _validate_sink(cls, v: str) -> str:
        if v not in {"log", "memory", "zmq"}:
            raise ValueError("sink_kind must be log|memory|zmq")
        return v


class ConfigPatchSchema(BaseModel):
    """Partial configuration update; omitted fields keep their current value."""

    model_config = ConfigDict(protected_namespaces=(), extra="forbid")

    source_kind: str | None = None
    source_location: str | None = None
    model_name: str | None = None
    model_task: str | None = None
    confidence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    good_confidence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    existence_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    disagreement_threshold: float | None = Field(default=None, gt=0.0, le=1.0)
    person_label: int | None = None
    stop_area_threshold: float | None = Field(default=None, gt=0.0, le=1.0)
    tracking_gain: float | None = Field(default=None, ge=0.0)
    degraded_gain: float | None = Field(default=None, ge=0.0)
    tracker_kind: str | None = None
    sink_kind: str | None = None
    zmq_endpoint: str | None = None
