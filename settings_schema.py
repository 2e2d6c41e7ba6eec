from pydantic import BaseModel, Field, ValidationError

from config import YamlConfig


class SyncSettings(BaseModel):
    api_url: str = "http://localhost:8000"
    api_token: str | None = None
    debounce_seconds: float = Field(1.0, ge=0)
    redirect_delay_seconds: float = Field(2.0, ge=0)
    default_tempo: str = "3-0-1"
    workout_list_route: str = "/dashboard/workout"
    workout_history_route: str = "/dashboard/workout/history"
    language: str = "en"
    log_level: str = "INFO"


def validate_settings(data: dict) -> None:
    try:
        SyncSettings(**data)
    except ValidationError as e:
        raise ValueError(str(e))


def load_settings(path: str = "settings.yaml") -> SyncSettings:
    """Read ``path`` and return validated settings with defaults applied."""
    data = YamlConfig(path).load()
    validate_settings(data)
    return SyncSettings(**data)
