from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "MGDISPATCH_", "case_sensitive": False}

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Randomness (None = fresh OS entropy per run)
    default_seed: int | None = Field(default=None, ge=0)

    # Soft-constraint penalty weights
    penalty_balance_weight: float = 1e3
    penalty_bounds_weight: float = 1e5


settings = Settings()
