import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


def _env_int(name: str) -> Optional[int]:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    return int(val)


class Settings(BaseModel):
    """
    Runtime configuration, read from the environment (and a .env file).
    """

    db_path: str = "data/officeops.sqlite"
    debug: bool = False
    log_file: Optional[str] = None

    # "accept" keeps negative quantities/prices as typed, "reject" raises
    negative_amounts: Literal["accept", "reject"] = "accept"
    # None means line totals are kept as raw floats
    currency_precision: Optional[int] = Field(default=None, ge=0)

    quote_validity_days: int = Field(default=30, ge=0)
    contract_term_days: int = Field(default=365, ge=1)
    operator: str = "warehouse"

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "db_path": os.getenv("OFFICEOPS_DB_PATH"),
            "debug": bool(os.getenv("DEBUG")),
            "log_file": os.getenv("OFFICEOPS_LOG_FILE") or None,
            "negative_amounts": os.getenv("OFFICEOPS_NEGATIVE_AMOUNTS"),
            "currency_precision": _env_int("OFFICEOPS_CURRENCY_PRECISION"),
            "quote_validity_days": _env_int("OFFICEOPS_QUOTE_VALIDITY_DAYS"),
            "contract_term_days": _env_int("OFFICEOPS_CONTRACT_TERM_DAYS"),
            "operator": os.getenv("OFFICEOPS_OPERATOR"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
