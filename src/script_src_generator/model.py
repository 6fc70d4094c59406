# src/script_src_generator/model.py (Command Line Layer)
from pydantic import BaseModel, Field, field_validator

from scriptsrc.services.digest_service import HashAlgorithm


class GeneratorSettings(BaseModel):
    """The 'generator' section of settings.json; command line flags override it."""
    hash_algorithm: HashAlgorithm = HashAlgorithm.SHA512
    include_event_handlers: bool = True
    workers: int = Field(default=1, ge=1)
    show_progress: bool = False

    @field_validator("hash_algorithm", mode="before")
    @classmethod
    def _coerce_algorithm(cls, v):
        if isinstance(v, str) and not isinstance(v, HashAlgorithm):
            return HashAlgorithm.from_name(v)
        return v
