"""Generation options with every default spelled out."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AuthType = Literal["none", "api-key", "bearer"]
CollisionPolicy = Literal["overwrite", "error"]

DEFAULT_MAX_TOOLS = 30


class GenerationOptions(BaseModel):
    """Everything a single generation run needs to know."""

    model_config = ConfigDict(frozen=True)

    spec_input: str
    project_name: str | None = None
    output_dir: Path = Field(default_factory=Path.cwd)
    base_url: str | None = None
    auth_type: AuthType = "none"
    filter: str | None = None
    # None disables the cap
    max_tools: int | None = Field(default=DEFAULT_MAX_TOOLS, ge=1)
    overwrite: bool = False
    on_name_collision: CollisionPolicy = "overwrite"
