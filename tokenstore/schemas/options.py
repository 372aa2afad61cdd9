from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat


class StoreOptions(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    key_prefix: str = Field(
        "pwdless:", description="Namespace prepended to every Redis key", min_length=1
    )
    socket_timeout: Optional[PositiveFloat] = Field(
        5.0, description="Redis socket timeout in seconds (None disables)"
    )
