from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import field_validator


class FetchRequest(BaseModel):
    """A single source fetch, as declared by a package build."""
    out_var: str | None = None
    repo: str | None = None
    ref: str | None = None
    sha512: str | None = None
    head_ref: str | None = None

    model_config = ConfigDict(frozen=True, extra='forbid')

    @field_validator('*', mode='before')
    @classmethod
    def blank_is_absent(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @property
    def organization(self) -> str:
        return (self.repo or '').split('/', 1)[0]

    @property
    def repo_name(self) -> str:
        return (self.repo or '').rsplit('/', 1)[-1]
