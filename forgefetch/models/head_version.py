from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import model_validator

SHA_PATTERN = r'^[0-9a-fA-F]+$'


class GitObject(BaseModel):
    sha: str = Field(pattern=SHA_PATTERN)

    model_config = ConfigDict(extra='ignore')


class GitRef(BaseModel):
    """
    Response of GET /repos/{org}/{repo}/git/refs/heads/{head_ref}.

    GitHub nests the commit under `object`; a bare `{"sha": ...}` document is
    accepted as well.
    """
    ref: str | None = None
    object: GitObject

    model_config = ConfigDict(extra='ignore')

    @model_validator(mode='before')
    @classmethod
    def lift_bare_sha(cls, data):
        if isinstance(data, dict) and 'object' not in data and 'sha' in data:
            return {'ref': data.get('ref'), 'object': {'sha': data['sha']}}
        return data

    @property
    def sha(self) -> str:
        return self.object.sha.lower()


class HeadVersion(BaseModel):
    head_ref: str
    sha: str

    model_config = ConfigDict(frozen=True)
