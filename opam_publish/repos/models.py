"""Repository identity model."""

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_LABEL = "default"


class RepoIdentity(BaseModel):
    """A GitHub repository registered under a local label."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., description="Local alias, unique per mirror")
    owner: str = Field(..., description="GitHub owner of the upstream repository")
    name: str = Field(..., description="GitHub repository name")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


DEFAULT_REPO = RepoIdentity(label=DEFAULT_LABEL, owner="ocaml", name="opam-repository")
