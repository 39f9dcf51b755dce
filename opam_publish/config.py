"""Environment-driven configuration."""

import os
from pathlib import Path

from pydantic import BaseModel, Field

from .metadata.opam_format import parse_fields, string_value

DEFAULT_GITHUB_API = "https://api.github.com"
DEFAULT_BASE_BRANCH = "master"
FALSE_VALUES = {"", "0", "no", "false"}


def _flag(value: str | None) -> bool:
    """Interpret an environment flag the way opam does."""
    if value is None:
        return False
    return value.strip().lower() not in FALSE_VALUES


class PublishSettings(BaseModel):
    """Settings for opam-publish.

    All values can be overridden through environment variables, see
    :meth:`from_env`.
    """

    opam_root: Path = Field(..., description="Root of the opam installation")
    publish_root: Path = Field(
        ..., description="Directory holding repository mirrors and tokens"
    )
    switch: str | None = Field(None, description="Active switch override")
    allow_checks_bypass: bool = Field(
        False, description="Whether failed checks may be bypassed on confirmation"
    )
    github_api: str = Field(DEFAULT_GITHUB_API, description="GitHub API base URL")
    base_branch: str = Field(
        DEFAULT_BASE_BRANCH,
        description="Upstream branch used when the mirror has no origin/HEAD",
    )
    http_timeout: float = Field(60.0, description="Archive download timeout (s)")

    @classmethod
    def from_env(cls) -> "PublishSettings":
        """Build settings from the process environment."""
        opam_root = Path(
            os.getenv("OPAMROOT") or Path.home() / ".opam"
        ).expanduser()
        publish_root = os.getenv("OPAMPUBLISHROOT")
        return cls(
            opam_root=opam_root,
            publish_root=(
                Path(publish_root).expanduser()
                if publish_root
                else opam_root / "plugins" / "opam-publish"
            ),
            switch=os.getenv("OPAMSWITCH") or None,
            allow_checks_bypass=_flag(os.getenv("OPAMPUBLISHBYPASSCHECKS")),
            github_api=os.getenv("OPAMPUBLISH_GITHUB_API", DEFAULT_GITHUB_API),
            base_branch=os.getenv("OPAMPUBLISH_BASE_BRANCH", DEFAULT_BASE_BRANCH),
            http_timeout=float(os.getenv("OPAMPUBLISH_HTTP_TIMEOUT", "60")),
        )

    @property
    def repos_dir(self) -> Path:
        return self.publish_root / "repos"

    def token_file(self, user: str) -> Path:
        return self.publish_root / f"{user}.token"


class EnvironmentContext(BaseModel):
    """The opam environment a prepare run looks at.

    The pin overlay of the active switch is one of the metadata sources, so
    the switch has to be known. It is resolved once and passed around rather
    than looked up from the process environment at each use.
    """

    opam_root: Path
    switch: str | None = None

    @classmethod
    def from_settings(cls, settings: PublishSettings) -> "EnvironmentContext":
        """Resolve the active switch from settings or the opam config file."""
        switch = settings.switch
        if switch is None:
            config_file = settings.opam_root / "config"
            if config_file.is_file():
                fields = parse_fields(config_file.read_text(encoding="utf-8"))
                if "switch" in fields:
                    switch = string_value(fields["switch"].value)
        return cls(opam_root=settings.opam_root, switch=switch)

    def overlay_dir(self, name: str) -> Path | None:
        """Pin overlay directory for package ``name`` in the active switch."""
        if self.switch is None:
            return None
        return self.opam_root / self.switch / "overlay" / name
