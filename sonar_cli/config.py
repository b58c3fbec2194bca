"""Configuration loading and validation.

Usage:
    config = load("sonar-config.yaml")       # raises ConfigError on bad config
    key = config.resolve_project("app")      # returns "com.example.app"
    generate_template("sonar-config.yaml")   # writes example file to disk

Precedence, highest first: command-line flags (applied by the CLI with
``Config.override``), environment variables, the YAML file, defaults.
"""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "sonar-config.yaml"
DEFAULT_URL = "http://localhost:9000"
DEFAULT_TIMEOUT = 30


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


class MissingProjectError(ConfigError):
    """Raised when a command needs a project key and none was given."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    url: str = DEFAULT_URL
    token: str | None = None
    project: str | None = None
    branch: str | None = None
    timeout: int = DEFAULT_TIMEOUT
    projects: dict[str, str] = field(default_factory=dict)

    def override(self, **values: Any) -> "Config":
        """Return a copy with every non-None value in *values* applied."""
        config = replace(self, **{k: v for k, v in values.items() if v is not None})
        _validate(config)
        return config

    def resolve_project(self, name: str | None = None) -> str:
        """Return the SonarQube project key for *name* or the default project.

        Accepts either a configured alias (e.g. "app") or a raw project key
        passed directly (e.g. "com.example.app").
        """
        name = name or self.project
        if not name:
            raise MissingProjectError(
                "Project key is required. Use --project, set SONAR_PROJECT_KEY "
                "or add 'defaults.project' to the config file."
            )
        return self.projects.get(name, name)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str | None = None) -> Config:
    """Load and validate configuration from a YAML file and the environment.

    A missing file is only an error when *config_path* was given explicitly;
    the default ``sonar-config.yaml`` is optional.

    Environment variables SONAR_HOST_URL (or SONAR_URL), SONAR_TOKEN,
    SONAR_PROJECT_KEY and SONAR_BRANCH override file values.

    Raises:
        ConfigError: if the file is missing, malformed, or holds invalid
                     values.
    """
    raw = _read_file(config_path)

    server = raw.get("server") or {}
    defaults = raw.get("defaults") or {}
    projects = raw.get("projects") or {}
    if not isinstance(projects, dict):
        raise ConfigError("'projects' must be a mapping of alias to project key.")

    env = os.environ
    url = env.get("SONAR_HOST_URL") or env.get("SONAR_URL") or server.get("url") or DEFAULT_URL
    token = env.get("SONAR_TOKEN") or server.get("token")
    project = env.get("SONAR_PROJECT_KEY") or defaults.get("project")
    branch = env.get("SONAR_BRANCH") or defaults.get("branch")

    try:
        timeout = int(server.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'server.timeout' must be an integer: {exc}") from exc

    config = Config(
        url=str(url).strip(),
        token=str(token).strip() if token else None,
        project=str(project) if project else None,
        branch=str(branch) if branch else None,
        timeout=timeout,
        projects={str(k): str(v) for k, v in projects.items()},
    )
    _validate(config)
    return config


def _read_file(config_path: str | None) -> dict:
    path = Path(config_path or DEFAULT_CONFIG_PATH)

    if not path.exists():
        if config_path is None:
            return {}
        raise ConfigError(
            f"Config file not found: '{config_path}'\n"
            "Run `sonar-cli init` to generate a template."
        )

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{path}' must be a YAML mapping at the top level.")
    return raw


def _validate(config: Config) -> None:
    """Raise ConfigError if a field holds an unusable value."""
    errors: list[str] = []

    if not config.url.startswith(("http://", "https://")):
        errors.append(
            f"  - server URL '{config.url}' must start with http:// or https://"
        )
    if config.timeout <= 0:
        errors.append("  - timeout must be a positive number of seconds")

    if errors:
        raise ConfigError("Invalid configuration:\n" + "\n".join(errors))


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
server:
  url: "https://sonar.example.com"
  token: "squ_xxxxxxxxxxxx"       # Generate at: <your-sonar-url>/account/security
  timeout: 30                     # Request timeout in seconds

defaults:
  project: "com.example.my-project"
  # branch: "main"

projects:
  # Human-readable alias: SonarQube project key
  my-project: "com.example.my-project"
  another:    "com.example.another-service"
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template sonar-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting secrets).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
