"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path

DEFAULT_ITERATIONS = 10_000
DEFAULT_BINS = 20


class ConfigError(Exception):
    """Error in fermigraph configuration."""


@dataclass(slots=True, frozen=True)
class FermiConfig:
    """Configuration loaded from the ``[tool.fermigraph]`` table of pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    iterations: int = DEFAULT_ITERATIONS
    seed: int | None = None
    bins: int = DEFAULT_BINS
    output: Path | None = None
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _positive_int(section: dict[str, object], key: str, default: int) -> int:
    if key not in section:
        return default
    value = section[key]
    # bool is an int subclass but never a valid count
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        msg = f"Invalid [tool.fermigraph].{key}: expected a positive integer"
        raise ConfigError(msg)
    return value


def load_config(pyproject_path: Path) -> FermiConfig:
    """Load and validate [tool.fermigraph] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed FermiConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("fermigraph", {})
    if not section:
        return FermiConfig(project_root=project_root)

    iterations = _positive_int(section, "iterations", DEFAULT_ITERATIONS)
    bins = _positive_int(section, "bins", DEFAULT_BINS)

    seed: int | None = None
    if "seed" in section:
        seed_value = section["seed"]
        if not isinstance(seed_value, int) or isinstance(seed_value, bool):
            msg = "Invalid [tool.fermigraph].seed: expected an integer"
            raise ConfigError(msg)
        seed = seed_value

    output_path: Path | None = None
    if "output" in section:
        output_value = section["output"]
        if not isinstance(output_value, str):
            msg = "Invalid [tool.fermigraph].output: expected string path"
            raise ConfigError(msg)
        output_path = Path(output_value)
        if not output_path.is_absolute():
            output_path = project_root / output_path

    return FermiConfig(
        iterations=iterations,
        seed=seed,
        bins=bins,
        output=output_path,
        project_root=project_root,
    )


def get_config() -> FermiConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        FermiConfig (defaults if no pyproject.toml or no [tool.fermigraph] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return FermiConfig()
    return load_config(pyproject_path)
