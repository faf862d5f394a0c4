"""
Centralized settings and path configuration for the formula pricing engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def get_package_root() -> Path:
    """Get the formula_pricing package directory."""
    return Path(__file__).resolve().parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Directory of JSON formula definitions
    formulas_dir: Path

    # Regression baseline for the bundled definitions
    golden_cases: Path

    # Identifier generation
    slug_max_length: int = 30

    # Definition limits
    unit_max_length: int = 15

    # Expression parser guard
    max_nesting_depth: int = 100

    log_level: str = "INFO"

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        formulas_dir = os.environ.get('FORMULA_PRICING_FORMULAS_DIR')

        return cls(
            project_root=root,
            formulas_dir=Path(formulas_dir) if formulas_dir else get_package_root() / 'data' / 'formulas',
            golden_cases=root / 'tests' / 'golden_cases.csv',
            max_nesting_depth=int(os.environ.get('FORMULA_PRICING_MAX_DEPTH', 100)),
            log_level=os.environ.get('FORMULA_PRICING_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
