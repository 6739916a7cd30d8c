"""Built-in rule tables per tree-sitter grammar."""

from .base import LanguageConfig
from .python import PythonConfig
from .solidity import SolidityConfig

# Registry mapping language names to their configurations
LANGUAGE_CONFIGS: dict[str, LanguageConfig] = {
    "python": PythonConfig(),
    "solidity": SolidityConfig(),
}

__all__ = [
    "LanguageConfig",
    "LANGUAGE_CONFIGS",
    "PythonConfig",
    "SolidityConfig",
]
