"""
wpbootstrap - first-run bootstrap agents for WordPress and MariaDB containers
"""

__version__ = "0.3.0"

from .errors import BootstrapError

__all__ = ["BootstrapError", "__version__"]
