"""FIM CSV Sync - Schema-driven CSV import for the FIM Service."""

__version__ = "0.1.0"

from .cli import app  # noqa: E402
from .config import ImporterConfig  # noqa: E402

__all__ = ["app", "ImporterConfig", "__version__"]
