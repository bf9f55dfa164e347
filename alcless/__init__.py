"""alcless: disposable macOS user accounts as developer sandboxes."""

from alcless.config import load_settings
from alcless.core.naming import derive_account_name
from alcless.main import app
from alcless.sandbox.factory import create_lifecycle_manager


__version__ = "0.1.0"

__all__ = [
    "app",
    "create_lifecycle_manager",
    "derive_account_name",
    "load_settings",
    "__version__",
]
