"""learnsql package initialization.

Single source of truth for package version + default storage identifier so that
code, tests, and scripts can import without duplicating literals.
"""

PACKAGE_VERSION = "0.1.0"  # Keep in sync with pyproject version.
DEFAULT_STORAGE_NAME = "my-pgdata"

__all__ = ["PACKAGE_VERSION", "DEFAULT_STORAGE_NAME"]
