"""HTTP interface for uploading backups and downloading conversions.

Usage:
    from bak_converter.api import create_app

    app = create_app()
"""

from bak_converter.api.app import create_app

__all__ = ["create_app"]
