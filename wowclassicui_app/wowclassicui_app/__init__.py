"""
wowclassicui_app package.

Application-level helpers shared by the controller and worker sides.
"""

APP_NAME = "WoWClassicUI App"
APP_VERSION = "1.0.0"
ORGANIZATION_NAME = "WoWClassicUI"

__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "ORGANIZATION_NAME",
    "logger",
]
