"""Allow ``python -m sendfile``."""

from .cli import run

run()
